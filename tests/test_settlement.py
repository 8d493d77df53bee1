from datetime import timedelta

import pytest

from conftest import KICKOFF, RecordingNotifier, add_player, add_result
from betpool.models import Player
from betpool.services.errors import UpstreamError
from betpool.services.settlement_service import (
    SettlementService,
    build_score_lookup,
    latest_pending_kickoff,
)
from betpool.utils.emojis import ANGER, FACEPALM, NAUSEATED, SLEEPY

AFTER_GATE = KICKOFF + timedelta(minutes=121)


class FakeResultsClient:
    def __init__(self, records=None, error=None):
        self.records = records or []
        self.error = error
        self.calls = []

    def fetch_results(self, strict=False, use_cache=True):
        self.calls.append({"strict": strict, "use_cache": use_cache})
        if self.error:
            raise self.error
        return self.records, []


def _service(client, notifier=None):
    return SettlementService(data_client=client, notifier=notifier or RecordingNotifier())


def _record(event_id, home, away):
    return {"eventId": event_id, "homeScoreFt": home, "awayScoreFt": away}


def test_nothing_pending_is_a_no_op(app, db):
    player = add_player("Brett")
    add_result(player, 1, "W", home=2, away=0)
    db.session.commit()
    client = FakeResultsClient()

    report = _service(client).settle(now=AFTER_GATE)

    assert report["success"] is True
    assert report["settled"] == 0
    assert "No pending" in report["message"]
    assert client.calls == []


def test_too_early_does_not_fetch_or_mutate(app, db):
    player = add_player("Brett")
    add_result(player, 1, event_id="E1")
    db.session.commit()
    client = FakeResultsClient([_record("E1", 2, 0)])

    report = _service(client).settle(now=KICKOFF + timedelta(minutes=119))

    assert report["settled"] == 0
    assert "Too early" in report["message"]
    assert client.calls == []
    assert Player.get_by_username("Brett").get_result_for_round(1).is_pending


def test_gate_opens_after_two_hours(app, db):
    player = add_player("Brett")
    add_result(player, 1, event_id="E1")
    db.session.commit()
    client = FakeResultsClient([_record("E1", 2, 0)])

    report = _service(client).settle(now=AFTER_GATE)

    assert report["settled"] == 1
    assert client.calls == [{"strict": True, "use_cache": False}]
    assert Player.get_by_username("Brett").get_result_for_round(1).outcome == "W"


def test_gate_uses_latest_pending_kickoff(app, db):
    early = add_player("Brett")
    late = add_player("Hudo")
    add_result(early, 1, event_id="E1")
    add_result(late, 1, event_id="E2", kickoff=KICKOFF + timedelta(hours=3))
    db.session.commit()
    client = FakeResultsClient([_record("E1", 2, 0)])

    report = _service(client).settle(now=AFTER_GATE)

    assert report["settled"] == 0
    assert latest_pending_kickoff(Player.get_roster()) == KICKOFF + timedelta(hours=3)


def test_only_matched_events_settle(app, db):
    names = ["Brett", "Andy Barky", "The Real Barky", "Hudo", "Gaz", "Clarky"]
    for index, name in enumerate(names):
        player = add_player(name)
        add_result(player, 5, event_id="E1" if index == 0 else f"E{index + 10}")
    db.session.commit()
    client = FakeResultsClient([_record("E1", 3, 0), {"eventId": "E99", "score": "1-1"}])

    report = _service(client).settle(now=AFTER_GATE)

    assert report["success"] is True
    assert report["settled"] == 1
    assert report["rounds"] == [5]

    settled = Player.get_by_username("Brett").get_result_for_round(5)
    assert settled.outcome == "W"
    assert settled.final_score == {"home": 3, "away": 0}
    assert settled.prediction_dict()["finalScore"] == {"home": 3, "away": 0}

    for name in names[1:]:
        assert Player.get_by_username(name).get_result_for_round(5).is_pending


def test_unparseable_score_stays_pending(app, db):
    player = add_player("Brett")
    add_result(player, 1, event_id="E1")
    db.session.commit()
    client = FakeResultsClient([{"eventId": "E1", "homeScore": "-", "awayScore": "-"}])

    report = _service(client).settle(now=AFTER_GATE)

    assert report["settled"] == 0
    assert Player.get_by_username("Brett").get_result_for_round(1).is_pending


def test_odd_score_in_feed_does_not_block_other_settlements(app, db):
    player = add_player("Brett")
    add_result(player, 1, event_id="E1")
    db.session.commit()
    client = FakeResultsClient(
        [{"eventId": "X", "homeScore": "²", "awayScore": "1"}, _record("E1", 2, 0)]
    )

    report = _service(client).settle(now=AFTER_GATE)

    assert report["success"] is True
    assert report["settled"] == 1
    assert Player.get_by_username("Brett").get_result_for_round(1).outcome == "W"


def test_upstream_failure_changes_nothing(app, db):
    player = add_player("Brett")
    add_result(player, 1, "L", home=0, away=1, emoji=ANGER)
    add_result(player, 2, event_id="E1")
    db.session.commit()
    client = FakeResultsClient(error=UpstreamError("Failed to fetch results for FA Cup"))

    report = _service(client).settle(now=AFTER_GATE)

    assert report["success"] is False
    assert report["settled"] == 0
    assert "FA Cup" in report["error"]

    player = Player.get_by_username("Brett")
    assert player.get_result_for_round(2).is_pending
    assert player.get_result_for_round(1).emoji == ANGER


def test_goalless_btts_loss_beats_only_loser(app, db):
    brett = add_player("Brett")
    hudo = add_player("Hudo")
    add_result(brett, 1, prediction_type="BTTS", event_id="E1")
    add_result(hudo, 1, prediction_type="Home", event_id="E2")
    db.session.commit()
    client = FakeResultsClient([_record("E1", 0, 0), _record("E2", 2, 1)])

    report = _service(client).settle(now=AFTER_GATE)

    assert report["settled"] == 2
    assert Player.get_by_username("Brett").get_result_for_round(1).emoji == SLEEPY
    assert Player.get_by_username("Hudo").get_result_for_round(1).emoji is None


def test_only_loser_counts_already_settled_players(app, db):
    brett = add_player("Brett")
    hudo = add_player("Hudo")
    gaz = add_player("Gaz")
    add_result(brett, 1, "W", home=2, away=0)
    add_result(hudo, 1, "W", home=1, away=0)
    add_result(gaz, 1, prediction_type="Away", event_id="E3")
    db.session.commit()
    client = FakeResultsClient([_record("E3", 1, 0)])

    _service(client).settle(now=AFTER_GATE)

    assert Player.get_by_username("Gaz").get_result_for_round(1).emoji == NAUSEATED


def test_stale_only_loser_is_cleared(app, db):
    brett = add_player("Brett")
    hudo = add_player("Hudo")
    add_result(brett, 1, "L", home=0, away=1, emoji=NAUSEATED)
    add_result(hudo, 1, prediction_type="Home", event_id="E2")
    db.session.commit()
    client = FakeResultsClient([_record("E2", 0, 1)])

    _service(client).settle(now=AFTER_GATE)

    assert Player.get_by_username("Brett").get_result_for_round(1).emoji is None
    assert Player.get_by_username("Hudo").get_result_for_round(1).emoji is None


def test_manual_facepalm_is_kept(app, db):
    brett = add_player("Brett")
    hudo = add_player("Hudo")
    add_result(brett, 1, "L", home=0, away=1, emoji=FACEPALM)
    add_result(hudo, 1, prediction_type="Home", event_id="E2")
    db.session.commit()
    client = FakeResultsClient([_record("E2", 0, 1)])

    _service(client).settle(now=AFTER_GATE)

    assert Player.get_by_username("Brett").get_result_for_round(1).emoji == FACEPALM


def test_streaks_are_recalculated_for_everyone(app, db):
    brett = add_player("Brett")
    add_result(brett, 1, "L", home=0, away=1)
    add_result(brett, 2, "L", home=0, away=1)
    add_result(brett, 3, event_id="E1")
    db.session.commit()
    client = FakeResultsClient([_record("E1", 0, 2)])

    _service(client).settle(now=AFTER_GATE)

    # Only player in the pool, so also the only loser
    assert Player.get_by_username("Brett").get_result_for_round(3).emoji == NAUSEATED + ANGER


def test_round_summary_sent_when_round_complete(app, db):
    brett = add_player("Brett")
    hudo = add_player("Hudo")
    add_result(brett, 1, event_id="E1")
    add_result(hudo, 1, event_id="E2")
    db.session.commit()
    notifier = RecordingNotifier()
    client = FakeResultsClient([_record("E1", 2, 0), _record("E2", 2, 2)])

    _service(client, notifier).settle(now=AFTER_GATE)

    assert len(notifier.messages) == 1
    assert "Round 1 Results" in notifier.messages[0]
    assert "(2-2)" in notifier.messages[0]


def test_no_summary_while_round_incomplete(app, db):
    brett = add_player("Brett")
    hudo = add_player("Hudo")
    add_result(brett, 1, event_id="E1")
    add_result(hudo, 1, event_id="E2")
    db.session.commit()
    notifier = RecordingNotifier()

    _service(FakeResultsClient([_record("E1", 2, 0)]), notifier).settle(now=AFTER_GATE)

    assert notifier.messages == []


def test_notification_failure_keeps_settlement(app, db):
    player = add_player("Brett")
    add_result(player, 1, event_id="E1")
    db.session.commit()
    client = FakeResultsClient([_record("E1", 2, 0)])

    report = _service(client, RecordingNotifier(fail=True)).settle(now=AFTER_GATE)

    assert report["success"] is True
    assert Player.get_by_username("Brett").get_result_for_round(1).outcome == "W"


def test_recalculate_emojis(app, db):
    player = add_player("Brett")
    for round_number in (1, 2, 3):
        add_result(player, round_number, "L", home=0, away=1)
    db.session.commit()

    count = _service(FakeResultsClient()).recalculate_emojis()

    assert count == 1
    assert Player.get_by_username("Brett").get_result_for_round(3).emoji == ANGER


@pytest.mark.parametrize(
    "records,expected",
    [
        ([_record("E1", 1, 0)], {"E1": (1, 0)}),
        ([{"eventId": "E1", "score": "-"}, _record("E1", 1, 0)], {"E1": (1, 0)}),
        ([_record("E1", 1, 0), {"eventId": "E1"}], {"E1": (1, 0)}),
        ([{"homeScoreFt": 1, "awayScoreFt": 0}], {}),
    ],
)
def test_build_score_lookup(records, expected):
    assert build_score_lookup(records) == expected
