from datetime import datetime, timezone

import pytest

from betpool import create_app
from betpool import db as _db
from betpool.models import Player, Result

KICKOFF = datetime(2025, 10, 18, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def app():
    app = create_app("testing")

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


class RecordingNotifier:
    """Collects messages instead of posting them to Telegram"""

    def __init__(self, fail=False):
        self.messages = []
        self.fail = fail

    def send_message(self, text):
        if self.fail:
            raise RuntimeError("telegram down")
        self.messages.append(text)
        return True


@pytest.fixture
def notifier():
    return RecordingNotifier()


def add_player(username, position=None):
    player = Player.create_player(username, position=position)
    _db.session.flush()
    return player


def add_result(
    player,
    round_number,
    outcome="P",
    prediction_type="Home",
    event_id=None,
    kickoff=KICKOFF,
    home=None,
    away=None,
    emoji=None,
):
    result = Result(
        round=round_number,
        outcome=outcome,
        emoji=emoji,
        prediction_type=prediction_type,
        home_name=f"Home {round_number}",
        away_name=f"Away {round_number}",
        start_time_utc=kickoff,
        event_id=event_id if event_id is not None else f"{player.username}-{round_number}",
        final_home_score=home,
        final_away_score=away,
    )
    player.results.append(result)
    _db.session.flush()
    return result


@pytest.fixture
def roster(app):
    players = [add_player(name) for name in ("Brett", "Hudo", "Gaz")]
    _db.session.commit()
    return players
