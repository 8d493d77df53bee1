"""
BetPool Round Settlement Service

Settles pending predictions against final scores from the sports data API:
collect pending picks, wait until the latest kickoff is old enough, fetch
results, decide outcomes, derive special (fine) emojis for the settled
round, recompute every player's streak emojis and commit once.
"""

import logging
from datetime import timedelta

from flask import current_app

from betpool import db
from betpool.models import Player
from betpool.services.errors import UpstreamError
from betpool.utils.data_sync import SportDataClient
from betpool.utils.emojis import (
    DERIVED_SPECIAL_EMOJIS,
    annotate_results,
    detect_special_conditions,
    special_prefix,
    split_glyphs,
)
from betpool.utils.notifications import TelegramNotifier, format_round_summary
from betpool.utils.scoring import decide_outcome, extract_scores
from betpool.utils.timezone_utils import ensure_utc, get_utc_time

logger = logging.getLogger(__name__)

RESULTS_UNAVAILABLE = "Results unavailable"


def collect_pending(players):
    """(player, result) pairs for every pending result that can be settled"""
    return [
        (player, result)
        for player in players
        for result in player.results
        if result.is_settleable
    ]


def latest_pending_kickoff(players):
    """Latest kickoff among settleable pending results, or None"""
    pending = collect_pending(players)
    if not pending:
        return None
    return max(result.kickoff for _, result in pending)


def build_score_lookup(records):
    """Map event id -> (home, away) from raw result records"""
    lookup = {}
    for record in records:
        scores = extract_scores(record)
        event_id = scores["event_id"]
        if not event_id:
            continue

        existing = lookup.get(event_id)
        # Keep a parsed score over an unparsed duplicate
        if existing is not None and existing[0] is not None and existing[1] is not None:
            continue
        lookup[event_id] = (scores["home"], scores["away"])

    return lookup


def round_overrides(players, rounds):
    """
    Special emoji overrides for the given rounds, keyed by player id then
    round number.

    Derived specials are recomputed from scratch for these rounds; a stale
    derived special (say an earlier "only loser" that now has company) is
    cleared, while hand-set specials are kept.
    """
    overrides = {}

    for round_number in rounds:
        entries = [
            (player.id, player.get_result_for_round(round_number))
            for player in players
        ]
        specials = detect_special_conditions(entries)

        for player_id, result in entries:
            if result is None or not result.is_settled:
                continue

            if player_id in specials:
                overrides.setdefault(player_id, {})[round_number] = specials[player_id]
                continue

            stored = special_prefix(result.emoji)
            kept = "".join(
                glyph
                for glyph in split_glyphs(stored)
                if glyph not in DERIVED_SPECIAL_EMOJIS
            )
            if kept != stored:
                overrides.setdefault(player_id, {})[round_number] = kept

    return overrides


class SettlementService:
    """Settles pending predictions; safe to call at any time"""

    def __init__(self, data_client=None, notifier=None, settlement_delay=None):
        self.data_client = data_client or SportDataClient.from_app()
        self.notifier = notifier or TelegramNotifier.from_app()
        if settlement_delay is None:
            settlement_delay = timedelta(
                minutes=current_app.config.get("SETTLEMENT_DELAY_MINUTES", 120)
            )
        self.settlement_delay = settlement_delay

    @staticmethod
    def _report(settled, message, rounds=None, success=True, error=None):
        report = {
            "success": success,
            "settled": settled,
            "message": message,
            "rounds": sorted(rounds or []),
        }
        if error is not None:
            report["error"] = error
        return report

    def settle(self, now=None):
        """
        Run one settlement pass.

        Returns:
            dict with ``success``, ``settled`` (count of results moved off
            pending), ``message`` and the ``rounds`` touched. Nothing is
            committed unless the whole pass succeeds.
        """
        now = ensure_utc(now) or get_utc_time()

        try:
            players = Player.get_roster()
            pending = collect_pending(players)

            if not pending:
                logger.info("Settlement: no pending predictions")
                return self._report(0, "No pending predictions to settle")

            latest_kickoff = max(result.kickoff for _, result in pending)
            if now - latest_kickoff < self.settlement_delay:
                logger.info(
                    f"Settlement: too early, latest kickoff {latest_kickoff.isoformat()}"
                )
                hours = self.settlement_delay.total_seconds() / 3600
                return self._report(
                    0, f"Too early to settle; latest game not {hours:g}h old"
                )

            records, _ = self.data_client.fetch_results(strict=True, use_cache=False)
            logger.info(f"Settlement: fetched {len(records)} results")
            scores_by_event = build_score_lookup(records)

            settled = 0
            settled_rounds = set()
            for player, result in pending:
                scores = scores_by_event.get(str(result.event_id))
                if scores is None:
                    continue

                home, away = scores
                outcome = decide_outcome(result.prediction_type, home, away)
                if outcome is None:
                    continue

                result.settle(outcome, home, away)
                settled += 1
                settled_rounds.add(result.round)
                logger.info(
                    f"Settled round {result.round} for {player.username}: "
                    f"{result.prediction_type} {home}-{away} -> {outcome}"
                )

            overrides = round_overrides(players, settled_rounds)
            for player in players:
                annotate_results(player.results, overrides.get(player.id))

            db.session.commit()

        except UpstreamError as e:
            db.session.rollback()
            logger.error(f"Settlement aborted, results unavailable: {e.message}")
            return self._report(
                0, RESULTS_UNAVAILABLE, success=False, error=e.message
            )
        except Exception as e:
            db.session.rollback()
            logger.error(f"Settlement failed: {str(e)}", exc_info=True)
            return self._report(0, "Settlement failed", success=False, error=str(e))

        if settled:
            self._notify_completed_rounds(players, settled_rounds)
            message = f"Settled {settled} predictions and recalculated emojis"
        else:
            message = "No final results yet for pending predictions"

        return self._report(settled, message, settled_rounds)

    def _notify_completed_rounds(self, players, rounds):
        """Send a summary for each round every player has now settled"""
        for round_number in sorted(rounds):
            round_results = [p.get_result_for_round(round_number) for p in players]
            if not all(r is not None and r.is_settled for r in round_results):
                continue

            try:
                self.notifier.send_message(format_round_summary(round_number, players))
            except Exception as e:
                logger.error(f"Round {round_number} summary not sent: {str(e)}")

    def recalculate_emojis(self):
        """Recompute streak emojis for every player without settling anything"""
        try:
            players = Player.get_roster()
            for player in players:
                annotate_results(player.results)
            db.session.commit()
            return len(players)
        except Exception:
            db.session.rollback()
            raise
