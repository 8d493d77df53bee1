"""
Prediction lifecycle for BetPool players: submitting a pick, withdrawing it,
attaching odds and recording who placed the real-money bet for a round.
"""

import logging
import math

from flask import current_app

from betpool import db
from betpool.models import BetStatus, Player, Result
from betpool.services.errors import ConflictError, NotFoundError, ValidationError
from betpool.utils.notifications import (
    TelegramNotifier,
    format_all_picks_in,
    format_deletion,
    format_new_pick,
)
from betpool.utils.scoring import PREDICTION_TYPES, turn_for_round
from betpool.utils.stats import sort_leaderboard
from betpool.utils.timezone_utils import parse_utc_datetime

logger = logging.getLogger(__name__)

MATCH_FIELDS = ("eventId", "homeName", "awayName")


def _require_player(username):
    player = Player.get_by_username(username)
    if player is None:
        raise NotFoundError(f"Player {username} not found")
    return player


def _parse_round(value):
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError("Round must be a whole number")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("Round must be a number")


def current_round(players=None):
    """Highest round anyone has a result for, 0 when nobody has played"""
    players = Player.get_roster() if players is None else players
    return max((player.latest_round for player in players), default=0)


def get_leaderboard(fine_amount=None):
    """Leaderboard rows for every player, best win percentage first"""
    if fine_amount is None:
        fine_amount = current_app.config.get("FINE_AMOUNT", 5)
    return sort_leaderboard(
        [player.get_stats(fine_amount) for player in Player.get_roster()]
    )


class PredictionService:
    def __init__(self, notifier=None):
        self.notifier = notifier or TelegramNotifier.from_app()

    def _notify(self, text):
        try:
            self.notifier.send_message(text)
        except Exception as e:
            logger.error(f"Notification not sent: {str(e)}")

    def submit(self, username, prediction):
        """
        Add a pending pick as the player's next round.

        Raises:
            ValidationError: missing fields or unknown prediction type
            NotFoundError: unknown player
            ConflictError: player already has a pending pick, or the
                fixture is already claimed by someone's pending pick
        """
        if not username or not isinstance(prediction, dict):
            raise ValidationError("Missing username or prediction")

        prediction_type = prediction.get("type")
        if prediction_type not in PREDICTION_TYPES:
            raise ValidationError("Invalid prediction type")

        match = prediction.get("match")
        if not isinstance(match, dict) or any(
            match.get(field) in (None, "") for field in MATCH_FIELDS
        ):
            raise ValidationError("Missing match details")

        kickoff = parse_utc_datetime(match.get("startDateTimeUtc"))
        if kickoff is None:
            raise ValidationError("Missing or invalid match start time")

        player = _require_player(username)

        if player.get_pending_result() is not None:
            raise ConflictError("You already have a pending prediction")

        event_id = str(match["eventId"])
        if Result.find_pending_for_event(event_id) is not None:
            raise ConflictError("This fixture has already been picked")

        result = Result(
            round=player.next_round,
            prediction_type=prediction_type,
            home_name=match["homeName"],
            away_name=match["awayName"],
            start_time_utc=kickoff,
            event_id=event_id,
        )
        player.results.append(result)

        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(
            f"{player.username} picked {prediction_type} for round {result.round}: "
            f"{result.fixture_name}"
        )

        self._notify(format_new_pick(player.username, result))

        players = Player.get_roster()
        if players and all(p.get_pending_result() is not None for p in players):
            self._notify(
                format_all_picks_in(
                    players, fine_amount=current_app.config.get("FINE_AMOUNT", 5)
                )
            )

        return result

    def delete(self, username, round_number):
        """Withdraw a pending pick"""
        if not username or round_number is None:
            raise ValidationError("Missing username or round")

        round_number = _parse_round(round_number)
        player = _require_player(username)

        result = player.get_result_for_round(round_number)
        if result is None:
            raise ValidationError("Invalid round")
        if not result.is_pending:
            raise ValidationError("Only pending predictions can be deleted")

        message = format_deletion(player.username, result)
        player.results.remove(result)
        db.session.delete(result)

        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(f"{player.username} deleted their round {round_number} pick")
        self._notify(message)
        return result

    def set_odds(self, username, round_number, odds):
        """Attach the bookmaker's odds to a pick"""
        if not username or round_number is None or odds in (None, ""):
            raise ValidationError("Missing username, round or odds")

        try:
            odds = float(odds)
        except (TypeError, ValueError):
            raise ValidationError("Odds must be a number")
        if not math.isfinite(odds) or odds <= 0:
            raise ValidationError("Odds must be positive")

        round_number = _parse_round(round_number)
        player = _require_player(username)

        result = player.get_result_for_round(round_number)
        if result is None or not result.has_prediction:
            raise NotFoundError(f"No prediction for round {round_number}")

        result.odds = odds
        db.session.commit()
        return result


def record_bet_status(username, round_number):
    """Record (or overwrite) who placed the bet for a round"""
    if not username or round_number is None:
        raise ValidationError("Missing username or round")

    round_number = _parse_round(round_number)
    _require_player(username)

    status = BetStatus.record(round_number, username)
    db.session.commit()
    logger.info(f"{username} placed the bet for round {round_number}")
    return status


def get_bet_status():
    """Current round, whose turn it is to place the bet, and its status"""
    players = Player.get_roster()
    round_number = current_round(players)
    roster = [player.username for player in players]

    status = BetStatus.get_for_round(round_number) if round_number else None
    return {
        "currentRound": round_number,
        "turn": turn_for_round(round_number, roster) if round_number else None,
        "status": status.to_dict() if status else None,
    }
