"""
Import of the legacy picks file

The old format is a JSON list of players, each with an ordered ``results``
list. Rounds were implied by position, so the entry at index ``i`` becomes
round ``i + 1``.
"""

import json
import logging

from betpool import db
from betpool.models import Player, Result
from betpool.utils.scoring import OUTCOMES, PENDING, parse_score
from betpool.utils.timezone_utils import parse_utc_datetime

logger = logging.getLogger(__name__)


def _result_from_legacy(round_number, entry):
    outcome = entry.get("outcome", PENDING)
    if outcome not in OUTCOMES:
        raise ValueError(f"Unknown outcome {outcome!r} in round {round_number}")

    result = Result(round=round_number, outcome=outcome, emoji=entry.get("emoji") or None)

    prediction = entry.get("prediction")
    if not isinstance(prediction, dict):
        return result

    match = prediction.get("match") or {}
    result.prediction_type = prediction.get("type")
    result.home_name = match.get("homeName")
    result.away_name = match.get("awayName")
    result.start_time_utc = parse_utc_datetime(match.get("startDateTimeUtc"))
    if match.get("eventId") not in (None, ""):
        result.event_id = str(match["eventId"])

    final_score = prediction.get("finalScore") or {}
    result.final_home_score = parse_score(final_score.get("home"))
    result.final_away_score = parse_score(final_score.get("away"))

    odds = prediction.get("odds")
    if odds not in (None, ""):
        result.odds = float(odds)

    return result


def import_players(data, replace=False):
    """
    Load legacy player records.

    Args:
        data: parsed legacy JSON (list of ``{username, results}``)
        replace: overwrite the history of players that already exist

    Returns:
        dict with ``created``, ``updated``, ``skipped`` and ``results`` counts
    """
    if not isinstance(data, list):
        raise ValueError("Legacy picks file must contain a list of players")

    stats = {"created": 0, "updated": 0, "skipped": 0, "results": 0}

    try:
        for entry in data:
            username = entry.get("username")
            if not username:
                raise ValueError("Player entry without a username")

            player = Player.get_by_username(username)
            if player is None:
                player = Player.create_player(username)
                stats["created"] += 1
            elif replace:
                player.results.clear()
                # Flush the deletes before reusing the same round numbers
                db.session.flush()
                stats["updated"] += 1
            else:
                logger.info(f"Skipping existing player {username}")
                stats["skipped"] += 1
                continue

            for index, legacy in enumerate(entry.get("results") or []):
                player.results.append(_result_from_legacy(index + 1, legacy))
                stats["results"] += 1

        db.session.commit()

    except Exception:
        db.session.rollback()
        raise

    logger.info(
        f"Legacy import: {stats['created']} created, {stats['updated']} updated, "
        f"{stats['skipped']} skipped, {stats['results']} results"
    )
    return stats


def import_file(path, replace=False):
    with open(path, encoding="utf-8") as f:
        return import_players(json.load(f), replace=replace)
