"""
Scoring Engine for BetPool

This module decides win/loss for a single prediction and normalises the raw
match records returned by the sports data API. Streak and fine annotations
live in betpool/utils/emojis.py, leaderboard statistics in
betpool/utils/stats.py.
"""

import re

WIN = "W"
LOSS = "L"
PENDING = "P"

OUTCOMES = (WIN, LOSS, PENDING)

PREDICTION_HOME = "Home"
PREDICTION_AWAY = "Away"
PREDICTION_BTTS = "BTTS"
PREDICTION_OVER = "O2.5"

PREDICTION_TYPES = (
    PREDICTION_HOME,
    PREDICTION_AWAY,
    PREDICTION_BTTS,
    PREDICTION_OVER,
)

PREDICTION_LABELS = {
    PREDICTION_HOME: "Home Win",
    PREDICTION_AWAY: "Away Win",
    PREDICTION_BTTS: "Both Teams To Score",
    PREDICTION_OVER: "Over 2.5 Goals",
}

# Over 2.5 goals means at least three were scored
OVER_GOALS_THRESHOLD = 3

# Full-time fields first, then the generic ones
SCORE_FIELDS = [
    ("homeFullTimeScore", "awayFullTimeScore"),
    ("homeScoreFt", "awayScoreFt"),
    ("homeScore", "awayScore"),
    ("home_score", "away_score"),
    ("home", "away"),
]

EVENT_ID_FIELDS = ("eventId", "id", "event_id")

SCORE_STRING_FIELDS = ("score", "result", "ftScore")

SCORE_PATTERN = re.compile(r"(\d+)\s*[-:]\s*(\d+)", re.ASCII)


def prediction_label(prediction_type):
    """Human readable label for a prediction type"""
    return PREDICTION_LABELS.get(prediction_type, prediction_type)


def decide_outcome(prediction_type, home, away):
    """
    Decide the outcome of a prediction against a final score.

    Returns:
        WIN or LOSS, or None when the score is unknown or the prediction
        type is not recognised
    """
    if home is None or away is None:
        return None

    if prediction_type == PREDICTION_HOME:
        return WIN if home > away else LOSS

    if prediction_type == PREDICTION_AWAY:
        return WIN if away > home else LOSS

    if prediction_type == PREDICTION_BTTS:
        return WIN if home > 0 and away > 0 else LOSS

    if prediction_type == PREDICTION_OVER:
        return WIN if home + away >= OVER_GOALS_THRESHOLD else LOSS

    return None


def parse_score(value):
    """Parse a single score value, returning None when it is not an integer"""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        return int(value) if value.is_integer() else None

    if isinstance(value, str):
        value = value.strip()
        if value.isascii() and value.isdigit():
            return int(value)

    return None


def extract_scores(record):
    """
    Normalise a raw match record into home score, away score and event id.

    Structured score fields win over a combined "H-A" string. Scores are
    None when nothing parses; callers must treat that as not settleable,
    never as 0-0.
    """
    home = None
    away = None
    event_id = None

    if not isinstance(record, dict):
        return {"home": home, "away": away, "event_id": event_id}

    for home_field, away_field in SCORE_FIELDS:
        home_value = parse_score(record.get(home_field))
        away_value = parse_score(record.get(away_field))
        if home_value is not None and away_value is not None:
            home, away = home_value, away_value
            break

    if home is None or away is None:
        for field in SCORE_STRING_FIELDS:
            value = record.get(field)
            if not isinstance(value, str):
                continue
            match = SCORE_PATTERN.search(value)
            if match:
                home, away = int(match.group(1)), int(match.group(2))
                break

    for field in EVENT_ID_FIELDS:
        value = record.get(field)
        if value not in (None, ""):
            event_id = str(value)
            break

    return {"home": home, "away": away, "event_id": event_id}


def turn_for_round(round_number, roster):
    """Whose turn it is to place the real bet for a 1-based round number"""
    if not roster or not round_number or round_number < 1:
        return None
    return roster[(round_number - 1) % len(roster)]
