"""
Leaderboard statistics for BetPool players

Pure functions over one player's results; nothing here touches the database.
"""

from betpool.utils.emojis import count_fines
from betpool.utils.scoring import (
    LOSS,
    PENDING,
    PREDICTION_AWAY,
    PREDICTION_BTTS,
    PREDICTION_HOME,
    PREDICTION_OVER,
    WIN,
)

DEFAULT_FINE_AMOUNT = 5

FORM_LENGTH = 5

NO_FORM = "-"


def _percentage(count, total):
    """Percentage with one decimal place as a string, "0.0" when total is 0"""
    if not total:
        return "0.0"
    return f"{count / total * 100:.1f}"


def _longest_streaks(outcomes):
    """Longest consecutive run of wins and of losses"""
    longest_win_streak = 0
    longest_loss_streak = 0
    current_win_streak = 0
    current_loss_streak = 0

    for outcome in outcomes:
        if outcome == WIN:
            current_win_streak += 1
            current_loss_streak = 0
            longest_win_streak = max(longest_win_streak, current_win_streak)
        elif outcome == LOSS:
            current_loss_streak += 1
            current_win_streak = 0
            longest_loss_streak = max(longest_loss_streak, current_loss_streak)

    return longest_win_streak, longest_loss_streak


def _current_streak(outcomes):
    """Trailing run length, negative when the run is of losses"""
    if not outcomes:
        return 0

    last_outcome = outcomes[-1]
    streak = 0
    for outcome in reversed(outcomes):
        if outcome != last_outcome:
            break
        streak += 1

    return -streak if last_outcome == LOSS else streak


def calculate_player_stats(username, results, fine_amount=DEFAULT_FINE_AMOUNT):
    """
    Build one leaderboard row for a player.

    Args:
        username: the player's username
        results: the player's results ordered by round; each exposes
            ``outcome``, ``emoji`` and ``prediction_type``
        fine_amount: currency units charged per fine glyph

    Returns:
        dict with totals, win percentage, pick-type percentages, fines,
        longest/current streaks and recent form
    """
    settled = [r for r in results if r.outcome != PENDING]
    outcomes = [r.outcome for r in settled]

    total = len(settled)
    wins = sum(1 for outcome in outcomes if outcome == WIN)
    losses = sum(1 for outcome in outcomes if outcome == LOSS)

    # Results imported without a prediction do not count towards pick types
    with_prediction = [r for r in settled if r.prediction_type]
    picks_total = len(with_prediction)

    def pick_share(prediction_type):
        count = sum(1 for r in with_prediction if r.prediction_type == prediction_type)
        return _percentage(count, picks_total)

    fine_count = sum(count_fines(r.emoji) for r in results)

    longest_win_streak, longest_loss_streak = _longest_streaks(outcomes)

    form = "".join(outcomes[-FORM_LENGTH:]) or NO_FORM

    return {
        "user": username,
        "total": total,
        "wins": wins,
        "losses": losses,
        "winPct": _percentage(wins, total),
        "form": form,
        "fineCount": fine_count,
        "fineTotal": fine_count * fine_amount,
        "currentStreak": _current_streak(outcomes),
        "longestWinStreak": longest_win_streak,
        "longestLossStreak": longest_loss_streak,
        "bttsPct": pick_share(PREDICTION_BTTS),
        "homeWinPct": pick_share(PREDICTION_HOME),
        "awayWinPct": pick_share(PREDICTION_AWAY),
        "overPct": pick_share(PREDICTION_OVER),
    }


def sort_leaderboard(rows):
    """Order leaderboard rows by win percentage, best first"""
    return sorted(rows, key=lambda row: float(row["winPct"]), reverse=True)
