"""
Streak and fine annotations for BetPool results

Every settled result can carry a decorative emoji string made of an optional
special glyph (a fine-worthy loss) followed by streak glyphs. The string is
derived data: it is recomputed over a player's whole history on every
settlement pass.
"""

from betpool.utils.scoring import (
    LOSS,
    PENDING,
    PREDICTION_AWAY,
    PREDICTION_BTTS,
    PREDICTION_HOME,
    PREDICTION_OVER,
    WIN,
)

FIRE = "🔥"
ANGER = "😡"
SLEEPY = "😴"
LOUD_LAUGH = "🤣"
NAUSEATED = "🤢"
FACEPALM = "\U0001F926\u200d\u2642\ufe0f"

STREAK_GLYPHS = {WIN: FIRE, LOSS: ANGER}

# One streak glyph per this many consecutive results
STREAK_STEP = 3

# Big-margin misses on Home/Away picks
BIG_MARGIN = 3

SPECIAL_EMOJIS = frozenset([SLEEPY, LOUD_LAUGH, NAUSEATED, FACEPALM])

# Specials the settlement pass derives itself; FACEPALM is only set by hand
DERIVED_SPECIAL_EMOJIS = frozenset([SLEEPY, LOUD_LAUGH, NAUSEATED])

FINE_EMOJIS = frozenset([SLEEPY, NAUSEATED, LOUD_LAUGH, FACEPALM, ANGER])

# Spellings of known glyphs found in stored data, mapped to the canonical glyph
GLYPH_ALIASES = {
    FIRE: FIRE,
    ANGER: ANGER,
    SLEEPY: SLEEPY,
    LOUD_LAUGH: LOUD_LAUGH,
    NAUSEATED: NAUSEATED,
    FACEPALM: FACEPALM,
    "\U0001F926\u200d\u2642": FACEPALM,
    "\U0001F926": FACEPALM,
}

_ALIASES_LONGEST_FIRST = sorted(GLYPH_ALIASES, key=len, reverse=True)


def split_glyphs(emoji):
    """
    Split an emoji string into the known glyphs it contains.

    Unknown characters are skipped, so a stray glyph never counts as a fine.
    """
    glyphs = []
    if not emoji:
        return glyphs

    position = 0
    while position < len(emoji):
        for alias in _ALIASES_LONGEST_FIRST:
            if emoji.startswith(alias, position):
                glyphs.append(GLYPH_ALIASES[alias])
                position += len(alias)
                break
        else:
            position += 1

    return glyphs


def count_fines(emoji):
    """Number of fine-eligible glyph occurrences in an emoji string"""
    return sum(1 for glyph in split_glyphs(emoji) if glyph in FINE_EMOJIS)


def special_prefix(emoji):
    """The special (non-streak) part of a stored emoji string"""
    return "".join(glyph for glyph in split_glyphs(emoji) if glyph in SPECIAL_EMOJIS)


def streak_glyph(outcome, run_length):
    """Streak glyphs for a run: one per STREAK_STEP consecutive results"""
    base = STREAK_GLYPHS.get(outcome)
    if not base:
        return ""
    return base * (run_length // STREAK_STEP)


def annotate_results(results, overrides=None):
    """
    Recompute the emoji of every result in one player's history, in place.

    Args:
        results: the player's results ordered by round; each needs
            ``round``, ``outcome`` and ``emoji`` attributes
        overrides: optional {round: special emoji}; an empty string clears
            a previously derived special for that round

    A pending result clears the emoji and breaks the running streak. Special
    glyphs already stored on a result survive unless overridden, so running
    this twice with the same overrides gives the same output.
    """
    overrides = overrides or {}
    run_outcome = None
    run_length = 0

    for result in results:
        if result.outcome == PENDING:
            result.emoji = None
            run_outcome = None
            run_length = 0
            continue

        if result.outcome == run_outcome:
            run_length += 1
        else:
            run_outcome = result.outcome
            run_length = 1

        if result.round in overrides:
            special = overrides[result.round] or ""
        else:
            special = special_prefix(result.emoji)

        combined = special + streak_glyph(result.outcome, run_length)
        result.emoji = combined or None

    return results


def detect_special_conditions(round_entries):
    """
    Find fine-worthy losses among every player's result for one round.

    Args:
        round_entries: iterable of (key, result) pairs, one per player,
            all for the same round. Results expose ``outcome``,
            ``prediction_type``, ``final_home_score`` and ``final_away_score``.

    Returns:
        {key: special emoji}. A 0-0 BTTS/O2.5 miss gets SLEEPY, a Home/Away
        pick beaten by BIG_MARGIN or more gets LOUD_LAUGH, and the sole loser
        of the round gets NAUSEATED unless one of those was already assigned.
    """
    specials = {}
    losers = []

    for key, result in round_entries:
        if result is None or result.outcome != LOSS:
            continue

        losers.append(key)

        home = result.final_home_score
        away = result.final_away_score
        if home is None or away is None:
            continue

        if result.prediction_type in (PREDICTION_BTTS, PREDICTION_OVER):
            if home == 0 and away == 0:
                specials[key] = SLEEPY
                continue

        if result.prediction_type in (PREDICTION_HOME, PREDICTION_AWAY):
            if abs(home - away) >= BIG_MARGIN:
                specials[key] = LOUD_LAUGH

    if len(losers) == 1 and losers[0] not in specials:
        specials[losers[0]] = NAUSEATED

    return specials
