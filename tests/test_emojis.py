from types import SimpleNamespace

from betpool.utils.emojis import (
    ANGER,
    FACEPALM,
    FIRE,
    LOUD_LAUGH,
    NAUSEATED,
    SLEEPY,
    annotate_results,
    count_fines,
    detect_special_conditions,
    special_prefix,
    split_glyphs,
    streak_glyph,
)


def _history(outcomes, emojis=None):
    emojis = emojis or [None] * len(outcomes)
    return [
        SimpleNamespace(round=index + 1, outcome=outcome, emoji=emoji)
        for index, (outcome, emoji) in enumerate(zip(outcomes, emojis))
    ]


def _settled(outcome, prediction_type, home, away):
    return SimpleNamespace(
        outcome=outcome,
        prediction_type=prediction_type,
        final_home_score=home,
        final_away_score=away,
    )


def test_streak_glyph_repeats_every_three():
    assert streak_glyph("W", 2) == ""
    assert streak_glyph("W", 3) == FIRE
    assert streak_glyph("W", 5) == FIRE
    assert streak_glyph("W", 6) == FIRE * 2
    assert streak_glyph("L", 3) == ANGER
    assert streak_glyph("P", 9) == ""


def test_three_wins_marks_only_the_third():
    results = annotate_results(_history(["W", "W", "W"]))

    assert [r.emoji for r in results] == [None, None, FIRE]


def test_pending_clears_emoji_and_breaks_streak():
    results = annotate_results(_history(["L", "L", "P", "L"], [None, None, FIRE, None]))

    assert [r.emoji for r in results] == [None, None, None, None]


def test_loss_run_of_six():
    results = annotate_results(_history(["W"] + ["L"] * 6))

    assert results[3].emoji == ANGER
    assert results[6].emoji == ANGER * 2


def test_stored_special_survives_recalculation():
    results = _history(["L", "L", "L"], [None, SLEEPY, FACEPALM])

    annotate_results(results)

    assert results[1].emoji == SLEEPY
    assert results[2].emoji == FACEPALM + ANGER


def test_override_replaces_and_empty_override_clears():
    results = _history(["L", "W"], [NAUSEATED, None])

    annotate_results(results, {1: "", 2: LOUD_LAUGH})

    assert results[0].emoji is None
    assert results[1].emoji == LOUD_LAUGH


def test_annotate_is_idempotent():
    results = _history(
        ["W", "W", "W", "L", "L", "L", "W"],
        [None, None, None, SLEEPY, None, None, None],
    )
    overrides = {5: NAUSEATED}

    first = [r.emoji for r in annotate_results(results, overrides)]
    second = [r.emoji for r in annotate_results(results, overrides)]

    assert first == second
    assert first[3] == SLEEPY
    assert first[5] == ANGER


def test_split_glyphs_skips_unknown_characters():
    assert split_glyphs("x" + FIRE + "🎉" + SLEEPY) == [FIRE, SLEEPY]
    assert split_glyphs(None) == []


def test_facepalm_without_variation_selector_is_recognised():
    assert split_glyphs("\U0001F926\u200d\u2642") == [FACEPALM]
    assert count_fines("\U0001F926") == 1


def test_count_fines_counts_each_occurrence():
    assert count_fines(ANGER * 2) == 2
    assert count_fines(SLEEPY + ANGER) == 2
    assert count_fines(FIRE * 3) == 0
    assert count_fines("") == 0


def test_special_prefix_drops_streak_glyphs():
    assert special_prefix(NAUSEATED + ANGER) == NAUSEATED
    assert special_prefix(FIRE) == ""


def test_goalless_btts_loss_is_sleepy():
    specials = detect_special_conditions(
        [
            ("a", _settled("L", "BTTS", 0, 0)),
            ("b", _settled("L", "O2.5", 0, 0)),
            ("c", _settled("W", "Home", 1, 0)),
        ]
    )

    assert specials == {"a": SLEEPY, "b": SLEEPY}


def test_heavy_defeat_is_loud_laugh():
    specials = detect_special_conditions(
        [
            ("a", _settled("L", "Home", 0, 3)),
            ("b", _settled("L", "Away", 2, 0)),
        ]
    )

    assert specials == {"a": LOUD_LAUGH}


def test_only_loser_is_nauseated():
    specials = detect_special_conditions(
        [
            ("a", _settled("W", "Home", 2, 1)),
            ("b", _settled("L", "BTTS", 1, 0)),
            ("c", _settled("W", "O2.5", 2, 2)),
        ]
    )

    assert specials == {"b": NAUSEATED}


def test_sleepy_beats_only_loser():
    specials = detect_special_conditions(
        [
            ("a", _settled("W", "Home", 2, 1)),
            ("b", _settled("L", "BTTS", 0, 0)),
        ]
    )

    assert specials == {"b": SLEEPY}


def test_missing_players_and_pending_are_ignored():
    specials = detect_special_conditions(
        [
            ("a", None),
            ("b", _settled("P", "Home", None, None)),
            ("c", _settled("L", "Home", None, None)),
        ]
    )

    assert specials == {"c": NAUSEATED}
