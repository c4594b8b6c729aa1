"""
Tests for the feedback selector.
"""

from tracking_service.models.feedback import FEEDBACK_PHRASES, FeedbackSelector


def test_no_phrase_when_draw_misses(scripted_rng):
    selector = FeedbackSelector(rng=scripted_rng([0.5]))

    assert selector.select([]) is None


def test_draw_hit_returns_chosen_phrase(scripted_rng):
    selector = FeedbackSelector(rng=scripted_rng([0.05], choices=["Great form!"]))

    assert selector.select([]) == "Great form!"


def test_phrase_already_logged_is_not_repeated(scripted_rng):
    selector = FeedbackSelector(rng=scripted_rng([0.0], choices=["Great form!"]))

    assert selector.select(["Great form!"]) is None


def test_selector_does_not_touch_log(scripted_rng):
    log = []
    selector = FeedbackSelector(rng=scripted_rng([0.0], choices=["Full range of motion"]))
    selector.select(log)

    assert log == []


def test_empty_pool_never_selects(scripted_rng):
    selector = FeedbackSelector(rng=scripted_rng([0.0]), phrases=())

    assert selector.select([]) is None


def test_default_pool():
    assert FEEDBACK_PHRASES == (
        "Keep your back straight",
        "Great form!",
        "Slow down the movement",
        "Full range of motion",
    )
