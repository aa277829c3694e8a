from recommender.composer import Composer


def test_long_input_is_truncated_to_limit():
    composer = Composer()
    text = "x" * 150 + "y" * 100

    stored = composer.set(text)

    assert len(stored) == 200
    assert stored == text[:200]
    assert composer.counter() == "200/200 characters"


def test_short_input_is_kept():
    composer = Composer()

    composer.set("Show me Electronics")

    assert composer.value == "Show me Electronics"
    assert composer.counter() == "19/200 characters"


def test_clear_and_none_input():
    composer = Composer(limit=10)
    composer.set("abc")

    composer.clear()
    assert composer.value == ""
    assert composer.set(None) == ""
