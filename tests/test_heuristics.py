"""Tests for local summary and tag fallbacks."""

from docsift.indexing.heuristics import fallback_summary, local_summary, top_keywords


def test_local_summary_takes_first_two_sentences() -> None:
    text = "First sentence here. Second one!  Third is dropped? Fourth too."

    assert local_summary(text) == "First sentence here. Second one!"


def test_local_summary_of_empty_text() -> None:
    assert local_summary("") == "No content"
    assert local_summary("   ") == "No content"


def test_local_summary_without_punctuation() -> None:
    assert local_summary("just a fragment") == "just a fragment"


def test_top_keywords_skips_stopwords_and_short_words() -> None:
    text = "The budget and the budget plan. Budget is on it. Plan for growth, an ox."

    keywords = top_keywords(text, 3)

    assert keywords == ["budget", "plan", "growth"]


def test_top_keywords_of_empty_text() -> None:
    assert top_keywords("") == []


def test_fallback_summary_uses_keywords_as_bullets() -> None:
    summary = fallback_summary("Revenue grew. Revenue targets met. Costs fell.", bullets=2)

    assert summary.short == "Revenue grew. Revenue targets met."
    assert summary.bullets == ("revenue", "grew")
