"""Lexicon scorer: tokenizer, accumulator, aggregation and alert rule."""

from __future__ import annotations

import itertools
from dataclasses import FrozenInstanceError
from datetime import datetime, UTC

import pytest

from services.lexicon import INTENSIFIERS, LEXICON
from services.sentiment import (
    SentimentResult,
    SentimentService,
    accumulate_scores,
    confidence_from_compound,
    label_from_compound,
    rating_from_compound,
    should_send_alert,
    tokenize,
)

SAMPLES = [
    "This is amazing!",
    "very bad service",
    "okay",
    "good but bad",
    "I really LOVE this product, it is absolutely PERFECT!!!",
    "The delivery was not good and the support was useless. Never again!",
    "Hello there!",
    "!!!???...",
    "12345 67890",
    "Das Essen war schrecklich 😡",
    "hate " * 200,
    "slightly disappointed, but the staff were nice and the room was fine",
]


@pytest.fixture
def service() -> SentimentService:
    counter = itertools.count(1)
    return SentimentService(
        clock=lambda: datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC),
        id_factory=lambda: f"id-{next(counter)}",
    )


def test_tables_are_read_only() -> None:
    with pytest.raises(TypeError):
        LEXICON["amazing"] = 0.0  # type: ignore[index]
    with pytest.raises(TypeError):
        INTENSIFIERS["very"] = 2.0  # type: ignore[index]


def test_tokenize_drops_symbols_and_splits_on_punctuation() -> None:
    tokens = list(tokenize("Hello, WORLD! It's great-ish... 😀"))

    assert tokens == ["hello", "world", "it", "s", "great", "ish"]


def test_tokenize_empty_text_yields_nothing() -> None:
    assert list(tokenize("")) == []
    assert list(tokenize("   \t\n")) == []
    assert list(tokenize("?!.,")) == []


def test_tokenize_keeps_unicode_letters_and_digits() -> None:
    assert list(tokenize("Café 42 naïve_idea")) == ["café", "42", "naïve_idea"]


def test_intensifier_scales_next_word() -> None:
    contributions = accumulate_scores(["very", "bad", "service"], "very bad service")

    assert contributions == [pytest.approx(-3.3)]


def test_consecutive_intensifiers_keep_only_the_last() -> None:
    assert accumulate_scores(["extremely", "very", "good"], "extremely very good") == [pytest.approx(3.0)]
    assert accumulate_scores(["very", "extremely", "good"], "very extremely good") == [pytest.approx(3.6)]


def test_intensifier_does_not_cross_a_neutral_word() -> None:
    contributions = accumulate_scores(["very", "service", "bad"], "very service bad")

    assert contributions == [pytest.approx(-2.2)]


def test_trailing_intensifier_contributes_nothing() -> None:
    assert accumulate_scores(["good", "very"], "good very") == [pytest.approx(2.0)]
    assert accumulate_scores(["not"], "not") == []


def test_negation_flips_polarity() -> None:
    assert accumulate_scores(["not", "good"], "not good") == [pytest.approx(-2.0)]


def test_uppercase_word_gets_emphasis_boost() -> None:
    assert accumulate_scores(["this", "is", "good"], "This is GOOD") == [pytest.approx(2.6)]
    assert accumulate_scores(["sad"], "SAD") == [pytest.approx(-2.73)]


def test_short_words_never_get_emphasis() -> None:
    contributions = accumulate_scores(["ok"], "OK", lexicon={"ok": 1.0})

    assert contributions == [pytest.approx(1.0)]


def test_zero_scored_lexicon_words_are_skipped() -> None:
    assert accumulate_scores(["maybe", "normal"], "maybe normal") == []


def test_rating_mapping() -> None:
    assert rating_from_compound(-1.0) == 1
    assert rating_from_compound(-0.5) == 2
    assert rating_from_compound(0.0) == 3
    assert rating_from_compound(0.25) == 4
    assert rating_from_compound(1.0) == 5


def test_rating_is_monotonic() -> None:
    ratings = [rating_from_compound(step / 100) for step in range(-100, 101)]

    assert ratings == sorted(ratings)


def test_label_deadband() -> None:
    assert label_from_compound(0.05) == "positive"
    assert label_from_compound(0.049) == "neutral"
    assert label_from_compound(0.0) == "neutral"
    assert label_from_compound(-0.049) == "neutral"
    assert label_from_compound(-0.05) == "negative"


def test_confidence_bonuses() -> None:
    assert confidence_from_compound(0.0, 0) == 0.0
    assert confidence_from_compound(0.4, 10) == pytest.approx(0.7)
    assert confidence_from_compound(0.6, 10) == pytest.approx(1.0)
    assert confidence_from_compound(0.0, 25) == pytest.approx(0.6)
    assert confidence_from_compound(1.0, 30) == 1.0


@pytest.mark.parametrize("text", ["", "   ", "\n\t  "])
def test_blank_text_returns_canonical_neutral_result(service: SentimentService, text: str) -> None:
    result = service.analyze_sentiment(text)

    assert result.text == ""
    assert (result.positive, result.negative, result.neutral) == (0.0, 0.0, 1.0)
    assert result.compound == 0.0
    assert result.rating == 3
    assert result.overall_sentiment == "neutral"
    assert result.confidence == 0.0
    assert result.id == "id-1"
    assert result.timestamp == "2024-01-02T03:04:05.000Z"


def test_amazing_example(service: SentimentService) -> None:
    result = service.analyze_sentiment("This is amazing!")

    assert result.text == "This is amazing!"
    assert result.overall_sentiment == "positive"
    assert result.rating in {4, 5}
    assert result.compound == 0.71
    assert result.confidence == 0.71
    assert (result.positive, result.negative, result.neutral) == (1.0, 0.0, 0.0)


def test_very_bad_service_example(service: SentimentService) -> None:
    result = service.analyze_sentiment("very bad service")

    assert result.overall_sentiment == "negative"
    assert result.compound == -0.67
    assert result.rating == 2
    assert result.negative == 1.0
    assert should_send_alert(result) is True


def test_okay_sits_on_the_deadband_boundary(service: SentimentService) -> None:
    result = service.analyze_sentiment("okay")

    assert result.compound == 0.05
    assert result.overall_sentiment == "positive"
    assert result.rating == 3


def test_mixed_text_falls_in_deadband(service: SentimentService) -> None:
    result = service.analyze_sentiment("good but bad")

    assert result.overall_sentiment == "neutral"
    assert result.negative == 0.52
    assert result.positive == 0.48
    assert result.neutral == 0.0


def test_exclamation_without_sentiment_pushes_negative(service: SentimentService) -> None:
    result = service.analyze_sentiment("Hello there!")

    assert result.compound == -0.07
    assert result.overall_sentiment == "negative"
    assert (result.positive, result.negative, result.neutral) == (0.0, 0.0, 1.0)


def test_punctuation_only_text_has_no_tokens(service: SentimentService) -> None:
    result = service.analyze_sentiment("!!!")

    assert result.text == "!!!"
    assert result.compound == 0.0
    assert result.overall_sentiment == "neutral"
    assert result.confidence == 0.0


def test_compound_is_clamped(service: SentimentService) -> None:
    result = service.analyze_sentiment("ABSOLUTELY PERFECT AMAZING WONDERFUL")

    assert result.compound == 1.0
    assert result.rating == 5
    assert result.confidence == 0.9


def test_positive_share_takes_the_rounding_remainder() -> None:
    positive, negative, neutral = SentimentService._percentages(1.0, 1.0, 2)

    assert (negative, neutral) == (0.33, 0.33)
    assert positive == 0.34
    assert positive + negative + neutral == pytest.approx(1.0)


@pytest.mark.parametrize("text", SAMPLES)
def test_result_invariants(service: SentimentService, text: str) -> None:
    result = service.analyze_sentiment(text)

    assert round(result.positive + result.negative + result.neutral, 2) == 1.00
    for share in (result.positive, result.negative, result.neutral):
        assert 0.0 <= share <= 1.0
    assert -1.0 <= result.compound <= 1.0
    assert 0.0 <= result.confidence <= 1.0
    assert 1 <= result.rating <= 5
    assert isinstance(result.rating, int)
    if result.compound >= 0.05:
        assert result.overall_sentiment == "positive"
    elif result.compound <= -0.05:
        assert result.overall_sentiment == "negative"
    else:
        assert result.overall_sentiment == "neutral"


def test_scoring_is_idempotent() -> None:
    service = SentimentService()
    text = "The room was REALLY nice but the food was awful!"

    first = service.analyze_sentiment(text)
    second = service.analyze_sentiment(text)

    fields = ("positive", "negative", "neutral", "compound", "rating", "overall_sentiment", "confidence")
    assert [getattr(first, name) for name in fields] == [getattr(second, name) for name in fields]
    assert first.id != second.id


def test_result_is_immutable_and_language_tagging_copies(service: SentimentService) -> None:
    result = service.analyze_sentiment("great")

    with pytest.raises(FrozenInstanceError):
        result.rating = 1  # type: ignore[misc]

    tagged = result.with_language("es")
    assert tagged.language == "es"
    assert result.language is None
    assert tagged.id == result.id
    assert tagged.to_dict()["language"] == "es"


def _result(negative: float, rating: int) -> SentimentResult:
    return SentimentResult(
        text="x",
        positive=round(1 - negative, 2),
        negative=negative,
        neutral=0.0,
        compound=0.0,
        rating=rating,
        overall_sentiment="neutral",
        confidence=0.5,
        timestamp="2024-01-01T00:00:00.000Z",
        id="r",
    )


def test_alert_predicate() -> None:
    assert should_send_alert(_result(negative=0.70, rating=3)) is True
    assert should_send_alert(_result(negative=0.69, rating=2)) is False
    assert should_send_alert(_result(negative=0.0, rating=1)) is True
    assert should_send_alert(_result(negative=0.2, rating=5)) is False
