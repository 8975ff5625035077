import random

import pytest

from pii_anonymizer.exceptions import DetectorContractError
from pii_anonymizer.models import DetectedSpan
from pii_anonymizer.resolver import SpanResolver


def test_resolve_prefers_longer_span():
    """Test that the longer of two overlapping spans is kept."""
    resolver = SpanResolver()
    spans = [
        DetectedSpan(5, 12, "URL"),
        DetectedSpan(0, 18, "EMAIL_ADDRESS"),
    ]

    resolved = resolver.resolve(spans, text_length=18)

    assert resolved == [DetectedSpan(0, 18, "EMAIL_ADDRESS")]


def test_resolve_equal_length_prefers_earlier_start():
    """Test that on equal length the span starting first wins."""
    resolver = SpanResolver()
    spans = [
        DetectedSpan(3, 8, "PERSON"),
        DetectedSpan(0, 5, "PERSON"),
    ]

    resolved = resolver.resolve(spans, text_length=10)

    assert resolved == [DetectedSpan(0, 5, "PERSON")]


def test_resolve_identical_range_uses_type_priority():
    """Test that identical ranges are decided by the type priority order."""
    spans = [
        DetectedSpan(0, 10, "PERSON"),
        DetectedSpan(0, 10, "PHONE_NUMBER"),
    ]

    default = SpanResolver().resolve(spans, text_length=10)
    custom = SpanResolver(type_priority=["PERSON"]).resolve(spans, text_length=10)

    assert [s.entity_type for s in default] == ["PHONE_NUMBER"]
    assert [s.entity_type for s in custom] == ["PERSON"]


def test_resolve_unlisted_types_rank_alphabetically():
    """Test that types missing from the priority list fall back to name order."""
    spans = [
        DetectedSpan(0, 4, "ZIP_CODE"),
        DetectedSpan(0, 4, "BADGE_ID"),
    ]

    resolved = SpanResolver(type_priority=[]).resolve(spans, text_length=4)

    assert [s.entity_type for s in resolved] == ["BADGE_ID"]


def test_resolve_collapses_duplicates():
    """Test that the same span reported twice is kept once."""
    spans = [DetectedSpan(2, 6, "PERSON"), DetectedSpan(2, 6, "PERSON")]

    resolved = SpanResolver().resolve(spans, text_length=8)

    assert resolved == [DetectedSpan(2, 6, "PERSON")]


def test_resolve_keeps_adjacent_spans():
    """Test that half-open spans touching at a boundary do not overlap."""
    spans = [DetectedSpan(3, 6, "PERSON"), DetectedSpan(0, 3, "PERSON")]

    resolved = SpanResolver().resolve(spans, text_length=6)

    assert resolved == [DetectedSpan(0, 3, "PERSON"), DetectedSpan(3, 6, "PERSON")]


def test_resolve_drops_zero_length_spans():
    """Test that empty spans are rejected."""
    spans = [DetectedSpan(4, 4, "PERSON"), DetectedSpan(0, 2, "PERSON")]

    resolved = SpanResolver().resolve(spans, text_length=5)

    assert resolved == [DetectedSpan(0, 2, "PERSON")]


def test_resolve_empty_input():
    """Test that no candidates resolve to no spans."""
    assert SpanResolver().resolve([], text_length=0) == []


@pytest.mark.parametrize("span", [
    DetectedSpan(0, 11, "PERSON"),
    DetectedSpan(-1, 3, "PERSON"),
    DetectedSpan(6, 4, "PERSON"),
])
def test_resolve_rejects_invalid_spans(span):
    """Test that out-of-bounds and inverted spans violate the detector contract."""
    with pytest.raises(DetectorContractError) as exc_info:
        SpanResolver().resolve([span], text_length=10)

    assert "PERSON" in str(exc_info.value)


def test_resolve_output_never_overlaps():
    """Test the non-overlap and ordering guarantees on noisy detector output."""
    rng = random.Random(1234)
    types = ["PERSON", "EMAIL_ADDRESS", "PHONE_NUMBER", "URL"]
    spans = []
    for _ in range(200):
        start = rng.randrange(0, 95)
        spans.append(DetectedSpan(start, rng.randrange(start, 100), rng.choice(types)))

    resolved = SpanResolver().resolve(spans, text_length=100)

    assert resolved
    for previous, current in zip(resolved, resolved[1:]):
        assert previous.end <= current.start


def test_resolve_is_order_independent():
    """Test that shuffling detector output does not change the result."""
    spans = [
        DetectedSpan(0, 10, "PERSON"),
        DetectedSpan(0, 10, "LOCATION"),
        DetectedSpan(5, 15, "PHONE_NUMBER"),
        DetectedSpan(20, 30, "EMAIL_ADDRESS"),
    ]
    shuffled = list(reversed(spans))

    resolver = SpanResolver()
    assert resolver.resolve(spans, 30) == resolver.resolve(shuffled, 30)


@pytest.mark.parametrize("span", [
    DetectedSpan(0, None, "PERSON"),
    DetectedSpan(None, 4, "PERSON"),
    DetectedSpan(0.5, 4, "PERSON"),
    DetectedSpan(0, 4.0, "PERSON"),
    DetectedSpan(False, 4, "PERSON"),
    DetectedSpan(0, 4, ""),
    DetectedSpan(0, 4, None),
])
def test_resolve_rejects_malformed_spans(span, caplog):
    """Test that spans with non-integer offsets or no type violate the detector contract."""
    with pytest.raises(DetectorContractError):
        SpanResolver().resolve([span], text_length=10)

    assert "malformed span" in caplog.text


def test_resolve_accepts_span_ending_at_text_end():
    """Test that end == text_length is in bounds."""
    resolved = SpanResolver().resolve([DetectedSpan(6, 10, "PERSON")], text_length=10)

    assert resolved == [DetectedSpan(6, 10, "PERSON")]


def test_resolve_out_of_bounds_message_names_inclusive_end():
    """Test that the error message states the real upper bound."""
    with pytest.raises(DetectorContractError) as exc_info:
        SpanResolver().resolve([DetectedSpan(0, 11, "PERSON")], text_length=10)

    assert "end <= 10" in str(exc_info.value)
