import pytest

from pii_anonymizer.detector import EntityDetector
from pii_anonymizer.models import DetectedSpan, Entity


class FakeDetector(EntityDetector):
    """Detects every verbatim occurrence of a fixed set of values."""

    def __init__(self, values):
        self.values = list(values.items())
        self.calls = 0

    def detect(self, text):
        self.calls += 1
        spans = []
        for value, entity_type in self.values:
            start = text.find(value)
            while start != -1:
                spans.append(DetectedSpan(start, start + len(value), entity_type, 0.85))
                start = text.find(value, start + 1)
        return spans


class StaticDetector(EntityDetector):
    """Returns a fixed list of spans regardless of the text."""

    def __init__(self, spans):
        self.spans = spans

    def detect(self, text):
        return list(self.spans)


@pytest.fixture
def fake_detector():
    return FakeDetector


@pytest.fixture
def static_detector():
    return StaticDetector


@pytest.fixture
def bond_text():
    return "My name is James Bond and my email is james.bond@007.com"


@pytest.fixture
def bond_detector():
    return FakeDetector({
        "James Bond": "PERSON",
        "james.bond@007.com": "EMAIL_ADDRESS",
    })


@pytest.fixture
def bond_mapping():
    return (
        Entity(original="James Bond", anonymized="[PERSON]", entity_type="PERSON", start=11, end=21),
        Entity(original="james.bond@007.com", anonymized="[EMAIL_ADDRESS]", entity_type="EMAIL_ADDRESS", start=38, end=56),
    )
