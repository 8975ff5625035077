import logging
from abc import ABC, abstractmethod
from functools import lru_cache

from presidio_analyzer import AnalyzerEngine

from pii_anonymizer.models import DetectedSpan

logger = logging.getLogger(__name__)
logging.getLogger("presidio-analyzer").setLevel(logging.WARNING)

DEFAULT_ENTITIES = (
    "PERSON",
    "EMAIL_ADDRESS",
    "PHONE_NUMBER",
    "US_SSN",
    "CREDIT_CARD",
    "IBAN_CODE",
    "IP_ADDRESS",
)


class EntityDetector(ABC):
    """Contract for anything that finds sensitive spans in text."""

    @abstractmethod
    def detect(self, text):
        """
        Scan text for sensitive spans.

        Args:
            text (str): Raw input text.

        Returns:
            list: DetectedSpan objects. Offsets must lie within ``text``;
                  spans may overlap, the resolver reconciles them.
        """


@lru_cache()
def get_analyzer():
    """
    Create and cache the Presidio analyzer engine.

    Loading the spaCy model behind AnalyzerEngine takes seconds, so one
    engine is shared by every detector in the process. The engine keeps no
    per-call state.
    """
    logger.info("Loading Presidio analyzer engine")
    return AnalyzerEngine()


class PresidioDetector(EntityDetector):
    """
    Detects PII with Microsoft Presidio.

    Supports detection of (by default):
    - Person names
    - Email addresses
    - Phone numbers
    - US Social Security Numbers (SSN)
    - Credit card numbers, IBANs and IP addresses
    """

    def __init__(self, entities=DEFAULT_ENTITIES, language='en', score_threshold=0.35, analyzer=None):
        """
        Args:
            entities (iterable): Presidio entity types to look for.
            language (str): Language code passed to the analyzer.
            score_threshold (float): Results scoring below this are ignored.
            analyzer (AnalyzerEngine): Engine to use instead of the shared one.
        """
        self.entities = list(entities)
        self.language = language
        self.score_threshold = score_threshold
        self._analyzer = analyzer

    @property
    def analyzer(self):
        if self._analyzer is None:
            self._analyzer = get_analyzer()
        return self._analyzer

    def detect(self, text):
        if not text:
            return []

        results = self.analyzer.analyze(
            text=text,
            entities=self.entities,
            language=self.language,
            score_threshold=self.score_threshold,
        )

        return [
            DetectedSpan(
                start=result.start,
                end=result.end,
                entity_type=result.entity_type,
                score=result.score,
            )
            for result in results
        ]
