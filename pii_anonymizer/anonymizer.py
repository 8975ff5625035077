import logging
from collections import Counter

from pii_anonymizer.exceptions import (
    AnonymizationError,
    DetectorContractError,
    InputValidationError,
)
from pii_anonymizer.mapper import TokenMapper
from pii_anonymizer.models import AnonymizationResult
from pii_anonymizer.resolver import SpanResolver

logger = logging.getLogger(__name__)

DEFAULT_MAX_TEXT_LENGTH = 2000


def validate_text(text, max_length=DEFAULT_MAX_TEXT_LENGTH):
    """Raise InputValidationError unless ``text`` is a string within ``max_length``."""
    if not isinstance(text, str):
        raise InputValidationError(f"Text must be a string, got {type(text).__name__}")
    if max_length is not None and len(text) > max_length:
        raise InputValidationError(f"Text cannot exceed {max_length} characters")


class Anonymizer:
    """
    Replaces sensitive spans in text with placeholder tokens.

    Detection is delegated to an EntityDetector; overlapping detections are
    reconciled by a SpanResolver and tokens are handed out by a TokenMapper.
    The mapping needed to undo the substitution is returned with every call
    and never kept on the instance, so one Anonymizer can serve concurrent
    requests.

    Example:
        >>> anonymizer = Anonymizer(PresidioDetector())
        >>> result = anonymizer.anonymize(
        ...     "My name is James Bond and my email is james.bond@007.com")
        >>> result.anonymized_text
        'My name is [PERSON] and my email is [EMAIL_ADDRESS]'
        >>> [e.original for e in result.mapping]
        ['James Bond', 'james.bond@007.com']
    """

    def __init__(self, detector, resolver=None, mapper=None, max_text_length=DEFAULT_MAX_TEXT_LENGTH):
        """
        Args:
            detector (EntityDetector): Source of candidate spans.
            resolver (SpanResolver): Overlap resolution policy (default ordering if None).
            mapper (TokenMapper): Token assignment policy (default formats if None).
            max_text_length (int | None): Longest accepted input; None disables the check.
        """
        self.detector = detector
        self.resolver = resolver or SpanResolver()
        self.mapper = mapper or TokenMapper()
        self.max_text_length = max_text_length

    def anonymize(self, text):
        """
        Anonymize a complete piece of text.

        Args:
            text (str): Input text potentially containing PII.

        Returns:
            AnonymizationResult: Anonymized text plus the entity mapping.

        Raises:
            InputValidationError: If text is not a string or is too long.
            DetectorContractError: If the detector reports invalid spans.
            AnonymizationError: If the detector itself fails.
        """
        validate_text(text, self.max_text_length)
        if not text:
            return AnonymizationResult(anonymized_text=text)

        try:
            candidates = self.detector.detect(text)
        except DetectorContractError:
            raise
        except Exception as exc:
            logger.error("Entity detection failed: %s", exc)
            raise AnonymizationError(f"Entity detection failed: {exc}") from exc

        spans = self.resolver.resolve(candidates, len(text))
        if not spans:
            return AnonymizationResult(anonymized_text=text)

        mapping = self.mapper.assign(text, spans)
        anonymized_text = self._rebuild(text, mapping)

        counts = Counter(entity.entity_type for entity in mapping)
        logger.info(
            "Anonymized %d entities (%s)",
            len(mapping), ", ".join(f"{k}={v}" for k, v in sorted(counts.items())),
        )
        return AnonymizationResult(anonymized_text=anonymized_text, mapping=mapping)

    @staticmethod
    def _rebuild(text, mapping):
        # Walk the original left to right; offsets never shift.
        parts = []
        last_end = 0
        for entity in mapping:
            parts.append(text[last_end:entity.start])
            parts.append(entity.anonymized)
            last_end = entity.end
        parts.append(text[last_end:])
        return "".join(parts)
