import logging

from pii_anonymizer.exceptions import DetectorContractError

logger = logging.getLogger(__name__)

# Structured identifiers first: their detectors are pattern based and precise.
DEFAULT_TYPE_PRIORITY = (
    "EMAIL_ADDRESS",
    "CREDIT_CARD",
    "IBAN_CODE",
    "US_SSN",
    "PHONE_NUMBER",
    "IP_ADDRESS",
    "URL",
    "PERSON",
    "LOCATION",
    "DATE_TIME",
)


class SpanResolver:
    """
    Turns raw detector output into a clean list of spans to anonymize.

    Detectors (Presidio in particular) report overlapping and duplicated
    candidates, e.g. an email address that also matches as a URL. The
    resolver keeps one span per region of text:

    - longer spans win over shorter ones,
    - on equal length the earlier start wins,
    - on equal start and length the type listed first in ``type_priority``
      wins; unlisted types rank after listed ones, alphabetically.

    Example:
        >>> resolver = SpanResolver()
        >>> spans = [DetectedSpan(0, 16, "EMAIL_ADDRESS"), DetectedSpan(5, 16, "URL")]
        >>> [s.entity_type for s in resolver.resolve(spans, text_length=16)]
        ['EMAIL_ADDRESS']
    """

    def __init__(self, type_priority=DEFAULT_TYPE_PRIORITY):
        self.type_priority = tuple(type_priority)
        self._rank = {entity_type: idx for idx, entity_type in enumerate(self.type_priority)}

    def resolve(self, spans, text_length):
        """
        Resolve candidate spans into a non-overlapping, start-ordered list.

        Args:
            spans (iterable): DetectedSpan candidates, in any order.
            text_length (int): Length of the text the spans were detected in.

        Returns:
            list: Accepted DetectedSpan objects sorted by start.

        Raises:
            DetectorContractError: If any span is inverted or out of bounds.
        """
        candidates = []
        for span in spans:
            self._check_bounds(span, text_length)
            if span.start == span.end:
                logger.debug("Dropping zero-length %s span at %d", span.entity_type, span.start)
                continue
            candidates.append(span)

        candidates.sort(key=self._preference)

        accepted = []
        for span in candidates:
            if any(span.start < kept.end and kept.start < span.end for kept in accepted):
                continue
            accepted.append(span)

        accepted.sort(key=lambda span: span.start)
        if len(accepted) != len(candidates):
            logger.debug(
                "Resolved %d candidate spans into %d non-overlapping spans",
                len(candidates), len(accepted),
            )
        return accepted

    def _preference(self, span):
        rank = self._rank.get(span.entity_type, len(self.type_priority))
        return (-span.length, span.start, rank, span.entity_type)

    @staticmethod
    def _check_bounds(span, text_length):
        start = getattr(span, "start", None)
        end = getattr(span, "end", None)
        entity_type = getattr(span, "entity_type", None)

        offsets_are_ints = all(
            isinstance(value, int) and not isinstance(value, bool) for value in (start, end)
        )
        if not offsets_are_ints or not isinstance(entity_type, str) or not entity_type:
            logger.error(
                "Detector returned malformed span (start=%r, end=%r, entity_type=%r)",
                start, end, entity_type,
            )
            raise DetectorContractError(
                f"Detector span must have integer offsets and a non-empty entity type, "
                f"got start={start!r}, end={end!r}, entity_type={entity_type!r}"
            )

        if start < 0 or end > text_length or start > end:
            logger.error(
                "Detector returned invalid %s span [%s, %s) for text of length %d",
                span.entity_type, span.start, span.end, text_length,
            )
            raise DetectorContractError(
                f"Detector span [{span.start}, {span.end}) of type {span.entity_type} "
                f"must satisfy 0 <= start <= end <= {text_length}"
            )
