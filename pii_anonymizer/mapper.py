from pii_anonymizer.models import Entity

SINGLE_TOKEN_FORMAT = "[{entity_type}]"
NUMBERED_TOKEN_FORMAT = "[{entity_type}_{index}]"


class TokenMapper:
    """
    Assigns placeholder tokens to resolved spans.

    A type with a single distinct value in the text gets the bare token
    (``[PERSON]``). A type with several distinct values gets numbered tokens
    in order of first appearance (``[PERSON_1]``, ``[PERSON_2]``), so every
    token maps back to exactly one original. A value that recurs verbatim
    reuses the token it was first given.

    The mapper keeps no state between calls; numbering restarts for every
    text.

    Example:
        >>> text = "Ann met Bob, then Ann left"
        >>> spans = [DetectedSpan(0, 3, "PERSON"), DetectedSpan(8, 11, "PERSON"),
        ...          DetectedSpan(18, 21, "PERSON")]
        >>> [e.anonymized for e in TokenMapper().assign(text, spans)]
        ['[PERSON_1]', '[PERSON_2]', '[PERSON_1]']
    """

    def __init__(self, single_format=SINGLE_TOKEN_FORMAT, numbered_format=NUMBERED_TOKEN_FORMAT):
        self.single_format = single_format
        self.numbered_format = numbered_format

    def assign(self, text, spans):
        """
        Build the entity mapping for ``spans`` in ``text``.

        Args:
            text (str): Original text.
            spans (list): Resolved, non-overlapping DetectedSpan objects sorted by start.

        Returns:
            tuple: One Entity per span, in span order.
        """
        # First pass: distinct values per type, in order of first appearance
        distinct = {}
        for span in spans:
            values = distinct.setdefault(span.entity_type, [])
            value = text[span.start:span.end]
            if value not in values:
                values.append(value)

        tokens = {}
        for entity_type, values in distinct.items():
            if len(values) == 1:
                tokens[(entity_type, values[0])] = self.single_format.format(
                    entity_type=entity_type, index=1
                )
                continue
            for index, value in enumerate(values, start=1):
                tokens[(entity_type, value)] = self.numbered_format.format(
                    entity_type=entity_type, index=index
                )

        return tuple(
            Entity(
                original=text[span.start:span.end],
                anonymized=tokens[(span.entity_type, text[span.start:span.end])],
                entity_type=span.entity_type,
                start=span.start,
                end=span.end,
            )
            for span in spans
        )
