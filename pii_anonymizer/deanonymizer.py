import logging
import re

from pii_anonymizer.models import parse_mapping

logger = logging.getLogger(__name__)


class ReplacementTable:
    """
    Compiled token -> original lookup used by batch and streaming deanonymization.

    Tokens are matched as literal strings, longest first, in a single
    left-to-right pass. Text that was substituted in is never scanned again,
    so an original value that happens to look like a token stays as it is.
    """

    def __init__(self, originals):
        """
        Args:
            originals (dict): Mapping of token -> original value.
        """
        self.originals = dict(originals)
        self.tokens = sorted(self.originals, key=lambda token: (-len(token), token))
        self.pattern = (
            re.compile("|".join(re.escape(token) for token in self.tokens))
            if self.tokens else None
        )
        self._prefixes = {
            token[:size] for token in self.tokens for size in range(1, len(token))
        }

    @classmethod
    def from_mapping(cls, mapping):
        """
        Build a table from an entity mapping.

        Args:
            mapping: Sequence of Entity objects (or wire-shape dicts), or a
                     dict of token -> original.

        Returns:
            ReplacementTable

        Raises:
            InputValidationError: If an entity in the sequence is malformed.
        """
        if isinstance(mapping, dict):
            return cls({token: original for token, original in mapping.items() if token})

        originals = {}
        for entity in parse_mapping(mapping):
            known = originals.setdefault(entity.anonymized, entity.original)
            if known != entity.original:
                logger.warning(
                    "Token %s maps to more than one original value; keeping the first",
                    entity.anonymized,
                )
        return cls(originals)

    def __bool__(self):
        return bool(self.tokens)

    @property
    def max_token_length(self):
        return len(self.tokens[0]) if self.tokens else 0

    def render(self, text, limit=None):
        """
        Substitute tokens in ``text``.

        Args:
            text (str): Text containing placeholder tokens.
            limit (int | None): Only render the output decided by positions
                before ``limit``. A token match starting before ``limit`` is
                rendered in full even if it ends after it.

        Returns:
            str: The substituted text.
        """
        if limit is None:
            limit = len(text)
        if self.pattern is None:
            return text[:limit]

        parts = []
        pos = 0
        for match in self.pattern.finditer(text):
            if match.start() >= limit:
                break
            parts.append(text[pos:match.start()])
            parts.append(self.originals[match.group(0)])
            pos = match.end()
        parts.append(text[pos:max(pos, limit)])
        return "".join(parts)

    def pending_prefix_length(self, text):
        """
        Length of the longest suffix of ``text`` that is a strict prefix of a token.

        Example:
            >>> ReplacementTable({"[PERSON]": "James Bond"}).pending_prefix_length("Hi [PER")
            4
        """
        longest = min(self.max_token_length - 1, len(text))
        for size in range(longest, 0, -1):
            if text[-size:] in self._prefixes:
                return size
        return 0


def deanonymize(text, mapping):
    """
    Replace placeholder tokens in text with their original values.

    Args:
        text (str): Text containing tokens, e.g. a model reply.
        mapping: Entity mapping returned by ``Anonymizer.anonymize`` (or a
                 dict of token -> original). Always supplied by the caller.

    Returns:
        str: Text with every token replaced by its original value.

    Raises:
        InputValidationError: If the mapping holds a malformed entity.

    Examples:
        >>> mapping = [Entity(original="James Bond", anonymized="[PERSON]",
        ...                   entity_type="PERSON", start=11, end=21)]
        >>> deanonymize("Hello [PERSON], [PERSON]!", mapping)
        'Hello James Bond, James Bond!'

        >>> # Longer tokens are matched before their prefixes
        >>> deanonymize("[PHONE_NUMBER] / [PHONE]", {"[PHONE]": "a", "[PHONE_NUMBER]": "b"})
        'b / a'

        >>> deanonymize("No placeholders here", [])
        'No placeholders here'
    """
    if not text or not mapping:
        return text

    return ReplacementTable.from_mapping(mapping).render(text)
