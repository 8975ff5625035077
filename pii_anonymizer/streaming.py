import logging

from pii_anonymizer.deanonymizer import ReplacementTable
from pii_anonymizer.exceptions import StreamClosedError, StreamInterruptedError

logger = logging.getLogger(__name__)


class StreamDeanonymizer:
    """
    Deanonymize streamed text without ever exposing a partial token.

    Model replies arrive in chunks whose boundaries have nothing to do with
    token boundaries: ``[PERSON]`` may show up as ``"Hello ["``, ``"PERSON"``,
    ``"] how are you"``. This class accumulates the raw chunks, re-runs the
    batch substitution over everything received so far and releases only the
    output that can no longer change.

    Strategy:
    - Keep the whole raw stream in ``buffer``
    - Hold back the longest buffered suffix that is a strict prefix of a
      token (``[``, ``[P``, ... ``[PERSON``)
    - Render everything before that suffix and emit what was not emitted yet
    - At stream end, flush the rest; unterminated token fragments pass through
      as they are

    Concatenating every returned string gives exactly
    ``deanonymize(full_raw_text, mapping)``.

    Instances are single-use and owned by one stream. Do not share them
    between requests or feed them from more than one producer.

    Example:
        >>> stream = StreamDeanonymizer(mapping)   # [PERSON] -> James Bond
        >>> stream.process_chunk("Hello [")
        'Hello '
        >>> stream.process_chunk("PERSON")
        ''
        >>> stream.process_chunk("] how are you")
        'James Bond how are you'
        >>> stream.finalize()
        ''
    """

    def __init__(self, mapping):
        """
        Args:
            mapping: Entity mapping from ``Anonymizer.anonymize`` (or a dict of
                     token -> original).
        """
        self.table = ReplacementTable.from_mapping(mapping)
        self.buffer = ""
        self.emitted = 0
        self.closed = False

    def process_chunk(self, chunk):
        """
        Add a chunk of raw model output and return the text that is safe to show.

        Args:
            chunk (str): Next fragment from the producer.

        Returns:
            str: Newly released, deanonymized text (possibly empty).

        Raises:
            StreamClosedError: If the stream was finalized or closed.
        """
        self._ensure_open()
        if not chunk:
            return ""
        if not self.table:
            return chunk

        self.buffer += chunk
        safe_end = len(self.buffer) - self.table.pending_prefix_length(self.buffer)
        rendered = self.table.render(self.buffer, safe_end)

        output = rendered[self.emitted:]
        self.emitted = len(rendered)
        return output

    def finalize(self):
        """
        End the stream and return everything still held back.

        Returns:
            str: Remaining deanonymized text.

        Raises:
            StreamClosedError: If the stream was already finalized or closed.
        """
        self._ensure_open()
        result = self.table.render(self.buffer)[self.emitted:] if self.buffer else ""
        if result and self.table.pending_prefix_length(self.buffer):
            logger.debug("Stream ended inside an unterminated token; flushing it verbatim")
        self.close()
        return result

    def close(self):
        """Cancel the stream: drop the buffer and refuse further chunks."""
        self.buffer = ""
        self.closed = True

    def _ensure_open(self):
        if self.closed:
            raise StreamClosedError("Stream has already ended")


def deanonymize_stream(chunks, mapping):
    """
    Deanonymize an iterable of raw chunks, yielding safe output as it becomes available.

    Args:
        chunks (iterable): Raw model output fragments, in order.
        mapping: Entity mapping used to anonymize the prompt.

    Yields:
        str: Non-empty deanonymized fragments.

    Raises:
        StreamInterruptedError: If ``chunks`` raises. Everything that was safe
            to release has already been yielded; held-back text is dropped.

    Example:
        >>> "".join(deanonymize_stream(["Hi [PE", "RSON]!"], mapping))
        'Hi James Bond!'
    """
    stream = StreamDeanonymizer(mapping)
    iterator = iter(chunks)
    try:
        while True:
            try:
                chunk = next(iterator)
            except StopIteration:
                break
            except Exception as exc:
                logger.warning("Stream producer failed after %d emitted characters: %s", stream.emitted, exc)
                raise StreamInterruptedError(f"Stream interrupted: {exc}") from exc

            output = stream.process_chunk(chunk)
            if output:
                yield output

        final = stream.finalize()
        if final:
            yield final
    finally:
        stream.close()


async def adeanonymize_stream(chunks, mapping):
    """Async counterpart of :func:`deanonymize_stream` for async chunk producers."""
    stream = StreamDeanonymizer(mapping)
    iterator = chunks.__aiter__()
    try:
        while True:
            try:
                chunk = await iterator.__anext__()
            except StopAsyncIteration:
                break
            except Exception as exc:
                logger.warning("Stream producer failed after %d emitted characters: %s", stream.emitted, exc)
                raise StreamInterruptedError(f"Stream interrupted: {exc}") from exc

            output = stream.process_chunk(chunk)
            if output:
                yield output

        final = stream.finalize()
        if final:
            yield final
    finally:
        stream.close()
