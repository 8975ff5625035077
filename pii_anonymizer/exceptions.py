class PIIAnonymizerError(Exception):
    """Base class for every error raised by the anonymization engine."""


class InputValidationError(PIIAnonymizerError):
    """Caller supplied text or a mapping that cannot be processed."""


class DetectorContractError(PIIAnonymizerError):
    """An entity detector returned spans that break its output contract.

    Out-of-bounds or inverted spans are never dropped silently: losing a
    span means leaking the value it covered.
    """


class AnonymizationError(PIIAnonymizerError):
    """The detector failed while scanning the input text."""


class StreamClosedError(PIIAnonymizerError):
    """A fragment was pushed into a stream that already ended or was cancelled."""


class StreamInterruptedError(PIIAnonymizerError):
    """The fragment producer failed before the stream reached its end."""


class LLMServiceError(PIIAnonymizerError):
    """
    The language model call failed.

    Attributes:
        kind (str): One of "authentication", "rate_limit", "unavailable",
                    "upstream" or "unknown".
        status_code (int | None): HTTP status reported by the provider, if any.
    """

    def __init__(self, message, kind="unknown", status_code=None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
