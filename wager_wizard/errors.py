"""Error taxonomy shared across the chat pipeline."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Classified failure kinds.

    Tool-scoped kinds are recovered locally and handed to the model as text.
    Only INVALID_INPUT, REQUEST_TIMEOUT and UNCLASSIFIED_FAULT reach the caller.
    """

    INVALID_INPUT = "INVALID_INPUT"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
    TOOL_TIMEOUT = "TOOL_TIMEOUT"
    NO_DATA = "NO_DATA"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    UNCLASSIFIED_FAULT = "UNCLASSIFIED_FAULT"

    @property
    def status_code(self) -> int:
        """HTTP status used when this kind is surfaced to the caller."""
        return _STATUS_CODES.get(self, 500)

    @property
    def is_tool_scoped(self) -> bool:
        """Whether this kind only ever reaches the model, never the caller."""
        return self in TOOL_ERROR_KINDS


_STATUS_CODES = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.REQUEST_TIMEOUT: 408,
    ErrorKind.UNCLASSIFIED_FAULT: 500,
}

TOOL_ERROR_KINDS = frozenset(
    {
        ErrorKind.TOOL_TIMEOUT,
        ErrorKind.NO_DATA,
        ErrorKind.PROVIDER_ERROR,
        ErrorKind.CONFIG_ERROR,
    }
)


class WagerWizardError(Exception):
    """Base class for classified errors."""

    kind: ErrorKind = ErrorKind.UNCLASSIFIED_FAULT

    def __init__(self, message: str, kind: ErrorKind | None = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class InvalidRequestError(WagerWizardError):
    """Raised when an inbound conversation is not a well-formed message list."""

    kind = ErrorKind.INVALID_INPUT


class OddsProviderError(WagerWizardError):
    """Classified failure from the odds provider."""

    kind = ErrorKind.PROVIDER_ERROR

    def __init__(self, message: str, kind: ErrorKind | None = None, status_code: int | None = None):
        super().__init__(message, kind)
        self.status_code = status_code
