"""Exceptions raised by the NVIDIA Llama4 adapters."""

from typing import Optional


class NvidiaError(Exception):
    """Base class for all adapter errors."""
    pass


class NvidiaAPIError(NvidiaError):
    """Transport or HTTP failure while calling the completion endpoint."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NvidiaStreamError(NvidiaAPIError):
    """Failure while opening or consuming an SSE stream."""
    pass


class NvidiaGenerationError(NvidiaError):
    """The provider answered, but without any usable text."""
    pass


class RetryExhaustedError(NvidiaError):
    """Every attempt of a retried operation failed."""

    def __init__(self, message: str, attempts: int, last_error: Optional[BaseException]):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error
