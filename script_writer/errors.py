"""Error taxonomy for the episode generation pipeline.

Every error carries an explicit ``kind`` tag (and, where it applies, the
HTTP ``status``) set at the boundary that raised it. Retry classification
reads those fields; it never inspects message text.
"""

from enum import Enum


class ErrorKind(str, Enum):
    PRECONDITION = "precondition"
    TRANSPORT = "transport"
    UPSTREAM = "upstream"
    SCHEMA = "schema"
    STORE = "store"
    EXHAUSTED = "exhausted"
    STATE = "state"


class ScriptWriterError(Exception):
    """Base class for all script-writer errors."""

    kind: ErrorKind = ErrorKind.STATE
    status: int | None = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PreconditionError(ScriptWriterError):
    """Missing source material, missing outline or an unusable phase plan."""

    kind = ErrorKind.PRECONDITION


class TransportError(ScriptWriterError):
    """The request never produced an HTTP response (network, timeout)."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, transient: bool = True):
        super().__init__(message)
        self.transient = transient


class UpstreamError(ScriptWriterError):
    """The generation service answered with an error status."""

    kind = ErrorKind.UPSTREAM

    def __init__(self, status: int, message: str):
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.detail = message


class SchemaError(ScriptWriterError):
    """The response was not the structured data the request declared."""

    kind = ErrorKind.SCHEMA


class StoreError(ScriptWriterError):
    """The project store rejected a save or load."""

    kind = ErrorKind.STORE

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class RetryExhaustedError(ScriptWriterError):
    """A retryable operation kept failing until the attempt budget ran out."""

    kind = ErrorKind.EXHAUSTED

    def __init__(self, last_error: ScriptWriterError, attempts: int):
        super().__init__(
            f"Gave up after {attempts} attempts: {last_error.message}"
        )
        self.last_error = last_error
        self.attempts = attempts
        self.status = last_error.status


class InvalidTransitionError(ScriptWriterError):
    """A session was asked to move to a state its current state forbids."""

    kind = ErrorKind.STATE
