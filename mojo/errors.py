"""Error taxonomy shared by providers, tools and the HTTP layer."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Codes surfaced in the JSON error envelope."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    UNAUTHORIZED = "UNAUTHORIZED"
    MODEL_ERROR = "MODEL_ERROR"
    STREAM_ERROR = "STREAM_ERROR"
    TIMEOUT = "TIMEOUT"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class ProviderErrorKind(str, Enum):
    """Failure categories assigned where a provider call fails."""

    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    MALFORMED = "malformed"


class ToolErrorKind(str, Enum):
    """Failure categories carried by a ToolResult."""

    INVALID_ARGUMENTS = "invalid_arguments"
    PROVIDER_FAILURE = "provider_failure"
    TOOL_NOT_ALLOWED = "tool_not_allowed"
    ALL_FAILED = "all_failed"


class MojoError(Exception):
    """Base class for errors that terminate a request."""

    code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR
    status: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MojoError):
    """Malformed request body or tool arguments."""

    code = ErrorCode.VALIDATION_ERROR
    status = 400


class ConfigurationError(MojoError):
    """Unknown mode or missing credentials."""

    code = ErrorCode.SERVICE_UNAVAILABLE
    status = 503


class ModelError(MojoError):
    """The generation backend rejected the request."""

    code = ErrorCode.MODEL_ERROR
    status = 400


class StreamError(MojoError):
    """The output stream could not be established or maintained."""

    code = ErrorCode.STREAM_ERROR
    status = 500


_PROVIDER_STATUS: dict[ProviderErrorKind, tuple[ErrorCode, int]] = {
    ProviderErrorKind.UNAUTHORIZED: (ErrorCode.UNAUTHORIZED, 401),
    ProviderErrorKind.RATE_LIMITED: (ErrorCode.RATE_LIMIT_EXCEEDED, 429),
    ProviderErrorKind.UNAVAILABLE: (ErrorCode.SERVICE_UNAVAILABLE, 503),
    ProviderErrorKind.MALFORMED: (ErrorCode.INTERNAL_SERVER_ERROR, 502),
}


class ProviderError(MojoError):
    """A call to an external provider failed.

    The kind is decided by the client that made the call, from the HTTP status
    or transport failure, and is the only thing callers branch on.
    """

    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str,
        *,
        provider: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.provider = provider
        self.status_code = status_code
        self.code, self.status = _PROVIDER_STATUS[kind]

    def __str__(self) -> str:
        prefix = f"{self.provider}: " if self.provider else ""
        return f"{prefix}{self.kind.value}: {self.message}"


class AllFailedError(Exception):
    """Every item of a fan-out batch failed."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__(f"All {len(errors)} sub-operations failed")
        self.errors = errors
