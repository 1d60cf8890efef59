"""Gateway exceptions and JSON-RPC error codes."""

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """JSON-RPC error codes used in response envelopes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    UNAUTHORIZED = -32000
    INVALID_SESSION = -32001
    UPSTREAM_TIMEOUT = -32002
    PROTOCOL_UNSUPPORTED = -32003
    CHAIN_UNKNOWN = -32004
    UPSTREAM_ERROR = -32005


class GatewayError(Exception):
    """
    Base class for errors the gateway reports to callers.

    Parameters
    ----------
    message : str
        Human-readable description of the failure
    hint : str | None
        Remediation hint shown next to the message

    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    kind: str = "internal_error"

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def to_error_data(self) -> dict[str, Any]:
        """
        Render the error as structured data for a response.

        Returns
        -------
        dict[str, Any]
            Code, kind, message and hint (when present)

        """
        data: dict[str, Any] = {"code": int(self.code), "kind": self.kind, "message": self.message}
        if self.hint:
            data["hint"] = self.hint
        return data


class InvalidArgumentError(GatewayError):
    """Raised when a tool argument is missing or malformed."""

    code = ErrorCode.INVALID_PARAMS
    kind = "invalid_argument"


class ProtocolRequiredError(InvalidArgumentError):
    """Raised when a protocol name is required but empty."""

    kind = "protocol_required"


class UnsupportedProtocolError(GatewayError):
    """Raised when no token list is known for a protocol."""

    code = ErrorCode.PROTOCOL_UNSUPPORTED
    kind = "protocol_unsupported"


class UnknownChainError(GatewayError):
    """Raised when a chain alias cannot be normalized."""

    code = ErrorCode.CHAIN_UNKNOWN
    kind = "chain_unknown"


class UpstreamError(GatewayError):
    """
    Raised when a remote document cannot be fetched or parsed.

    Parameters
    ----------
    message : str
        Description of the failure
    status_code : int | None
        HTTP status of the upstream response, if one was received
    hint : str | None
        Remediation hint

    """

    code = ErrorCode.UPSTREAM_ERROR
    kind = "upstream_error"

    def __init__(self, message: str, *, status_code: int | None = None, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code

    def to_error_data(self) -> dict[str, Any]:
        data = super().to_error_data()
        if self.status_code is not None:
            data["status"] = self.status_code
        return data


class UpstreamTimeoutError(UpstreamError):
    """Raised when a remote fetch exceeds its timeout."""

    code = ErrorCode.UPSTREAM_TIMEOUT
    kind = "timeout"


class InvalidTokenListError(UpstreamError):
    """Raised when a token-list document is not a non-empty list of tokens."""

    kind = "invalid_token_list"


class SessionError(GatewayError):
    """Raised when a request carries an unknown, expired or missing session."""

    code = ErrorCode.INVALID_SESSION
    kind = "invalid_session"


__all__ = [
    "ErrorCode",
    "GatewayError",
    "InvalidArgumentError",
    "InvalidTokenListError",
    "ProtocolRequiredError",
    "SessionError",
    "UnknownChainError",
    "UnsupportedProtocolError",
    "UpstreamError",
    "UpstreamTimeoutError",
]
