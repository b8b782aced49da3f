"""
Exceptions and response-envelope classification for the mwengine client.

Every failure surfaced by the client is one of four kinds, and they are never
conflated:

- TransportError: the request never produced a usable response (DNS,
  connection, timeout, malformed request, body cut short). A lag signal
  surfaced with maxlag handling off is a MaxlagError, which is a
  TransportError.
- ParseError: the server answered, but the body (or one of the protocol
  headers) could not be understood.
- APIError: the server answered with an `error` or `warnings` envelope.
- APIBusyError: the server kept signaling replication lag until the maxlag
  retry budget ran out.

Example:
    >>> try:
    ...     client.get(Values({"action": "query", "meta": "siteinfo"}))
    ... except APIError as e:
    ...     print(f"{e.code}: {e.info}")
    ... except APIBusyError as e:
    ...     print(f"Server busy after {e.attempts} attempts")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# =============================================================================
# Exceptions
# =============================================================================


class MWEngineError(Exception):
    """Base class for every error raised by the mwengine client."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class TransportError(MWEngineError):
    """
    Raised when an HTTP request could not be built or sent, or its body could
    not be read.

    Wraps the underlying `requests.RequestException` (available in `cause`).
    Transport errors are never retried by the client.
    """

    pass


class ParseError(MWEngineError):
    """
    Raised when a response cannot be interpreted.

    Covers malformed JSON bodies, JSON bodies whose top level is not an object,
    structurally broken error/warning envelopes, and a non-integer
    `Retry-After` header on a lagged response.
    """

    pass


class APIError(MWEngineError):
    """
    Raised when the API reports an application-level error.

    Attributes:
        code: Machine-readable error code (e.g. "badtoken").
        info: Human-readable description.

    Example:
        >>> err = APIError(code="badtoken", info="Invalid token")
        >>> str(err)
        'badtoken: Invalid token'
    """

    def __init__(self, code: str, info: str = ""):
        super().__init__(f"{code}: {info}")
        self.code = code
        self.info = info


@dataclass(frozen=True)
class APIWarning:
    """A single warning reported by an API module."""

    module: str
    info: str


class APIWarningsError(APIError):
    """
    Raised when the API response carries a non-empty `warnings` object.

    Warnings are treated as failures by the JSON decoders. Callers that want to
    inspect a warned response anyway should use the raw decoders.

    Attributes:
        warnings: One APIWarning per reporting module, in response order.
    """

    def __init__(self, warnings: list[APIWarning]):
        info = "; ".join(f"{w.module}: {w.info}" for w in warnings)
        super().__init__(code="warnings", info=info)
        self.warnings = warnings


class LoginError(APIError):
    """
    Raised when `action=login` answers with a result other than "Success".

    The `code` attribute holds the literal result (e.g. "Failed",
    "WrongToken"); `info` holds the server's `reason`, if any.
    """

    pass


class MaxlagError(TransportError):
    """
    Raised by the dispatcher when the server signals replication lag.

    While maxlag handling is enabled this error never reaches the caller: the
    retry loop consumes it. It only surfaces when maxlag handling is disabled
    but a `maxlag` parameter was supplied by the caller.

    Attributes:
        retry_after: Seconds the server asked the client to wait.
        body: The drained response body.
        lag: Raw value of the `X-Database-Lag` header.
    """

    def __init__(self, retry_after: int, body: str, lag: str = ""):
        super().__init__(f"Server lagged ({lag or '?'}s), retry after {retry_after}s")
        self.retry_after = retry_after
        self.body = body
        self.lag = lag


class APIBusyError(MWEngineError):
    """
    Raised when every maxlag attempt was answered with a lag signal.

    Attributes:
        attempts: Number of attempts made before giving up.
        last_error: The MaxlagError of the last attempt, if any attempt was made.
    """

    def __init__(self, attempts: int, last_error: MaxlagError | None = None):
        super().__init__(
            f"The API is busy. Gave up after {attempts} maxlag attempt(s).",
            cause=last_error,
        )
        self.attempts = attempts
        self.last_error = last_error


# =============================================================================
# Envelope classification
# =============================================================================


def extract_api_errors(document: dict[str, Any]) -> MWEngineError | None:
    """
    Inspect a parsed response for an `error` or `warnings` envelope.

    Args:
        document: The decoded top-level JSON object.

    Returns:
        An APIError for an `error` envelope, an APIWarningsError for a
        non-empty `warnings` envelope, a ParseError when either envelope is
        malformed, or None when the response reports no problem.
    """
    if "error" in document:
        error = document["error"]
        code = error.get("code") if isinstance(error, dict) else None
        info = error.get("info") if isinstance(error, dict) else None
        if not isinstance(code, str) or not isinstance(info, str):
            return ParseError(f"malformed error envelope: {error!r}")
        return APIError(code=code, info=info)

    warnings = document.get("warnings")
    if warnings:
        if not isinstance(warnings, dict):
            return ParseError(f"malformed warnings envelope: {warnings!r}")

        collected: list[APIWarning] = []
        for module, content in warnings.items():
            if not isinstance(content, dict):
                return ParseError(f"malformed warnings envelope for module '{module}': {content!r}")
            # Legacy format nests the text under "*", formatversion=2 under "warnings"
            text = content.get("*", content.get("warnings"))
            if not isinstance(text, str):
                return ParseError(f"malformed warnings envelope for module '{module}': {content!r}")
            collected.append(APIWarning(module=module, info=text))
        return APIWarningsError(collected)

    return None
