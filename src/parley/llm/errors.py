"""Provider and transport error hierarchy.

All errors here inherit from GenerationError so a failed turn can be
handled uniformly. Adapter authors map their HTTP client's failures with
:func:`from_http_error`.
"""

from __future__ import annotations

import enum

import httpx

from parley.exceptions import GenerationError


class ProviderErrorCategory(str, enum.Enum):
    """Coarse classification of a provider-reported failure."""

    AUTHENTICATION = "authentication"
    PERMISSION_DENIED = "permission_denied"
    REQUEST_INVALID = "request_invalid"
    RESOURCE_MISSING = "resource_missing"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    UNKNOWN = "unknown"


class RequestFailureReason(str, enum.Enum):
    INVALID_CONFIGURATION = "invalid_configuration"
    NETWORK_FAILURE = "network_failure"
    INVALID_RESPONSE = "invalid_response"
    DECODING_FAILURE = "decoding_failure"


class StreamFailureReason(str, enum.Enum):
    TRANSPORT = "transport"
    DECODING = "decoding"


class ProviderError(GenerationError):
    """The provider rejected the request.

    Attributes:
        category: Classification derived from the status code.
        status_code: HTTP status code, if known.
        code: Provider-specific error code.
        type: Provider-specific error type.
        parameter: Request parameter the provider blamed, if any.
        retry_after: Seconds to wait before retrying (from Retry-After
            header), or None if not provided.
    """

    def __init__(
        self,
        message: str,
        *,
        category: ProviderErrorCategory = ProviderErrorCategory.UNKNOWN,
        status_code: int | None = None,
        code: str | None = None,
        type: str | None = None,
        parameter: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        self.message = message
        self.category = category
        self.status_code = status_code
        self.code = code
        self.type = type
        self.parameter = parameter
        self.retry_after = retry_after
        prefix = f"[{status_code}] " if status_code is not None else ""
        super().__init__(f"{prefix}{category.value}: {message}")


class RequestFailedError(GenerationError):
    """The request never produced a usable provider response."""

    def __init__(self, reason: RequestFailureReason, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        message = f"Request failed ({reason.value})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class StreamingFailureError(GenerationError):
    """An event stream broke off or delivered undecodable events."""

    def __init__(self, reason: StreamFailureReason, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        message = f"Streaming failed ({reason.value})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


def category_for_status(status_code: int) -> ProviderErrorCategory:
    """Map an HTTP status code to a provider error category."""
    if status_code == 401:
        return ProviderErrorCategory.AUTHENTICATION
    if status_code == 403:
        return ProviderErrorCategory.PERMISSION_DENIED
    if status_code == 404:
        return ProviderErrorCategory.RESOURCE_MISSING
    if status_code == 429:
        return ProviderErrorCategory.RATE_LIMITED
    if 500 <= status_code < 600:
        return ProviderErrorCategory.SERVER
    if 400 <= status_code < 500:
        return ProviderErrorCategory.REQUEST_INVALID
    return ProviderErrorCategory.UNKNOWN


def _parse_retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _error_body(response: httpx.Response) -> dict:
    """Extract the ``error`` object from an OpenAI-style error body."""
    try:
        body = response.json()
    except (ValueError, httpx.StreamError):
        return {}
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict):
            return error
        if isinstance(error, str):
            return {"message": error}
    return {}


def provider_error_from_response(response: httpx.Response) -> GenerationError:
    """Build an error for a non-success HTTP response.

    408 is reported as a network failure rather than a provider error.
    """
    status = response.status_code
    if status == 408:
        return RequestFailedError(RequestFailureReason.NETWORK_FAILURE, "request timed out (408)")
    error = _error_body(response)
    message = error.get("message") or response.reason_phrase or f"HTTP {status}"
    code = error.get("code")
    return ProviderError(
        str(message),
        category=category_for_status(status),
        status_code=status,
        code=str(code) if code is not None else None,
        type=error.get("type"),
        parameter=error.get("param") or error.get("parameter"),
        retry_after=_parse_retry_after(response),
    )


def from_http_error(exc: httpx.HTTPError) -> GenerationError:
    """Translate an httpx exception into the Parley error taxonomy.

    Usage::

        try:
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise from_http_error(exc) from exc
    """
    if isinstance(exc, httpx.HTTPStatusError):
        return provider_error_from_response(exc.response)
    if isinstance(exc, httpx.DecodingError):
        return RequestFailedError(RequestFailureReason.DECODING_FAILURE, str(exc))
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.ProxyError)):
        return RequestFailedError(RequestFailureReason.NETWORK_FAILURE, str(exc))
    if isinstance(exc, (httpx.UnsupportedProtocol, httpx.LocalProtocolError)):
        return RequestFailedError(RequestFailureReason.INVALID_CONFIGURATION, str(exc))
    if isinstance(exc, httpx.RemoteProtocolError):
        return StreamingFailureError(StreamFailureReason.TRANSPORT, str(exc))
    return RequestFailedError(RequestFailureReason.INVALID_RESPONSE, str(exc))
