"""Error taxonomy for the proxy.

Every failure that reaches the caller before a stream has started is a
ProxyError subclass. The server turns it into the OpenAI-style error
envelope with the matching HTTP status.
"""

from __future__ import annotations

from deltaproxy.schemas.openai import ErrorBody, ErrorDetail


class ProxyError(Exception):
    """Base class for errors rendered as {"error": {...}} responses."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(
        self, message: str, *, status_code: int | None = None, code: str | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code

    def to_body(self) -> ErrorBody:
        return ErrorBody(error=ErrorDetail(message=self.message, code=self.code))


class Unauthorized(ProxyError):
    """A bearer token is configured but the caller sent none."""

    status_code = 401
    code = "missing_api_key"


class Forbidden(ProxyError):
    """The caller's bearer token does not match the configured one."""

    status_code = 403
    code = "invalid_api_key"


class NotFound(ProxyError):
    status_code = 404
    code = "not_found"


class UpstreamError(ProxyError):
    """The upstream call failed.

    Carries the upstream HTTP status when there was one; transport
    failures (connect errors, timeouts) use 502.
    """

    status_code = 502
    code = "upstream_error"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        # Only 4xx/5xx statuses pass through
        if status_code is not None and status_code < 400:
            status_code = 502
        super().__init__(message, status_code=status_code)


class InternalError(ProxyError):
    status_code = 500
    code = "internal_error"


class UpstreamStreamError(Exception):
    """The upstream declared an error inside its response body.

    Raised by the aggregator; the orchestrator maps it to UpstreamError.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
