"""Error taxonomy shared by the gateway, venue adapters, cache and API."""

from __future__ import annotations


class PredAggError(Exception):
    """Base error. `code` is the machine-readable reason surfaced to callers."""

    code = "error"

    def __init__(self, message: str, *, venue: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.venue = venue


class UpstreamError(PredAggError):
    """A venue call failed."""

    code = "upstream_error"


class UpstreamTimeout(UpstreamError):
    code = "upstream_timeout"


class UpstreamHttpError(UpstreamError):
    """Non-2xx response. 429 and 5xx are retryable, other statuses are not."""

    code = "upstream_http_error"

    def __init__(self, message: str, *, status: int, venue: str | None = None) -> None:
        super().__init__(message, venue=venue)
        self.status = status

    @property
    def retryable(self) -> bool:
        return is_retryable_status(self.status)


class UpstreamUnparseable(UpstreamError):
    """Body was not JSON or lacked the fields a venue adapter needs."""

    code = "upstream_unparseable"


class AllVenuesFailed(UpstreamError):
    """Every configured venue failed in one fetch cycle."""

    code = "all_venues_failed"


class ConfigurationMissing(PredAggError):
    """A venue needs a credential or base URL that is not configured."""

    code = "configuration_missing"


class NoDataAvailable(PredAggError):
    """Cache miss and no stale value recent enough to serve."""

    code = "no_data_available"


def is_retryable_status(status: int) -> bool:
    return status == 429 or 500 <= status < 600


def error_code(exc: BaseException) -> str:
    """Machine-readable code for any exception (`unexpected_error` for foreign ones)."""
    if isinstance(exc, PredAggError):
        return exc.code
    return "unexpected_error"
