"""Exception taxonomy for the portfolio engine."""


class PortfolioError(Exception):
    """Base class for all engine errors."""


class ValidationError(PortfolioError):
    """Raised for a malformed wallet address or chain id."""


class ConfigError(PortfolioError):
    """Raised when a chain id is not present in the chain registry."""


class UpstreamUnavailable(PortfolioError):
    """
    Raised when an upstream API call fails.

    Parameters
    ----------
    message : str
        Human readable description
    status_code : int | None
        HTTP status code, if the failure carried one

    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamAuthError(UpstreamUnavailable):
    """Upstream rejected our credentials (401/403). Never retried."""


class UpstreamRateLimited(UpstreamUnavailable):
    """Upstream answered 429. Safe to retry after a delay."""
