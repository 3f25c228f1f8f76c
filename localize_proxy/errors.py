from typing import Optional


class ProxyError(Exception):
    """
    Base class for errors that are surfaced to the caller.

    Each subclass carries the HTTP status it maps to.
    """
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ProxyError):
    """
    Raised when the caller's payload is malformed. Never retried.
    """
    status_code = 400


class QuotaExceeded(ProxyError):
    """
    Raised when an identity has used its daily quota.
    """
    status_code = 429

    def __init__(self, message: str, remaining: int = 0):
        super().__init__(message)
        self.remaining = remaining


class QuotaUnavailable(ProxyError):
    """
    Raised when the quota store cannot be reached. The limiter fails closed.
    """
    status_code = 503


class ProviderError(ProxyError):
    """
    Raised when the upstream translation call fails.
    """
    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ConfigurationError(ProxyError):
    """
    Raised when a required credential or setting is missing.
    """
    status_code = 500


class RefinementFailure(Exception):
    """
    Raised inside the refinement stage. Always absorbed at its boundary.
    """
    pass
