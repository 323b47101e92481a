"""Application error types."""


class ExpiryTrackerError(Exception):
    """Base class for expiry tracker errors."""


class ConfigurationError(ExpiryTrackerError):
    """Required credentials or secrets are missing."""


class AuthorizationError(ExpiryTrackerError):
    """A request did not present the expected shared secret."""


class ValidationError(ExpiryTrackerError):
    """A registration or sync payload is malformed."""


class EndpointNotFound(ExpiryTrackerError):
    """No endpoint record exists for the requested identity."""


class StoreUnavailable(ExpiryTrackerError):
    """The endpoint store cannot be reached."""
