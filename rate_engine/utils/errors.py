"""Custom exception classes for the rate engine."""


class RateEngineError(Exception):
    """Base exception for all rate engine errors."""
    pass


class ConfigurationError(RateEngineError):
    """Raised when there's a configuration error."""
    pass


class ValidationError(RateEngineError):
    """Raised when input validation fails."""
    pass


class InvalidRateError(ValidationError):
    """Raised when a rate is not a positive finite number."""
    pass


class DuplicateCodeError(ValidationError):
    """Raised when a currency code is already registered."""
    pass


class SameAsPrimaryError(ValidationError):
    """Raised when the secondary currency would equal the primary one."""
    pass


class NotFoundError(RateEngineError):
    """Raised when a currency code is not registered."""
    pass


class DataProviderError(RateEngineError):
    """Raised when an upstream rate source fails."""
    pass


class RefreshFailedError(RateEngineError):
    """Raised when a rate refresh could not be completed."""
    pass
