"""Exception hierarchy for the event-observers package."""


class ObserverError(Exception):
    """Base exception for all event-observers errors."""


class ValidationError(ObserverError):
    """Raised when a caller passes an invalid argument (a programming error)."""


class ConfigError(ObserverError):
    """Raised when a configuration value cannot be interpreted."""
