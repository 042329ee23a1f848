class CacheSimError(Exception):
    """Base class for errors raised by the cache simulator."""


class ConfigError(CacheSimError, ValueError):
    """Raised when a configuration cannot be resolved into a valid hierarchy."""


class TraceFormatError(CacheSimError, ValueError):
    """Raised when a trace record cannot be parsed."""
