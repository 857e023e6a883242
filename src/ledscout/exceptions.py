"""
Custom exceptions for ledscout.
"""


class LedScoutError(Exception):
    """Base class for all ledscout errors."""
    pass

class ConfigurationError(LedScoutError):
    """Raised when the configuration cannot be loaded or is inconsistent."""
    pass

class TransportError(LedScoutError):
    """Raised when an HTTP request to a candidate device fails."""
    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url

class TransportTimeoutError(TransportError):
    """Raised when an HTTP request exceeds its time budget."""
    pass
