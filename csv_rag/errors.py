from __future__ import annotations


class ConfigurationError(RuntimeError):
    """
    Raised when a required setting (usually a credential) is missing or invalid.

    Unlike transient remote failures this is never replaced with a fallback
    value: the caller must fix the environment and try again.
    """


class TransientError(Exception):
    """A recoverable failure of a remote call (network, non-2xx, bad payload, timeout)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChatNotFoundError(LookupError):
    pass


class ChatAccessError(PermissionError):
    pass
