# src/errors.py
"""Exception hierarchy shared by actions, API and client."""


class JournalAppError(Exception):
    """Base class for application errors."""


class ConfigurationError(JournalAppError):
    """A required setting is missing or malformed."""


class NotAuthenticatedError(JournalAppError):
    """No authenticated user for an operation that needs one."""

    def __init__(self, message: str = "Not authenticated."):
        super().__init__(message)


class NotFoundError(JournalAppError):
    """Entity does not exist or is not owned by the caller."""
