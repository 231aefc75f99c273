from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class AccessDeniedError(UserError):
    """Raised when a caller tries to access a resource they do not have permission for."""


class ValidationError(UserError):
    """Raised when user input fails validation."""


class InactiveAccountError(UserError):
    """Raised when an operation targets a deactivated mailbox."""

    def __init__(self, message: str = "Account is deactivated") -> None:
        super().__init__(message)


class MagicLinkError(UserError):
    """Base class for magic-link redemption failures."""


class InvalidTokenError(MagicLinkError):
    def __init__(self, message: str = "Invalid magic link") -> None:
        super().__init__(message)


class ExpiredTokenError(MagicLinkError):
    def __init__(self, message: str = "This magic link has expired") -> None:
        super().__init__(message)


class AlreadyUsedTokenError(MagicLinkError):
    def __init__(self, message: str = "This magic link has already been used") -> None:
        super().__init__(message)


class KeySetupError(Exception):
    """Raised at startup when the DKIM signing key cannot be loaded."""


class TransportError(Exception):
    """Raised when the outbound mail relay rejects or fails a send."""


class DeliveryEmitError(Exception):
    """Raised when pushing an event to a single live connection fails."""

    def __init__(self, connection_id: str, cause: Exception) -> None:
        super().__init__(f"Failed to emit to connection '{connection_id}': {cause}")
        self.connection_id = connection_id
