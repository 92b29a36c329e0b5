class AuthError(Exception):
    """Base class for errors raised by the authentication subsystem."""


class AccountDisabledError(AuthError):
    """The credentials belong to an account an administrator has deactivated.

    Unlike a wrong password this is reported to the caller, so the UI can tell
    the user to contact an administrator instead of retrying.
    """

    def __init__(self, username: str) -> None:
        super().__init__(f"account '{username}' is disabled")
        self.username = username


class StorageError(AuthError):
    """A persistence operation failed.

    Always raised ``from`` the underlying SQLAlchemy error.
    """


class UserValidationError(AuthError):
    """Rejected input while provisioning a user account."""
