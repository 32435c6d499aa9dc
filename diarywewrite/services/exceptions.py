"""Provides exceptions occurring with external services."""


class Unavailable(RuntimeError):
    """The database could not be reached, or a query failed."""


class NoSuchUser(RuntimeError):
    """User does not exist."""


class AuthenticationFailed(RuntimeError):
    """Failed to authenticate user with provided credentials."""


class RegistrationFailed(RuntimeError):
    """Could not create a new local account."""


class ConcurrentUpdate(RuntimeError):
    """A write collided with a concurrent write of the same record."""


class UnknownProvider(RuntimeError):
    """No identity provider is registered under the requested name."""


class ProviderLoginFailed(RuntimeError):
    """The identity provider did not yield a usable profile."""


class SessionCreationFailed(RuntimeError):
    """Failed to create a session in the session store."""


class SessionDeletionFailed(RuntimeError):
    """Failed to delete a session in the session store."""


class UnknownSession(RuntimeError):
    """Failed to locate a session in the session store."""


class InvalidToken(ValueError):
    """Session cookie is malformed, forged, or expired."""
