"""
Typed failures raised by the identity services.

Each kind in the failure taxonomy has a base class here; services raise the
specific subclasses and never decide HTTP status codes themselves. The
mapping from failure kind to response lives in the application factories
(see ``register_error_handlers``).
"""

from typing import Dict, List, Optional


class ConfigurationError(RuntimeError):
    """A required configuration parameter is missing or invalid."""


class ValidationFailed(ValueError):
    """Input is malformed or missing required fields."""

    def __init__(self, message: str,
                 errors: Optional[Dict[str, List[str]]] = None) -> None:
        super().__init__(message)
        self.errors = errors or {}


class NotFound(RuntimeError):
    """The requested user, role, or token does not exist."""


class NoSuchUser(NotFound):
    """User does not exist."""


class NoSuchRole(NotFound):
    """Role does not exist."""


class NoSuchToken(NotFound):
    """Refresh token does not exist."""


class Conflict(RuntimeError):
    """A unique value is already taken."""


class UsernameExists(Conflict):
    """Username is already in use."""


class EmailExists(Conflict):
    """E-mail address is already in use."""


class RoleExists(Conflict):
    """A role with this name already exists."""


class Unauthorized(RuntimeError):
    """Credentials or tokens are missing, invalid, or expired."""


class AuthenticationFailed(Unauthorized):
    """Failed to authenticate user with provided credentials."""


class InvalidToken(Unauthorized):
    """A presented token is not valid."""


class ExpiredToken(InvalidToken):
    """A presented token has expired."""


class Forbidden(RuntimeError):
    """The caller is not permitted to perform this action."""


class AccessDenied(Forbidden):
    """Route policy denied the request."""


class SystemRoleViolation(Forbidden):
    """Attempt to delete or mutate a system-defined role."""


class StoreUnavailable(RuntimeError):
    """The backing store timed out or could not be reached. Retryable."""
