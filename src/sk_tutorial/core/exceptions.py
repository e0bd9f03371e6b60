class DomainError(Exception):
    """Base exception for business rule violations.

    Each subclass carries the HTTP status the controllers answer with.
    """

    status_code = 500


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    status_code = 400


class AuthenticationError(DomainError):
    """Raised when credentials or the bearer token are missing or invalid."""

    status_code = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """Raised when a write would create a duplicate record."""

    status_code = 409


class UpstreamError(DomainError):
    """Raised when the database, mail relay or media host fails."""

    status_code = 500
