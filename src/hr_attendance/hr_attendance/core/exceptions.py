class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced employee, department or record does not exist."""


class ConflictError(ValidationError):
    """Raised when a write collides with an existing row (one record per employee per day)."""
