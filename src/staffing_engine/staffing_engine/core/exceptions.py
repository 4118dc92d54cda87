class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "DOMAIN_ERROR"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"


class MissingSignature(ValidationError):
    """Raised when an approval is attempted without a signature payload."""

    code = "MISSING_SIGNATURE"


class EmptyReason(ValidationError):
    """Raised when a rejection or unlock is attempted without a reason."""

    code = "EMPTY_REASON"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "UNAUTHORIZED"


class NotFoundError(DomainError):
    code = "NOT_FOUND"


class RoleNotFound(NotFoundError):
    code = "ROLE_NOT_FOUND"


class DuplicateRoleCode(DomainError):
    code = "DUPLICATE_ROLE_CODE"


class InvalidTransition(DomainError):
    """Raised when an operation is not permitted from the current state."""

    code = "INVALID_TRANSITION"


class MaxEntriesExceeded(InvalidTransition):
    """Raised when a worker already used every time entry on a shift.

    The caller should end the worker's shift instead.
    """

    code = "MAX_ENTRIES_EXCEEDED"


class ConcurrentModification(DomainError):
    """Raised when a compare-and-swap save lost a race.

    Re-read the current state before deciding whether to retry.
    """

    code = "CONCURRENT_MODIFICATION"
