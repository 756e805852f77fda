class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced row does not exist."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class StorageError(DomainError):
    """Raised when a receipt upload fails. The message is the storage's own."""


class BusinessRuleError(DomainError):
    """Refusals that are shown as a short-lived banner, not as form errors."""


class LimitReachedError(BusinessRuleError):
    pass


class CapacityReachedError(BusinessRuleError):
    pass


class UnknownCodeError(BusinessRuleError):
    pass


class DuplicateScanError(BusinessRuleError):
    pass


class DuplicateCheckinError(BusinessRuleError):
    """A unique-index hit on attendance (concurrent toggle or scan)."""
