"""Error kinds raised by the stockroom domain.

Business-rule failures derive from Protean's own exceptions so that command
processing and the API layer handle them like any other domain error:

    ValidationError        bad arguments, insufficient stock
    ObjectNotFoundError    unknown item or count for the tenant
    InvalidOperationError  tenant mismatch, freeze gate, double reconciliation

TransientError is the only retryable kind. It is raised when optimistic
concurrency conflicts or lock waits are exhausted, never for a business rule.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class InsufficientStock(ValidationError):
    """Requested quantity exceeds the item's physical total."""


class InsufficientValidStock(ValidationError):
    """Requested quantity exceeds the non-expired quantity.

    The physical total would have covered the request; the remainder sits in
    expired lots, which need a write-off rather than replenishment.
    """


class ItemNotFound(ObjectNotFoundError):
    """Stock item does not resolve for the tenant."""


class CountNotFound(ObjectNotFoundError):
    """Stock count does not resolve for the tenant."""


class PermissionDenied(InvalidOperationError):
    """Caller's tenant does not own the target entity."""


class InventoryLocked(InvalidOperationError):
    """A physical count is in progress for the tenant."""


class AlreadyFinalized(InvalidOperationError):
    """The stock count has already been reconciled."""


class TransientError(Exception):
    """Concurrency retries or lock waits exhausted; safe to retry."""
