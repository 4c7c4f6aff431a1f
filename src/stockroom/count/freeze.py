"""Inventory freeze gate: blocks stock mutations while a count is open.

The gate reads count state through the repository. Callers check it inside
the same serialized boundary as the mutation it guards (see
``stockroom.stock.concurrency``), so a count cannot open between the check
and the write.
"""

from protean.utils.globals import current_domain

from stockroom.count.count import StockCount
from stockroom.errors import InventoryLocked


def is_locked(tenant_id) -> bool:
    """True iff the tenant has at least one InProgress count."""
    return bool(current_domain.repository_for(StockCount).in_progress_for_tenant(tenant_id))


def ensure_unlocked(tenant_id):
    if is_locked(tenant_id):
        raise InventoryLocked(f"Stock movements are blocked for tenant {tenant_id} while a physical count is in progress")
