"""FEFO consumption planning: which batches satisfy an outbound request.

Planning is separate from mutation: an allocation is computed against the
current batches and only applied to the aggregate once it is known to cover
the whole request. A refused request therefore never leaves a batch partly
consumed.

Expired batches (expiry strictly before ``today``) are invisible to sales and
transfers. They are drained only by count adjustments, through
``allocate_shrinkage``.
"""

from dataclasses import dataclass
from datetime import date

from stockroom.errors import InsufficientStock, InsufficientValidStock


@dataclass(frozen=True)
class BatchTake:
    """Quantity taken from one batch."""

    batch_id: str
    quantity: int


@dataclass(frozen=True)
class Allocation:
    """Result of planning a consumption against a batch collection."""

    takes: tuple[BatchTake, ...]

    @property
    def total(self) -> int:
        return sum(take.quantity for take in self.takes)

    @property
    def batch_ids(self) -> list[str]:
        return [take.batch_id for take in self.takes]


def _fefo_order(batches):
    return sorted(batches, key=lambda b: (b.expiry_date, b.sequence or 0))


def _plan(ordered_batches, quantity):
    remaining = quantity
    takes = []
    for batch in ordered_batches:
        if remaining == 0:
            break
        if not batch.quantity:
            continue
        take = min(batch.quantity, remaining)
        takes.append(BatchTake(batch_id=str(batch.id), quantity=take))
        remaining -= take
    return takes, remaining


def allocate_fefo(batches, quantity: int, today: date) -> Allocation:
    """Plan an outbound movement, soonest-expiring valid batch first.

    Raises ``InsufficientStock`` when the physical total cannot cover the
    request, and ``InsufficientValidStock`` when it can but the non-expired
    batches cannot.
    """
    physical = sum(b.quantity or 0 for b in batches)
    if physical < quantity:
        raise InsufficientStock(
            {"quantity": [f"Insufficient stock: {physical} on hand, {quantity} requested"]}
        )

    valid = [b for b in _fefo_order(batches) if b.expiry_date >= today]
    takes, remaining = _plan(valid, quantity)
    if remaining > 0:
        raise InsufficientValidStock(
            {
                "quantity": [
                    f"Insufficient valid stock: {quantity - remaining} available in non-expired lots, "
                    f"{quantity} requested; the remainder is in expired lots"
                ]
            }
        )
    return Allocation(takes=tuple(takes))


def allocate_shrinkage(batches, quantity: int) -> Allocation:
    """Plan a count-driven reduction across all batches, expired ones included."""
    takes, remaining = _plan(_fefo_order(batches), quantity)
    if remaining > 0:
        raise InsufficientStock(
            {"quantity": [f"Cannot remove {quantity} units: only {quantity - remaining} on hand"]}
        )
    return Allocation(takes=tuple(takes))
