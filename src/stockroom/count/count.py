"""StockCount aggregate (CQRS): a physical audit of a tenant's stock.

A count is created InProgress, which freezes every stock mutation for the
tenant. It transitions to Finalized exactly once, through reconciliation,
and is immutable afterwards.

Count lines refer to stock items by id only. Name, SKU and the system
quantity are snapshots taken when the count started.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from stockroom.count.events import StockCountFinalized, StockCountStarted
from stockroom.domain import stockroom
from stockroom.errors import AlreadyFinalized


class CountStatus(Enum):
    IN_PROGRESS = "InProgress"
    FINALIZED = "Finalized"


@stockroom.entity(part_of="StockCount", limit=None)
class CountLine:
    """Counted versus system quantity for one item."""

    stock_item_id = Identifier(required=True)
    item_name = String(required=True, max_length=255)
    sku = String(required=True, max_length=50)
    system_quantity = Integer(default=0, min_value=0)
    counted_quantity = Integer(default=0, min_value=0)
    variance = Integer(default=0)


@stockroom.aggregate
class StockCount:
    tenant_id = Identifier(required=True)
    counted_by = String(required=True, max_length=255)
    counted_at = DateTime(required=True)
    lines = HasMany(CountLine)
    status = String(choices=CountStatus, default=CountStatus.IN_PROGRESS.value)
    finalized_at = DateTime()
    finalized_by = String(max_length=255)

    @invariant.post
    def lines_must_reference_distinct_items(self):
        item_ids = [str(line.stock_item_id) for line in (self.lines or [])]
        if len(item_ids) != len(set(item_ids)):
            raise ValidationError({"lines": ["Each stock item can only be counted once per count"]})

    @classmethod
    def start(cls, tenant_id, counted_by, lines, counted_at=None):
        """Open a count.

        ``lines`` is an iterable of dicts with ``stock_item_id``,
        ``item_name``, ``sku``, ``system_quantity`` and ``counted_quantity``.
        """
        lines = list(lines)
        if not lines:
            raise ValidationError({"lines": ["A stock count needs at least one line"]})

        counted_at = counted_at or datetime.now(UTC)
        count = cls(
            tenant_id=tenant_id,
            counted_by=counted_by,
            counted_at=counted_at,
            status=CountStatus.IN_PROGRESS.value,
        )
        for line in lines:
            count.add_lines(
                CountLine(
                    stock_item_id=line["stock_item_id"],
                    item_name=line["item_name"],
                    sku=line["sku"],
                    system_quantity=line["system_quantity"],
                    counted_quantity=line["counted_quantity"],
                    variance=line["counted_quantity"] - line["system_quantity"],
                )
            )
        count.raise_(
            StockCountStarted(
                stock_count_id=str(count.id),
                tenant_id=str(tenant_id),
                counted_by=counted_by,
                line_count=len(lines),
                counted_at=counted_at,
            )
        )
        return count

    @property
    def is_in_progress(self):
        return CountStatus(self.status) == CountStatus.IN_PROGRESS

    def references(self, stock_item_id):
        return any(str(line.stock_item_id) == str(stock_item_id) for line in (self.lines or []))

    def ensure_open(self):
        if not self.is_in_progress:
            raise AlreadyFinalized(f"Stock count {self.id} has already been finalized and reconciled")

    def finalize(self, finalized_by, adjusted_items=0):
        """Close the count. Must be the last step of reconciliation."""
        self.ensure_open()
        now = datetime.now(UTC)
        self.status = CountStatus.FINALIZED.value
        self.finalized_at = now
        self.finalized_by = finalized_by
        self.raise_(
            StockCountFinalized(
                stock_count_id=str(self.id),
                tenant_id=str(self.tenant_id),
                finalized_by=finalized_by,
                adjusted_items=adjusted_items,
                finalized_at=now,
            )
        )
