"""Stock count lifecycle: opening a count and reconciling it.

Both commands hold the tenant gate exclusively. That excludes every item
writer of the tenant for the whole reconciliation, so the adjustments and
the finalization land as one atomic step: a concurrent reconcile of the same
count either wins entirely or finds it already Finalized.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from stockroom.count.count import StockCount
from stockroom.domain import stockroom
from stockroom.errors import ItemNotFound
from stockroom.stock.concurrency import serialized
from stockroom.stock.item import StockItem

logger = structlog.get_logger(__name__)


@stockroom.command(part_of="StockCount")
class StartStockCount:
    """Open a physical count for a tenant.

    ``lines`` is a JSON array of ``{"stock_item_id", "counted_quantity"}``.
    System quantities are snapshotted by the handler.
    """

    tenant_id = Identifier(required=True)
    counted_by = String(required=True, max_length=255)
    lines = Text(required=True)
    counted_at = DateTime()


@stockroom.command(part_of="StockCount")
class ReconcileStockCount:
    tenant_id = Identifier(required=True)
    stock_count_id = Identifier(required=True)
    reconciled_by = String(required=True, max_length=255)


def _parse_lines(raw):
    try:
        entries = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError:
        raise ValidationError({"lines": ["Count lines must be valid JSON"]}) from None
    if not isinstance(entries, list):
        raise ValidationError({"lines": ["Count lines must be a list"]})

    parsed = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValidationError({"lines": ["Each count line must be an object"]})
        counted = entry.get("counted_quantity")
        if not entry.get("stock_item_id"):
            raise ValidationError({"lines": ["Each count line needs a stock_item_id"]})
        if not isinstance(counted, int) or isinstance(counted, bool) or counted < 0:
            raise ValidationError({"lines": ["Counted quantity must be a non-negative integer"]})
        parsed.append((str(entry["stock_item_id"]), counted))
    return parsed


@stockroom.command_handler(part_of=StockCount)
class StockCountLifecycleHandler:
    @serialized(exclusive_tenant=True)
    @handle(StartStockCount)
    def start_stock_count(self, command):
        item_repo = current_domain.repository_for(StockItem)

        lines = []
        for stock_item_id, counted_quantity in _parse_lines(command.lines):
            item = item_repo.get_for_tenant(stock_item_id, command.tenant_id)
            lines.append(
                {
                    "stock_item_id": stock_item_id,
                    "item_name": item.name,
                    "sku": item.sku,
                    "system_quantity": item.quantity,
                    "counted_quantity": counted_quantity,
                }
            )

        count = StockCount.start(
            tenant_id=command.tenant_id,
            counted_by=command.counted_by,
            lines=lines,
            counted_at=command.counted_at,
        )
        current_domain.repository_for(StockCount).add(count)

        logger.info(
            "Stock count started",
            stock_count_id=str(count.id),
            tenant_id=str(command.tenant_id),
            line_count=len(lines),
        )
        return str(count.id)

    @serialized(exclusive_tenant=True)
    @handle(ReconcileStockCount)
    def reconcile_stock_count(self, command):
        count_repo = current_domain.repository_for(StockCount)
        item_repo = current_domain.repository_for(StockItem)

        count = count_repo.get_for_tenant(command.stock_count_id, command.tenant_id)
        count.ensure_open()

        reason = f"Inventory adjustment (count #{count.id})"
        adjusted = []
        for line in count.lines:
            if line.variance == 0:
                continue
            try:
                item = item_repo.get_for_tenant(line.stock_item_id, command.tenant_id)
            except ItemNotFound:
                logger.warning(
                    "Counted item no longer exists, skipping adjustment",
                    stock_count_id=str(count.id),
                    stock_item_id=str(line.stock_item_id),
                )
                continue

            item.apply_count_adjustment(
                counted_quantity=line.counted_quantity,
                variance=line.variance,
                user=command.reconciled_by,
                reason=reason,
            )
            item_repo.add(item)
            adjusted.append(item)

        count.finalize(command.reconciled_by, adjusted_items=len(adjusted))
        count_repo.add(count)

        logger.info(
            "Stock count reconciled",
            stock_count_id=str(count.id),
            tenant_id=str(command.tenant_id),
            adjusted_items=len(adjusted),
        )
        return len(adjusted)
