"""Stock movement registration: command and handler.

Entries, exits and transfers go through here. Count adjustments do not: they
are issued only by reconciliation (see ``stockroom.count.lifecycle``).
"""

import structlog
from protean import handle
from protean.fields import Date, Identifier, Integer, String
from protean.utils.globals import current_domain

from stockroom.count.freeze import ensure_unlocked
from stockroom.domain import stockroom
from stockroom.stock.concurrency import serialized
from stockroom.stock.item import MovementType, StockItem

logger = structlog.get_logger(__name__)


@stockroom.command(part_of="StockItem")
class RegisterStockMovement:
    """Move stock into, out of, or across locations for one item."""

    tenant_id = Identifier(required=True)
    stock_item_id = Identifier(required=True)
    movement_type = String(required=True, choices=MovementType)
    quantity = Integer(required=True)
    user = String(required=True, max_length=255)
    destination = String(max_length=255)  # TRANSFER only
    lot_number = String(max_length=100)  # ENTRY only; opens a new batch
    expiry_date = Date()
    as_of = Date()  # Reference date for expiry checks, defaults to today


@stockroom.command_handler(part_of=StockItem)
class StockMovementHandler:
    @serialized(item_field="stock_item_id")
    @handle(RegisterStockMovement)
    def register_stock_movement(self, command):
        repo = current_domain.repository_for(StockItem)
        item = repo.get_for_tenant(command.stock_item_id, command.tenant_id)
        ensure_unlocked(command.tenant_id)

        movement = item.register_movement(
            movement_type=command.movement_type,
            quantity=command.quantity,
            user=command.user,
            destination=command.destination,
            lot_number=command.lot_number,
            expiry_date=command.expiry_date,
            today=command.as_of,
        )
        repo.add(item)

        logger.info(
            "Stock movement recorded",
            stock_item_id=str(item.id),
            tenant_id=str(command.tenant_id),
            movement_id=str(movement.id),
            movement_type=movement.movement_type,
            quantity=movement.quantity,
            new_quantity=item.quantity,
        )
        return str(movement.id)
