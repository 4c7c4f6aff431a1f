"""Stock item registration: command and handler."""

import structlog
from protean import handle
from protean.fields import Date, Identifier, Integer, String
from protean.utils.globals import current_domain

from stockroom.count.freeze import ensure_unlocked
from stockroom.domain import stockroom
from stockroom.stock.concurrency import serialized
from stockroom.stock.item import StockItem

logger = structlog.get_logger(__name__)


@stockroom.command(part_of="StockItem")
class CreateStockItem:
    """Register a new stock item with its opening balance."""

    tenant_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(required=True, max_length=50)
    location = String(max_length=255)
    threshold = Integer(default=0)
    initial_quantity = Integer(default=0)
    lot_number = String(max_length=100)  # Optional; requires expiry_date
    expiry_date = Date()


@stockroom.command_handler(part_of=StockItem)
class StockItemRegistrationHandler:
    @serialized()
    @handle(CreateStockItem)
    def create_stock_item(self, command):
        ensure_unlocked(command.tenant_id)

        item = StockItem.create(
            tenant_id=command.tenant_id,
            name=command.name,
            sku=command.sku,
            location=command.location,
            threshold=command.threshold,
            initial_quantity=command.initial_quantity,
            lot_number=command.lot_number,
            expiry_date=command.expiry_date,
        )
        current_domain.repository_for(StockItem).add(item)

        logger.info(
            "Stock item registered",
            stock_item_id=str(item.id),
            tenant_id=str(command.tenant_id),
            sku=command.sku,
            initial_quantity=command.initial_quantity,
        )
        return str(item.id)
