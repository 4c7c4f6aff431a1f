"""Stock item maintenance: detail edits and deletion."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from stockroom.count.count import StockCount
from stockroom.count.freeze import ensure_unlocked
from stockroom.domain import stockroom
from stockroom.errors import InventoryLocked
from stockroom.stock.concurrency import serialized
from stockroom.stock.item import StockItem

logger = structlog.get_logger(__name__)


@stockroom.command(part_of="StockItem")
class UpdateStockItemDetails:
    """Edit an item's descriptive fields. Omitted fields are left unchanged."""

    tenant_id = Identifier(required=True)
    stock_item_id = Identifier(required=True)
    name = String(max_length=255)
    sku = String(max_length=50)
    location = String(max_length=255)
    threshold = Integer()


@stockroom.command(part_of="StockItem")
class DeleteStockItem:
    tenant_id = Identifier(required=True)
    stock_item_id = Identifier(required=True)


@stockroom.command_handler(part_of=StockItem)
class StockItemMaintenanceHandler:
    @serialized(item_field="stock_item_id")
    @handle(UpdateStockItemDetails)
    def update_stock_item_details(self, command):
        repo = current_domain.repository_for(StockItem)
        item = repo.get_for_tenant(command.stock_item_id, command.tenant_id)
        ensure_unlocked(command.tenant_id)

        item.update_details(
            name=command.name,
            sku=command.sku,
            location=command.location,
            threshold=command.threshold,
        )
        repo.add(item)

        logger.info(
            "Stock item details updated",
            stock_item_id=str(item.id),
            tenant_id=str(command.tenant_id),
        )

    @serialized(item_field="stock_item_id")
    @handle(DeleteStockItem)
    def delete_stock_item(self, command):
        repo = current_domain.repository_for(StockItem)
        item = repo.get_for_tenant(command.stock_item_id, command.tenant_id)

        open_counts = current_domain.repository_for(StockCount).open_counts_referencing(
            command.tenant_id, command.stock_item_id
        )
        if open_counts:
            raise InventoryLocked(
                f"Stock item {command.stock_item_id} is referenced by an in-progress count and cannot be deleted"
            )

        item.archive()
        repo.add(item)

        logger.info(
            "Stock item archived",
            stock_item_id=str(item.id),
            tenant_id=str(command.tenant_id),
            quantity=item.quantity,
        )
