"""Repository for the StockItem aggregate: tenant-scoped lookups."""

from protean.exceptions import ObjectNotFoundError

from stockroom.domain import stockroom
from stockroom.errors import ItemNotFound, PermissionDenied
from stockroom.stock.item import StockItem


@stockroom.repository(part_of=StockItem)
class StockItemRepository:
    def get_for_tenant(self, stock_item_id, tenant_id, include_archived=False) -> StockItem:
        """Load an item on behalf of a tenant.

        Raises ItemNotFound for unknown (or archived) ids and PermissionDenied
        when the item belongs to another tenant.
        """
        try:
            item = self.get(stock_item_id)
        except ObjectNotFoundError:
            raise ItemNotFound(f"Stock item {stock_item_id} not found") from None

        if str(item.tenant_id) != str(tenant_id):
            raise PermissionDenied(f"Stock item {stock_item_id} belongs to another tenant")
        if item.is_archived and not include_archived:
            raise ItemNotFound(f"Stock item {stock_item_id} has been archived")
        return item

    def for_tenant(self, tenant_id) -> list[StockItem]:
        """Active items of a tenant, sorted by name."""
        items = self._dao.query.filter(tenant_id=tenant_id, is_archived=False).limit(None).all().items
        return sorted(items, key=lambda item: (item.name or "").lower())
