"""Repository for the StockCount aggregate."""

from protean.exceptions import ObjectNotFoundError

from stockroom.count.count import CountStatus, StockCount
from stockroom.domain import stockroom
from stockroom.errors import CountNotFound, PermissionDenied


@stockroom.repository(part_of=StockCount)
class StockCountRepository:
    def get_for_tenant(self, stock_count_id, tenant_id) -> StockCount:
        try:
            count = self.get(stock_count_id)
        except ObjectNotFoundError:
            raise CountNotFound(f"Stock count {stock_count_id} not found") from None

        if str(count.tenant_id) != str(tenant_id):
            raise PermissionDenied(f"Stock count {stock_count_id} belongs to another tenant")
        return count

    def for_tenant(self, tenant_id) -> list[StockCount]:
        """All counts of a tenant, newest first."""
        counts = self._dao.query.filter(tenant_id=tenant_id).limit(None).all().items
        return sorted(counts, key=lambda count: count.counted_at, reverse=True)

    def in_progress_for_tenant(self, tenant_id) -> list[StockCount]:
        return self._dao.query.filter(tenant_id=tenant_id, status=CountStatus.IN_PROGRESS.value).limit(None).all().items

    def open_counts_referencing(self, tenant_id, stock_item_id) -> list[StockCount]:
        return [count for count in self.in_progress_for_tenant(tenant_id) if count.references(stock_item_id)]
