"""Domain events for the StockCount aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from stockroom.domain import stockroom


@stockroom.event(part_of="StockCount")
class StockCountStarted:
    """A physical count opened; the tenant's inventory is frozen."""

    __version__ = 1

    stock_count_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    counted_by = String(required=True)
    line_count = Integer(default=0)
    counted_at = DateTime(required=True)


@stockroom.event(part_of="StockCount")
class StockCountFinalized:
    """A count was reconciled; the freeze lifts once no other count is open."""

    __version__ = 1

    stock_count_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    finalized_by = String(required=True)
    adjusted_items = Integer(default=0)
    finalized_at = DateTime(required=True)
