"""Domain events for the StockItem aggregate.

Events are versioned, immutable facts. The movement ledger inside the
aggregate is the forensic record; these events carry the same facts outward
to the outbox for any consumer that wants them.
"""

from protean.fields import Date, DateTime, Identifier, Integer, String, Text

from stockroom.domain import stockroom


@stockroom.event(part_of="StockItem")
class StockItemRegistered:
    """A tenant registered a new stock-tracked item."""

    __version__ = 1

    stock_item_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    name = String(required=True)
    sku = String(required=True)
    location = String()
    threshold = Integer(default=0)
    initial_quantity = Integer(default=0)
    lot_number = String(required=True)
    expiry_date = Date(required=True)
    registered_at = DateTime(required=True)


@stockroom.event(part_of="StockItem")
class StockMovementRecorded:
    """A quantity change was appended to the item's movement ledger."""

    __version__ = 1

    stock_item_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    movement_id = Identifier(required=True)
    movement_type = String(required=True)  # ENTRY, EXIT, TRANSFER, ADJUST_IN, ADJUST_OUT
    quantity = Integer(required=True)
    user = String(required=True)
    origin = String()
    destination = String()
    reason = String()
    batches_affected = Text()  # JSON array of batch ids
    new_quantity = Integer(default=0)
    occurred_at = DateTime(required=True)


@stockroom.event(part_of="StockItem")
class StockItemDetailsUpdated:
    """Descriptive metadata or the reorder threshold changed."""

    __version__ = 1

    stock_item_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    name = String(required=True)
    sku = String(required=True)
    location = String()
    threshold = Integer(default=0)
    updated_at = DateTime(required=True)


@stockroom.event(part_of="StockItem")
class StockItemArchived:
    """The item was retired; its ledger and batches are retained."""

    __version__ = 1

    stock_item_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    archived_at = DateTime(required=True)


@stockroom.event(part_of="StockItem")
class LowStockDetected:
    """Quantity is at or below the reorder threshold after a movement, count or threshold edit."""

    __version__ = 1

    stock_item_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    sku = String(required=True)
    current_quantity = Integer(default=0)
    threshold = Integer(default=0)
    detected_at = DateTime(required=True)
