"""Replenishment signaler: asks purchasing to reorder low stock.

The aggregate raises ``LowStockDetected`` whenever an operation leaves an
item at or below its threshold. The event handler below reacts to it after
the unit of work has committed, so purchasing never hears about a stock
change that was rolled back.

At most one request is outstanding per item: while purchasing still holds a
pending auto-generated requisition, further decrements are silent. Once that
requisition is resolved, the next low observation signals again.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from stockroom.domain import stockroom
from stockroom.purchasing import get_requisition_sink
from stockroom.purchasing.port import ReplenishmentRequest, RequisitionSinkError
from stockroom.stock.events import LowStockDetected
from stockroom.stock.item import StockItem

logger = structlog.get_logger(__name__)

MINIMUM_REORDER_QUANTITY = 10


def reorder_quantity(threshold) -> int:
    return max(MINIMUM_REORDER_QUANTITY, (threshold or 0) * 2)


def signal_if_low(item, sink=None):
    """Emit one replenishment request if ``item`` is at or below threshold.

    Returns the submitted request, or None when nothing was emitted.
    """
    threshold = item.threshold or 0
    quantity = item.quantity
    if quantity > threshold:
        return None

    sink = sink or get_requisition_sink()
    if sink.has_pending_request(str(item.tenant_id), str(item.id)):
        logger.debug(
            "Replenishment already pending",
            stock_item_id=str(item.id),
            quantity=quantity,
            threshold=threshold,
        )
        return None

    request = ReplenishmentRequest(
        tenant_id=str(item.tenant_id),
        stock_item_id=str(item.id),
        description=item.name,
        requested_quantity=reorder_quantity(threshold),
        justification=f"Automatic alert: stock ({quantity}) reached the minimum level ({threshold}).",
    )
    requisition_id = sink.submit(request)
    logger.info(
        "Replenishment requested",
        stock_item_id=str(item.id),
        tenant_id=str(item.tenant_id),
        requisition_id=requisition_id,
        quantity=quantity,
        threshold=threshold,
        requested_quantity=request.requested_quantity,
    )
    return request


@stockroom.event_handler(part_of=StockItem)
class ReplenishmentEventHandler:
    """Runs the signaler against the committed state of a low item."""

    @handle(LowStockDetected)
    def on_low_stock_detected(self, event: LowStockDetected) -> None:
        try:
            item = current_domain.repository_for(StockItem).get(event.stock_item_id)
        except ObjectNotFoundError:
            logger.warning("Low stock reported for unknown item", stock_item_id=event.stock_item_id)
            return

        try:
            signal_if_low(item)
        except RequisitionSinkError as exc:
            # The stock change is already committed; the next low observation retries.
            logger.warning(
                "Replenishment request could not be delivered",
                stock_item_id=str(item.id),
                tenant_id=str(item.tenant_id),
                error=str(exc),
            )
