"""FastAPI routes for the Stockroom domain: stock items and physical counts."""

import json

from fastapi import APIRouter
from protean.utils.globals import current_domain

from stockroom.api.schemas import (
    BatchResponse,
    CountLineResponse,
    CreateStockItemRequest,
    FreezeResponse,
    MovementIdResponse,
    MovementResponse,
    ReconcileResponse,
    ReconcileStockCountRequest,
    RegisterMovementRequest,
    StartStockCountRequest,
    StatusResponse,
    StockCountIdResponse,
    StockCountResponse,
    StockItemDetailResponse,
    StockItemIdResponse,
    StockItemSummaryResponse,
    UpdateStockItemRequest,
)
from stockroom.count.count import StockCount
from stockroom.count.freeze import is_locked
from stockroom.count.lifecycle import ReconcileStockCount, StartStockCount
from stockroom.stock.item import StockItem
from stockroom.stock.maintenance import DeleteStockItem, UpdateStockItemDetails
from stockroom.stock.movement import RegisterStockMovement
from stockroom.stock.registration import CreateStockItem


def _item_summary(item) -> StockItemSummaryResponse:
    return StockItemSummaryResponse(
        stock_item_id=str(item.id),
        name=item.name,
        sku=item.sku,
        location=item.location,
        quantity=item.quantity,
        threshold=item.threshold or 0,
    )


def _item_detail(item) -> StockItemDetailResponse:
    return StockItemDetailResponse(
        **_item_summary(item).model_dump(),
        batches=[
            BatchResponse(
                batch_id=str(batch.id),
                lot_number=batch.lot_number,
                expiry_date=batch.expiry_date,
                quantity=batch.quantity,
            )
            for batch in item.ordered_batches
        ],
        movements=[
            MovementResponse(
                movement_id=str(movement.id),
                movement_type=movement.movement_type,
                quantity=movement.quantity,
                user=movement.user,
                origin=movement.origin,
                destination=movement.destination,
                reason=movement.reason,
                batches_affected=movement.batch_ids,
                occurred_at=movement.occurred_at,
            )
            for movement in item.movement_history
        ],
    )


def _count_view(count) -> StockCountResponse:
    return StockCountResponse(
        stock_count_id=str(count.id),
        counted_by=count.counted_by,
        counted_at=count.counted_at,
        status=count.status,
        finalized_at=count.finalized_at,
        finalized_by=count.finalized_by,
        lines=[
            CountLineResponse(
                stock_item_id=str(line.stock_item_id),
                item_name=line.item_name,
                sku=line.sku,
                system_quantity=line.system_quantity,
                counted_quantity=line.counted_quantity,
                variance=line.variance,
            )
            for line in count.lines
        ],
    )


# ---------------------------------------------------------------------------
# Stock Item Router
# ---------------------------------------------------------------------------
stock_router = APIRouter(prefix="/stock", tags=["stock"])


@stock_router.post("", status_code=201, response_model=StockItemIdResponse)
async def create_stock_item(body: CreateStockItemRequest) -> StockItemIdResponse:
    command = CreateStockItem(
        tenant_id=body.tenant_id,
        name=body.name,
        sku=body.sku,
        location=body.location,
        threshold=body.threshold,
        initial_quantity=body.initial_quantity,
        lot_number=body.lot_number,
        expiry_date=body.expiry_date,
    )
    result = current_domain.process(command, asynchronous=False)
    return StockItemIdResponse(stock_item_id=result)


@stock_router.get("", response_model=list[StockItemSummaryResponse])
async def list_stock_items(tenant_id: str) -> list[StockItemSummaryResponse]:
    items = current_domain.repository_for(StockItem).for_tenant(tenant_id)
    return [_item_summary(item) for item in items]


@stock_router.get("/{stock_item_id}", response_model=StockItemDetailResponse)
async def get_stock_item(stock_item_id: str, tenant_id: str) -> StockItemDetailResponse:
    item = current_domain.repository_for(StockItem).get_for_tenant(stock_item_id, tenant_id)
    return _item_detail(item)


@stock_router.post("/{stock_item_id}/movements", status_code=201, response_model=MovementIdResponse)
async def register_movement(stock_item_id: str, body: RegisterMovementRequest) -> MovementIdResponse:
    command = RegisterStockMovement(
        tenant_id=body.tenant_id,
        stock_item_id=stock_item_id,
        movement_type=body.movement_type,
        quantity=body.quantity,
        user=body.user,
        destination=body.destination,
        lot_number=body.lot_number,
        expiry_date=body.expiry_date,
        as_of=body.as_of,
    )
    result = current_domain.process(command, asynchronous=False)
    return MovementIdResponse(movement_id=result)


@stock_router.put("/{stock_item_id}", response_model=StatusResponse)
async def update_stock_item(stock_item_id: str, body: UpdateStockItemRequest) -> StatusResponse:
    command = UpdateStockItemDetails(
        tenant_id=body.tenant_id,
        stock_item_id=stock_item_id,
        name=body.name,
        sku=body.sku,
        location=body.location,
        threshold=body.threshold,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@stock_router.delete("/{stock_item_id}", response_model=StatusResponse)
async def delete_stock_item(stock_item_id: str, tenant_id: str) -> StatusResponse:
    command = DeleteStockItem(tenant_id=tenant_id, stock_item_id=stock_item_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Stock Count Router
# ---------------------------------------------------------------------------
count_router = APIRouter(prefix="/stock-counts", tags=["stock-counts"])


@count_router.post("", status_code=201, response_model=StockCountIdResponse)
async def start_stock_count(body: StartStockCountRequest) -> StockCountIdResponse:
    command = StartStockCount(
        tenant_id=body.tenant_id,
        counted_by=body.counted_by,
        lines=json.dumps([line.model_dump() for line in body.lines]),
    )
    result = current_domain.process(command, asynchronous=False)
    return StockCountIdResponse(stock_count_id=result)


@count_router.get("", response_model=list[StockCountResponse])
async def list_stock_counts(tenant_id: str) -> list[StockCountResponse]:
    counts = current_domain.repository_for(StockCount).for_tenant(tenant_id)
    return [_count_view(count) for count in counts]


@count_router.get("/freeze", response_model=FreezeResponse)
async def freeze_status(tenant_id: str) -> FreezeResponse:
    return FreezeResponse(tenant_id=tenant_id, locked=is_locked(tenant_id))


@count_router.get("/{stock_count_id}", response_model=StockCountResponse)
async def get_stock_count(stock_count_id: str, tenant_id: str) -> StockCountResponse:
    count = current_domain.repository_for(StockCount).get_for_tenant(stock_count_id, tenant_id)
    return _count_view(count)


@count_router.put("/{stock_count_id}/reconcile", response_model=ReconcileResponse)
async def reconcile_stock_count(stock_count_id: str, body: ReconcileStockCountRequest) -> ReconcileResponse:
    command = ReconcileStockCount(
        tenant_id=body.tenant_id,
        stock_count_id=stock_count_id,
        reconciled_by=body.reconciled_by,
    )
    adjusted_items = current_domain.process(command, asynchronous=False)
    return ReconcileResponse(adjusted_items=adjusted_items)
