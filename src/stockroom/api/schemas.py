"""Pydantic request/response schemas for the Stockroom API.

These are external contracts, kept separate from the Protean commands.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Stock item requests
# ---------------------------------------------------------------------------
class CreateStockItemRequest(BaseModel):
    tenant_id: str
    name: str
    sku: str
    location: str | None = None
    threshold: int = Field(ge=0, default=0)
    initial_quantity: int = Field(ge=0, default=0)
    lot_number: str | None = None
    expiry_date: date | None = None


class RegisterMovementRequest(BaseModel):
    tenant_id: str
    movement_type: str
    quantity: int
    user: str
    destination: str | None = None
    lot_number: str | None = None
    expiry_date: date | None = None
    as_of: date | None = None


class UpdateStockItemRequest(BaseModel):
    tenant_id: str
    name: str | None = None
    sku: str | None = None
    location: str | None = None
    threshold: int | None = Field(ge=0, default=None)


# ---------------------------------------------------------------------------
# Stock count requests
# ---------------------------------------------------------------------------
class CountLineRequest(BaseModel):
    stock_item_id: str
    counted_quantity: int = Field(ge=0)


class StartStockCountRequest(BaseModel):
    tenant_id: str
    counted_by: str
    lines: list[CountLineRequest] = Field(min_length=1)


class ReconcileStockCountRequest(BaseModel):
    tenant_id: str
    reconciled_by: str


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class StockItemIdResponse(BaseModel):
    stock_item_id: str


class MovementIdResponse(BaseModel):
    movement_id: str


class StockCountIdResponse(BaseModel):
    stock_count_id: str


class StatusResponse(BaseModel):
    status: str = "ok"


class ReconcileResponse(BaseModel):
    status: str = "ok"
    adjusted_items: int


class FreezeResponse(BaseModel):
    tenant_id: str
    locked: bool


class BatchResponse(BaseModel):
    batch_id: str
    lot_number: str
    expiry_date: date
    quantity: int


class MovementResponse(BaseModel):
    movement_id: str
    movement_type: str
    quantity: int
    user: str
    origin: str | None = None
    destination: str | None = None
    reason: str | None = None
    batches_affected: list[str]
    occurred_at: datetime


class StockItemSummaryResponse(BaseModel):
    stock_item_id: str
    name: str
    sku: str
    location: str | None = None
    quantity: int
    threshold: int


class StockItemDetailResponse(StockItemSummaryResponse):
    batches: list[BatchResponse]
    movements: list[MovementResponse]


class CountLineResponse(BaseModel):
    stock_item_id: str
    item_name: str
    sku: str
    system_quantity: int
    counted_quantity: int
    variance: int


class StockCountResponse(BaseModel):
    stock_count_id: str
    counted_by: str
    counted_at: datetime
    status: str
    finalized_at: datetime | None = None
    finalized_by: str | None = None
    lines: list[CountLineResponse]
