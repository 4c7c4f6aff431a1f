"""Fake requisition sink: in-memory purchasing for tests and development.

Requisitions stay Pending until resolved, which is how a test ends a
"still-low" episode. Failure can be switched on to exercise error paths.
"""

import threading
from uuid import uuid4

from stockroom.purchasing.port import ReplenishmentRequest, RequisitionSinkError, RequisitionSinkPort

PENDING = "Pending"
RESOLVED = "Resolved"


class RequisitionSinkUnavailable(RequisitionSinkError):
    """The sink refused the requisition."""


class FakeRequisitionSink(RequisitionSinkPort):
    """Fake sink that accepts every requisition by default."""

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Purchasing unavailable"
        self.requisitions = {}
        self._lock = threading.Lock()

    def configure(self, should_succeed: bool = True, failure_reason: str = "Purchasing unavailable"):
        """Configure the fake sink behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def has_pending_request(self, tenant_id: str, stock_item_id: str) -> bool:
        with self._lock:
            return any(
                entry["status"] == PENDING
                and entry["request"].tenant_id == str(tenant_id)
                and entry["request"].stock_item_id == str(stock_item_id)
                for entry in self.requisitions.values()
            )

    def submit(self, request: ReplenishmentRequest) -> str:
        if not self.should_succeed:
            raise RequisitionSinkUnavailable(self.failure_reason)
        requisition_id = f"req-{uuid4().hex[:8]}"
        with self._lock:
            self.requisitions[requisition_id] = {"request": request, "status": PENDING}
        return requisition_id

    def resolve(self, requisition_id: str):
        """Mark a requisition as handled by purchasing."""
        with self._lock:
            self.requisitions[requisition_id]["status"] = RESOLVED

    def requests_for(self, stock_item_id: str) -> list[ReplenishmentRequest]:
        with self._lock:
            return [
                entry["request"]
                for entry in self.requisitions.values()
                if entry["request"].stock_item_id == str(stock_item_id)
            ]
