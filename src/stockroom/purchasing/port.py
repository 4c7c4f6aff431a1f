"""Requisition sink port: outbound interface to the purchasing subsystem.

The stock engine only raises replenishment requests and asks whether one is
still pending. Approval, quotation and ordering belong to purchasing.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class RequisitionSinkError(Exception):
    """The sink could not accept a requisition."""


@dataclass(frozen=True)
class ReplenishmentRequest:
    """An automatic purchase requisition for one low-stock item."""

    tenant_id: str
    stock_item_id: str
    description: str
    requested_quantity: int
    justification: str


class RequisitionSinkPort(ABC):
    """Abstract interface for requisition sink adapters."""

    @abstractmethod
    def has_pending_request(self, tenant_id: str, stock_item_id: str) -> bool:
        """Whether a pending auto-generated requisition already covers the item."""
        ...

    @abstractmethod
    def submit(self, request: ReplenishmentRequest) -> str:
        """Deliver a requisition.

        Raises RequisitionSinkError when purchasing refuses it.

        Returns:
            The requisition id assigned by purchasing.
        """
        ...
