"""Stockroom bounded context: Inventory & Stock Movement Engine.

Tracks consumable stock in lots (FEFO consumption), keeps an append-only
movement ledger per item, reconciles physical counts, freezes a tenant's
inventory while a count is in progress, and signals replenishment to
purchasing when stock runs low.
"""

import structlog
from protean.domain import Domain

from stockroom.utils.logging import configure_logging

configure_logging()

logger = structlog.get_logger(__name__)

stockroom = Domain(name="stockroom")
