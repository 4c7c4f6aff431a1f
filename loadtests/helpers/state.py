"""Per-user state tracking for Locust load test scenarios.

Each Locust user owns its tenant, so freezes caused by one user's counts
never block another user's movements.
"""

import uuid
from dataclasses import dataclass, field


def new_tenant_id() -> str:
    return f"tenant-lt-{uuid.uuid4().hex[:8]}"


@dataclass
class StockState:
    """Tracks the items of one simulated tenant and their expected quantities."""

    tenant_id: str = field(default_factory=new_tenant_id)
    quantities: dict[str, int] = field(default_factory=dict)

    def pick_item(self, rng) -> str | None:
        return rng.choice(list(self.quantities)) if self.quantities else None


@dataclass
class CountState:
    """Tracks an open physical count."""

    tenant_id: str = field(default_factory=new_tenant_id)
    item_ids: list[str] = field(default_factory=list)
    stock_count_id: str | None = None
