"""Faker-based payload generators for Locust load test scenarios.

Payloads match the field names of the Stockroom API's Pydantic schemas.
"""

import random
import uuid
from datetime import date, timedelta

from faker import Faker

fake = Faker()

CONSUMABLES = ["gloves", "gauze", "syringes", "masks", "catheters", "swabs", "bandages", "saline"]


def unique_sku() -> str:
    return f"LT-{uuid.uuid4().hex[:8].upper()}"


def stock_item_data(tenant_id: str, initial_quantity: int = 100) -> dict:
    data = {
        "tenant_id": tenant_id,
        "name": f"{fake.color_name()} {random.choice(CONSUMABLES)}",
        "sku": unique_sku(),
        "location": f"Shelf {random.choice('ABCDEF')}{random.randint(1, 9)}",
        "threshold": random.randint(0, 20),
        "initial_quantity": initial_quantity,
    }
    if random.random() < 0.5:
        data["lot_number"] = f"LOT-{uuid.uuid4().hex[:6].upper()}"
        data["expiry_date"] = lot_expiry().isoformat()
    return data


def lot_expiry() -> date:
    return date.today() + timedelta(days=random.randint(30, 720))


def entry_data(tenant_id: str, quantity: int) -> dict:
    data = {
        "tenant_id": tenant_id,
        "movement_type": "ENTRY",
        "quantity": quantity,
        "user": fake.user_name(),
    }
    if random.random() < 0.3:
        data["lot_number"] = f"LOT-{uuid.uuid4().hex[:6].upper()}"
        data["expiry_date"] = lot_expiry().isoformat()
    return data


def exit_data(tenant_id: str, quantity: int) -> dict:
    return {
        "tenant_id": tenant_id,
        "movement_type": "EXIT",
        "quantity": quantity,
        "user": fake.user_name(),
    }


def transfer_data(tenant_id: str, quantity: int) -> dict:
    return {
        "tenant_id": tenant_id,
        "movement_type": "TRANSFER",
        "quantity": quantity,
        "user": fake.user_name(),
        "destination": f"Ward {random.randint(1, 12)}",
    }


def count_data(tenant_id: str, counted: dict[str, int]) -> dict:
    return {
        "tenant_id": tenant_id,
        "counted_by": fake.name(),
        "lines": [{"stock_item_id": item_id, "counted_quantity": qty} for item_id, qty in counted.items()],
    }
