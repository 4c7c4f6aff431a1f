"""Stock movement load test scenarios.

A tenant registers a handful of items, then keeps receiving, issuing and
transferring stock against them.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import entry_data, exit_data, stock_item_data, transfer_data
from loadtests.helpers.response import error_kind, extract_error_detail
from loadtests.helpers.state import StockState

# Refusals that are expected outcomes under random load
EXPECTED_REFUSALS = {"InsufficientStock", "InsufficientValidStock"}


class StockMovementJourney(SequentialTaskSet):
    """Register items -> receive -> issue -> transfer -> read back."""

    def on_start(self):
        self.state = StockState()

    @task
    def register_items(self):
        for _ in range(3):
            with self.client.post(
                "/stock",
                json=stock_item_data(self.state.tenant_id),
                catch_response=True,
                name="POST /stock",
            ) as resp:
                if resp.status_code == 201:
                    self.state.quantities[resp.json()["stock_item_id"]] = 100
                else:
                    resp.failure(f"Create item failed: {resp.status_code} — {extract_error_detail(resp)}")
                    self.interrupt()

    @task
    def receive(self):
        item_id = self.state.pick_item(random)
        qty = random.randint(5, 50)
        with self.client.post(
            f"/stock/{item_id}/movements",
            json=entry_data(self.state.tenant_id, qty),
            catch_response=True,
            name="POST /stock/{id}/movements [ENTRY]",
        ) as resp:
            if resp.status_code == 201:
                self.state.quantities[item_id] += qty
            else:
                resp.failure(f"Entry failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def issue(self):
        self._outbound(exit_data, "EXIT")

    @task
    def transfer(self):
        self._outbound(transfer_data, "TRANSFER")

    def _outbound(self, payload_fn, label):
        item_id = self.state.pick_item(random)
        qty = random.randint(1, 40)
        with self.client.post(
            f"/stock/{item_id}/movements",
            json=payload_fn(self.state.tenant_id, qty),
            catch_response=True,
            name=f"POST /stock/{{id}}/movements [{label}]",
        ) as resp:
            if resp.status_code == 201:
                self.state.quantities[item_id] -= qty
            elif resp.status_code == 409 and error_kind(resp) in EXPECTED_REFUSALS:
                resp.success()
            else:
                resp.failure(f"{label} failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def read_back(self):
        item_id = self.state.pick_item(random)
        with self.client.get(
            f"/stock/{item_id}",
            params={"tenant_id": self.state.tenant_id},
            catch_response=True,
            name="GET /stock/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Read failed: {resp.status_code} — {extract_error_detail(resp)}")
            elif resp.json()["quantity"] != self.state.quantities[item_id]:
                resp.failure("Quantity drifted from the movements this user registered")
        self.interrupt()


class StockUser(HttpUser):
    wait_time = between(0.5, 2)
    tasks = [StockMovementJourney]
