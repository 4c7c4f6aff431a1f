"""Physical count load test scenarios.

Exercises the freeze gate under load: while a count is open every movement
of the tenant must come back as 409 InventoryLocked.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import count_data, exit_data, stock_item_data
from loadtests.helpers.response import error_kind, extract_error_detail
from loadtests.helpers.state import CountState


class StockCountJourney(SequentialTaskSet):
    """Register items -> start count -> probe freeze -> reconcile -> reconcile again."""

    def on_start(self):
        self.state = CountState()

    @task
    def register_items(self):
        for _ in range(random.randint(2, 5)):
            with self.client.post(
                "/stock",
                json=stock_item_data(self.state.tenant_id, initial_quantity=50),
                catch_response=True,
                name="POST /stock",
            ) as resp:
                if resp.status_code == 201:
                    self.state.item_ids.append(resp.json()["stock_item_id"])
                else:
                    resp.failure(f"Create item failed: {resp.status_code} — {extract_error_detail(resp)}")
                    self.interrupt()

    @task
    def start_count(self):
        counted = {item_id: random.randint(40, 60) for item_id in self.state.item_ids}
        with self.client.post(
            "/stock-counts",
            json=count_data(self.state.tenant_id, counted),
            catch_response=True,
            name="POST /stock-counts",
        ) as resp:
            if resp.status_code == 201:
                self.state.stock_count_id = resp.json()["stock_count_id"]
            else:
                resp.failure(f"Start count failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def probe_freeze(self):
        item_id = random.choice(self.state.item_ids)
        with self.client.post(
            f"/stock/{item_id}/movements",
            json=exit_data(self.state.tenant_id, 1),
            catch_response=True,
            name="POST /stock/{id}/movements [frozen]",
        ) as resp:
            if resp.status_code == 409 and error_kind(resp) == "InventoryLocked":
                resp.success()
            else:
                resp.failure(f"Movement was not frozen: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def reconcile(self):
        with self.client.put(
            f"/stock-counts/{self.state.stock_count_id}/reconcile",
            json={"tenant_id": self.state.tenant_id, "reconciled_by": "loadtest"},
            catch_response=True,
            name="PUT /stock-counts/{id}/reconcile",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Reconcile failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def reconcile_again(self):
        with self.client.put(
            f"/stock-counts/{self.state.stock_count_id}/reconcile",
            json={"tenant_id": self.state.tenant_id, "reconciled_by": "loadtest"},
            catch_response=True,
            name="PUT /stock-counts/{id}/reconcile [again]",
        ) as resp:
            if resp.status_code == 409 and error_kind(resp) == "AlreadyFinalized":
                resp.success()
            else:
                resp.failure(f"Second reconcile not refused: {resp.status_code} — {extract_error_detail(resp)}")
        self.interrupt()


class StockCountUser(HttpUser):
    wait_time = between(1, 3)
    tasks = [StockCountJourney]
