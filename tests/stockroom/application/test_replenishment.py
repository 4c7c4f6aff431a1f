"""Tests for the replenishment signaler and its handler wiring."""

import json

import pytest
from protean import current_domain
from protean.core.unit_of_work import UnitOfWork

from stockroom.count.lifecycle import ReconcileStockCount, StartStockCount
from stockroom.purchasing.fake_adapter import PENDING
from stockroom.stock.item import StockItem
from stockroom.stock.maintenance import UpdateStockItemDetails
from stockroom.stock.movement import RegisterStockMovement
from stockroom.stock.registration import CreateStockItem
from stockroom.stock.replenishment import reorder_quantity, signal_if_low

TENANT = "tenant-001"


def _create_item(**overrides):
    defaults = {
        "tenant_id": TENANT,
        "name": "IV sets",
        "sku": "IV-01",
        "threshold": 3,
        "initial_quantity": 10,
    }
    defaults.update(overrides)
    return current_domain.process(CreateStockItem(**defaults), asynchronous=False)


def _exit(item_id, quantity):
    return current_domain.process(
        RegisterStockMovement(
            tenant_id=TENANT,
            stock_item_id=item_id,
            movement_type="EXIT",
            quantity=quantity,
            user="nurse-01",
        ),
        asynchronous=False,
    )


class TestReorderQuantity:
    @pytest.mark.parametrize(
        "threshold, expected",
        [(0, 10), (3, 10), (5, 10), (6, 12), (40, 80)],
    )
    def test_twice_threshold_with_floor_of_ten(self, threshold, expected):
        assert reorder_quantity(threshold) == expected


class TestSignalIfLow:
    def test_no_signal_above_threshold(self, sink):
        item_id = _create_item()
        item = current_domain.repository_for(StockItem).get(item_id)
        assert signal_if_low(item, sink) is None
        assert sink.requisitions == {}

    def test_signal_carries_item_and_justification(self, sink):
        item = StockItem.create(tenant_id=TENANT, name="Gowns", sku="GWN", threshold=6, initial_quantity=4)
        request = signal_if_low(item, sink)
        assert request.stock_item_id == str(item.id)
        assert request.description == "Gowns"
        assert request.requested_quantity == 12
        assert request.justification == "Automatic alert: stock (4) reached the minimum level (6)."


class TestReplenishmentOnMovements:
    def test_exit_reaching_threshold_signals_once(self, sink):
        item_id = _create_item()
        _exit(item_id, 7)

        requests = sink.requests_for(item_id)
        assert len(requests) == 1
        assert requests[0].requested_quantity == 10

    def test_no_duplicate_while_request_pending(self, sink):
        item_id = _create_item()
        _exit(item_id, 7)
        _exit(item_id, 1)
        _exit(item_id, 1)
        assert len(sink.requests_for(item_id)) == 1

    def test_signals_again_after_request_resolved(self, sink):
        item_id = _create_item()
        _exit(item_id, 7)
        (requisition_id,) = list(sink.requisitions)
        sink.resolve(requisition_id)

        _exit(item_id, 1)
        assert len(sink.requests_for(item_id)) == 2

    def test_pending_request_is_tracked(self, sink):
        item_id = _create_item()
        _exit(item_id, 8)
        (entry,) = sink.requisitions.values()
        assert entry["status"] == PENDING
        assert sink.has_pending_request(TENANT, item_id)

    def test_sink_failure_does_not_undo_movement(self, sink):
        sink.configure(should_succeed=False)
        item_id = _create_item()
        _exit(item_id, 8)
        assert current_domain.repository_for(StockItem).get(item_id).quantity == 2
        assert sink.requisitions == {}

    def test_no_request_when_the_stock_change_is_not_committed(self, sink, monkeypatch):
        item_id = _create_item()

        def failing_commit(uow):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(UnitOfWork, "commit", failing_commit)
        with pytest.raises(RuntimeError):
            _exit(item_id, 8)
        monkeypatch.undo()

        assert sink.requisitions == {}
        assert current_domain.repository_for(StockItem).get(item_id).quantity == 10

    def test_raising_threshold_signals(self, sink):
        item_id = _create_item()
        current_domain.process(
            UpdateStockItemDetails(tenant_id=TENANT, stock_item_id=item_id, threshold=10),
            asynchronous=False,
        )
        requests = sink.requests_for(item_id)
        assert len(requests) == 1
        assert requests[0].requested_quantity == 20

    def test_reconciliation_signals_adjusted_items(self, sink):
        item_id = _create_item()
        count_id = current_domain.process(
            StartStockCount(
                tenant_id=TENANT,
                counted_by="carol",
                lines=json.dumps([{"stock_item_id": item_id, "counted_quantity": 2}]),
            ),
            asynchronous=False,
        )
        current_domain.process(
            ReconcileStockCount(tenant_id=TENANT, stock_count_id=count_id, reconciled_by="dave"),
            asynchronous=False,
        )
        assert len(sink.requests_for(item_id)) == 1


class TestReplenishmentReferenceScenario:
    def test_one_signal_per_low_stock_episode(self, sink):
        item_id = _create_item(threshold=5, initial_quantity=6)

        _exit(item_id, 2)
        requests = sink.requests_for(item_id)
        assert len(requests) == 1
        assert requests[0].requested_quantity == 10

        _exit(item_id, 1)
        assert len(sink.requests_for(item_id)) == 1
        assert current_domain.repository_for(StockItem).get(item_id).quantity == 3
