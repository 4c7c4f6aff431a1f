"""Application tests for the physical count lifecycle and the freeze gate."""

import json
from datetime import UTC, date, datetime, timedelta

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from stockroom.count.count import CountStatus, StockCount
from stockroom.count.freeze import is_locked
from stockroom.count.lifecycle import ReconcileStockCount, StartStockCount
from stockroom.errors import AlreadyFinalized, CountNotFound, InventoryLocked, ItemNotFound, PermissionDenied
from stockroom.stock.item import MovementType, StockItem
from stockroom.stock.maintenance import UpdateStockItemDetails
from stockroom.stock.movement import RegisterStockMovement
from stockroom.stock.registration import CreateStockItem

TENANT = "tenant-001"


def _create_item(tenant_id=TENANT, **overrides):
    defaults = {
        "tenant_id": tenant_id,
        "name": "Catheters",
        "sku": "CAT-14",
        "threshold": 0,
        "initial_quantity": 10,
    }
    defaults.update(overrides)
    return current_domain.process(CreateStockItem(**defaults), asynchronous=False)


def _start_count(counts, tenant_id=TENANT):
    lines = [{"stock_item_id": item_id, "counted_quantity": qty} for item_id, qty in counts.items()]
    return current_domain.process(
        StartStockCount(tenant_id=tenant_id, counted_by="carol", lines=json.dumps(lines)),
        asynchronous=False,
    )


def _reconcile(count_id, tenant_id=TENANT):
    return current_domain.process(
        ReconcileStockCount(tenant_id=tenant_id, stock_count_id=count_id, reconciled_by="dave"),
        asynchronous=False,
    )


def _load(item_id):
    return current_domain.repository_for(StockItem).get(item_id)


class TestStartStockCount:
    def test_snapshots_system_quantity(self):
        item_id = _create_item(name="Gauze", sku="GZ-1")
        count_id = _start_count({item_id: 7})
        count = current_domain.repository_for(StockCount).get(count_id)
        line = count.lines[0]
        assert line.item_name == "Gauze"
        assert line.sku == "GZ-1"
        assert line.system_quantity == 10
        assert line.counted_quantity == 7
        assert line.variance == -3

    def test_locks_the_tenant(self):
        item_id = _create_item()
        assert not is_locked(TENANT)
        _start_count({item_id: 10})
        assert is_locked(TENANT)

    def test_unknown_item_is_rejected(self):
        with pytest.raises(ItemNotFound):
            _start_count({"no-such-item": 1})

    def test_item_of_other_tenant_is_rejected(self):
        item_id = _create_item(tenant_id="tenant-002")
        with pytest.raises(PermissionDenied):
            _start_count({item_id: 1})

    @pytest.mark.parametrize("raw", ["not json", "[1]", '["item"]', '{"stock_item_id": "x"}'])
    def test_malformed_lines_are_invalid_arguments(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            current_domain.process(
                StartStockCount(tenant_id=TENANT, counted_by="carol", lines=raw),
                asynchronous=False,
            )
        assert "lines" in exc_info.value.messages
        assert not is_locked(TENANT)


class TestFreezeGate:
    def test_movements_blocked_while_count_in_progress(self):
        item_id = _create_item()
        _start_count({item_id: 10})
        with pytest.raises(InventoryLocked):
            current_domain.process(
                RegisterStockMovement(
                    tenant_id=TENANT,
                    stock_item_id=item_id,
                    movement_type="EXIT",
                    quantity=1,
                    user="nurse-01",
                ),
                asynchronous=False,
            )
        assert _load(item_id).quantity == 10

    def test_items_outside_the_count_are_frozen_too(self):
        counted = _create_item(sku="A")
        uncounted = _create_item(sku="B")
        _start_count({counted: 10})
        with pytest.raises(InventoryLocked):
            current_domain.process(
                RegisterStockMovement(
                    tenant_id=TENANT,
                    stock_item_id=uncounted,
                    movement_type="ENTRY",
                    quantity=1,
                    user="nurse-01",
                ),
                asynchronous=False,
            )

    def test_detail_edits_blocked_while_count_in_progress(self):
        item_id = _create_item()
        _start_count({item_id: 10})
        with pytest.raises(InventoryLocked):
            current_domain.process(
                UpdateStockItemDetails(tenant_id=TENANT, stock_item_id=item_id, threshold=3),
                asynchronous=False,
            )

    def test_other_tenants_are_not_frozen(self):
        item_id = _create_item()
        other_id = _create_item(tenant_id="tenant-002")
        _start_count({item_id: 10})
        current_domain.process(
            RegisterStockMovement(
                tenant_id="tenant-002",
                stock_item_id=other_id,
                movement_type="EXIT",
                quantity=2,
                user="nurse-02",
            ),
            asynchronous=False,
        )
        assert _load(other_id).quantity == 8

    def test_reconciliation_lifts_the_freeze(self):
        item_id = _create_item()
        count_id = _start_count({item_id: 10})
        _reconcile(count_id)
        assert not is_locked(TENANT)


class TestReconcileStockCount:
    def test_overrides_quantity_with_counted(self):
        short = _create_item(sku="SHORT")
        over = _create_item(sku="OVER")
        count_id = _start_count({short: 7, over: 12})

        adjusted = _reconcile(count_id)

        assert adjusted == 2
        assert _load(short).quantity == 7
        assert _load(over).quantity == 12

    def test_records_adjustment_movements(self):
        short = _create_item(sku="SHORT")
        over = _create_item(sku="OVER")
        count_id = _start_count({short: 7, over: 12})
        _reconcile(count_id)

        out = _load(short).movement_history[-1]
        assert out.movement_type == MovementType.ADJUST_OUT.value
        assert out.quantity == 3
        assert out.user == "dave"
        assert out.reason == f"Inventory adjustment (count #{count_id})"

        inbound = _load(over).movement_history[-1]
        assert inbound.movement_type == MovementType.ADJUST_IN.value
        assert inbound.quantity == 2

    def test_zero_variance_records_nothing(self):
        item_id = _create_item()
        count_id = _start_count({item_id: 10})
        assert _reconcile(count_id) == 0
        assert len(_load(item_id).movements) == 1

    def test_finalizes_the_count(self):
        item_id = _create_item()
        count_id = _start_count({item_id: 9})
        _reconcile(count_id)
        count = current_domain.repository_for(StockCount).get(count_id)
        assert count.status == CountStatus.FINALIZED.value
        assert count.finalized_by == "dave"

    def test_second_reconcile_is_refused_without_side_effects(self):
        item_id = _create_item()
        count_id = _start_count({item_id: 6})
        _reconcile(count_id)

        with pytest.raises(AlreadyFinalized):
            _reconcile(count_id)

        item = _load(item_id)
        assert item.quantity == 6
        adjustments = [m for m in item.movements if m.movement_type == MovementType.ADJUST_OUT.value]
        assert len(adjustments) == 1

    def test_shortfall_writes_off_expired_lots(self):
        item_id = _create_item(lot_number="OLD", expiry_date=date(2020, 1, 1), initial_quantity=4)
        current_domain.process(
            RegisterStockMovement(
                tenant_id=TENANT,
                stock_item_id=item_id,
                movement_type="ENTRY",
                quantity=6,
                user="nurse-01",
                lot_number="NEW",
                expiry_date=date(2031, 1, 1),
            ),
            asynchronous=False,
        )
        count_id = _start_count({item_id: 6})
        _reconcile(count_id)

        item = _load(item_id)
        assert item.quantity == 6
        assert [b.lot_number for b in item.batches] == ["NEW"]

    def test_unknown_count(self):
        with pytest.raises(CountNotFound):
            _reconcile("no-such-count")

    def test_count_of_other_tenant_is_denied(self):
        item_id = _create_item()
        count_id = _start_count({item_id: 8})
        with pytest.raises(PermissionDenied):
            _reconcile(count_id, tenant_id="tenant-002")
        assert is_locked(TENANT)

    def test_counts_listed_newest_first(self):
        item_id = _create_item()
        first = _start_count({item_id: 10})
        _reconcile(first)
        second = _start_count({item_id: 10})

        counts = current_domain.repository_for(StockCount).for_tenant(TENANT)
        assert [str(c.id) for c in counts] == [second, first]


class TestLargeCounts:
    def test_every_line_of_a_large_count_is_reconciled(self):
        item_ids = [_create_item(sku=f"CAT-{n:03d}", initial_quantity=5) for n in range(110)]
        count_id = _start_count({item_id: 4 for item_id in item_ids})

        count = current_domain.repository_for(StockCount).get(count_id)
        assert len(count.lines) == 110

        assert _reconcile(count_id) == 110
        assert all(_load(item_id).quantity == 4 for item_id in item_ids)

    def test_tenant_listing_returns_every_count_newest_first(self):
        repo = current_domain.repository_for(StockCount)
        start = datetime(2030, 1, 1, tzinfo=UTC)
        line = {"stock_item_id": "item-1", "item_name": "Catheters", "sku": "CAT-14", "system_quantity": 1}
        for n in range(105):
            count = StockCount.start(
                tenant_id=TENANT,
                counted_by="carol",
                lines=[{**line, "counted_quantity": 1}],
                counted_at=start + timedelta(days=n),
            )
            count.finalize("dave")
            repo.add(count)

        counts = repo.for_tenant(TENANT)
        assert len(counts) == 105
        stamps = [count.counted_at for count in counts]
        assert stamps == sorted(stamps, reverse=True)
        assert stamps[0] > stamps[-1]
