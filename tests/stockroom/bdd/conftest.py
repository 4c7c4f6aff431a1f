"""Shared BDD fixtures and step definitions for the Stockroom domain."""

from datetime import date

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when

from stockroom.errors import InventoryLocked
from stockroom.stock.item import StockItem
from stockroom.stock.movement import RegisterStockMovement
from stockroom.stock.registration import CreateStockItem

TENANT = "tenant-bdd"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def items():
    """Stock item ids by name."""
    return {}


@pytest.fixture()
def outcome():
    """Container for the exception raised by the last When step."""
    return {"exc": None}


def _load(items, name):
    return current_domain.repository_for(StockItem).get(items[name])


def _issue(items, outcome, name, quantity, as_of=None):
    try:
        current_domain.process(
            RegisterStockMovement(
                tenant_id=TENANT,
                stock_item_id=items[name],
                movement_type="EXIT",
                quantity=quantity,
                user="nurse-bdd",
                as_of=as_of,
            ),
            asynchronous=False,
        )
    except (ValidationError, InventoryLocked) as exc:
        outcome["exc"] = exc


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a stock item "{name}" with {quantity:d} units'))
def stock_item(items, name, quantity):
    items[name] = current_domain.process(
        CreateStockItem(tenant_id=TENANT, name=name, sku=name.upper(), initial_quantity=quantity),
        asynchronous=False,
    )


@given(parsers.cfparse('a stock item "{name}" with {quantity:d} units and a threshold of {threshold:d}'))
def stock_item_with_threshold(items, name, quantity, threshold):
    items[name] = current_domain.process(
        CreateStockItem(
            tenant_id=TENANT,
            name=name,
            sku=name.upper(),
            initial_quantity=quantity,
            threshold=threshold,
        ),
        asynchronous=False,
    )


@given(parsers.cfparse('a stock item "{name}" with lot "{lot}" of {quantity:d} units expiring {expiry}'))
def stock_item_with_lot(items, name, lot, quantity, expiry):
    items[name] = current_domain.process(
        CreateStockItem(
            tenant_id=TENANT,
            name=name,
            sku=name.upper(),
            initial_quantity=quantity,
            lot_number=lot,
            expiry_date=date.fromisoformat(expiry),
        ),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('{quantity:d} units of "{name}" are issued'))
def issue_units(items, outcome, name, quantity):
    _issue(items, outcome, name, quantity)


@when(parsers.cfparse('{quantity:d} units of "{name}" are issued on {as_of}'))
def issue_units_on(items, outcome, name, quantity, as_of):
    _issue(items, outcome, name, quantity, as_of=date.fromisoformat(as_of))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('"{name}" has {quantity:d} units'))
def item_has_units(items, name, quantity):
    assert _load(items, name).quantity == quantity


@then("the movement is refused because inventory is locked")
def movement_refused_locked(outcome):
    assert isinstance(outcome["exc"], InventoryLocked), f"Expected InventoryLocked, got {outcome['exc']!r}"
