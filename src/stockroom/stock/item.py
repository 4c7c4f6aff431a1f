"""StockItem aggregate (CQRS): one consumable item, its lots and its ledger.

The aggregate owns two child collections:

    batches    the lots currently holding stock, each with an expiry date
    movements  the append-only audit ledger of every quantity change

``quantity`` is never stored. It is always the sum of the batch quantities,
so the ledger invariant cannot drift. Batches emptied by a consuming
operation are removed; their history survives in ``movements``.

Quantity changes happen only through ``register_movement`` and
``apply_count_adjustment``. Outbound requests are planned with the FEFO
allocator before any batch is touched, so a refused request leaves the
aggregate exactly as it was.
"""

import json
from datetime import UTC, date, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, Date, DateTime, HasMany, Identifier, Integer, String, Text

from stockroom.domain import stockroom
from stockroom.stock.allocation import allocate_fefo, allocate_shrinkage
from stockroom.stock.events import (
    LowStockDetected,
    StockItemArchived,
    StockItemDetailsUpdated,
    StockItemRegistered,
    StockMovementRecorded,
)

DEFAULT_LOT_NUMBER = "DEFAULT"
AUTO_LOT_NUMBER = "LOT-AUTO"
FAR_FUTURE_EXPIRY = date(2099, 12, 31)
SYSTEM_USER = "System"


class MovementType(Enum):
    ENTRY = "ENTRY"
    EXIT = "EXIT"
    TRANSFER = "TRANSFER"
    ADJUST_IN = "ADJUST_IN"
    ADJUST_OUT = "ADJUST_OUT"


OUTBOUND_MOVEMENTS = (MovementType.EXIT, MovementType.TRANSFER)
# Adjustments are issued by count reconciliation only.
REGISTRABLE_MOVEMENTS = (MovementType.ENTRY, MovementType.EXIT, MovementType.TRANSFER)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@stockroom.entity(part_of="StockItem", limit=None)
class StockBatch:
    """A lot of the item sharing one expiry date."""

    lot_number = String(required=True, max_length=100)
    expiry_date = Date(required=True)
    quantity = Integer(default=0, min_value=0)
    entry_date = DateTime()
    sequence = Integer(default=0)  # Insertion order; highest is the newest batch


@stockroom.entity(part_of="StockItem", limit=None)
class StockMovement:
    """One immutable entry in the item's audit ledger."""

    movement_type = String(choices=MovementType, required=True)
    quantity = Integer(default=0, min_value=0)  # 0 only for an empty initial registration
    user = String(required=True, max_length=255)
    origin = String(max_length=255)  # TRANSFER only
    destination = String(max_length=255)  # TRANSFER only
    reason = String(max_length=500)
    batches_affected = Text()  # JSON array of batch ids
    sequence = Integer(default=0)
    occurred_at = DateTime(required=True)

    @property
    def batch_ids(self):
        return json.loads(self.batches_affected) if self.batches_affected else []


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@stockroom.aggregate
class StockItem:
    """A stock-tracked consumable belonging to one tenant."""

    tenant_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(required=True, max_length=50)
    location = String(max_length=255)
    threshold = Integer(default=0, min_value=0)
    batches = HasMany(StockBatch)
    movements = HasMany(StockMovement)
    is_archived = Boolean(default=False)
    archived_at = DateTime()
    created_at = DateTime()
    last_updated = DateTime()

    @invariant.post
    def quantity_cannot_be_negative(self):
        if self.quantity < 0:
            raise ValidationError({"quantity": ["Stock quantity cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        tenant_id,
        name,
        sku,
        location=None,
        threshold=0,
        initial_quantity=0,
        lot_number=None,
        expiry_date=None,
    ):
        """Register a new item with its initial batch and ENTRY movement.

        Without lot details the stock goes into a synthesized ``DEFAULT`` lot
        that never expires in practice.
        """
        if initial_quantity is None or initial_quantity < 0:
            raise ValidationError({"initial_quantity": ["Initial quantity cannot be negative"]})
        if threshold is None or threshold < 0:
            raise ValidationError({"threshold": ["Threshold cannot be negative"]})
        if (lot_number is None) != (expiry_date is None):
            raise ValidationError({"lot_number": ["Lot number and expiry date must be given together"]})

        now = datetime.now(UTC)
        item = cls(
            tenant_id=tenant_id,
            name=name,
            sku=sku,
            location=location,
            threshold=threshold,
            created_at=now,
            last_updated=now,
        )

        batch = StockBatch(
            lot_number=lot_number or DEFAULT_LOT_NUMBER,
            expiry_date=expiry_date or FAR_FUTURE_EXPIRY,
            quantity=initial_quantity,
            entry_date=now,
            sequence=1,
        )
        item.add_batches(batch)

        item.raise_(
            StockItemRegistered(
                stock_item_id=str(item.id),
                tenant_id=str(tenant_id),
                name=name,
                sku=sku,
                location=location,
                threshold=threshold,
                initial_quantity=initial_quantity,
                lot_number=batch.lot_number,
                expiry_date=batch.expiry_date,
                registered_at=now,
            )
        )
        item.record_movement(
            MovementType.ENTRY,
            initial_quantity,
            user=SYSTEM_USER,
            reason="Initial registration",
            batches_affected=[str(batch.id)],
        )
        return item

    # -------------------------------------------------------------------
    # Batch ledger
    # -------------------------------------------------------------------
    @property
    def quantity(self):
        return self.total_quantity()

    def total_quantity(self):
        return sum(batch.quantity or 0 for batch in (self.batches or []))

    @property
    def ordered_batches(self):
        return sorted(self.batches or [], key=lambda b: b.sequence or 0)

    @property
    def movement_history(self):
        return sorted(self.movements or [], key=lambda m: m.sequence or 0)

    def _next_batch_sequence(self):
        return max((b.sequence or 0 for b in (self.batches or [])), default=0) + 1

    def _batch(self, batch_id):
        return next(b for b in self.batches if str(b.id) == str(batch_id))

    def add_to_newest_or_new_batch(self, quantity, lot_number=None, expiry_date=None):
        """Add inbound stock and return the id of the batch that received it.

        Without lot details the most recently added batch absorbs the
        quantity; an empty ledger gets an auto lot. Explicit lot details always
        open a new batch.
        """
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        if (lot_number is None) != (expiry_date is None):
            raise ValidationError({"lot_number": ["Lot number and expiry date must be given together"]})

        if lot_number is None and self.batches:
            newest = self.ordered_batches[-1]
            newest.quantity = newest.quantity + quantity
            return str(newest.id)

        batch = StockBatch(
            lot_number=lot_number or AUTO_LOT_NUMBER,
            expiry_date=expiry_date or FAR_FUTURE_EXPIRY,
            quantity=quantity,
            entry_date=datetime.now(UTC),
            sequence=self._next_batch_sequence(),
        )
        self.add_batches(batch)
        return str(batch.id)

    def remove_empty_batches(self):
        for batch in [b for b in (self.batches or []) if not b.quantity]:
            self.remove_batches(batch)

    def _apply_allocation(self, allocation):
        with atomic_change(self):
            for take in allocation.takes:
                batch = self._batch(take.batch_id)
                batch.quantity = batch.quantity - take.quantity
            self.remove_empty_batches()

    def consume_fefo(self, quantity, today):
        """Consume valid stock soonest-expiry first; return the allocation."""
        allocation = allocate_fefo(self.batches or [], quantity, today)
        self._apply_allocation(allocation)
        return allocation

    # -------------------------------------------------------------------
    # Movement ledger
    # -------------------------------------------------------------------
    def record_movement(
        self,
        movement_type,
        quantity,
        user,
        origin=None,
        destination=None,
        reason=None,
        batches_affected=(),
    ):
        """Append one immutable movement to the ledger."""
        movement_type = MovementType(movement_type)
        now = datetime.now(UTC)
        sequence = max((m.sequence or 0 for m in (self.movements or [])), default=0) + 1
        batch_ids = json.dumps(list(batches_affected))

        movement = StockMovement(
            movement_type=movement_type.value,
            quantity=quantity,
            user=user,
            origin=origin,
            destination=destination,
            reason=reason,
            batches_affected=batch_ids,
            sequence=sequence,
            occurred_at=now,
        )
        self.add_movements(movement)
        self.last_updated = now

        self.raise_(
            StockMovementRecorded(
                stock_item_id=str(self.id),
                tenant_id=str(self.tenant_id),
                movement_id=str(movement.id),
                movement_type=movement_type.value,
                quantity=quantity,
                user=user,
                origin=origin,
                destination=destination,
                reason=reason,
                batches_affected=batch_ids,
                new_quantity=self.quantity,
                occurred_at=now,
            )
        )
        return movement

    def _check_low_stock(self):
        """Raise LowStockDetected if quantity is at or below the threshold."""
        if self.quantity <= (self.threshold or 0):
            self.raise_(
                LowStockDetected(
                    stock_item_id=str(self.id),
                    tenant_id=str(self.tenant_id),
                    sku=self.sku,
                    current_quantity=self.quantity,
                    threshold=self.threshold or 0,
                    detected_at=datetime.now(UTC),
                )
            )

    # -------------------------------------------------------------------
    # Movements
    # -------------------------------------------------------------------
    def register_movement(
        self,
        movement_type,
        quantity,
        user,
        destination=None,
        lot_number=None,
        expiry_date=None,
        today=None,
    ):
        """Apply an entry, exit or transfer and record it.

        ``today`` is the reference date for expiry checks; it defaults to the
        current UTC date.
        """
        try:
            movement_type = MovementType(movement_type)
        except ValueError:
            raise ValidationError({"movement_type": [f"Unknown movement type: {movement_type}"]}) from None
        if movement_type not in REGISTRABLE_MOVEMENTS:
            raise ValidationError({"movement_type": ["Adjustments are only issued by count reconciliation"]})
        if quantity is None or quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        if self.is_archived:
            raise ValidationError({"stock_item_id": ["Archived items cannot move stock"]})

        if movement_type == MovementType.ENTRY:
            batch_id = self.add_to_newest_or_new_batch(quantity, lot_number=lot_number, expiry_date=expiry_date)
            movement = self.record_movement(movement_type, quantity, user, batches_affected=[batch_id])
        else:
            allocation = self.consume_fefo(quantity, today or datetime.now(UTC).date())
            origin = None
            if movement_type == MovementType.TRANSFER:
                origin = self.location
                if destination:
                    self.location = destination
            movement = self.record_movement(
                movement_type,
                quantity,
                user,
                origin=origin,
                destination=destination if movement_type == MovementType.TRANSFER else None,
                batches_affected=allocation.batch_ids,
            )

        self._check_low_stock()
        return movement

    # -------------------------------------------------------------------
    # Count reconciliation
    # -------------------------------------------------------------------
    def apply_count_adjustment(self, counted_quantity, variance, user, reason):
        """Override the total to a counted quantity and record the adjustment.

        The override is spread over the batches so their sum always equals the
        counted quantity: shortfalls come out soonest-expiry first, expired
        lots included; surpluses go to the newest batch.
        """
        if counted_quantity < 0:
            raise ValidationError({"counted_quantity": ["Counted quantity cannot be negative"]})
        if variance == 0:
            return None

        delta = counted_quantity - self.quantity
        touched = []
        if delta > 0:
            touched.append(self.add_to_newest_or_new_batch(delta))
        elif delta < 0:
            allocation = allocate_shrinkage(self.batches or [], -delta)
            self._apply_allocation(allocation)
            touched = allocation.batch_ids

        movement_type = MovementType.ADJUST_IN if variance > 0 else MovementType.ADJUST_OUT
        movement = self.record_movement(
            movement_type,
            abs(variance),
            user,
            reason=reason,
            batches_affected=touched,
        )
        self._check_low_stock()
        return movement

    # -------------------------------------------------------------------
    # Metadata and retention
    # -------------------------------------------------------------------
    def update_details(self, name=None, sku=None, location=None, threshold=None):
        """Edit descriptive fields. Quantity is not editable here."""
        if self.is_archived:
            raise ValidationError({"stock_item_id": ["Archived items cannot be edited"]})
        if threshold is not None and threshold < 0:
            raise ValidationError({"threshold": ["Threshold cannot be negative"]})

        with atomic_change(self):
            if name is not None:
                self.name = name
            if sku is not None:
                self.sku = sku
            if location is not None:
                self.location = location
            if threshold is not None:
                self.threshold = threshold
            self.last_updated = datetime.now(UTC)

        self.raise_(
            StockItemDetailsUpdated(
                stock_item_id=str(self.id),
                tenant_id=str(self.tenant_id),
                name=self.name,
                sku=self.sku,
                location=self.location,
                threshold=self.threshold,
                updated_at=self.last_updated,
            )
        )
        if threshold is not None:
            self._check_low_stock()

    def archive(self):
        """Retire the item, keeping batches and the full movement ledger."""
        if self.is_archived:
            raise ValidationError({"stock_item_id": ["Item is already archived"]})
        now = datetime.now(UTC)
        self.is_archived = True
        self.archived_at = now
        self.last_updated = now
        self.raise_(
            StockItemArchived(
                stock_item_id=str(self.id),
                tenant_id=str(self.tenant_id),
                archived_at=now,
            )
        )
