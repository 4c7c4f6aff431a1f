"""Single-writer discipline for stock aggregates.

Every mutating command handler runs under ``serialized``:

- item commands hold their tenant's gate in *shared* mode plus an exclusive
  lock on the item, so different items proceed in parallel while one item
  never sees interleaved read-modify-write cycles;
- count commands hold the tenant gate in *exclusive* mode, so a count cannot
  open while a movement is in flight and the freeze check always sees the
  committed count state.

The decorator sits outside ``@handle`` so the locks span the handler's unit
of work, commit included. Protean's versioned save is the second line of
defence: an ``ExpectedVersionError`` re-runs the handler against a fresh read,
a bounded number of times, before surfacing as ``TransientError``.
"""

import functools
import os
import threading
import weakref
from contextlib import contextmanager, nullcontext

import structlog
from protean.exceptions import ExpectedVersionError

from stockroom.errors import TransientError

logger = structlog.get_logger(__name__)

MAX_CONFLICT_RETRIES = 3


def lock_timeout() -> float:
    return float(os.environ.get("STOCKROOM_LOCK_TIMEOUT", "10"))


class TenantGate:
    """Shared/exclusive gate for one tenant.

    Waiting exclusive holders block new shared holders, so a count that is
    about to open is not starved by a stream of movements.
    """

    def __init__(self):
        self._condition = threading.Condition()
        self._shared_holders = 0
        self._exclusive_held = False
        self._exclusive_waiting = 0

    @contextmanager
    def shared(self, timeout):
        with self._condition:
            acquired = self._condition.wait_for(
                lambda: not self._exclusive_held and not self._exclusive_waiting,
                timeout=timeout,
            )
            if not acquired:
                raise TransientError("Timed out waiting for the tenant inventory gate")
            self._shared_holders += 1
        try:
            yield
        finally:
            with self._condition:
                self._shared_holders -= 1
                self._condition.notify_all()

    @contextmanager
    def exclusive(self, timeout):
        with self._condition:
            self._exclusive_waiting += 1
            try:
                acquired = self._condition.wait_for(
                    lambda: not self._exclusive_held and self._shared_holders == 0,
                    timeout=timeout,
                )
            finally:
                self._exclusive_waiting -= 1
            if not acquired:
                self._condition.notify_all()
                raise TransientError("Timed out waiting for exclusive access to the tenant inventory")
            self._exclusive_held = True
        try:
            yield
        finally:
            with self._condition:
                self._exclusive_held = False
                self._condition.notify_all()


class LockRegistry:
    """Process-wide registry of item locks and tenant gates.

    Entries are held weakly: a lock or gate lives only while some handler
    holds or waits on it, so archived and idle items do not accumulate.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._item_locks = weakref.WeakValueDictionary()
        self._tenant_gates = weakref.WeakValueDictionary()

    def tenant_gate(self, tenant_id) -> TenantGate:
        with self._guard:
            return self._tenant_gates.setdefault(str(tenant_id), TenantGate())

    def item_lock(self, stock_item_id) -> threading.Lock:
        with self._guard:
            return self._item_locks.setdefault(str(stock_item_id), threading.Lock())

    @contextmanager
    def holding_item(self, stock_item_id, timeout):
        lock = self.item_lock(stock_item_id)
        if not lock.acquire(timeout=timeout):
            raise TransientError(f"Timed out waiting for stock item {stock_item_id}")
        try:
            yield
        finally:
            lock.release()


_registry = LockRegistry()


def get_lock_registry() -> LockRegistry:
    return _registry


def reset_lock_registry():
    """Drop all locks (useful for testing)."""
    global _registry
    _registry = LockRegistry()


def serialized(item_field=None, exclusive_tenant=False):
    """Run a command handler method under the stock single-writer discipline.

    ``item_field`` names the command attribute holding the stock item id;
    omit it for commands that do not target one existing item.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(handler, command):
            registry = get_lock_registry()
            timeout = lock_timeout()
            gate = registry.tenant_gate(command.tenant_id)
            tenant_mode = gate.exclusive if exclusive_tenant else gate.shared
            item_id = getattr(command, item_field) if item_field else None

            for attempt in range(1, MAX_CONFLICT_RETRIES + 1):
                with tenant_mode(timeout):
                    item_guard = registry.holding_item(item_id, timeout) if item_id else nullcontext()
                    with item_guard:
                        try:
                            return fn(handler, command)
                        except ExpectedVersionError as exc:
                            logger.warning(
                                "Concurrent update conflict, retrying",
                                command=type(command).__name__,
                                stock_item_id=item_id,
                                attempt=attempt,
                                error=str(exc),
                            )

            raise TransientError(
                f"{type(command).__name__} conflicted with concurrent updates {MAX_CONFLICT_RETRIES} times"
            )

        return wrapper

    return decorator
