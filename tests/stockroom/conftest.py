import pytest
from protean.integrations.pytest import DomainFixture

from stockroom.purchasing import get_requisition_sink, reset_requisition_sink
from stockroom.stock.concurrency import reset_lock_registry


@pytest.fixture(scope="session")
def stockroom_bed():
    from stockroom.domain import stockroom

    bed = DomainFixture(stockroom)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(stockroom_bed):
    with stockroom_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()

    reset_requisition_sink()
    reset_lock_registry()


@pytest.fixture()
def sink():
    """The fake purchasing sink the handlers deliver to."""
    return get_requisition_sink()
