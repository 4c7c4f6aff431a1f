"""Purchasing requisition sink: where replenishment signals are delivered."""

import os

_sink_instance = None


def get_requisition_sink():
    """Return the configured requisition sink (singleton).

    Uses FakeRequisitionSink by default. In production, configure via the
    REQUISITION_SINK environment variable.
    """
    global _sink_instance
    if _sink_instance is None:
        adapter = os.environ.get("REQUISITION_SINK", "fake")
        if adapter == "fake":
            from stockroom.purchasing.fake_adapter import FakeRequisitionSink

            _sink_instance = FakeRequisitionSink()
        else:
            raise ValueError(f"Unknown requisition sink: {adapter}")
    return _sink_instance


def reset_requisition_sink():
    """Reset the sink singleton (useful for testing)."""
    global _sink_instance
    _sink_instance = None
