"""Tests for net_flow module"""

from pytest import raises

from flow_graph import Connection, ConnectionFlow, TopologyError
from net_flow import DuplicateAssignmentError, NetFlowTracker


def test_starts_at_zero():
    """every device should start with no net flow"""
    tracker = NetFlowTracker(["a", "b"])

    assert tracker.as_dict() == {"a": 0.0, "b": 0.0}


def test_record_updates_both_ends():
    """source gains the value, target loses it"""
    tracker = NetFlowTracker(["a", "b"])
    flow = ConnectionFlow(Connection("b"), "a")

    tracker.record(flow, 2.5)

    assert flow.value == 2.5
    assert tracker.net_flow("a") == 2.5
    assert tracker.net_flow("b") == -2.5
    assert sum(tracker.as_dict().values()) == 0


def test_record_negative_value():
    """a negative value means flow against the declared direction"""
    tracker = NetFlowTracker(["a", "b"])

    tracker.record(ConnectionFlow(Connection("b"), "a"), -4)

    assert tracker.as_dict() == {"a": -4, "b": 4}


def test_internal_connection_leaves_source():
    """an internal connection only changes its target"""
    tracker = NetFlowTracker(["a", "b"])

    tracker.record(ConnectionFlow(Connection("b", internal=True), "a"), 3)

    assert tracker.as_dict() == {"a": 0, "b": -3}


def test_record_does_not_touch_connection():
    """the connection itself is only written when results are copied out"""
    tracker = NetFlowTracker(["a", "b"])
    connection = Connection("b")

    tracker.record(ConnectionFlow(connection, "a"), 1)

    assert connection.value is None


def test_double_assignment_rejected():
    """a second assignment to the same connection should raise"""
    tracker = NetFlowTracker(["a", "b"])
    flow = ConnectionFlow(Connection("b"), "a")
    tracker.record(flow, 1)

    with raises(DuplicateAssignmentError, match="from a to b already has value assigned"):
        tracker.record(flow, 1)

    assert tracker.as_dict() == {"a": 1, "b": -1}


def test_zero_counts_as_assigned():
    """a connection set to 0 is resolved and cannot be set again"""
    tracker = NetFlowTracker(["a", "b"])
    flow = ConnectionFlow(Connection("b"), "a")
    tracker.record(flow, 0.0)

    with raises(TopologyError):
        tracker.record(flow, 5)
