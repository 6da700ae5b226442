"""Running net flow of every device during a flow calculation."""

from flow_graph import ConnectionFlow, TopologyError


class DuplicateAssignmentError(TopologyError):
    """A connection was assigned a value twice in one calculation."""


class NetFlowTracker:
    """Net export of each device accounted for by its assigned connections.

    A positive entry means the device's assigned connections carry flow away
    from it, matching the sign of a device's intrinsic value.
    """

    def __init__(self, device_ids):
        self._net_flow = {device_id: 0.0 for device_id in device_ids}

    def net_flow(self, device_id: str) -> float:
        return self._net_flow[device_id]

    def record(self, flow: ConnectionFlow, value: float) -> None:
        """Assign a value to a connection and update both of its devices.

        Precondition:
            flow connects two devices known to this tracker

        Postcondition:
            flow.value == value
            target net flow is decreased by value
            source net flow is increased by value unless the connection is internal

        Args:
            flow: the connection flow being resolved
            value: signed flow, positive in the connection's declared direction

        Raises:
            DuplicateAssignmentError: if flow already has a value
        """
        if flow.is_resolved:
            raise DuplicateAssignmentError(
                f"Connection from {flow.source_id} to {flow.target_id} already has value assigned"
            )
        flow.value = value
        if not flow.connection.internal:
            self._net_flow[flow.source_id] += value
        self._net_flow[flow.target_id] -= value

    def as_dict(self) -> dict[str, float]:
        return dict(self._net_flow)
