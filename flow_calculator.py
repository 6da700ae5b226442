"""Infer the flow on every connection from a sparse set of measurements.

Every calculation starts with all devices at a tracked net flow of 0 and all
connections unassigned. A value assigned to a connection adds to the net flow
of its source and subtracts from the net flow of its target, so without
internal connections the tracked net flows always sum to 0.

    1. Connections with their own sensor entity get that reading.
    2. While some device has exactly one unassigned connection, assign it the
       value that brings the device's net flow to its intrinsic value. For a
       pure transmission node that is 0.
    3. Every remaining connection, in definition order, gets the largest amount
       that moves both ends towards their intrinsic values without overshooting,
       or 0 if there is no such direction.

Step 3 is a greedy heuristic. It does not always find a consistent answer,
but the result is only used for visualisation.
"""

import logging
from dataclasses import dataclass

from flow_graph import ConnectionFlow, FlowGraph
from measurements import freeze_states, reading_value
from net_flow import NetFlowTracker

_LOGGER = logging.getLogger("powerflow")


@dataclass
class FlowResult:
    """Outcome of one flow calculation"""

    connections: list[tuple[str, str, float]]  # (source, target, value) in definition order
    net_flows: dict[str, float]
    intrinsic_values: dict[str, float]

    def value(self, source: str, target: str) -> float:
        """Value of the first connection from source to target."""
        for from_id, to_id, value in self.connections:
            if from_id == source and to_id == target:
                return value
        raise KeyError(f"No connection from {source} to {target}")


def assign_measured_connections(graph: FlowGraph, tracker: NetFlowTracker, states) -> int:
    """Give every connection with a sensor entity that sensor's reading.

    Precondition:
        states is a frozen states snapshot

    Postcondition:
        every connection with an entity is resolved
        an unavailable, unknown, missing, or non-numeric reading resolves to 0
        W and Wh readings are scaled to kW and kWh, like device readings, so a
        measured connection is comparable with the intrinsic values

    Args:
        graph: flow graph of this calculation
        tracker: net flow tracker of this calculation
        states: frozen states snapshot

    Returns:
        number of connections assigned
    """
    count = 0
    for flow in graph.unresolved_flows:
        entity = flow.connection.entity
        if not entity:
            continue
        value = reading_value(states, entity)
        tracker.record(flow, value if value is not None else 0.0)
        count += 1
    return count


def _assign_singleton_devices(
    graph: FlowGraph, tracker: NetFlowTracker, intrinsic: dict[str, float], debug: bool
) -> int:
    """One pass over the devices that have a single unassigned connection."""
    count = 0
    for device in graph.singleton_devices():
        flows = graph.unresolved_incident_flows(device.id)
        # Empty if the device at the other end took our connection earlier in this pass
        if len(flows) != 1:
            continue
        flow = flows[0]
        direction = 1 if flow.source_id == device.id else -1
        value = direction * (intrinsic[device.id] - tracker.net_flow(device.id))
        if debug:
            _LOGGER.debug(
                "%s is a singleton. Connection from %s to %s. Device value %s, existing flow %s, setting flow to %s",
                device.id, flow.source_id, flow.target_id,
                intrinsic[device.id], tracker.net_flow(device.id), value,
            )
            _LOGGER.debug(
                "Pre  assignment net flows are %s %s",
                tracker.net_flow(flow.source_id), tracker.net_flow(flow.target_id),
            )
        tracker.record(flow, value)
        if debug:
            _LOGGER.debug(
                "Post assignment net flows are %s %s",
                tracker.net_flow(flow.source_id), tracker.net_flow(flow.target_id),
            )
        count += 1
    return count


def propagate_singletons(
    graph: FlowGraph, tracker: NetFlowTracker, intrinsic: dict[str, float], debug: bool = False
) -> int:
    """Resolve singleton devices until a full pass assigns nothing.

    Precondition:
        intrinsic maps every device id to its intrinsic value

    Postcondition:
        no device has exactly one unresolved connection
        conflicting resolutions at a shared device are left as they are

    Args:
        graph: flow graph of this calculation
        tracker: net flow tracker of this calculation
        intrinsic: intrinsic value of each device
        debug: log every assignment

    Returns:
        total number of connections assigned
    """
    total = 0
    while True:
        count = _assign_singleton_devices(graph, tracker, intrinsic, debug)
        if count == 0:
            return total
        total += count


def _remaining(device_id: str, tracker: NetFlowTracker, intrinsic: dict[str, float]) -> float:
    return intrinsic[device_id] - tracker.net_flow(device_id)


def balance_remaining(
    graph: FlowGraph, tracker: NetFlowTracker, intrinsic: dict[str, float], debug: bool = False
) -> int:
    """Greedily assign every connection still unresolved, in definition order.

    Precondition:
        intrinsic maps every device id to its intrinsic value

    Postcondition:
        every connection is resolved
        a connection whose ends both still need to export, or both to import,
        or either needs nothing, gets 0
        otherwise it moves min(|from_rem|, |to_rem|) towards the importing end

    Args:
        graph: flow graph of this calculation
        tracker: net flow tracker of this calculation
        intrinsic: intrinsic value of each device
        debug: log every assignment

    Returns:
        number of connections assigned
    """
    flows = graph.unresolved_flows
    for flow in flows:
        from_rem = _remaining(flow.source_id, tracker, intrinsic)
        to_rem = _remaining(flow.target_id, tracker, intrinsic)
        if from_rem * to_rem >= 0:
            if debug:
                _LOGGER.debug(
                    "No flow between %s and %s. Remaining value on each is %s %s",
                    flow.source_id, flow.target_id, from_rem, to_rem,
                )
            tracker.record(flow, 0.0)
            continue

        direction = 1 if from_rem > 0 else -1
        value = direction * min(abs(from_rem), abs(to_rem))
        if debug:
            _LOGGER.debug(
                "Setting flow between %s and %s to %s. Remaining values %s %s to %s %s",
                flow.source_id, flow.target_id, value,
                from_rem, to_rem, from_rem - value, to_rem + value,
            )
        tracker.record(flow, value)
        if debug:
            _LOGGER.debug(
                "After assignment, net remaining values are %s %s",
                _remaining(flow.source_id, tracker, intrinsic),
                _remaining(flow.target_id, tracker, intrinsic),
            )
    return len(flows)


def _copy_flow_values(flows: list[ConnectionFlow]) -> None:
    for flow in flows:
        flow.connection.value = flow.value


def _log_summary(graph: FlowGraph, tracker: NetFlowTracker, intrinsic: dict[str, float]) -> None:
    _LOGGER.debug("Final connection assignments:")
    for flow in graph.flows:
        _LOGGER.debug("   from %s to %s: %s", flow.source_id, flow.target_id, flow.value)
    _LOGGER.debug("Final device net flows:")
    for device in graph.devices:
        _LOGGER.debug(
            "    %s: %s expected %s", device.id, tracker.net_flow(device.id), intrinsic[device.id]
        )


def calculate_power_flows(devices: list, states, debug: bool = False) -> FlowResult:
    """Assign a signed flow to every connection of the given devices.

    Precondition:
        devices is an ordered list; each has id, connections, and intrinsic_value(states)
        every connection target names one of the devices

    Postcondition:
        every connection's value is set, positive meaning flow from source to target
        identical devices and states always give identical values
        no state is kept between calls

    Args:
        devices: devices in definition order, which is also the tie-break order
        states: mapping of entity id to state entry
        debug: log every assignment and a final summary to the "powerflow" logger

    Returns:
        FlowResult with connection values, final net flows and intrinsic values

    Raises:
        TopologyError: on a dangling connection target, a repeated device id,
            or a connection assigned twice
    """
    states = freeze_states(states)
    graph = FlowGraph(devices)
    tracker = NetFlowTracker(device.id for device in graph.devices)
    intrinsic = {device.id: device.intrinsic_value(states) for device in graph.devices}

    if debug:
        _LOGGER.debug("Have %s connections to assign", len(graph.flows))
    assign_measured_connections(graph, tracker, states)
    if debug:
        _LOGGER.debug(
            "After assigning defined connections, have %s unassigned connections",
            len(graph.unresolved_flows),
        )
    propagate_singletons(graph, tracker, intrinsic, debug)
    if debug:
        _LOGGER.debug(
            "After assigning singleton devices, have %s unassigned connections",
            len(graph.unresolved_flows),
        )
        for cluster in graph.residual_clusters():
            _LOGGER.debug("Balancing heuristically between %s", ", ".join(cluster))
    balance_remaining(graph, tracker, intrinsic, debug)
    if debug:
        _log_summary(graph, tracker, intrinsic)

    _copy_flow_values(graph.flows)
    return FlowResult(
        connections=[(flow.source_id, flow.target_id, flow.value) for flow in graph.flows],
        net_flows=tracker.as_dict(),
        intrinsic_values=intrinsic,
    )
