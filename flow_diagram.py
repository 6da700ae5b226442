"""Graphviz diagrams of calculated power/energy flows."""

import graphviz

from flow_calculator import FlowResult
from measurements import freeze_states

# One grid step of xPos/yPos is this many circle radii
_GRID_STEP_RADII = 3


def _format_value(value: float, unit: str) -> str:
    # "or 0.0" turns -0.0 into 0.0
    return f"{round(value, 2) or 0.0:g} {unit}"


def _get_device_fillcolor(value: float) -> str:
    """Green for devices sending into the system, blue for those taking from it."""
    if value > 0:
        return "lightgreen"
    if value < 0:
        return "lightblue"
    return "white"


def _get_penwidth(value: float, max_power: float) -> str:
    """Scale edge width with the share of the source device's max power.

    Precondition:
        max_power > 0

    Postcondition:
        returns a width between 1 and 5 as a string
        a zero flow gets width 1
    """
    share = min(abs(value) / max_power, 1.0)
    return f"{1 + 4 * share:.2f}"


def _get_node_positions(devices: list, circle_radius: float) -> dict[str, str]:
    """Pin devices at their configured grid positions.

    Precondition:
        circle_radius > 0

    Postcondition:
        returns neato "x,y!" positions in inches for devices with a position
        yPos grows downwards as on the card, so rows are flipped

    Args:
        devices: devices, some of which may have no position
        circle_radius: node radius in points

    Returns:
        dict mapping device id to pos attribute
    """
    placed = [device for device in devices if device.position is not None]
    if not placed:
        return {}
    step = _GRID_STEP_RADII * circle_radius / 72
    bottom = max(device.position[1] for device in placed)
    return {
        device.id: f"{device.position[0] * step:g},{(bottom - device.position[1]) * step:g}!"
        for device in placed
    }


def _add_device_nodes(
    dot: graphviz.Digraph, devices: list, result: FlowResult, unit: str, states, circle_radius: float
):
    positions = _get_node_positions(devices, circle_radius)
    for device in devices:
        value = result.intrinsic_values[device.id]
        label = f"{device.name}\n{_format_value(value, unit)}"
        percent = device.percent(states)
        if percent is not None:
            label = f"{percent:g}%\n{label}"
        attrs = {
            "shape": "circle",
            "style": "filled",
            "fillcolor": _get_device_fillcolor(value),
            "width": f"{2 * circle_radius / 72:.2f}",
        }
        if device.id in positions:
            attrs["pos"] = positions[device.id]
        if device.icon:
            attrs["tooltip"] = device.icon
        dot.node(device.id, label, **attrs)


def _add_connection_edges(dot: graphviz.Digraph, devices: list, result: FlowResult, unit: str):
    """Add one edge per connection, pointing the way the flow actually goes.

    Precondition:
        result was calculated for devices, so its connections are in the same order

    Postcondition:
        negative flows are drawn with the arrow reversed
        zero flows are drawn dashed and grey
        each edge id derives from its source device id and connection index
    """
    connection_values = iter(result.connections)
    for device in devices:
        for index, connection in enumerate(device.connections, start=1):
            _, _, value = next(connection_values)
            attrs = {
                "label": _format_value(abs(value), unit),
                "id": f"line_{device.id}_{index}",
                "penwidth": _get_penwidth(value, device.max_power),
            }
            if value == 0:
                attrs.update(style="dashed", color="grey")
            else:
                attrs["color"] = connection.color
            if value < 0:
                attrs["dir"] = "back"
            dot.edge(device.id, connection.target, **attrs)


def design_flow_diagram(
    devices: list,
    result: FlowResult,
    title: str = "",
    unit: str = "kW",
    states=None,
    circle_radius: float = 40,
) -> graphviz.Digraph:
    """Draw devices and their calculated flows.

    Precondition:
        result was returned by calculate_power_flows for the same devices

    Postcondition:
        returns Digraph with one node per device and one edge per connection
        node ids are the device ids
        when every device has a position the graph is laid out with neato
        at those positions, otherwise dot lays it out left to right

    Args:
        devices: devices in definition order
        result: calculated flows
        title: optional graph label
        unit: unit shown next to values
        states: states snapshot used for percent readings
        circle_radius: node radius in points

    Returns:
        Digraph of the flow network
    """
    dot = graphviz.Digraph(comment="Power Flow Network")
    if all(device.position is not None for device in devices):
        dot.engine = "neato"
    else:
        dot.attr(rankdir="LR")
    if title:
        dot.attr(label=title, labelloc="t")

    _add_device_nodes(dot, devices, result, unit, freeze_states(states), circle_radius)
    _add_connection_edges(dot, devices, result, unit)
    return dot
