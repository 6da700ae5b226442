"""Graph model of devices and the connections between them."""

from collections import defaultdict
from dataclasses import dataclass

from tarjan import tarjan


class TopologyError(ValueError):
    """The device graph violates the topology contract."""


@dataclass
class Connection:
    """A directed link from its owning device to the device called target"""

    target: str
    desc: str = ""
    color: str = "black"
    mode: str | None = None
    entity: str | None = None  # sensor measuring the flow on this connection
    internal: bool = False
    value: float | None = None  # resolved flow, written by the flow calculator


@dataclass
class ConnectionFlow:
    """Per-invocation bookkeeping for one connection."""

    connection: Connection
    source_id: str
    value: float | None = None

    @property
    def target_id(self) -> str:
        return self.connection.target

    @property
    def is_resolved(self) -> bool:
        return self.value is not None

    def touches(self, device_id: str) -> bool:
        return self.source_id == device_id or self.target_id == device_id


class FlowGraph:
    """Devices and connection flows for a single flow calculation.

    Devices keep their given order, and connections are listed in definition
    order: device by device, each device's connections in their declared
    order. Connections refer to devices by id only.
    """

    def __init__(self, devices: list):
        """Build the graph from an ordered list of devices.

        Precondition:
            each device has an id attribute and a connections list

        Postcondition:
            self.devices preserves the given order
            self.flows holds one unresolved ConnectionFlow per connection

        Args:
            devices: ordered devices, each exposing id and connections

        Raises:
            TopologyError: if a device id repeats or a connection target is unknown
        """
        self.devices = list(devices)
        self._by_id = {}
        for device in self.devices:
            if device.id in self._by_id:
                raise TopologyError(f'Duplicate device id "{device.id}"')
            self._by_id[device.id] = device

        self.flows: list[ConnectionFlow] = []
        for device in self.devices:
            for connection in device.connections:
                if connection.target not in self._by_id:
                    raise TopologyError(
                        f'Connection from "{device.id}" targets unknown device "{connection.target}"'
                    )
                self.flows.append(ConnectionFlow(connection, device.id))

    def device(self, device_id: str):
        """Look up a device by id."""
        try:
            return self._by_id[device_id]
        except KeyError as exc:
            raise TopologyError(f'Unknown device "{device_id}"') from exc

    @property
    def unresolved_flows(self) -> list[ConnectionFlow]:
        return [flow for flow in self.flows if not flow.is_resolved]

    def incident_flows(self, device_id: str) -> list[ConnectionFlow]:
        """Connections either from or to a device, in definition order."""
        return [flow for flow in self.flows if flow.touches(device_id)]

    def unresolved_incident_flows(self, device_id: str) -> list[ConnectionFlow]:
        return [flow for flow in self.incident_flows(device_id) if not flow.is_resolved]

    def singleton_devices(self) -> list:
        """Devices with exactly one unresolved connection, in device order."""
        return [
            device for device in self.devices
            if len(self.unresolved_incident_flows(device.id)) == 1
        ]

    def residual_clusters(self) -> list[list[str]]:
        """Group devices still joined by unresolved connections.

        Precondition:
            none

        Postcondition:
            returns one list of device ids per connected group of the
            residual graph, ordered by each group's first device
            devices without unresolved connections are left out

        Returns:
            list of device id lists, ids in device order
        """
        adjacency = defaultdict(set)
        for flow in self.unresolved_flows:
            adjacency[flow.source_id].add(flow.target_id)
            adjacency[flow.target_id].add(flow.source_id)

        order = {device.id: index for index, device in enumerate(self.devices)}
        components = tarjan({node: sorted(peers) for node, peers in adjacency.items()})
        clusters = [sorted(component, key=order.__getitem__) for component in components]
        return sorted(clusters, key=lambda cluster: order[cluster[0]])
