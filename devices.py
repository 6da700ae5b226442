"""Devices taking part in a flow calculation.

A positive intrinsic value means the device is sending power/energy into the
rest of the system (a discharging battery, grid import, solar production).
A negative value means it is taking power/energy from the system (a
charging battery, grid feed-in, a load).
"""

import math
from dataclasses import dataclass, field

from config import CardConfig, DeviceConfig
from flow_graph import Connection
from measurements import reading_value, sum_entities


def _round(value: float) -> float:
    # half-up, so 0.125 rounds to 0.13
    return math.floor(value * 100 + 0.5) / 100


def _round_percent(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


@dataclass
class FixedDevice:
    """a device whose intrinsic value is known up front"""

    id: str
    value: float
    connections: list[Connection] = field(default_factory=list)
    max_power: float = 20
    position: tuple[float, float] | None = None
    icon: str = ""

    @property
    def name(self) -> str:
        return self.id

    def percent(self, states) -> float | None:
        return None

    def intrinsic_value(self, states) -> float:
        return self.value


class StandardDevice:
    """A configured device whose intrinsic value comes from its sensor entities."""

    def __init__(self, config: DeviceConfig, power_or_energy: str = "power"):
        self.config = config
        self.power_or_energy = power_or_energy

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def connections(self) -> list[Connection]:
        return self.config.connections

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def max_power(self) -> float:
        return self.config.max_power

    @property
    def position(self) -> tuple[float, float]:
        return (self.config.x_pos, self.config.y_pos)

    @property
    def icon(self) -> str:
        return self.config.icon

    def percent(self, states) -> float | None:
        """State of charge or similar from percent_entity, rounded to 1 decimal.

        Returns None when no percent_entity is configured or its reading is absent.
        """
        if not self.config.percent_entity:
            return None
        value = reading_value(states, self.config.percent_entity)
        if value is None:
            return None
        return _round_percent(value)

    def _clamped(self, value: float) -> float:
        """Round to 2 decimals and zero anything below the device's floor."""
        value = _round(value)
        if abs(value) < self.config.floor:
            return 0.0
        return value

    def power(self, states) -> float:
        return self._clamped(
            sum_entities(states, self.config.power_source)
            - sum_entities(states, self.config.power_sink)
        )

    def energy_in(self, states) -> float:
        return self._clamped(sum_entities(states, self.config.energy_sink))

    def energy_out(self, states) -> float:
        return self._clamped(sum_entities(states, self.config.energy_source))

    def intrinsic_value(self, states) -> float:
        """Net power or energy leaving this device for the current snapshot.

        Precondition:
            states is a frozen states snapshot

        Postcondition:
            in power mode returns power(states)
            in energy mode returns energy_out(states) - energy_in(states)

        Args:
            states: frozen states snapshot

        Returns:
            signed intrinsic value in kW or kWh
        """
        if self.power_or_energy == "power":
            return self.power(states)
        return self.energy_out(states) - self.energy_in(states)


def build_devices(card: CardConfig, power_or_energy: str | None = None) -> list[StandardDevice]:
    """Create one StandardDevice per configured device, preserving order.

    Args:
        card: validated card configuration
        power_or_energy: overrides card.power_or_energy when given

    Returns:
        list of StandardDevice in configuration order
    """
    mode = power_or_energy or card.power_or_energy
    return [StandardDevice(device_config, mode) for device_config in card.devices]
