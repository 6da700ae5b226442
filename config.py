"""Validation of the user-authored flow topology configuration."""

import json
from dataclasses import dataclass, field

from flow_graph import Connection

_CARD_KEYS = ["title", "devices", "circle_radius", "type", "power_or_energy", "debug"]
_DEVICE_KEYS = [
    "xPos", "yPos", "id", "name", "energy_sink", "energy_source", "power_source",
    "power_sink", "max_power", "connections", "icon", "floor", "percent_entity",
]
_CONNECTION_KEYS = ["desc", "target", "color", "mode", "entity", "internal"]
_CONNECTION_MODES = ["onedirection", "reverse"]


class ConfigError(ValueError):
    """The topology configuration is invalid."""


@dataclass
class DeviceConfig:
    """Validated configuration of one device"""

    id: str
    name: str
    x_pos: float
    y_pos: float
    icon: str = ""
    power_sink: list[str] = field(default_factory=list)
    power_source: list[str] = field(default_factory=list)
    energy_sink: list[str] = field(default_factory=list)
    energy_source: list[str] = field(default_factory=list)
    connections: list[Connection] = field(default_factory=list)
    max_power: float = 20
    floor: float = 0
    percent_entity: str | None = None


@dataclass
class CardConfig:
    """Validated configuration of the whole card"""

    title: str = "PEFCM Card"
    power_or_energy: str = "power"
    devices: list[DeviceConfig] = field(default_factory=list)
    circle_radius: float = 40
    debug: bool = False


def _validate_unknown_keys(d: dict, allowed: list[str], error_hint: str) -> None:
    for key in d:
        if key not in allowed:
            raise ConfigError(error_hint + str(key))


def _make_string_list(value, error_hint: str) -> list[str]:
    """Accept a single entity id or a list of them.

    Precondition:
        none

    Postcondition:
        returns [] for empty values
        returns [value] for a single string
        returns a copy of a list of strings

    Args:
        value: raw configuration value
        error_hint: prefix for error messages

    Returns:
        list of entity ids

    Raises:
        ConfigError: if value is neither a string nor a list of strings
    """
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(f"{error_hint} should be a string or an array of strings")
    for item in value:
        if not isinstance(item, str):
            raise ConfigError(f"{error_hint} should be an array of strings")
    return list(value)


def _validate_number(value, error_hint: str) -> None:
    # bool is an int subclass, but true/false is never a sensible size
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{error_hint} must be a number, not {value!r}")


def validate_connection(connection) -> Connection:
    """Validate one raw connection definition.

    Args:
        connection: raw connection dict

    Returns:
        Connection with defaults filled in and no value assigned

    Raises:
        ConfigError: on missing desc/target, unknown keys, or a bad mode
    """
    if not connection:
        raise ConfigError("Empty connection definition")
    if not isinstance(connection, dict):
        raise ConfigError("Connection definition must be a mapping")
    _validate_unknown_keys(connection, _CONNECTION_KEYS, "Unknown key in connection: ")
    if connection.get("desc") in (None, ""):
        raise ConfigError("Connection needs a description of its route")
    if not connection.get("target"):
        raise ConfigError("Connection needs a target")
    if not isinstance(connection["target"], str):
        raise ConfigError(f"Connection target must be a string, not {connection['target']!r}")
    mode = connection.get("mode")
    if mode is not None and mode not in _CONNECTION_MODES:
        raise ConfigError(f"Unknown connection mode: {mode}")
    return Connection(
        target=connection["target"],
        # Some route descriptions are valid numbers, but need interpreting as strings
        desc=str(connection["desc"]),
        color=connection.get("color") or "black",
        mode=mode,
        entity=connection.get("entity") or None,
        internal=bool(connection.get("internal", False)),
    )


def validate_device(d) -> DeviceConfig:
    """Validate one raw device definition.

    Precondition:
        d is a dict parsed from the configuration

    Postcondition:
        returns DeviceConfig with defaults filled in
        name defaults to id, max_power to 20, floor to 0
        sensor lists are normalized to lists of strings

    Args:
        d: raw device dict

    Returns:
        validated DeviceConfig

    Raises:
        ConfigError: if the device is empty, lacks id/xPos/yPos, has unknown keys,
            declares no sensor entity at all, or has a non-numeric position, max_power or floor
    """
    if not d:
        raise ConfigError("Empty device definition")
    if not isinstance(d, dict):
        raise ConfigError("Device definition must be a mapping")
    if not d.get("id"):
        raise ConfigError("Device must have an id")
    if not isinstance(d["id"], str):
        raise ConfigError(f"Device id must be a string, not {d['id']!r}")
    if "xPos" not in d:
        raise ConfigError("Device needs an xPos")
    if "yPos" not in d:
        raise ConfigError("Device needs a yPos")
    _validate_unknown_keys(d, _DEVICE_KEYS, "Unknown key in device: ")
    _validate_number(d["xPos"], "Device xPos")
    _validate_number(d["yPos"], "Device yPos")
    max_power = d.get("max_power") or 20
    _validate_number(max_power, "Device max_power")
    if max_power < 0:
        raise ConfigError(f"Device max_power must be positive, not {max_power}")
    floor = d.get("floor") or 0
    _validate_number(floor, "Device floor")

    result = DeviceConfig(
        id=d["id"],
        name=str(d.get("name") or d["id"]),
        x_pos=d["xPos"],
        y_pos=d["yPos"],
        icon=d.get("icon") or "",
        power_sink=_make_string_list(d.get("power_sink"), "Power sink"),
        power_source=_make_string_list(d.get("power_source"), "Power source"),
        energy_sink=_make_string_list(d.get("energy_sink"), "Energy sink"),
        energy_source=_make_string_list(d.get("energy_source"), "Energy source"),
        max_power=max_power,
        floor=floor,
        percent_entity=d.get("percent_entity") or None,
    )

    if not (result.power_sink or result.power_source or result.energy_sink or result.energy_source):
        raise ConfigError(
            "Need to define at least one of power_sink power_source energy_sink or energy_source"
        )

    for connection in d.get("connections") or []:
        result.connections.append(validate_connection(connection))

    return result


def _validate_references(card: CardConfig) -> None:
    """Check device ids are unique and every connection target exists."""
    ids = set()
    for device in card.devices:
        if device.id in ids:
            raise ConfigError(f'Duplicate device id "{device.id}"')
        ids.add(device.id)
    for device in card.devices:
        for connection in device.connections:
            if connection.target not in ids:
                raise ConfigError(f'Connection target "{connection.target}" doesn\'t exist')


def process_config(config) -> CardConfig:
    """Turn a raw card configuration into a validated CardConfig.

    Precondition:
        none

    Postcondition:
        returns CardConfig whose devices keep their configured order
        every connection target names a configured device

    Args:
        config: raw card configuration

    Returns:
        validated CardConfig

    Raises:
        ConfigError: describing the first problem found
    """
    config = config or {}
    if not isinstance(config, dict):
        raise ConfigError("Card configuration must be a mapping")
    _validate_unknown_keys(config, _CARD_KEYS, "Unknown key in card config: ")

    power_or_energy = config.get("power_or_energy") or "power"
    if power_or_energy not in ("power", "energy"):
        raise ConfigError(f"power_or_energy must be 'power' or 'energy', not '{power_or_energy}'")

    if not config.get("devices"):
        raise ConfigError("No devices defined")
    if not isinstance(config["devices"], list):
        raise ConfigError("devices should be an array of device definitions")
    circle_radius = config.get("circle_radius") or 40
    _validate_number(circle_radius, "circle_radius")

    card = CardConfig(
        title=str(config.get("title") or "PEFCM Card"),
        power_or_energy=power_or_energy,
        circle_radius=circle_radius,
        debug=bool(config.get("debug", False)),
    )
    for device in config["devices"]:
        card.devices.append(validate_device(device))

    _validate_references(card)
    return card


def load_config(filename: str) -> CardConfig:
    """Read and validate a JSON configuration file.

    Raises:
        ConfigError: if the file is not valid JSON or the configuration is invalid
    """
    with open(filename, "r", encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {filename}: {exc}") from exc
    return process_config(raw)


def get_stub_config() -> dict:
    """Example household configuration: grid, battery, solar, and home."""
    return {
        "type": "custom:power-energy-flow-multi",
        "title": "Household Electricity",
        "devices": [
            {
                "id": "grid",
                "name": "Grid",
                "icon": "mdi:transmission-tower",
                "xPos": 0,
                "yPos": 1,
                "power_sink": "sensor.feed_in",
                "power_source": "sensor.grid_consumption",
                "connections": [
                    {"desc": 62, "target": "home", "color": "red", "mode": "onedirection"},
                ],
                "max_power": 15,
            },
            {
                "id": "battery",
                "name": "Battery",
                "xPos": 1,
                "yPos": 2,
                "power_source": "sensor.invbatpower",
                "max_power": 7,
                "icon": "mdi:battery-30",
                "connections": [
                    {"target": "grid", "desc": "41 81", "color": "cyan"},
                    {"target": "home", "color": "green", "desc": 91, "mode": "onedirection"},
                ],
            },
            {
                "id": "solar",
                "name": "solar",
                "xPos": 1,
                "yPos": 0,
                "power_source": "sensor.total_solar_power",
                "icon": "mdi:solar-power",
                "connections": [
                    {"target": "battery", "desc": 22, "color": "orange", "mode": "onedirection"},
                    {"target": "grid", "desc": "41 21", "color": "green", "mode": "onedirection"},
                    {"target": "home", "desc": 31, "color": "green", "mode": "onedirection"},
                ],
            },
            {
                "id": "home",
                "xPos": 2,
                "yPos": 1,
                "power_sink": "sensor.load_power",
                "max_power": 10,
                "icon": "mdi:home",
            },
        ],
    }
