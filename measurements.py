"""Measurement snapshots: sensor readings keyed by entity id."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from frozendict import frozendict

_LOGGER = logging.getLogger("powerflow")

# States reported by a sensor that currently has no value
UNAVAILABLE_STATES = frozenset({"unavailable", "unknown"})

# Units converted to kW / kWh, with their divisor
_UNIT_DIVISORS = {"W": 1000.0, "Wh": 1000.0}


@dataclass(frozen=True)
class Reading:
    """a single sensor reading"""

    state: str
    attributes: frozendict = field(default_factory=frozendict)

    @property
    def is_available(self) -> bool:
        return self.state not in UNAVAILABLE_STATES

    @property
    def unit(self) -> str:
        return self.attributes.get("unit_of_measurement") or ""


def _to_reading(raw) -> Reading:
    """Convert one raw state entry into a Reading.

    Precondition:
        raw is a Reading, a mapping with a "state" key, a number, or a string

    Postcondition:
        returns a Reading whose state is a string
        mapping attributes are frozen

    Args:
        raw: state entry as found in a states snapshot

    Returns:
        Reading for the entry

    Raises:
        ValueError: if a mapping entry has no "state" key
    """
    if isinstance(raw, Reading):
        return raw
    if isinstance(raw, Mapping):
        if "state" not in raw:
            raise ValueError(f"State entry {raw!r} has no 'state' key")
        return Reading(str(raw["state"]), frozendict(raw.get("attributes") or {}))
    return Reading(str(raw))


def freeze_states(states) -> frozendict:
    """Freeze a states snapshot into a read-only mapping of Readings.

    Precondition:
        states is None or a mapping of entity id to state entry

    Postcondition:
        returns frozendict of entity id to Reading
        None yields an empty snapshot

    Args:
        states: mapping of entity id to raw state entry

    Returns:
        frozendict mapping entity id to Reading
    """
    if not states:
        return frozendict()
    return frozendict({entity: _to_reading(raw) for entity, raw in states.items()})


def reading_value(states, entity: str) -> float | None:
    """Numeric value of an entity in kW or kWh.

    Precondition:
        states is a snapshot produced by freeze_states

    Postcondition:
        returns None when the entity is missing, unavailable, unknown, or non-numeric
        W and Wh readings are scaled to kW and kWh
        other units are returned unchanged

    Args:
        states: frozen states snapshot
        entity: entity id to read

    Returns:
        normalized reading, or None if absent
    """
    reading = states.get(entity)
    if reading is None or not reading.is_available:
        return None
    try:
        value = float(reading.state)
    except ValueError:
        _LOGGER.warning("Ignoring non-numeric state %r of %s", reading.state, entity)
        return None
    return value / _UNIT_DIVISORS.get(reading.unit, 1.0)


def sum_entities(states, entities) -> float:
    """Sum the available readings of several entities; absent ones count as 0."""
    total = 0.0
    for entity in entities:
        value = reading_value(states, entity)
        if value is not None:
            total += value
    return total
