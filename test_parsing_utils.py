"""Tests for parsing_utils module"""

from pytest import raises

from parsing_utils import parse_entity_state


def test_parse_entity_state_basic():
    """parse_entity_state should parse basic Entity:State strings"""
    entity, state = parse_entity_state("sensor.solar_power:3.2")
    assert entity == "sensor.solar_power"
    assert state == "3.2"

    print(f"✓ Parsed: {entity} = {state}")


def test_parse_entity_state_with_spaces():
    """parse_entity_state should handle extra whitespace"""
    entity, state = parse_entity_state("  sensor.load_power : 1500  ")
    assert entity == "sensor.load_power"
    assert state == "1500"


def test_parse_entity_state_negative():
    """parse_entity_state should keep negative readings (battery charging)"""
    entity, state = parse_entity_state("sensor.invbatpower:-2.5")
    assert entity == "sensor.invbatpower"
    assert state == "-2.5"


def test_parse_entity_state_unavailable():
    """parse_entity_state should accept unavailable and unknown"""
    assert parse_entity_state("sensor.grid:unavailable") == ("sensor.grid", "unavailable")
    assert parse_entity_state("sensor.grid:unknown") == ("sensor.grid", "unknown")


def test_parse_entity_state_no_colon():
    """parse_entity_state should raise error without colon"""
    with raises(ValueError, match="Invalid format"):
        parse_entity_state("sensor.solar_power 3.2")


def test_parse_entity_state_empty_entity():
    """parse_entity_state should raise error for an empty entity id"""
    with raises(ValueError, match="Entity id is empty"):
        parse_entity_state(":3.2")


def test_parse_entity_state_invalid_state():
    """parse_entity_state should raise error for other text states"""
    with raises(ValueError, match="Invalid state 'on' for switch.heater"):
        parse_entity_state("switch.heater:on")


def test_parse_entity_state_multiple_colons():
    """parse_entity_state should raise error when state part contains colon"""
    # split(":", 1) splits only on first colon, so the state is "12:30"
    with raises(ValueError, match="Invalid state"):
        parse_entity_state("sensor.time:12:30")
