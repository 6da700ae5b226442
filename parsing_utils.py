"""Utility functions for parsing entity state specifications."""

from measurements import UNAVAILABLE_STATES


def _validate_has_colon(text: str) -> None:
    """Validate that text contains a colon separator.

    Precondition:
        text is a non-None string

    Postcondition:
        raises ValueError if ':' not in text, otherwise returns None

    Args:
        text: string to validate

    Raises:
        ValueError: if text does not contain a colon
    """
    if ":" not in text:
        raise ValueError(f"Invalid format: '{text}'. Expected 'Entity:State'")


def _split_entity_state_string(text: str) -> tuple[str, str]:
    """Split text on the first colon and trim whitespace from both parts."""
    entity, state = text.split(":", 1)
    return entity.strip(), state.strip()


def _validate_state(state: str, entity: str) -> None:
    """Check the state is a number or one of the unavailable states.

    Precondition:
        state and entity are non-None strings

    Postcondition:
        returns None for numeric states, "unavailable" and "unknown"

    Raises:
        ValueError: for any other state
    """
    if state in UNAVAILABLE_STATES:
        return
    try:
        float(state)
    except ValueError as exc:
        raise ValueError(
            f"Invalid state '{state}' for {entity}. Must be a number, unavailable or unknown."
        ) from exc


def parse_entity_state(text: str) -> tuple[str, str]:
    """Parse an 'Entity:State' string into an (entity, state) tuple.

    Precondition:
        text is a non-None string in format "Entity:State"

    Postcondition:
        returns (entity_id, state) with both parts trimmed
        the state is kept as text, as a states snapshot stores it

    Args:
        text: String like "sensor.solar_power:3.2" or "sensor.grid:unavailable"

    Returns:
        Tuple of (entity_id, state)

    Raises:
        ValueError: If format is invalid, the entity is empty, or the state is not a number
    """
    _validate_has_colon(text)
    entity, state = _split_entity_state_string(text)
    if not entity:
        raise ValueError(f"Invalid format: '{text}'. Entity id is empty")
    _validate_state(state, entity)
    return entity, state
