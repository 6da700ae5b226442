#!/usr/bin/env python3
"""Command-line interface for power/energy flow calculation."""

import argparse
import json
import logging
import sys

from config import get_stub_config, load_config, process_config
from devices import build_devices
from flow_calculator import FlowResult, calculate_power_flows
from flow_diagram import design_flow_diagram
from parsing_utils import parse_entity_state

_LOGGER = logging.getLogger("powerflow")


def parse_state_list(items) -> dict[str, dict]:
    """Parse Entity:State overrides into a states snapshot.

    Precondition:
        items is None or a list of strings

    Postcondition:
        returns dict mapping entity ids to {"state": state} entries
        later duplicates win

    Args:
        items: strings like "sensor.solar:3.2"

    Returns:
        states snapshot dict

    Raises:
        ValueError: if any item has an invalid Entity:State format
    """
    result = {}
    for item in items or []:
        entity, state = parse_entity_state(item)
        result[entity] = {"state": state}
    return result


def _load_states(filename: str | None) -> dict:
    """Read a JSON states snapshot, or an empty one when no file is given."""
    if not filename:
        return {}
    with open(filename, "r", encoding="utf-8") as f:
        try:
            states = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {filename}: {exc}") from exc
    if not isinstance(states, dict):
        raise ValueError(f"States file {filename} must contain an object")
    return states


def _format_results(result: FlowResult, unit: str) -> str:
    """Tabulate connection flows and device net flows."""
    lines = ["Connections:"]
    for source, target, value in result.connections:
        lines.append(f"  {source} -> {target}: {value or 0.0:.2f} {unit}")
    lines.append("Devices:")
    for device_id, net_flow in result.net_flows.items():
        expected = result.intrinsic_values[device_id]
        lines.append(f"  {device_id}: {net_flow or 0.0:.2f} {unit} (expected {expected or 0.0:.2f})")
    return "\n".join(lines)


def _output_graphviz(graphviz_source: str, output_file: str | None) -> None:
    """Write graphviz source to file or stdout."""
    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(graphviz_source)
        print(f"\nGraphviz written to {output_file}", file=sys.stderr)
    else:
        print("\n" + "=" * 60, file=sys.stderr)
        print(graphviz_source)


def _create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser.

    Precondition:
        none

    Postcondition:
        returns configured ArgumentParser with all CLI arguments defined

    Returns:
        ArgumentParser instance ready to parse command-line arguments
    """
    parser = argparse.ArgumentParser(
        description="Calculate power/energy flows between devices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Example household with a few readings
  %(prog)s --state "sensor.total_solar_power:5" --state "sensor.load_power:3"

  # Your own topology and a states snapshot
  %(prog)s --config card.json --states states.json

  # Trace every assignment and save the diagram
  %(prog)s --config card.json --states states.json --debug --output-file flows.dot
        """,
    )

    parser.add_argument(
        "--config", "-c",
        help="JSON card configuration (defaults to the example household)",
    )

    parser.add_argument(
        "--states", "-s",
        help="JSON file mapping entity ids to state entries",
    )

    parser.add_argument(
        "--state", "-e",
        action="append",
        default=[],
        help='Entity reading as "Entity:State", may be repeated; overrides --states',
    )

    parser.add_argument(
        "--mode",
        choices=["power", "energy"],
        help="Override the configured power_or_energy mode",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log every intermediate assignment",
    )

    parser.add_argument(
        "--output-file", "-f", help="Write graphviz output to file instead of stdout"
    )

    return parser


def main():
    """Main CLI function.

    Precondition:
        command-line arguments are available via sys.argv

    Postcondition:
        flows are calculated and printed
        graphviz output is written to file or stdout
        returns 0 on success, 1 on error

    Returns:
        exit code (0=success, 1=error)
    """
    parser = _create_argument_parser()
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO, format="%(message)s")

    try:
        card = load_config(args.config) if args.config else process_config(get_stub_config())
        states = _load_states(args.states)
        states.update(parse_state_list(args.state))
        if card.debug:
            _LOGGER.setLevel(logging.DEBUG)

        devices = build_devices(card, args.mode)
        mode = args.mode or card.power_or_energy
        unit = "kW" if mode == "power" else "kWh"

        _LOGGER.info("Calculating %s flows for %s devices", mode, len(devices))
        result = calculate_power_flows(devices, states, debug=args.debug or card.debug)
        print(_format_results(result, unit))

        diagram = design_flow_diagram(
            devices, result, title=card.title, unit=unit, states=states, circle_radius=card.circle_radius
        )
        _output_graphviz(diagram.source, args.output_file)

        return 0

    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
