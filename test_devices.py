"""Tests for devices module"""

from config import DeviceConfig, get_stub_config, process_config
from devices import FixedDevice, StandardDevice, build_devices
from flow_graph import Connection
from measurements import freeze_states


def _config(**kwargs):
    return DeviceConfig(id="battery", name="Battery", x_pos=0, y_pos=0, **kwargs)


def test_fixed_device():
    """FixedDevice returns its value for any snapshot"""
    device = FixedDevice("grid", -1.5, [Connection("home")])

    assert device.intrinsic_value(freeze_states({})) == -1.5
    assert device.name == "grid"
    assert device.max_power == 20


def test_power_source_minus_sink():
    """power is production minus consumption"""
    device = StandardDevice(_config(power_source=["sensor.out"], power_sink=["sensor.in"]))
    states = freeze_states({"sensor.out": "4", "sensor.in": "1.5"})

    assert device.power(states) == 2.5
    assert device.intrinsic_value(states) == 2.5


def test_power_sums_and_converts_watts():
    """several entities are summed after converting W to kW"""
    device = StandardDevice(_config(power_source=["sensor.a", "sensor.b"]))
    states = freeze_states({
        "sensor.a": {"state": "1200", "attributes": {"unit_of_measurement": "W"}},
        "sensor.b": "0.3",
    })

    assert device.intrinsic_value(states) == 1.5


def test_power_ignores_unavailable():
    """unavailable sensors contribute nothing"""
    device = StandardDevice(_config(power_source=["sensor.a"], power_sink=["sensor.b"]))
    states = freeze_states({"sensor.a": "unavailable", "sensor.b": "2"})

    assert device.intrinsic_value(states) == -2


def test_power_rounded_to_two_decimals():
    """values are rounded half-up to 2 decimals"""
    device = StandardDevice(_config(power_source=["sensor.a"]))

    assert device.intrinsic_value(freeze_states({"sensor.a": "1.234"})) == 1.23
    assert device.intrinsic_value(freeze_states({"sensor.a": "0.125"})) == 0.13


def test_floor_clamps_small_values():
    """values below the floor are shown as 0"""
    device = StandardDevice(_config(power_sink=["sensor.a"], floor=0.05))

    assert device.intrinsic_value(freeze_states({"sensor.a": "0.04"})) == 0
    assert device.intrinsic_value(freeze_states({"sensor.a": "0.05"})) == -0.05


def test_energy_mode():
    """energy mode is energy out minus energy in"""
    device = StandardDevice(
        _config(energy_source=["sensor.out"], energy_sink=["sensor.in"], power_source=["sensor.p"]),
        power_or_energy="energy",
    )
    states = freeze_states({
        "sensor.out": "12",
        "sensor.in": {"state": "4500", "attributes": {"unit_of_measurement": "Wh"}},
        "sensor.p": "99",
    })

    assert device.energy_out(states) == 12
    assert device.energy_in(states) == 4.5
    assert device.intrinsic_value(states) == 7.5


def test_build_devices_preserves_order():
    """devices are built in configuration order and share connection objects"""
    card = process_config(get_stub_config())

    devices = build_devices(card)

    assert [device.id for device in devices] == ["grid", "battery", "solar", "home"]
    assert devices[1].connections is card.devices[1].connections
    assert devices[0].name == "Grid"
    assert devices[0].max_power == 15
    assert all(device.power_or_energy == "power" for device in devices)


def test_build_devices_mode_override():
    """an explicit mode overrides the card setting"""
    devices = build_devices(process_config(get_stub_config()), "energy")

    assert all(device.power_or_energy == "energy" for device in devices)


def test_percent_reading():
    """percent_entity readings are rounded to one decimal"""
    device = StandardDevice(_config(power_source=["sensor.a"], percent_entity="sensor.soc"))

    assert device.percent(freeze_states({"sensor.soc": "80.25"})) == 80.3
    assert device.percent(freeze_states({"sensor.soc": "unavailable"})) is None
    assert device.percent(freeze_states({})) is None


def test_percent_without_entity():
    """devices without percent_entity have no percent"""
    device = StandardDevice(_config(power_source=["sensor.a"]))

    assert device.percent(freeze_states({"sensor.a": "1"})) is None
    assert FixedDevice("grid", 1).percent(freeze_states({})) is None


def test_position_and_icon():
    """position and icon come from the configuration"""
    device = StandardDevice(DeviceConfig(
        id="solar", name="Solar", x_pos=2, y_pos=1, icon="mdi:solar-power", power_source=["sensor.a"],
    ))

    assert device.position == (2, 1)
    assert device.icon == "mdi:solar-power"
    assert FixedDevice("grid", 1).position is None
