import pytest

from sport2crsf.crsf import (
    ADDRESS_FLIGHT_CONTROLLER,
    BaroAltData,
    BatteryData,
    FrameType,
    GpsData,
    VarioData,
    baro_alt_packet,
    battery_packet,
    vario_packet,
)
from sport2crsf.frsky_sport import DataId, SportPacket
from sport2crsf.telemetry import (
    TELEMETRY_TIMEOUT_US,
    TelemetryConverter,
    TelemetryData,
    altitude_to_meters,
    current_to_ma,
    gps_to_decimal,
    voltage_to_mv,
    vspeed_to_cms,
)


class FakeClock:
    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now


def make_packet(data_id, value):
    return SportPacket(sensor_id=0x1B, frame_id=0x10, data_id=data_id, value=value)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def converter(clock):
    return TelemetryConverter(clock=clock)


@pytest.mark.parametrize("degrees", [0, 1, 45, 179])
def test_gps_whole_degrees(degrees):
    assert gps_to_decimal(degrees * 1_000_000) == degrees * 10_000_000


def test_gps_thirty_minutes_is_half_degree():
    assert gps_to_decimal(30 * 10_000) == 5_000_000


def test_gps_monotonic_in_fraction():
    assert gps_to_decimal(45_300_001) >= gps_to_decimal(45_300_000)


def test_vspeed_is_signed_16_bit():
    assert vspeed_to_cms(0xFFFFFFFF) == -1
    assert vspeed_to_cms(0x7FFF) == 0x7FFF
    assert vspeed_to_cms(0x10000) == 0


def test_voltage_and_current_scale_alike():
    assert voltage_to_mv(126) == 12600
    for value in (0, 1, 126, 655, 656, 100_000):
        assert voltage_to_mv(value) == current_to_ma(value)
        assert 0 <= voltage_to_mv(value) <= 0xFFFF


def test_altitude_truncates():
    assert altitude_to_meters(1234) == altitude_to_meters(1239)
    for metres in (0, 7, 500):
        assert altitude_to_meters(metres * 10) == metres


def test_battery_conversion(converter):
    frame = converter.convert(make_packet(DataId.VFAS, 126))
    assert frame == battery_packet(BatteryData(voltage=voltage_to_mv(126)))
    assert frame[0] == ADDRESS_FLIGHT_CONTROLLER
    assert frame[2] == FrameType.BATTERY_SENSOR
    assert converter.data.battery_valid


def test_battery_accumulates_fields(converter):
    converter.convert(make_packet(DataId.VFAS, 126))
    converter.convert(make_packet(DataId.CURR, 15))
    frame = converter.convert(make_packet(DataId.FUEL, 0x1234))
    expected = BatteryData(
        voltage=voltage_to_mv(126), current=current_to_ma(15), remaining=0x34
    )
    assert frame == battery_packet(expected)


def test_vario_conversion(converter):
    value = 0xFFFFFF9C
    frame = converter.convert(make_packet(DataId.VSPD, value))
    assert converter.data.vertical_speed == vspeed_to_cms(value)
    assert frame == vario_packet(VarioData(vertical_speed=vspeed_to_cms(value)))


def test_baro_altitude_conversion(converter):
    frame = converter.convert(make_packet(DataId.ALT, 1000))
    assert converter.data.altitude == altitude_to_meters(1000)
    expected = BaroAltData(altitude=converter.data.altitude + 10000)
    assert frame == baro_alt_packet(expected)


def test_latitude_sign_bit(converter):
    converter.update(make_packet(DataId.GPS_LONG_LATI, 0x40000000 | 45_300_000))
    assert converter.data.latitude == -gps_to_decimal(45_300_000)
    assert converter.data.longitude == 0
    assert converter.data.gps_valid


def test_longitude_flag(converter):
    converter.update(make_packet(DataId.GPS_LONG_LATI, 0x80000000 | 12_150_000))
    assert converter.data.longitude == gps_to_decimal(12_150_000)
    assert converter.data.latitude == 0


def test_gps_frame_layout(converter):
    frame = converter.convert(make_packet(DataId.GPS_COURS, 9000))
    assert frame[2] == FrameType.GPS
    assert len(frame) == len(GpsData().pack()) + 4
    assert frame[1] == len(frame) - 2
    assert converter.data.gps_heading == 90


def test_gps_altitude_offset(converter):
    converter.update(make_packet(DataId.GPS_ALT, 500))
    assert converter.data.gps_altitude == altitude_to_meters(500) + 1000


def test_data_expires_after_timeout(converter, clock):
    converter.update(make_packet(DataId.VFAS, 120))
    clock.now = TELEMETRY_TIMEOUT_US - 1
    assert converter.create_crsf(FrameType.BATTERY_SENSOR) is not None
    clock.now = TELEMETRY_TIMEOUT_US
    assert converter.create_crsf(FrameType.BATTERY_SENSOR) is None


def test_clock_wraparound_keeps_data_fresh(converter, clock):
    clock.now = 0xFFFFFF00
    converter.update(make_packet(DataId.VSPD, 10))
    clock.now = 0x100
    assert converter.create_crsf(FrameType.VARIO) == vario_packet(
        VarioData(vertical_speed=10)
    )


def test_missing_data_gives_nothing(converter):
    assert converter.create_crsf(FrameType.GPS) is None
    assert converter.create_crsf(FrameType.HEARTBEAT) is None


def test_unknown_data_id_ignored(converter):
    assert converter.convert(make_packet(DataId.RPM, 3000)) is None
    assert converter.data == TelemetryData()


def test_reset_clears_state(converter):
    converter.update(make_packet(DataId.ALT, 1000))
    converter.reset()
    assert converter.data == TelemetryData()
    assert converter.create_crsf(FrameType.BARO_ALT) is None