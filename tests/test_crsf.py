import struct

import pytest

from sport2crsf.crsf import (
    ADDRESS_FLIGHT_CONTROLLER,
    BaroAltData,
    BatteryData,
    CrsfError,
    FrameType,
    GpsData,
    VarioData,
    baro_alt_packet,
    battery_packet,
    crc8,
    create_packet,
    gps_packet,
    heartbeat_packet,
    vario_packet,
)


def test_crc8_table_values():
    assert crc8(b"") == 0x00
    assert crc8(b"\x01") == 0xD5
    assert crc8(b"\x02") == 0x7F


@pytest.mark.parametrize("data", [b"\x0b", b"hello", bytes(range(40)), b"\xff\x00\x7e"])
def test_crc8_residue_is_zero(data):
    assert crc8(data + bytes([crc8(data)])) == 0


def test_heartbeat_wire_bytes():
    assert heartbeat_packet() == bytes([0xC8, 0x02, 0x0B, 0x83])


def test_create_packet_layout():
    payload = b"\x10\x20\x30"
    packet = create_packet(FrameType.VARIO, payload)
    assert packet[0] == ADDRESS_FLIGHT_CONTROLLER
    assert packet[1] == len(payload) + 2
    assert packet[2] == FrameType.VARIO
    assert packet[3:-1] == payload
    assert packet[-1] == crc8(packet[2:-1])
    assert len(packet) == len(payload) + 4


def test_create_packet_max_payload():
    packet = create_packet(0x10, bytes(60))
    assert len(packet) == 64


def test_create_packet_payload_too_large():
    with pytest.raises(CrsfError):
        create_packet(0x10, bytes(61))


def test_create_packet_bad_frame_type():
    with pytest.raises(CrsfError):
        create_packet(256, b"")


def test_gps_pack_size_and_round_trip():
    gps = GpsData(
        latitude=-123456789,
        longitude=987654321,
        groundspeed=1500,
        heading=18000,
        altitude=1100,
        satellites=9,
    )
    raw = gps.pack()
    assert len(raw) == 15
    assert struct.unpack("<iiHHHB", raw) == (-123456789, 987654321, 1500, 18000, 1100, 9)


def test_gps_packet_frame():
    gps = GpsData(latitude=1, longitude=2)
    packet = gps_packet(gps)
    assert packet[2] == FrameType.GPS
    assert packet[3:-1] == gps.pack()
    assert crc8(packet[2:]) == 0


def test_vario_packet_negative_speed():
    packet = vario_packet(VarioData(vertical_speed=-250))
    assert packet[2] == FrameType.VARIO
    assert struct.unpack("<h", packet[3:-1]) == (-250,)


def test_battery_packet():
    battery = BatteryData(voltage=12600, current=4500, capacity=1200, remaining=80)
    packet = battery_packet(battery)
    assert packet[2] == FrameType.BATTERY_SENSOR
    assert struct.unpack("<HHIB", packet[3:-1]) == (12600, 4500, 1200, 80)


def test_baro_alt_packet():
    packet = baro_alt_packet(BaroAltData(altitude=10150, vertical_speed=-30))
    assert packet[2] == FrameType.BARO_ALT
    assert struct.unpack("<Hh", packet[3:-1]) == (10150, -30)


@pytest.mark.parametrize(
    "payload",
    [
        VarioData(vertical_speed=40000),
        BatteryData(voltage=-1),
        BaroAltData(altitude=70000),
        GpsData(satellites=300),
    ],
)
def test_out_of_range_fields_raise(payload):
    with pytest.raises(CrsfError):
        payload.pack()