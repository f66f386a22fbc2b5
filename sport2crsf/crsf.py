"""CRSF telemetry frame construction."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum

ADDRESS_FLIGHT_CONTROLLER = 0xC8
MAX_PACKET_SIZE = 64
MAX_PAYLOAD_SIZE = MAX_PACKET_SIZE - 4

_CRC8_POLY = 0xD5


class CrsfError(ValueError):
    """Raised when a CRSF frame or payload cannot be built."""


class FrameType(IntEnum):
    GPS = 0x02
    VARIO = 0x07
    BATTERY_SENSOR = 0x08
    BARO_ALT = 0x09
    HEARTBEAT = 0x0B


def _build_crc8_table() -> tuple[int, ...]:
    table = []
    for value in range(256):
        crc = value
        for _ in range(8):
            crc = ((crc << 1) ^ _CRC8_POLY) if crc & 0x80 else (crc << 1)
            crc &= 0xFF
        table.append(crc)
    return tuple(table)


_CRC8_TABLE = _build_crc8_table()


def crc8(data: bytes) -> int:
    """Return the CRSF CRC-8 (polynomial 0xD5) of ``data``."""
    crc = 0
    for byte in data:
        crc = _CRC8_TABLE[crc ^ byte]
    return crc


def _pack(fmt: str, *values: int) -> bytes:
    try:
        return struct.pack(fmt, *values)
    except struct.error as exc:
        raise CrsfError(f"payload field out of range: {exc}") from exc


@dataclass
class GpsData:
    """GPS payload: coordinates in degrees * 1e7, speed km/h * 100,
    heading degrees * 100, altitude meters + 1000."""

    latitude: int = 0
    longitude: int = 0
    groundspeed: int = 0
    heading: int = 0
    altitude: int = 0
    satellites: int = 0

    def pack(self) -> bytes:
        return _pack(
            "<iiHHHB",
            self.latitude,
            self.longitude,
            self.groundspeed,
            self.heading,
            self.altitude,
            self.satellites,
        )


@dataclass
class VarioData:
    """Vario payload: vertical speed in cm/s."""

    vertical_speed: int = 0

    def pack(self) -> bytes:
        return _pack("<h", self.vertical_speed)


@dataclass
class BatteryData:
    """Battery payload: voltage mV, current mA, capacity mAh, remaining %."""

    voltage: int = 0
    current: int = 0
    capacity: int = 0
    remaining: int = 0

    def pack(self) -> bytes:
        return _pack("<HHIB", self.voltage, self.current, self.capacity, self.remaining)


@dataclass
class BaroAltData:
    """Barometric altitude payload: altitude meters + 10000, vertical speed cm/s."""

    altitude: int = 0
    vertical_speed: int = 0

    def pack(self) -> bytes:
        return _pack("<Hh", self.altitude, self.vertical_speed)


def create_packet(frame_type: int, payload: bytes = b"") -> bytes:
    """Build a complete CRSF frame addressed to the flight controller."""
    payload = bytes(payload)
    if len(payload) > MAX_PAYLOAD_SIZE:
        raise CrsfError(
            f"payload of {len(payload)} bytes exceeds {MAX_PAYLOAD_SIZE} bytes"
        )
    if not 0 <= int(frame_type) <= 0xFF:
        raise CrsfError(f"frame type {frame_type} out of range")
    body = bytes([int(frame_type)]) + payload
    return bytes([ADDRESS_FLIGHT_CONTROLLER, len(payload) + 2]) + body + bytes([crc8(body)])


def gps_packet(gps: GpsData) -> bytes:
    return create_packet(FrameType.GPS, gps.pack())


def vario_packet(vario: VarioData) -> bytes:
    return create_packet(FrameType.VARIO, vario.pack())


def battery_packet(battery: BatteryData) -> bytes:
    return create_packet(FrameType.BATTERY_SENSOR, battery.pack())


def baro_alt_packet(baro: BaroAltData) -> bytes:
    return create_packet(FrameType.BARO_ALT, baro.pack())


def heartbeat_packet() -> bytes:
    return create_packet(FrameType.HEARTBEAT)