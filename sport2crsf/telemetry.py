"""Conversion of FrSky S.PORT telemetry values into CRSF frames."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from .crsf import (
    BaroAltData,
    BatteryData,
    FrameType,
    GpsData,
    VarioData,
    baro_alt_packet,
    battery_packet,
    gps_packet,
    vario_packet,
)
from .frsky_sport import DataId, SportPacket

TELEMETRY_TIMEOUT_US = 5_000_000

_U32 = 0xFFFFFFFF
_U16 = 0xFFFF
_U8 = 0xFF

_GPS_IDS = frozenset(
    {DataId.GPS_LONG_LATI, DataId.GPS_ALT, DataId.GPS_SPEED, DataId.GPS_COURS}
)
_BATTERY_IDS = frozenset({DataId.VFAS, DataId.CURR, DataId.FUEL})


def _to_int32(value: int) -> int:
    value &= _U32
    return value - 0x100000000 if value & 0x80000000 else value


def _to_int16(value: int) -> int:
    value &= _U16
    return value - 0x10000 if value & 0x8000 else value


def _default_clock() -> int:
    return (time.monotonic_ns() // 1000) & _U32


def gps_to_decimal(coord: int) -> int:
    """Convert an S.PORT DDMM.mmmm coordinate into degrees * 1e7."""
    coord &= _U32
    degrees, rest = divmod(coord, 1_000_000)
    minutes = rest // 10_000
    minutes_frac = coord % 10_000
    total = (
        degrees * 10_000_000
        + (minutes * 10_000_000) // 60
        + (minutes_frac * 1000) // 60
    )
    return _to_int32(total)


def voltage_to_mv(value: int) -> int:
    """Convert an S.PORT voltage (1/10 V) into millivolts, 16-bit."""
    return (value * 100) & _U16


def current_to_ma(value: int) -> int:
    """Convert an S.PORT current (1/10 A) into milliamps, 16-bit."""
    return (value * 100) & _U16


def vspeed_to_cms(value: int) -> int:
    """Convert an S.PORT vertical speed into a signed 16-bit cm/s value."""
    return _to_int16(value)


def altitude_to_meters(value: int) -> int:
    """Convert an S.PORT altitude (decimetres) into metres, 16-bit."""
    return ((value & _U32) // 10) & _U16


@dataclass
class TelemetryData:
    """Most recent telemetry values and when each group was last updated."""

    latitude: int = 0
    longitude: int = 0
    gps_altitude: int = 0
    gps_speed: int = 0
    gps_heading: int = 0
    satellites: int = 0
    gps_valid: bool = False

    voltage: int = 0
    current: int = 0
    capacity_used: int = 0
    fuel_percent: int = 0
    battery_valid: bool = False

    altitude: int = 0
    vertical_speed: int = 0
    altitude_valid: bool = False
    vario_valid: bool = False

    last_gps_update: int = 0
    last_battery_update: int = 0
    last_altitude_update: int = 0
    last_vario_update: int = 0


class TelemetryConverter:
    """Accumulates S.PORT values and emits CRSF frames while they are fresh.

    ``clock`` returns the current time in microseconds; it is treated as a
    wrapping 32-bit counter.
    """

    def __init__(
        self,
        clock: Callable[[], int] | None = None,
        timeout_us: int = TELEMETRY_TIMEOUT_US,
    ) -> None:
        self._clock = clock or _default_clock
        self.timeout_us = timeout_us
        self.data = TelemetryData()

    def reset(self) -> None:
        self.data = TelemetryData()

    def _now(self) -> int:
        return self._clock() & _U32

    def _fresh(self, valid: bool, last_update: int, now: int) -> bool:
        return valid and ((now - last_update) & _U32) < self.timeout_us

    def update(self, packet: SportPacket) -> None:
        """Store the value carried by ``packet``; unknown ids are ignored."""
        now = self._now()
        value = packet.value & _U32
        data = self.data
        data_id = packet.data_id

        if data_id == DataId.GPS_LONG_LATI:
            negative = bool(value & 0x40000000)
            if value & 0x80000000:
                coord = gps_to_decimal(value & 0x7FFFFFFF)
                data.longitude = _to_int32(-coord) if negative else coord
            else:
                coord = gps_to_decimal(value & 0x3FFFFFFF)
                data.latitude = _to_int32(-coord) if negative else coord
        elif data_id == DataId.GPS_ALT:
            data.gps_altitude = (altitude_to_meters(value) + 1000) & _U16
        elif data_id == DataId.GPS_SPEED:
            data.gps_speed = (((value * 1852) & _U32) // 10000) & _U16
        elif data_id == DataId.GPS_COURS:
            data.gps_heading = (value // 100) & _U16
        elif data_id == DataId.VFAS:
            data.voltage = voltage_to_mv(value)
        elif data_id == DataId.CURR:
            data.current = current_to_ma(value)
        elif data_id == DataId.FUEL:
            data.fuel_percent = value & _U8
        elif data_id == DataId.ALT:
            data.altitude = _to_int32(value // 10)
            data.altitude_valid = True
            data.last_altitude_update = now
            return
        elif data_id == DataId.VSPD:
            data.vertical_speed = vspeed_to_cms(value)
            data.vario_valid = True
            data.last_vario_update = now
            return
        else:
            return

        if data_id in _GPS_IDS:
            data.gps_valid = True
            data.last_gps_update = now
        else:
            data.battery_valid = True
            data.last_battery_update = now

    def create_crsf(self, frame_type: int) -> bytes | None:
        """Build a CRSF frame of ``frame_type`` from fresh data, or None."""
        now = self._now()
        data = self.data

        if frame_type == FrameType.GPS:
            if self._fresh(data.gps_valid, data.last_gps_update, now):
                return gps_packet(
                    GpsData(
                        latitude=data.latitude,
                        longitude=data.longitude,
                        groundspeed=data.gps_speed,
                        heading=data.gps_heading,
                        altitude=data.gps_altitude,
                        satellites=data.satellites,
                    )
                )
        elif frame_type == FrameType.BATTERY_SENSOR:
            if self._fresh(data.battery_valid, data.last_battery_update, now):
                return battery_packet(
                    BatteryData(
                        voltage=data.voltage,
                        current=data.current,
                        capacity=data.capacity_used,
                        remaining=data.fuel_percent,
                    )
                )
        elif frame_type == FrameType.VARIO:
            if self._fresh(data.vario_valid, data.last_vario_update, now):
                return vario_packet(VarioData(vertical_speed=data.vertical_speed))
        elif frame_type == FrameType.BARO_ALT:
            if self._fresh(data.altitude_valid, data.last_altitude_update, now):
                return baro_alt_packet(
                    BaroAltData(
                        altitude=(data.altitude + 10000) & _U16,
                        vertical_speed=data.vertical_speed,
                    )
                )
        return None

    def convert(self, packet: SportPacket) -> bytes | None:
        """Record ``packet`` and return the CRSF frame it feeds, if any."""
        self.update(packet)
        data_id = packet.data_id
        if data_id in _GPS_IDS:
            return self.create_crsf(FrameType.GPS)
        if data_id in _BATTERY_IDS:
            return self.create_crsf(FrameType.BATTERY_SENSOR)
        if data_id == DataId.VSPD:
            return self.create_crsf(FrameType.VARIO)
        if data_id == DataId.ALT:
            return self.create_crsf(FrameType.BARO_ALT)
        return None