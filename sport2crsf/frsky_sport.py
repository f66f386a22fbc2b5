"""FrSky S.PORT stream decoding."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

START_BYTE = 0x7E
ESCAPE_BYTE = 0x7D
PACKET_SIZE = 9


class DataId(IntEnum):
    VFAS = 0x0210
    CURR = 0x0200
    VSPD = 0x0110
    ALT = 0x0100
    GPS_LONG_LATI = 0x0800
    GPS_ALT = 0x0820
    GPS_SPEED = 0x0830
    GPS_COURS = 0x0840
    FUEL = 0x0600
    RPM = 0x0500
    TEMP1 = 0x0401
    TEMP2 = 0x0402


@dataclass(frozen=True)
class SportPacket:
    sensor_id: int
    frame_id: int
    data_id: int
    value: int


class _State(Enum):
    IDLE = "idle"
    START = "start"
    DATA = "data"


def crc(data: bytes) -> int:
    """Return the S.PORT checksum of ``data``."""
    total = 0
    for byte in data:
        total += byte
        total += total >> 8
        total &= 0xFF
    return 0xFF - total


def unstuff_byte(byte: int) -> int:
    """Undo S.PORT byte stuffing for the byte following an escape."""
    if byte == 0x5E:
        return 0x7E
    if byte == 0x5D:
        return 0x7D
    return byte


class SportParser:
    """Byte-at-a-time S.PORT frame decoder."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._state = _State.IDLE
        self._buffer = bytearray()
        self._escape_next = False
        self._pending: SportPacket | None = None

    def process_byte(self, byte: int) -> None:
        if not 0 <= byte <= 0xFF:
            raise ValueError(f"byte value {byte} out of range")

        if self._state is _State.IDLE:
            if byte == START_BYTE:
                self._state = _State.START
                self._buffer.clear()
                self._escape_next = False
            return

        if self._state is _State.START:
            if byte == START_BYTE:
                self._buffer.clear()
            elif byte == ESCAPE_BYTE:
                self._escape_next = True
            else:
                if self._escape_next:
                    byte = unstuff_byte(byte)
                    self._escape_next = False
                self._buffer.append(byte)
                self._state = _State.DATA
            return

        if byte == ESCAPE_BYTE and not self._escape_next:
            self._escape_next = True
            return
        if self._escape_next:
            byte = unstuff_byte(byte)
            self._escape_next = False
        self._buffer.append(byte)

        if len(self._buffer) >= PACKET_SIZE:
            frame = bytes(self._buffer)
            if crc(frame[:-1]) == frame[-1]:
                self._pending = SportPacket(
                    sensor_id=frame[0],
                    frame_id=frame[1],
                    data_id=int.from_bytes(frame[2:4], "little"),
                    value=int.from_bytes(frame[4:8], "little"),
                )
            self._state = _State.IDLE

    def get_packet(self) -> SportPacket | None:
        """Return the latest complete packet once, or None."""
        packet, self._pending = self._pending, None
        return packet

    def feed(self, data: bytes) -> list[SportPacket]:
        """Process ``data`` and return every packet completed along the way."""
        packets = []
        for byte in data:
            self.process_byte(byte)
            packet = self.get_packet()
            if packet is not None:
                packets.append(packet)
        return packets