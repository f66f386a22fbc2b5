"""S.PORT to CRSF bridge: configuration, statistics, console menu and main loop."""

from __future__ import annotations

import argparse
import queue
import struct
import sys
import threading
import time
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Callable, Protocol

import serial

from .crsf import heartbeat_packet
from .frsky_sport import SportParser
from .telemetry import TelemetryConverter

FRSKY_TX_PIN = 0
FRSKY_RX_PIN = 1
FRSKY_BAUD_RATE = 57600
CRSF_TX_PIN = 4
CRSF_RX_PIN = 5
CRSF_BAUD_RATE = 420000
LED_PIN = 25

FRSKY_BUFFER_SIZE = 256
HEARTBEAT_INTERVAL_US = 100_000
LED_BLINK_INTERVAL_US = 500_000
DEBUG_ENABLED = True

CONFIG_MAGIC = 0x46525343
DEFAULT_CONFIG_PATH = "sport2crsf.cfg"

# Matches the naturally aligned on-flash record layout, including padding.
_CONFIG_FORMAT = "<IHHIHHIH2xIIB32s3x"
CONFIG_SIZE = struct.calcsize(_CONFIG_FORMAT)

_U32 = 0xFFFFFFFF


class ConfigError(ValueError):
    """Raised when a stored configuration record cannot be decoded."""


@dataclass
class BridgeConfig:
    """Persistent bridge settings."""

    frsky_tx_pin: int = FRSKY_TX_PIN
    frsky_rx_pin: int = FRSKY_RX_PIN
    frsky_baud_rate: int = FRSKY_BAUD_RATE
    crsf_tx_pin: int = CRSF_TX_PIN
    crsf_rx_pin: int = CRSF_RX_PIN
    crsf_baud_rate: int = CRSF_BAUD_RATE
    led_pin: int = LED_PIN
    heartbeat_interval_us: int = HEARTBEAT_INTERVAL_US
    led_blink_interval_us: int = LED_BLINK_INTERVAL_US
    debug_enabled: bool = DEBUG_ENABLED

    def to_bytes(self) -> bytes:
        """Encode as a fixed-size record starting with the magic number."""
        try:
            return struct.pack(
                _CONFIG_FORMAT,
                CONFIG_MAGIC,
                self.frsky_tx_pin,
                self.frsky_rx_pin,
                self.frsky_baud_rate,
                self.crsf_tx_pin,
                self.crsf_rx_pin,
                self.crsf_baud_rate,
                self.led_pin,
                self.heartbeat_interval_us,
                self.led_blink_interval_us,
                int(bool(self.debug_enabled)),
                bytes(32),
            )
        except struct.error as exc:
            raise ConfigError(f"configuration value out of range: {exc}") from exc

    @classmethod
    def from_bytes(cls, data: bytes) -> BridgeConfig:
        """Decode a record produced by :meth:`to_bytes`."""
        if len(data) < CONFIG_SIZE:
            raise ConfigError(
                f"configuration record of {len(data)} bytes is shorter than {CONFIG_SIZE}"
            )
        (
            magic,
            frsky_tx,
            frsky_rx,
            frsky_baud,
            crsf_tx,
            crsf_rx,
            crsf_baud,
            led,
            heartbeat,
            blink,
            debug,
            _reserved,
        ) = struct.unpack_from(_CONFIG_FORMAT, data)
        if magic != CONFIG_MAGIC:
            raise ConfigError(f"bad configuration magic 0x{magic:08X}")
        return cls(
            frsky_tx_pin=frsky_tx,
            frsky_rx_pin=frsky_rx,
            frsky_baud_rate=frsky_baud,
            crsf_tx_pin=crsf_tx,
            crsf_rx_pin=crsf_rx,
            crsf_baud_rate=crsf_baud,
            led_pin=led,
            heartbeat_interval_us=heartbeat,
            led_blink_interval_us=blink,
            debug_enabled=bool(debug),
        )

    def reset(self) -> None:
        """Restore port, pin and debug settings; timing intervals are kept."""
        self.frsky_tx_pin = FRSKY_TX_PIN
        self.frsky_rx_pin = FRSKY_RX_PIN
        self.frsky_baud_rate = FRSKY_BAUD_RATE
        self.crsf_tx_pin = CRSF_TX_PIN
        self.crsf_rx_pin = CRSF_RX_PIN
        self.crsf_baud_rate = CRSF_BAUD_RATE
        self.led_pin = LED_PIN
        self.debug_enabled = DEBUG_ENABLED


def _read_config(path: str | Path) -> BridgeConfig | None:
    try:
        data = Path(path).read_bytes()
    except OSError:
        return None
    try:
        return BridgeConfig.from_bytes(data)
    except ConfigError:
        return None


def load_config(path: str | Path) -> BridgeConfig:
    """Load the stored configuration, or the defaults if none is valid."""
    return _read_config(path) or BridgeConfig()


def save_config(config: BridgeConfig, path: str | Path) -> None:
    """Write ``config`` to ``path``, replacing what was there."""
    Path(path).write_bytes(config.to_bytes())


@dataclass
class Statistics:
    frsky_packets_received: int = 0
    frsky_packets_valid: int = 0
    crsf_packets_sent: int = 0

    def success_rate(self) -> float:
        """Percentage of received S.PORT packets that were valid."""
        if self.frsky_packets_received == 0:
            return 0.0
        return 100.0 * self.frsky_packets_valid / self.frsky_packets_received


class ConfigMenu:
    """Single-key console menu; each key yields the text to show."""

    def __init__(
        self,
        config: BridgeConfig,
        stats: Statistics | None = None,
        path: str | Path = DEFAULT_CONFIG_PATH,
    ) -> None:
        self.config = config
        self.stats = stats if stats is not None else Statistics()
        self.path = path
        self.active = False

    def render(self) -> str:
        c = self.config
        return (
            "\n=== FrSky to CRSF Converter Configuration ===\n"
            f"1. FrSky TX Pin: {c.frsky_tx_pin}\n"
            f"2. FrSky RX Pin: {c.frsky_rx_pin}\n"
            f"3. FrSky Baud Rate: {c.frsky_baud_rate}\n"
            f"4. CRSF TX Pin: {c.crsf_tx_pin}\n"
            f"5. CRSF RX Pin: {c.crsf_rx_pin}\n"
            f"6. CRSF Baud Rate: {c.crsf_baud_rate}\n"
            f"7. LED Pin: {c.led_pin}\n"
            f"8. Debug Enabled: {'Yes' if c.debug_enabled else 'No'}\n"
            "\nCommands:\n"
            "s - Save configuration\n"
            "r - Reset to defaults\n"
            "t - Show statistics\n"
            "x - Exit configuration\n"
            "\nEnter option: "
        )

    def _statistics_text(self) -> str:
        s = self.stats
        return (
            "\n=== Statistics ===\n"
            f"FrSky packets received: {s.frsky_packets_received}\n"
            f"FrSky packets valid: {s.frsky_packets_valid}\n"
            f"CRSF packets sent: {s.crsf_packets_sent}\n"
            f"Success rate: {s.success_rate():.1f}%\n"
        )

    def handle_key(self, key: str) -> str:
        """Act on one key press and return the text to display."""
        if not self.active:
            if key == "c":
                self.active = True
                return self.render()
            return ""

        if key == "s":
            save_config(self.config, self.path)
            saved = "Configuration saved to flash\n" if self.config.debug_enabled else ""
            return saved + "Configuration saved!\n" + self.render()
        if key == "r":
            self.config.reset()
            return "Configuration reset to defaults!\n" + self.render()
        if key == "t":
            return self._statistics_text() + self.render()
        if key == "x":
            self.active = False
            return "Exiting configuration mode\n"
        return self.render()


class _Writer(Protocol):
    def write(self, data: bytes) -> object: ...


class _Reader(Protocol):
    def read(self, size: int) -> bytes: ...


def _default_clock() -> int:
    return (time.monotonic_ns() // 1000) & _U32


class Bridge:
    """Moves S.PORT bytes through the converter and emits CRSF frames."""

    def __init__(
        self,
        config: BridgeConfig | None = None,
        writer: _Writer | None = None,
        reader: _Reader | None = None,
        clock: Callable[[], int] | None = None,
        keys: queue.Queue[str] | None = None,
        console: Callable[[str], object] | None = None,
        config_path: str | Path = DEFAULT_CONFIG_PATH,
        trace_frsky: bool = False,
        trace_crsf: bool = False,
    ) -> None:
        self.config = config if config is not None else BridgeConfig()
        self.stats = Statistics()
        self.menu = ConfigMenu(self.config, self.stats, config_path)
        self.parser = SportParser()
        self._now_us = 0
        self.converter = TelemetryConverter(clock=lambda: self._now_us)
        self.led_on = True
        self.running = False
        self.trace_frsky = trace_frsky
        self.trace_crsf = trace_crsf
        self._writer = writer
        self._reader = reader
        self._clock = clock or _default_clock
        self._keys = keys
        self._console = console or (lambda text: print(text, end="", flush=True))
        self._buffer = bytearray()
        self._last_heartbeat = 0
        self._last_led_toggle = 0

    def feed(self, data: bytes) -> int:
        """Queue received S.PORT bytes; returns how many fit in the buffer."""
        room = (FRSKY_BUFFER_SIZE - 1) - len(self._buffer)
        accepted = bytes(data[: max(room, 0)])
        self._buffer.extend(accepted)
        return len(accepted)

    def _send(self, frame: bytes) -> None:
        if self._writer is not None:
            self._writer.write(frame)
        self.stats.crsf_packets_sent += 1

    def poll(self, now_us: int) -> list[bytes]:
        """Run one pass of the main loop at time ``now_us``; return frames sent."""
        now = now_us & _U32
        self._now_us = now
        sent: list[bytes] = []

        for byte in self._buffer:
            self.parser.process_byte(byte)
        self._buffer.clear()

        packet = self.parser.get_packet()
        if packet is not None:
            self.stats.frsky_packets_received += 1
            self.stats.frsky_packets_valid += 1
            if self.config.debug_enabled and self.trace_frsky:
                self._console(
                    f"FrSky: ID=0x{packet.data_id:04X}, Value=0x{packet.value:08X}\n"
                )
            frame = self.converter.convert(packet)
            if frame is not None:
                self._send(frame)
                sent.append(frame)
                if self.config.debug_enabled and self.trace_crsf:
                    self._console(f"CRSF: Type=0x{frame[2]:02X}, Length={len(frame)}\n")

        if ((now - self._last_heartbeat) & _U32) > self.config.heartbeat_interval_us:
            frame = heartbeat_packet()
            self._send(frame)
            sent.append(frame)
            self._last_heartbeat = now

        if ((now - self._last_led_toggle) & _U32) > self.config.led_blink_interval_us:
            self.led_on = not self.led_on
            self._last_led_toggle = now

        return sent

    def _handle_keys(self) -> None:
        if self._keys is None:
            return
        while True:
            try:
                key = self._keys.get_nowait()
            except queue.Empty:
                return
            text = self.menu.handle_key(key)
            if text:
                self._console(text)

    def run(self) -> None:
        """Loop until ``running`` is cleared, reading from the S.PORT reader."""
        if self._reader is None:
            raise RuntimeError("bridge has no S.PORT reader to run from")
        self.running = True
        while self.running:
            self._handle_keys()
            data = self._reader.read(FRSKY_BUFFER_SIZE)
            if data:
                self.feed(data)
            self.poll(self._clock())


def _read_keys(keys: queue.Queue[str]) -> None:
    for line in sys.stdin:
        for ch in line.strip():
            keys.put(ch)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="sport2crsf", description="Convert FrSky S.PORT telemetry to CRSF."
    )
    parser.add_argument("--frsky-port", required=True, help="serial port carrying S.PORT")
    parser.add_argument("--crsf-port", required=True, help="serial port for CRSF output")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="configuration file")
    args = parser.parse_args(argv)

    stored = _read_config(args.config)
    config = stored or BridgeConfig()
    if stored is not None and config.debug_enabled:
        print("Configuration loaded from flash")

    keys: queue.Queue[str] = queue.Queue()
    threading.Thread(target=_read_keys, args=(keys,), daemon=True).start()

    with serial.Serial(args.frsky_port, baudrate=config.frsky_baud_rate, timeout=0) as frsky, \
            serial.Serial(args.crsf_port, baudrate=config.crsf_baud_rate, timeout=0) as crsf:
        if config.debug_enabled:
            print("FrSky S.PORT to CRSF Converter Started")
            print("Press 'c' for configuration menu")
            print(f"FrSky: {args.frsky_port} @ {config.frsky_baud_rate} baud")
            print(f"CRSF: {args.crsf_port} @ {config.crsf_baud_rate} baud")
        bridge = Bridge(
            config=config,
            writer=crsf,
            reader=frsky,
            keys=keys,
            config_path=args.config,
        )
        try:
            bridge.run()
        except KeyboardInterrupt:
            pass
    return 0