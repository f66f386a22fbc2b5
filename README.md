# sport2crsf

Read FrSky S.PORT telemetry and send it on as CRSF telemetry frames.

The package decodes the S.PORT byte stream (start byte, byte stuffing,
checksum). It keeps the latest GPS, battery, altitude and vario values and
builds the matching CRSF frames with their CRC8. A bridge connects the two
over serial ports and sends a CRSF heartbeat at a fixed interval.

## Installation

```
pip install .
```

The serial bridge uses `pyserial`. To run the tests, install the test extra:

```
pip install ".[test]"
pytest
```

## Command line

```
sport2crsf --frsky-port /dev/ttyUSB0 --crsf-port /dev/ttyUSB1 [--config sport2crsf.cfg]
```

- `--frsky-port`: the serial port that carries S.PORT. It is opened at the configured FrSky baud rate, 57600 by default.
- `--crsf-port`: the serial port that CRSF frames are written to. It is opened at the configured CRSF baud rate, 420000 by default.
- `--config`: the configuration file, `sport2crsf.cfg` by default. If the file is missing or not a valid record, the defaults are used.

While the bridge runs, type `c` and press Enter to open the configuration
menu. Keys are read from standard input one line at a time. The menu keys
are:

- `s`: save the configuration to the configuration file
- `r`: reset the pins, baud rates and debug flag to their defaults
- `t`: show packet statistics and the success rate
- `x`: leave the menu

Press Ctrl-C to stop the bridge.

## Library use

Decode S.PORT frames. `feed` returns every packet that was completed:

```python
from sport2crsf.frsky_sport import SportParser

parser = SportParser()
for packet in parser.feed(received_bytes):
    print(hex(packet.data_id), packet.value)
```

Byte-at-a-time use is also possible. Call `process_byte`, then
`get_packet`, which returns the latest packet once, or `None`.

Turn packets into CRSF frames:

```python
from sport2crsf.telemetry import TelemetryConverter

converter = TelemetryConverter()
frame = converter.convert(packet)   # bytes, or None
```

`TelemetryConverter` takes an optional `clock` that returns microseconds, and
a `timeout_us` that defaults to five seconds. A frame is built only from
values that were updated within that timeout.

Build CRSF frames directly:

```python
from sport2crsf.crsf import BatteryData, battery_packet, heartbeat_packet

frame = battery_packet(BatteryData(voltage=12600, current=1500, capacity=200, remaining=80))
beat = heartbeat_packet()
```

`create_packet(frame_type, payload)` builds any frame addressed to the
flight controller. A payload longer than 60 bytes raises `CrsfError`. So
does a field value outside its range.

`sport2crsf.bridge` provides the following:

- `Bridge`: moves bytes through the parser and converter. Call `feed`, then `poll(now_us)`; `poll` returns the frames it sent.
- `BridgeConfig`: the settings. It has a fixed-size binary form through `to_bytes` and `from_bytes`.
- `load_config` and `save_config`: read and write the configuration file.
- `Statistics`: packet counts.
- `ConfigMenu`: the key-driven menu text.

## Supported telemetry

| S.PORT value                           | CRSF frame          |
|----------------------------------------|---------------------|
| GPS position, altitude, speed, course  | GPS                 |
| VFAS voltage, current, fuel            | Battery sensor      |
| Vertical speed                         | Vario               |
| Altitude                               | Barometric altitude |

## Limitations

- RPM and temperature values are decoded but not converted. They produce no CRSF frame.
- GPS satellite count and battery capacity used are never filled in from S.PORT data, so they are always sent as 0.
- The status LED is tracked only as the `Bridge.led_on` flag. No hardware is driven.
- The pin settings are stored and shown in the menu, but they do not change which serial ports are used. The ports come from the command line.
- The menu can save, reset and show values, but it cannot edit individual settings.