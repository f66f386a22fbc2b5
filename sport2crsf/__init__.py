"""FrSky S.PORT decoding, CRSF frame building and a serial bridge between them."""

__version__ = "0.1.0"
__all__ = ["crsf", "frsky_sport", "telemetry", "bridge"]