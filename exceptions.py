"""
Power Warning Exceptions
========================
Copyright (c) 2025 PNGN-Tec LLC

Simple exception hierarchy for error handling.
"""


class PowerWarningError(Exception):
    """Base exception for the warning engine."""

    pass


class ConfigurationError(PowerWarningError):
    """Configuration or user setting is invalid."""

    pass


class TelemetryUnavailableError(PowerWarningError):
    """Sensor, battery or estimate data is unavailable."""

    pass
