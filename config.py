#!/usr/bin/env python3
"""
🔥🔋🐧 Power Warning Configuration
================================
Copyright (c) 2025 PNGN-Tec LLC

Configuration constants for device health warnings, plus resolution of
user settings over the compiled-in defaults.

A user setting that is present always wins over the config default. A
setting that is absent (or None) falls back to the default below.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from exceptions import ConfigurationError
from shared_types import THRESHOLD_DERIVE, ThermalClearPolicy, WarningSource

logger = logging.getLogger('PNGN.PowerWarnings.Config')

# ============================================================================
# THERMAL WARNING
# ============================================================================

SHOW_TEMPERATURE_WARNING_DEFAULT = True      # config default, user setting overrides
WARNING_TEMPERATURE = THRESHOLD_DERIVE       # °C, THRESHOLD_DERIVE = shutdown - tolerance
WARNING_TEMPERATURE_TOLERANCE = 3.0          # °C below shutdown temperature
THERMAL_CLEAR_POLICY = 'on_cooldown'         # 'on_cooldown' or 'manual'
THERMAL_CLEAR_MARGIN = 0.0                   # °C below threshold before clearing

# ============================================================================
# LOW BATTERY WARNING
# ============================================================================

WARNING_BUCKET_THRESHOLD = -1                # buckets <= this are "in warning"
STANDARD_TIME_THRESHOLD = 3 * 3600.0         # seconds (3h)
HYBRID_TIME_THRESHOLD = 3 * 3600.0           # seconds (3h)

# Level -> bucket mapping (percent)
LOW_BATTERY_WARNING_LEVELS = (15, 5)         # warning, critical
LOW_BATTERY_CLOSE_LEVEL_OFFSET = 5           # close level = warning + offset

# ============================================================================
# POLLING
# ============================================================================

POLL_INTERVAL = 30.0                         # seconds between telemetry polls
TEMPERATURE_LOG_INTERVAL = 3600.0            # seconds between temperature stat logs
MAX_RECENT_TEMPS = 125                       # samples kept for stats
MAX_WARNING_EVENTS = 200                     # event log bound
MAX_POLL_CALLBACKS = 10
SUBPROCESS_TIMEOUT = 3.0                     # seconds for Termux calls
READ_TIMEOUT = 10.0                          # seconds for one collaborator read

# ============================================================================
# PLATFORM
# ============================================================================

TERMUX_BATTERY_STATUS_CMD = ["termux-battery-status"]
POWER_SAVER_STATUS_CMD = ["settings", "get", "global", "low_power"]
THERMAL_BASE_PATH = '/sys/class/thermal'
MILLIDEGREE_TO_DEGREE = 1000.0
SKIN_ZONE_TYPES = ('skin-therm', 'sys-therm-0', 'quiet-therm', 'xo-therm')
USER_SETTINGS_FILE = '~/.power_warnings.json'

# ============================================================================
# RESOLVED SETTINGS
# ============================================================================

@dataclass(frozen=True)
class WarningSettings:
    """Resolved settings for one poll"""
    show_temperature_warning: bool = SHOW_TEMPERATURE_WARNING_DEFAULT
    warning_source: WarningSource = WarningSource.CONFIG
    warning_temperature: float = WARNING_TEMPERATURE
    warning_temperature_tolerance: float = WARNING_TEMPERATURE_TOLERANCE
    thermal_clear_policy: ThermalClearPolicy = ThermalClearPolicy(THERMAL_CLEAR_POLICY)
    thermal_clear_margin: float = THERMAL_CLEAR_MARGIN
    warning_bucket_threshold: int = WARNING_BUCKET_THRESHOLD
    standard_time_threshold: float = STANDARD_TIME_THRESHOLD
    hybrid_time_threshold: float = HYBRID_TIME_THRESHOLD


def resolve_warnings_enabled(user_setting: Optional[bool],
                             config_default: bool) -> Tuple[bool, WarningSource]:
    """User setting, when present, always takes precedence over config."""
    if user_setting is not None:
        return bool(user_setting), WarningSource.USER_SETTING
    return bool(config_default), WarningSource.CONFIG


def _parse_bool(key: str, value: Any) -> bool:
    # Settings store booleans as 0/1 ints or strings
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ('0', '1', 'true', 'false'):
        return value.strip().lower() in ('1', 'true')
    raise ConfigurationError(f"Setting {key!r} is not a boolean: {value!r}")


def _parse_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"Setting {key!r} is not a number: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Setting {key!r} is not a number: {value!r}") from e


def _parse_policy(key: str, value: Any) -> ThermalClearPolicy:
    try:
        return ThermalClearPolicy(str(value).strip().lower())
    except ValueError as e:
        raise ConfigurationError(f"Setting {key!r} has unknown policy: {value!r}") from e


_PARSERS = {
    'show_temperature_warning': _parse_bool,
    'warning_temperature': _parse_float,
    'warning_temperature_tolerance': _parse_float,
    'thermal_clear_policy': _parse_policy,
    'thermal_clear_margin': _parse_float,
}


def resolve_settings(user_settings: Optional[Dict[str, Any]] = None,
                     defaults: Optional[WarningSettings] = None) -> WarningSettings:
    """
    Resolve user settings over config defaults.

    Args:
        user_settings: Raw user settings (absent or None values are unset)
        defaults: Config defaults, module constants if omitted

    Returns:
        WarningSettings with warning_source set to USER_SETTING when the
        user explicitly set show_temperature_warning

    Raises:
        ConfigurationError: a present setting cannot be parsed
    """
    defaults = defaults or WarningSettings()
    resolved = {}

    for key, value in (user_settings or {}).items():
        parser = _PARSERS.get(key)
        if parser is None:
            logger.debug(f"Ignoring unknown setting {key!r}")
            continue
        if value is None:
            continue
        resolved[key] = parser(key, value)

    enabled, source = resolve_warnings_enabled(resolved.get('show_temperature_warning'),
                                               defaults.show_temperature_warning)

    return WarningSettings(
        show_temperature_warning=enabled,
        warning_source=source,
        warning_temperature=resolved.get('warning_temperature', defaults.warning_temperature),
        warning_temperature_tolerance=resolved.get('warning_temperature_tolerance',
                                                   defaults.warning_temperature_tolerance),
        thermal_clear_policy=resolved.get('thermal_clear_policy', defaults.thermal_clear_policy),
        thermal_clear_margin=resolved.get('thermal_clear_margin', defaults.thermal_clear_margin),
        warning_bucket_threshold=defaults.warning_bucket_threshold,
        standard_time_threshold=defaults.standard_time_threshold,
        hybrid_time_threshold=defaults.hybrid_time_threshold,
    )
