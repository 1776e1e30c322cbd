#!/usr/bin/env python3
"""
🐧 Power Warning Collaborators
=============================
Copyright (c) 2025 PNGN-Tec LLC

Narrow interfaces the warning engine consumes, each with one production
implementation:

- SensorProvider      -> SysfsSensorProvider (/sys/class/thermal)
- SettingsProvider    -> JsonSettingsProvider (user settings JSON over config)
- PowerStateProvider  -> TermuxPowerStateProvider (termux-battery-status)
- EstimateProvider    -> NullEstimateProvider (hybrid estimates disabled)
- WarningPresenter    -> LoggingPresenter (rendering lives elsewhere)

Providers may block or fail; the engine insulates evaluators from them.
"""

import asyncio
import json
import logging
import math
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from battery_warnings import find_battery_level_bucket
from config import (
    LOW_BATTERY_CLOSE_LEVEL_OFFSET,
    LOW_BATTERY_WARNING_LEVELS,
    MILLIDEGREE_TO_DEGREE,
    POWER_SAVER_STATUS_CMD,
    SKIN_ZONE_TYPES,
    SUBPROCESS_TIMEOUT,
    TERMUX_BATTERY_STATUS_CMD,
    THERMAL_BASE_PATH,
    USER_SETTINGS_FILE,
    WarningSettings,
    resolve_settings,
)
from exceptions import ConfigurationError, TelemetryUnavailableError
from shared_types import BatteryStatus, PowerState, SensorClass

logger = logging.getLogger('PNGN.PowerWarnings.Providers')

# Zone type prefixes per sensor class
ZONE_TYPE_PREFIXES = {
    SensorClass.SKIN: SKIN_ZONE_TYPES,
    SensorClass.CPU: ('cpuss', 'cpu-'),
    SensorClass.BATTERY: ('battery',),
}

MAX_SENSOR_FAILURES = 5

# ============================================================================
# INTERFACES
# ============================================================================

class SensorProvider(Protocol):
    def current_temperature(self, sensor_class: SensorClass) -> float: ...

    def shutdown_temperature(self, sensor_class: SensorClass) -> float: ...


class SettingsProvider(Protocol):
    def get_settings(self) -> WarningSettings: ...


class PowerStateProvider(Protocol):
    async def read_power_state(self) -> Optional[PowerState]: ...


class EstimateProvider(Protocol):
    def is_hybrid_notification_enabled(self) -> bool: ...

    def remaining_time(self) -> float: ...


class WarningPresenter(Protocol):
    def show_high_temperature_warning(self) -> None: ...

    def dismiss_high_temperature_warning(self) -> None: ...

    def show_low_battery_warning(self) -> None: ...

    def dismiss_low_battery_warning(self) -> None: ...

# ============================================================================
# SENSORS
# ============================================================================

class SysfsSensorProvider:
    """
    Reads kernel thermal zones.
    Zone temps and trip points are in millidegrees.
    """

    def __init__(self, base_path: str = THERMAL_BASE_PATH):
        self.base_path = Path(base_path)
        self.zone_paths = self._discover_thermal_zones()
        self.read_failures: Dict[SensorClass, int] = defaultdict(int)

        logger.info(f"Discovered thermal zones for {[c.name for c in self.zone_paths]}")

    def _discover_thermal_zones(self) -> Dict[SensorClass, Path]:
        """Map sensor classes to the first matching thermal_zone directory"""
        zone_map = {}
        if not self.base_path.exists():
            return zone_map

        for zone_dir in sorted(self.base_path.glob('thermal_zone*')):
            try:
                zone_type = (zone_dir / 'type').read_text().strip().lower()
            except OSError:
                continue
            for sensor_class, prefixes in ZONE_TYPE_PREFIXES.items():
                if sensor_class not in zone_map and zone_type.startswith(prefixes):
                    zone_map[sensor_class] = zone_dir

        return zone_map

    def _zone_dir(self, sensor_class: SensorClass) -> Path:
        zone_dir = self.zone_paths.get(sensor_class)
        if zone_dir is None:
            raise TelemetryUnavailableError(f"No thermal zone for {sensor_class.name}")
        return zone_dir

    def _read_millidegrees(self, path: Path) -> float:
        return float(path.read_text().strip()) / MILLIDEGREE_TO_DEGREE

    def current_temperature(self, sensor_class: SensorClass) -> float:
        zone_dir = self._zone_dir(sensor_class)
        try:
            temp = self._read_millidegrees(zone_dir / 'temp')
        except (OSError, ValueError) as e:
            self.read_failures[sensor_class] += 1
            if self.read_failures[sensor_class] < MAX_SENSOR_FAILURES:
                logger.debug(f"Failed to read {sensor_class.name}: {e}")
            raise TelemetryUnavailableError(f"{sensor_class.name} temperature unreadable") from e

        self.read_failures[sensor_class] = 0
        return temp

    def shutdown_temperature(self, sensor_class: SensorClass) -> float:
        """Temperature of the zone's critical trip point"""
        zone_dir = self._zone_dir(sensor_class)
        for type_path in sorted(zone_dir.glob('trip_point_*_type')):
            try:
                if type_path.read_text().strip().lower() != 'critical':
                    continue
                temp_path = type_path.with_name(type_path.name.replace('_type', '_temp'))
                return self._read_millidegrees(temp_path)
            except (OSError, ValueError) as e:
                raise TelemetryUnavailableError(f"{sensor_class.name} shutdown trip unreadable") from e

        raise TelemetryUnavailableError(f"No critical trip point for {sensor_class.name}")

# ============================================================================
# SETTINGS
# ============================================================================

class JsonSettingsProvider:
    """User settings JSON file resolved over config defaults"""

    def __init__(self, path: str = USER_SETTINGS_FILE,
                 defaults: Optional[WarningSettings] = None):
        self.path = Path(path).expanduser()
        self.defaults = defaults or WarningSettings()

    def get_settings(self) -> WarningSettings:
        """
        Raises:
            ConfigurationError: settings file is unreadable or invalid
        """
        if not self.path.exists():
            return resolve_settings(None, self.defaults)

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read settings {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings {self.path} must be a JSON object")

        return resolve_settings(data, self.defaults)

# ============================================================================
# POWER STATE
# ============================================================================

async def _run_command(cmd: Sequence[str], timeout: float) -> Optional[str]:
    """Run a command, return stdout on success, None on any failure"""
    proc = None
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        if proc.returncode == 0:
            return stdout.decode('utf-8')
    except (asyncio.TimeoutError, OSError, UnicodeDecodeError) as e:
        logger.debug(f"{cmd[0]} failed: {e}")
    finally:
        if proc and proc.returncode is None:
            try:
                proc.kill()
                await proc.wait()
            except ProcessLookupError:
                pass
    return None


def parse_battery_status(data: Dict,
                         warning_levels: Sequence[int] = LOW_BATTERY_WARNING_LEVELS,
                         close_offset: int = LOW_BATTERY_CLOSE_LEVEL_OFFSET,
                         power_saver_enabled: bool = False) -> PowerState:
    """
    Build a PowerState from termux-battery-status JSON.

    Health problems (OVERHEAT, DEAD, ...) take the place of the charge status,
    unknown strings map to UNKNOWN.
    """
    status = BatteryStatus.parse(data.get('status'))
    health = BatteryStatus.parse(data.get('health'))
    if status.is_trustworthy and health not in (BatteryStatus.GOOD, BatteryStatus.UNKNOWN):
        status = health

    level = data.get('percentage')
    if isinstance(level, bool) or not isinstance(level, (int, float)):
        raise TelemetryUnavailableError(f"Battery percentage missing: {level!r}")
    if not math.isfinite(level):
        raise TelemetryUnavailableError(f"Battery percentage not a number: {level!r}")
    level = int(level)
    bucket = find_battery_level_bucket(level, warning_levels,
                                       warning_levels[0] + close_offset)

    return PowerState(
        plugged=data.get('plugged', 'UNPLUGGED') != 'UNPLUGGED',
        power_saver_enabled=power_saver_enabled,
        battery_status=status,
        bucket=bucket,
        level=level,
        time_remaining=math.inf,
    )


class TermuxPowerStateProvider:
    """Charge state from the Termux API"""

    def __init__(self,
                 battery_cmd: List[str] = TERMUX_BATTERY_STATUS_CMD,
                 power_saver_cmd: List[str] = POWER_SAVER_STATUS_CMD,
                 timeout: float = SUBPROCESS_TIMEOUT):
        self.battery_cmd = battery_cmd
        self.power_saver_cmd = power_saver_cmd
        self.timeout = timeout

    async def _read_power_saver(self) -> bool:
        output = await _run_command(self.power_saver_cmd, self.timeout)
        return output is not None and output.strip() == '1'

    async def read_power_state(self) -> Optional[PowerState]:
        output, power_saver = await asyncio.gather(
            _run_command(self.battery_cmd, self.timeout),
            self._read_power_saver(),
        )
        if output is None:
            return None

        try:
            return parse_battery_status(json.loads(output), power_saver_enabled=power_saver)
        except (json.JSONDecodeError, AttributeError, TelemetryUnavailableError) as e:
            logger.debug(f"Bad battery status output: {e}")
            return None

# ============================================================================
# ESTIMATES
# ============================================================================

class NullEstimateProvider:
    """No hybrid estimate source: disabled, never low"""

    def is_hybrid_notification_enabled(self) -> bool:
        return False

    def remaining_time(self) -> float:
        return math.inf

# ============================================================================
# PRESENTATION
# ============================================================================

class LoggingPresenter:
    """Reports warning transitions to the log"""

    def show_high_temperature_warning(self) -> None:
        logger.warning("⚠️  Device is overheating")

    def dismiss_high_temperature_warning(self) -> None:
        logger.info("Overheating warning cleared")

    def show_low_battery_warning(self) -> None:
        logger.warning("🔋 Battery is low")

    def dismiss_low_battery_warning(self) -> None:
        logger.info("Low battery warning dismissed")
