#!/usr/bin/env python3
"""
🔋🐧 Power Warning Type Definitions
==================================
Copyright (c) 2025 PNGN-Tec LLC

Shared type system for device health warnings. Platform-agnostic enums and
dataclasses used by the thermal and battery evaluators and the warning engine.
"""

from dataclasses import dataclass
from typing import Optional
from enum import Enum, auto
import math

# Configured threshold value meaning "derive from the shutdown temperature"
THRESHOLD_DERIVE = -1

# ============================================================================
# ENUMS
# ============================================================================

class SensorClass(Enum):
    """Temperature sensor classes exposed by the hardware properties layer"""
    SKIN = auto()
    CPU = auto()
    BATTERY = auto()

class WarningSource(Enum):
    """Where the thermal-warnings-enabled flag came from"""
    CONFIG = auto()
    USER_SETTING = auto()

class BatteryStatus(Enum):
    """Charge status and health codes reported by the battery service"""
    UNKNOWN = auto()
    CHARGING = auto()
    DISCHARGING = auto()
    NOT_CHARGING = auto()
    FULL = auto()
    GOOD = auto()
    OVERHEAT = auto()
    DEAD = auto()
    OVER_VOLTAGE = auto()
    UNSPECIFIED_FAILURE = auto()
    COLD = auto()

    @classmethod
    def parse(cls, raw: Optional[str]) -> 'BatteryStatus':
        """Map a Termux status/health string to a status, UNKNOWN if unrecognised"""
        if not raw:
            return cls.UNKNOWN
        try:
            return cls[raw.strip().upper().replace(' ', '_')]
        except KeyError:
            return cls.UNKNOWN

    @property
    def is_trustworthy(self) -> bool:
        """Charge-state telemetry can be acted on"""
        return self is not BatteryStatus.UNKNOWN

class ThermalClearPolicy(Enum):
    """How a shown overheating warning is cleared"""
    ON_COOLDOWN = 'on_cooldown'
    MANUAL = 'manual'

class WarningState(Enum):
    """Caller-owned warning lifecycle: HIDDEN -> SHOWN -> HIDDEN"""
    HIDDEN = auto()
    SHOWN = auto()

    @property
    def is_shown(self) -> bool:
        return self is WarningState.SHOWN

class WarningChannel(Enum):
    """Independent warning channels"""
    THERMAL = auto()
    BATTERY = auto()

# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True)
class TemperatureSample:
    """Single temperature reading (°C) from one sensor class"""
    timestamp: float
    value: float
    sensor_class: SensorClass = SensorClass.SKIN

@dataclass(frozen=True)
class ThermalThreshold:
    """
    Resolved overheating threshold.

    Attributes:
        value: Threshold in °C
        derived: True when computed as shutdown_temperature - tolerance
        shutdown_temperature: Shutdown temperature used for derivation (°C)
        tolerance: Margin below shutdown (°C)
    """
    value: float
    derived: bool = False
    shutdown_temperature: Optional[float] = None
    tolerance: Optional[float] = None

@dataclass(frozen=True)
class PowerState:
    """
    Charge and power-saver snapshot for one poll.

    Attributes:
        plugged: Connected to external power
        power_saver_enabled: Battery saver active
        battery_status: Charge status / health
        level: Battery percentage (0-100), None if unknown
        bucket: Discretised battery level (> threshold = healthy)
        time_remaining: Standard estimate in seconds (inf = no estimate)
    """
    plugged: bool
    power_saver_enabled: bool
    battery_status: BatteryStatus
    bucket: int
    level: Optional[int] = None
    time_remaining: float = math.inf

@dataclass(frozen=True)
class HybridEstimate:
    """Higher-fidelity remaining-time estimate (seconds)"""
    enabled: bool = False
    time_remaining: float = math.inf

@dataclass(frozen=True)
class WarningDecision:
    """Battery decision - show and dismiss come from separate rule sets"""
    show: bool = False
    dismiss: bool = False

@dataclass(frozen=True)
class ThermalDecision:
    """Thermal decision for one poll"""
    raise_warning: bool = False
    clear_warning: bool = False
    threshold: Optional[ThermalThreshold] = None

@dataclass(frozen=True)
class PollState:
    """
    State carried between polls. Owned by the polling loop and passed by
    value into each evaluation; evaluators never mutate it.
    """
    previous_bucket: int = 1
    previous_plugged: bool = False
    battery_warning: WarningState = WarningState.HIDDEN
    thermal_warning: WarningState = WarningState.HIDDEN

@dataclass
class WarningEvent:
    """Warning event log entry"""
    timestamp: float
    channel: WarningChannel
    action: str
    description: str

# ============================================================================
# EXPORT ALL PUBLIC TYPES
# ============================================================================

__all__ = [
    'THRESHOLD_DERIVE',

    # Enums
    'SensorClass',
    'WarningSource',
    'BatteryStatus',
    'ThermalClearPolicy',
    'WarningState',
    'WarningChannel',

    # Data structures
    'TemperatureSample',
    'ThermalThreshold',
    'PowerState',
    'HybridEstimate',
    'WarningDecision',
    'ThermalDecision',
    'PollState',
    'WarningEvent',
]
