#!/usr/bin/env python3
"""
🔥🐧 Thermal Warning Evaluator
============================
Copyright (c) 2025 PNGN-Tec LLC

Overheating warning decisions from device skin temperature.

RULES:
- Raise iff warnings are enabled AND current temp >= threshold (equality
  counts as crossing, no margin on the raise edge)
- Threshold is either configured explicitly, or derived as
  shutdown_temperature - tolerance when configured as THRESHOLD_DERIVE
- Clearing follows ThermalClearPolicy: ON_COOLDOWN clears once the
  temperature drops below threshold - margin, MANUAL never auto-clears

Missing or NaN readings never raise and never clear. Invalid configuration
(negative tolerance, negative explicit threshold, unreadable shutdown
temperature) disables the channel rather than failing loudly.
"""

import logging
from collections import deque
from typing import Deque, Dict, Optional

import numpy as np

from config import (
    MAX_RECENT_TEMPS,
    THERMAL_CLEAR_MARGIN,
    THERMAL_CLEAR_POLICY,
    WARNING_TEMPERATURE_TOLERANCE,
)
from shared_types import (
    THRESHOLD_DERIVE,
    TemperatureSample,
    ThermalClearPolicy,
    ThermalDecision,
    ThermalThreshold,
)

logger = logging.getLogger('PNGN.PowerWarnings.Thermal')

def _is_missing(value: Optional[float]) -> bool:
    return value is None or bool(np.isnan(value))


def derive_threshold(configured: Optional[float],
                     shutdown_temperature: Optional[float],
                     tolerance: float) -> Optional[ThermalThreshold]:
    """
    Resolve the overheating threshold.

    Args:
        configured: Explicit threshold (°C), or None / THRESHOLD_DERIVE
        shutdown_temperature: Skin shutdown temperature from the sensor (°C)
        tolerance: Margin below shutdown (°C)

    Returns:
        ThermalThreshold, or None when the channel must be disabled

    Examples:
        >>> derive_threshold(THRESHOLD_DERIVE, 57.0, 2.0).value
        55.0
        >>> derive_threshold(45.0, None, 2.0).value
        45.0
    """
    if configured is not None and configured != THRESHOLD_DERIVE:
        if _is_missing(configured) or configured < 0:
            logger.warning(f"Invalid warning temperature {configured}, thermal warnings disabled")
            return None
        return ThermalThreshold(value=float(configured))

    if _is_missing(shutdown_temperature):
        logger.debug("Shutdown temperature unavailable, cannot derive threshold")
        return None

    if _is_missing(tolerance) or tolerance < 0:
        logger.warning(f"Invalid temperature tolerance {tolerance}, thermal warnings disabled")
        return None

    return ThermalThreshold(
        value=float(shutdown_temperature) - float(tolerance),
        derived=True,
        shutdown_temperature=float(shutdown_temperature),
        tolerance=float(tolerance),
    )


def evaluate_thermal(current_temp: Optional[float],
                     threshold: Optional[ThermalThreshold],
                     warnings_enabled: bool) -> bool:
    """Raise iff enabled and current_temp >= threshold"""
    if not warnings_enabled or threshold is None or _is_missing(current_temp):
        return False
    return current_temp >= threshold.value


def should_clear_thermal(current_temp: Optional[float],
                         threshold: Optional[ThermalThreshold],
                         policy: ThermalClearPolicy,
                         margin: float = 0.0) -> bool:
    """Whether a shown overheating warning should be cleared"""
    if policy is ThermalClearPolicy.MANUAL:
        return False
    if threshold is None or _is_missing(current_temp):
        return False
    return current_temp < threshold.value - max(margin, 0.0)


class ThermalEvaluator:
    """
    Stateless overheating evaluator bound to one set of thermal settings.

    The caller owns the HIDDEN/SHOWN state and passes it in as `shown`.
    A shown warning is never re-raised; a hidden one is never cleared.
    """

    def __init__(self,
                 warnings_enabled: bool,
                 configured_threshold: Optional[float] = THRESHOLD_DERIVE,
                 tolerance: float = WARNING_TEMPERATURE_TOLERANCE,
                 clear_policy: ThermalClearPolicy = ThermalClearPolicy(THERMAL_CLEAR_POLICY),
                 clear_margin: float = THERMAL_CLEAR_MARGIN):
        self.warnings_enabled = warnings_enabled
        self.configured_threshold = configured_threshold
        self.tolerance = tolerance
        self.clear_policy = clear_policy
        self.clear_margin = clear_margin

    @classmethod
    def from_settings(cls, settings) -> 'ThermalEvaluator':
        """Build from resolved WarningSettings"""
        return cls(
            warnings_enabled=settings.show_temperature_warning,
            configured_threshold=settings.warning_temperature,
            tolerance=settings.warning_temperature_tolerance,
            clear_policy=settings.thermal_clear_policy,
            clear_margin=settings.thermal_clear_margin,
        )

    def threshold(self, shutdown_temperature: Optional[float]) -> Optional[ThermalThreshold]:
        return derive_threshold(self.configured_threshold, shutdown_temperature, self.tolerance)

    def evaluate(self,
                 current_temp: Optional[float],
                 shutdown_temperature: Optional[float] = None,
                 shown: bool = False) -> ThermalDecision:
        threshold = self.threshold(shutdown_temperature)

        if shown:
            return ThermalDecision(
                clear_warning=should_clear_thermal(current_temp, threshold,
                                                   self.clear_policy, self.clear_margin),
                threshold=threshold,
            )

        return ThermalDecision(
            raise_warning=evaluate_thermal(current_temp, threshold, self.warnings_enabled),
            threshold=threshold,
        )


# ============================================================================
# TEMPERATURE HISTORY
# ============================================================================

class TemperatureHistory:
    """Bounded buffer of recent skin temperature samples"""

    def __init__(self, maxlen: int = MAX_RECENT_TEMPS):
        self.samples: Deque[TemperatureSample] = deque(maxlen=maxlen)

    def append(self, sample: TemperatureSample) -> None:
        if not _is_missing(sample.value):
            self.samples.append(sample)

    def clear(self) -> None:
        self.samples.clear()

    def __len__(self) -> int:
        return len(self.samples)

    def summarize(self) -> Optional[Dict[str, float]]:
        return summarize_temperatures([s.value for s in self.samples])


def summarize_temperatures(values) -> Optional[Dict[str, float]]:
    """
    Summary statistics over recent temperatures.

    Returns:
        Dict with count, mean, median, min, max (°C), None if no samples
    """
    temps = np.asarray(values, dtype=np.float64)
    if temps.size == 0:
        return None

    return {
        'count': int(temps.size),
        'mean': float(np.mean(temps)),
        'median': float(np.median(temps)),
        'min': float(np.min(temps)),
        'max': float(np.max(temps)),
    }
