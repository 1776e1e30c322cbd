#!/usr/bin/env python3
"""
🔋🐧 Low Battery Warning Evaluator
================================
Copyright (c) 2025 PNGN-Tec LLC

Show/dismiss decisions for the low-battery warning.

SIGNALS:
- Battery bucket (coarse): edge-triggered crossings of WARNING_BUCKET_THRESHOLD
- Standard remaining-time estimate
- Hybrid remaining-time estimate (optional, higher fidelity)
- Charge state, power saver, battery status

HYSTERESIS:
Show is permissive - either the standard or the hybrid signal alone is enough.
Dismiss is conservative - the bucket must recover AND, when hybrid is enabled,
the hybrid estimate must recover too. Plugging in or enabling power saver
always dismisses.

Buckets above the threshold are healthy, at/below are in warning. Crossings
compare the previous poll's bucket with the current one only; staying in
the warning range does not re-trigger.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from config import (
    HYBRID_TIME_THRESHOLD,
    LOW_BATTERY_CLOSE_LEVEL_OFFSET,
    LOW_BATTERY_WARNING_LEVELS,
    STANDARD_TIME_THRESHOLD,
    WARNING_BUCKET_THRESHOLD,
)
from shared_types import (
    BatteryStatus,
    HybridEstimate,
    PollState,
    PowerState,
    WarningDecision,
)

logger = logging.getLogger('PNGN.PowerWarnings.Battery')


@dataclass(frozen=True)
class BatteryThresholds:
    """
    Attributes:
        warning_bucket: Buckets <= this value are in warning
        standard_time: Standard estimate below this (seconds) triggers show
        hybrid_time: Hybrid estimate below this (seconds) triggers show
    """
    warning_bucket: int = WARNING_BUCKET_THRESHOLD
    standard_time: float = STANDARD_TIME_THRESHOLD
    hybrid_time: float = HYBRID_TIME_THRESHOLD

    @classmethod
    def from_settings(cls, settings) -> 'BatteryThresholds':
        return cls(
            warning_bucket=settings.warning_bucket_threshold,
            standard_time=settings.standard_time_threshold,
            hybrid_time=settings.hybrid_time_threshold,
        )


DEFAULT_THRESHOLDS = BatteryThresholds()

# ============================================================================
# CROSSINGS
# ============================================================================

def bucket_entered_warning(old_bucket: int, bucket: int, threshold: int) -> bool:
    """Downward crossing: old bucket healthy, new bucket in warning"""
    return old_bucket > threshold and bucket <= threshold


def bucket_recovered(old_bucket: int, bucket: int, threshold: int) -> bool:
    """Upward crossing: old bucket in warning, new bucket healthy"""
    return old_bucket <= threshold and bucket > threshold


def _time_below(time_remaining: float, threshold: float) -> bool:
    # Negative threshold = invalid config, time trigger disabled
    if threshold < 0 or time_remaining is None or math.isnan(time_remaining):
        return False
    return time_remaining < threshold


def hybrid_recovered(hybrid_time_remaining: float, hybrid_threshold: float) -> bool:
    """Hybrid estimate is back above its threshold"""
    if hybrid_threshold < 0:
        return True
    if hybrid_time_remaining is None or math.isnan(hybrid_time_remaining):
        return False
    return hybrid_time_remaining > hybrid_threshold

# ============================================================================
# SHOW / DISMISS
# ============================================================================

def should_show_low_battery_warning(plugged: bool,
                                    old_plugged: bool,
                                    old_bucket: int,
                                    bucket: int,
                                    time_remaining: float,
                                    hybrid_time_remaining: float,
                                    power_saver_enabled: bool,
                                    battery_status: BatteryStatus,
                                    hybrid_enabled: bool,
                                    thresholds: BatteryThresholds = DEFAULT_THRESHOLDS) -> bool:
    """
    Decide whether to show the low-battery warning.

    Suppressed when plugged, when power saver is on, or when battery status
    is UNKNOWN. Otherwise shows if either signal fires:

    - standard: bucket crossed into warning, or the device was just
      unplugged while already in warning, or time_remaining < standard_time
    - hybrid: hybrid enabled and hybrid_time_remaining < hybrid_time
    """
    if plugged or power_saver_enabled or not battery_status.is_trustworthy:
        return False

    in_warning = bucket <= thresholds.warning_bucket
    standard = (bucket_entered_warning(old_bucket, bucket, thresholds.warning_bucket)
                or (old_plugged and in_warning)
                or _time_below(time_remaining, thresholds.standard_time))
    hybrid = hybrid_enabled and _time_below(hybrid_time_remaining, thresholds.hybrid_time)

    return standard or hybrid


def should_dismiss_low_battery_warning(plugged: bool,
                                       old_bucket: int,
                                       bucket: int,
                                       hybrid_time_remaining: float,
                                       power_saver_enabled: bool,
                                       hybrid_enabled: bool,
                                       thresholds: BatteryThresholds = DEFAULT_THRESHOLDS) -> bool:
    """
    Decide whether to dismiss a shown low-battery warning.

    Plugged or power saver always dismisses. Otherwise every enabled signal
    must agree: the bucket recovered, and the hybrid estimate recovered if
    hybrid is enabled.
    """
    if plugged or power_saver_enabled:
        return True

    if not bucket_recovered(old_bucket, bucket, thresholds.warning_bucket):
        return False

    return not hybrid_enabled or hybrid_recovered(hybrid_time_remaining, thresholds.hybrid_time)

# ============================================================================
# LEVEL -> BUCKET
# ============================================================================

def find_battery_level_bucket(level: int,
                              warning_levels: Sequence[int] = LOW_BATTERY_WARNING_LEVELS,
                              close_level: Optional[int] = None) -> int:
    """
    Discretise a battery percentage.

    Returns:
        1 at/above the close level, 0 between the warning and close levels,
        -1 - i for the deepest warning level i that the level is at/below

    Examples:
        >>> find_battery_level_bucket(80)
        1
        >>> find_battery_level_bucket(17)
        0
        >>> find_battery_level_bucket(15)
        -1
        >>> find_battery_level_bucket(3)
        -2
    """
    if not warning_levels:
        raise ValueError("warning_levels must not be empty")
    if close_level is None:
        close_level = warning_levels[0] + LOW_BATTERY_CLOSE_LEVEL_OFFSET

    if level >= close_level:
        return 1
    if level > warning_levels[0]:
        return 0
    # Index 0 always matches here, the deepest matching level wins
    deepest = max(i for i, warning in enumerate(warning_levels) if level <= warning)
    return -1 - deepest


class BatteryEvaluator:
    """Low-battery evaluator bound to one set of thresholds"""

    def __init__(self, thresholds: BatteryThresholds = DEFAULT_THRESHOLDS):
        self.thresholds = thresholds

    def should_show(self, plugged: bool, old_plugged: bool, old_bucket: int,
                    bucket: int, time_remaining: float, hybrid_time_remaining: float,
                    power_saver_enabled: bool, battery_status: BatteryStatus,
                    hybrid_enabled: bool) -> bool:
        return should_show_low_battery_warning(
            plugged, old_plugged, old_bucket, bucket, time_remaining,
            hybrid_time_remaining, power_saver_enabled, battery_status,
            hybrid_enabled, self.thresholds)

    def should_dismiss(self, plugged: bool, old_bucket: int, bucket: int,
                       hybrid_time_remaining: float, power_saver_enabled: bool,
                       hybrid_enabled: bool) -> bool:
        return should_dismiss_low_battery_warning(
            plugged, old_bucket, bucket, hybrid_time_remaining,
            power_saver_enabled, hybrid_enabled, self.thresholds)

    def evaluate(self, power: PowerState, poll_state: PollState,
                 hybrid: HybridEstimate) -> WarningDecision:
        """Ask "show?" while hidden, "dismiss?" while shown - never both"""
        if poll_state.battery_warning.is_shown:
            decision = WarningDecision(dismiss=self.should_dismiss(
                power.plugged, poll_state.previous_bucket, power.bucket,
                hybrid.time_remaining, power.power_saver_enabled, hybrid.enabled))
        else:
            decision = WarningDecision(show=self.should_show(
                power.plugged, poll_state.previous_plugged, poll_state.previous_bucket,
                power.bucket, power.time_remaining, hybrid.time_remaining,
                power.power_saver_enabled, power.battery_status, hybrid.enabled))

        logger.debug(f"bucket {poll_state.previous_bucket}->{power.bucket} "
                     f"plugged={power.plugged} saver={power.power_saver_enabled} "
                     f"hybrid={hybrid.enabled}/{hybrid.time_remaining:.0f}s -> {decision}")
        return decision
