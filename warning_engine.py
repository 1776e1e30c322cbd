#!/usr/bin/env python3
"""
🔥🔋🐧 Device Health Warning Engine
=================================
Copyright (c) 2025 PNGN-Tec LLC

Arbitrates raw hardware telemetry into two user-facing alerts: overheating
and low battery.

ARCHITECTURE:
- ThermalEvaluator: skin temperature vs explicit or shutdown-derived threshold
- BatteryEvaluator: bucket crossings + standard/hybrid time estimates,
  permissive OR to show, conservative AND to dismiss
- WarningEngine: the only stateful actor. Owns PollState (previous bucket,
  previous plugged, HIDDEN/SHOWN per channel), polls collaborators,
  insulates evaluators from failing reads, calls the presenter on transitions

POLL CYCLE:
1. Resolve settings (invalid settings -> config defaults)
2. Thermal: read skin temp + shutdown temp, raise or clear
3. Battery: read power state + hybrid estimate, show (while hidden) or
   dismiss (while shown), then carry bucket/plugged forward
4. Invoke poll callbacks

Unavailable telemetry resolves to "no new warning, no forced dismissal".
Nothing is retried; the next poll is the recovery.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import replace
from typing import Any, Callable, Deque, Dict, List, Optional

from battery_warnings import BatteryEvaluator, BatteryThresholds
from config import (
    MAX_POLL_CALLBACKS,
    MAX_RECENT_TEMPS,
    MAX_WARNING_EVENTS,
    POLL_INTERVAL,
    READ_TIMEOUT,
    TEMPERATURE_LOG_INTERVAL,
    WarningSettings,
)
from exceptions import ConfigurationError, TelemetryUnavailableError
from providers import (
    EstimateProvider,
    JsonSettingsProvider,
    LoggingPresenter,
    NullEstimateProvider,
    PowerStateProvider,
    SensorProvider,
    SettingsProvider,
    SysfsSensorProvider,
    TermuxPowerStateProvider,
    WarningPresenter,
)
from shared_types import (
    BatteryStatus,
    HybridEstimate,
    PollState,
    PowerState,
    SensorClass,
    TemperatureSample,
    ThermalDecision,
    WarningChannel,
    WarningDecision,
    WarningEvent,
    WarningState,
)
from thermal_warnings import TemperatureHistory, ThermalEvaluator, evaluate_thermal

logger = logging.getLogger('PNGN.PowerWarnings')


class WarningEngine:
    """
    Device health warning coordinator.
    Polls telemetry, evaluates both channels, drives the presenter.
    """

    def __init__(self,
                 sensors: SensorProvider,
                 settings: SettingsProvider,
                 power: PowerStateProvider,
                 estimates: EstimateProvider,
                 presenter: WarningPresenter,
                 sensor_class: SensorClass = SensorClass.SKIN):
        self.sensors = sensors
        self.settings = settings
        self.power = power
        self.estimates = estimates
        self.presenter = presenter
        self.sensor_class = sensor_class

        # Carried state - the only thing that survives between polls
        self.state = PollState()
        self._lock = asyncio.Lock()

        # Bookkeeping
        self.temperatures = TemperatureHistory(maxlen=MAX_RECENT_TEMPS)
        self.events: Deque[WarningEvent] = deque(maxlen=MAX_WARNING_EVENTS)
        self.last_temperature_log = time.time()
        self.polls_completed = 0
        self.read_failures = 0

        # Monitoring
        self.update_interval = POLL_INTERVAL
        self.monitor_task = None
        self.running = False

        # Callback mechanism for piggybacking on poll cycle
        self.poll_callbacks: List[Callable] = []

        logger.info("Warning engine initialized")

    # ============================================================================
    # EVALUATION CONTRACTS
    # ============================================================================

    def evaluate_thermal(self, current_temp: Optional[float],
                         shutdown_temp: Optional[float] = None,
                         settings: Optional[WarningSettings] = None) -> bool:
        """Whether an overheating warning should be raised for this reading"""
        evaluator = ThermalEvaluator.from_settings(settings or self._resolve_settings())
        return evaluate_thermal(current_temp, evaluator.threshold(shutdown_temp),
                                evaluator.warnings_enabled)

    def evaluate_battery_show(self, plugged: bool, old_plugged: bool,
                              old_bucket: int, bucket: int,
                              time_remaining: float,
                              hybrid_time_remaining: float,
                              power_saver_enabled: bool,
                              battery_status: BatteryStatus,
                              hybrid_enabled: Optional[bool] = None,
                              settings: Optional[WarningSettings] = None) -> bool:
        if hybrid_enabled is None:
            hybrid_enabled = self._read_hybrid().enabled
        return self._battery_evaluator(settings).should_show(
            plugged, old_plugged, old_bucket, bucket, time_remaining,
            hybrid_time_remaining, power_saver_enabled, battery_status, hybrid_enabled)

    def evaluate_battery_dismiss(self, plugged: bool, old_bucket: int, bucket: int,
                                 hybrid_time_remaining: float,
                                 power_saver_enabled: bool,
                                 hybrid_enabled: Optional[bool] = None,
                                 settings: Optional[WarningSettings] = None) -> bool:
        if hybrid_enabled is None:
            hybrid_enabled = self._read_hybrid().enabled
        return self._battery_evaluator(settings).should_dismiss(
            plugged, old_bucket, bucket, hybrid_time_remaining,
            power_saver_enabled, hybrid_enabled)

    def _battery_evaluator(self, settings: Optional[WarningSettings]) -> BatteryEvaluator:
        return BatteryEvaluator(BatteryThresholds.from_settings(settings or self._resolve_settings()))

    # ============================================================================
    # COLLABORATOR READS
    # ============================================================================

    def _resolve_settings(self) -> WarningSettings:
        try:
            return self.settings.get_settings()
        except ConfigurationError as e:
            logger.error(f"Invalid settings, using config defaults: {e}")
            return WarningSettings()

    def _read_temperature(self, reader: Callable[[SensorClass], float]) -> Optional[float]:
        try:
            return reader(self.sensor_class)
        except TelemetryUnavailableError as e:
            self.read_failures += 1
            logger.debug(f"Temperature unavailable: {e}")
            return None

    def _read_hybrid(self) -> HybridEstimate:
        try:
            if not self.estimates.is_hybrid_notification_enabled():
                return HybridEstimate()
            return HybridEstimate(enabled=True, time_remaining=self.estimates.remaining_time())
        except TelemetryUnavailableError as e:
            # Enabled but unreadable: cannot trigger show, cannot corroborate dismiss
            logger.debug(f"Hybrid estimate unavailable: {e}")
            return HybridEstimate(enabled=True, time_remaining=float('nan'))

    async def _read_power_state(self) -> Optional[PowerState]:
        try:
            return await asyncio.wait_for(self.power.read_power_state(), timeout=READ_TIMEOUT)
        except (asyncio.TimeoutError, TelemetryUnavailableError) as e:
            self.read_failures += 1
            logger.debug(f"Power state unavailable: {e}")
            return None

    # ============================================================================
    # POLL CYCLE
    # ============================================================================

    async def poll_once(self) -> PollState:
        """
        Run one evaluation cycle against fresh telemetry.

        Returns:
            The PollState carried into the next poll
        """
        async with self._lock:
            settings = self._resolve_settings()

            thermal = self._poll_thermal(settings)
            battery = await self._poll_battery(settings)

            self.polls_completed += 1
            state = self.state

        for callback in self.poll_callbacks[:]:
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(state, thermal, battery)
                else:
                    callback(state, thermal, battery)
            except Exception as e:
                logger.error(f"Poll callback error in {callback}: {e}")

        return state

    def _poll_thermal(self, settings: WarningSettings) -> ThermalDecision:
        evaluator = ThermalEvaluator.from_settings(settings)

        current = self._read_temperature(self.sensors.current_temperature)
        shutdown = None
        if evaluator.configured_threshold is None or evaluator.configured_threshold < 0:
            shutdown = self._read_temperature(self.sensors.shutdown_temperature)

        if current is not None:
            self.temperatures.append(TemperatureSample(time.time(), current, self.sensor_class))
            self._maybe_log_temperature_stats()

        shown = self.state.thermal_warning.is_shown
        decision = evaluator.evaluate(current, shutdown, shown=shown)

        if decision.raise_warning:
            threshold = decision.threshold.value
            logger.warning(f"Skin temperature {current:.1f}°C >= threshold {threshold:.1f}°C "
                           f"({settings.warning_source.name.lower()})")
            self.presenter.show_high_temperature_warning()
            self.state = replace(self.state, thermal_warning=WarningState.SHOWN)
            self._record(WarningChannel.THERMAL, 'show', f"{current:.1f}°C >= {threshold:.1f}°C")
        elif decision.clear_warning:
            self.presenter.dismiss_high_temperature_warning()
            self.state = replace(self.state, thermal_warning=WarningState.HIDDEN)
            self._record(WarningChannel.THERMAL, 'dismiss', f"cooled to {current:.1f}°C")

        return decision

    async def _poll_battery(self, settings: WarningSettings) -> Optional[WarningDecision]:
        power = await self._read_power_state()
        if power is None:
            return None

        hybrid = self._read_hybrid()
        decision = self._battery_evaluator(settings).evaluate(power, self.state, hybrid)

        warning = self.state.battery_warning
        if decision.show:
            self.presenter.show_low_battery_warning()
            warning = WarningState.SHOWN
            self._record(WarningChannel.BATTERY, 'show',
                         f"bucket {self.state.previous_bucket}->{power.bucket}, "
                         f"level {power.level}%, hybrid {hybrid.time_remaining:.0f}s")
        elif decision.dismiss:
            self.presenter.dismiss_low_battery_warning()
            warning = WarningState.HIDDEN
            self._record(WarningChannel.BATTERY, 'dismiss',
                         f"plugged={power.plugged} saver={power.power_saver_enabled} "
                         f"bucket {self.state.previous_bucket}->{power.bucket}")

        self.state = replace(self.state,
                             previous_bucket=power.bucket,
                             previous_plugged=power.plugged,
                             battery_warning=warning)
        return decision

    def _record(self, channel: WarningChannel, action: str, description: str):
        self.events.append(WarningEvent(time.time(), channel, action, description))
        logger.info(f"{channel.name} warning {action}: {description}")

    def _maybe_log_temperature_stats(self):
        now = time.time()
        if now - self.last_temperature_log < TEMPERATURE_LOG_INTERVAL:
            return

        stats = self.temperatures.summarize()
        if stats:
            logger.info(f"Skin temps over {stats['count']} samples: "
                        f"mean {stats['mean']:.1f}°C, median {stats['median']:.1f}°C, "
                        f"max {stats['max']:.1f}°C")
        self.temperatures.clear()
        self.last_temperature_log = now

    # ============================================================================
    # MONITOR LOOP
    # ============================================================================

    async def start(self):
        """Start polling telemetry"""
        if self.running:
            return

        self.running = True
        self.monitor_task = asyncio.create_task(self._monitor_loop())
        logger.info(f"Warning monitoring started ({self.update_interval:.0f}s interval)")

    async def stop(self):
        """Stop polling telemetry"""
        self.running = False

        if self.monitor_task:
            self.monitor_task.cancel()
            try:
                await self.monitor_task
            except asyncio.CancelledError:
                pass
            self.monitor_task = None

        logger.info("Warning monitoring stopped")

    async def _monitor_loop(self):
        while self.running:
            try:
                await self.poll_once()
                await asyncio.sleep(self.update_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Monitor loop error: {e}")
                await asyncio.sleep(self.update_interval)

    def register_poll_callback(self, callback: Callable):
        """
        Register a callback invoked after each poll cycle.

        Args:
            callback: Sync or async callable taking (poll_state, thermal_decision,
                      battery_decision); battery_decision is None when the
                      power state was unavailable
        """
        if callback not in self.poll_callbacks:
            self.poll_callbacks.append(callback)
            logger.info(f"Registered poll callback: {getattr(callback, '__name__', callback)}")

            if len(self.poll_callbacks) > MAX_POLL_CALLBACKS:
                logger.warning(f"Poll callbacks exceeded {MAX_POLL_CALLBACKS} - removing oldest")
                self.poll_callbacks.pop(0)

    def unregister_poll_callback(self, callback: Callable):
        """Remove a callback from the poll cycle"""
        if callback in self.poll_callbacks:
            self.poll_callbacks.remove(callback)
            logger.info(f"Unregistered poll callback: {getattr(callback, '__name__', callback)}")

    def clear_poll_callbacks(self):
        self.poll_callbacks.clear()

    # ============================================================================
    # ACCESSORS
    # ============================================================================

    def get_state(self) -> PollState:
        return self.state

    def get_events(self) -> List[WarningEvent]:
        return list(self.events)

    def get_statistics(self) -> Dict[str, Any]:
        return {
            'polls_completed': self.polls_completed,
            'read_failures': self.read_failures,
            'events': len(self.events),
            'thermal_warning': self.state.thermal_warning.name,
            'battery_warning': self.state.battery_warning.name,
            'recent_temperatures': self.temperatures.summarize(),
        }


# ============================================================================
# FACTORY
# ============================================================================

def create_warning_engine() -> WarningEngine:
    """Create warning engine wired to the device"""
    return WarningEngine(
        sensors=SysfsSensorProvider(),
        settings=JsonSettingsProvider(),
        power=TermuxPowerStateProvider(),
        estimates=NullEstimateProvider(),
        presenter=LoggingPresenter(),
    )
