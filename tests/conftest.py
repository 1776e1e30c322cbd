"""Shared test fixtures and collaborator doubles."""

import math
from datetime import timedelta

import pytest

from config import WarningSettings, resolve_settings
from exceptions import TelemetryUnavailableError
from shared_types import BatteryStatus, PowerState
from warning_engine import WarningEngine

UNPLUGGED = False
POWER_SAVER_OFF = False
ABOVE_WARNING_BUCKET = 1
BELOW_WARNING_BUCKET = -1
BELOW_HYBRID_THRESHOLD = timedelta(hours=2).total_seconds()
ABOVE_HYBRID_THRESHOLD = timedelta(hours=4).total_seconds()
NO_ESTIMATE = math.inf


class FakeSensors:
    def __init__(self, current=None, shutdown=None):
        self.current = current
        self.shutdown = shutdown

    def current_temperature(self, sensor_class):
        if self.current is None:
            raise TelemetryUnavailableError("no current temperature")
        return self.current

    def shutdown_temperature(self, sensor_class):
        if self.shutdown is None:
            raise TelemetryUnavailableError("no shutdown temperature")
        return self.shutdown


class FakeSettings:
    def __init__(self, user_settings=None, defaults=None):
        self.user_settings = user_settings or {}
        self.defaults = defaults or WarningSettings()

    def get_settings(self):
        return resolve_settings(self.user_settings, self.defaults)


class FakePower:
    def __init__(self, state=None):
        self.state = state

    async def read_power_state(self):
        return self.state


class FakeEstimates:
    def __init__(self, enabled=False, remaining=NO_ESTIMATE):
        self.enabled = enabled
        self.remaining = remaining

    def is_hybrid_notification_enabled(self):
        return self.enabled

    def remaining_time(self):
        return self.remaining


class RecordingPresenter:
    def __init__(self):
        self.calls = []

    def show_high_temperature_warning(self):
        self.calls.append('show_thermal')

    def dismiss_high_temperature_warning(self):
        self.calls.append('dismiss_thermal')

    def show_low_battery_warning(self):
        self.calls.append('show_battery')

    def dismiss_low_battery_warning(self):
        self.calls.append('dismiss_battery')


def power_state(bucket=ABOVE_WARNING_BUCKET, plugged=UNPLUGGED,
                power_saver=POWER_SAVER_OFF, status=BatteryStatus.DISCHARGING,
                time_remaining=NO_ESTIMATE):
    return PowerState(
        plugged=plugged,
        power_saver_enabled=power_saver,
        battery_status=status,
        bucket=bucket,
        time_remaining=time_remaining,
    )


@pytest.fixture
def sensors():
    return FakeSensors()


@pytest.fixture
def settings():
    return FakeSettings()


@pytest.fixture
def power():
    return FakePower(power_state())


@pytest.fixture
def estimates():
    return FakeEstimates()


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def engine(sensors, settings, power, estimates, presenter):
    return WarningEngine(sensors, settings, power, estimates, presenter)
