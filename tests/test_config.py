"""Tests for settings resolution."""

import pytest

from config import WarningSettings, resolve_settings, resolve_warnings_enabled
from exceptions import ConfigurationError
from shared_types import THRESHOLD_DERIVE, ThermalClearPolicy, WarningSource


class TestResolveWarningsEnabled:
    def test_config_default_used_without_user_setting(self):
        assert resolve_warnings_enabled(None, True) == (True, WarningSource.CONFIG)
        assert resolve_warnings_enabled(None, False) == (False, WarningSource.CONFIG)

    def test_user_setting_overrides_config(self):
        assert resolve_warnings_enabled(True, False) == (True, WarningSource.USER_SETTING)
        assert resolve_warnings_enabled(False, True) == (False, WarningSource.USER_SETTING)


class TestResolveSettings:
    def test_defaults_without_user_settings(self):
        settings = resolve_settings(None)
        assert settings == WarningSettings()
        assert settings.warning_source is WarningSource.CONFIG
        assert settings.warning_temperature == THRESHOLD_DERIVE

    def test_unset_user_setting_falls_back_to_config(self):
        defaults = WarningSettings(show_temperature_warning=False)
        settings = resolve_settings({'show_temperature_warning': None}, defaults)
        assert not settings.show_temperature_warning
        assert settings.warning_source is WarningSource.CONFIG

    @pytest.mark.parametrize("raw,expected", [(1, True), (0, False), ('1', True), (True, True)])
    def test_user_setting_overrides_config(self, raw, expected):
        defaults = WarningSettings(show_temperature_warning=not expected)
        settings = resolve_settings({'show_temperature_warning': raw}, defaults)
        assert settings.show_temperature_warning is expected
        assert settings.warning_source is WarningSource.USER_SETTING

    def test_thermal_overrides(self):
        settings = resolve_settings({
            'warning_temperature': '45',
            'warning_temperature_tolerance': 2,
            'thermal_clear_policy': 'MANUAL',
            'thermal_clear_margin': 1.5,
        })
        assert settings.warning_temperature == 45.0
        assert settings.warning_temperature_tolerance == 2.0
        assert settings.thermal_clear_policy is ThermalClearPolicy.MANUAL
        assert settings.thermal_clear_margin == 1.5

    def test_unknown_keys_ignored(self):
        assert resolve_settings({'brightness': 128}) == WarningSettings()

    @pytest.mark.parametrize("key,value", [
        ('show_temperature_warning', 'maybe'),
        ('show_temperature_warning', 2),
        ('warning_temperature', 'hot'),
        ('warning_temperature', True),
        ('thermal_clear_policy', 'never'),
    ])
    def test_invalid_values_raise(self, key, value):
        with pytest.raises(ConfigurationError):
            resolve_settings({key: value})
