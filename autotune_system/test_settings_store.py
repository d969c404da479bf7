"""
Tests for settings records and stores
"""

import math

import pytest

from . import config
from .gain_synthesizer import ComputedGains, PIDGains
from .settings_store import (
    PI_ILIMIT,
    PI_KI,
    PI_KP,
    RATEPID_ILIMIT,
    InMemorySettingsStore,
    JsonSettingsStore,
    ModuleSettings,
    SettingsStoreError,
    StabilizationSettings,
)


def sample_gains():
    return ComputedGains(
        roll_rate_pid=PIDGains(kp=0.0022, ki=0.0088, kd=4.8e-05),
        pitch_rate_pid=PIDGains(kp=0.0031, ki=0.0120, kd=6.5e-05),
        roll_outer_kp=7.3,
        pitch_outer_kp=7.3,
        derivative_cutoff=27.7,
    )


def test_apply_gains_sets_synthesized_fields():
    """Test rate PIDs, attitude Kp and cutoff are written"""
    settings = StabilizationSettings().apply_gains(sample_gains())

    assert settings.RollRatePID[:3] == [0.0022, 0.0088, 4.8e-05]
    assert settings.PitchRatePID[:3] == [0.0031, 0.0120, 6.5e-05]
    assert settings.RollPI[PI_KP] == 7.3
    assert settings.PitchPI[PI_KP] == 7.3
    assert settings.DerivativeCutoff == 27.7


def test_apply_gains_zeroes_attitude_integral():
    """Test attitude Ki is forced to zero even when previously set"""
    current = StabilizationSettings(RollPI=[3.0, 0.5, 40.0], PitchPI=[3.0, 0.7, 40.0])
    settings = current.apply_gains(sample_gains())

    assert settings.RollPI[PI_KI] == 0
    assert settings.PitchPI[PI_KI] == 0


def test_apply_gains_preserves_untouched_fields():
    """Test integral limits and yaw settings survive, and the input is not modified"""
    current = StabilizationSettings(
        RollRatePID=[0.001, 0.002, 0.0, 0.45],
        PitchRatePID=[0.001, 0.002, 0.0, 0.55],
        YawRatePID=[0.004, 0.004, 0.0001, 0.35],
        RollPI=[2.5, 0.0, 42.0],
        YawPI=[1.5, 0.1, 33.0],
    )
    settings = current.apply_gains(sample_gains())

    assert settings.RollRatePID[RATEPID_ILIMIT] == 0.45
    assert settings.PitchRatePID[RATEPID_ILIMIT] == 0.55
    assert settings.RollPI[PI_ILIMIT] == 42.0
    assert settings.YawRatePID == [0.004, 0.004, 0.0001, 0.35]
    assert settings.YawPI == [1.5, 0.1, 33.0]

    assert current.RollRatePID == [0.001, 0.002, 0.0, 0.45]


def test_from_dict_fills_missing_fields():
    """Test partial records are completed with defaults"""
    settings = StabilizationSettings.from_dict({'DerivativeCutoff': 35.0, 'Unknown': 1})
    defaults = config.DEFAULT_STABILIZATION_SETTINGS

    assert settings.DerivativeCutoff == 35.0
    assert settings.RollRatePID == defaults['RollRatePID']
    assert 'Unknown' not in settings.to_dict()


def test_in_memory_store_defaults_and_round_trip():
    """Test unknown objects read as defaults and written objects read back"""
    store = InMemorySettingsStore()

    assert store.read_stabilization() == StabilizationSettings()
    assert not store.read_module_settings().is_enabled(config.AUTOTUNE_MODULE)

    updated = store.read_stabilization().apply_gains(sample_gains())
    store.write_stabilization(updated)
    assert store.read_stabilization() == updated


def test_store_returns_copies():
    """Test mutating a read record does not change the store"""
    store = InMemorySettingsStore()
    store.write_stabilization(StabilizationSettings())

    data = store.read(config.STABILIZATION_SETTINGS)
    data['RollRatePID'][0] = 99.0

    assert store.read_stabilization().RollRatePID[0] != 99.0


@pytest.mark.parametrize('bad', [float('nan'), float('inf'), -float('inf')])
def test_store_refuses_non_finite_values(bad):
    """Test NaN/Inf never reach a stored settings record"""
    store = InMemorySettingsStore()
    settings = StabilizationSettings()
    settings.RollRatePID[0] = bad

    with pytest.raises(SettingsStoreError):
        store.write_stabilization(settings)

    assert math.isfinite(store.read_stabilization().RollRatePID[0])


def test_module_settings_flag():
    """Test the autotune admin state flag"""
    module_settings = ModuleSettings()
    assert not module_settings.is_enabled(config.AUTOTUNE_MODULE)

    module_settings.set_enabled(config.AUTOTUNE_MODULE, True)
    assert module_settings.AdminState[config.AUTOTUNE_MODULE] == config.ADMIN_STATE_ENABLED

    restored = ModuleSettings.from_dict(module_settings.to_dict())
    assert restored.is_enabled(config.AUTOTUNE_MODULE)


def test_json_store_round_trip(tmp_path):
    """Test the JSON store persists several objects in one file"""
    path = tmp_path / 'settings' / 'stabilization.json'
    store = JsonSettingsStore(str(path))

    settings = StabilizationSettings().apply_gains(sample_gains())
    store.write_stabilization(settings)

    module_settings = ModuleSettings()
    module_settings.set_enabled(config.AUTOTUNE_MODULE, True)
    store.write_module_settings(module_settings)

    reopened = JsonSettingsStore(str(path))
    assert reopened.read_stabilization() == settings
    assert reopened.read_module_settings().is_enabled(config.AUTOTUNE_MODULE)


def test_json_store_reports_corrupt_file(tmp_path):
    """Test an unreadable file surfaces as SettingsStoreError"""
    path = tmp_path / 'settings.json'
    path.write_text('{not json')

    store = JsonSettingsStore(str(path))
    with pytest.raises(SettingsStoreError):
        store.read_stabilization()


def test_json_store_reports_write_failure(tmp_path):
    """Test a write into an impossible location surfaces as SettingsStoreError"""
    blocker = tmp_path / 'blocker'
    blocker.write_text('')

    store = JsonSettingsStore(str(blocker / 'settings.json'))
    with pytest.raises(SettingsStoreError):
        store.write_stabilization(StabilizationSettings())


@pytest.mark.parametrize('record', [
    {'RollRatePID': [0.002, 0.0]},
    {'RollPI': [2.0]},
    {'PitchRatePID': [0.002, 0.0, 0.0, 0.3, 1.0]},
    {'YawPI': 2.0},
    {'RollRatePID': [0.002, 'fast', 0.0, 0.3]},
    {'PitchPI': [2.0, None, 50.0]},
    {'DerivativeCutoff': 'high'},
    {'DerivativeCutoff': True},
])
def test_from_dict_rejects_malformed_fields(record):
    """Test wrongly sized or non-numeric stored fields raise SettingsStoreError"""
    with pytest.raises(SettingsStoreError):
        StabilizationSettings.from_dict(record)


def test_from_dict_rejects_non_object():
    """Test a stored record that is not a dictionary raises SettingsStoreError"""
    with pytest.raises(SettingsStoreError):
        StabilizationSettings.from_dict([0.002, 0.0, 0.0])
    with pytest.raises(SettingsStoreError):
        ModuleSettings.from_dict({'AdminState': 'Enabled'})


def test_json_store_rejects_non_object_file(tmp_path):
    """Test a settings file holding a bare JSON value is reported"""
    path = tmp_path / 'settings.json'
    path.write_text('[1, 2, 3]')

    store = JsonSettingsStore(str(path))
    with pytest.raises(SettingsStoreError):
        store.read_stabilization()
