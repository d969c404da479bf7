"""
Settings Objects and Stores

StabilizationSettings holds the gains the flight controller runs with,
ModuleSettings holds the admin state of optional modules (including
autotune). Stores keep these objects by name; the in-memory store is used
by tests and embedding applications, the JSON store by the command line.
"""

import copy
import json
import logging
import math
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List

from . import config
from .gain_synthesizer import OUTER_KI, ComputedGains
from .utils import load_json, save_json

logger = logging.getLogger(__name__)

# Rate PID array layout
RATEPID_KP = 0
RATEPID_KI = 1
RATEPID_KD = 2
RATEPID_ILIMIT = 3

# Attitude PI array layout
PI_KP = 0
PI_KI = 1
PI_ILIMIT = 2


class SettingsStoreError(IOError):
    """Settings could not be read or written"""


def _defaults(object_name: str) -> dict:
    if object_name == config.STABILIZATION_SETTINGS:
        return copy.deepcopy(config.DEFAULT_STABILIZATION_SETTINGS)
    elif object_name == config.MODULE_SETTINGS:
        return copy.deepcopy(config.DEFAULT_MODULE_SETTINGS)
    return {}


def _all_finite(obj) -> bool:
    if isinstance(obj, bool):
        return True
    if isinstance(obj, (int, float)):
        return math.isfinite(obj)
    if isinstance(obj, dict):
        return all(_all_finite(value) for value in obj.values())
    if isinstance(obj, (list, tuple)):
        return all(_all_finite(item) for item in obj)
    return True


def _float_value(name: str, value) -> float:
    if isinstance(value, bool):
        raise SettingsStoreError(f"{name} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise SettingsStoreError(f"{name} must be a number, got {value!r}") from e


def _float_array(name: str, values) -> List[float]:
    """Convert a stored gain array, which must match the default layout length"""
    length = len(config.DEFAULT_STABILIZATION_SETTINGS[name])
    if not isinstance(values, (list, tuple)) or len(values) != length:
        raise SettingsStoreError(f"{name} must be a list of {length} numbers, got {values!r}")
    return [_float_value(name, value) for value in values]


@dataclass
class StabilizationSettings:
    """Rate and attitude loop settings for all three axes"""
    RollRatePID: List[float] = field(
        default_factory=lambda: list(config.DEFAULT_STABILIZATION_SETTINGS['RollRatePID']))
    PitchRatePID: List[float] = field(
        default_factory=lambda: list(config.DEFAULT_STABILIZATION_SETTINGS['PitchRatePID']))
    YawRatePID: List[float] = field(
        default_factory=lambda: list(config.DEFAULT_STABILIZATION_SETTINGS['YawRatePID']))
    RollPI: List[float] = field(
        default_factory=lambda: list(config.DEFAULT_STABILIZATION_SETTINGS['RollPI']))
    PitchPI: List[float] = field(
        default_factory=lambda: list(config.DEFAULT_STABILIZATION_SETTINGS['PitchPI']))
    YawPI: List[float] = field(
        default_factory=lambda: list(config.DEFAULT_STABILIZATION_SETTINGS['YawPI']))
    DerivativeCutoff: float = config.DEFAULT_STABILIZATION_SETTINGS['DerivativeCutoff']

    @classmethod
    def from_dict(cls, data: Dict) -> 'StabilizationSettings':
        """
        Build from a stored dictionary, filling missing fields with defaults

        Raises:
            SettingsStoreError: a stored field has the wrong shape or is not numeric
        """
        if not isinstance(data, dict):
            raise SettingsStoreError(
                f"{config.STABILIZATION_SETTINGS} must be an object, got {type(data).__name__}")

        merged = _defaults(config.STABILIZATION_SETTINGS)
        merged.update({key: value for key, value in data.items() if key in merged})
        return cls(
            RollRatePID=_float_array('RollRatePID', merged['RollRatePID']),
            PitchRatePID=_float_array('PitchRatePID', merged['PitchRatePID']),
            YawRatePID=_float_array('YawRatePID', merged['YawRatePID']),
            RollPI=_float_array('RollPI', merged['RollPI']),
            PitchPI=_float_array('PitchPI', merged['PitchPI']),
            YawPI=_float_array('YawPI', merged['YawPI']),
            DerivativeCutoff=_float_value('DerivativeCutoff', merged['DerivativeCutoff']),
        )

    def to_dict(self) -> Dict:
        return {
            'RollRatePID': list(self.RollRatePID),
            'PitchRatePID': list(self.PitchRatePID),
            'YawRatePID': list(self.YawRatePID),
            'RollPI': list(self.RollPI),
            'PitchPI': list(self.PitchPI),
            'YawPI': list(self.YawPI),
            'DerivativeCutoff': self.DerivativeCutoff,
        }

    def apply_gains(self, gains: ComputedGains) -> 'StabilizationSettings':
        """
        Return a copy with the synthesized roll/pitch gains applied

        Integral limits and the yaw axis are kept as they are. The attitude
        loop integral gain is always set to zero.
        """
        updated = StabilizationSettings.from_dict(self.to_dict())

        for rate_pid, attitude_pi, axis in ((updated.RollRatePID, updated.RollPI, 'roll'),
                                            (updated.PitchRatePID, updated.PitchPI, 'pitch')):
            pid = gains.rate_pid(axis)
            rate_pid[RATEPID_KP] = pid.kp
            rate_pid[RATEPID_KI] = pid.ki
            rate_pid[RATEPID_KD] = pid.kd
            attitude_pi[PI_KP] = gains.outer_kp(axis)
            attitude_pi[PI_KI] = OUTER_KI

        updated.DerivativeCutoff = gains.derivative_cutoff
        return updated


@dataclass
class ModuleSettings:
    """Admin state of optional flight modules"""
    AdminState: Dict[str, str] = field(
        default_factory=lambda: dict(config.DEFAULT_MODULE_SETTINGS['AdminState']))

    @classmethod
    def from_dict(cls, data: Dict) -> 'ModuleSettings':
        stored = data.get('AdminState', {}) if isinstance(data, dict) else None
        if not isinstance(stored, dict):
            raise SettingsStoreError(f"{config.MODULE_SETTINGS} AdminState must be an object")

        admin_state = dict(config.DEFAULT_MODULE_SETTINGS['AdminState'])
        admin_state.update(stored)
        return cls(AdminState=admin_state)

    def to_dict(self) -> Dict:
        return {'AdminState': dict(self.AdminState)}

    def is_enabled(self, module: str) -> bool:
        return self.AdminState.get(module) == config.ADMIN_STATE_ENABLED

    def set_enabled(self, module: str, enabled: bool):
        self.AdminState[module] = (config.ADMIN_STATE_ENABLED if enabled
                                   else config.ADMIN_STATE_DISABLED)


class SettingsStore(ABC):
    """
    Named settings objects

    read() returns defaults for objects that were never written. write()
    refuses records containing NaN or infinite values.
    """

    def read(self, object_name: str) -> Dict:
        data = self._read(object_name)
        if data is None:
            return _defaults(object_name)
        return data

    def write(self, object_name: str, data: Dict):
        """
        Store a settings object

        Raises:
            SettingsStoreError: non-finite values or an I/O failure
        """
        if not _all_finite(data):
            raise SettingsStoreError(f"Refusing to store non-finite values in {object_name}")
        self._write(object_name, copy.deepcopy(data))
        logger.debug(f"Stored {object_name}")

    def read_stabilization(self) -> StabilizationSettings:
        return StabilizationSettings.from_dict(self.read(config.STABILIZATION_SETTINGS))

    def write_stabilization(self, settings: StabilizationSettings):
        self.write(config.STABILIZATION_SETTINGS, settings.to_dict())

    def read_module_settings(self) -> ModuleSettings:
        return ModuleSettings.from_dict(self.read(config.MODULE_SETTINGS))

    def write_module_settings(self, settings: ModuleSettings):
        self.write(config.MODULE_SETTINGS, settings.to_dict())

    @abstractmethod
    def _read(self, object_name: str):
        """Return the stored dictionary or None"""

    @abstractmethod
    def _write(self, object_name: str, data: Dict):
        """Persist the dictionary"""


class InMemorySettingsStore(SettingsStore):
    """Settings kept in process memory"""

    def __init__(self, initial: Dict[str, Dict] = None):
        self._objects: Dict[str, Dict] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.Lock()

    def _read(self, object_name: str):
        with self._lock:
            data = self._objects.get(object_name)
            return copy.deepcopy(data) if data is not None else None

    def _write(self, object_name: str, data: Dict):
        with self._lock:
            self._objects[object_name] = data


class JsonSettingsStore(SettingsStore):
    """
    Settings kept in a single JSON file, one entry per object name
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _load_all(self) -> Dict[str, Dict]:
        if not os.path.exists(self.path):
            return {}
        try:
            objects = load_json(self.path)
        except (OSError, json.JSONDecodeError) as e:
            raise SettingsStoreError(f"Could not read settings from {self.path}: {e}") from e
        if not isinstance(objects, dict):
            raise SettingsStoreError(f"Settings file {self.path} does not hold a JSON object")
        return objects

    def _read(self, object_name: str):
        with self._lock:
            return self._load_all().get(object_name)

    def _write(self, object_name: str, data: Dict):
        with self._lock:
            objects = self._load_all()
            objects[object_name] = data
            try:
                save_json(self.path, objects)
            except OSError as e:
                raise SettingsStoreError(f"Could not write settings to {self.path}: {e}") from e
        logger.info(f"Saved {object_name} to {self.path}")
