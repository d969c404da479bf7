"""
Stabilization autotune: roll/pitch gain synthesis from system identification
"""

from .autotune_controller import AutotuneController
from .gain_synthesizer import (
    ComputedGains,
    DegenerateSolution,
    GainSynthesisError,
    GainSynthesizer,
    IdentifiedPlant,
    InvalidPlantParameter,
    InvalidTuningInput,
    PIDGains,
    SynthesisDiagnostics,
    SynthesisResult,
    TuningInputs,
    compute_gains,
)
from .settings_store import (
    InMemorySettingsStore,
    JsonSettingsStore,
    ModuleSettings,
    SettingsStore,
    SettingsStoreError,
    StabilizationSettings,
)
from .system_ident import IdentificationUnavailable, SystemIdentSource

__version__ = '0.1.0'
