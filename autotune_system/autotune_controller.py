"""
Autotune Controller

Keeps a synthesized set of stabilization gains up to date with the tuning
dials and the latest system identification, and commits them to a
settings store on request.
"""

import logging
import threading
from typing import Dict, Optional

from . import config
from .gain_synthesizer import (
    GainSynthesisError,
    GainSynthesizer,
    IdentifiedPlant,
    SynthesisResult,
    TuningInputs,
)
from .presentation import format_gains
from .settings_store import SettingsStore, StabilizationSettings
from .system_ident import IdentificationUnavailable, SystemIdentSource

logger = logging.getLogger(__name__)


class AutotuneController:
    """
    Recompute gains whenever an input changes, commit on request

    Recompute is driven by three sources: the damping dial, the noise dial
    and identification updates. A lock serialises recompute and commit so
    a commit never reads a half-written result.
    """

    def __init__(self, ident_source: SystemIdentSource,
                 settings_store: SettingsStore,
                 synthesizer: Optional[GainSynthesizer] = None,
                 tuning: Optional[TuningInputs] = None):
        """
        Args:
            ident_source: Provider of identified plant parameters
            settings_store: Where stabilization and module settings live
            synthesizer: Gain synthesizer (default configuration if None)
            tuning: Initial dial values (config defaults if None)
        """
        self.ident_source = ident_source
        self.settings_store = settings_store
        self.synthesizer = synthesizer or GainSynthesizer()

        self._tuning = tuning or TuningInputs()
        self._result: Optional[SynthesisResult] = None
        self._last_error: Optional[Exception] = None
        self._lock = threading.RLock()

        self.ident_source.connect(self._on_identification_updated)

        if self.ident_source.has_data:
            self._recompute_quietly()

    def close(self):
        """Stop listening to identification updates"""
        self.ident_source.disconnect(self._on_identification_updated)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    @property
    def tuning(self) -> TuningInputs:
        with self._lock:
            return self._tuning

    def set_damping(self, raw: int) -> Optional[SynthesisResult]:
        """Change the damping dial and recompute"""
        with self._lock:
            self._tuning = TuningInputs(damping=raw, noise=self._tuning.noise)
            return self._recompute_quietly()

    def set_noise(self, raw: int) -> Optional[SynthesisResult]:
        """Change the noise dial and recompute"""
        with self._lock:
            self._tuning = TuningInputs(damping=self._tuning.damping, noise=raw)
            return self._recompute_quietly()

    def _on_identification_updated(self, plant: IdentifiedPlant):
        with self._lock:
            self._recompute_quietly()

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    @property
    def result(self) -> Optional[SynthesisResult]:
        """Last successful synthesis, or None after a failure"""
        with self._lock:
            return self._result

    @property
    def last_error(self) -> Optional[Exception]:
        with self._lock:
            return self._last_error

    def recompute(self) -> SynthesisResult:
        """
        Synthesize gains from the latest identification and dials

        Raises:
            IdentificationUnavailable: no identification received yet
            GainSynthesisError: the inputs do not give a usable design
        """
        with self._lock:
            try:
                plant = self.ident_source.get_latest()
                result = self.synthesizer.compute_gains(plant, self._tuning)
            except (GainSynthesisError, IdentificationUnavailable) as e:
                self._result = None
                self._last_error = e
                raise

            self._result = result
            self._last_error = None
            return result

    def _recompute_quietly(self) -> Optional[SynthesisResult]:
        """Recompute from an event; failures are logged and kept in last_error"""
        try:
            return self.recompute()
        except IdentificationUnavailable:
            logger.debug("Waiting for identification data")
        except GainSynthesisError as e:
            logger.warning(f"Cannot compute stabilization gains: {e}")
        return None

    def display(self) -> Dict[str, str]:
        """Formatted values of the current result (empty if none)"""
        result = self.result
        if result is None:
            return {}
        return format_gains(result)

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit(self) -> StabilizationSettings:
        """
        Apply the computed settings to the store

        Gains are recomputed first so a commit never uses values older than
        the latest identification. Fields not produced by the synthesis are
        taken from the stored settings.

        Returns:
            The settings record that was written

        Raises:
            IdentificationUnavailable: no identification received yet
            GainSynthesisError: the inputs do not give a usable design
            SettingsStoreError: the store rejected the write
        """
        with self._lock:
            result = self.recompute()

            current = self.settings_store.read_stabilization()
            updated = current.apply_gains(result.gains)
            self.settings_store.write_stabilization(updated)

        gains = result.gains
        logger.info("Applied stabilization settings")
        logger.info(f"  Roll rate:  Kp={gains.roll_rate_pid.kp:.6g}, "
                    f"Ki={gains.roll_rate_pid.ki:.6g}, Kd={gains.roll_rate_pid.kd:.6g}")
        logger.info(f"  Pitch rate: Kp={gains.pitch_rate_pid.kp:.6g}, "
                    f"Ki={gains.pitch_rate_pid.ki:.6g}, Kd={gains.pitch_rate_pid.kd:.6g}")
        logger.info(f"  Outer Kp: {gains.roll_outer_kp:.6g}, "
                    f"Derivative cutoff: {gains.derivative_cutoff:.6g} Hz")
        return updated

    # ------------------------------------------------------------------
    # Autotune module admin state
    # ------------------------------------------------------------------

    def is_autotune_enabled(self) -> bool:
        return self.settings_store.read_module_settings().is_enabled(config.AUTOTUNE_MODULE)

    def set_autotune_enabled(self, enabled: bool):
        """Enable or disable the on-board identification module"""
        module_settings = self.settings_store.read_module_settings()
        module_settings.set_enabled(config.AUTOTUNE_MODULE, enabled)
        self.settings_store.write_module_settings(module_settings)
        logger.info(f"Autotune module {'enabled' if enabled else 'disabled'}")
