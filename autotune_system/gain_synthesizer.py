"""
Pole-Placement Gain Synthesis for Roll/Pitch Stabilization

Converts the identified rotational dynamics of the vehicle into rate loop
PID gains, attitude loop proportional gains and a derivative filter cutoff.

Plant model per axis (rate command to body rate):
    G(s) = beta / (s * (tau*s + 1))

Rate controller with a first-order filter on the derivative term:
    C(s) = Kp + Ki/s + Kd*s / (tau_d*s + 1)

The closed loop is fourth order. Its poles are placed at two real
locations (-a, -b) and a second-order pair with natural frequency wn and
damping ratio damp. wn and tau_d are coupled through the high frequency
gain limit ghf, so they are found with a fixed-point iteration. The
iteration count is fixed at 30 so results stay comparable with other
ground stations using the same procedure.

The attitude loop treats the closed rate loop as a first-order lag and is
tuned for a damping of 1.3, giving one Kp shared by roll and pitch.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from .config import SYNTHESIS_CONFIG, TUNING_CONFIG

logger = logging.getLogger(__name__)

AXES = SYNTHESIS_CONFIG['axes']

# Fixed-point iterations of the pole placement solve, not a tolerance
SOLVE_ITERATIONS = 30

# Attitude loop integral gain written for every synthesized axis
OUTER_KI = 0.0


class GainSynthesisError(ValueError):
    """Base class for failures while synthesizing gains"""


class InvalidPlantParameter(GainSynthesisError):
    """Identified time constant or gains cannot be used for synthesis"""


class InvalidTuningInput(GainSynthesisError):
    """Damping or noise dial outside the usable range"""


class DegenerateSolution(GainSynthesisError):
    """Pole placement produced non-finite values or an unusable filter"""


@dataclass(frozen=True)
class IdentifiedPlant:
    """
    Identified plant parameters, stored in the log domain

    tau is ln(time constant in seconds), beta_* are ln(axis gain).
    """
    tau: float
    beta_roll: float
    beta_pitch: float
    beta_yaw: float = 0.0

    @classmethod
    def from_linear(cls, tau: float, beta_roll: float, beta_pitch: float,
                    beta_yaw: float = 1.0) -> 'IdentifiedPlant':
        """Build from linear-domain values (seconds and raw axis gains)"""
        # log(0) gives -inf, which validation later rejects
        with np.errstate(divide='ignore', invalid='ignore'):
            return cls(
                tau=float(np.log(tau)),
                beta_roll=float(np.log(beta_roll)),
                beta_pitch=float(np.log(beta_pitch)),
                beta_yaw=float(np.log(beta_yaw)),
            )

    @property
    def time_constant(self) -> float:
        with np.errstate(over='ignore'):
            return float(np.exp(self.tau))

    def beta(self, axis: str) -> float:
        """Log-domain gain for an axis"""
        if axis == 'roll':
            return self.beta_roll
        elif axis == 'pitch':
            return self.beta_pitch
        elif axis == 'yaw':
            return self.beta_yaw
        else:
            raise ValueError(f"Unknown axis: {axis}")

    def gain(self, axis: str) -> float:
        """Linear gain for an axis"""
        with np.errstate(over='ignore'):
            return float(np.exp(self.beta(axis)))


@dataclass(frozen=True)
class TuningInputs:
    """Raw dial values chosen by the operator"""
    damping: int = TUNING_CONFIG['damping']['default']
    noise: int = TUNING_CONFIG['noise']['default']

    @property
    def damp(self) -> float:
        """Desired closed-loop damping ratio"""
        return self.damping / TUNING_CONFIG['damping']['scale']

    @property
    def ghf(self) -> float:
        """High frequency gain weight"""
        return self.noise / TUNING_CONFIG['noise']['scale']


@dataclass(frozen=True)
class PIDGains:
    kp: float
    ki: float
    kd: float

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.kp, self.ki, self.kd)


@dataclass(frozen=True)
class ComputedGains:
    """Rate and attitude loop gains for roll and pitch"""
    roll_rate_pid: PIDGains
    pitch_rate_pid: PIDGains
    roll_outer_kp: float
    pitch_outer_kp: float
    derivative_cutoff: float

    def rate_pid(self, axis: str) -> PIDGains:
        if axis == 'roll':
            return self.roll_rate_pid
        elif axis == 'pitch':
            return self.pitch_rate_pid
        raise ValueError(f"Unknown axis: {axis}")

    def outer_kp(self, axis: str) -> float:
        if axis == 'roll':
            return self.roll_outer_kp
        elif axis == 'pitch':
            return self.pitch_outer_kp
        raise ValueError(f"Unknown axis: {axis}")

    def values(self) -> List[float]:
        """Every number that ends up in the settings record"""
        return [*self.roll_rate_pid.as_tuple(), *self.pitch_rate_pid.as_tuple(),
                self.roll_outer_kp, self.pitch_outer_kp, self.derivative_cutoff]


@dataclass(frozen=True)
class SynthesisDiagnostics:
    """Intermediate values of one synthesis, for operator visibility"""
    ghf: float
    damp: float
    tau: float                  # linear time constant (s)
    wn: float                   # rad/s
    tau_d: float                # derivative filter time constant (s)
    tau_d_roll: float           # last roll candidate
    tau_d_pitch: float          # last pitch candidate
    a: float
    b: float
    iterations: int
    history: Tuple[Tuple[float, float], ...] = ()

    @property
    def wn_hz(self) -> float:
        return self.wn / 2 / np.pi


@dataclass(frozen=True)
class SynthesisResult:
    gains: ComputedGains
    diagnostics: SynthesisDiagnostics
    plant: IdentifiedPlant
    tuning: TuningInputs


class GainSynthesizer:
    """
    Compute stabilization gains from an identified plant

    Holds only configuration; every call to compute_gains is independent.
    """

    def __init__(self, slow_pole_divisor: Optional[float] = None,
                 outer_damping: Optional[float] = None):
        """
        Args:
            slow_pole_divisor: Fraction of the real pole sum given to the slow pole
            outer_damping: Damping target for the attitude loop
        """
        self.slow_pole_divisor = (slow_pole_divisor if slow_pole_divisor is not None
                                  else SYNTHESIS_CONFIG['slow_pole_divisor'])
        self.outer_damping = (outer_damping if outer_damping is not None
                              else SYNTHESIS_CONFIG['outer_damping'])

    def validate_plant(self, plant: IdentifiedPlant) -> np.float64:
        """
        Check identified parameters and return the linear time constant

        Raises:
            InvalidPlantParameter: tau not strictly positive and finite after
                exponentiation, or a roll/pitch beta that is not finite
        """
        with np.errstate(over='ignore'):
            tau = np.exp(np.float64(plant.tau))

        if not np.isfinite(tau) or tau <= 0:
            raise InvalidPlantParameter(
                f"Time constant must be positive and finite, got exp({plant.tau}) = {tau}"
            )

        for axis in AXES:
            beta = plant.beta(axis)
            if not np.isfinite(beta):
                raise InvalidPlantParameter(f"Beta for {axis} must be finite, got {beta}")

        return tau

    def validate_tuning(self, tuning: TuningInputs) -> Tuple[np.float64, np.float64]:
        """
        Check the dials and return (damp, ghf)

        Raises:
            InvalidTuningInput: damp not positive, or noise negative/non-finite
        """
        damp = np.float64(tuning.damp)
        ghf = np.float64(tuning.ghf)

        if not np.isfinite(damp) or damp <= 0:
            raise InvalidTuningInput(f"Damping must be positive, got {damp}")
        if not np.isfinite(ghf) or ghf < 0:
            raise InvalidTuningInput(f"Noise weight must be non-negative, got {ghf}")

        return damp, ghf

    def solve_pole_placement(self, tau: np.float64, damp: np.float64, ghf: np.float64,
                             beta_roll: np.float64, beta_pitch: np.float64) -> Dict:
        """
        Fixed-point solve for the controller bandwidth and derivative filter

        Both axes are evaluated on every iteration and the slower (larger)
        filter time constant is kept, so roll and pitch share tau_d and wn.

        Args:
            tau: Linear plant time constant (s)
            damp: Desired damping ratio
            ghf: High frequency gain weight
            beta_roll: Linear roll gain
            beta_pitch: Linear pitch gain

        Returns:
            Dictionary with wn, tau_d, the last per-axis candidates and the
            per-iteration history
        """
        wn = 1 / tau
        tau_d = np.float64(0.0)
        tau_d_roll = tau_d_pitch = np.float64(np.nan)
        history = []

        # Division by zero yields inf/nan as in C; the result is checked afterwards
        with np.errstate(all='ignore'):
            for _ in range(SOLVE_ITERATIONS):
                tau_d_roll = (2 * damp * tau * wn - 1) / (
                    4 * tau * damp * damp * wn * wn - 2 * damp * wn - tau * wn * wn + beta_roll * ghf)
                tau_d_pitch = (2 * damp * tau * wn - 1) / (
                    4 * tau * damp * damp * wn * wn - 2 * damp * wn - tau * wn * wn + beta_pitch * ghf)

                # Select the slowest filter property
                tau_d = tau_d_roll if tau_d_roll > tau_d_pitch else tau_d_pitch
                wn = (tau + tau_d) / (tau * tau_d) / (2 * damp + 2)

                history.append((float(wn), float(tau_d)))

        return {
            'wn': wn,
            'tau_d': tau_d,
            'tau_d_roll': tau_d_roll,
            'tau_d_pitch': tau_d_pitch,
            'history': history,
        }

    def compute_gains(self, plant: IdentifiedPlant, tuning: TuningInputs) -> SynthesisResult:
        """
        Synthesize rate and attitude gains for roll and pitch

        Args:
            plant: Identified plant (log domain)
            tuning: Damping and noise dials

        Returns:
            SynthesisResult with the gains and the intermediate values

        Raises:
            InvalidPlantParameter: unusable identification
            InvalidTuningInput: unusable dial values
            DegenerateSolution: the solve did not produce a usable design
        """
        tau = self.validate_plant(plant)
        damp, ghf = self.validate_tuning(tuning)

        with np.errstate(over='ignore'):
            beta_roll = np.exp(np.float64(plant.beta_roll))
            beta_pitch = np.exp(np.float64(plant.beta_pitch))

        solution = self.solve_pole_placement(tau, damp, ghf, beta_roll, beta_pitch)
        wn = solution['wn']
        tau_d = solution['tau_d']

        if not (np.isfinite(wn) and np.isfinite(tau_d)) or tau_d <= 0:
            raise DegenerateSolution(
                f"Pole placement did not converge to a usable filter "
                f"(tau={tau:.4g}, damp={damp:.3g}, ghf={ghf:.3g}): wn={wn}, tau_d={tau_d}"
            )

        with np.errstate(all='ignore'):
            # The first pole is quite slow, which keeps the integral from
            # driving too much overshoot
            a = ((tau + tau_d) / tau / tau_d - 2 * damp * wn) / self.slow_pole_divisor
            b = ((tau + tau_d) / tau / tau_d - 2 * damp * wn - a)

            logger.debug(f"ghf: {ghf}")
            logger.debug(f"wn: {wn} tau_d: {tau_d}")
            logger.debug(f"a: {a} b: {b}")

            # Outer loop sees the inner loop as a single order lpf
            zeta_o = self.outer_damping
            kp_o = 1 / 4.0 / (zeta_o * zeta_o) / (1 / wn)

            rate_pids = {}
            for axis, beta in (('roll', beta_roll), ('pitch', beta_pitch)):
                ki = a * b * wn * wn * tau * tau_d / beta
                kp = tau * tau_d * ((a + b) * wn * wn + 2 * a * b * damp * wn) / beta - ki * tau_d
                kd = (tau * tau_d * (a * b + wn * wn + (a + b) * 2 * damp * wn) - 1) / beta - kp * tau_d
                rate_pids[axis] = PIDGains(kp=float(kp), ki=float(ki), kd=float(kd))

            derivative_cutoff = 1 / (2 * np.pi * tau_d)

        gains = ComputedGains(
            roll_rate_pid=rate_pids['roll'],
            pitch_rate_pid=rate_pids['pitch'],
            roll_outer_kp=float(kp_o),
            pitch_outer_kp=float(kp_o),
            derivative_cutoff=float(derivative_cutoff),
        )

        if not all(np.isfinite(value) for value in gains.values()):
            raise DegenerateSolution(f"Synthesized gains are not finite: {gains}")

        diagnostics = SynthesisDiagnostics(
            ghf=float(ghf),
            damp=float(damp),
            tau=float(tau),
            wn=float(wn),
            tau_d=float(tau_d),
            tau_d_roll=float(solution['tau_d_roll']),
            tau_d_pitch=float(solution['tau_d_pitch']),
            a=float(a),
            b=float(b),
            iterations=len(solution['history']),
            history=tuple(solution['history']),
        )

        return SynthesisResult(gains=gains, diagnostics=diagnostics, plant=plant, tuning=tuning)


def compute_gains(plant: IdentifiedPlant, tuning: TuningInputs) -> SynthesisResult:
    """Synthesize gains with the default configuration"""
    return GainSynthesizer().compute_gains(plant, tuning)
