"""
Closed-Loop Analysis of a Synthesized Design

Rebuilds the rate loop from the identified plant and the synthesized gains
so an operator can check the design before committing it:
- closed-loop poles against the placed poles
- unit step response (rise time, settling time, overshoot)
- phase margin at the gain crossover

Plant:       G(s) = beta / (s * (tau*s + 1))
Controller:  C(s) = Kp + Ki/s + Kd*s / (tau_d*s + 1)
"""

import logging
from typing import Dict, Tuple

import numpy as np
from scipy import signal

from .config import ANALYSIS_CONFIG
from .gain_synthesizer import SynthesisResult
from .utils import calculate_overshoot, calculate_rise_time, calculate_settling_time

logger = logging.getLogger(__name__)


def open_loop(result: SynthesisResult, axis: str = 'roll') -> Tuple[np.ndarray, np.ndarray]:
    """
    Open-loop transfer function L(s) = C(s) * G(s)

    Returns:
        (numerator, denominator) polynomial coefficients, highest power first
    """
    diag = result.diagnostics
    pid = result.gains.rate_pid(axis)
    beta = result.plant.gain(axis)
    tau, tau_d = diag.tau, diag.tau_d

    # C(s) = ((Kp*tau_d + Kd) s^2 + (Kp + Ki*tau_d) s + Ki) / (tau_d s^2 + s)
    controller_num = np.array([pid.kp * tau_d + pid.kd, pid.kp + pid.ki * tau_d, pid.ki])
    controller_den = np.array([tau_d, 1.0, 0.0])

    plant_num = np.array([beta])
    plant_den = np.array([tau, 1.0, 0.0])

    return np.polymul(controller_num, plant_num), np.polymul(controller_den, plant_den)


def closed_loop(result: SynthesisResult, axis: str = 'roll') -> Tuple[np.ndarray, np.ndarray]:
    """Rate command to rate transfer function with unity feedback"""
    num, den = open_loop(result, axis)
    return num, np.polyadd(den, num)


def closed_loop_poles(result: SynthesisResult, axis: str = 'roll') -> np.ndarray:
    """Roots of the closed-loop characteristic polynomial"""
    _, den = closed_loop(result, axis)
    return np.roots(den)


def design_poles(result: SynthesisResult) -> np.ndarray:
    """
    Poles the synthesis placed: -a, -b and the pair with natural
    frequency wn and damping damp
    """
    diag = result.diagnostics
    pair = np.roots([1.0, 2 * diag.damp * diag.wn, diag.wn * diag.wn])
    return np.concatenate(([-diag.a, -diag.b], pair))


def is_stable(result: SynthesisResult, axis: str = 'roll') -> bool:
    return bool(np.all(np.real(closed_loop_poles(result, axis)) < 0))


def step_response(result: SynthesisResult, axis: str = 'roll',
                  num_points: int = None) -> Dict:
    """
    Simulate the closed-loop unit step response

    The horizon covers several time constants of the slowest pole.

    Args:
        result: Synthesis result
        axis: 'roll' or 'pitch'
        num_points: Number of time samples

    Returns:
        Dictionary with time, response, rise_time, settling_time,
        overshoot (percent) and final_value
    """
    num_points = num_points or ANALYSIS_CONFIG['step_points']
    num, den = closed_loop(result, axis)

    slowest = np.min(np.abs(np.real(closed_loop_poles(result, axis))))
    t_end = ANALYSIS_CONFIG['step_horizon'] / slowest
    time = np.linspace(0.0, t_end, num_points)

    time, response = signal.step(signal.TransferFunction(num, den), T=time)

    metrics = {
        'time': time,
        'response': response,
        'rise_time': calculate_rise_time(time, response, 1.0,
                                         threshold=ANALYSIS_CONFIG['rise_threshold']),
        'settling_time': calculate_settling_time(time, response, 1.0,
                                                 threshold=ANALYSIS_CONFIG['settling_threshold']),
        'overshoot': calculate_overshoot(response, 1.0),
        'final_value': float(response[-1]),
    }

    logger.debug(f"Step response ({axis}): rise={metrics['rise_time']:.4f}s, "
                 f"settling={metrics['settling_time']:.4f}s, overshoot={metrics['overshoot']:.1f}%")

    return metrics


def frequency_response(result: SynthesisResult, axis: str = 'roll',
                       frequencies: np.ndarray = None) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Open-loop frequency response

    Phase is built factor by factor so the double integrator stays at
    exactly -180 degrees instead of wrapping.

    Returns:
        Tuple of (frequencies rad/s, magnitude, phase degrees)
    """
    if frequencies is None:
        low, high = ANALYSIS_CONFIG['freq_decades']
        frequencies = np.logspace(low, high, ANALYSIS_CONFIG['freq_points'])

    num, den = open_loop(result, axis)
    s = 1j * frequencies

    magnitude = np.abs(np.polyval(num, s) / np.polyval(den, s))

    diag = result.diagnostics
    phase = (np.degrees(np.unwrap(np.angle(np.polyval(num, s))))
             - 180.0
             - np.degrees(np.arctan(diag.tau_d * frequencies))
             - np.degrees(np.arctan(diag.tau * frequencies)))

    return frequencies, magnitude, phase


def stability_margins(result: SynthesisResult, axis: str = 'roll') -> Dict[str, float]:
    """
    Phase margin at the highest gain crossover of the open loop

    Returns:
        Dictionary with phase_margin (deg), crossover_rad_s and crossover_hz;
        NaN values when no crossover lies in the analysed band
    """
    frequencies, magnitude, phase = frequency_response(result, axis)

    crossings = np.where((magnitude[:-1] > 1.0) & (magnitude[1:] <= 1.0))[0]
    if len(crossings) == 0:
        logger.warning(f"No gain crossover found for {axis} between "
                       f"{frequencies[0]:.3g} and {frequencies[-1]:.3g} rad/s")
        return {'phase_margin': np.nan, 'crossover_rad_s': np.nan, 'crossover_hz': np.nan}

    i = crossings[-1]

    # Interpolate in log-magnitude / log-frequency
    m1, m2 = np.log10(magnitude[i]), np.log10(magnitude[i + 1])
    f1, f2 = np.log10(frequencies[i]), np.log10(frequencies[i + 1])
    fraction = m1 / (m1 - m2)
    crossover = 10 ** (f1 + fraction * (f2 - f1))
    phase_at_crossover = phase[i] + fraction * (phase[i + 1] - phase[i])

    phase_margin = 180.0 + phase_at_crossover

    return {
        'phase_margin': float(phase_margin),
        'crossover_rad_s': float(crossover),
        'crossover_hz': float(crossover / (2 * np.pi)),
    }


def analyze_design(result: SynthesisResult) -> Dict[str, Dict]:
    """Step and margin summary for both synthesized axes"""
    summary = {}
    for axis in ('roll', 'pitch'):
        step = step_response(result, axis)
        margins = stability_margins(result, axis)
        summary[axis] = {
            'stable': is_stable(result, axis),
            'rise_time': step['rise_time'],
            'settling_time': step['settling_time'],
            'overshoot': step['overshoot'],
            **margins,
        }
        logger.info(f"{axis.capitalize()} loop: PM={margins['phase_margin']:.1f} deg "
                    f"at {margins['crossover_hz']:.2f} Hz, overshoot={step['overshoot']:.1f}%, "
                    f"settling={step['settling_time']:.3f}s")
    return summary
