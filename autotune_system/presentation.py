"""
Display formatting for synthesized gains

Kept apart from the synthesis so the computation never depends on how
results are shown.
"""

from typing import Dict

from .gain_synthesizer import SynthesisResult


def format_gains(result: SynthesisResult) -> Dict[str, str]:
    """
    Format a synthesis result for the autotune panel

    Args:
        result: Output of GainSynthesizer.compute_gains

    Returns:
        Dictionary of field name to display text
    """
    gains = result.gains
    diag = result.diagnostics

    return {
        'rollRateKp': f"{gains.roll_rate_pid.kp:g}",
        'rollRateKi': f"{gains.roll_rate_pid.ki:g}",
        'rollRateKd': f"{gains.roll_rate_pid.kd:g}",
        'pitchRateKp': f"{gains.pitch_rate_pid.kp:g}",
        'pitchRateKi': f"{gains.pitch_rate_pid.ki:g}",
        'pitchRateKd': f"{gains.pitch_rate_pid.kd:g}",
        'lblOuterKp': f"{gains.roll_outer_kp:g}",
        'derivativeCutoff': f"{gains.derivative_cutoff:g}",
        'rollTau': f"{diag.tau:.3g}",
        'pitchTau': f"{diag.tau:.3g}",
        'wn': f"{diag.wn_hz:.1f}",
        'lblDamp': f"{diag.damp:.2g}",
        'lblNoise': f"{diag.ghf * 100:.2g} %",
    }


def render_report(result: SynthesisResult) -> str:
    """Multi-line text summary for the command line"""
    gains = result.gains
    diag = result.diagnostics
    shown = format_gains(result)

    lines = [
        "=" * 60,
        "COMPUTED STABILIZATION SETTINGS",
        "=" * 60,
        f"  Time constant:      {shown['rollTau']} s",
        f"  Damping:            {shown['lblDamp']}",
        f"  Noise sensitivity:  {shown['lblNoise']}",
        f"  Bandwidth:          {shown['wn']} Hz",
        "-" * 60,
        f"  {'Axis':<8} {'Kp':>12} {'Ki':>12} {'Kd':>12}",
    ]
    for axis in ('roll', 'pitch'):
        pid = gains.rate_pid(axis)
        lines.append(f"  {axis.capitalize():<8} {pid.kp:>12.6g} {pid.ki:>12.6g} {pid.kd:>12.6g}")
    lines.extend([
        "-" * 60,
        f"  Attitude Kp:        {shown['lblOuterKp']}",
        f"  Derivative cutoff:  {shown['derivativeCutoff']} Hz",
        f"  Poles a / b:        {diag.a:.4g} / {diag.b:.4g} rad/s",
        "=" * 60,
    ])
    return "\n".join(lines)
