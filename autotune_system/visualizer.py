"""
Visualization of a Synthesized Design

Step response and pole map for operator review before committing gains.
"""

import logging
from pathlib import Path

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from .gain_synthesizer import SynthesisResult
from .loop_analysis import closed_loop_poles, design_poles, step_response

logger = logging.getLogger(__name__)

# Set style
plt.style.use('seaborn-v0_8-darkgrid')
sns.set_palette("husl")


def plot_design(result: SynthesisResult, save_path: str) -> Path:
    """
    Plot roll/pitch step responses and the closed-loop pole map

    Args:
        result: Synthesis result to visualise
        save_path: Output image path

    Returns:
        Path of the saved figure
    """
    save_path = Path(save_path)
    save_path.parent.mkdir(parents=True, exist_ok=True)

    fig, (ax_step, ax_poles) = plt.subplots(1, 2, figsize=(14, 6))

    for axis, color in (('roll', '#3498db'), ('pitch', '#e74c3c')):
        step = step_response(result, axis)
        ax_step.plot(step['time'], step['response'], linewidth=2, color=color,
                     label=f"{axis.capitalize()} (overshoot {step['overshoot']:.1f}%)")

        poles = closed_loop_poles(result, axis)
        ax_poles.plot(np.real(poles), np.imag(poles), 'x', markersize=10,
                      markeredgewidth=2, color=color, label=f"{axis.capitalize()} closed loop")

    ax_step.axhline(1.0, linestyle='--', color='gray', alpha=0.7)
    ax_step.set_xlabel('Time (s)', fontsize=12, fontweight='bold')
    ax_step.set_ylabel('Rate / command', fontsize=12, fontweight='bold')
    ax_step.set_title('Rate Loop Step Response', fontsize=14, fontweight='bold')
    ax_step.legend(fontsize=10, loc='lower right')

    placed = design_poles(result)
    ax_poles.plot(np.real(placed), np.imag(placed), 'o', markersize=12,
                  fillstyle='none', color='#2ecc71', label='Placed poles')
    ax_poles.axvline(0.0, color='black', linewidth=1)
    ax_poles.set_xlabel('Real (rad/s)', fontsize=12, fontweight='bold')
    ax_poles.set_ylabel('Imaginary (rad/s)', fontsize=12, fontweight='bold')
    ax_poles.set_title('Closed-Loop Poles', fontsize=14, fontweight='bold')
    ax_poles.legend(fontsize=10)

    diag = result.diagnostics
    fig.suptitle(f"damp={diag.damp:.2f}, noise={diag.ghf * 100:.2g}%, "
                 f"wn={diag.wn_hz:.1f} Hz, cutoff={result.gains.derivative_cutoff:.1f} Hz",
                 fontsize=12)

    plt.tight_layout()
    plt.savefig(save_path, dpi=150, bbox_inches='tight')
    plt.close(fig)

    logger.info(f"Design plot saved: {save_path}")
    return save_path
