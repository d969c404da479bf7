"""
Tests for display formatting
"""

import math

from .gain_synthesizer import (
    ComputedGains,
    IdentifiedPlant,
    PIDGains,
    SynthesisDiagnostics,
    SynthesisResult,
    TuningInputs,
)
from .presentation import format_gains, render_report


def sample_result():
    gains = ComputedGains(
        roll_rate_pid=PIDGains(kp=0.0022, ki=0.0088, kd=4.8e-05),
        pitch_rate_pid=PIDGains(kp=0.0031, ki=0.012, kd=6.5e-05),
        roll_outer_kp=7.3,
        pitch_outer_kp=7.3,
        derivative_cutoff=27.7,
    )
    diagnostics = SynthesisDiagnostics(
        ghf=0.01, damp=1.1, tau=0.0312345, wn=2 * math.pi * 10, tau_d=0.00575,
        tau_d_roll=0.00575, tau_d_pitch=0.0055, a=4.93, b=93.7, iterations=30,
    )
    plant = IdentifiedPlant(tau=math.log(0.0312345), beta_roll=10.0, beta_pitch=9.6)
    return SynthesisResult(gains=gains, diagnostics=diagnostics, plant=plant,
                           tuning=TuningInputs(110, 10))


def test_format_gains():
    """Test each panel field uses its display precision"""
    shown = format_gains(sample_result())

    assert shown['rollRateKp'] == '0.0022'
    assert shown['rollRateKi'] == '0.0088'
    assert shown['rollRateKd'] == '4.8e-05'
    assert shown['pitchRateKp'] == '0.0031'
    assert shown['pitchRateKi'] == '0.012'
    assert shown['pitchRateKd'] == '6.5e-05'
    assert shown['lblOuterKp'] == '7.3'
    assert shown['derivativeCutoff'] == '27.7'
    assert shown['rollTau'] == '0.0312'
    assert shown['pitchTau'] == '0.0312'
    assert shown['wn'] == '10.0'
    assert shown['lblDamp'] == '1.1'
    assert shown['lblNoise'] == '1 %'


def test_render_report():
    """Test the text report lists both axes and the shared values"""
    report = render_report(sample_result())

    assert 'Roll' in report
    assert 'Pitch' in report
    assert '27.7 Hz' in report
    assert '10.0 Hz' in report
    assert 'Attitude Kp:        7.3' in report
