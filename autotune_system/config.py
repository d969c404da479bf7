"""
Configuration file for the stabilization autotune system
"""

import logging
import os

# Get project root directory (parent of autotune_system)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# ============================================================================
# TUNING DIALS
# ============================================================================
# Raw integer dial values as entered by the operator, and how they scale
# into the design quantities used by the synthesizer.
TUNING_CONFIG = {
    'damping': {
        'default': 110,        # -> damp = 1.10
        'min': 1,
        'max': 200,
        'scale': 100.0,        # damp = raw / scale
    },
    'noise': {
        'default': 10,         # -> ghf = 0.010
        'min': 0,
        'max': 1000,
        'scale': 1000.0,       # ghf = raw / scale
    },
}

# ============================================================================
# POLE PLACEMENT SYNTHESIS
# ============================================================================
SYNTHESIS_CONFIG = {
    'slow_pole_divisor': 20.0,   # a = (sum of real poles) / divisor
    'outer_damping': 1.3,        # attitude loop damping target
    'axes': ('roll', 'pitch'),
}

# ============================================================================
# SETTINGS OBJECTS
# ============================================================================
STABILIZATION_SETTINGS = 'StabilizationSettings'
MODULE_SETTINGS = 'ModuleSettings'
AUTOTUNE_MODULE = 'Autotune'

ADMIN_STATE_ENABLED = 'Enabled'
ADMIN_STATE_DISABLED = 'Disabled'

# Values used when a store holds no StabilizationSettings yet
DEFAULT_STABILIZATION_SETTINGS = {
    'RollRatePID': [0.0020, 0.0, 0.0, 0.3],     # Kp, Ki, Kd, ILimit
    'PitchRatePID': [0.0020, 0.0, 0.0, 0.3],
    'YawRatePID': [0.0035, 0.0035, 0.0, 0.3],
    'RollPI': [2.0, 0.0, 50.0],                 # Kp, Ki, ILimit
    'PitchPI': [2.0, 0.0, 50.0],
    'YawPI': [2.0, 0.0, 50.0],
    'DerivativeCutoff': 20.0,                   # Hz
}

DEFAULT_MODULE_SETTINGS = {
    'AdminState': {
        AUTOTUNE_MODULE: ADMIN_STATE_DISABLED,
    },
}

# ============================================================================
# STORE CONFIGURATION
# ============================================================================
STORE_CONFIG = {
    'settings_file': os.getenv(
        'AUTOTUNE_SETTINGS_FILE',
        os.path.join(PROJECT_ROOT, 'settings', 'stabilization_settings.json')
    ),
}

# ============================================================================
# ANALYSIS CONFIGURATION
# ============================================================================
ANALYSIS_CONFIG = {
    'step_points': 2000,            # samples in simulated step response
    'step_horizon': 10.0,           # simulate this many slow-pole time constants
    'settling_threshold': 0.02,     # 2% band
    'rise_threshold': 0.9,          # 90% of final value
    'freq_points': 2000,
    'freq_decades': (-2, 4),        # rad/s, log10 range
}

# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================
LOGGING_CONFIG = {
    'log_dir': os.getenv('AUTOTUNE_LOG_DIR', '/tmp/autotune_logs'),
    'log_level': logging.INFO,
    'max_bytes': 5 * 1024 * 1024,   # 5 MB
    'backup_count': 3,
}
