"""
Utility functions for the autotune system
"""

import json
import os
import numpy as np


def _convert_types(obj):
    """Convert numpy types to native Python types"""
    if isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, dict):
        return {key: _convert_types(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_convert_types(item) for item in obj]
    return obj


def save_json(filename, data):
    """Save data to JSON file"""
    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)

    data = _convert_types(data)

    with open(filename, 'w') as f:
        json.dump(data, f, indent=2)


def load_json(filename):
    """Load data from JSON file"""
    with open(filename, 'r') as f:
        return json.load(f)


def calculate_rise_time(time_array, response_array, target_value, threshold=0.9):
    """Calculate rise time (time to reach 90% of target)"""
    target_90 = target_value * threshold
    idx = np.where(response_array >= target_90)[0]
    if len(idx) > 0:
        return float(time_array[idx[0]])
    return np.inf


def calculate_settling_time(time_array, response_array, target_value, threshold=0.02):
    """Calculate settling time (time to stay within 2% of target)"""
    upper_bound = target_value * (1 + threshold)
    lower_bound = target_value * (1 - threshold)

    in_band = (response_array >= lower_bound) & (response_array <= upper_bound)

    if not in_band[-1]:
        return np.inf

    # Find last time it left the band
    outside = np.where(~in_band)[0]
    if len(outside) == 0:
        return float(time_array[0])
    return float(time_array[outside[-1] + 1])


def calculate_overshoot(response_array, target_value):
    """Calculate overshoot percentage"""
    max_value = np.max(response_array)
    overshoot = ((max_value - target_value) / target_value) * 100
    return max(0.0, float(overshoot))
