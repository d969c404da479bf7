"""
System Identification Source

Holds the latest identified plant and notifies listeners whenever a new
estimate arrives. The estimator itself runs elsewhere (on the vehicle);
this module only receives its results.
"""

import logging
import threading
from typing import Callable, List, Optional

from .gain_synthesizer import IdentifiedPlant
from .utils import load_json

logger = logging.getLogger(__name__)

PlantCallback = Callable[[IdentifiedPlant], None]

# Index of each axis in the Beta array of an identification snapshot
BETA_ROLL = 0
BETA_PITCH = 1
BETA_YAW = 2


class IdentificationUnavailable(RuntimeError):
    """No identification data has been received yet"""


class SystemIdentSource:
    """
    Latest system identification results with change notification
    """

    def __init__(self, plant: Optional[IdentifiedPlant] = None):
        self._plant = plant
        self._callbacks: List[PlantCallback] = []
        self._lock = threading.Lock()

    def get_latest(self) -> IdentifiedPlant:
        """
        Get the most recent identified plant

        Raises:
            IdentificationUnavailable: nothing has been received yet
        """
        with self._lock:
            plant = self._plant
        if plant is None:
            raise IdentificationUnavailable("No system identification data received yet")
        return plant

    @property
    def has_data(self) -> bool:
        with self._lock:
            return self._plant is not None

    def connect(self, callback: PlantCallback):
        """Call callback(plant) after every update"""
        with self._lock:
            if callback not in self._callbacks:
                self._callbacks.append(callback)

    def disconnect(self, callback: PlantCallback):
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def update(self, plant: IdentifiedPlant):
        """
        Store a new identification result and notify listeners

        Args:
            plant: Newly identified plant (log domain)
        """
        with self._lock:
            self._plant = plant
            callbacks = list(self._callbacks)

        logger.debug(f"Identification updated: tau={plant.tau:.4f}, "
                     f"beta_roll={plant.beta_roll:.4f}, beta_pitch={plant.beta_pitch:.4f}")

        for callback in callbacks:
            callback(plant)

    def load_json(self, path: str) -> IdentifiedPlant:
        """
        Load an identification snapshot and publish it

        The snapshot holds the log-domain values as reported by the vehicle:
        {"Tau": -3.5, "Beta": [10.2, 10.4, 8.1]}

        Args:
            path: JSON file path

        Returns:
            The published plant
        """
        plant = plant_from_dict(load_json(path))
        logger.info(f"Loaded identification from {path}")
        self.update(plant)
        return plant


def plant_from_dict(data: dict) -> IdentifiedPlant:
    """
    Convert a SystemIdent snapshot dictionary into an IdentifiedPlant

    Raises:
        ValueError: not an object, missing Tau, fewer than two Beta values,
            or non-numeric entries
    """
    if not isinstance(data, dict):
        raise ValueError(f"Identification snapshot must be an object, got {type(data).__name__}")
    if 'Tau' not in data or 'Beta' not in data:
        raise ValueError("Identification snapshot needs 'Tau' and 'Beta' fields")

    beta = data['Beta']
    if not isinstance(beta, (list, tuple)) or len(beta) < 2:
        raise ValueError(f"Identification snapshot needs roll and pitch Beta, got {beta!r}")

    try:
        return IdentifiedPlant(
            tau=float(data['Tau']),
            beta_roll=float(beta[BETA_ROLL]),
            beta_pitch=float(beta[BETA_PITCH]),
            beta_yaw=float(beta[BETA_YAW]) if len(beta) > BETA_YAW else 0.0,
        )
    except TypeError as e:
        raise ValueError(f"Identification snapshot values must be numbers: {e}") from e


def plant_to_dict(plant: IdentifiedPlant) -> dict:
    """Inverse of plant_from_dict"""
    return {
        'Tau': plant.tau,
        'Beta': [plant.beta_roll, plant.beta_pitch, plant.beta_yaw],
    }
