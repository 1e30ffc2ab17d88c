"""
Control System Modules
======================

Decision core of the steam boiler water level controller.

Components:
    - SteamBoilerController: per-cycle mode state machine
    - FailureDetector: transmission, sensor and pump failure checks
    - PumpPolicy: band-based pump activation
    - estimate_bounds/project_bounds: water level estimation
    - PlantConfiguration: boiler characteristics
"""

from .config import PlantConfiguration

from .controller import SteamBoilerController

from .estimator import (
    LevelBounds,
    estimate_bounds,
    project_bounds,
)

from .failure_detector import (
    Failure,
    FailureDetector,
    FailureKind,
)

from .pump_policy import (
    PumpBands,
    PumpPolicy,
)

from .readings import (
    CycleInputs,
    Reading,
)

from .state import (
    ControllerMode,
    ControllerState,
)

__all__ = [
    'PlantConfiguration',
    'SteamBoilerController',
    'LevelBounds',
    'estimate_bounds',
    'project_bounds',
    'Failure',
    'FailureDetector',
    'FailureKind',
    'PumpBands',
    'PumpPolicy',
    'CycleInputs',
    'Reading',
    'ControllerMode',
    'ControllerState',
]
