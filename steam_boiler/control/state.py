"""
Controller State
================

Operating modes and the state the controller keeps between cycles.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

import numpy as np

from ..messaging.mailbox import Mode
from .estimator import LevelBounds


class ControllerMode(Enum):
    """Controller operating modes."""
    WAITING = auto()          # Waiting for the physical units, checking initial level
    READY = auto()            # Level satisfactory, waiting for units ready (unused)
    NORMAL = auto()           # All units working, keep level in the normal band
    DEGRADED = auto()         # Some unit failed, level sensor still trusted
    RESCUE = auto()           # Level sensor failed, level estimated
    EMERGENCY_STOP = auto()   # Vital failure or limit risk. Terminal.

    @property
    def broadcast(self) -> Mode:
        """Mode value sent to the physical units."""
        return _BROADCAST[self]

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self]

    def can_enter(self, target: 'ControllerMode') -> bool:
        """True if `target` is this mode or a documented successor."""
        if self.is_terminal:
            return target == self
        return target == self or target in TRANSITIONS[self]


_BROADCAST = {
    ControllerMode.WAITING: Mode.INITIALISATION,
    ControllerMode.READY: Mode.INITIALISATION,
    ControllerMode.NORMAL: Mode.NORMAL,
    ControllerMode.DEGRADED: Mode.DEGRADED,
    ControllerMode.RESCUE: Mode.RESCUE,
    ControllerMode.EMERGENCY_STOP: Mode.EMERGENCY_STOP,
}

TRANSITIONS = {
    ControllerMode.WAITING: {
        ControllerMode.NORMAL, ControllerMode.DEGRADED, ControllerMode.EMERGENCY_STOP,
    },
    ControllerMode.READY: {
        ControllerMode.NORMAL, ControllerMode.EMERGENCY_STOP,
    },
    ControllerMode.NORMAL: {
        ControllerMode.DEGRADED, ControllerMode.RESCUE, ControllerMode.EMERGENCY_STOP,
    },
    ControllerMode.DEGRADED: {
        ControllerMode.NORMAL, ControllerMode.RESCUE, ControllerMode.EMERGENCY_STOP,
    },
    ControllerMode.RESCUE: {
        ControllerMode.NORMAL, ControllerMode.DEGRADED, ControllerMode.EMERGENCY_STOP,
    },
    ControllerMode.EMERGENCY_STOP: set(),
}


@dataclass
class ControllerState:
    """State persisted across cycles."""
    mode: ControllerMode = ControllerMode.WAITING

    # Pumps the controller has commanded open, one entry per pump
    pump_open: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=bool))

    # Pump 1 opened by the lower-mid band rule rather than the below-N1 rule
    pump_is_open: bool = False

    # Sticky steam failure flags
    degraded_steam: bool = False
    steam_error: bool = False

    # Last level bounds, from a valid reading or a projection
    level_bounds: Optional[LevelBounds] = None

    cycle_count: int = 0

    @classmethod
    def for_pumps(cls, number_of_pumps: int) -> 'ControllerState':
        """Initial state with every pump closed."""
        return cls(pump_open=np.zeros(number_of_pumps, dtype=bool))

    @property
    def open_pump_count(self) -> int:
        return int(np.count_nonzero(self.pump_open))
