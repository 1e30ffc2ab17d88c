"""
Failure Detector Module
=======================

Classifies inconsistencies in one cycle's readings.

Failure taxonomy:
    Transmission  - missing or malformed readings         → EMERGENCY_STOP
    Level sensor  - level reading failed or out of range  → RESCUE (EMERGENCY_STOP at start-up)
    Steam sensor  - steam reading failed, out of range or
                    zero while pumping                    → DEGRADED
    Pump          - pump 1 commanded open, found closed   → DEGRADED
    Pump control  - pump state disagrees with its control → DEGRADED
    Limit breach  - estimated level reaches M1 or M2      → EMERGENCY_STOP

The detector only reports. Mode changes and notifications are
applied by the controller.
"""

from dataclasses import dataclass
from enum import IntEnum, auto
from typing import List, Optional
import logging

import numpy as np

from ..messaging.mailbox import Message, MessageKind
from .config import PlantConfiguration
from .estimator import LevelBounds
from .readings import CycleInputs, Reading
from .state import ControllerMode

logger = logging.getLogger(__name__)

# Level reading that can't be genuine with pump 1 closed during start-up
LEVEL_SATURATION = 100.0


class FailureKind(IntEnum):
    """Failure categories."""
    TRANSMISSION = auto()
    LEVEL_SENSOR = auto()
    STEAM_SENSOR = auto()       # Reading failed or above maximal steam rate
    STEAM_STUCK = auto()        # Reading zero while pump 2 is commanded open
    PUMP = auto()
    PUMP_CONTROL = auto()
    LIMIT_BREACH = auto()


_DETECTION_KINDS = {
    FailureKind.LEVEL_SENSOR: MessageKind.LEVEL_FAILURE_DETECTION,
    FailureKind.STEAM_SENSOR: MessageKind.STEAM_FAILURE_DETECTION,
    FailureKind.STEAM_STUCK: MessageKind.STEAM_FAILURE_DETECTION,
    FailureKind.PUMP: MessageKind.PUMP_FAILURE_DETECTION,
    FailureKind.PUMP_CONTROL: MessageKind.PUMP_CONTROL_FAILURE_DETECTION,
}


@dataclass(frozen=True)
class Failure:
    """A detected failure and the mode it forces."""
    kind: FailureKind
    mode: ControllerMode
    reason: str
    pump: Optional[int] = None

    @property
    def notification(self) -> Optional[Message]:
        """Detection message for the physical units, if any."""
        kind = _DETECTION_KINDS.get(self.kind)
        if kind is None:
            return None
        return Message(kind, index=self.pump)


class FailureDetector:
    """Failure checks against one plant configuration."""

    def __init__(self, config: PlantConfiguration):
        self.config = config

    def steam_in_range(self, steam: Reading) -> bool:
        """True if the steam reading is valid and within [0, maximal rate]."""
        return (steam.valid and steam.value >= 0.0
                and not steam.above(self.config.maximal_steam_rate))

    def check_transmission(self, inputs: CycleInputs) -> Optional[Failure]:
        """
        Check that every expected reading arrived exactly once.

        Returns:
            Failure forcing EMERGENCY_STOP, or None
        """
        n = self.config.number_of_pumps
        reason = None
        if inputs.level is None:
            reason = "level reading missing"
        elif inputs.steam is None:
            reason = "steam reading missing"
        elif inputs.pump_state_count != n:
            reason = f"{inputs.pump_state_count} pump state readings for {n} pumps"
        elif inputs.pump_control_state_count != n:
            reason = f"{inputs.pump_control_state_count} pump control readings for {n} pumps"
        elif not inputs.pump_indices_valid:
            reason = "pump reading with bad or repeated index"
        if reason is None:
            return None
        return Failure(FailureKind.TRANSMISSION, ControllerMode.EMERGENCY_STOP,
                       f"Transmission failure: {reason}")

    def check_initialisation(self, inputs: CycleInputs) -> List[Failure]:
        """Checks run every cycle while waiting for the physical units."""
        config = self.config
        level = inputs.level
        failures = []

        if not level.valid or level.above(config.capacity):
            failures.append(Failure(
                FailureKind.LEVEL_SENSOR, ControllerMode.EMERGENCY_STOP,
                f"Level reading {level} outside [0, {config.capacity:g}]"))

        if config.number_of_pumps > 0:
            sensed = bool(inputs.pump_states[0])
            controlled = bool(inputs.pump_control_states[0])
            if sensed and controlled and level.equals(0.0):
                failures.append(Failure(
                    FailureKind.LEVEL_SENSOR, ControllerMode.EMERGENCY_STOP,
                    "Level reads 0 while pump 1 is filling"))
            if not sensed and not controlled and level.equals(LEVEL_SATURATION):
                failures.append(Failure(
                    FailureKind.LEVEL_SENSOR, ControllerMode.EMERGENCY_STOP,
                    f"Level reads {LEVEL_SATURATION:g} with pump 1 closed"))

        failures += self._pump_control_failures(inputs)

        if not self.steam_in_range(inputs.steam):
            failures.append(self._steam_range_failure(inputs.steam))

        return failures

    def check_runtime(self, inputs: CycleInputs, commanded: np.ndarray,
                      pump_is_open: bool, degraded_steam: bool) -> List[Failure]:
        """
        Checks run while operating (NORMAL mode).

        Args:
            inputs: This cycle's readings
            commanded: Pump commands in effect when the readings were taken
            pump_is_open: Pump 1 was opened by the lower-mid band rule
            degraded_steam: A steam failure was already detected
        """
        failures = []

        if (len(commanded) > 0 and commanded[0] and not inputs.pump_states[0]
                and not pump_is_open and not degraded_steam):
            failures.append(Failure(
                FailureKind.PUMP, ControllerMode.DEGRADED,
                "Pump 1 commanded open but reads closed", pump=0))

        failures += self._pump_control_failures(inputs)

        steam = inputs.steam
        if not self.steam_in_range(steam):
            failures.append(self._steam_range_failure(steam))
        if len(commanded) > 1 and commanded[1] and steam.equals(0.0):
            failures.append(Failure(
                FailureKind.STEAM_STUCK, ControllerMode.DEGRADED,
                "Steam reads 0 while pump 2 is open"))

        level_failure = self.check_level_sensor(inputs)
        if level_failure:
            failures.append(level_failure)

        return failures

    def level_trusted(self, level: Reading) -> bool:
        """True if the level reading is valid and within [0, M2]."""
        return (level.valid and level.value >= 0.0
                and not level.above(self.config.maximal_limit_level))

    def check_level_sensor(self, inputs: CycleInputs) -> Optional[Failure]:
        """Level reading failed, negative or above M2: the sensor is suspect."""
        level = inputs.level
        if self.level_trusted(level):
            return None
        return Failure(FailureKind.LEVEL_SENSOR, ControllerMode.RESCUE,
                       f"Level reading {level} failed, negative or above "
                       f"{self.config.maximal_limit_level:g}")

    def check_limits(self, bounds: LevelBounds) -> Optional[Failure]:
        """Estimated level reaching a limit level."""
        if not bounds.breaches_limits(self.config):
            return None
        return Failure(FailureKind.LIMIT_BREACH, ControllerMode.EMERGENCY_STOP,
                       f"Estimated level {bounds} reaches limits "
                       f"[{self.config.minimal_limit_level:g}, "
                       f"{self.config.maximal_limit_level:g}]")

    def _pump_control_failures(self, inputs: CycleInputs) -> List[Failure]:
        return [
            Failure(FailureKind.PUMP_CONTROL, ControllerMode.DEGRADED,
                    f"Pump {i + 1} state disagrees with its controller", pump=i)
            for i in inputs.pump_mismatches
        ]

    def _steam_range_failure(self, steam: Reading) -> Failure:
        return Failure(FailureKind.STEAM_SENSOR, ControllerMode.DEGRADED,
                       f"Steam reading {steam} failed or outside [0, "
                       f"{self.config.maximal_steam_rate:g}]")
