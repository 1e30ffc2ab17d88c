"""
Cycle Readings
==============

Snapshot of one incoming mailbox, decoded into typed readings.

Sensor values carry an explicit validity flag instead of the -1
sentinel the physical units use to report a failed sensor.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from ..messaging.mailbox import Mailbox, Message, MessageKind

# Value sent by a sensor that knows it has failed
FAILED_SENTINEL = -1.0


@dataclass(frozen=True)
class Reading:
    """A sensor reading. `value` is meaningless when not valid."""
    value: float = 0.0
    valid: bool = False

    @classmethod
    def from_raw(cls, raw: float) -> 'Reading':
        return cls(value=float(raw), valid=float(raw) != FAILED_SENTINEL)

    @classmethod
    def failed(cls) -> 'Reading':
        return cls(value=FAILED_SENTINEL, valid=False)

    def above(self, limit: float) -> bool:
        """True if valid and strictly above `limit`."""
        return self.valid and self.value > limit

    def equals(self, target: float) -> bool:
        return self.valid and self.value == target

    def __str__(self) -> str:
        return f"{self.value:g}" if self.valid else "FAILED"


def _collect_pump_flags(messages: List[Message], count: int) -> Tuple[np.ndarray, bool]:
    """
    Place pump readings by their index.

    Returns:
        (flags, well_formed): flags has one entry per configured pump;
        well_formed is False if an index is out of range or repeated
    """
    flags = np.zeros(count, dtype=bool)
    seen = np.zeros(count, dtype=bool)
    for message in messages:
        i = message.index
        if i < 0 or i >= count or seen[i]:
            return flags, False
        seen[i] = True
        flags[i] = message.flag
    return flags, True


@dataclass
class CycleInputs:
    """Everything the controller reads from one incoming mailbox."""
    level: Optional[Reading] = None
    steam: Optional[Reading] = None

    # Pump n physically open / pump n's controller reports it open
    pump_states: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=bool))
    pump_control_states: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=bool))
    pump_state_count: int = 0
    pump_control_state_count: int = 0
    pump_indices_valid: bool = True

    # Discrete events
    waiting: bool = False
    units_ready: bool = False
    level_failure_ack: bool = False
    steam_failure_ack: bool = False
    pump_failure_acks: List[int] = field(default_factory=list)
    pump_control_failure_acks: List[int] = field(default_factory=list)

    @classmethod
    def from_mailbox(cls, incoming: Mailbox, number_of_pumps: int) -> 'CycleInputs':
        """Decode an incoming mailbox for a boiler with `number_of_pumps` pumps."""
        level_msg = incoming.extract_unique(MessageKind.LEVEL)
        steam_msg = incoming.extract_unique(MessageKind.STEAM)
        state_msgs = incoming.extract_all(MessageKind.PUMP_STATE)
        control_msgs = incoming.extract_all(MessageKind.PUMP_CONTROL_STATE)

        states, states_ok = _collect_pump_flags(state_msgs, number_of_pumps)
        controls, controls_ok = _collect_pump_flags(control_msgs, number_of_pumps)

        return cls(
            level=Reading.from_raw(level_msg.value) if level_msg else None,
            steam=Reading.from_raw(steam_msg.value) if steam_msg else None,
            pump_states=states,
            pump_control_states=controls,
            pump_state_count=len(state_msgs),
            pump_control_state_count=len(control_msgs),
            pump_indices_valid=states_ok and controls_ok,
            waiting=incoming.contains(MessageKind.STEAM_BOILER_WAITING),
            units_ready=incoming.contains(MessageKind.PHYSICAL_UNITS_READY),
            level_failure_ack=incoming.contains(MessageKind.LEVEL_FAILURE_ACKNOWLEDGEMENT),
            steam_failure_ack=incoming.contains(MessageKind.STEAM_OUTCOME_FAILURE_ACKNOWLEDGEMENT),
            pump_failure_acks=[
                m.index for m in incoming.extract_all(MessageKind.PUMP_FAILURE_ACKNOWLEDGEMENT)
            ],
            pump_control_failure_acks=[
                m.index for m in incoming.extract_all(MessageKind.PUMP_CONTROL_FAILURE_ACKNOWLEDGEMENT)
            ],
        )

    @property
    def pump_mismatches(self) -> List[int]:
        """Indices where the physical state disagrees with the control state."""
        return [int(i) for i in np.flatnonzero(self.pump_states != self.pump_control_states)]
