"""
Mailbox Module
==============

Typed signals exchanged between the controller and the physical units.

Each cycle the physical units fill one mailbox with readings and events,
the controller reads it and appends its commands to a second mailbox.

Message kinds and their parameters:
    Physical units → controller:
        LEVEL(v), STEAM(v)                      - sensor readings
        PUMP_STATE(n,b)                         - pump n physically open
        PUMP_CONTROL_STATE(n,b)                 - pump n's controller reports open
        STEAM_BOILER_WAITING, PHYSICAL_UNITS_READY
        *_FAILURE_ACKNOWLEDGEMENT               - operator acknowledged a failure

    Controller → physical units:
        MODE(m), OPEN_PUMP(n), CLOSE_PUMP(n), VALVE, PROGRAM_READY
        *_FAILURE_DETECTION, *_REPAIRED
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional
import logging

logger = logging.getLogger(__name__)


class Mode(Enum):
    """Operating mode as broadcast to the physical units."""
    INITIALISATION = "INITIALISATION"
    NORMAL = "NORMAL"
    DEGRADED = "DEGRADED"
    RESCUE = "RESCUE"
    EMERGENCY_STOP = "EMERGENCY_STOP"


class MessageKind(Enum):
    """
    Message kinds, valued by their parameter signature.

    Signature letters: v = float value, n = pump index,
    b = boolean flag, m = broadcast mode.
    """
    # Readings and events from the physical units
    LEVEL = ("LEVEL", "v")
    STEAM = ("STEAM", "v")
    PUMP_STATE = ("PUMP_STATE", "nb")
    PUMP_CONTROL_STATE = ("PUMP_CONTROL_STATE", "nb")
    STEAM_BOILER_WAITING = ("STEAM_BOILER_WAITING", "")
    PHYSICAL_UNITS_READY = ("PHYSICAL_UNITS_READY", "")
    LEVEL_FAILURE_ACKNOWLEDGEMENT = ("LEVEL_FAILURE_ACKNOWLEDGEMENT", "")
    STEAM_OUTCOME_FAILURE_ACKNOWLEDGEMENT = ("STEAM_OUTCOME_FAILURE_ACKNOWLEDGEMENT", "")
    PUMP_FAILURE_ACKNOWLEDGEMENT = ("PUMP_FAILURE_ACKNOWLEDGEMENT", "n")
    PUMP_CONTROL_FAILURE_ACKNOWLEDGEMENT = ("PUMP_CONTROL_FAILURE_ACKNOWLEDGEMENT", "n")

    # Commands and notifications from the controller
    MODE = ("MODE", "m")
    PROGRAM_READY = ("PROGRAM_READY", "")
    VALVE = ("VALVE", "")
    OPEN_PUMP = ("OPEN_PUMP", "n")
    CLOSE_PUMP = ("CLOSE_PUMP", "n")
    LEVEL_FAILURE_DETECTION = ("LEVEL_FAILURE_DETECTION", "")
    STEAM_FAILURE_DETECTION = ("STEAM_FAILURE_DETECTION", "")
    PUMP_FAILURE_DETECTION = ("PUMP_FAILURE_DETECTION", "n")
    PUMP_CONTROL_FAILURE_DETECTION = ("PUMP_CONTROL_FAILURE_DETECTION", "n")
    LEVEL_REPAIRED = ("LEVEL_REPAIRED", "")
    STEAM_REPAIRED = ("STEAM_REPAIRED", "")
    PUMP_REPAIRED = ("PUMP_REPAIRED", "n")
    PUMP_CONTROL_REPAIRED = ("PUMP_CONTROL_REPAIRED", "n")

    @property
    def label(self) -> str:
        return self.value[0]

    @property
    def signature(self) -> str:
        return self.value[1]

    @classmethod
    def from_label(cls, label: str) -> 'MessageKind':
        for kind in cls:
            if kind.label == label:
                return kind
        raise KeyError(label)


@dataclass(frozen=True)
class Message:
    """One typed signal. Unused parameters stay None."""
    kind: MessageKind
    index: Optional[int] = None
    value: Optional[float] = None
    flag: Optional[bool] = None
    mode: Optional[Mode] = None

    def __post_init__(self):
        sig = self.kind.signature
        expected = {
            'index': 'n' in sig,
            'value': 'v' in sig,
            'flag': 'b' in sig,
            'mode': 'm' in sig,
        }
        for name, required in expected.items():
            present = getattr(self, name) is not None
            if present != required:
                state = "requires" if required else "does not take"
                raise ValueError(f"{self.kind.label} {state} a '{name}' parameter")

    def describe(self) -> str:
        """Human readable form, e.g. PUMP_STATE(0, True)."""
        params = []
        for letter in self.kind.signature:
            if letter == 'n':
                params.append(str(self.index))
            elif letter == 'v':
                params.append(f"{self.value:g}")
            elif letter == 'b':
                params.append(str(self.flag))
            elif letter == 'm':
                params.append(self.mode.value)
        if not params:
            return self.kind.label
        return f"{self.kind.label}({', '.join(params)})"


# Constructors for the common messages

def level(value: float) -> Message:
    return Message(MessageKind.LEVEL, value=float(value))


def steam(value: float) -> Message:
    return Message(MessageKind.STEAM, value=float(value))


def pump_state(index: int, is_open: bool) -> Message:
    return Message(MessageKind.PUMP_STATE, index=index, flag=bool(is_open))


def pump_control_state(index: int, is_open: bool) -> Message:
    return Message(MessageKind.PUMP_CONTROL_STATE, index=index, flag=bool(is_open))


def mode(value: Mode) -> Message:
    return Message(MessageKind.MODE, mode=value)


def signal(kind: MessageKind, index: Optional[int] = None) -> Message:
    """Parameterless signal, or index-only signal when `index` is given."""
    return Message(kind, index=index)


class Mailbox:
    """
    Ordered collection of messages for one cycle.

    The incoming mailbox is only read by the controller, the outgoing
    one only appended to.
    """

    def __init__(self, messages: Optional[List[Message]] = None):
        self._messages: List[Message] = list(messages or [])

    def send(self, message: Message):
        """Append a message. No deduplication."""
        self._messages.append(message)

    def read(self, i: int) -> Message:
        return self._messages[i]

    def extract_unique(self, kind: MessageKind) -> Optional[Message]:
        """
        Find the only message of a given kind.

        Returns:
            The match, or None if there is no match or more than one
        """
        match = None
        for message in self._messages:
            if message.kind == kind:
                if match is not None:
                    logger.debug(f"Ambiguous {kind.label}: more than one message")
                    return None
                match = message
        return match

    def extract_all(self, kind: MessageKind) -> List[Message]:
        """All messages of a given kind, in arrival order."""
        return [m for m in self._messages if m.kind == kind]

    def contains(self, kind: MessageKind) -> bool:
        """True if exactly one message of this kind is present."""
        return self.extract_unique(kind) is not None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)

    def __repr__(self) -> str:
        return f"Mailbox([{', '.join(m.describe() for m in self._messages)}])"
