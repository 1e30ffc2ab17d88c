"""
Pump Policy Module
==================

Band-based pump activation steering the level toward the middle of
the normal band [N1, N2].

Bands:
    N1 ── lower_mid ── mid ── upper_mid ── N2

Rules, applied in order (later rules override earlier ones):
    1. max in [upper_mid, N2]  → close pumps 2, 3
    2. max in [mid, upper_mid] → close pump 3
    3. min in [lower_mid, mid] → open pump 1 (lower-mid path)
    4. min in [N1, lower_mid]  → open pumps 2, 3
    5. max ≥ N2                → close pumps 1, 2, 3
    6. min ≤ N1                → open pumps 1, 2, 3

Pumps are numbered from 1 here, indexed from 0 in messages. Only the
first three pumps are driven; others keep their last command.
"""

from dataclasses import dataclass
from typing import List, Sequence
import logging

from ..messaging.mailbox import Mailbox, Message, MessageKind
from .config import PlantConfiguration
from .estimator import LevelBounds
from .state import ControllerState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PumpBands:
    """Thresholds splitting the normal band."""
    minimal_normal: float
    lower_mid: float
    mid: float
    upper_mid: float
    maximal_normal: float

    @classmethod
    def from_config(cls, config: PlantConfiguration) -> 'PumpBands':
        n1 = config.minimal_normal_level
        n2 = config.maximal_normal_level
        mid = (n1 + n2) / 2
        return cls(
            minimal_normal=n1,
            lower_mid=(mid + n1) / 2,
            mid=mid,
            upper_mid=(mid + n2) / 2,
            maximal_normal=n2,
        )


class PumpPolicy:
    """
    Opens and closes pumps from the estimated level bounds.

    Every command is sent, even if the pump is already in the
    requested state.
    """

    def __init__(self, config: PlantConfiguration):
        self.config = config
        self.bands = PumpBands.from_config(config)

    def apply(self, state: ControllerState, bounds: LevelBounds,
              outgoing: Mailbox) -> List[Message]:
        """
        Run the rules for one cycle.

        Args:
            state: Controller state, pump commands updated in place
            bounds: Estimated level bounds for the next cycle
            outgoing: Mailbox receiving OPEN_PUMP/CLOSE_PUMP commands

        Returns:
            Messages sent, in order
        """
        low, high = bounds.minimum, bounds.maximum
        b = self.bands
        sent: List[Message] = []

        if b.upper_mid <= high <= b.maximal_normal:
            sent += self.command(state, outgoing, (2, 1), False)

        if b.mid <= high <= b.upper_mid:
            sent += self.command(state, outgoing, (2,), False)

        # Rules 1 and 2 never open pump 1, so it is always still closed
        # for this cycle when rule 3 is reached.
        if b.lower_mid <= low <= b.mid:
            sent += self.command(state, outgoing, (0,), True)
            state.pump_is_open = True

        if b.minimal_normal <= low <= b.lower_mid:
            sent += self.command(state, outgoing, (2, 1), True)

        if high >= b.maximal_normal:
            sent += self.command(state, outgoing, (0, 1, 2), False)

        if low <= b.minimal_normal:
            sent += self.command(state, outgoing, (0, 1, 2), True)
            state.pump_is_open = False

        logger.debug(f"Pump policy on {bounds}: {[m.describe() for m in sent]}, "
                     f"open={state.pump_open.astype(int).tolist()}")
        return sent

    def command(self, state: ControllerState, outgoing: Mailbox,
                pumps: Sequence[int], open_: bool) -> List[Message]:
        """Send OPEN_PUMP or CLOSE_PUMP for each existing pump in `pumps`."""
        kind = MessageKind.OPEN_PUMP if open_ else MessageKind.CLOSE_PUMP
        sent = []
        for i in pumps:
            if i >= len(state.pump_open):
                continue
            message = Message(kind, index=i)
            outgoing.send(message)
            state.pump_open[i] = open_
            sent.append(message)
        return sent
