"""
Scenario Replay
===============

Drives a controller through a scenario, one cycle per scripted
incoming mailbox, and records what it sent back.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

from .control.controller import SteamBoilerController
from .messaging.mailbox import Mailbox
from .messaging.protocol import encode_mailbox
from .scenarios import Scenario

logger = logging.getLogger(__name__)


@dataclass
class CycleRecord:
    """Messages exchanged in one cycle and the resulting mode."""
    cycle: int
    incoming: List[str] = field(default_factory=list)
    outgoing: List[str] = field(default_factory=list)
    mode: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cycle': self.cycle,
            'incoming': self.incoming,
            'outgoing': self.outgoing,
            'mode': self.mode,
        }


def replay(scenario: Scenario,
           controller: Optional[SteamBoilerController] = None) -> List[CycleRecord]:
    """
    Run every cycle of a scenario.

    Args:
        scenario: Scenario to replay
        controller: Controller to drive (default: new one for the
            scenario's configuration)

    Returns:
        One CycleRecord per cycle
    """
    controller = controller or SteamBoilerController(scenario.configuration)
    records = []

    logger.info(f"Replaying '{scenario.name}': {len(scenario.cycles)} cycles")
    for number, incoming in enumerate(scenario.cycles, start=1):
        outgoing = Mailbox()
        controller.cycle(incoming, outgoing)
        records.append(CycleRecord(
            cycle=number,
            incoming=encode_mailbox(incoming),
            outgoing=encode_mailbox(outgoing),
            mode=controller.status_message(),
        ))
        logger.debug(f"Cycle {number}: {outgoing!r}")

    logger.info(f"Replay finished in {controller.status_message()}")
    return records
