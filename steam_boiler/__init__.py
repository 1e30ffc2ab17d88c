"""
Steam Boiler Controller
=======================

Cyclic water level controller for a steam boiler: failure detection,
mode management and pump control from one mailbox of readings per
clock cycle.
"""

from .control import PlantConfiguration, SteamBoilerController, ControllerMode
from .messaging import Mailbox, Message, MessageKind, Mode

__all__ = [
    'PlantConfiguration',
    'SteamBoilerController',
    'ControllerMode',
    'Mailbox',
    'Message',
    'MessageKind',
    'Mode',
]
