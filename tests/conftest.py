"""
Shared test fixtures for steam boiler controller unit tests.
"""

import pytest

from steam_boiler.control.config import PlantConfiguration
from steam_boiler.control.controller import SteamBoilerController
from steam_boiler.messaging import mailbox as mb
from steam_boiler.messaging.mailbox import Mailbox, MessageKind
from steam_boiler.scenarios import plant_readings


@pytest.fixture
def default_config():
    """Four-pump boiler: limits 100/900, normal band 200/800."""
    return PlantConfiguration.default()


@pytest.fixture
def single_pump_config():
    """One 30 unit/s pump, steam rate up to 5."""
    return PlantConfiguration.single_pump()


@pytest.fixture
def high_steam_config():
    """One-pump boiler with a maximal steam rate of 100."""
    return PlantConfiguration(
        capacity=1000.0,
        minimal_limit_level=100.0,
        maximal_limit_level=900.0,
        minimal_normal_level=200.0,
        maximal_normal_level=800.0,
        pump_capacities=(30.0,),
        maximal_steam_rate=100.0,
    )


@pytest.fixture
def controller(default_config):
    """Controller for the default boiler, still waiting."""
    return SteamBoilerController(default_config)


def run_cycle(controller, incoming):
    """Run one cycle and return the outgoing mailbox."""
    outgoing = Mailbox()
    controller.cycle(incoming, outgoing)
    return outgoing


def start(controller, level=500.0):
    """Drive a waiting controller to NORMAL at a steady level."""
    n = controller.configuration.number_of_pumps
    run_cycle(controller, plant_readings(
        level, 0, n, events=[mb.signal(MessageKind.STEAM_BOILER_WAITING)]))
    run_cycle(controller, plant_readings(
        level, 0, n, events=[mb.signal(MessageKind.PHYSICAL_UNITS_READY)]))
    return controller


def last_mode(outgoing):
    """Mode of the last MODE broadcast in a mailbox."""
    broadcasts = outgoing.extract_all(MessageKind.MODE)
    return broadcasts[-1].mode if broadcasts else None


def kinds(outgoing):
    """Message kinds in a mailbox, in order."""
    return [m.kind for m in outgoing]


def sent(outgoing, kind):
    """Indices of the messages of one kind (None for unindexed kinds)."""
    return [m.index for m in outgoing.extract_all(kind)]


@pytest.fixture
def normal_controller(controller):
    """Default-boiler controller already in NORMAL at level 500."""
    return start(controller)

