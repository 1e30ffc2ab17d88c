"""
Scenarios Module
================

Scripted sequences of incoming mailboxes for replaying the controller
without a plant simulation.

Each scenario pairs a plant configuration with one incoming mailbox
per cycle. Scenarios can be built in or loaded from JSON traces:

    {
        "name": "my_trace",
        "description": "...",
        "configuration": "default" | {...},
        "cycles": [
            ["$STEAM_BOILER_WAITING*1A", "$LEVEL,500*4F", ...],
            ...
        ]
    }
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging

from .control.config import PlantConfiguration
from .messaging import mailbox as mb
from .messaging.mailbox import Mailbox, MessageKind
from .messaging.protocol import ProtocolError, decode_message, encode_mailbox

logger = logging.getLogger(__name__)


class ScenarioType(Enum):
    """Built-in scenarios."""
    STARTUP = "startup"
    STEAM_FAILURE = "steam_failure"
    PUMP_CONTROL_FAILURE = "pump_control_failure"
    LEVEL_SENSOR_LOSS = "level_sensor_loss"
    TRANSMISSION_LOSS = "transmission_loss"


@dataclass
class Scenario:
    """A configuration and the incoming mailbox of each cycle."""
    name: str
    description: str
    configuration: PlantConfiguration
    cycles: List[Mailbox] = field(default_factory=list)

    # Sentences dropped while loading
    parse_errors: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Scenario':
        """
        Build a scenario from a decoded JSON trace.

        Undecodable sentences are dropped and counted, the cycle keeps
        its other messages.
        """
        raw_config = data.get('configuration', 'default')
        if isinstance(raw_config, str):
            configuration = PlantConfiguration.preset(raw_config)
        else:
            configuration = PlantConfiguration.from_dict(raw_config)

        cycles = []
        parse_errors = 0
        for number, sentences in enumerate(data['cycles'], start=1):
            incoming = Mailbox()
            for sentence in sentences:
                try:
                    incoming.send(decode_message(sentence))
                except ProtocolError as e:
                    parse_errors += 1
                    logger.warning(f"Cycle {number}: dropped sentence {sentence!r}: {e}")
            cycles.append(incoming)

        return cls(
            name=data.get('name', 'trace'),
            description=data.get('description', ''),
            configuration=configuration,
            cycles=cycles,
            parse_errors=parse_errors,
        )

    @classmethod
    def from_json(cls, filepath: str) -> 'Scenario':
        """Load a scenario trace from a JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        scenario = cls.from_dict(data)
        logger.info(f"Loaded scenario '{scenario.name}' from {filepath} "
                    f"({len(scenario.cycles)} cycles, {scenario.parse_errors} parse errors)")
        return scenario

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready form, configuration written out in full."""
        config = self.configuration
        return {
            'name': self.name,
            'description': self.description,
            'configuration': {
                'capacity': config.capacity,
                'minimal_limit_level': config.minimal_limit_level,
                'maximal_limit_level': config.maximal_limit_level,
                'minimal_normal_level': config.minimal_normal_level,
                'maximal_normal_level': config.maximal_normal_level,
                'pump_capacities': list(config.pump_capacities),
                'maximal_steam_rate': config.maximal_steam_rate,
            },
            'cycles': [encode_mailbox(cycle) for cycle in self.cycles],
        }


def plant_readings(level: float, steam: float, pumps: int,
                   open_pumps: Iterable[int] = (),
                   control_open: Optional[Sequence[int]] = None,
                   events: Iterable[mb.Message] = ()) -> Mailbox:
    """
    Incoming mailbox for one cycle.

    Args:
        level: Level reading (-1 for a failed sensor)
        steam: Steam reading (-1 for a failed sensor)
        pumps: Number of pumps
        open_pumps: Pumps physically open
        control_open: Pumps their controllers report open (default: same as open_pumps)
        events: Extra signals (waiting, acknowledgements...)
    """
    open_set = set(open_pumps)
    control_set = open_set if control_open is None else set(control_open)
    incoming = Mailbox()
    incoming.send(mb.level(level))
    incoming.send(mb.steam(steam))
    for i in range(pumps):
        incoming.send(mb.pump_state(i, i in open_set))
    for i in range(pumps):
        incoming.send(mb.pump_control_state(i, i in control_set))
    for event in events:
        incoming.send(event)
    return incoming


def _startup_cycles(config: PlantConfiguration) -> List[Mailbox]:
    n = config.number_of_pumps
    return [
        plant_readings(500, 0, n, events=[mb.signal(MessageKind.STEAM_BOILER_WAITING)]),
        plant_readings(500, 0, n, events=[mb.signal(MessageKind.PHYSICAL_UNITS_READY)]),
    ]


def _startup() -> Scenario:
    config = PlantConfiguration.default()
    n = config.number_of_pumps
    return Scenario(
        name=ScenarioType.STARTUP.value,
        description="Start-up inside the normal band, then steady operation",
        configuration=config,
        cycles=_startup_cycles(config) + [
            plant_readings(500, 5, n),
            plant_readings(505, 5, n, open_pumps=[0]),
            plant_readings(510, 5, n, open_pumps=[0]),
        ],
    )


def _steam_failure() -> Scenario:
    config = PlantConfiguration.default()
    n = config.number_of_pumps
    ack = mb.signal(MessageKind.STEAM_OUTCOME_FAILURE_ACKNOWLEDGEMENT)
    return Scenario(
        name=ScenarioType.STEAM_FAILURE.value,
        description="Steam sensor fails, is acknowledged and repaired",
        configuration=config,
        cycles=_startup_cycles(config) + [
            plant_readings(500, -1, n),
            plant_readings(505, 5, n, open_pumps=[0], events=[ack]),
            plant_readings(510, 5, n, open_pumps=[0]),
        ],
    )


def _pump_control_failure() -> Scenario:
    config = PlantConfiguration.default()
    n = config.number_of_pumps
    ack = mb.signal(MessageKind.PUMP_CONTROL_FAILURE_ACKNOWLEDGEMENT, index=1)
    return Scenario(
        name=ScenarioType.PUMP_CONTROL_FAILURE.value,
        description="Pump 2 disobeys its controller, then is repaired",
        configuration=config,
        cycles=_startup_cycles(config) + [
            plant_readings(500, 5, n, open_pumps=[1], control_open=[]),
            plant_readings(500, 5, n, open_pumps=[0], events=[ack]),
        ],
    )


def _level_sensor_loss() -> Scenario:
    config = PlantConfiguration.default()
    n = config.number_of_pumps
    ack = mb.signal(MessageKind.LEVEL_FAILURE_ACKNOWLEDGEMENT)
    return Scenario(
        name=ScenarioType.LEVEL_SENSOR_LOSS.value,
        description="Level sensor fails, level is estimated until repaired",
        configuration=config,
        cycles=_startup_cycles(config) + [
            plant_readings(500, 5, n),
            plant_readings(-1, 5, n, open_pumps=[0]),
            plant_readings(-1, 5, n, open_pumps=[0]),
            plant_readings(520, 5, n, open_pumps=[0], events=[ack]),
        ],
    )


def _transmission_loss() -> Scenario:
    config = PlantConfiguration.default()
    n = config.number_of_pumps
    no_level = plant_readings(500, 5, n)
    no_level = Mailbox([m for m in no_level if m.kind != MessageKind.LEVEL])
    return Scenario(
        name=ScenarioType.TRANSMISSION_LOSS.value,
        description="Level reading lost in transmission, emergency stop",
        configuration=config,
        cycles=_startup_cycles(config) + [
            no_level,
            plant_readings(500, 5, n),
        ],
    )


_BUILDERS = {
    ScenarioType.STARTUP: _startup,
    ScenarioType.STEAM_FAILURE: _steam_failure,
    ScenarioType.PUMP_CONTROL_FAILURE: _pump_control_failure,
    ScenarioType.LEVEL_SENSOR_LOSS: _level_sensor_loss,
    ScenarioType.TRANSMISSION_LOSS: _transmission_loss,
}


def get_scenario(scenario_type: ScenarioType) -> Scenario:
    """Get a built-in scenario by type."""
    return _BUILDERS[scenario_type]()
