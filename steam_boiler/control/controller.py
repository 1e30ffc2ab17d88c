"""
Steam Boiler Controller
=======================

Mode state machine driving the boiler's water level, run once per
clock cycle (every 5 seconds).

Each cycle:
    1. Decode the incoming mailbox, check every reading arrived
       (transmission failure → EMERGENCY_STOP)
    2. Run the handler of the current mode:
        WAITING   - start-up checks, fill/drain to the normal band
        NORMAL    - estimate level, pump policy, failure checks
        DEGRADED  - pump policy, repairs on acknowledgement
        RESCUE    - pump policy on an estimated level until the level
                    sensor is repaired
        EMERGENCY_STOP - broadcast only, no way out
    3. Append commands and notifications to the outgoing mailbox

The last MODE message sent in a cycle always matches the mode the
controller ends the cycle in.
"""

from typing import Callable, Dict, Optional
import logging

import numpy as np

from ..messaging.mailbox import Mailbox, Message, MessageKind
from .config import PlantConfiguration
from .estimator import LevelBounds, estimate_bounds, project_bounds
from .failure_detector import Failure, FailureDetector, FailureKind
from .pump_policy import PumpPolicy
from .readings import CycleInputs
from .state import ControllerMode, ControllerState

logger = logging.getLogger(__name__)

# Failures only ever move the controller to a more severe mode
_SEVERITY = {
    ControllerMode.WAITING: 0,
    ControllerMode.READY: 0,
    ControllerMode.NORMAL: 0,
    ControllerMode.DEGRADED: 1,
    ControllerMode.RESCUE: 2,
    ControllerMode.EMERGENCY_STOP: 3,
}


class SteamBoilerController:
    """
    Water level controller for one boiler.

    Without a configuration the controller does nothing: cycles leave
    the state untouched and send no message.
    """

    def __init__(self, configuration: Optional[PlantConfiguration] = None):
        self.configuration = configuration
        pumps = configuration.number_of_pumps if configuration else 0
        self.state = ControllerState.for_pumps(pumps)

        self._detector = FailureDetector(configuration) if configuration else None
        self._policy = PumpPolicy(configuration) if configuration else None

        # Pump commands in effect when this cycle's readings were taken
        self._commanded = self.state.pump_open.copy()

        self._handlers: Dict[ControllerMode, Callable[[CycleInputs, Mailbox], None]] = {
            ControllerMode.WAITING: self._waiting,
            ControllerMode.READY: self._ready,
            ControllerMode.NORMAL: self._normal,
            ControllerMode.DEGRADED: self._degraded,
            ControllerMode.RESCUE: self._rescue,
            ControllerMode.EMERGENCY_STOP: self._emergency_stop,
        }
        missing = set(ControllerMode) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for modes: {sorted(m.name for m in missing)}")

    # ======================================================
    # Public interface
    # ======================================================
    def cycle(self, incoming: Mailbox, outgoing: Mailbox):
        """
        Process one clock cycle.

        Args:
            incoming: Messages from the physical units (read only)
            outgoing: Mailbox receiving this cycle's commands
        """
        config = self.configuration
        if config is None:
            return

        self.state.cycle_count += 1
        self._commanded = self.state.pump_open.copy()
        inputs = CycleInputs.from_mailbox(incoming, config.number_of_pumps)

        failure = self._detector.check_transmission(inputs)
        if failure:
            logger.warning(failure.reason)
            self._enter(failure.mode, failure.reason)

        # Dispatch on the mode as it is now; after a transmission
        # failure that is EMERGENCY_STOP.
        self._handlers[self.state.mode](inputs, outgoing)

    def status_message(self) -> str:
        """Name of the current mode."""
        return self.state.mode.name

    @property
    def status(self) -> dict:
        """Snapshot of the controller state."""
        state = self.state
        return {
            "mode": state.mode.name,
            "cycle": state.cycle_count,
            "pumps_open": [int(i) for i in np.flatnonzero(state.pump_open)],
            "degraded_steam": state.degraded_steam,
            "steam_error": state.steam_error,
            "level_bounds": (
                (state.level_bounds.minimum, state.level_bounds.maximum)
                if state.level_bounds else None
            ),
        }

    # ======================================================
    # Mode handlers
    # ======================================================
    def _waiting(self, inputs: CycleInputs, outgoing: Mailbox):
        config = self.configuration
        for failure in self._detector.check_initialisation(inputs):
            self._apply(failure, outgoing)
        self._broadcast(outgoing)

        level, steam = inputs.level, inputs.steam
        if inputs.waiting:
            if not steam.equals(0.0):
                self._transition(ControllerMode.EMERGENCY_STOP, outgoing,
                                 f"Steam {steam} before start-up")
            if not level.valid or level.value < 0 or level.above(config.capacity):
                self._apply(Failure(
                    FailureKind.LEVEL_SENSOR, ControllerMode.EMERGENCY_STOP,
                    f"Level reading {level} outside [0, {config.capacity:g}]"), outgoing)
            if level.above(config.maximal_normal_level):
                outgoing.send(Message(MessageKind.VALVE))
            if level.valid and level.value < config.minimal_normal_level:
                self._policy.command(self.state, outgoing, (0, 1), True)
            if inputs.level_failure_ack:
                self._transition(ControllerMode.EMERGENCY_STOP, outgoing,
                                 "Level failure acknowledged during start-up")
            if (level.valid
                    and config.minimal_normal_level < level.value < config.maximal_normal_level):
                outgoing.send(Message(MessageKind.PROGRAM_READY))

        if inputs.units_ready and self.state.mode == ControllerMode.WAITING:
            self._transition(ControllerMode.NORMAL, outgoing, "Physical units ready")

        self._remember_bounds(inputs)

    def _ready(self, inputs: CycleInputs, outgoing: Mailbox):
        self._broadcast(outgoing)
        if inputs.units_ready:
            self._transition(ControllerMode.NORMAL, outgoing, "Physical units ready")

    def _normal(self, inputs: CycleInputs, outgoing: Mailbox):
        state = self.state
        self._broadcast(outgoing)

        bounds = self._current_bounds(inputs)
        if bounds is not None:
            breach = self._detector.check_limits(bounds)
            if breach:
                self._apply(breach, outgoing)
            self._policy.apply(state, bounds, outgoing)

        for failure in self._detector.check_runtime(
                inputs, self._commanded, state.pump_is_open, state.degraded_steam):
            self._apply(failure, outgoing)

        self._remember_bounds(inputs)

    def _degraded(self, inputs: CycleInputs, outgoing: Mailbox):
        state = self.state
        config = self.configuration
        self._broadcast(outgoing)

        bounds = self._current_bounds(inputs)
        if bounds is not None:
            self._policy.apply(state, bounds, outgoing)

        if inputs.pump_control_failure_acks:
            for i in range(config.number_of_pumps):
                if inputs.pump_states[i] != inputs.pump_control_states[i]:
                    continue
                self._repair(Message(MessageKind.PUMP_CONTROL_REPAIRED, index=i),
                             f"Pump {i + 1} control repaired", outgoing)

        if inputs.pump_failure_acks and config.number_of_pumps > 0 and \
                inputs.pump_states[0] == self._commanded[0]:
            self._repair(Message(MessageKind.PUMP_REPAIRED, index=0),
                         "Pump 1 repaired", outgoing)

        if inputs.steam_failure_ack:
            steam = inputs.steam
            if state.steam_error:
                repaired = self._detector.steam_in_range(steam)
            else:
                repaired = steam.valid and steam.value > 0
            if repaired:
                state.degraded_steam = False
                state.steam_error = False
                self._repair(Message(MessageKind.STEAM_REPAIRED),
                             "Steam sensor repaired", outgoing)

        level_failure = self._detector.check_level_sensor(inputs)
        if level_failure:
            self._apply(level_failure, outgoing)

        if bounds is not None:
            breach = self._detector.check_limits(bounds)
            if breach:
                self._apply(breach, outgoing)

        self._remember_bounds(inputs)

    def _rescue(self, inputs: CycleInputs, outgoing: Mailbox):
        state = self.state
        config = self.configuration
        self._broadcast(outgoing)

        steam = inputs.steam
        if not self._detector.steam_in_range(steam):
            self._apply(Failure(
                FailureKind.STEAM_SENSOR, ControllerMode.EMERGENCY_STOP,
                f"Steam reading {steam} unusable while level sensor is down"), outgoing)
            return

        if state.level_bounds is None:
            self._transition(ControllerMode.EMERGENCY_STOP, outgoing,
                             "No level estimate while level sensor is down")
            return

        # The level reading is not used until the sensor is confirmed repaired
        bounds = project_bounds(state.level_bounds, state.open_pump_count, steam, config)
        breach = self._detector.check_limits(bounds)
        if breach:
            self._apply(breach, outgoing)
        self._policy.apply(state, bounds, outgoing)

        if inputs.level_failure_ack and self._detector.level_trusted(inputs.level):
            if state.degraded_steam or inputs.pump_mismatches:
                target = ControllerMode.DEGRADED
            else:
                target = ControllerMode.NORMAL
            self._repair(Message(MessageKind.LEVEL_REPAIRED),
                         "Level sensor repaired", outgoing, target=target)

        self._remember_bounds(inputs)

    def _emergency_stop(self, inputs: CycleInputs, outgoing: Mailbox):
        self._broadcast(outgoing)

    # ======================================================
    # Helpers
    # ======================================================
    def _current_bounds(self, inputs: CycleInputs) -> Optional[LevelBounds]:
        """Level bounds from any present reading, projected only for a failed sensor."""
        state = self.state
        config = self.configuration
        if inputs.level.valid:
            return estimate_bounds(inputs.level.value, state.open_pump_count,
                                   inputs.steam, config)
        if state.level_bounds is not None:
            return project_bounds(state.level_bounds, state.open_pump_count,
                                  inputs.steam, config)
        return None

    def _remember_bounds(self, inputs: CycleInputs):
        """Store next cycle's level bounds, using the pumps as now commanded."""
        state = self.state
        config = self.configuration
        trusted = (self._detector.level_trusted(inputs.level)
                   and state.mode != ControllerMode.RESCUE)
        if trusted:
            state.level_bounds = estimate_bounds(inputs.level.value, state.open_pump_count,
                                                 inputs.steam, config)
        elif state.level_bounds is not None:
            state.level_bounds = project_bounds(state.level_bounds, state.open_pump_count,
                                                inputs.steam, config)

    def _apply(self, failure: Failure, outgoing: Mailbox):
        """Record a failure: sticky flags, mode escalation, notification."""
        state = self.state
        logger.warning(f"{failure.kind.name} failure: {failure.reason}")

        if failure.kind == FailureKind.STEAM_SENSOR:
            state.degraded_steam = True
            state.steam_error = True
        elif failure.kind == FailureKind.STEAM_STUCK:
            state.degraded_steam = True

        if _SEVERITY[failure.mode] > _SEVERITY[state.mode]:
            self._enter(failure.mode, failure.reason)
        self._broadcast(outgoing)

        notification = failure.notification
        if notification is not None:
            outgoing.send(notification)

    def _repair(self, message: Message, reason: str, outgoing: Mailbox,
                target: ControllerMode = ControllerMode.NORMAL):
        self._enter(target, reason)
        self._broadcast(outgoing)
        outgoing.send(message)

    def _transition(self, target: ControllerMode, outgoing: Mailbox, reason: str):
        self._enter(target, reason)
        self._broadcast(outgoing)

    def _enter(self, target: ControllerMode, reason: str = ""):
        """Change mode along a documented edge. Other changes are refused."""
        current = self.state.mode
        if target == current:
            return
        if not current.can_enter(target):
            logger.warning(f"Refused mode change {current.name} → {target.name}: {reason}")
            return

        self.state.mode = target
        logger.info(f"Mode change: {current.name} → {target.name} ({reason})")
        if target == ControllerMode.EMERGENCY_STOP:
            logger.critical(f"EMERGENCY STOP: {reason}")

    def _broadcast(self, outgoing: Mailbox):
        outgoing.send(Message(MessageKind.MODE, mode=self.state.mode.broadcast))
