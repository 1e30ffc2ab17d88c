"""
Unit tests for the failure detector.
"""

import numpy as np
import pytest

from steam_boiler.control.estimator import LevelBounds
from steam_boiler.control.failure_detector import FailureDetector, FailureKind
from steam_boiler.control.readings import CycleInputs
from steam_boiler.control.state import ControllerMode
from steam_boiler.messaging.mailbox import Mailbox, MessageKind
from steam_boiler.scenarios import plant_readings


@pytest.fixture
def detector(default_config):
    return FailureDetector(default_config)


def inputs_for(level, steam, pumps=4, **kwargs):
    return CycleInputs.from_mailbox(plant_readings(level, steam, pumps, **kwargs), pumps)


def closed(pumps=4):
    return np.zeros(pumps, dtype=bool)


class TestTransmission:
    """Tests for missing or malformed readings."""

    def test_complete_readings(self, detector):
        """A complete mailbox is not a transmission failure."""
        assert detector.check_transmission(inputs_for(500, 5)) is None

    @pytest.mark.parametrize("dropped", [
        MessageKind.LEVEL,
        MessageKind.STEAM,
        MessageKind.PUMP_STATE,
        MessageKind.PUMP_CONTROL_STATE,
    ])
    def test_missing_reading(self, detector, dropped):
        """Dropping any kind of reading forces EMERGENCY_STOP."""
        box = Mailbox([m for m in plant_readings(500, 5, 4) if m.kind != dropped])
        failure = detector.check_transmission(CycleInputs.from_mailbox(box, 4))

        assert failure.kind == FailureKind.TRANSMISSION
        assert failure.mode == ControllerMode.EMERGENCY_STOP
        assert failure.notification is None

    def test_wrong_pump_count(self, detector):
        """Readings for three pumps on a four-pump boiler are a failure."""
        failure = detector.check_transmission(
            CycleInputs.from_mailbox(plant_readings(500, 5, 3), 4))
        assert failure is not None
        assert "3 pump state readings" in failure.reason


class TestInitialisation:
    """Tests for start-up checks."""

    def test_healthy_start(self, detector):
        """A quiet boiler in the normal band passes."""
        assert detector.check_initialisation(inputs_for(500, 0)) == []

    def test_failed_level(self, detector):
        """A failed level sensor stops the boiler."""
        failures = detector.check_initialisation(inputs_for(-1, 0))

        assert [f.kind for f in failures] == [FailureKind.LEVEL_SENSOR]
        assert failures[0].mode == ControllerMode.EMERGENCY_STOP
        assert failures[0].notification.kind == MessageKind.LEVEL_FAILURE_DETECTION

    def test_level_above_capacity(self, detector):
        """A level above capacity stops the boiler."""
        failures = detector.check_initialisation(inputs_for(1200, 0))
        assert failures[0].mode == ControllerMode.EMERGENCY_STOP

    def test_zero_level_while_filling(self, detector):
        """Level 0 with pump 1 open and commanded open is impossible."""
        failures = detector.check_initialisation(inputs_for(0, 0, open_pumps=[0]))
        assert [f.kind for f in failures] == [FailureKind.LEVEL_SENSOR]

    def test_saturated_level_with_pump_closed(self, detector):
        """Level 100 with pump 1 closed is a stuck sensor."""
        failures = detector.check_initialisation(inputs_for(100, 0))
        assert [f.kind for f in failures] == [FailureKind.LEVEL_SENSOR]

    def test_each_pump_mismatch_reported(self, detector):
        """Every disobeying pump gets its own failure."""
        failures = detector.check_initialisation(
            inputs_for(500, 0, open_pumps=[1, 3], control_open=[]))

        assert [(f.kind, f.pump) for f in failures] == [
            (FailureKind.PUMP_CONTROL, 1),
            (FailureKind.PUMP_CONTROL, 3),
        ]
        assert failures[1].notification.index == 3

    def test_steam_above_rate(self, detector):
        """Steam above the maximal rate degrades."""
        failures = detector.check_initialisation(inputs_for(500, 11))

        assert [f.kind for f in failures] == [FailureKind.STEAM_SENSOR]
        assert failures[0].mode == ControllerMode.DEGRADED


class TestRuntime:
    """Tests for checks while operating."""

    def test_healthy(self, detector):
        """Consistent readings raise nothing."""
        assert detector.check_runtime(inputs_for(500, 5), closed(), False, False) == []

    def test_pump_failure(self, detector):
        """Pump 1 commanded open but reading closed is a pump failure."""
        commanded = closed()
        commanded[0] = True
        failures = detector.check_runtime(inputs_for(500, 5), commanded, False, False)

        assert [(f.kind, f.pump) for f in failures] == [(FailureKind.PUMP, 0)]
        assert failures[0].notification.kind == MessageKind.PUMP_FAILURE_DETECTION

    def test_pump_failure_ignored_after_lower_mid_open(self, detector):
        """Pump 1 opened by the lower-mid rule isn't checked."""
        commanded = closed()
        commanded[0] = True
        assert detector.check_runtime(inputs_for(500, 5), commanded, True, False) == []

    def test_pump_failure_ignored_with_degraded_steam(self, detector):
        """Pump 1 isn't checked once steam is degraded."""
        commanded = closed()
        commanded[0] = True
        assert detector.check_runtime(inputs_for(500, 5), commanded, False, True) == []

    def test_steam_stuck_at_zero(self, detector):
        """Zero steam while pump 2 is commanded open."""
        commanded = closed()
        commanded[1] = True
        failures = detector.check_runtime(
            inputs_for(500, 0, open_pumps=[1]), commanded, False, False)

        assert [f.kind for f in failures] == [FailureKind.STEAM_STUCK]
        assert failures[0].notification.kind == MessageKind.STEAM_FAILURE_DETECTION

    def test_failed_steam(self, detector):
        """A failed steam sensor degrades."""
        failures = detector.check_runtime(inputs_for(500, -1), closed(), False, False)
        assert [f.kind for f in failures] == [FailureKind.STEAM_SENSOR]

    def test_negative_steam(self, detector):
        """A negative steam reading is out of range."""
        failures = detector.check_runtime(inputs_for(500, -5), closed(), False, False)

        assert [f.kind for f in failures] == [FailureKind.STEAM_SENSOR]
        assert not detector.steam_in_range(inputs_for(500, -5).steam)

    @pytest.mark.parametrize("level", [-1, -20, 950])
    def test_suspect_level(self, detector, level):
        """Failed, negative or above-M2 level readings send the controller to RESCUE."""
        failures = detector.check_runtime(inputs_for(level, 5), closed(), False, False)

        assert [f.kind for f in failures] == [FailureKind.LEVEL_SENSOR]
        assert failures[0].mode == ControllerMode.RESCUE


class TestLimits:
    """Tests for predictive limit breaches."""

    def test_no_breach(self, detector):
        """Bounds inside the limits are fine."""
        assert detector.check_limits(LevelBounds(300, 600)) is None

    def test_breach(self, detector):
        """Bounds reaching a limit force EMERGENCY_STOP."""
        failure = detector.check_limits(LevelBounds(90, 300))

        assert failure.kind == FailureKind.LIMIT_BREACH
        assert failure.mode == ControllerMode.EMERGENCY_STOP
