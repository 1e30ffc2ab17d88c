"""
Unit tests for the replay command line tool.
"""

import json

from steam_boiler.main import ReplayConfig, load_scenario, main
from steam_boiler.scenarios import ScenarioType


class TestLoadScenario:
    """Tests for scenario resolution."""

    def test_default_is_startup(self):
        """Without options the start-up scenario is replayed."""
        assert load_scenario(ReplayConfig()).name == ScenarioType.STARTUP.value

    def test_config_override(self, tmp_path):
        """A configuration file replaces the scenario's configuration."""
        path = tmp_path / "boiler.json"
        path.write_text(json.dumps({
            'capacity': 2000, 'minimal_limit_level': 100, 'maximal_limit_level': 1900,
            'minimal_normal_level': 400, 'maximal_normal_level': 1600,
            'pump_capacity': 20, 'number_of_pumps': 4, 'maximal_steam_rate': 15,
        }))

        scenario = load_scenario(ReplayConfig(scenario="startup", config_path=str(path)))
        assert scenario.configuration.capacity == 2000.0


class TestMain:
    """Tests for the main entry point."""

    def test_replay_scenario(self, capsys):
        """Replaying a scenario prints every cycle."""
        assert main(["--scenario", "steam_failure"]) == 0

        out = capsys.readouterr().out
        assert "--- cycle 1 [WAITING]" in out
        assert "$STEAM_REPAIRED" in out

    def test_list(self, capsys):
        """--list names every built-in scenario."""
        assert main(["--list"]) == 0

        out = capsys.readouterr().out
        for scenario_type in ScenarioType:
            assert scenario_type.value in out

    def test_output_file(self, tmp_path):
        """--output writes the replayed trace as JSON."""
        path = tmp_path / "trace.json"
        assert main(["--scenario", "transmission_loss", "--output", str(path)]) == 0

        data = json.loads(path.read_text())
        assert data['scenario'] == "transmission_loss"
        assert data['cycles'][-1]['mode'] == "EMERGENCY_STOP"

    def test_trace_file(self, tmp_path):
        """A JSON trace can be replayed."""
        path = tmp_path / "trace.json"
        path.write_text(json.dumps({
            'name': 'lost_level',
            'configuration': 'default',
            'cycles': [["$STEAM,0*52"]],
        }))

        assert main(["--trace", str(path)]) == 0

    def test_missing_trace_fails(self, tmp_path):
        """An unreadable trace exits with status 1."""
        assert main(["--trace", str(tmp_path / "missing.json")]) == 1

    def test_bad_config_fails(self, tmp_path):
        """An invalid configuration file exits with status 1."""
        path = tmp_path / "boiler.json"
        path.write_text("{not json")
        assert main(["--config", str(path)]) == 1
