"""
Unit tests for plant configuration.
"""

import dataclasses
import json

import pytest

from steam_boiler.control.config import PlantConfiguration


class TestPresets:
    """Tests for built-in configurations."""

    def test_default(self, default_config):
        """Default boiler has four 10 unit/s pumps."""
        assert default_config.number_of_pumps == 4
        assert default_config.pump_capacity(0) == 10.0
        assert default_config.capacity == 1000.0

    def test_thresholds_ordered(self):
        """Every preset satisfies 0 ≤ M1 < N1 < N2 < M2 ≤ capacity."""
        for name in ('default', 'small', 'single_pump'):
            c = PlantConfiguration.preset(name)
            assert 0 <= c.minimal_limit_level < c.minimal_normal_level
            assert c.minimal_normal_level < c.maximal_normal_level
            assert c.maximal_normal_level < c.maximal_limit_level <= c.capacity

    def test_unknown_preset(self):
        """Unknown preset names raise KeyError."""
        with pytest.raises(KeyError):
            PlantConfiguration.preset('nuclear')

    def test_normal_midpoint(self, default_config):
        """Midpoint of the normal band."""
        assert default_config.normal_midpoint == pytest.approx(500.0)

    def test_frozen(self, default_config):
        """Configurations can't be changed once built."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            default_config.capacity = 2000.0


class TestLoaders:
    """Tests for from_dict and from_json."""

    BASE = {
        'capacity': 800,
        'minimal_limit_level': 50,
        'maximal_limit_level': 750,
        'minimal_normal_level': 150,
        'maximal_normal_level': 650,
        'maximal_steam_rate': 8,
    }

    def test_from_dict_capacity_list(self):
        """Pump capacities can be listed one by one."""
        c = PlantConfiguration.from_dict({**self.BASE, 'pump_capacities': [10, 12]})
        assert c.pump_capacities == (10.0, 12.0)
        assert c.number_of_pumps == 2

    def test_from_dict_identical_pumps(self):
        """Identical pumps can be given as capacity and count."""
        c = PlantConfiguration.from_dict(
            {**self.BASE, 'pump_capacity': 7, 'number_of_pumps': 3})
        assert c.pump_capacities == (7.0, 7.0, 7.0)

    def test_from_dict_missing_field(self):
        """Missing fields raise KeyError."""
        with pytest.raises(KeyError):
            PlantConfiguration.from_dict({'capacity': 100})

    def test_from_json(self, tmp_path):
        """Configurations load from JSON files."""
        path = tmp_path / "boiler.json"
        path.write_text(json.dumps({**self.BASE, 'pump_capacities': [5, 5, 5]}))

        c = PlantConfiguration.from_json(str(path))

        assert c.capacity == 800.0
        assert c.maximal_steam_rate == 8.0
        assert c.number_of_pumps == 3
