"""
Plant Configuration Module
==========================

Static characteristics of the boiler: capacity, level thresholds,
pump capacities and maximal steam rate.

Level thresholds, in level units:
    0 ≤ M1 < N1 < N2 < M2 ≤ capacity

    M1/M2: limit levels, reaching them is an emergency
    N1/N2: normal band the controller aims to stay within

Rates (pump capacity, steam rate) are in level units per second.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Tuple
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlantConfiguration:
    """Boiler characteristics. Immutable once built."""
    capacity: float
    minimal_limit_level: float       # M1
    maximal_limit_level: float       # M2
    minimal_normal_level: float      # N1
    maximal_normal_level: float      # N2
    pump_capacities: Tuple[float, ...]
    maximal_steam_rate: float

    @property
    def number_of_pumps(self) -> int:
        return len(self.pump_capacities)

    def pump_capacity(self, index: int) -> float:
        """Capacity of pump `index` (level units per second)."""
        return self.pump_capacities[index]

    @property
    def normal_midpoint(self) -> float:
        return (self.minimal_normal_level + self.maximal_normal_level) / 2

    @classmethod
    def default(cls) -> 'PlantConfiguration':
        """Four-pump boiler of 1000 units."""
        return cls(
            capacity=1000.0,
            minimal_limit_level=100.0,
            maximal_limit_level=900.0,
            minimal_normal_level=200.0,
            maximal_normal_level=800.0,
            pump_capacities=(10.0, 10.0, 10.0, 10.0),
            maximal_steam_rate=10.0,
        )

    @classmethod
    def small(cls) -> 'PlantConfiguration':
        """Small boiler, three weak pumps, tight limits."""
        return cls(
            capacity=500.0,
            minimal_limit_level=50.0,
            maximal_limit_level=450.0,
            minimal_normal_level=150.0,
            maximal_normal_level=350.0,
            pump_capacities=(5.0, 5.0, 5.0),
            maximal_steam_rate=5.0,
        )

    @classmethod
    def single_pump(cls) -> 'PlantConfiguration':
        """One-pump boiler of 1000 units."""
        return cls(
            capacity=1000.0,
            minimal_limit_level=100.0,
            maximal_limit_level=900.0,
            minimal_normal_level=200.0,
            maximal_normal_level=800.0,
            pump_capacities=(30.0,),
            maximal_steam_rate=5.0,
        )

    @classmethod
    def preset(cls, name: str) -> 'PlantConfiguration':
        """Look up a built-in configuration by name."""
        presets = {
            'default': cls.default,
            'small': cls.small,
            'single_pump': cls.single_pump,
        }
        if name not in presets:
            raise KeyError(f"Unknown configuration preset: {name}")
        return presets[name]()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlantConfiguration':
        """
        Build a configuration from a plain dict.

        `pump_capacities` may be given as a list, or as `pump_capacity`
        plus `number_of_pumps` for identical pumps.
        """
        if 'pump_capacities' in data:
            pumps = tuple(float(c) for c in data['pump_capacities'])
        else:
            pumps = (float(data['pump_capacity']),) * int(data['number_of_pumps'])
        return cls(
            capacity=float(data['capacity']),
            minimal_limit_level=float(data['minimal_limit_level']),
            maximal_limit_level=float(data['maximal_limit_level']),
            minimal_normal_level=float(data['minimal_normal_level']),
            maximal_normal_level=float(data['maximal_normal_level']),
            pump_capacities=pumps,
            maximal_steam_rate=float(data['maximal_steam_rate']),
        )

    @classmethod
    def from_json(cls, filepath: str) -> 'PlantConfiguration':
        """Load a configuration from a JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        config = cls.from_dict(data)
        logger.info(f"Loaded plant configuration from {filepath} "
                    f"({config.number_of_pumps} pumps, capacity {config.capacity:g})")
        return config
