"""
Water Level Estimator
=====================

Conservative bounds on the water level at the end of the next cycle.

    min = level + T·P·k − T·S_max
    max = level + T·P·k − T·S

    T: cycle period (s)
    P: capacity of pump 0, used for every open pump
    k: number of pumps the controller has commanded open
    S_max: maximal steam rate, S: current steam reading (0 if failed)

Pump 0's capacity stands in for every pump. Boilers with pumps of
different capacities get bounds that are off by the capacity spread.
"""

from dataclasses import dataclass
import logging

from .config import PlantConfiguration
from .readings import Reading

logger = logging.getLogger(__name__)

CYCLE_PERIOD_S = 5.0


@dataclass(frozen=True)
class LevelBounds:
    """Estimated [minimum, maximum] water level."""
    minimum: float
    maximum: float

    def breaches_limits(self, config: PlantConfiguration) -> bool:
        """True if either bound reaches a limit level (M1 or M2)."""
        return (self.minimum <= config.minimal_limit_level
                or self.maximum >= config.maximal_limit_level)

    def __str__(self) -> str:
        return f"[{self.minimum:.1f}, {self.maximum:.1f}]"


def _pump_inflow(open_pumps: int, config: PlantConfiguration) -> float:
    if config.number_of_pumps == 0:
        return 0.0
    return CYCLE_PERIOD_S * config.pump_capacity(0) * open_pumps


def _steam_outflow(steam: Reading) -> float:
    # A failed steam sensor counts as zero outflow
    if steam.valid:
        return CYCLE_PERIOD_S * steam.value
    return 0.0


def estimate_bounds(level: float, open_pumps: int, steam: Reading,
                    config: PlantConfiguration) -> LevelBounds:
    """
    Bounds on the next level from a measured level.

    Args:
        level: Current water level (valid reading)
        open_pumps: Number of pumps commanded open
        steam: Current steam reading
        config: Plant configuration

    Returns:
        LevelBounds for the end of the next cycle
    """
    return project_bounds(LevelBounds(level, level), open_pumps, steam, config)


def project_bounds(previous: LevelBounds, open_pumps: int, steam: Reading,
                   config: PlantConfiguration) -> LevelBounds:
    """
    Bounds on the next level from the previous bounds.

    Used when the level sensor can't be trusted: the uncertainty
    widens each cycle by the spread between steam reading and
    maximal steam rate.
    """
    inflow = _pump_inflow(open_pumps, config)
    bounds = LevelBounds(
        minimum=previous.minimum + inflow - CYCLE_PERIOD_S * config.maximal_steam_rate,
        maximum=previous.maximum + inflow - _steam_outflow(steam),
    )
    logger.debug(f"Level bounds {previous} → {bounds} ({open_pumps} pumps, steam {steam})")
    return bounds
