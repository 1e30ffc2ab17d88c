"""
Steam Boiler Replay Tool
========================

Command line entry point: replays a built-in scenario or a recorded
JSON trace through the controller and prints the messages it sends.
"""

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional

from .control.config import PlantConfiguration
from .replay import CycleRecord, replay
from .scenarios import Scenario, ScenarioType, get_scenario

logger = logging.getLogger(__name__)


@dataclass
class ReplayConfig:
    """Replay tool configuration."""
    scenario: Optional[str] = None      # Built-in scenario name
    trace_path: Optional[str] = None    # JSON trace to replay instead
    config_path: Optional[str] = None   # Plant configuration override
    output_path: Optional[str] = None   # Write the outgoing trace here
    verbose: bool = False


def load_scenario(config: ReplayConfig) -> Scenario:
    """
    Resolve the scenario to replay.

    Raises:
        ValueError, KeyError, OSError: unreadable trace or configuration
    """
    if config.trace_path:
        scenario = Scenario.from_json(config.trace_path)
    else:
        scenario = get_scenario(ScenarioType(config.scenario or ScenarioType.STARTUP.value))

    if config.config_path:
        scenario.configuration = PlantConfiguration.from_json(config.config_path)
    return scenario


def print_records(records: List[CycleRecord], out=None):
    for record in records:
        print(f"--- cycle {record.cycle} [{record.mode}]", file=out)
        for sentence in record.outgoing:
            print(f"  {sentence}", file=out)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Steam boiler controller replay")
    parser.add_argument("--scenario", "-s",
                        choices=[t.value for t in ScenarioType],
                        help="Built-in scenario to replay (default: startup)")
    parser.add_argument("--trace", "-t",
                        help="JSON trace file to replay")
    parser.add_argument("--config", "-c",
                        help="Plant configuration JSON file")
    parser.add_argument("--output", "-o",
                        help="Write the replayed trace as JSON")
    parser.add_argument("--list", "-l", action="store_true",
                        help="List built-in scenarios and exit")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Verbose logging")

    args = parser.parse_args(argv)

    if args.list:
        for scenario_type in ScenarioType:
            print(f"{scenario_type.value:22s} {get_scenario(scenario_type).description}")
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = ReplayConfig(
        scenario=args.scenario,
        trace_path=args.trace,
        config_path=args.config,
        output_path=args.output,
        verbose=args.verbose,
    )

    try:
        scenario = load_scenario(config)
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"Failed to load scenario: {e}")
        return 1

    records = replay(scenario)
    print_records(records)

    if config.output_path:
        with open(config.output_path, 'w') as f:
            json.dump({
                'scenario': scenario.name,
                'cycles': [r.to_dict() for r in records],
            }, f, indent=2)
        logger.info(f"Trace written to {config.output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
