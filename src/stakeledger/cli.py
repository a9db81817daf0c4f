"""Command-line entry point: run a pool scenario and report on it."""

import argparse
import logging
import sys

from pydantic import ValidationError

from .config.loader import config_from_dict, load_config
from .reporting.export import export_csv, export_json
from .simulation.runner import SimulationRunner
from .validation.sanity_checks import validate_simulation_results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stakeledger",
        description="Simulate a staking pool with cooldown-gated redemption",
    )
    parser.add_argument("--config", help="YAML config (defaults to the packaged defaults.yaml)")
    parser.add_argument("--seed", type=int, help="Random seed (overrides config)")
    parser.add_argument("--steps", type=int, help="Number of steps (overrides config)")
    parser.add_argument("--csv", help="Write ledger snapshots to this CSV file")
    parser.add_argument("--json", help="Write the full result to this JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def apply_overrides(config, steps=None):
    """Return a re-validated copy of `config` with command-line overrides applied."""
    if steps is None:
        return config
    data = config.to_dict()
    data["simulation"]["num_steps"] = steps
    return config_from_dict(data)


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = apply_overrides(load_config(args.config), steps=args.steps)
    except ValidationError as e:
        parser.error(f"invalid configuration: {e}")

    result = SimulationRunner(config).run(random_seed=args.seed)

    print(f"Config hash: {config.compute_hash()}")
    for key, value in result.final_metrics.items():
        print(f"  {key}: {value}")
    if result.rejections:
        print("Rejections:")
        for code, count in sorted(result.rejections.items()):
            print(f"  {code}: {count}")

    warnings = validate_simulation_results(result)
    for warning in warnings:
        print(f"[{warning.severity}] {warning.category}: {warning.message}")

    if args.csv:
        export_csv(result, args.csv)
    if args.json:
        export_json(result, args.json)

    return 1 if result.conservation_errors else 0


if __name__ == "__main__":
    sys.exit(main())
