"""
Command-line interface for the application.

This module provides the main entry point for the CLI.
"""

from __future__ import annotations

import argparse
import sys

from kelper import __version__
from kelper.config import PipelineConfig, get_settings
from kelper.flows.fit import run_pipeline
from kelper.regression.registry import REGISTRY


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="kelper",
        description="Regression parameterization for a kelp population model",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'run' command - prepare datasets and fit every relationship
    subparsers.add_parser("run", help="Prepare datasets and fit all regressions")

    # 'info' command
    subparsers.add_parser("info", help="Show configuration and registered models")

    return parser


def cmd_run(args: argparse.Namespace) -> int:
    """Handle the 'run' command. Exits non-zero if any relationship failed."""
    settings = get_settings()
    config = PipelineConfig()
    if args.debug:
        print(f"Debug mode enabled. Settings: {settings}")
        print(f"Config: {config}")

    report = run_pipeline(config)
    for key, failure in report.failures.items():
        print(
            f"{key.value}: {failure.error} ({failure.stage.value}): {failure.message}",
            file=sys.stderr,
        )
    return 1 if report.failed else 0


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    config = PipelineConfig()
    print("Application: kelper")
    print(f"Version: {__version__}")
    print(f"Workers: {settings.workers}")
    print(f"Data directory: {config.data_dir}")
    print(f"Formula set: {config.selection_variant.value}")
    print("Relationships:")
    for key, spec in REGISTRY.items():
        formulas = " | ".join(str(f) for f in spec.formulas(config.selection_variant))
        print(f"  {key.value} [{spec.family.value}]: {formulas}")
    return 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "run": cmd_run,
        "info": cmd_info,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
