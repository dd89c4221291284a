"""Argument parsing, configuration loading, and daemon bootstrap."""

from __future__ import annotations

import argparse
import logging
import sys

from .config import load_config
from .daemon import Daemon
from .exceptions import ConfigError
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gce-prometheus-discovery",
        description="GCE service discovery daemon writing Prometheus file_sd targets",
    )
    parser.add_argument(
        "-c", "--config",
        required=True,
        help="Path to the YAML configuration file",
    )
    parser.add_argument(
        "-o", "--output",
        help="Path to the target file (overrides output.path)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single discovery cycle and exit",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="With --once, write the target file even if nothing changed",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate the configuration file and exit",
    )
    parser.add_argument(
        "--no-metrics",
        action="store_true",
        help="Do not start the metrics HTTP listener",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load config (minimal logging until config is loaded)
    try:
        config = load_config(args.config, output_path=args.output)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    configure_logging(config.logging)
    logger.debug("Loaded %d rules for jobs %s", len(config.rules), config.jobs)

    if args.validate:
        logger.info("Configuration is valid")
        return 0

    daemon = Daemon(config)

    if args.once:
        logger.info("Running single discovery cycle (--once)")
        return 0 if daemon.run_once(forced=args.force) else 1

    if config.metrics.enabled and not args.no_metrics:
        try:
            daemon.metrics.serve(config.metrics.address, config.metrics.port)
        except OSError as exc:
            logger.error(
                "Could not start metrics server on %s:%d: %s",
                config.metrics.address, config.metrics.port, exc,
            )
            return 1

    try:
        daemon.run()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0
