"""
Capture validator - Main Entry Point

Replays a captured exchange stream, reports soft inconsistencies and writes
the final snapshot as capture lines.

Usage:
    python -m streamsim.main capture.gz
    python -m streamsim.main capture.gz --snapshot wire --output resume.tsv
    python -m streamsim.main capture.gz --filter orderBookL2 --snapshot wire
    python -m streamsim.main capture.gz --config config/default.yaml --verify-channels
"""

# Load .env FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

import argparse
import sys
from pathlib import Path
from typing import Any

from streamsim.infrastructure.config import AppConfig, load_config
from streamsim.infrastructure.logging import LogContext, configure_logging, get_logger
from streamsim.infrastructure.metrics import metrics
from streamsim.replay.capture import (
    CaptureFormatError,
    CaptureReader,
    RecordType,
    format_snapshot_lines,
)
from streamsim.replay.replayer import CHECKPOINT_STATE, CHECKPOINT_WIRE, Replayer
from streamsim.simulator.diagnostics import Diagnostics
from streamsim.simulator.errors import SimulatorError
from streamsim.simulator.factory import new_simulator, supported_exchanges

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_INCONSISTENT = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="streamsim",
        description="Reconstruct exchange state from a captured stream",
    )
    parser.add_argument("capture", type=Path, help="Capture file (.gz supported)")
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument(
        "--exchange",
        choices=supported_exchanges(),
        default=None,
        help="Exchange the capture was recorded from",
    )
    parser.add_argument(
        "--filter",
        dest="channel_filter",
        nargs="+",
        default=None,
        metavar="CHANNEL",
        help="Only track these channels (disables state snapshots)",
    )
    parser.add_argument(
        "--snapshot",
        choices=[CHECKPOINT_STATE, CHECKPOINT_WIRE, "none"],
        default=CHECKPOINT_STATE,
        help="Snapshot to write after the replay",
    )
    parser.add_argument("--output", type=Path, default=None, help="Snapshot output (default stdout)")
    parser.add_argument(
        "--verify-channels",
        action="store_true",
        help="Check each message against the channel recorded in the capture",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero when soft inconsistencies were found",
    )
    return parser.parse_args(argv)


def cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Translate CLI flags into a nested config dict."""
    overrides: dict[str, Any] = {}
    if args.exchange:
        overrides.setdefault("simulator", {})["exchange"] = args.exchange
    if args.channel_filter is not None:
        overrides.setdefault("simulator", {})["channel_filter"] = args.channel_filter
    if args.verify_channels:
        overrides.setdefault("replay", {})["verify_channels"] = True
    return overrides


def write_snapshot(output: Path | None, data: bytes) -> None:
    if output is None:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "wb") as f:
        f.write(data)


def run(config: AppConfig, args: argparse.Namespace) -> int:
    """Replay the capture and emit the requested snapshot."""
    logger = get_logger(__name__)

    diagnostics = Diagnostics(keep_events=False)
    simulator = new_simulator(
        config.simulator.exchange,
        channel_filter=config.simulator.channel_filter,
        diagnostics=diagnostics,
    )
    replayer = Replayer(simulator, config=config.replay)

    with LogContext(exchange=config.simulator.exchange, capture=str(args.capture)):
        stats = replayer.run(CaptureReader(args.capture))

        if args.snapshot != "none":
            snapshots = replayer.checkpoint(args.snapshot)
            record_type = RecordType.STATE if args.snapshot == CHECKPOINT_STATE else RecordType.MSG
            timestamp = stats.last_timestamp or 0
            write_snapshot(args.output, format_snapshot_lines(snapshots, timestamp, record_type))
            logger.info("Snapshot written", kind=args.snapshot, frames=len(snapshots))

        logger.info(
            "Capture validated",
            records=stats.records_processed,
            book_entries=len(simulator.order_book),
            crossed_purges=stats.crossed_purges,
            unknown_updates=stats.unknown_updates,
        )

    if args.strict and not stats.is_consistent:
        return EXIT_INCONSISTENT
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    config = load_config(args.config, overrides=cli_overrides(args))
    configure_logging(config.observability.log_level, config.observability.log_format)
    logger = get_logger(__name__)

    diff = config.diff_from_defaults()
    if diff:
        logger.info("Configuration customized", changes=diff)

    if config.observability.metrics_enabled:
        metrics.start_server(port=config.observability.metrics_port)

    try:
        return run(config, args)
    except (SimulatorError, CaptureFormatError, FileNotFoundError) as e:
        logger.error("Capture validation failed", error=str(e))
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
