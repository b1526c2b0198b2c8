"""Build a user-grouped post database from a CSV export."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException

from authordb.aggregate import count_keys, group_payloads, stream_records
from authordb.common import BuildError, RootConfig, SinkFormat
from authordb.connectors import CSVSource, RecordSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildSummary:
    """Counts reported after a successful build."""

    rows: int
    authors: int
    retained_authors: int
    records: int


def signal_handler(sig, frame):
    """Handle termination signals."""
    logger.info("Signal received, exiting...")
    sys.exit(128 + sig)


async def main(config: RootConfig) -> BuildSummary:
    """Run both aggregation passes and stream the result to the sink."""
    logger.info("Opening input...")
    async with CSVSource.from_config(config.source) as source:
        logger.info("Counting usernames...")
        counts = count_keys(source.scan())
        rows = sum(counts.values())
        logger.info(f"Counted {rows} rows from {len(counts)} users")

        logger.info("Grouping posts by user...")
        grouped = group_payloads(source.scan(), counts)
        logger.info(
            f"Kept {len(grouped)}/{len(counts)} users with {grouped.record_count} posts"
        )

    logger.info("Writing output...")
    async with RecordSink.from_config(config.sink) as sink:
        written = await stream_records(grouped, sink.write)

    return BuildSummary(
        rows=rows,
        authors=len(counts),
        retained_authors=len(grouped),
        records=written,
    )


def load_config(config_path: str | None = None, overrides: dict[str, Any] | None = None) -> DictConfig:
    """Load configuration from file and merge command line overrides on top."""
    base = OmegaConf.create()
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        base = OmegaConf.load(path)
    return OmegaConf.merge(base, OmegaConf.create(overrides or {}))


def build_config(args: argparse.Namespace) -> RootConfig:
    """Resolve the validated configuration for parsed arguments."""
    overrides: dict[str, Any] = {
        "source": {"path": args.input},
        "sink": {"path": args.output},
    }
    if args.format:
        overrides["sink"]["format"] = args.format
    if args.log_level:
        overrides["logging"] = {"level": args.log_level}

    config = load_config(args.config, overrides)
    return RootConfig.from_dict(**OmegaConf.to_container(config, resolve=True))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="build-db",
        description="Create a tweet-author database file from a CSV export",
    )
    parser.add_argument("-in", "--in", dest="input", required=True, help="input CSV file")
    parser.add_argument("-out", "--out", dest="output", required=True, help="output DB file")
    parser.add_argument("--config", default=None, help="optional YAML configuration file")
    parser.add_argument(
        "--format",
        choices=[f.value for f in SinkFormat],
        default=None,
        help="output file format",
    )
    parser.add_argument("--log-level", default=None, help="root log level")
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> int:
    """Run the build and return the process exit status."""
    args = parse_args(argv)

    try:
        config = build_config(args)
    except (OSError, ValueError, OmegaConfBaseException) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    config.logging.configure()
    logger.debug(f"Validated config: {config.model_dump_json(indent=2)}")

    start = time.time()
    try:
        summary = asyncio.run(main(config))
    except BuildError as e:
        logger.error(f"Build failed: {e}")
        return 1

    logger.info(
        f"Wrote {summary.records} posts from {summary.retained_authors} users "
        f"({summary.authors - summary.retained_authors} users dropped)"
    )
    logger.info(f"Workflow completed in {time.time() - start:.2f} seconds")
    return 0


def cli() -> None:
    signal.signal(signal.SIGTERM, signal_handler)
    try:
        sys.exit(run())
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting...")
        sys.exit(128 + signal.SIGINT)


if __name__ == "__main__":
    cli()
