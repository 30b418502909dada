#!/usr/bin/env python
"""Detect sandwich attacks and front-running in a transaction file.

This script runs MEV detection over a batch of transaction records with the
following features:
- Parquet, CSV, JSON and JSON-lines input
- Thresholds from MEVSENTRY_* environment variables (or a .env file)
- Historical replay mode that evicts relative to the newest timestamp
- Markdown reporting with per-attacker statistics

Example:
    # Basic usage
    $ python scripts/detect_mev.py --input data/raw/transactions.parquet

    # Replay historical data without wall-clock eviction
    $ python scripts/detect_mev.py \
        --input data/raw/transactions.jsonl \
        --output data/results/attacks.csv \
        --eviction latest_timestamp

    # Only keep sandwiches
    $ python scripts/detect_mev.py -i transactions.parquet --attack-type sandwich
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from mevsentry.config import DetectorSettings, EvictionReference
from mevsentry.detection import DetectionResult, attacks_to_dataframe
from mevsentry.engine import MEVEngine, TransactionParseError
from mevsentry.processing.frames import load_transactions, write_frame

# Configure logging with structured format
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("scripts.detect_mev")


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="detect_mev",
        description="Detect sandwich attacks and front-running in transaction data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --input data/raw/transactions.parquet
  %(prog)s -i transactions.jsonl -o attacks.csv --eviction latest_timestamp
  %(prog)s -i transactions.parquet --attack-type frontrunning --verbose
        """,
    )

    parser.add_argument(
        "--input",
        "-i",
        dest="input_path",
        type=str,
        default="data/raw/transactions.parquet",
        help="Input transaction file (default: data/raw/transactions.parquet)",
    )

    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument(
        "--output",
        "-o",
        dest="output_path",
        type=str,
        default="data/results/mev_attacks.parquet",
        help="Output file for attack records (default: data/results/mev_attacks.parquet)",
    )
    output_group.add_argument(
        "--report",
        "-r",
        dest="report_path",
        type=str,
        default="data/results/MEV_REPORT.md",
        help="Detection report markdown file path",
    )

    detection_group = parser.add_argument_group("Detection Options")
    detection_group.add_argument(
        "--eviction",
        choices=[ref.value for ref in EvictionReference],
        default=None,
        help="Retention reference clock (default: MEVSENTRY_EVICTION_REFERENCE or wallclock)",
    )
    detection_group.add_argument(
        "--attack-type",
        choices=["sandwich", "frontrunning"],
        default=None,
        help="Only export attacks of this type",
    )

    logging_group = parser.add_argument_group("Logging Options")
    logging_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    logging_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress non-error output",
    )

    return parser


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging level based on arguments."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Verbose logging enabled")
    elif quiet:
        logging.getLogger().setLevel(logging.WARNING)


def load_settings(eviction: str | None) -> DetectorSettings:
    """Merge environment settings with command-line overrides."""
    try:
        settings = DetectorSettings.from_env()
    except ValidationError as e:
        logger.error("Invalid MEVSENTRY_* configuration: %s", e)
        raise SystemExit(1) from e
    if eviction is not None:
        settings = settings.model_copy(update={"eviction_reference": EvictionReference(eviction)})
    return settings


def generate_detection_report(result: DetectionResult, settings: DetectorSettings, elapsed_time: float) -> str:
    """Generate markdown report from detection results."""
    lines = [
        "# MEV Detection Report",
        "",
        "## Detection Configuration",
        "",
        f"- **Window**: {settings.window_seconds} seconds",
        f"- **Retention**: {settings.retention_seconds} seconds ({settings.eviction_reference})",
        f"- **Sandwich Span Limit**: {settings.sandwich_max_span_seconds} seconds",
        f"- **Front-run Gap Limit**: {settings.frontrun_max_gap_seconds} seconds",
        f"- **Processing Time**: {elapsed_time:.2f} seconds",
        "",
        "## Summary Statistics",
        "",
        f"- **Live Windows Scanned**: {result.buckets_scanned:,}",
        f"- **Transactions Analyzed**: {result.transactions_analyzed:,}",
        f"- **Sandwich Attacks**: {len(result.sandwiches):,}",
        f"- **Front-running Attacks**: {len(result.frontruns):,}",
        f"- **Unique Attackers**: {len(result.unique_attackers):,}",
        "",
    ]

    if result.attacks:
        lines.extend([
            "## Top Attacks by Estimated Profit",
            "",
            "| Rank | Type | Attacker | Victim | Profit (ETH) | Front-run Tx |",
            "|------|------|----------|--------|--------------|--------------|",
        ])

        ranked = sorted(result.attacks, key=lambda a: a.profit_eth, reverse=True)[:20]
        for rank, attack in enumerate(ranked, 1):
            lines.append(
                f"| {rank} | {attack.attack_type} | {_short(attack.attacker)} | "
                f"{_short(attack.victim)} | {attack.profit_eth} | {_short(attack.frontrun_tx)} |"
            )
        lines.append("")

        lines.extend([
            "## Detection by Attacker",
            "",
            "| Attacker | Attacks | Total Profit (ETH) |",
            "|----------|---------|--------------------|",
        ])
        attacker_stats: dict[str, dict] = {}
        for attack in result.attacks:
            stats = attacker_stats.setdefault(attack.attacker, {"count": 0, "profit_sum": Decimal("0")})
            stats["count"] += 1
            stats["profit_sum"] += attack.profit_eth

        for attacker, stats in sorted(attacker_stats.items(), key=lambda x: x[1]["count"], reverse=True):
            lines.append(f"| {_short(attacker)} | {stats['count']} | {stats['profit_sum']} |")
        lines.append("")

    return "\n".join(lines)


def _short(value: str) -> str:
    if len(value) <= 20:
        return value
    return f"{value[:10]}...{value[-8:]}"


def save_report(report: str, path: Path) -> None:
    """Save detection report to markdown file."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(report, encoding="utf-8")
        logger.info("Report saved to %s", path)
    except OSError as e:
        logger.error("Failed to save report: %s", e)


def print_summary(result: DetectionResult, output_path: Path, report_path: Path, elapsed_time: float) -> None:
    """Print detection summary to console."""
    print("\n" + "=" * 60)
    print("MEV Detection Summary")
    print("=" * 60)
    print(f"Transactions:       {result.transactions_analyzed:,}")
    print(f"Windows scanned:    {result.buckets_scanned:,}")
    print(f"Sandwiches:         {len(result.sandwiches):,}")
    print(f"Front-runs:         {len(result.frontruns):,}")
    print(f"Unique attackers:   {len(result.unique_attackers):,}")
    print(f"Processing time:    {elapsed_time:.2f}s")
    print("-" * 60)
    print(f"Results file:       {output_path}")
    print(f"Report file:        {report_path}")
    print("=" * 60 + "\n")


def main() -> int:
    """Main entry point for the detection script."""
    load_dotenv()
    parsed = create_parser().parse_args()
    setup_logging(parsed.verbose, parsed.quiet)

    input_path = Path(parsed.input_path)
    output_path = Path(parsed.output_path)
    report_path = Path(parsed.report_path)

    if not input_path.is_file():
        logger.error("Input file not found: %s", input_path)
        return 1

    settings = load_settings(parsed.eviction)

    try:
        records = load_transactions(input_path)
    except (OSError, ValueError) as e:
        logger.error("Failed to load transactions from %s: %s", input_path, e)
        return 1
    logger.info("Loaded %d transaction(s) from %s", len(records), input_path)

    start_time = time.time()
    engine = MEVEngine(settings=settings)
    try:
        for record in records:
            engine.ingest(record)
    except TransactionParseError as e:
        logger.error("Malformed transaction after %d record(s): %s", engine.ingested_count, e)
        return 1
    result = engine.analyze()
    elapsed_time = time.time() - start_time
    logger.info("Detection complete in %.2f seconds: %d attack(s)", elapsed_time, result.total_attacks)

    attacks = list(result.attacks)
    if parsed.attack_type:
        attacks = [a for a in attacks if a.attack_type == parsed.attack_type]
        logger.info("After type filter (%s): %d attack(s)", parsed.attack_type, len(attacks))

    try:
        write_frame(attacks_to_dataframe(attacks), output_path)
    except (OSError, ValueError) as e:
        logger.error("Failed to write %s: %s", output_path, e)
        return 1
    logger.info("Saved %d attack(s) to %s", len(attacks), output_path)

    save_report(generate_detection_report(result, settings, elapsed_time), report_path)

    if not parsed.quiet:
        print_summary(result, output_path, report_path, elapsed_time)

    return 0


if __name__ == "__main__":
    sys.exit(main())
