"""Command-line interface for raritygen."""

import argparse
import sys

from raritygen import __version__
from raritygen.config import RankSettings
from raritygen.engine import RankedComposite, ScoringStrategy
from raritygen.generator import RarityGenerator, RunStatus
from raritygen.logging_config import configure_logging
from raritygen.store import CollectionNotFoundError, JsonFileStore

EXIT_OK = 0
EXIT_INVALID_CONFIGURATION = 1
EXIT_NOT_FOUND = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="raritygen",
        description="Rank the composites of a collection group by rarity",
    )
    parser.add_argument("--project", required=True, help="Project ID")
    parser.add_argument("--collection", required=True, help="Collection ID")
    parser.add_argument("--group", required=True, help="Composite group ID")
    parser.add_argument(
        "--store-dir",
        default=None,
        help="Root of the file-backed store (default: RANK_STORE_DIR or ./data)",
    )
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in ScoringStrategy],
        default=None,
        help="Scoring strategy (default: RANK_SCORING_STRATEGY or frequency)",
    )
    parser.add_argument("--legendary", default=None, help="Number of Legendary composites")
    parser.add_argument("--rare", default=None, help="Number of Rare composites")
    parser.add_argument("--uncommon", default=None, help="Number of Uncommon composites")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the ranking without writing it back",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL or INFO)")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Log format (default: LOG_FORMAT or text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def _print_ranking(ranked: list[RankedComposite]) -> None:
    for r in ranked:
        print(f"{r.position + 1:>6}  {r.composite_id}  {r.score:.4f}  {r.tier.value}")


def main(args: list[str] | None = None) -> int:
    """Run one ranking.

    Args:
        args: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0 for success).
    """
    parsed = build_parser().parse_args(args)
    configure_logging(level=parsed.log_level, format_type=parsed.log_format)

    overrides = {
        "legendary": parsed.legendary,
        "rare": parsed.rare,
        "uncommon": parsed.uncommon,
        "scoring_strategy": parsed.strategy,
        "store_dir": parsed.store_dir,
    }
    settings = RankSettings(**{k: v for k, v in overrides.items() if v is not None})

    store = JsonFileStore(settings.store_dir)
    generator = RarityGenerator(
        parsed.project,
        parsed.collection,
        parsed.group,
        store=store,
        collections=store,
        settings=settings,
    )

    try:
        report = generator.dry_run() if parsed.dry_run else generator.run()
    except CollectionNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_NOT_FOUND

    if report.status == RunStatus.INVALID_CONFIGURATION:
        print(f"Error: {report.error}", file=sys.stderr)
        return EXIT_INVALID_CONFIGURATION
    if report.status == RunStatus.EMPTY_POPULATION:
        print("No composites to rank")
        return EXIT_OK

    _print_ranking(report.ranked)
    if parsed.dry_run:
        print(f"Ranked {len(report.ranked)} composites (dry run, nothing saved)")
        return EXIT_OK
    print(
        f"Ranked {len(report.ranked)} composites, "
        f"{len(report.results) - report.failed_count} saved, {report.failed_count} failed"
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
