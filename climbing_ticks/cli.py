"""Command line interface for importing ticks and maintaining stats."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from . import config
from .api import ApiError, MountainProjectClient
from .convert import ValidationError
from .ingest import TickImporter
from .models import RouteType, TickStyle
from .storage import CachedDataError, DocumentStore
from .transform import export_ticks

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mountain Project tick importer and stats")
    parser.add_argument(
        "command",
        choices=["import", "reimport", "rebuild", "delete-tick", "stats", "export"],
        help="Operation to execute",
    )
    parser.add_argument("--db", dest="db_path", default=str(config.DEFAULT_DATABASE_PATH), help="SQLite database path")
    parser.add_argument("--user", dest="user_id", default=config.DEFAULT_USER_ID, help="User whose documents are used")
    parser.add_argument("--email", dest="email", default=os.environ.get(config.EMAIL_ENV_VAR), help="Mountain Project account email")
    parser.add_argument("--key", dest="key", default=os.environ.get(config.API_KEY_ENV_VAR), help="Mountain Project Data API key")
    parser.add_argument("--sleep", dest="sleep_seconds", type=float, default=config.DEFAULT_SLEEP_SECONDS, help="Sleep duration between API requests")
    parser.add_argument("--route-id", dest="route_id", type=int, default=None, help="Route of the tick to delete")
    parser.add_argument("--tick-id", dest="tick_id", type=int, default=None, help="Tick to delete")
    parser.add_argument("--top", dest="top", type=int, default=10, help="Number of entries shown per stats table")
    parser.add_argument("--output", dest="output_dir", default=str(config.EXPORT_DATA_DIR), help="Output directory for exports")
    parser.add_argument("--verbose", dest="verbose", action="store_true", help="Enable verbose logging")
    return parser.parse_args(argv)


def _print_table(title: str, values: dict, top: int, label=str) -> None:
    print(f"### {title}")
    for key, value in sorted(values.items(), key=lambda item: item[1], reverse=True)[:top]:
        print(f"{label(key):<40} {value:>6}")
    print()


def _print_stats(importer: TickImporter, top: int) -> None:
    counts = importer.load_counts()
    print(f"ticks={sum(counts.date_ticks.values())}, pitches={sum(counts.date_pitches.values())}, "
          f"first ticks={sum(counts.date_first_ticks.values())}")
    print()
    _print_table("Top routes", counts.route_ticks, top, lambda key: key.split("|", 1)[-1])
    _print_table("Regions", counts.region_ticks, top)
    _print_table("Grades", counts.grade_ticks, top)
    _print_table("Route types", counts.route_type_ticks, top, lambda key: RouteType(key).name.title())
    _print_table("Styles", counts.tick_style_ticks, top, lambda key: TickStyle(key).label)


def _export(importer: TickImporter, output_dir: Path) -> None:
    export_ticks(importer.load_all_routes(), output_dir / "ticks.csv")
    for kind in ("ticks", "routes"):
        path = output_dir / f"imported_{kind}.json"
        items = importer.load_imported_items(kind)
        path.write_text(json.dumps(items, indent=2), encoding="utf-8")
        logger.info("Wrote %s imported %s to %s", len(items), kind, path)


def _require(args: argparse.Namespace, *names: str) -> None:
    missing = [name for name in names if getattr(args, name) is None]
    if missing:
        raise ValueError(f"{args.command} requires --{', --'.join(n.replace('_', '-') for n in missing)}")


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)

    store = DocumentStore(args.db_path)
    store.initialize()
    client = MountainProjectClient(sleep_seconds=args.sleep_seconds)
    importer = TickImporter(store, args.user_id, client=client)

    try:
        if args.command in ("import", "reimport"):
            _require(args, "email", "key")
            importer.import_ticks(args.email, args.key, reimport=args.command == "reimport")
            return 0

        if args.command == "rebuild":
            importer.rebuild_counts()
            return 0

        if args.command == "delete-tick":
            _require(args, "route_id", "tick_id")
            importer.delete_tick(args.route_id, args.tick_id)
            return 0

        if args.command == "stats":
            _print_stats(importer, args.top)
            return 0

        if args.command == "export":
            _export(importer, Path(args.output_dir))
            return 0
    except (ApiError, ValidationError, CachedDataError, KeyError, ValueError) as err:
        logger.error("%s failed: %s", args.command, err)
        return 1

    raise ValueError(f"Unsupported command: {args.command}")


if __name__ == "__main__":
    sys.exit(main())
