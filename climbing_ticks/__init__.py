"""Mountain Project tick importer with incrementally-maintained stats."""

from .cli import main as cli_main
from .ingest import ImportStats, TickImporter
from .stats import add_ticks_to_counts
from .transform import aggregate_counts

__all__ = [
    "cli_main",
    "ImportStats",
    "TickImporter",
    "add_ticks_to_counts",
    "aggregate_counts",
]
