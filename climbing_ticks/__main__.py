"""Module entry point: python -m climbing_ticks ..."""

from __future__ import annotations

from climbing_ticks.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
