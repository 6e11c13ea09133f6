"""Operate a draw from the command line.

Examples::

    python scripts/run_draw.py 2025-05-03
    python scripts/run_draw.py 2025-05-03 --digits 0,5 --schedule
    python scripts/run_draw.py 2025-05-03 --execute
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from datetime import date

from rechargedraw.config import Settings
from rechargedraw.db.engine import get_sessionmaker, make_engine
from rechargedraw.draws import DrawViewModel
from rechargedraw.errors import DrawServiceError
from rechargedraw.models import Base
from rechargedraw.workflows import build_orchestrator


def _parse_digits(raw: str) -> list[int]:
    return [int(part) for part in raw.split(",") if part.strip()]


def _print_view(view: DrawViewModel) -> None:
    print(json.dumps(view.to_json(masked=True), indent=2))
    print(f"Time until draw: {view.countdown()}")


async def run(args: argparse.Namespace) -> int:
    settings = Settings.from_env()
    engine = make_engine(settings.db_url)
    Base.metadata.create_all(engine)
    orchestrator = build_orchestrator(settings, session_factory=get_sessionmaker(engine))

    try:
        await orchestrator.select_date(args.date)
        if args.all_digits:
            orchestrator.select_all()
        elif args.digits is not None:
            orchestrator.clear_all()
            for digit in _parse_digits(args.digits):
                orchestrator.toggle_digit(digit)
        if args.schedule:
            await orchestrator.schedule()
        if args.execute:
            await orchestrator.execute_now()
    except DrawServiceError as exc:
        print(f"Error during {exc.operation}: {exc.message}")
        _print_view(orchestrator.snapshot)
        return 1
    finally:
        engine.dispose()

    _print_view(orchestrator.snapshot)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Schedule, execute or inspect a draw.")
    parser.add_argument("date", type=date.fromisoformat, help="Draw date (YYYY-MM-DD)")
    parser.add_argument("--digits", help="Comma separated eligible digits (manual selection)")
    parser.add_argument("--all-digits", action="store_true", help="Make every digit eligible")
    parser.add_argument("--schedule", action="store_true", help="Schedule the draw")
    parser.add_argument("--execute", action="store_true", help="Execute the draw now")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
