from __future__ import annotations

import argparse

from sqlalchemy import inspect

from rechargedraw.db.engine import make_engine
from rechargedraw.models import Base


def create_tables(database_url: str | None = None, reset: bool = False) -> None:
    """Create the display cache tables, optionally dropping them first."""
    engine = make_engine(database_url)
    if reset:
        Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    insp = inspect(engine)
    print("Current tables:", ", ".join(sorted(insp.get_table_names())))


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the draw display cache schema.")
    parser.add_argument("--db-url", help="Database URL (defaults to DB_URL or ./draw_cache.db)")
    parser.add_argument("--reset", action="store_true", help="Drop existing cache tables first")
    args = parser.parse_args()
    create_tables(args.db_url, reset=args.reset)


if __name__ == "__main__":
    main()
