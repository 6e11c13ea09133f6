"""Check that the display cache tables match the models.

Exit status is 0 when they match, 1 when they drift (0 again after a
successful ``--reset``) and 2 when the database cannot be inspected.
"""

from __future__ import annotations

import argparse
import sys

from sqlalchemy.exc import SQLAlchemyError

from rechargedraw.db.engine import make_engine
from rechargedraw.db.schema import cache_drift, rebuild_cache


def main() -> int:
    parser = argparse.ArgumentParser(description="Compare the display cache schema with the models.")
    parser.add_argument("--db-url", help="Database URL (defaults to DB_URL or ./draw_cache.db)")
    parser.add_argument("--reset", action="store_true", help="Rebuild the cache tables when they drift")
    args = parser.parse_args()

    engine = make_engine(args.db_url)
    where = engine.url.render_as_string(hide_password=True)
    try:
        drift = cache_drift(engine)
        if not drift:
            print(f"Display cache schema matches the models ({where}).")
            return 0
        print(f"Display cache schema drifted ({where}):")
        for line in drift:
            print(f"  - {line}")
        if not args.reset:
            print("Run with --reset to rebuild the cache; cached rows are disposable.")
            return 1
        rebuild_cache(engine)
        print("Cache tables rebuilt.")
        return 0
    except SQLAlchemyError as exc:
        print(f"Could not inspect {where}: {exc}", file=sys.stderr)
        return 2
    finally:
        engine.dispose()


if __name__ == "__main__":
    raise SystemExit(main())
