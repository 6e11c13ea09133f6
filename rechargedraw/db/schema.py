"""Detect and repair drift between the display cache models and a database."""

from __future__ import annotations

import logging
from typing import Any

from alembic.autogenerate import compare_metadata
from alembic.runtime.migration import MigrationContext
from sqlalchemy.engine import Engine

from ..models import Base

logger = logging.getLogger(__name__)

CACHE_TABLE_PREFIX = "cached_"


def _cache_objects_only(obj, name, type_, reflected, compare_to) -> bool:
    # Other tables may share the database; only cache tables are ours.
    if type_ == "table":
        return bool(name) and name.startswith(CACHE_TABLE_PREFIX)
    table = getattr(obj, "table", None)
    return table is None or table.name.startswith(CACHE_TABLE_PREFIX)


def describe_diff(diff: Any) -> str:
    """Render one alembic diff entry as ``"<kind> <target>"``."""
    if isinstance(diff, list):
        # Column modifications arrive grouped: (kind, schema, table, column, ...)
        return "; ".join(f"{d[0]} {d[2]}.{d[3]}" for d in diff)
    kind, target = diff[0], diff[1]
    if kind in ("add_column", "remove_column"):
        return f"{kind} {diff[2]}.{diff[3].name}"
    return f"{kind} {getattr(target, 'name', target)}"


def cache_drift(engine: Engine) -> list[str]:
    """Return the differences between the cache models and ``engine``'s schema.

    An empty list means the cache tables match the models.
    """
    with engine.connect() as connection:
        context = MigrationContext.configure(
            connection=connection,
            opts={"compare_type": True, "include_object": _cache_objects_only},
        )
        diffs = compare_metadata(context, Base.metadata)
    return [describe_diff(diff) for diff in diffs]


def rebuild_cache(engine: Engine) -> None:
    """Drop and recreate the cache tables; cached rows are discarded."""
    logger.warning(f"Rebuilding display cache tables on {engine.url.render_as_string(hide_password=True)}")
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)


__all__ = ["cache_drift", "describe_diff", "rebuild_cache"]
