"""Local display cache for draws and winners."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from sqlalchemy import delete
from sqlalchemy.orm import sessionmaker

from ..models.draw_cache import CachedDraw, CachedWinner
from .types import Draw, Winner

logger = logging.getLogger(__name__)


class DisplayCache:
    """Keeps the most recent draw and winner data for rendering.

    The cache is never the source of truth: it is written after successful
    service calls and read only when the winner ledger cannot be reached.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def store_draw(self, draw: Draw) -> None:
        if draw.id is None:
            raise ValueError("Only persisted draws can be cached")
        with self._session_factory.begin() as session:
            # A draw id for a date can change if the service recreated it.
            stale = CachedDraw.get_by_date(session, draw.date)
            if stale is not None and stale.id != draw.id:
                session.delete(stale)
                session.flush()
            row = session.get(CachedDraw, draw.id)
            if row is None:
                row = CachedDraw(id=draw.id)
                session.add(row)
            row.apply(draw)

    def store_winners(self, draw: Draw, winners: Sequence[Winner]) -> None:
        """Replace the cached winner list of ``draw`` with ``winners``."""
        self.store_draw(draw)
        with self._session_factory.begin() as session:
            session.execute(delete(CachedWinner).where(CachedWinner.draw_id == draw.id))
            session.add_all(
                CachedWinner.from_winner(winner, position) for position, winner in enumerate(winners)
            )
        logger.debug(f"Cached {len(winners)} winners for draw {draw.id}")

    def load_winners(self, draw_id: str) -> Optional[list[Winner]]:
        """Return cached winners in source order, or ``None`` if the draw was never cached."""
        with self._session_factory() as session:
            row = session.get(CachedDraw, draw_id)
            if row is None:
                return None
            return [cached.to_winner() for cached in row.winners]

    def load_draw(self, draw_id: str) -> Optional[Draw]:
        with self._session_factory() as session:
            row = session.get(CachedDraw, draw_id)
            return row.to_draw() if row is not None else None

    def update_winner(self, winner: Winner) -> bool:
        """Refresh a single cached winner's claim details; returns False if not cached."""
        with self._session_factory.begin() as session:
            row = session.get(CachedWinner, winner.id)
            if row is None:
                return False
            row.claim_status = winner.claim_status.value
            row.payment_reference = winner.payment_reference
            return True


__all__ = ["DisplayCache"]
