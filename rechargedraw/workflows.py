from datetime import date
from typing import TYPE_CHECKING, Optional

from .clients.draws import DrawRepositoryClient
from .clients.winners import WinnerRepositoryClient
from .config import Settings
from .draws.cache import DisplayCache
from .draws.orchestrator import DrawLifecycleOrchestrator
from .draws.tiers import sort_by_win_date
from .draws.types import ClaimStatus, DrawType, Winner

if TYPE_CHECKING:
    from sqlalchemy.orm import sessionmaker


def build_orchestrator(
    settings: Optional[Settings] = None,
    *,
    session_factory: Optional["sessionmaker"] = None,
    draws: Optional[DrawRepositoryClient] = None,
    winners: Optional[WinnerRepositoryClient] = None,
) -> DrawLifecycleOrchestrator:
    """Wire an orchestrator from settings.

    Parameters
    ----------
    settings : Optional[Settings]
        Runtime configuration. Read from the environment when omitted.
    session_factory : Optional[sessionmaker]
        Session factory for the display cache. When omitted the cache is
        disabled; pass one from :func:`rechargedraw.db.engine.get_sessionmaker`
        to enable it.
    draws : Optional[DrawRepositoryClient]
        Pre-configured draw client. A default one is created from ``settings``.
    winners : Optional[WinnerRepositoryClient]
        Pre-configured winner client. A default one is created from ``settings``.

    Returns
    -------
    DrawLifecycleOrchestrator
        Orchestrator with no date selected yet.
    """
    settings = settings or Settings.from_env()
    draws = draws or DrawRepositoryClient(settings)
    winners = winners or WinnerRepositoryClient(settings)
    cache = DisplayCache(session_factory) if session_factory is not None else None
    return DrawLifecycleOrchestrator(
        draws,
        winners,
        cache=cache,
        settle_delay=settings.settle_delay,
        draw_time=settings.draw_time,
    )


def fetch_winner_history(
    client: WinnerRepositoryClient,
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[ClaimStatus] = None,
    draw_type: Optional[DrawType] = None,
) -> list[Winner]:
    """Return winners across draws, newest first.

    Filters are applied by the winner ledger. ``start_date`` must not be after
    ``end_date``.
    """
    if start_date is not None and end_date is not None and start_date > end_date:
        raise ValueError("start_date must not be after end_date")
    winners = client.list_winners(
        start_date=start_date,
        end_date=end_date,
        status=status,
        draw_type=draw_type,
    )
    return sort_by_win_date(winners)
