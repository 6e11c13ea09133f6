"""State machine driving a draw from configuration through to its winners."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, TypeVar, Union

from sqlalchemy.exc import SQLAlchemyError

from ..config import DEFAULT_SETTLE_DELAY
from ..errors import ConflictError, DrawServiceError, NotFoundError
from .countdown import draw_instant, format_countdown
from .eligibility import EligibilityResolver
from .tiers import TierSummary, WinnerTiers, partition, replace_winner, summarize
from .types import (
    ALL_DIGITS,
    ClaimStatus,
    DefaultDigits,
    Digits,
    Draw,
    DrawStatus,
    DrawType,
    ExplicitDigits,
    Winner,
    validate_digits,
    weekday_name,
)

if TYPE_CHECKING:
    from ..clients.draws import DrawRepositoryClient
    from ..clients.winners import WinnerRepositoryClient
    from .cache import DisplayCache

logger = logging.getLogger(__name__)

T = TypeVar("T")
Subscriber = Callable[["DrawViewModel"], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DrawViewModel:
    """Read-only snapshot of the orchestrator, as handed to the presentation layer."""

    selected_date: Optional[date]
    day_of_week: Optional[str]
    draw_type: Optional[DrawType]
    draw_id: Optional[str]
    eligible_digits: frozenset[int]
    uses_default_digits: bool
    config_locked: bool
    draw_status: DrawStatus
    winner_tiers: WinnerTiers
    tier_summaries: tuple[TierSummary, ...]
    next_draw_at: Optional[datetime]
    defaults_degraded: bool
    last_error: Optional[DrawServiceError]

    def countdown(self, now: Optional[datetime] = None) -> str:
        if self.next_draw_at is None:
            return "00:00:00"
        return format_countdown(self.next_draw_at, now or _utcnow())

    def to_json(self, *, masked: bool = True) -> dict[str, Any]:
        return {
            "selected_date": self.selected_date.isoformat() if self.selected_date else None,
            "day_of_week": self.day_of_week,
            "draw_type": self.draw_type.value if self.draw_type else None,
            "draw_id": self.draw_id,
            "eligible_digits": sorted(self.eligible_digits),
            "uses_default_digits": self.uses_default_digits,
            "config_locked": self.config_locked,
            "draw_status": self.draw_status.value,
            "winner_tiers": self.winner_tiers.to_json(masked=masked),
            "tier_summaries": [
                {
                    "category": s.category.value,
                    "count": s.count,
                    "total_amount": str(s.total_amount),
                }
                for s in self.tier_summaries
            ],
            "next_draw_at": self.next_draw_at.isoformat() if self.next_draw_at else None,
            "defaults_degraded": self.defaults_degraded,
            "last_error": self.last_error.to_json() if self.last_error else None,
        }


@dataclass(frozen=True)
class TransitionRecord:
    """One entry of the lifecycle audit trail."""

    draw_date: date
    draw_id: Optional[str]
    from_status: DrawStatus
    to_status: DrawStatus
    reason: str
    at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class _Ticket:
    """Identifies the selection an in-flight operation was started for."""

    generation: int
    draw_date: date


class DrawLifecycleOrchestrator:
    """Owns the draw view model for one selected date at a time.

    Commands are coroutines meant to be awaited from a single event loop.
    Selecting a date while an execution is still settling does not cancel the
    execution; its late results are simply dropped because they no longer
    match the current selection.

    Parameters
    ----------
    draws : DrawRepositoryClient
        Client for the draw-execution service.
    winners : WinnerRepositoryClient
        Client for the winner ledger.
    resolver : Optional[EligibilityResolver], default: None
        Default-digit resolver; built on ``draws`` when omitted.
    cache : Optional[DisplayCache], default: None
        Display cache written after successful winner fetches and read when a
        fetch fails.
    settle_delay : float
        Seconds to wait after triggering execution before fetching winners.
    draw_time : Optional[datetime.time]
        Time of day draws take place; used for the countdown.
    sleep : Callable[[float], Awaitable[None]], default: asyncio.sleep
        Coroutine used for the settling delay; tests inject their own.
    clock : Callable[[], datetime]
        Source of the current time for the audit trail.
    """

    def __init__(
        self,
        draws: "DrawRepositoryClient",
        winners: "WinnerRepositoryClient",
        *,
        resolver: Optional[EligibilityResolver] = None,
        cache: Optional["DisplayCache"] = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        draw_time: Optional[time] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if settle_delay < 0:
            raise ValueError("settle_delay must not be negative")
        self._draws = draws
        self._winners = winners
        self._resolver = resolver or EligibilityResolver(draws)
        self._cache = cache
        self._settle_delay = settle_delay
        self._draw_time = draw_time
        self._sleep = sleep
        self._clock = clock

        self._generation = 0
        self._date: Optional[date] = None
        self._draw: Optional[Draw] = None
        self._status = DrawStatus.UNSCHEDULED
        self._digits: Digits = DefaultDigits()
        self._default_digits: frozenset[int] = frozenset()
        self._defaults_degraded = False
        self._winner_list: list[Winner] = []
        self._last_error: Optional[DrawServiceError] = None

        self._subscribers: list[Subscriber] = []
        self._transitions: list[TransitionRecord] = []
        self._snapshot = self._build_snapshot()

    # -------- read side --------
    @property
    def snapshot(self) -> DrawViewModel:
        return self._snapshot

    @property
    def transitions(self) -> tuple[TransitionRecord, ...]:
        return tuple(self._transitions)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Call ``callback`` with every new snapshot; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # -------- lifecycle commands --------
    async def select_date(self, day: date) -> DrawViewModel:
        """Load the state of ``day`` from the draw service.

        A missing draw leaves the date unscheduled with the weekday defaults
        pre-selected; a completed draw has its winners fetched straight away.
        """
        self._generation += 1
        ticket = _Ticket(self._generation, day)
        previous = self._status
        self._date = day
        self._draw = None
        self._status = DrawStatus.UNSCHEDULED
        self._digits = DefaultDigits()
        self._winner_list = []
        self._last_error = None
        self._defaults_degraded = False

        defaults = await self._call(self._resolver.default_digits_for, day)
        if not self._is_current(ticket):
            return self._snapshot
        self._default_digits = defaults.digits
        if defaults.degraded:
            self._defaults_degraded = True
            self._last_error = defaults.error

        try:
            draw: Optional[Draw] = await self._call(self._draws.find_by_date, day)
        except NotFoundError:
            draw = None
        except DrawServiceError as e:
            return self._surface(ticket, e)
        if not self._is_current(ticket):
            return self._snapshot

        if draw is None:
            self._record(previous, DrawStatus.UNSCHEDULED, "select_date")
            return self._publish()

        self._adopt(draw)
        self._record(previous, draw.status, "select_date")
        if draw.status is DrawStatus.COMPLETED:
            await self._load_winners(ticket, draw)
            if not self._is_current(ticket):
                return self._snapshot
        return self._publish()

    async def schedule(self) -> DrawViewModel:
        """Persist a draw for the selected date with the current digit configuration."""
        day = self._require_date()
        self._last_error = None
        if self._draw is not None:
            logger.info(f"Draw {self._draw.id} for {day.isoformat()} is already scheduled")
            return self._publish()
        ticket = _Ticket(self._generation, day)
        try:
            await self._ensure_draw(ticket, "schedule")
        except DrawServiceError as e:
            return self._surface(ticket, e)
        return self._publish()

    async def execute_now(self) -> DrawViewModel:
        """Run the draw for the selected date and read back its winners.

        An unscheduled date is scheduled first, so execution is never
        requested without a persisted draw. After the trigger the orchestrator
        waits once for the settling delay and fetches winners once; if they
        are not ready the error is surfaced and :meth:`refresh_winners` can be
        used to try again.
        """
        day = self._require_date()
        self._last_error = None
        if self._status in (DrawStatus.EXECUTING, DrawStatus.COMPLETED):
            logger.info(f"Draw for {day.isoformat()} is already {self._status.value.lower()}")
            return self._publish()
        ticket = _Ticket(self._generation, day)

        try:
            draw = await self._ensure_draw(ticket, "execute_now")
        except DrawServiceError as e:
            return self._surface(ticket, e)
        if draw is None:
            return self._snapshot
        if draw.status is not DrawStatus.SCHEDULED:
            # Already run elsewhere; only the winners are missing.
            await self._load_winners(ticket, draw)
            return self._publish()

        if self._digits != draw.digits:
            # The engine runs with the stored configuration; push local edits first.
            try:
                draw = await self._call(self._draws.update, draw.id, self._digits)
            except DrawServiceError as e:
                return self._surface(ticket, e)
            if not self._is_current(ticket):
                self._discard(ticket, "update")
                return self._snapshot
            self._adopt(draw)
            if draw.status is not DrawStatus.SCHEDULED:
                await self._load_winners(ticket, draw)
                return self._publish()

        self._transition(DrawStatus.EXECUTING, "execute_now")
        self._publish()

        try:
            await self._call(self._draws.execute, draw.id)
        except DrawServiceError as e:
            if self._is_current(ticket):
                # The service keeps the draw scheduled when execution fails.
                self._transition(DrawStatus.SCHEDULED, "execute_failed")
            return self._surface(ticket, e)
        if not self._is_current(ticket):
            self._discard(ticket, "execute")
            return self._snapshot

        await self._sleep(self._settle_delay)
        if not self._is_current(ticket):
            self._discard(ticket, "settle")
            return self._snapshot

        await self._load_winners(ticket, draw)
        if not self._is_current(ticket):
            return self._snapshot
        return self._publish()

    async def refresh_winners(self) -> DrawViewModel:
        """Fetch winners again for an executing or completed draw."""
        day = self._require_date()
        self._last_error = None
        draw = self._draw
        if draw is None or self._status not in (DrawStatus.EXECUTING, DrawStatus.COMPLETED):
            logger.info(f"No executed draw for {day.isoformat()}; nothing to refresh")
            return self._publish()
        await self._load_winners(_Ticket(self._generation, day), draw)
        return self._publish()

    async def save_config(self) -> DrawViewModel:
        """Push the local digit configuration to a scheduled draw."""
        if self._draw is None or self._config_locked():
            return self._snapshot
        self._last_error = None
        ticket = _Ticket(self._generation, self._draw.date)
        try:
            draw = await self._call(self._draws.update, self._draw.id, self._digits)
        except DrawServiceError as e:
            return self._surface(ticket, e)
        if not self._is_current(ticket):
            self._discard(ticket, "update")
            return self._snapshot
        self._adopt(draw)
        return self._publish()

    async def update_winner_status(self, winner_id: str, status: Union[ClaimStatus, str]) -> Winner:
        """Change a winner's claim status; any status may follow any other."""
        self._last_error = None
        ticket = _Ticket(self._generation, self._date) if self._date else None
        try:
            winner = await self._call(self._winners.update_status, winner_id, status)
        except DrawServiceError as e:
            self._last_error = e
            self._publish()
            raise

        if ticket is None or self._is_current(ticket):
            if any(w.id == winner.id for w in self._winner_list):
                self._set_winners(replace_winner(self._winner_list, winner))
            self._publish()
        if self._cache is not None:
            await self._cache_call("update_winner", self._cache.update_winner, winner)
        return winner

    # -------- configuration (lock-aware, synchronous) --------
    def toggle_digit(self, digit: int) -> DrawViewModel:
        (digit,) = validate_digits([digit])
        if self._config_locked():
            return self._snapshot
        current = set(self._effective_digits())
        current ^= {digit}
        return self._set_digits(ExplicitDigits(frozenset(current)))

    def select_all(self) -> DrawViewModel:
        if self._config_locked():
            return self._snapshot
        return self._set_digits(ExplicitDigits(ALL_DIGITS))

    def clear_all(self) -> DrawViewModel:
        if self._config_locked():
            return self._snapshot
        return self._set_digits(ExplicitDigits(frozenset()))

    def use_default_toggle(self, enabled: Optional[bool] = None) -> DrawViewModel:
        """Switch between the weekday default and a manual selection.

        Turning the default off keeps the digits currently shown as the
        starting point for manual edits.
        """
        if self._config_locked():
            return self._snapshot
        if enabled is None:
            enabled = not isinstance(self._digits, DefaultDigits)
        if enabled:
            return self._set_digits(DefaultDigits())
        return self._set_digits(ExplicitDigits(self._effective_digits()))

    # -------- internals --------
    async def _call(self, fn: Callable[..., T], *args: Any) -> T:
        # Clients are blocking; keep the event loop free while they run.
        return await asyncio.to_thread(fn, *args)

    async def _cache_call(self, action: str, fn: Callable[..., T], *args: Any) -> Optional[T]:
        """Run a display cache operation; failures are logged and yield ``None``."""
        try:
            return await self._call(fn, *args)
        except SQLAlchemyError:
            logger.exception(f"Display cache {action} failed")
            return None

    def _require_date(self) -> date:
        if self._date is None:
            raise ValueError("Select a draw date first")
        return self._date

    def _is_current(self, ticket: _Ticket) -> bool:
        return ticket.generation == self._generation and ticket.draw_date == self._date

    def _discard(self, ticket: _Ticket, stage: str) -> None:
        logger.warning(
            f"Discarding {stage} result for {ticket.draw_date.isoformat()}; "
            f"selection changed to {self._date.isoformat() if self._date else 'none'}"
        )

    def _surface(self, ticket: _Ticket, error: DrawServiceError) -> DrawViewModel:
        """Record ``error`` and re-raise it when it belongs to the current selection."""
        if not self._is_current(ticket):
            logger.warning(f"Ignoring {error.operation} error for stale selection: {error}")
            return self._snapshot
        logger.error(f"{error.operation} failed for {ticket.draw_date.isoformat()}: {error.message}")
        self._last_error = error
        self._publish()
        raise error

    async def _ensure_draw(self, ticket: _Ticket, reason: str) -> Optional[Draw]:
        """Return the persisted draw for the ticket's date, creating it if needed.

        The service decides uniqueness per date: a conflict on create means
        another caller got there first, so the existing draw is looked up and
        used. Returns ``None`` if the selection changed meanwhile.
        """
        if self._draw is not None:
            return self._draw
        day = ticket.draw_date
        digits = self._digits
        try:
            draw: Optional[Draw] = await self._call(self._draws.find_by_date, day)
        except NotFoundError:
            draw = None
        if draw is None:
            try:
                draw = await self._call(self._draws.create, day, DrawType.for_date(day), digits)
            except ConflictError:
                logger.info(f"Draw for {day.isoformat()} already exists; loading it")
                draw = await self._call(self._draws.find_by_date, day)
        if not self._is_current(ticket):
            self._discard(ticket, reason)
            return None
        previous = self._status
        self._adopt(draw)
        self._record(previous, draw.status, reason)
        return draw

    async def _load_winners(self, ticket: _Ticket, draw: Draw) -> None:
        try:
            winners = await self._call(self._winners.fetch_by_draw, draw.id)
        except DrawServiceError as e:
            if self._is_current(ticket) and self._cache is not None:
                cached = await self._cache_call("load_winners", self._cache.load_winners, draw.id)
                if cached is not None and self._is_current(ticket):
                    logger.info(f"Showing {len(cached)} cached winners for draw {draw.id}")
                    self._set_winners(cached)
            self._surface(ticket, e)
            return
        if not self._is_current(ticket):
            self._discard(ticket, "fetch_by_draw")
            return

        self._set_winners(winners)
        if self._status is not DrawStatus.COMPLETED:
            self._transition(DrawStatus.COMPLETED, "winners_retrieved")
        self._draw = (self._draw or draw).with_status(DrawStatus.COMPLETED)
        if self._cache is not None:
            await self._cache_call("store_winners", self._cache.store_winners, self._draw, winners)

    def _adopt(self, draw: Draw) -> None:
        self._draw = draw
        self._status = draw.status
        self._digits = draw.digits
        if draw.uses_default_digits and self._defaults_degraded and draw.eligible_digits:
            # Fall back to what the service stored when defaults could not be read.
            self._default_digits = draw.eligible_digits

    def _transition(self, status: DrawStatus, reason: str) -> None:
        self._record(self._status, status, reason)
        self._status = status
        if self._draw is not None:
            self._draw = self._draw.with_status(status)

    def _record(self, from_status: DrawStatus, to_status: DrawStatus, reason: str) -> None:
        record = TransitionRecord(
            draw_date=self._require_date(),
            draw_id=self._draw.id if self._draw else None,
            from_status=from_status,
            to_status=to_status,
            reason=reason,
            at=self._clock(),
        )
        self._transitions.append(record)
        logger.info(
            f"Draw {self._date.isoformat()}: {from_status.value} -> {to_status.value} ({reason})"
        )

    def _config_locked(self) -> bool:
        return self._status in (DrawStatus.EXECUTING, DrawStatus.COMPLETED)

    def _effective_digits(self) -> frozenset[int]:
        if isinstance(self._digits, ExplicitDigits):
            return self._digits.digits
        return self._default_digits

    def _set_digits(self, digits: Digits) -> DrawViewModel:
        self._last_error = None
        self._digits = digits
        return self._publish()

    def _set_winners(self, winners: list[Winner]) -> None:
        self._winner_list = list(winners)

    def _build_snapshot(self) -> DrawViewModel:
        day = self._date
        tiers = partition(self._winner_list)
        return DrawViewModel(
            selected_date=day,
            day_of_week=weekday_name(day) if day else None,
            draw_type=DrawType.for_date(day) if day else None,
            draw_id=self._draw.id if self._draw else None,
            eligible_digits=self._effective_digits(),
            uses_default_digits=isinstance(self._digits, DefaultDigits),
            config_locked=self._config_locked(),
            draw_status=self._status,
            winner_tiers=tiers,
            tier_summaries=tuple(summarize(tiers)),
            next_draw_at=draw_instant(day, self._draw_time) if day and self._draw_time else None,
            defaults_degraded=self._defaults_degraded,
            last_error=self._last_error,
        )

    def _publish(self) -> DrawViewModel:
        self._snapshot = self._build_snapshot()
        for callback in list(self._subscribers):
            try:
                callback(self._snapshot)
            except Exception:
                logger.exception("Snapshot subscriber failed")
        return self._snapshot


__all__ = [
    "DrawLifecycleOrchestrator",
    "DrawViewModel",
    "TransitionRecord",
]
