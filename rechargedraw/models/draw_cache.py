"""Display cache tables holding the last draws and winners seen from the services."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ..draws.types import ClaimStatus, Draw, DrawStatus, PrizeCategory, Winner
from .base import Base


class CachedDraw(Base):
    """Last known state of a draw, keyed by the service's draw id."""

    __tablename__ = "cached_draws"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    """Draw id assigned by the draw-execution service."""

    draw_date: Mapped[date] = mapped_column(Date, nullable=False)
    """Calendar date of the draw; at most one draw per date."""

    draw_type: Mapped[str] = mapped_column(String(20), nullable=False)
    eligible_digits: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    use_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    fetched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """When the row was last refreshed from the service."""

    winners: Mapped[list["CachedWinner"]] = relationship(
        back_populates="draw",
        cascade="all, delete-orphan",
        order_by="CachedWinner.position",
    )

    __table_args__ = (UniqueConstraint("draw_date"),)

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<CachedDraw(id={id}, draw_date={day}, status={status})>".format(
            id=self.id, day=self.draw_date, status=self.status
        )

    def apply(self, draw: Draw) -> None:
        self.draw_date = draw.date
        self.draw_type = draw.draw_type.value
        self.eligible_digits = sorted(draw.eligible_digits)
        self.use_default = draw.uses_default_digits
        self.status = draw.status.value
        self.fetched_at = datetime.now(timezone.utc)

    def to_draw(self) -> Draw:
        return Draw(
            id=self.id,
            date=self.draw_date,
            eligible_digits=frozenset(self.eligible_digits or ()),
            uses_default_digits=self.use_default,
            status=DrawStatus(self.status),
        )

    @classmethod
    def get_by_date(cls, session: Session, day: date) -> Optional["CachedDraw"]:
        return session.scalar(select(cls).where(cls.draw_date == day))


class CachedWinner(Base):
    """A winner row as last fetched, in the order the ledger returned it."""

    __tablename__ = "cached_winners"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    draw_id: Mapped[str] = mapped_column(
        ForeignKey("cached_draws.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    """Index in the source list; tiers preserve this order."""

    msisdn: Mapped[str] = mapped_column(String(32), nullable=False)
    prize_category: Mapped[str] = mapped_column(String(20), nullable=False)
    prize_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    is_opted_in: Mapped[bool] = mapped_column(Boolean, nullable=False)
    is_valid: Mapped[bool] = mapped_column(Boolean, nullable=False)
    claim_status: Mapped[str] = mapped_column(String(20), nullable=False)
    win_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    payment_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    draw: Mapped["CachedDraw"] = relationship(back_populates="winners")

    @classmethod
    def from_winner(cls, winner: Winner, position: int) -> "CachedWinner":
        return cls(
            id=winner.id,
            draw_id=winner.draw_id,
            position=position,
            msisdn=winner.msisdn,
            prize_category=winner.prize_category.value,
            prize_amount=winner.prize_amount,
            is_opted_in=winner.is_opted_in,
            is_valid=winner.is_valid,
            claim_status=winner.claim_status.value,
            win_date=winner.win_date,
            payment_reference=winner.payment_reference,
        )

    def to_winner(self) -> Winner:
        win_date = self.win_date
        # SQLite drops tzinfo on round-trip.
        if win_date.tzinfo is None:
            win_date = win_date.replace(tzinfo=timezone.utc)
        return Winner(
            id=self.id,
            draw_id=self.draw_id,
            msisdn=self.msisdn,
            prize_category=PrizeCategory(self.prize_category),
            prize_amount=Decimal(self.prize_amount),
            is_opted_in=self.is_opted_in,
            is_valid=self.is_valid,
            claim_status=ClaimStatus(self.claim_status),
            win_date=win_date,
            payment_reference=self.payment_reference,
        )
