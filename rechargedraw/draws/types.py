"""Value objects shared by the draw lifecycle components."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Union

from ..db.utils import dt_iso, parse_iso

ALL_DIGITS: frozenset[int] = frozenset(range(10))
WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def validate_digits(digits: Iterable[int]) -> frozenset[int]:
    """Return ``digits`` as a frozenset, rejecting anything outside 0-9."""
    result = set()
    for digit in digits:
        if isinstance(digit, bool) or not isinstance(digit, int):
            raise TypeError(f"eligible digit must be an int, got {digit!r}")
        if digit not in ALL_DIGITS:
            raise ValueError(f"eligible digit must be between 0 and 9, got {digit}")
        result.add(digit)
    return frozenset(result)


class DrawType(str, Enum):
    """Draw flavour; the value is the wire representation."""

    DAILY = "DAILY"
    WEEKEND_SPECIAL = "SATURDAY"

    @classmethod
    def for_date(cls, day: date) -> "DrawType":
        # Saturday and Sunday
        return cls.WEEKEND_SPECIAL if day.weekday() >= 5 else cls.DAILY


class DrawStatus(str, Enum):
    UNSCHEDULED = "UNSCHEDULED"
    SCHEDULED = "SCHEDULED"
    EXECUTING = "EXECUTING"
    COMPLETED = "COMPLETED"

    @classmethod
    def from_wire(cls, value: Optional[str]) -> "DrawStatus":
        """Map a service status onto the lifecycle.

        The service has no failure state the lifecycle models, so anything it
        reports that is neither running nor completed is treated as scheduled.
        """
        normalized = (value or "").strip().upper()
        if normalized == "COMPLETED":
            return cls.COMPLETED
        if normalized in ("EXECUTING", "RUNNING", "IN_PROGRESS"):
            return cls.EXECUTING
        return cls.SCHEDULED


class PrizeCategory(str, Enum):
    JACKPOT = "jackpot"
    SECONDARY = "secondary"
    CONSOLATION = "consolation"

    @classmethod
    def parse(cls, value: str) -> "PrizeCategory":
        normalized = (value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"unknown prize category {value!r}")


class ClaimStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ClaimStatus":
        if value is None:
            return cls.PENDING
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise ValueError(f"unknown claim status {value!r}")


@dataclass(frozen=True)
class DefaultDigits:
    """Eligibility follows the weekday default maintained by the draw service."""


@dataclass(frozen=True)
class ExplicitDigits:
    """Manually curated eligibility; may be empty or contain every digit."""

    digits: frozenset[int] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "digits", validate_digits(self.digits))


Digits = Union[DefaultDigits, ExplicitDigits]


def _pick(payload: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def _require_id(payload: Mapping[str, Any]) -> str:
    value = _pick(payload, "id", "_id", "ID")
    if value is None:
        raise ValueError("payload is missing an id")
    return str(value)


def _parse_day(value: Any) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    text = str(value).strip()
    # Accept both "YYYY-MM-DD" and full timestamps.
    if len(text) > 10:
        return parse_iso(text).date()
    return date.fromisoformat(text)


def _parse_amount(value: Any) -> Decimal:
    amount = Decimal(str(value if value is not None else 0))
    if amount < 0:
        raise ValueError(f"prize amount must not be negative, got {value!r}")
    return amount


@dataclass(frozen=True)
class Draw:
    """A draw for one calendar date as known to the draw-execution service.

    ``draw_type`` is derived from ``date`` and cannot be set independently.
    """

    id: Optional[str]
    date: date
    eligible_digits: frozenset[int]
    uses_default_digits: bool
    status: DrawStatus = DrawStatus.SCHEDULED
    total_participants: Optional[int] = None
    opted_in_participants: Optional[int] = None
    jackpot_amount: Optional[Decimal] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def draw_type(self) -> DrawType:
        return DrawType.for_date(self.date)

    @property
    def digits(self) -> Digits:
        if self.uses_default_digits:
            return DefaultDigits()
        return ExplicitDigits(self.eligible_digits)

    @property
    def config_locked(self) -> bool:
        return self.status is not DrawStatus.SCHEDULED

    def with_status(self, status: DrawStatus) -> "Draw":
        return replace(self, status=status)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Draw":
        """Build a draw from a service response (camelCase or snake_case keys)."""
        digits = _pick(payload, "eligibleDigits", "eligible_digits", default=[])
        jackpot = _pick(payload, "jackpotAmount", "jackpot_amount")
        return cls(
            id=_require_id(payload),
            date=_parse_day(_pick(payload, "drawDate", "draw_date", "date")),
            eligible_digits=validate_digits(int(d) for d in digits),
            uses_default_digits=bool(_pick(payload, "useDefault", "use_default", default=False)),
            status=DrawStatus.from_wire(_pick(payload, "status")),
            total_participants=_pick(payload, "totalParticipants", "total_participants"),
            opted_in_participants=_pick(payload, "optedInParticipants", "opted_in_participants"),
            jackpot_amount=Decimal(str(jackpot)) if jackpot is not None else None,
            error_message=_pick(payload, "errorMessage", "error_message"),
            created_at=parse_iso(_pick(payload, "createdAt", "created_at")),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "draw_date": self.date.isoformat(),
            "draw_type": self.draw_type.value,
            "eligible_digits": sorted(self.eligible_digits),
            "use_default": self.uses_default_digits,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class Winner:
    """A winner selected by the remote engine.

    Only ``claim_status`` changes after creation.
    """

    id: str
    draw_id: str
    msisdn: str
    prize_category: PrizeCategory
    prize_amount: Decimal
    is_opted_in: bool
    is_valid: bool
    claim_status: ClaimStatus
    win_date: datetime
    masked_msisdn: Optional[str] = None
    claim_date: Optional[datetime] = None
    payment_reference: Optional[str] = None

    def with_claim_status(self, status: ClaimStatus) -> "Winner":
        return replace(self, claim_status=status)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Winner":
        win_date = parse_iso(_pick(payload, "winDate", "win_date"))
        if win_date is None:
            raise ValueError("winner payload is missing winDate")
        draw_id = _pick(payload, "drawId", "draw_id")
        if draw_id is None:
            raise ValueError("winner payload is missing drawId")
        return cls(
            id=_require_id(payload),
            draw_id=str(draw_id),
            msisdn=str(_pick(payload, "msisdn", default="")),
            prize_category=PrizeCategory.parse(_pick(payload, "prizeCategory", "prize_category")),
            prize_amount=_parse_amount(_pick(payload, "prizeAmount", "prize_amount")),
            is_opted_in=bool(_pick(payload, "isOptedIn", "is_opted_in", default=False)),
            is_valid=bool(_pick(payload, "isValid", "is_valid", default=False)),
            claim_status=ClaimStatus.parse(_pick(payload, "claimStatus", "claim_status", "status")),
            win_date=win_date,
            masked_msisdn=_pick(payload, "maskedMsisdn", "masked_msisdn"),
            claim_date=parse_iso(_pick(payload, "claimDate", "claim_date")),
            payment_reference=_pick(payload, "paymentReference", "payment_reference"),
        )

    def to_json(self, *, masked: bool = True) -> dict[str, Any]:
        """Serialize for a rendering surface; MSISDNs are masked unless ``masked`` is False."""
        from .tiers import mask

        return {
            "id": self.id,
            "draw_id": self.draw_id,
            "msisdn": mask(self.msisdn) if masked else self.msisdn,
            "prize_category": self.prize_category.value,
            "prize_amount": str(self.prize_amount),
            "is_opted_in": self.is_opted_in,
            "is_valid": self.is_valid,
            "claim_status": self.claim_status.value,
            "win_date": dt_iso(self.win_date),
            "claim_date": dt_iso(self.claim_date),
            "payment_reference": self.payment_reference,
        }


@dataclass(frozen=True)
class Acknowledgement:
    """Response to an execution trigger; carries no winners."""

    draw_id: str
    message: str = ""


__all__ = [
    "ALL_DIGITS",
    "Acknowledgement",
    "ClaimStatus",
    "DefaultDigits",
    "Digits",
    "Draw",
    "DrawStatus",
    "DrawType",
    "ExplicitDigits",
    "PrizeCategory",
    "Winner",
    "validate_digits",
    "weekday_name",
]
