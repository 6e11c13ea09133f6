"""Partition winner lists into prize tiers and prepare them for display."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence

from .types import PrizeCategory, Winner

MASK_PLACEHOLDER = "****"
_MASK_HIDDEN = 4
_MASK_TAIL = 3
_MASK_MIN_LENGTH = _MASK_HIDDEN + _MASK_TAIL


@dataclass(frozen=True)
class WinnerTiers:
    """Winners grouped by prize category, each tier in source order."""

    jackpot: tuple[Winner, ...] = ()
    secondary: tuple[Winner, ...] = ()
    consolation: tuple[Winner, ...] = ()

    def __len__(self) -> int:
        return len(self.jackpot) + len(self.secondary) + len(self.consolation)

    def tier(self, category: PrizeCategory) -> tuple[Winner, ...]:
        return getattr(self, category.value)

    def all(self) -> tuple[Winner, ...]:
        return self.jackpot + self.secondary + self.consolation

    def to_json(self, *, masked: bool = True) -> dict[str, list[dict]]:
        data = {
            "jackpot": [w.to_json(masked=masked) for w in self.jackpot],
            "consolation": [w.to_json(masked=masked) for w in self.consolation],
        }
        # Secondary only appears when the engine awarded it.
        if self.secondary:
            data["secondary"] = [w.to_json(masked=masked) for w in self.secondary]
        return data


@dataclass(frozen=True)
class TierSummary:
    """Count and raw total (no currency formatting) for one tier."""

    category: PrizeCategory
    count: int
    total_amount: Decimal
    valid_count: int
    opted_in_count: int


def partition(winners: Iterable[Winner]) -> WinnerTiers:
    """Split ``winners`` by ``prize_category`` without reordering within a tier.

    Every winner lands in exactly one tier, so the tier sizes always add up to
    the number of winners supplied.
    """
    buckets: dict[PrizeCategory, list[Winner]] = {category: [] for category in PrizeCategory}
    for winner in winners:
        buckets[winner.prize_category].append(winner)
    return WinnerTiers(
        jackpot=tuple(buckets[PrizeCategory.JACKPOT]),
        secondary=tuple(buckets[PrizeCategory.SECONDARY]),
        consolation=tuple(buckets[PrizeCategory.CONSOLATION]),
    )


def summarize(tiers: WinnerTiers) -> list[TierSummary]:
    """Return one summary per prize category in jackpot, secondary, consolation order."""
    summaries = []
    for category in PrizeCategory:
        members = tiers.tier(category)
        summaries.append(
            TierSummary(
                category=category,
                count=len(members),
                total_amount=sum((w.prize_amount for w in members), Decimal(0)),
                valid_count=sum(1 for w in members if w.is_valid),
                opted_in_count=sum(1 for w in members if w.is_opted_in),
            )
        )
    return summaries


def sort_by_win_date(winners: Sequence[Winner]) -> list[Winner]:
    """Newest first; the sort is stable so same-instant winners keep source order."""
    return sorted(winners, key=lambda w: w.win_date, reverse=True)


def mask(msisdn: str) -> str:
    """Hide four digits of a phone number, keeping the prefix and the last three.

    ``mask("08031234567")`` gives ``"0803****567"``. Values shorter than seven
    characters are returned unchanged; this is display hygiene only.
    """
    if msisdn is None or len(msisdn) < _MASK_MIN_LENGTH:
        return msisdn
    head = msisdn[: len(msisdn) - _MASK_MIN_LENGTH]
    return head + MASK_PLACEHOLDER + msisdn[-_MASK_TAIL:]


def replace_winner(winners: Sequence[Winner], updated: Winner) -> list[Winner]:
    """Return ``winners`` with the entry sharing ``updated.id`` swapped in place."""
    return [updated if w.id == updated.id else w for w in winners]


__all__ = [
    "MASK_PLACEHOLDER",
    "TierSummary",
    "WinnerTiers",
    "mask",
    "partition",
    "replace_winner",
    "sort_by_win_date",
    "summarize",
]
