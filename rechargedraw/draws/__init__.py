"""Draw lifecycle: eligibility, tiering and the orchestrating state machine."""

from .types import (
    ClaimStatus,
    DefaultDigits,
    Digits,
    Draw,
    DrawStatus,
    DrawType,
    ExplicitDigits,
    PrizeCategory,
    Winner,
)
from .tiers import TierSummary, WinnerTiers, mask, partition, sort_by_win_date, summarize
from .eligibility import DefaultDigitsResult, EligibilityResolver
from .countdown import format_countdown
from .orchestrator import DrawLifecycleOrchestrator, DrawViewModel, TransitionRecord

__all__ = [
    "ClaimStatus",
    "DefaultDigits",
    "DefaultDigitsResult",
    "Digits",
    "Draw",
    "DrawLifecycleOrchestrator",
    "DrawStatus",
    "DrawType",
    "DrawViewModel",
    "EligibilityResolver",
    "ExplicitDigits",
    "PrizeCategory",
    "TierSummary",
    "TransitionRecord",
    "Winner",
    "WinnerTiers",
    "format_countdown",
    "mask",
    "partition",
    "sort_by_win_date",
    "summarize",
]
