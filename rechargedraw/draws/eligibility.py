"""Resolve which phone-number last digits are eligible for a draw date."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Optional

from ..errors import DegradedDefaultsError, DrawServiceError
from .types import weekday_name

if TYPE_CHECKING:
    from ..clients.draws import DrawRepositoryClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DefaultDigitsResult:
    """Default digits for a weekday.

    Attributes
    ----------
    weekday : str
        Weekday name the defaults belong to.
    digits : frozenset[int]
        Eligible last digits; empty when ``degraded``.
    error : Optional[DegradedDefaultsError]
        Set when the default-digit source could not be reached.
    """

    weekday: str
    digits: frozenset[int]
    error: Optional[DegradedDefaultsError] = None

    @property
    def degraded(self) -> bool:
        return self.error is not None


class EligibilityResolver:
    """Serve weekday default digits from the draw service.

    Results are memoized per weekday, so two dates falling on the same weekday
    always resolve to the same set. Degraded results are not memoized, so the
    next request tries the service again.
    """

    def __init__(self, client: "DrawRepositoryClient") -> None:
        self._client = client
        self._cache: dict[str, frozenset[int]] = {}

    def default_digits_for(self, day: date) -> DefaultDigitsResult:
        """Return the default digits for ``day``'s weekday without ever raising
        a service error; an unreachable source yields an empty, degraded result."""
        weekday = weekday_name(day)
        cached = self._cache.get(weekday)
        if cached is not None:
            return DefaultDigitsResult(weekday=weekday, digits=cached)

        try:
            digits = self._client.default_digits(weekday)
        except DrawServiceError as e:
            logger.warning(f"Default digits for {weekday} unavailable: {e}")
            return DefaultDigitsResult(
                weekday=weekday,
                digits=frozenset(),
                error=DegradedDefaultsError(
                    "default_digits_for", f"default digits for {weekday} unavailable: {e.message}"
                ),
            )

        self._cache[weekday] = digits
        return DefaultDigitsResult(weekday=weekday, digits=digits)

    def forget(self) -> None:
        """Drop memoized defaults, e.g. after the promotion rules change."""
        self._cache.clear()


__all__ = ["DefaultDigitsResult", "EligibilityResolver"]
