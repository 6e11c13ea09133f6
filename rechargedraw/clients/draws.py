import logging
from datetime import date
from typing import Any

from ..draws.types import (
    Acknowledgement,
    DefaultDigits,
    Digits,
    Draw,
    DrawType,
    ExplicitDigits,
    validate_digits,
    weekday_name,
)
from ..errors import NotFoundError
from .http import ServiceClient, parse_payload

logger = logging.getLogger(__name__)


def digits_payload(digits: Digits) -> dict[str, Any]:
    """Wire fields for a digit configuration.

    Default eligibility omits ``eligible_digits`` entirely so the service
    applies its own weekday default.
    """
    if isinstance(digits, DefaultDigits):
        return {"use_default": True}
    if isinstance(digits, ExplicitDigits):
        return {"eligible_digits": sorted(digits.digits), "use_default": False}
    raise TypeError(f"unsupported digit configuration: {digits!r}")


class DrawRepositoryClient(ServiceClient):
    """Client for the remote draw-execution service."""

    def find_by_date(self, day: date) -> Draw:
        """Return the draw for ``day``; raises :class:`NotFoundError` when none exists."""
        payload = self._request("find_by_date", "GET", f"/draws/date/{day.isoformat()}")
        if payload is None:
            raise NotFoundError("find_by_date", f"no draw for {day.isoformat()}")
        return parse_payload("find_by_date", payload, Draw.from_payload)

    def find_by_id(self, draw_id: str) -> Draw:
        payload = self._request("find_by_id", "GET", f"/draws/{draw_id}")
        return parse_payload("find_by_id", payload, Draw.from_payload)

    def create(self, day: date, draw_type: DrawType, digits: Digits) -> Draw:
        """Schedule a draw for ``day``.

        Raises
        ------
        ConflictError
            If the service already holds a draw for that date.
        """
        if draw_type is not DrawType.for_date(day):
            raise ValueError(
                f"draw type {draw_type.value} does not match {weekday_name(day)} {day.isoformat()}"
            )
        body = {"draw_date": day.isoformat(), "draw_type": draw_type.value}
        body.update(digits_payload(digits))
        payload = self._request("create", "POST", "/draws/schedule", json=body)
        draw = parse_payload("create", payload, Draw.from_payload)
        logger.info(f"Scheduled {draw.draw_type.value} draw {draw.id} for {day.isoformat()}")
        return draw

    def update(self, draw_id: str, digits: Digits) -> Draw:
        """Persist a new digit configuration on a scheduled draw."""
        payload = self._request("update", "PUT", f"/draws/{draw_id}", json=digits_payload(digits))
        return parse_payload("update", payload, Draw.from_payload)

    def execute(self, draw_id: str) -> Acknowledgement:
        """Ask the service to begin selecting winners; no winners are returned."""
        payload = self._request("execute", "POST", f"/draws/{draw_id}/execute", json={})
        message = payload.get("message", "") if isinstance(payload, dict) else ""
        logger.info(f"Execution triggered for draw {draw_id}")
        return Acknowledgement(draw_id=draw_id, message=str(message))

    def default_digits(self, weekday: str) -> frozenset[int]:
        """Return the service's default eligible digits for a weekday name."""
        payload = self._request("default_digits", "GET", f"/draws/default-digits/{weekday}")
        return parse_payload("default_digits", payload, lambda body: validate_digits(int(d) for d in body))
