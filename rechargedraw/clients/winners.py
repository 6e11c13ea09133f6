import logging
from datetime import date
from typing import Optional, Union

from ..draws.tiers import mask
from ..draws.types import ClaimStatus, DrawType, Winner
from ..errors import InvalidTransitionError
from .http import ServiceClient, parse_payload

logger = logging.getLogger(__name__)


def _winner_list(payload) -> list[Winner]:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise TypeError(f"expected a list of winners, got {type(payload).__name__}")
    return [Winner.from_payload(item) for item in payload]


class WinnerRepositoryClient(ServiceClient):
    """Client for the remote winner ledger."""

    def fetch_by_draw(self, draw_id: str) -> list[Winner]:
        """Return the winners recorded for ``draw_id`` in the order the service lists them."""
        payload = self._request("fetch_by_draw", "GET", f"/draws/{draw_id}/winners")
        winners = parse_payload("fetch_by_draw", payload, _winner_list)
        logger.debug(f"Fetched {len(winners)} winners for draw {draw_id}")
        return winners

    def update_status(self, winner_id: str, status: Union[ClaimStatus, str]) -> Winner:
        """Set a winner's claim status.

        Any of Pending, Paid and Failed may follow any other, so a payment
        recorded by mistake can be moved back to Pending.

        Raises
        ------
        InvalidTransitionError
            If ``status`` is not a known claim status. No request is sent.
        """
        if status is None:
            raise InvalidTransitionError("update_status", "status is required")
        try:
            claim_status = ClaimStatus(status)
        except ValueError as e:
            raise InvalidTransitionError("update_status", str(e)) from e

        payload = self._request(
            "update_status",
            "PUT",
            f"/winners/{winner_id}/status",
            json={"status": claim_status.value},
        )
        winner = parse_payload("update_status", payload, Winner.from_payload)
        logger.info(
            f"Winner {winner_id} ({mask(winner.msisdn)}) claim status set to {claim_status.value}"
        )
        return winner

    def list_winners(
        self,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[ClaimStatus] = None,
        draw_type: Optional[DrawType] = None,
    ) -> list[Winner]:
        """Return winners across draws, filtered by win date, claim status and draw type."""
        params = {}
        if start_date is not None:
            params["start_date"] = start_date.isoformat()
        if end_date is not None:
            params["end_date"] = end_date.isoformat()
        if status is not None:
            params["status"] = status.value
        if draw_type is not None:
            params["draw_type"] = "saturday" if draw_type is DrawType.WEEKEND_SPECIAL else "daily"
        payload = self._request("list_winners", "GET", "/winners", params=params or None)
        return parse_payload("list_winners", payload, _winner_list)
