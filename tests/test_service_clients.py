import json
import unittest
from datetime import date, datetime, timezone
from decimal import Decimal

import requests

from rechargedraw.clients.draws import DrawRepositoryClient
from rechargedraw.clients.winners import WinnerRepositoryClient
from rechargedraw.config import Settings
from rechargedraw.draws.types import (
    ClaimStatus,
    DefaultDigits,
    DrawStatus,
    DrawType,
    ExplicitDigits,
    PrizeCategory,
)
from rechargedraw.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    TransportError,
)

SETTINGS = Settings(api_url="https://api.example.com/api/v1", api_token="token-123", timeout=5)

DRAW_PAYLOAD = {
    "id": "draw-1",
    "drawDate": "2025-05-03T00:00:00Z",
    "drawType": "SATURDAY",
    "eligibleDigits": [0, 5],
    "useDefault": True,
    "status": "SCHEDULED",
}

WINNER_PAYLOAD = {
    "id": "win-1",
    "drawId": "draw-1",
    "msisdn": "2348031234567",
    "prizeCategory": "jackpot",
    "prizeAmount": 1000000,
    "isOptedIn": True,
    "isValid": True,
    "claimStatus": "Pending",
    "winDate": "2025-05-03T20:05:00Z",
}


class DummyResponse:
    def __init__(self, json_data=None, status_code: int = 200, content=None):
        self._json = json_data
        self.status_code = status_code
        if content is None:
            content = json.dumps(json_data).encode() if json_data is not None else b""
        self.content = content

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json


class DummySession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, headers=None, params=None, json=None, timeout=None):
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": headers,
                "params": params,
                "json": json,
                "timeout": timeout,
            }
        )
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class TestDrawRepositoryClient(unittest.TestCase):
    def _client(self, *responses):
        session = DummySession(*responses)
        return DrawRepositoryClient(SETTINGS, session=session), session

    def test_find_by_date_parses_draw(self):
        client, session = self._client(DummyResponse(DRAW_PAYLOAD))
        draw = client.find_by_date(date(2025, 5, 3))

        self.assertEqual(draw.id, "draw-1")
        self.assertEqual(draw.date, date(2025, 5, 3))
        self.assertEqual(draw.draw_type, DrawType.WEEKEND_SPECIAL)
        self.assertEqual(draw.eligible_digits, frozenset({0, 5}))
        self.assertTrue(draw.uses_default_digits)
        self.assertEqual(draw.status, DrawStatus.SCHEDULED)

        call = session.calls[0]
        self.assertEqual(call["method"], "GET")
        self.assertEqual(call["url"], "https://api.example.com/api/v1/draws/date/2025-05-03")
        self.assertEqual(call["headers"]["Authorization"], "Bearer token-123")
        self.assertEqual(call["timeout"], 5)

    def test_find_by_date_missing_raises_not_found(self):
        client, _ = self._client(DummyResponse({"error": "draw not found"}, status_code=404))
        with self.assertRaises(NotFoundError) as ctx:
            client.find_by_date(date(2025, 5, 5))
        self.assertEqual(ctx.exception.operation, "find_by_date")
        self.assertEqual(ctx.exception.message, "draw not found")

    def test_find_by_id(self):
        client, session = self._client(DummyResponse(DRAW_PAYLOAD))
        self.assertEqual(client.find_by_id("draw-1").id, "draw-1")
        self.assertEqual(session.calls[0]["url"], "https://api.example.com/api/v1/draws/draw-1")

    def test_create_saturday_with_default_digits_omits_digit_list(self):
        client, session = self._client(DummyResponse(DRAW_PAYLOAD))
        draw = client.create(date(2025, 5, 3), DrawType.WEEKEND_SPECIAL, DefaultDigits())

        self.assertEqual(draw.draw_type.value, "SATURDAY")
        call = session.calls[0]
        self.assertEqual(call["method"], "POST")
        self.assertEqual(call["url"], "https://api.example.com/api/v1/draws/schedule")
        self.assertEqual(
            call["json"],
            {"draw_date": "2025-05-03", "draw_type": "SATURDAY", "use_default": True},
        )

    def test_create_with_explicit_digits_sends_sorted_list(self):
        payload = dict(DRAW_PAYLOAD, drawDate="2025-05-05", useDefault=False, eligibleDigits=[1, 7])
        client, session = self._client(DummyResponse(payload))
        client.create(date(2025, 5, 5), DrawType.DAILY, ExplicitDigits(frozenset({7, 1})))

        self.assertEqual(
            session.calls[0]["json"],
            {
                "draw_date": "2025-05-05",
                "draw_type": "DAILY",
                "eligible_digits": [1, 7],
                "use_default": False,
            },
        )

    def test_create_rejects_mismatched_draw_type(self):
        client, session = self._client()
        with self.assertRaises(ValueError):
            client.create(date(2025, 5, 5), DrawType.WEEKEND_SPECIAL, DefaultDigits())
        self.assertEqual(session.calls, [])

    def test_create_conflict(self):
        client, _ = self._client(DummyResponse({"error": "draw exists"}, status_code=409))
        with self.assertRaises(ConflictError) as ctx:
            client.create(date(2025, 5, 3), DrawType.WEEKEND_SPECIAL, DefaultDigits())
        self.assertEqual(ctx.exception.operation, "create")
        self.assertEqual(ctx.exception.status_code, 409)

    def test_execute_returns_acknowledgement(self):
        client, session = self._client(DummyResponse({"message": "Draw execution started"}))
        ack = client.execute("draw-1")

        self.assertEqual(ack.draw_id, "draw-1")
        self.assertEqual(ack.message, "Draw execution started")
        self.assertEqual(session.calls[0]["url"], "https://api.example.com/api/v1/draws/draw-1/execute")
        self.assertEqual(session.calls[0]["json"], {})

    def test_update_sends_digit_configuration(self):
        client, session = self._client(DummyResponse(dict(DRAW_PAYLOAD, useDefault=False)))
        client.update("draw-1", ExplicitDigits(frozenset({3})))
        self.assertEqual(session.calls[0]["method"], "PUT")
        self.assertEqual(session.calls[0]["json"], {"eligible_digits": [3], "use_default": False})

    def test_default_digits(self):
        client, session = self._client(DummyResponse([0, 5]))
        self.assertEqual(client.default_digits("Saturday"), frozenset({0, 5}))
        self.assertEqual(
            session.calls[0]["url"],
            "https://api.example.com/api/v1/draws/default-digits/Saturday",
        )

    def test_default_digits_out_of_range_is_malformed(self):
        client, _ = self._client(DummyResponse([0, 12]))
        with self.assertRaises(TransportError) as ctx:
            client.default_digits("Monday")
        self.assertIn("malformed", ctx.exception.message)

    def test_server_error_reports_message_and_status(self):
        client, _ = self._client(DummyResponse({"message": "database down"}, status_code=503))
        with self.assertRaises(TransportError) as ctx:
            client.find_by_id("draw-1")
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(ctx.exception.message, "database down")

    def test_server_error_without_json_body(self):
        client, _ = self._client(DummyResponse(status_code=502, content=b"<html>bad gateway</html>"))
        with self.assertRaises(TransportError) as ctx:
            client.execute("draw-1")
        self.assertEqual(ctx.exception.message, "HTTP error! status: 502")

    def test_connection_error_becomes_transport_error(self):
        client, _ = self._client(requests.ConnectionError("network unreachable"))
        with self.assertRaises(TransportError) as ctx:
            client.find_by_date(date(2025, 5, 3))
        self.assertEqual(ctx.exception.operation, "find_by_date")
        self.assertIn("network unreachable", str(ctx.exception))

    def test_requires_api_url(self):
        with self.assertRaises(ValueError):
            DrawRepositoryClient(Settings(api_url=""), session=DummySession())


class TestWinnerRepositoryClient(unittest.TestCase):
    def _client(self, *responses):
        session = DummySession(*responses)
        return WinnerRepositoryClient(SETTINGS, session=session), session

    def test_fetch_by_draw_keeps_service_order(self):
        second = dict(WINNER_PAYLOAD, id="win-2", prizeCategory="CONSOLATION", prizeAmount=5000)
        client, session = self._client(DummyResponse([WINNER_PAYLOAD, second]))
        winners = client.fetch_by_draw("draw-1")

        self.assertEqual([w.id for w in winners], ["win-1", "win-2"])
        self.assertEqual(winners[0].prize_category, PrizeCategory.JACKPOT)
        self.assertEqual(winners[1].prize_category, PrizeCategory.CONSOLATION)
        self.assertEqual(winners[0].prize_amount, Decimal("1000000"))
        self.assertEqual(winners[0].win_date, datetime(2025, 5, 3, 20, 5, tzinfo=timezone.utc))
        self.assertEqual(
            session.calls[0]["url"], "https://api.example.com/api/v1/draws/draw-1/winners"
        )

    def test_fetch_by_draw_empty_list(self):
        client, _ = self._client(DummyResponse([]))
        self.assertEqual(client.fetch_by_draw("draw-1"), [])

    def test_fetch_by_draw_rejects_unknown_category(self):
        client, _ = self._client(DummyResponse([dict(WINNER_PAYLOAD, prizeCategory="bonus")]))
        with self.assertRaises(TransportError) as ctx:
            client.fetch_by_draw("draw-1")
        self.assertEqual(ctx.exception.operation, "fetch_by_draw")

    def test_update_status_rejects_unknown_status_without_request(self):
        client, session = self._client()
        for status in ("Claimed", "paid", "", None):
            with self.assertRaises(InvalidTransitionError) as ctx:
                client.update_status("win-1", status)
            self.assertEqual(ctx.exception.operation, "update_status")
        self.assertEqual(session.calls, [])

    def test_update_status_paid_then_pending(self):
        client, session = self._client(
            DummyResponse(dict(WINNER_PAYLOAD, claimStatus="Paid")),
            DummyResponse(dict(WINNER_PAYLOAD, claimStatus="Pending")),
        )
        paid = client.update_status("win-1", "Paid")
        pending = client.update_status("win-1", ClaimStatus.PENDING)

        self.assertEqual(paid.claim_status, ClaimStatus.PAID)
        self.assertEqual(pending.claim_status, ClaimStatus.PENDING)
        self.assertEqual(session.calls[0]["method"], "PUT")
        self.assertEqual(
            session.calls[0]["url"], "https://api.example.com/api/v1/winners/win-1/status"
        )
        self.assertEqual(session.calls[0]["json"], {"status": "Paid"})
        self.assertEqual(session.calls[1]["json"], {"status": "Pending"})

    def test_update_status_unknown_winner(self):
        client, _ = self._client(DummyResponse({"error": "winner not found"}, status_code=404))
        with self.assertRaises(NotFoundError):
            client.update_status("missing", ClaimStatus.PAID)

    def test_list_winners_passes_filters(self):
        client, session = self._client(DummyResponse([WINNER_PAYLOAD]))
        client.list_winners(
            start_date=date(2025, 5, 1),
            end_date=date(2025, 5, 31),
            status=ClaimStatus.FAILED,
            draw_type=DrawType.WEEKEND_SPECIAL,
        )
        self.assertEqual(session.calls[0]["url"], "https://api.example.com/api/v1/winners")
        self.assertEqual(
            session.calls[0]["params"],
            {
                "start_date": "2025-05-01",
                "end_date": "2025-05-31",
                "status": "Failed",
                "draw_type": "saturday",
            },
        )

    def test_list_winners_without_filters(self):
        client, session = self._client(DummyResponse([]))
        self.assertEqual(client.list_winners(), [])
        self.assertIsNone(session.calls[0]["params"])


if __name__ == "__main__":
    unittest.main()
