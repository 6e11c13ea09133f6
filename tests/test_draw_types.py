import unittest
from datetime import date, datetime, timezone
from decimal import Decimal

from rechargedraw.draws.types import (
    ALL_DIGITS,
    ClaimStatus,
    DefaultDigits,
    Draw,
    DrawStatus,
    DrawType,
    ExplicitDigits,
    PrizeCategory,
    Winner,
    validate_digits,
    weekday_name,
)


class TestDrawType(unittest.TestCase):
    def test_saturday_is_weekend_special(self):
        draw_type = DrawType.for_date(date(2025, 5, 3))
        self.assertIs(draw_type, DrawType.WEEKEND_SPECIAL)
        self.assertEqual(draw_type.value, "SATURDAY")

    def test_sunday_is_weekend_special(self):
        self.assertIs(DrawType.for_date(date(2025, 5, 4)), DrawType.WEEKEND_SPECIAL)

    def test_weekdays_are_daily(self):
        for day in range(5, 10):
            self.assertIs(DrawType.for_date(date(2025, 5, day)), DrawType.DAILY)

    def test_weekday_name(self):
        self.assertEqual(weekday_name(date(2025, 5, 3)), "Saturday")
        self.assertEqual(weekday_name(date(2025, 5, 5)), "Monday")


class TestStatuses(unittest.TestCase):
    def test_draw_status_from_wire(self):
        self.assertIs(DrawStatus.from_wire("COMPLETED"), DrawStatus.COMPLETED)
        self.assertIs(DrawStatus.from_wire("completed"), DrawStatus.COMPLETED)
        self.assertIs(DrawStatus.from_wire("RUNNING"), DrawStatus.EXECUTING)
        self.assertIs(DrawStatus.from_wire("SCHEDULED"), DrawStatus.SCHEDULED)
        self.assertIs(DrawStatus.from_wire("FAILED"), DrawStatus.SCHEDULED)
        self.assertIs(DrawStatus.from_wire(None), DrawStatus.SCHEDULED)

    def test_claim_status_parse(self):
        self.assertIs(ClaimStatus.parse(None), ClaimStatus.PENDING)
        self.assertIs(ClaimStatus.parse("PAID"), ClaimStatus.PAID)
        self.assertIs(ClaimStatus.parse("failed"), ClaimStatus.FAILED)
        with self.assertRaises(ValueError):
            ClaimStatus.parse("Claimed")

    def test_prize_category_parse(self):
        self.assertIs(PrizeCategory.parse("JACKPOT"), PrizeCategory.JACKPOT)
        with self.assertRaises(ValueError):
            PrizeCategory.parse("bonus")


class TestDigits(unittest.TestCase):
    def test_validate_digits(self):
        self.assertEqual(validate_digits([3, 3, 9]), frozenset({3, 9}))
        self.assertEqual(validate_digits([]), frozenset())
        with self.assertRaises(ValueError):
            validate_digits([10])
        with self.assertRaises(ValueError):
            validate_digits([-1])
        with self.assertRaises(TypeError):
            validate_digits([True])
        with self.assertRaises(TypeError):
            validate_digits(["1"])

    def test_explicit_digits_may_be_empty_or_full(self):
        self.assertEqual(ExplicitDigits().digits, frozenset())
        self.assertEqual(ExplicitDigits(ALL_DIGITS).digits, frozenset(range(10)))
        with self.assertRaises(ValueError):
            ExplicitDigits(frozenset({11}))

    def test_draw_digits_follow_use_default_flag(self):
        default = Draw(id="d", date=date(2025, 5, 5), eligible_digits=frozenset({0, 1}), uses_default_digits=True)
        manual = Draw(id="d", date=date(2025, 5, 5), eligible_digits=frozenset({4}), uses_default_digits=False)
        self.assertEqual(default.digits, DefaultDigits())
        self.assertEqual(manual.digits, ExplicitDigits(frozenset({4})))


class TestDrawPayload(unittest.TestCase):
    def test_from_camel_case_payload(self):
        draw = Draw.from_payload(
            {
                "id": "draw-9",
                "drawDate": "2025-05-03T00:00:00Z",
                "drawType": "SATURDAY",
                "eligibleDigits": [5, 0],
                "useDefault": True,
                "status": "COMPLETED",
                "totalParticipants": 1200,
                "jackpotAmount": "1000000.00",
            }
        )
        self.assertEqual(draw.date, date(2025, 5, 3))
        self.assertIs(draw.draw_type, DrawType.WEEKEND_SPECIAL)
        self.assertEqual(draw.eligible_digits, frozenset({0, 5}))
        self.assertIs(draw.status, DrawStatus.COMPLETED)
        self.assertTrue(draw.config_locked)
        self.assertEqual(draw.total_participants, 1200)
        self.assertEqual(draw.jackpot_amount, Decimal("1000000.00"))

    def test_from_snake_case_payload(self):
        draw = Draw.from_payload(
            {
                "id": 17,
                "draw_date": "2025-05-05",
                "eligible_digits": [],
                "use_default": False,
                "status": "SCHEDULED",
            }
        )
        self.assertEqual(draw.id, "17")
        self.assertIs(draw.draw_type, DrawType.DAILY)
        self.assertEqual(draw.eligible_digits, frozenset())
        self.assertFalse(draw.config_locked)

    def test_missing_id_rejected(self):
        with self.assertRaises(ValueError):
            Draw.from_payload({"drawDate": "2025-05-05"})

    def test_to_json(self):
        draw = Draw(id="d", date=date(2025, 5, 3), eligible_digits=frozenset({9, 0}), uses_default_digits=False)
        self.assertEqual(
            draw.to_json(),
            {
                "id": "d",
                "draw_date": "2025-05-03",
                "draw_type": "SATURDAY",
                "eligible_digits": [0, 9],
                "use_default": False,
                "status": "SCHEDULED",
            },
        )


class TestWinnerPayload(unittest.TestCase):
    def test_from_payload_and_masked_json(self):
        winner = Winner.from_payload(
            {
                "id": "w1",
                "draw_id": "d1",
                "msisdn": "08031234567",
                "prize_category": "consolation",
                "prize_amount": "5000.50",
                "is_opted_in": False,
                "is_valid": True,
                "win_date": "2025-05-03T20:05:00Z",
            }
        )
        self.assertIs(winner.claim_status, ClaimStatus.PENDING)
        self.assertEqual(winner.prize_amount, Decimal("5000.50"))
        self.assertEqual(winner.win_date, datetime(2025, 5, 3, 20, 5, tzinfo=timezone.utc))

        data = winner.to_json()
        self.assertEqual(data["msisdn"], "0803****567")
        self.assertEqual(data["prize_amount"], "5000.50")
        self.assertEqual(winner.to_json(masked=False)["msisdn"], "08031234567")

    def test_negative_amount_rejected(self):
        with self.assertRaises(ValueError):
            Winner.from_payload(
                {
                    "id": "w1",
                    "drawId": "d1",
                    "msisdn": "08031234567",
                    "prizeCategory": "jackpot",
                    "prizeAmount": -1,
                    "winDate": "2025-05-03T20:05:00Z",
                }
            )

    def test_missing_draw_id_rejected(self):
        with self.assertRaises(ValueError) as ctx:
            Winner.from_payload(
                {
                    "id": "w1",
                    "msisdn": "08031234567",
                    "prizeCategory": "jackpot",
                    "prizeAmount": 1000,
                    "winDate": "2025-05-03T20:05:00Z",
                }
            )
        self.assertIn("drawId", str(ctx.exception))

    def test_missing_win_date_rejected(self):
        with self.assertRaises(ValueError):
            Winner.from_payload({"id": "w1", "drawId": "d1", "prizeCategory": "jackpot"})


if __name__ == "__main__":
    unittest.main()
