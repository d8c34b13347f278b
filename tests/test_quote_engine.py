# tests/test_quote_engine.py
"""Unit tests for the quote engine over an in-memory catalog."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch
from app.models.enums import RatePlanType
from app.services.pricing_errors import (
    AmbiguousRuleSet, InvalidInterval, NoMatchingRule, NoPlanFound, ResourceNotFound, Unavailable,
)
from app.services.quote_engine import QuoteEngine, quote_with_retry, round_up_duration
from app.services.rate_catalog import InMemoryRateCatalog, RateBindingRecord, RatePlanRecord, RateRuleRecord

LOT, SPACE = 1, 10


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def make_engine(rules=({"price_per_hour": Decimal("100")},), **plan_kwargs):
    plan_kwargs.setdefault("type", RatePlanType.PER_HOUR)
    plan_kwargs.setdefault("currency", "ALL")
    plan_kwargs.setdefault("time_zone", "UTC")
    plan_kwargs.setdefault("grace_minutes", 15)
    plan_kwargs.setdefault("increment_minutes", 15)
    catalog = InMemoryRateCatalog()
    catalog.add_plan(RatePlanRecord(id=1, name="Hourly", **plan_kwargs))
    for i, rule in enumerate(rules, start=1):
        catalog.add_rule(RateRuleRecord(id=i, rate_plan_id=1, **rule))
    catalog.assign_lot(LOT, RateBindingRecord(id=1, rate_plan_id=1, priority=0))
    catalog.add_space(SPACE, LOT)
    return QuoteEngine(catalog)


def quote(engine, start, end, vehicle_type="CAR", user_group="PUBLIC", space_id=SPACE, lot_id=None):
    return engine.quote(space_id, lot_id, vehicle_type, user_group, start, end)


class TestMeteredQuotes:
    def test_grace_then_increment_rounding(self):
        # 50 min - 15 grace = 35 → 45 billed minutes at 100/h
        result = quote(make_engine(), utc(2030, 5, 6, 10, 0), utc(2030, 5, 6, 10, 50))
        assert result.currency == "ALL"
        assert result.amount == Decimal("75")
        assert "rounded up" in result.breakdown

    def test_lot_id_alone_is_enough(self):
        result = quote(make_engine(), utc(2030, 5, 6, 10, 0), utc(2030, 5, 6, 10, 50), space_id=None, lot_id=LOT)
        assert result.amount == Decimal("75")

    def test_interval_inside_grace_is_free(self):
        result = quote(make_engine(), utc(2030, 5, 6, 10, 0), utc(2030, 5, 6, 10, 15))
        assert result.amount == Decimal("0")
        assert "grace" in result.breakdown

    def test_time_of_day_split(self):
        engine = make_engine(rules=(
            {"price_per_hour": Decimal("100")},
            {"price_per_hour": Decimal("50"), "start_time": "18:00", "end_time": "08:00"},
        ), grace_minutes=0)
        result = quote(engine, utc(2030, 5, 6, 17, 0), utc(2030, 5, 6, 19, 0))

        assert result.amount == Decimal("150")
        assert [s.rule_id for s in result.segments] == [1, 2]
        assert "rule #1" in result.breakdown and "rule #2" in result.breakdown

    def test_day_of_week_rule_applies_after_midnight(self):
        engine = make_engine(rules=(
            {"price_per_hour": Decimal("100")},
            {"price_per_hour": Decimal("30"), "day_of_week": "SATURDAY"},
        ), grace_minutes=0)
        # Friday 23:00 → Saturday 01:00
        result = quote(engine, utc(2030, 5, 10, 23, 0), utc(2030, 5, 11, 1, 0))
        assert result.amount == Decimal("130")

    def test_windows_read_in_plan_time_zone(self):
        engine = make_engine(rules=(
            {"price_per_hour": Decimal("100")},
            {"price_per_hour": Decimal("50"), "start_time": "18:00", "end_time": "08:00"},
        ), grace_minutes=0, time_zone="Europe/Tirane")
        # 16:00-17:00 UTC is 18:00-19:00 in Tirana (CEST)
        result = quote(engine, utc(2030, 5, 6, 16, 0), utc(2030, 5, 6, 17, 0))
        assert result.amount == Decimal("50")

    def test_daily_cap_per_local_day(self):
        engine = make_engine(grace_minutes=0, daily_cap=Decimal("500"))
        result = quote(engine, utc(2030, 5, 6, 6, 0), utc(2030, 5, 7, 18, 0))

        assert result.amount == Decimal("1000")
        assert result.breakdown.count("daily cap") == 2

    def test_cap_not_applied_below_limit(self):
        engine = make_engine(grace_minutes=0, daily_cap=Decimal("500"))
        result = quote(engine, utc(2030, 5, 6, 10, 0), utc(2030, 5, 6, 12, 0))
        assert result.amount == Decimal("200")
        assert "daily cap" not in result.breakdown

    def test_rounds_to_currency_minor_unit(self):
        rules = ({"price_per_hour": Decimal("100")},)
        start, end = utc(2030, 5, 6, 10, 0), utc(2030, 5, 6, 10, 10)
        lek = quote(make_engine(rules, grace_minutes=0, increment_minutes=1), start, end)
        euro = quote(make_engine(rules, grace_minutes=0, increment_minutes=1, currency="EUR"), start, end)

        assert lek.amount == Decimal("17")
        assert euro.amount == Decimal("16.67")

    def test_naive_datetimes_are_utc(self):
        engine = make_engine()
        naive = quote(engine, datetime(2030, 5, 6, 10, 0), datetime(2030, 5, 6, 10, 50))
        aware = quote(engine, utc(2030, 5, 6, 10, 0), utc(2030, 5, 6, 10, 50))
        assert naive == aware


class TestOtherPlanTypes:
    def test_flat_per_entry_ignores_duration(self):
        engine = make_engine(
            rules=({"price_flat": Decimal("200")},),
            type=RatePlanType.FLAT_PER_ENTRY, grace_minutes=0, increment_minutes=0,
        )
        short = quote(engine, utc(2030, 5, 6, 10, 0), utc(2030, 5, 6, 10, 5))
        long = quote(engine, utc(2030, 5, 6, 10, 0), utc(2030, 5, 9, 10, 0))
        assert short.amount == long.amount == Decimal("200")

    def test_flat_rule_picked_by_context(self):
        engine = make_engine(
            rules=({"price_flat": Decimal("200")}, {"price_flat": Decimal("500"), "vehicle_type": "BUS"}),
            type=RatePlanType.FLAT_PER_ENTRY, grace_minutes=0,
        )
        assert quote(engine, utc(2030, 5, 6, 10), utc(2030, 5, 6, 11), vehicle_type="BUS").amount == Decimal("500")

    def test_free_plan_costs_nothing(self):
        engine = make_engine(rules=(), type=RatePlanType.FREE, grace_minutes=0)
        result = quote(engine, utc(2030, 5, 6, 10, 0), utc(2030, 5, 6, 18, 0))
        assert result.amount == Decimal("0")
        assert "free plan" in result.breakdown


class TestFailures:
    def test_end_before_start(self):
        with pytest.raises(InvalidInterval):
            quote(make_engine(), utc(2030, 5, 6, 11), utc(2030, 5, 6, 10))

    def test_empty_interval(self):
        with pytest.raises(InvalidInterval):
            quote(make_engine(), utc(2030, 5, 6, 10), utc(2030, 5, 6, 10))

    def test_unknown_space(self):
        with pytest.raises(ResourceNotFound):
            quote(make_engine(), utc(2030, 5, 6, 10), utc(2030, 5, 6, 11), space_id=99)

    def test_unknown_space_with_lot_given(self):
        with pytest.raises(ResourceNotFound):
            quote(make_engine(), utc(2030, 5, 6, 10), utc(2030, 5, 6, 11), space_id=99, lot_id=LOT)

    def test_space_in_unassigned_lot(self):
        engine = make_engine()
        engine.catalog.add_space(11, 2)
        with pytest.raises(NoPlanFound):
            quote(engine, utc(2030, 5, 6, 10), utc(2030, 5, 6, 11), space_id=11)

    def test_no_matching_rule_is_not_zero(self):
        engine = make_engine(rules=({"price_per_hour": Decimal("100"), "vehicle_type": "TRUCK"},))
        with pytest.raises(NoMatchingRule):
            quote(engine, utc(2030, 5, 6, 10), utc(2030, 5, 6, 11))

    def test_ambiguous_rules(self):
        engine = make_engine(rules=(
            {"price_per_hour": Decimal("100"), "vehicle_type": "CAR"},
            {"price_per_hour": Decimal("80"), "vehicle_type": "CAR"},
        ))
        with pytest.raises(AmbiguousRuleSet):
            quote(engine, utc(2030, 5, 6, 10), utc(2030, 5, 6, 11))


class TestProperties:
    def test_idempotent(self):
        engine = make_engine(rules=(
            {"price_per_hour": Decimal("100")},
            {"price_per_hour": Decimal("50"), "start_time": "18:00", "end_time": "08:00"},
        ))
        start, end = utc(2030, 5, 6, 16, 20), utc(2030, 5, 7, 9, 5)
        assert quote(engine, start, end) == quote(engine, start, end)

    def test_monotonic_in_end_time(self):
        engine = make_engine(rules=(
            {"price_per_hour": Decimal("100")},
            {"price_per_hour": Decimal("40"), "start_time": "20:00", "end_time": "07:00"},
        ), daily_cap=Decimal("900"))
        start = utc(2030, 5, 6, 17, 0)
        previous = Decimal(0)
        for minutes in range(1, 48 * 60, 37):
            amount = quote(engine, start, start + timedelta(minutes=minutes)).amount
            assert amount >= previous
            previous = amount

    def test_no_day_exceeds_cap(self):
        engine = make_engine(grace_minutes=0, daily_cap=Decimal("700"), time_zone="Europe/Tirane")
        result = quote(engine, utc(2030, 5, 6, 3, 0), utc(2030, 5, 9, 21, 0))
        per_day = {}
        for seg in result.segments:
            per_day[seg.local_date] = per_day.get(seg.local_date, Decimal(0)) + seg.amount
        assert result.amount == sum(min(v, Decimal("700")) for v in per_day.values())


class TestRoundUpDuration:
    def test_rounds_up(self):
        assert round_up_duration(timedelta(minutes=31), 15) == timedelta(minutes=45)

    def test_exact_multiple_unchanged(self):
        assert round_up_duration(timedelta(minutes=30), 15) == timedelta(minutes=30)

    def test_zero_increment_keeps_duration(self):
        assert round_up_duration(timedelta(minutes=7, seconds=3), 0) == timedelta(minutes=7, seconds=3)


class TestQuoteWithRetry:
    def test_retries_unavailable_then_succeeds(self):
        engine = MagicMock()
        engine.quote.side_effect = [Unavailable("timeout"), Unavailable("timeout"), "ok"]

        with patch("app.services.quote_engine.time.sleep") as sleep:
            assert quote_with_retry(engine, attempts=3, backoff_seconds=0.1) == "ok"

        assert engine.quote.call_count == 3
        assert [c.args[0] for c in sleep.call_args_list] == [0.1, 0.2]

    def test_gives_up_after_attempts(self):
        engine = MagicMock()
        engine.quote.side_effect = Unavailable("timeout")

        with patch("app.services.quote_engine.time.sleep"):
            with pytest.raises(Unavailable):
                quote_with_retry(engine, attempts=2, backoff_seconds=0)

        assert engine.quote.call_count == 2

    def test_other_errors_are_not_retried(self):
        engine = MagicMock()
        engine.quote.side_effect = NoPlanFound("nothing")

        with patch("app.services.quote_engine.time.sleep") as sleep:
            with pytest.raises(NoPlanFound):
                quote_with_retry(engine, attempts=3, backoff_seconds=0)

        engine.quote.assert_called_once()
        sleep.assert_not_called()

    def test_on_retry_runs_between_attempts(self):
        engine = MagicMock()
        engine.quote.side_effect = [Unavailable("timeout"), "ok"]
        on_retry = MagicMock()

        with patch("app.services.quote_engine.time.sleep"):
            assert quote_with_retry(engine, attempts=3, backoff_seconds=0, on_retry=on_retry) == "ok"

        on_retry.assert_called_once_with()
