# app/services/quote_engine.py
"""
Quote Engine — prices a parking interval for a space or lot.

quote() is a pure read: it resolves the plan in effect at the interval start
(that plan governs the whole interval), then
  1. drops the first grace_minutes of the interval; if nothing is left the
     amount is 0
  2. FREE plans cost 0
  3. FLAT_PER_ENTRY plans charge the matching flat rule once
  4. every other type is metered: the billable duration is rounded up to
     increment_minutes, the rounded window is split wherever a rule window
     opens or closes and at local midnight, and each segment is billed at
     the per-hour price of the rule matching its start
  5. metered totals are capped per local calendar day at daily_cap
  6. the total is rounded to the currency's minor unit

Failures propagate as typed PricingErrors; nothing defaults to zero.
"""

import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from app.models.enums import RatePlanType
from app.services.assignment_resolver import AssignmentResolver, ResolvedPlan
from app.services.pricing_errors import InvalidInterval, ResourceNotFound, Unavailable
from app.services.rate_catalog import RateCatalog, RateRuleRecord
from app.services.rule_matcher import MatchContext, RuleSet, rules_for
from app.utils.currency import round_amount
from app.utils.logger import get_logger
from app.utils.time_utils import as_utc

logger = get_logger(__name__)

_MICROS_PER_HOUR = Decimal(3_600_000_000)
_ONE_MICRO = timedelta(microseconds=1)


@dataclass(frozen=True)
class QuoteSegment:
    start: datetime            # UTC
    end: datetime
    local_date: date
    rule_id: int
    price_per_hour: Decimal
    amount: Decimal            # unrounded

    @property
    def hours(self) -> Decimal:
        return _hours(self.end - self.start)


@dataclass(frozen=True)
class Quote:
    currency: str
    amount: Decimal
    breakdown: str
    rate_plan_id: Optional[int] = None
    segments: Tuple[QuoteSegment, ...] = field(default_factory=tuple)


def _hours(delta: timedelta) -> Decimal:
    return Decimal(delta // _ONE_MICRO) / _MICROS_PER_HOUR


def _fmt(value: Decimal) -> str:
    return format(value.normalize(), "f")


def round_up_duration(duration: timedelta, increment_minutes: int) -> timedelta:
    """Round `duration` up to a multiple of increment_minutes (0 = no rounding)."""
    if increment_minutes <= 0:
        return duration
    step = timedelta(minutes=increment_minutes)
    steps = -(-duration // step)
    return step * steps


def _next_cut(current: datetime, tz: ZoneInfo, boundary_minutes: List[int]) -> datetime:
    """Next UTC instant after `current` where a rule window edge or local midnight falls."""
    local = current.astimezone(tz)
    day_start = datetime(local.year, local.month, local.day, tzinfo=tz)
    for minute in boundary_minutes:
        cut = (day_start + timedelta(minutes=minute)).astimezone(current.tzinfo)
        if cut > current:
            return cut
    next_day = local.date() + timedelta(days=1)
    return datetime(next_day.year, next_day.month, next_day.day, tzinfo=tz).astimezone(current.tzinfo)


class QuoteEngine:
    def __init__(self, catalog: RateCatalog, resolver: Optional[AssignmentResolver] = None):
        self.catalog = catalog
        self.resolver = resolver or AssignmentResolver(catalog)

    def quote(self, parking_space_id: Optional[int], parking_lot_id: Optional[int],
              vehicle_type, user_group, start_time: datetime, end_time: datetime) -> Quote:
        start, end = as_utc(start_time), as_utc(end_time)
        if end <= start:
            raise InvalidInterval(f"endTime {end.isoformat()} must be after startTime {start.isoformat()}")

        if parking_space_id is not None:
            space_lot_id = self.catalog.get_space_lot_id(parking_space_id)
            if space_lot_id is None:
                raise ResourceNotFound(f"Parking space {parking_space_id} not found")
            if parking_lot_id is None:
                parking_lot_id = space_lot_id

        resolved = self.resolver.resolve(parking_space_id, parking_lot_id, start)
        plan = resolved.plan
        tz = ZoneInfo(plan.time_zone)
        header = self._header(resolved)

        billable_start = start + timedelta(minutes=plan.grace_minutes)
        if billable_start >= end:
            return self._zero(resolved, f"{header}; within {plan.grace_minutes}-minute grace period")

        if plan.type == RatePlanType.FREE:
            return self._zero(resolved, f"{header}; free plan")

        rules = rules_for(self.catalog, plan.id)

        if plan.type == RatePlanType.FLAT_PER_ENTRY:
            ctx = MatchContext.at(start.astimezone(tz), vehicle_type, user_group)
            rule = rules.select(ctx, flat=True)
            amount = rule.price_flat
            lines = [header, f"flat entry rule #{rule.id}: {_fmt(rule.price_flat)}"]
            if plan.daily_cap is not None and amount > plan.daily_cap:
                lines.append(f"daily cap {_fmt(plan.daily_cap)} applied")
                amount = plan.daily_cap
            return self._finish(resolved, amount, lines, ())

        billed = round_up_duration(end - billable_start, plan.increment_minutes)
        billed_end = billable_start + billed
        lines = [header]
        if plan.grace_minutes:
            lines.append(f"grace {plan.grace_minutes} min")
        if billed != end - billable_start:
            lines.append(f"billed {int(billed.total_seconds() // 60)} min "
                         f"(rounded up to {plan.increment_minutes}-min increments)")

        segments = self._segments(rules, tz, vehicle_type, user_group, billable_start, billed_end)
        per_day: Dict[date, Decimal] = {}
        for seg in segments:
            local_start, local_end = seg.start.astimezone(tz), seg.end.astimezone(tz)
            lines.append(
                f"{local_start:%Y-%m-%d %H:%M}-{local_end:%H:%M} rule #{seg.rule_id} "
                f"{_fmt(seg.price_per_hour)}/h x {_fmt(seg.hours)}h = {_fmt(seg.amount)}"
            )
            per_day[seg.local_date] = per_day.get(seg.local_date, Decimal(0)) + seg.amount

        amount = Decimal(0)
        for day, day_total in sorted(per_day.items()):
            if plan.daily_cap is not None and day_total > plan.daily_cap:
                lines.append(f"daily cap {day.isoformat()}: {_fmt(day_total)} -> {_fmt(plan.daily_cap)}")
                day_total = plan.daily_cap
            amount += day_total

        return self._finish(resolved, amount, lines, tuple(segments))

    def _segments(self, rules: RuleSet, tz: ZoneInfo, vehicle_type, user_group,
                  start: datetime, end: datetime) -> List[QuoteSegment]:
        cuts = rules.boundary_minutes()
        segments: List[QuoteSegment] = []
        current = start
        while current < end:
            local = current.astimezone(tz)
            nxt = min(end, _next_cut(current, tz, cuts))
            rule: RateRuleRecord = rules.select(MatchContext.at(local, vehicle_type, user_group), flat=False)
            amount = rule.price_per_hour * _hours(nxt - current)

            last = segments[-1] if segments else None
            if last and last.rule_id == rule.id and last.local_date == local.date() and last.end == current:
                segments[-1] = QuoteSegment(last.start, nxt, last.local_date, rule.id,
                                            rule.price_per_hour, last.amount + amount)
            else:
                segments.append(QuoteSegment(current, nxt, local.date(), rule.id, rule.price_per_hour, amount))
            current = nxt
        return segments

    @staticmethod
    def _header(resolved: ResolvedPlan) -> str:
        plan = resolved.plan
        return (f"plan #{plan.id} '{plan.name}' ({plan.type.value}, {plan.time_zone}) "
                f"via {resolved.source.replace('_', ' ')} #{resolved.binding.id}")

    def _zero(self, resolved: ResolvedPlan, breakdown: str) -> Quote:
        plan = resolved.plan
        amount = round_amount(Decimal(0), plan.currency)
        logger.info(f"[QUOTE] plan={plan.id} amount=0 {plan.currency}")
        return Quote(currency=plan.currency, amount=amount, breakdown=f"{breakdown}; total 0 {plan.currency}",
                     rate_plan_id=plan.id)

    def _finish(self, resolved: ResolvedPlan, amount: Decimal, lines: List[str], segments) -> Quote:
        plan = resolved.plan
        total = round_amount(amount, plan.currency)
        lines.append(f"total {total} {plan.currency}")
        logger.info(f"[QUOTE] plan={plan.id} type={plan.type.value} amount={total} {plan.currency} "
                    f"segments={len(segments)}")
        return Quote(currency=plan.currency, amount=total, breakdown="; ".join(lines),
                     rate_plan_id=plan.id, segments=segments)


def quote_with_retry(engine: QuoteEngine, attempts: int, backoff_seconds: float,
                     on_retry: Optional[Callable[[], None]] = None, **kwargs) -> Quote:
    """
    Run engine.quote(**kwargs), retrying Unavailable with exponential backoff.
    Other PricingErrors are raised immediately.

    on_retry runs before each new attempt; callers holding row locks use it
    to take them again, since a catalog failure rolls the session back.
    """
    attempts = max(attempts, 1)
    delay = backoff_seconds
    for attempt in range(1, attempts + 1):
        try:
            return engine.quote(**kwargs)
        except Unavailable:
            if attempt >= attempts:
                logger.error(f"[QUOTE] catalog unavailable after {attempt} attempts")
                raise
            logger.warning(f"[QUOTE] catalog unavailable (attempt {attempt}/{attempts}), retry in {delay}s")
            time.sleep(delay)
            delay *= 2
            if on_retry is not None:
                on_retry()
    raise Unavailable("Quote could not be computed")
