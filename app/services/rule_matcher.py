# app/services/rule_matcher.py
"""
Rate rule evaluation.

Each rule is compiled into one predicate per dimension:
  - ANY              wildcard, the rule does not scope on this dimension
  - Exactly(value)   the context value must be equal
  - MinuteWindow     minute-of-day window [start, end), wrapping past
                     midnight when start > end

All predicates of a rule must match. Among matching rules the one with the
most non-wildcard predicates wins; two matching rules at the top
specificity is a configuration defect and raises AmbiguousRuleSet.
Day-of-week and time-of-day are always read in the plan's local time.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Union

from app.models.enums import DayOfWeek
from app.services.pricing_errors import AmbiguousRuleSet, NoMatchingRule
from app.services.rate_catalog import RateCatalog, RateRuleRecord
from app.utils.logger import get_logger

logger = get_logger(__name__)

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class AnyValue:
    wildcard = True

    def matches(self, value) -> bool:
        return True


ANY = AnyValue()


@dataclass(frozen=True)
class Exactly:
    value: str
    wildcard = False

    def matches(self, value) -> bool:
        return value == self.value


@dataclass(frozen=True)
class MinuteWindow:
    start: int
    end: int
    wildcard = False

    def matches(self, minute_of_day: int) -> bool:
        if self.start < self.end:
            return self.start <= minute_of_day < self.end
        return minute_of_day >= self.start or minute_of_day < self.end

    @property
    def boundaries(self):
        return {self.start % MINUTES_PER_DAY, self.end % MINUTES_PER_DAY}


Predicate = Union[AnyValue, Exactly]
WindowPredicate = Union[AnyValue, MinuteWindow]


def parse_clock(value: str) -> int:
    """'HH:MM' → minute of day. '24:00' is accepted as end of day."""
    hours, _, minutes = value.strip().partition(":")
    total = int(hours) * 60 + int(minutes or 0)
    if not 0 <= total <= MINUTES_PER_DAY or not 0 <= int(minutes or 0) < 60:
        raise ValueError(f"Invalid time of day: {value!r}")
    return total


@dataclass(frozen=True)
class MatchContext:
    vehicle_type: Optional[str]
    user_group: Optional[str]
    day_of_week: str
    minute_of_day: int

    @classmethod
    def at(cls, local_time: datetime, vehicle_type, user_group) -> "MatchContext":
        return cls(
            vehicle_type=_enum_value(vehicle_type),
            user_group=_enum_value(user_group),
            day_of_week=DayOfWeek.from_weekday(local_time.weekday()).value,
            minute_of_day=local_time.hour * 60 + local_time.minute,
        )


def _enum_value(value):
    return getattr(value, "value", value)


def _exact_or_any(value) -> Predicate:
    return ANY if value is None else Exactly(_enum_value(value))


def _window(rule: RateRuleRecord) -> WindowPredicate:
    if rule.start_minute is not None and rule.end_minute is not None:
        return MinuteWindow(rule.start_minute, rule.end_minute)
    if rule.start_time and rule.end_time:
        return MinuteWindow(parse_clock(rule.start_time), parse_clock(rule.end_time))
    return ANY


@dataclass(frozen=True)
class CompiledRule:
    rule: RateRuleRecord
    window: WindowPredicate
    day_of_week: Predicate
    vehicle_type: Predicate
    user_group: Predicate

    @classmethod
    def compile(cls, rule: RateRuleRecord) -> "CompiledRule":
        return cls(
            rule=rule,
            window=_window(rule),
            day_of_week=_exact_or_any(rule.day_of_week),
            vehicle_type=_exact_or_any(rule.vehicle_type),
            user_group=_exact_or_any(rule.user_group),
        )

    @property
    def specificity(self) -> int:
        return sum(0 if p.wildcard else 1
                   for p in (self.window, self.day_of_week, self.vehicle_type, self.user_group))

    def matches(self, ctx: MatchContext) -> bool:
        return (self.window.matches(ctx.minute_of_day)
                and self.day_of_week.matches(ctx.day_of_week)
                and self.vehicle_type.matches(ctx.vehicle_type)
                and self.user_group.matches(ctx.user_group))


class RuleSet:
    """The rules of one plan, compiled for matching."""

    def __init__(self, plan_id: int, rules: Sequence[RateRuleRecord]):
        self.plan_id = plan_id
        self.rules: List[RateRuleRecord] = list(rules)
        self._compiled = [CompiledRule.compile(r) for r in self.rules]

    def boundary_minutes(self) -> List[int]:
        """Minutes of day (exclusive of midnight) where some rule window opens or closes."""
        cuts = set()
        for c in self._compiled:
            if isinstance(c.window, MinuteWindow):
                cuts |= c.window.boundaries
        cuts.discard(0)
        return sorted(cuts)

    def select(self, ctx: MatchContext, flat: Optional[bool] = None) -> RateRuleRecord:
        """
        Most specific rule matching `ctx`.
        `flat` restricts candidates to flat (True) or metered (False) rules.
        """
        candidates = [c for c in self._compiled
                      if (flat is None or c.rule.is_flat == flat) and c.matches(ctx)]
        if not candidates:
            kind = {True: "flat ", False: "per-hour ", None: ""}[flat]
            logger.warning(f"[RULES] plan={self.plan_id} no {kind}rule for {ctx}")
            raise NoMatchingRule(
                f"Rate plan {self.plan_id} has no {kind}rule for {ctx.vehicle_type}/{ctx.user_group} "
                f"on {ctx.day_of_week} at {ctx.minute_of_day // 60:02d}:{ctx.minute_of_day % 60:02d}"
            )

        top = max(c.specificity for c in candidates)
        best = [c for c in candidates if c.specificity == top]
        if len(best) > 1:
            ids = sorted(c.rule.id for c in best)
            logger.warning(f"[RULES] plan={self.plan_id} ambiguous rules {ids} for {ctx}")
            raise AmbiguousRuleSet(
                f"Rate plan {self.plan_id} has ambiguous rules {ids}: equally specific matches "
                f"for {ctx.vehicle_type}/{ctx.user_group} on {ctx.day_of_week}",
                rule_ids=ids,
            )
        return best[0].rule


def rules_for(catalog: RateCatalog, rate_plan_id: int) -> RuleSet:
    return RuleSet(rate_plan_id, catalog.list_rules(rate_plan_id))
