# app/services/assignment_resolver.py
"""
Assignment Resolver — which rate plan applies to a space at an instant.

Lookups run in order and the first one that yields a binding wins:
  1. SpaceOverrideLookup   per-space exceptions, outrank any lot assignment
  2. LotAssignmentLookup   lot-wide assignments

Within one lookup, bindings whose [effective_from, effective_to) window
contains the instant are ranked by priority, then latest effective_from
(unbounded start ranks lowest), then highest id.

The winning binding's plan must exist and be active, otherwise resolution
fails with NoPlanFound. There is no default plan.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from app.services.pricing_errors import NoPlanFound
from app.services.rate_catalog import RateBindingRecord, RateCatalog, RatePlanRecord
from app.utils.logger import get_logger
from app.utils.time_utils import as_utc

logger = get_logger(__name__)

_UNBOUNDED_START = datetime.min


@dataclass(frozen=True)
class ResolvedPlan:
    plan: RatePlanRecord
    binding: RateBindingRecord
    source: str        # "space_override" | "lot_assignment"


def _rank(binding: RateBindingRecord):
    start = binding.effective_from.replace(tzinfo=None) if binding.effective_from else _UNBOUNDED_START
    return (binding.priority, start, binding.id)


def pick_binding(bindings: Iterable[RateBindingRecord], at: datetime) -> Optional[RateBindingRecord]:
    """Highest-ranked binding effective at `at`, or None."""
    candidates = [b for b in bindings if b.is_effective_at(at)]
    if not candidates:
        return None
    return max(candidates, key=_rank)


class SpaceOverrideLookup:
    source = "space_override"

    def find(self, catalog: RateCatalog, space_id: Optional[int], lot_id: Optional[int], at: datetime):
        if space_id is None:
            return None
        return pick_binding(catalog.list_space_overrides(space_id), at)


class LotAssignmentLookup:
    source = "lot_assignment"

    def find(self, catalog: RateCatalog, space_id: Optional[int], lot_id: Optional[int], at: datetime):
        if lot_id is None:
            return None
        return pick_binding(catalog.list_lot_assignments(lot_id), at)


DEFAULT_LOOKUPS = (SpaceOverrideLookup(), LotAssignmentLookup())


class AssignmentResolver:
    def __init__(self, catalog: RateCatalog, lookups: Sequence = DEFAULT_LOOKUPS):
        self.catalog = catalog
        self.lookups: List = list(lookups)

    def resolve(self, parking_space_id: Optional[int], parking_lot_id: Optional[int],
                at_instant: datetime) -> ResolvedPlan:
        at = as_utc(at_instant)
        for lookup in self.lookups:
            binding = lookup.find(self.catalog, parking_space_id, parking_lot_id, at)
            if binding is None:
                continue

            plan = self.catalog.get_plan(binding.rate_plan_id)
            if plan is None or not plan.active:
                logger.warning(
                    f"[RESOLVE] space={parking_space_id} lot={parking_lot_id} → {lookup.source} "
                    f"#{binding.id} points at {'missing' if plan is None else 'inactive'} plan {binding.rate_plan_id}"
                )
                raise NoPlanFound(
                    f"No active rate plan configured for space {parking_space_id} "
                    f"(lot {parking_lot_id}) at {at.isoformat()}"
                )

            logger.debug(f"[RESOLVE] space={parking_space_id} lot={parking_lot_id} → plan {plan.id} "
                         f"via {lookup.source} #{binding.id}")
            return ResolvedPlan(plan=plan, binding=binding, source=lookup.source)

        raise NoPlanFound(
            f"No active rate plan configured for space {parking_space_id} "
            f"(lot {parking_lot_id}) at {at.isoformat()}"
        )
