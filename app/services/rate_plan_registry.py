# app/services/rate_plan_registry.py
"""Rate plan lookups for the pricing core."""

from typing import List

from app.services.pricing_errors import NoPlanFound
from app.services.rate_catalog import RateCatalog, RatePlanRecord


class RatePlanRegistry:
    def __init__(self, catalog: RateCatalog):
        self.catalog = catalog

    def get_plan(self, plan_id: int) -> RatePlanRecord:
        """Plan as currently stored. Raises NoPlanFound if it does not exist."""
        plan = self.catalog.get_plan(plan_id)
        if plan is None:
            raise NoPlanFound(f"Rate plan {plan_id} does not exist")
        return plan

    def list_active(self) -> List[RatePlanRecord]:
        return self.catalog.list_active_plans()
