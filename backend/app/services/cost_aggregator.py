"""
Cost aggregation over a project's raw expense lines.

Each line contributes ``actual`` when recorded, otherwise ``expected``,
otherwise nothing.  Negative and malformed values contribute 0.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict

from app.services.document_models import ExpenseCategory, ProjectExpenses
from app.services.money import round_money

logger = logging.getLogger("contract-pricing.costs")


@dataclass(frozen=True)
class CostSummary:
    total_cost: float = 0.0
    cost_by_category: Dict[ExpenseCategory, float] = field(default_factory=dict)
    item_count: int = 0

    @property
    def equipment_materials_cost(self) -> float:
        return round_money(
            self.cost_by_category.get(ExpenseCategory.EQUIPMENT, 0.0)
            + self.cost_by_category.get(ExpenseCategory.MATERIAL, 0.0)
        )

    def to_dict(self) -> dict:
        return {
            "total_cost": self.total_cost,
            "cost_by_category": {k.value: v for k, v in self.cost_by_category.items()},
            "item_count": self.item_count,
        }


def aggregate_costs(expenses: ProjectExpenses) -> CostSummary:
    """Sum every expense line into per-category and overall cost."""
    by_category: Dict[ExpenseCategory, float] = {}
    count = 0
    for category, items in expenses.by_category().items():
        subtotal = 0.0
        for item in items:
            subtotal += item.cost
            count += 1
        by_category[category] = round_money(subtotal)

    total = round_money(sum(by_category.values()))
    logger.debug(f"Aggregated {count} expense lines into total cost {total}")
    return CostSummary(total_cost=total, cost_by_category=by_category, item_count=count)
