"""Document totals: customer total, profit, margin and effective markup."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from app.services.money import round_money
from app.services.pricing_config import GENERATION_BLOCKED_MESSAGE
from app.services.pricing_engine import PricedMilestone

logger = logging.getLogger("contract-pricing.totals")


class DocumentValidationError(ValueError):
    """Raised when a document may not be generated; ``message`` is user-facing."""

    def __init__(self, message: str = GENERATION_BLOCKED_MESSAGE):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class DocumentTotals:
    total_cost: float
    fee_base: float
    customer_total: float
    profit: float
    profit_margin_percent: float
    effective_markup_percent: float

    def to_dict(self) -> dict:
        return {
            "total_cost": self.total_cost,
            "fee_base": self.fee_base,
            "customer_total": self.customer_total,
            "profit": self.profit,
            "profit_margin_percent": round(self.profit_margin_percent, 2),
            "effective_markup_percent": round(self.effective_markup_percent, 2),
        }


def compute_totals(
    priced: List[PricedMilestone],
    total_cost: float,
    fee_base: float = 0.0,
) -> DocumentTotals:
    """
    Aggregate resolved prices.

    ``total_cost`` is the expense aggregate, not the fee base: profit is
    measured against everything the project costs.
    """
    customer_total = round_money(sum(p.price for p in priced))
    profit = round_money(customer_total - total_cost)
    margin = profit / customer_total * 100.0 if customer_total > 0 else 0.0
    markup = profit / total_cost * 100.0 if total_cost > 0 else 0.0
    return DocumentTotals(
        total_cost=round_money(total_cost),
        fee_base=round_money(fee_base),
        customer_total=customer_total,
        profit=profit,
        profit_margin_percent=margin,
        effective_markup_percent=markup,
    )


def ensure_generatable(totals: DocumentTotals) -> None:
    """Block final document generation for an empty or negative schedule."""
    if totals.customer_total <= 0:
        logger.warning(
            f"Document generation blocked: customer total {totals.customer_total}"
        )
        raise DocumentValidationError()
