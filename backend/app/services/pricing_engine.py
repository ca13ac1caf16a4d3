"""
Milestone pricing: fee base and per-milestone customer price.

Precedence for one milestone:
  1. flat price override, for every milestone type
  2. initial / final fee  -> fee_base * percent / 100, clamped to [min, max]
  3. everything else      -> cost * (1 + markup / 100)

The fee base is the sum of non-fee milestone costs.  It is deliberately NOT the
project's aggregated expense total: milestones may cover only part of the
expenses, or regroup them, and the fees follow what is actually on the schedule.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from app.services.document_models import Milestone, MilestoneType
from app.services.money import is_present, round_money, to_amount
from app.services.pricing_config import PricingConfig

logger = logging.getLogger("contract-pricing.pricing")


@dataclass(frozen=True)
class PricedMilestone:
    """A milestone together with its resolved customer price."""
    milestone: Milestone
    effective_markup_percent: Optional[float]   # None for fee milestones
    computed_price: float                        # price ignoring any override
    price: float

    @property
    def is_overridden(self) -> bool:
        return self.milestone.has_override

    def to_dict(self) -> dict:
        m = self.milestone
        return {
            "id": m.id,
            "name": m.name,
            "milestone_type": m.milestone_type.value,
            "cost": m.cost,
            "markup_percent": self.effective_markup_percent,
            "flat_price": round_money(to_amount(m.flat_price_override)) if m.has_override else None,
            "computed_price": self.computed_price,
            "customer_price": self.price,
            "is_overridden": self.is_overridden,
            "sequence": m.sequence,
            "subcontractor_fee_id": m.subcontractor_fee_id,
            "additional_expense_id": m.additional_expense_id,
            "description": m.description,
        }


def fee_base(milestones: Iterable[Milestone]) -> float:
    """Sum of ``cost`` over every milestone except the initial and final fees."""
    return round_money(
        sum(to_amount(m.cost) for m in milestones if not m.milestone_type.is_fee)
    )


def default_markup_for(milestone_type: MilestoneType, config: PricingConfig) -> Optional[float]:
    """Category markup from company settings, falling back to the global default."""
    if milestone_type is MilestoneType.INITIAL_FEE or milestone_type is MilestoneType.FINAL_INSPECTION:
        return None
    if milestone_type is MilestoneType.SUBCONTRACTOR:
        category = config.subcontractor_markup_percent
    elif milestone_type is MilestoneType.EQUIPMENT_MATERIALS:
        category = config.equipment_materials_markup_percent
    elif milestone_type is MilestoneType.ADDITIONAL:
        category = config.additional_markup_percent
    elif milestone_type is MilestoneType.CUSTOM:
        category = None
    else:
        raise TypeError(f"Unhandled milestone type: {milestone_type!r}")
    if category is not None:
        return to_amount(category)
    return to_amount(config.default_markup_percent)


def effective_markup(milestone: Milestone, config: PricingConfig) -> Optional[float]:
    """The markup a regular milestone is priced at; None for fee milestones."""
    if milestone.milestone_type.is_fee:
        return None
    if is_present(milestone.markup_percent):
        return to_amount(milestone.markup_percent)
    return default_markup_for(milestone.milestone_type, config)


def fee_amount(base: float, percent: float, minimum: float, maximum: float) -> float:
    """``base * percent / 100`` clamped into [minimum, maximum]."""
    amount = to_amount(base) * percent / 100.0
    return max(minimum, min(maximum, amount))


def computed_price(milestone: Milestone, config: PricingConfig, base: float) -> float:
    """Price from rules 2 and 3, i.e. what the milestone is worth without an override."""
    mtype = milestone.milestone_type
    if mtype is MilestoneType.INITIAL_FEE:
        percent, lo, hi = config.fee_terms(is_initial=True)
        amount = fee_amount(base, percent, lo, hi)
    elif mtype is MilestoneType.FINAL_INSPECTION:
        percent, lo, hi = config.fee_terms(is_initial=False)
        amount = fee_amount(base, percent, lo, hi)
    elif mtype in (
        MilestoneType.SUBCONTRACTOR,
        MilestoneType.EQUIPMENT_MATERIALS,
        MilestoneType.ADDITIONAL,
        MilestoneType.CUSTOM,
    ):
        markup = effective_markup(milestone, config) or 0.0
        amount = to_amount(milestone.cost) * (1.0 + markup / 100.0)
    else:
        raise TypeError(f"Unhandled milestone type: {mtype!r}")
    return round_money(amount)


def resolve_price(milestone: Milestone, config: PricingConfig, base: float) -> float:
    """Customer-facing price of one milestone given the schedule's fee base."""
    if milestone.has_override:
        return round_money(to_amount(milestone.flat_price_override))
    return computed_price(milestone, config, base)


def resolve_prices(milestones: List[Milestone], config: PricingConfig) -> List[PricedMilestone]:
    """Price a whole schedule against one fee base, preserving list order."""
    base = fee_base(milestones)
    priced = []
    for m in milestones:
        computed = computed_price(m, config, base)
        price = round_money(to_amount(m.flat_price_override)) if m.has_override else computed
        priced.append(PricedMilestone(
            milestone=m,
            effective_markup_percent=effective_markup(m, config),
            computed_price=computed,
            price=price,
        ))
    logger.debug(f"Resolved {len(priced)} milestone prices against fee base {base}")
    return priced
