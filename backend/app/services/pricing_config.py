"""
Pricing configuration: company document defaults plus the fixed business
constants the pricing services share.

Import from here rather than hardcoding titles, fallbacks or milestone names.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from app.services.money import to_amount, to_optional_amount

# ── Fee fallbacks ──────────────────────────────────────────────────────────────
# Used when the company has never saved a fee percent.
DEFAULT_INITIAL_FEE_PERCENT: float = 20.0
DEFAULT_FINAL_FEE_PERCENT: float = 80.0
DEFAULT_MARKUP_PERCENT: float = 30.0


# ── Scope-of-work titles owned by the synthesizer ────────────────────────────
SCOPE_TITLE_SUBCONTRACTOR: str = "Subcontractor Work"
SCOPE_TITLE_EQUIPMENT_MATERIALS: str = "Equipment & Materials"
SCOPE_TITLE_ADDITIONAL: str = "Additional Services"

SCOPE_BULLET: str = "•"


# ── Default milestone names ───────────────────────────────────────────────────
MILESTONE_NAME_INITIAL_CONTRACT: str = "Initial Contract Fee"
MILESTONE_NAME_INITIAL_PROPOSAL: str = "Initial Sign Fee"
MILESTONE_NAME_INITIAL_CHANGE_ORDER: str = "Initial Fee"
MILESTONE_NAME_FINAL: str = "Final Inspection"
MILESTONE_NAME_EQUIPMENT_MATERIALS: str = "Equipment & Materials"
MILESTONE_NAME_SUBCONTRACTOR_FALLBACK: str = "Work"
MILESTONE_NAME_ADDITIONAL_FALLBACK: str = "Additional Fees"
MILESTONE_NAME_CUSTOM_FALLBACK: str = "Change Order Item"

# Trailing payment-schedule row for proposals and change orders
BALANCE_MESSAGE: str = "Balance of schedule will be provided with contract"

GENERATION_BLOCKED_MESSAGE: str = (
    "Customer total must be greater than $0.00 before the document can be generated."
)


_FALSE_STRINGS = ("false", "0", "no", "off")


def parse_flag(value: Any, default: bool) -> bool:
    """Boolean from a form or database value; "false" / "0" / "no" / "off" are False."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


@dataclass(frozen=True)
class PricingConfig:
    """Company document defaults, supplied once per computation."""
    default_markup_percent: float = DEFAULT_MARKUP_PERCENT

    initial_fee_percent: Optional[float] = DEFAULT_INITIAL_FEE_PERCENT
    initial_fee_min: Optional[float] = None
    initial_fee_max: Optional[float] = None

    final_fee_percent: Optional[float] = DEFAULT_FINAL_FEE_PERCENT
    final_fee_min: Optional[float] = None
    final_fee_max: Optional[float] = None

    # Per-category markup; None falls back to default_markup_percent
    subcontractor_markup_percent: Optional[float] = None
    equipment_materials_markup_percent: Optional[float] = None
    additional_markup_percent: Optional[float] = None

    auto_include_initial_payment: bool = True
    auto_include_final_payment: bool = True
    auto_include_subcontractor: bool = True
    auto_include_equipment_materials: bool = True
    auto_include_additional_expenses: bool = True

    @classmethod
    def from_company_settings(cls, settings: Optional[Mapping[str, Any]]) -> "PricingConfig":
        """
        Build a config from a company settings row.

        Column names follow the companies table (``default_initial_fee_percent``,
        ``auto_include_subcontractor`` ...).  Blank strings and NULLs mean "unset";
        malformed numbers degrade to 0 the same way every other input does.
        """
        s = settings or {}

        def _flag(key: str) -> bool:
            return parse_flag(s.get(key), default=True)

        return cls(
            default_markup_percent=to_amount(
                s.get("default_markup_percent"), DEFAULT_MARKUP_PERCENT
            ),
            initial_fee_percent=to_optional_amount(s.get("default_initial_fee_percent")),
            initial_fee_min=to_optional_amount(s.get("default_initial_fee_min")),
            initial_fee_max=to_optional_amount(s.get("default_initial_fee_max")),
            final_fee_percent=to_optional_amount(s.get("default_final_fee_percent")),
            final_fee_min=to_optional_amount(s.get("default_final_fee_min")),
            final_fee_max=to_optional_amount(s.get("default_final_fee_max")),
            subcontractor_markup_percent=to_optional_amount(
                s.get("default_subcontractor_markup_percent")
            ),
            equipment_materials_markup_percent=to_optional_amount(
                s.get("default_equipment_materials_markup_percent")
            ),
            additional_markup_percent=to_optional_amount(
                s.get("default_additional_expenses_markup_percent")
            ),
            auto_include_initial_payment=_flag("auto_include_initial_payment"),
            auto_include_final_payment=_flag("auto_include_final_payment"),
            auto_include_subcontractor=_flag("auto_include_subcontractor"),
            auto_include_equipment_materials=_flag("auto_include_equipment_materials"),
            auto_include_additional_expenses=_flag("auto_include_additional_expenses"),
        )

    def fee_terms(self, is_initial: bool) -> tuple[float, float, float]:
        """
        Return (percent, min, max) for the initial or final fee.

        An unset percent falls back to 20 / 80; an unset min is 0 and an unset
        max is unbounded.  Negative percents are floored at 0.
        """
        if is_initial:
            percent, lo, hi, fallback = (
                self.initial_fee_percent, self.initial_fee_min,
                self.initial_fee_max, DEFAULT_INITIAL_FEE_PERCENT,
            )
        else:
            percent, lo, hi, fallback = (
                self.final_fee_percent, self.final_fee_min,
                self.final_fee_max, DEFAULT_FINAL_FEE_PERCENT,
            )
        pct = fallback if percent is None else max(0.0, to_amount(percent))
        return (
            pct,
            0.0 if lo is None else to_amount(lo),
            math.inf if hi is None else to_amount(hi, math.inf),
        )
