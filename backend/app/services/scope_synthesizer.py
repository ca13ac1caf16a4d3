"""
Scope-of-work synthesis from project expenses.

Three auto categories, each keyed by a fixed title:

    Subcontractor Work      <- subcontractor fees
    Equipment & Materials   <- equipment + materials
    Additional Services     <- additional expenses

Each becomes one scope item whose description is a bullet per expense line.
Merging into the user's list only ever rewrites the description of an item
carrying one of those titles, or appends a new one.  Anything else the user
wrote stays exactly where it is.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from app.services.document_models import (
    ExpenseLineItem,
    ProjectExpenses,
    ScopeItem,
    new_local_id,
)
from app.services.pricing_config import (
    SCOPE_BULLET,
    SCOPE_TITLE_ADDITIONAL,
    SCOPE_TITLE_EQUIPMENT_MATERIALS,
    SCOPE_TITLE_SUBCONTRACTOR,
    PricingConfig,
)

logger = logging.getLogger("contract-pricing.scope")


@dataclass(frozen=True)
class SynthesizedScope:
    title: str
    description: str


def _format_quantity(quantity: float) -> str:
    if float(quantity).is_integer():
        return str(int(quantity))
    # Shortest decimal that round-trips the float; never scientific notation
    return format(Decimal(repr(float(quantity))).normalize(), "f")


def pluralize_unit(unit: str, quantity: float) -> str:
    unit = unit.strip()
    if not unit or quantity == 1 or unit.lower().endswith("s"):
        return unit
    return unit + "s"


def bullet_line(item: ExpenseLineItem, prefer_description: bool = False) -> Optional[str]:
    """
    One scope bullet for an expense line, or None if it has no text at all.

    ``• Pool pump (2 units)`` when the line carries a quantity,
    ``• Excavation`` otherwise.
    """
    if prefer_description:
        label = (item.description or item.name).strip()
    else:
        label = item.label
    if not label:
        return None
    if item.quantity is None:
        return f"{SCOPE_BULLET} {label}"
    unit = pluralize_unit(item.unit or "unit", item.quantity)
    return f"{SCOPE_BULLET} {label} ({_format_quantity(item.quantity)} {unit})"


def _bullets(items: Iterable[ExpenseLineItem], prefer_description: bool = False) -> List[str]:
    lines = []
    for item in items:
        line = bullet_line(item, prefer_description=prefer_description)
        if line:
            lines.append(line)
    return lines


def synthesize_scope(expenses: ProjectExpenses, config: PricingConfig) -> List[SynthesizedScope]:
    """Build the auto scope entries, in fixed category order, skipping empty ones."""
    categories = [
        (
            SCOPE_TITLE_SUBCONTRACTOR,
            config.auto_include_subcontractor,
            # subcontractor fees read best by the job, not the company name
            _bullets(expenses.subcontractor_fees, prefer_description=True),
        ),
        (
            SCOPE_TITLE_EQUIPMENT_MATERIALS,
            config.auto_include_equipment_materials,
            _bullets(list(expenses.equipment) + list(expenses.materials)),
        ),
        (
            SCOPE_TITLE_ADDITIONAL,
            config.auto_include_additional_expenses,
            _bullets(expenses.additional, prefer_description=True),
        ),
    ]
    result = []
    for title, included, lines in categories:
        if not included or not lines:
            continue
        result.append(SynthesizedScope(title=title, description="\n".join(lines)))
    return result


def merge_scope_items(
    existing: List[ScopeItem],
    synthesized: List[SynthesizedScope],
    id_factory: Callable[[], str] = lambda: new_local_id("scope"),
) -> List[ScopeItem]:
    """
    Fold synthesized entries into the current scope list.

    A matching title has its description replaced in place; an unmatched
    category is appended.  Returns a new list; ``existing`` is not modified.
    """
    merged = list(existing)
    for entry in synthesized:
        index = next((i for i, s in enumerate(merged) if s.title == entry.title), None)
        if index is not None:
            merged[index] = replace(
                merged[index], description=entry.description, is_auto_generated=True
            )
        else:
            next_sequence = max((s.sequence for s in merged), default=-1) + 1
            merged.append(ScopeItem(
                id=id_factory(),
                title=entry.title,
                description=entry.description,
                is_auto_generated=True,
                sequence=next_sequence,
            ))
    logger.debug(
        f"Merged {len(synthesized)} synthesized scope entries into {len(existing)} existing items"
    )
    return merged


def sync_scope(
    existing: List[ScopeItem],
    expenses: ProjectExpenses,
    config: PricingConfig,
) -> List[ScopeItem]:
    """Synthesize from expenses and merge in one step."""
    return merge_scope_items(existing, synthesize_scope(expenses, config))
