"""
Ordering and import-merge for milestone and scope lists.

Both list kinds are frozen dataclasses with ``id`` and ``sequence`` fields, so
the helpers here are generic over them.  Every function returns a new list.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, List, Optional, Sequence, TypeVar

from app.services.document_models import Milestone, ScopeItem, new_local_id

logger = logging.getLogger("contract-pricing.ordering")

T = TypeVar("T", Milestone, ScopeItem)


def renumber(items: Sequence[T]) -> List[T]:
    """Set ``sequence`` to each item's position, 0-based."""
    return [
        item if item.sequence == position else replace(item, sequence=position)
        for position, item in enumerate(items)
    ]


def move_item(items: Sequence[T], from_index: int, to_index: Optional[int]) -> List[T]:
    """
    Move one element from ``from_index`` to ``to_index`` (drag-and-drop).

    Other elements keep their relative order.  A ``to_index`` of None is a drop
    outside the list and leaves the order unchanged; an index past the end
    lands the item last.
    """
    if not 0 <= from_index < len(items):
        raise IndexError(f"from_index {from_index} out of range for {len(items)} items")
    result = list(items)
    if to_index is None:
        return renumber(result)
    target = max(0, min(to_index, len(result) - 1))
    moved = result.pop(from_index)
    result.insert(target, moved)
    return renumber(result)


def remove_item(items: Sequence[T], item_id: str) -> List[T]:
    return renumber([item for item in items if item.id != item_id])


def import_milestones(
    existing: Sequence[Milestone],
    imported: Sequence[Milestone],
    default_markup_percent: float,
    id_factory: Callable[[], str] = lambda: new_local_id("milestone"),
) -> List[Milestone]:
    """
    Append milestones copied from another project's saved document.

    Name, type and cost carry over verbatim; the copy gets a fresh local id and
    this document's default markup.  Overrides and expense back-references
    belong to the source project and are dropped.  Nothing is de-duplicated:
    importing the same milestone twice yields two rows.
    """
    result = list(existing)
    for source in imported:
        result.append(replace(
            source,
            id=id_factory(),
            markup_percent=default_markup_percent,
            flat_price_override=None,
            subcontractor_fee_id=None,
            additional_expense_id=None,
        ))
    logger.info(f"Imported {len(imported)} milestones onto {len(existing)} existing")
    return renumber(result)


def import_scope_items(
    existing: Sequence[ScopeItem],
    imported: Sequence[ScopeItem],
    id_factory: Callable[[], str] = lambda: new_local_id("scope"),
) -> List[ScopeItem]:
    """Append scope items copied from another project; no de-duplication."""
    result = list(existing)
    for source in imported:
        result.append(ScopeItem(
            id=id_factory(),
            title=source.title,
            description=source.description,
            is_auto_generated=False,
        ))
    logger.info(f"Imported {len(imported)} scope items onto {len(existing)} existing")
    return renumber(result)
