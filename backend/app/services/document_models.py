"""
Domain records for document pricing: expense lines, milestones and scope items.

These are plain dataclasses.  The pricing services never mutate them in place;
edits go through ``dataclasses.replace`` so callers can keep their own copies.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from app.services.money import is_present, non_negative, to_optional_amount


class ExpenseCategory(str, Enum):
    SUBCONTRACTOR_FEE = "subcontractor_fee"
    EQUIPMENT = "equipment"
    MATERIAL = "material"
    ADDITIONAL = "additional"


class MilestoneType(str, Enum):
    INITIAL_FEE = "initial_fee"
    FINAL_INSPECTION = "final_inspection"
    SUBCONTRACTOR = "subcontractor"
    EQUIPMENT_MATERIALS = "equipment_materials"
    ADDITIONAL = "additional"
    CUSTOM = "custom"

    @property
    def is_fee(self) -> bool:
        return self in (MilestoneType.INITIAL_FEE, MilestoneType.FINAL_INSPECTION)

    @classmethod
    def parse(cls, value: Any) -> "MilestoneType":
        """Accept current and legacy stored type names."""
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        legacy = {
            "equipment": cls.EQUIPMENT_MATERIALS,
            "materials": cls.EQUIPMENT_MATERIALS,
            "change_order_item": cls.CUSTOM,
        }
        if key in legacy:
            return legacy[key]
        try:
            return cls(key)
        except ValueError:
            return cls.CUSTOM


class DocumentType(str, Enum):
    CONTRACT = "contract"
    PROPOSAL = "proposal"
    CHANGE_ORDER = "change_order"


def new_local_id(prefix: str = "local") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


# Raw expense-tracking column names, in lookup order, per field.
_EXPECTED_KEYS = ("expected", "expected_value", "expected_price", "flat_fee", "amount")
_ACTUAL_KEYS = ("actual", "actual_value", "actual_price")
_DESCRIPTION_KEYS = ("description", "job_description", "notes")
_NAME_KEYS = ("name", "item_name", "subcontractor_name")


def _first(record: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if is_present(record.get(key)):
            return record.get(key)
    return None


@dataclass(frozen=True)
class ExpenseLineItem:
    """One raw project expense. Read-only input from expense tracking."""
    id: str
    category: ExpenseCategory
    expected: Any = None
    actual: Any = None
    description: str = ""
    name: str = ""
    quantity: Optional[float] = None
    unit: str = ""

    @property
    def cost(self) -> float:
        """actual if present, else expected, else 0; never negative."""
        if is_present(self.actual):
            return non_negative(self.actual)
        if is_present(self.expected):
            return non_negative(self.expected)
        return 0.0

    @property
    def label(self) -> str:
        return (self.name or self.description or "").strip()

    @classmethod
    def from_record(
        cls, category: ExpenseCategory | str, record: Mapping[str, Any]
    ) -> "ExpenseLineItem":
        """Map a project expense row (any of the four tables) onto a line item."""
        cat = ExpenseCategory(category)
        quantity = to_optional_amount(record.get("quantity"))
        return cls(
            id=str(record.get("id") or new_local_id("expense")),
            category=cat,
            expected=_first(record, _EXPECTED_KEYS),
            actual=_first(record, _ACTUAL_KEYS),
            description=str(_first(record, _DESCRIPTION_KEYS) or ""),
            name=str(_first(record, _NAME_KEYS) or ""),
            quantity=quantity,
            unit=str(record.get("unit") or ""),
        )


@dataclass(frozen=True)
class ProjectExpenses:
    """The four categorized expense collections of one project."""
    subcontractor_fees: tuple[ExpenseLineItem, ...] = ()
    equipment: tuple[ExpenseLineItem, ...] = ()
    materials: tuple[ExpenseLineItem, ...] = ()
    additional: tuple[ExpenseLineItem, ...] = ()

    def by_category(self) -> dict[ExpenseCategory, tuple[ExpenseLineItem, ...]]:
        return {
            ExpenseCategory.SUBCONTRACTOR_FEE: self.subcontractor_fees,
            ExpenseCategory.EQUIPMENT: self.equipment,
            ExpenseCategory.MATERIAL: self.materials,
            ExpenseCategory.ADDITIONAL: self.additional,
        }

    @classmethod
    def from_records(
        cls,
        subcontractor_fees: Optional[list[Mapping[str, Any]]] = None,
        equipment: Optional[list[Mapping[str, Any]]] = None,
        materials: Optional[list[Mapping[str, Any]]] = None,
        additional: Optional[list[Mapping[str, Any]]] = None,
    ) -> "ProjectExpenses":
        def _items(category: ExpenseCategory, rows):
            return tuple(ExpenseLineItem.from_record(category, r) for r in rows or [])

        return cls(
            subcontractor_fees=_items(ExpenseCategory.SUBCONTRACTOR_FEE, subcontractor_fees),
            equipment=_items(ExpenseCategory.EQUIPMENT, equipment),
            materials=_items(ExpenseCategory.MATERIAL, materials),
            additional=_items(ExpenseCategory.ADDITIONAL, additional),
        )


@dataclass(frozen=True)
class Milestone:
    """One payment installment on a contract, proposal or change order."""
    id: str
    name: str
    milestone_type: MilestoneType
    cost: float = 0.0
    markup_percent: Optional[float] = None
    flat_price_override: Any = None
    sequence: int = 0
    subcontractor_fee_id: Optional[str] = None
    additional_expense_id: Optional[str] = None
    description: str = ""

    @property
    def has_override(self) -> bool:
        return is_present(self.flat_price_override)


@dataclass(frozen=True)
class ScopeItem:
    """One scope-of-work entry.  Auto items are keyed by their fixed title."""
    id: str
    title: str
    description: str = ""
    is_auto_generated: bool = False
    sequence: int = 0
    parent_id: Optional[str] = None   # set on subscopes, rendered as subheaders
