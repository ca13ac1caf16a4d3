"""
DocumentPricingEngine: contract / proposal / change-order pricing pipeline.

Covers:
  - First-open initialization (default milestones vs. restoring saved ones)
  - Full preview: costs, fee base, per-milestone prices, totals, scope sync
  - Payment schedule and scope list handed to PDF generation
  - Save payload for the milestones / scope_of_work tables

Everything here is a pure function of its inputs.  The caller owns the
milestone and scope lists and re-runs the pipeline after every edit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from app.services.cost_aggregator import CostSummary, aggregate_costs
from app.services.document_models import (
    DocumentType,
    Milestone,
    MilestoneType,
    ProjectExpenses,
    ScopeItem,
    new_local_id,
)
from app.services.money import format_currency, is_present, round_money, to_amount, to_optional_amount
from app.services.pricing_config import (
    BALANCE_MESSAGE,
    MILESTONE_NAME_ADDITIONAL_FALLBACK,
    MILESTONE_NAME_CUSTOM_FALLBACK,
    MILESTONE_NAME_EQUIPMENT_MATERIALS,
    MILESTONE_NAME_FINAL,
    MILESTONE_NAME_INITIAL_CHANGE_ORDER,
    MILESTONE_NAME_INITIAL_CONTRACT,
    MILESTONE_NAME_INITIAL_PROPOSAL,
    MILESTONE_NAME_SUBCONTRACTOR_FALLBACK,
    PricingConfig,
    parse_flag,
)
from app.services.pricing_engine import PricedMilestone, default_markup_for, fee_base, resolve_prices
from app.services.scope_synthesizer import sync_scope
from app.services.totals_engine import DocumentTotals, compute_totals, ensure_generatable

logger = logging.getLogger("contract-pricing.documents")


class DocumentState(str, Enum):
    DEFAULTS_SYNTHESIZED = "defaults_synthesized"
    LOADED_FROM_SAVED = "loaded_from_saved"


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

def initial_fee_name(document_type: DocumentType) -> str:
    if document_type is DocumentType.PROPOSAL:
        return MILESTONE_NAME_INITIAL_PROPOSAL
    if document_type is DocumentType.CHANGE_ORDER:
        return MILESTONE_NAME_INITIAL_CHANGE_ORDER
    return MILESTONE_NAME_INITIAL_CONTRACT


def default_milestones(
    expenses: ProjectExpenses,
    config: PricingConfig,
    document_type: DocumentType = DocumentType.CONTRACT,
) -> List[Milestone]:
    """
    Milestones for a document opened with no saved data.

    Order: initial fee, one row per subcontractor fee, one combined equipment &
    materials row, one row per additional expense, final inspection.  Each
    group honours its company auto-include flag.  Change orders start with the
    initial fee only; their line items are added by hand.
    """
    rows: List[Milestone] = []

    def _add(**kwargs) -> None:
        rows.append(Milestone(id=new_local_id("milestone"), sequence=len(rows), **kwargs))

    if config.auto_include_initial_payment or document_type is DocumentType.CHANGE_ORDER:
        _add(name=initial_fee_name(document_type), milestone_type=MilestoneType.INITIAL_FEE)

    if document_type is DocumentType.CHANGE_ORDER:
        return rows

    if config.auto_include_subcontractor:
        for fee in expenses.subcontractor_fees:
            _add(
                name=(fee.description or fee.name or MILESTONE_NAME_SUBCONTRACTOR_FALLBACK).strip(),
                milestone_type=MilestoneType.SUBCONTRACTOR,
                cost=fee.cost,
                markup_percent=default_markup_for(MilestoneType.SUBCONTRACTOR, config),
                subcontractor_fee_id=fee.id,
            )

    if config.auto_include_equipment_materials:
        items = list(expenses.equipment) + list(expenses.materials)
        if items:
            _add(
                name=MILESTONE_NAME_EQUIPMENT_MATERIALS,
                milestone_type=MilestoneType.EQUIPMENT_MATERIALS,
                cost=round_money(sum(i.cost for i in items)),
                markup_percent=default_markup_for(MilestoneType.EQUIPMENT_MATERIALS, config),
            )

    if config.auto_include_additional_expenses:
        for exp in expenses.additional:
            _add(
                name=(exp.description or exp.name or MILESTONE_NAME_ADDITIONAL_FALLBACK).strip(),
                milestone_type=MilestoneType.ADDITIONAL,
                cost=exp.cost,
                markup_percent=default_markup_for(MilestoneType.ADDITIONAL, config),
                additional_expense_id=exp.id,
            )

    if config.auto_include_final_payment:
        _add(name=MILESTONE_NAME_FINAL, milestone_type=MilestoneType.FINAL_INSPECTION)

    logger.info(f"Synthesized {len(rows)} default milestones for {document_type.value}")
    return rows


def milestone_from_record(record: Mapping[str, Any], sequence: int = 0) -> Milestone:
    """Restore one saved milestone row (``milestones`` table shape)."""
    mtype = MilestoneType.parse(record.get("milestone_type"))
    name = str(record.get("name") or "").strip()
    if not name and mtype is MilestoneType.CUSTOM:
        name = MILESTONE_NAME_CUSTOM_FALLBACK
    markup = None if mtype.is_fee else to_optional_amount(record.get("markup_percent"))
    flat = record.get("flat_price")
    return Milestone(
        id=new_local_id("milestone"),
        name=name,
        milestone_type=mtype,
        cost=0.0 if mtype.is_fee else max(0.0, to_amount(record.get("cost"))),
        markup_percent=markup,
        flat_price_override=to_amount(flat) if is_present(flat) else None,
        sequence=sequence,
        subcontractor_fee_id=record.get("subcontractor_fee_id") or None,
        additional_expense_id=record.get("additional_expense_id") or None,
        description=str(record.get("description") or ""),
    )


def milestones_from_saved(records: Sequence[Mapping[str, Any]]) -> List[Milestone]:
    ordered = sorted(
        enumerate(records),
        key=lambda pair: (to_amount(pair[1].get("sort_order"), float(pair[0])), pair[0]),
    )
    return [milestone_from_record(r, sequence=i) for i, (_, r) in enumerate(ordered)]


def scope_items_from_saved(records: Sequence[Mapping[str, Any]]) -> List[ScopeItem]:
    return [
        ScopeItem(
            id=str(r.get("id") or new_local_id("scope")),
            title=str(r.get("title") or ""),
            description=str(r.get("description") or ""),
            is_auto_generated=parse_flag(r.get("is_auto_generated"), default=False),
            sequence=i,
            parent_id=r.get("parent_id") or None,
        )
        for i, r in enumerate(records)
    ]


@dataclass
class OpenedDocument:
    state: DocumentState
    milestones: List[Milestone]
    scope_items: List[ScopeItem]


def open_document(
    expenses: ProjectExpenses,
    config: PricingConfig,
    document_type: DocumentType = DocumentType.CONTRACT,
    saved_milestones: Optional[Sequence[Mapping[str, Any]]] = None,
    saved_scope_items: Optional[Sequence[Mapping[str, Any]]] = None,
) -> OpenedDocument:
    """
    One-time initialization when a document is opened.

    Saved milestones win outright; otherwise defaults are synthesized.  The
    two branches are exclusive and the choice is reported in ``state``.
    """
    if saved_milestones:
        milestones = milestones_from_saved(saved_milestones)
        state = DocumentState.LOADED_FROM_SAVED
    else:
        milestones = default_milestones(expenses, config, document_type)
        state = DocumentState.DEFAULTS_SYNTHESIZED

    scope = scope_items_from_saved(saved_scope_items or [])
    if state is DocumentState.DEFAULTS_SYNTHESIZED and document_type is not DocumentType.CHANGE_ORDER:
        scope = sync_scope(scope, expenses, config)

    logger.info(f"Opened {document_type.value}: {state.value}, {len(milestones)} milestones")
    return OpenedDocument(state=state, milestones=milestones, scope_items=scope)


# ---------------------------------------------------------------------------
# Outputs for PDF generation and persistence
# ---------------------------------------------------------------------------

def build_payment_schedule(
    priced: Sequence[PricedMilestone],
    document_type: DocumentType = DocumentType.CONTRACT,
) -> List[Dict[str, Any]]:
    """
    ``{milestone_name, amount}`` rows for the PDF.

    Contracts list every milestone.  Proposals show only the initial fee and
    a balance note.  Change orders show the initial fee, each named custom
    row with a positive price, then the balance note.
    """
    if document_type is DocumentType.CONTRACT:
        return [{"milestone_name": p.milestone.name, "amount": p.price} for p in priced]

    schedule: List[Dict[str, Any]] = []
    initial = next(
        (p for p in priced if p.milestone.milestone_type is MilestoneType.INITIAL_FEE), None
    )
    if initial is not None:
        schedule.append({"milestone_name": initial.milestone.name, "amount": initial.price})
    if document_type is DocumentType.CHANGE_ORDER:
        for p in priced:
            if p.milestone.milestone_type is MilestoneType.CUSTOM and p.milestone.name and p.price > 0:
                schedule.append({"milestone_name": p.milestone.name, "amount": p.price})
    schedule.append({"milestone_name": BALANCE_MESSAGE, "amount": 0.0})
    return schedule


def build_scope_list(scope_items: Sequence[ScopeItem]) -> List[Dict[str, str]]:
    """``{item, description}`` rows for the PDF; untitled, empty rows are dropped."""
    return [
        {"item": s.title, "description": s.description}
        for s in scope_items
        if s.title.strip() or s.description.strip()
    ]


def build_persistence_payload(
    priced: Sequence[PricedMilestone],
    scope_items: Sequence[ScopeItem],
    totals: DocumentTotals,
) -> Dict[str, Any]:
    """Body for the external save call."""
    milestones = []
    for p in priced:
        m = p.milestone
        row: Dict[str, Any] = {
            "name": m.name,
            "milestone_type": m.milestone_type.value,
            "cost": to_amount(m.cost),
            "markup_percent": p.effective_markup_percent,
            "flat_price": round_money(to_amount(m.flat_price_override)) if m.has_override else None,
            "customer_price": p.price,
        }
        if m.subcontractor_fee_id:
            row["subcontractor_fee_id"] = m.subcontractor_fee_id
        if m.additional_expense_id:
            row["additional_expense_id"] = m.additional_expense_id
        if m.description:
            row["description"] = m.description
        milestones.append(row)
    return {
        "milestones": milestones,
        "scope_items": [{"title": s.title, "description": s.description} for s in scope_items],
        "customer_price": totals.customer_total,
    }


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------

@dataclass
class DocumentPreview:
    document_type: DocumentType
    costs: CostSummary
    priced_milestones: List[PricedMilestone]
    totals: DocumentTotals
    scope_items: List[ScopeItem]
    warnings: List[str] = field(default_factory=list)

    @property
    def can_generate(self) -> bool:
        return self.totals.customer_total > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_type": self.document_type.value,
            "costs": self.costs.to_dict(),
            "milestones": [p.to_dict() for p in self.priced_milestones],
            "totals": self.totals.to_dict(),
            "scope_items": [
                {
                    "id": s.id,
                    "title": s.title,
                    "description": s.description,
                    "is_auto_generated": s.is_auto_generated,
                    "sequence": s.sequence,
                    "parent_id": s.parent_id,
                }
                for s in self.scope_items
            ],
            "can_generate": self.can_generate,
            "warnings": self.warnings,
        }


class DocumentPricingEngine:
    """
    Pricing pipeline bound to one company's settings.

    Usage:
        engine = DocumentPricingEngine(PricingConfig.from_company_settings(row))
        preview = engine.preview(expenses, milestones, scope_items)
    """

    def __init__(self, config: Optional[PricingConfig] = None) -> None:
        self.config = config or PricingConfig()

    def preview(
        self,
        expenses: ProjectExpenses,
        milestones: Sequence[Milestone],
        scope_items: Sequence[ScopeItem] = (),
        document_type: DocumentType = DocumentType.CONTRACT,
        sync_auto_scope: bool = True,
    ) -> DocumentPreview:
        costs = aggregate_costs(expenses)
        ms = list(milestones)
        priced = resolve_prices(ms, self.config)
        totals = compute_totals(priced, costs.total_cost, fee_base(ms))

        scope = list(scope_items)
        if sync_auto_scope and document_type is not DocumentType.CHANGE_ORDER:
            scope = sync_scope(scope, expenses, self.config)

        warnings = []
        if totals.customer_total <= 0:
            warnings.append("Customer total is $0.00; the document cannot be generated yet.")
        if totals.profit < 0:
            warnings.append(
                f"Customer total {format_currency(totals.customer_total)} is below "
                f"project cost {format_currency(totals.total_cost)}."
            )
        return DocumentPreview(
            document_type=document_type,
            costs=costs,
            priced_milestones=priced,
            totals=totals,
            scope_items=scope,
            warnings=warnings,
        )

    def generate(
        self,
        expenses: ProjectExpenses,
        milestones: Sequence[Milestone],
        scope_items: Sequence[ScopeItem] = (),
        document_type: DocumentType = DocumentType.CONTRACT,
        sync_auto_scope: bool = True,
    ) -> Dict[str, Any]:
        """
        Final pricing for PDF generation and save.

        Raises DocumentValidationError when the customer total is not positive.
        """
        preview = self.preview(expenses, milestones, scope_items, document_type, sync_auto_scope)
        ensure_generatable(preview.totals)
        return {
            "preview": preview,
            "payment_schedule": build_payment_schedule(preview.priced_milestones, document_type),
            "scope_list": build_scope_list(preview.scope_items),
            "persistence": build_persistence_payload(
                preview.priced_milestones, preview.scope_items, preview.totals
            ),
        }
