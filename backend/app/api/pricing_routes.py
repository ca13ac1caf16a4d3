"""
Document Pricing API Routes

POST /api/documents/defaults            first-open initialization (defaults or saved)
POST /api/documents/preview             priced milestones, totals, synced scope
POST /api/documents/generate            preview + payment schedule + save payload
POST /api/documents/milestones/reorder  drag-and-drop move of one milestone
POST /api/documents/scope/reorder       drag-and-drop move of one scope item
POST /api/documents/milestones/import   append milestones from another project
POST /api/documents/scope/import        append scope items from another project

Every route is stateless: the request carries the current lists and the
response carries the recomputed result.  Nothing is persisted here.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from app.services.document_builder import DocumentPricingEngine, open_document
from app.services.document_models import (
    DocumentType,
    Milestone,
    MilestoneType,
    ProjectExpenses,
    ScopeItem,
    new_local_id,
)
from app.services.ordering import import_milestones, import_scope_items, move_item
from app.services.pricing_config import PricingConfig
from app.services.money import to_amount, to_optional_amount

router = APIRouter(prefix="/api/documents", tags=["Document Pricing"])
logger = logging.getLogger("contract-pricing.routes")


# ── Pydantic Models ─────────────────────────────────────────────────────────

class PricingSettings(BaseModel):
    """Company document defaults, named after the companies table columns."""
    default_markup_percent: Optional[float] = Field(None, ge=0)
    default_initial_fee_percent: Optional[float] = Field(None, ge=0, le=100)
    default_initial_fee_min: Optional[float] = Field(None, ge=0)
    default_initial_fee_max: Optional[float] = Field(None, ge=0)
    default_final_fee_percent: Optional[float] = Field(None, ge=0, le=100)
    default_final_fee_min: Optional[float] = Field(None, ge=0)
    default_final_fee_max: Optional[float] = Field(None, ge=0)
    default_subcontractor_markup_percent: Optional[float] = Field(None, ge=0)
    default_equipment_materials_markup_percent: Optional[float] = Field(None, ge=0)
    default_additional_expenses_markup_percent: Optional[float] = Field(None, ge=0)
    auto_include_initial_payment: bool = True
    auto_include_final_payment: bool = True
    auto_include_subcontractor: bool = True
    auto_include_equipment_materials: bool = True
    auto_include_additional_expenses: bool = True

    def to_config(self) -> PricingConfig:
        return PricingConfig.from_company_settings(self.model_dump())


class ExpensesIn(BaseModel):
    """Raw expense rows; field names vary per table so rows stay free-form."""
    subcontractor_fees: List[Dict[str, Any]] = []
    equipment: List[Dict[str, Any]] = []
    materials: List[Dict[str, Any]] = []
    additional: List[Dict[str, Any]] = []

    def to_expenses(self) -> ProjectExpenses:
        return ProjectExpenses.from_records(
            subcontractor_fees=self.subcontractor_fees,
            equipment=self.equipment,
            materials=self.materials,
            additional=self.additional,
        )


class MilestoneIn(BaseModel):
    id: Optional[str] = None
    name: str = ""
    milestone_type: str = MilestoneType.CUSTOM.value
    cost: Any = 0
    markup_percent: Any = None
    flat_price: Any = None
    sequence: Optional[int] = None
    subcontractor_fee_id: Optional[str] = None
    additional_expense_id: Optional[str] = None
    description: str = ""

    def to_milestone(self, position: int) -> Milestone:
        mtype = MilestoneType.parse(self.milestone_type)
        return Milestone(
            id=self.id or new_local_id("milestone"),
            name=self.name,
            milestone_type=mtype,
            cost=max(0.0, to_amount(self.cost)),
            markup_percent=to_optional_amount(self.markup_percent),
            flat_price_override=self.flat_price,
            sequence=position if self.sequence is None else self.sequence,
            subcontractor_fee_id=self.subcontractor_fee_id,
            additional_expense_id=self.additional_expense_id,
            description=self.description,
        )


class ScopeItemIn(BaseModel):
    id: Optional[str] = None
    title: str = ""
    description: str = ""
    is_auto_generated: bool = False
    sequence: Optional[int] = None
    parent_id: Optional[str] = None

    def to_scope_item(self, position: int) -> ScopeItem:
        return ScopeItem(
            id=self.id or new_local_id("scope"),
            title=self.title,
            description=self.description,
            is_auto_generated=self.is_auto_generated,
            sequence=position if self.sequence is None else self.sequence,
            parent_id=self.parent_id,
        )


class DocumentRequest(BaseModel):
    document_type: DocumentType = DocumentType.CONTRACT
    settings: PricingSettings = PricingSettings()
    expenses: ExpensesIn = ExpensesIn()
    milestones: List[MilestoneIn] = []
    scope_items: List[ScopeItemIn] = []
    sync_auto_scope: bool = True


class OpenDocumentRequest(BaseModel):
    document_type: DocumentType = DocumentType.CONTRACT
    settings: PricingSettings = PricingSettings()
    expenses: ExpensesIn = ExpensesIn()
    saved_milestones: List[Dict[str, Any]] = []
    saved_scope_items: List[Dict[str, Any]] = []


class MilestoneReorderRequest(BaseModel):
    milestones: List[MilestoneIn]
    from_index: int
    to_index: Optional[int] = None


class ScopeReorderRequest(BaseModel):
    scope_items: List[ScopeItemIn]
    from_index: int
    to_index: Optional[int] = None


class MilestoneImportRequest(BaseModel):
    settings: PricingSettings = PricingSettings()
    milestones: List[MilestoneIn] = []
    imported: List[MilestoneIn]


class ScopeImportRequest(BaseModel):
    scope_items: List[ScopeItemIn] = []
    imported: List[ScopeItemIn]


# ── Helpers ──────────────────────────────────────────────────────────────────

def _milestones(rows: List[MilestoneIn]) -> List[Milestone]:
    return [row.to_milestone(i) for i, row in enumerate(rows)]


def _scope(rows: List[ScopeItemIn]) -> List[ScopeItem]:
    return [row.to_scope_item(i) for i, row in enumerate(rows)]


def _milestone_out(m: Milestone) -> dict:
    return {
        "id": m.id,
        "name": m.name,
        "milestone_type": m.milestone_type.value,
        "cost": m.cost,
        "markup_percent": m.markup_percent,
        "flat_price": m.flat_price_override,
        "sequence": m.sequence,
        "subcontractor_fee_id": m.subcontractor_fee_id,
        "additional_expense_id": m.additional_expense_id,
        "description": m.description,
    }


def _scope_out(s: ScopeItem) -> dict:
    return {
        "id": s.id,
        "title": s.title,
        "description": s.description,
        "is_auto_generated": s.is_auto_generated,
        "sequence": s.sequence,
        "parent_id": s.parent_id,
    }


# ── Initialization ───────────────────────────────────────────────────────────

@router.post("/defaults")
async def open_document_route(req: OpenDocumentRequest):
    """Decide once per document open: restore saved milestones or synthesize defaults."""
    opened = open_document(
        expenses=req.expenses.to_expenses(),
        config=req.settings.to_config(),
        document_type=req.document_type,
        saved_milestones=req.saved_milestones,
        saved_scope_items=req.saved_scope_items,
    )
    return {
        "state": opened.state.value,
        "milestones": [_milestone_out(m) for m in opened.milestones],
        "scope_items": [_scope_out(s) for s in opened.scope_items],
    }


# ── Preview / Generate ───────────────────────────────────────────────────────

@router.post("/preview")
async def preview_document(req: DocumentRequest):
    """Recompute every price and total from the lists in the request."""
    engine = DocumentPricingEngine(req.settings.to_config())
    preview = engine.preview(
        req.expenses.to_expenses(),
        _milestones(req.milestones),
        _scope(req.scope_items),
        document_type=req.document_type,
        sync_auto_scope=req.sync_auto_scope,
    )
    return preview.to_dict()


@router.post("/generate")
async def generate_document(req: DocumentRequest, request: Request):
    """
    Final pricing for PDF generation.

    A non-positive customer total raises DocumentValidationError, which the
    application-level handler turns into a 400 with the user-facing message.
    """
    engine = DocumentPricingEngine(req.settings.to_config())
    result = engine.generate(
        req.expenses.to_expenses(),
        _milestones(req.milestones),
        _scope(req.scope_items),
        document_type=req.document_type,
        sync_auto_scope=req.sync_auto_scope,
    )
    preview = result["preview"]
    logger.info(
        "document priced for generation",
        extra={
            "document_type": req.document_type.value,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return {
        **preview.to_dict(),
        "payment_schedule": result["payment_schedule"],
        "scope_list": result["scope_list"],
        "persistence": result["persistence"],
    }


# ── Reorder ──────────────────────────────────────────────────────────────────

@router.post("/milestones/reorder")
async def reorder_milestones(req: MilestoneReorderRequest):
    try:
        moved = move_item(_milestones(req.milestones), req.from_index, req.to_index)
    except IndexError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"milestones": [_milestone_out(m) for m in moved]}


@router.post("/scope/reorder")
async def reorder_scope(req: ScopeReorderRequest):
    try:
        moved = move_item(_scope(req.scope_items), req.from_index, req.to_index)
    except IndexError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"scope_items": [_scope_out(s) for s in moved]}


# ── Import ───────────────────────────────────────────────────────────────────

@router.post("/milestones/import")
async def import_milestones_route(req: MilestoneImportRequest):
    """Append selected milestones from another project at this document's default markup."""
    if not req.imported:
        raise HTTPException(status_code=400, detail="Select at least one milestone to import")
    config = req.settings.to_config()
    merged = import_milestones(
        _milestones(req.milestones),
        _milestones(req.imported),
        default_markup_percent=config.default_markup_percent,
    )
    return {"milestones": [_milestone_out(m) for m in merged]}


@router.post("/scope/import")
async def import_scope_route(req: ScopeImportRequest):
    if not req.imported:
        raise HTTPException(status_code=400, detail="Select at least one scope item to import")
    merged = import_scope_items(_scope(req.scope_items), _scope(req.imported))
    return {"scope_items": [_scope_out(s) for s in merged]}
