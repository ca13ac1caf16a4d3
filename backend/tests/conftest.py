"""
conftest.py — Shared pytest fixtures for the contract pricing test suite.

No database or external service fixtures are defined here.  The pricing
services are pure functions, so every test builds its inputs in memory.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``app.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any app imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# PricingConfig fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def default_config():
    """
    PricingConfig with all defaults.

    Defaults:
      markup = 30%, initial fee = 20% [0, ∞), final fee = 80% [0, ∞),
      every auto-include flag on.
    """
    from app.services.pricing_config import PricingConfig
    return PricingConfig()


@pytest.fixture(scope="session")
def clamped_config():
    """Initial fee 20% with min $500 / max $2,000; final fee 80% with max $5,000."""
    from app.services.pricing_config import PricingConfig
    return PricingConfig(
        initial_fee_percent=20.0,
        initial_fee_min=500.0,
        initial_fee_max=2000.0,
        final_fee_percent=80.0,
        final_fee_max=5000.0,
    )


# ---------------------------------------------------------------------------
# Expense fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def scenario_expenses():
    """
    Subcontractor $1,000, equipment $500, materials $200: total cost $1,700.
    """
    from app.services.document_models import ProjectExpenses
    return ProjectExpenses.from_records(
        subcontractor_fees=[
            {"id": "sf-1", "job_description": "Excavation", "expected_value": 1000},
        ],
        equipment=[
            {"id": "eq-1", "name": "Pool pump", "quantity": 1, "expected_price": 500},
        ],
        materials=[
            {"id": "mat-1", "name": "Gravel", "quantity": 3, "unit": "ton", "expected_price": 200},
        ],
    )


@pytest.fixture
def mixed_expenses():
    """
    A wider expense set with actual-vs-expected precedence and a malformed value.

      subcontractor: 1200 (actual over expected 1000) + 800
      equipment:     450 (actual) + 0 ("n/a" expected)
      materials:     300
      additional:    150 + 50
      total:         2950
    """
    from app.services.document_models import ProjectExpenses
    return ProjectExpenses.from_records(
        subcontractor_fees=[
            {"id": "sf-1", "job_description": "Excavation", "subcontractor_name": "Dig Co",
             "expected_value": 1000, "actual_value": 1200},
            {"id": "sf-2", "job_description": "Electrical rough-in", "expected_value": "800"},
        ],
        equipment=[
            {"id": "eq-1", "name": "Pool pump", "quantity": 2, "expected_price": 400, "actual_price": 450},
            {"id": "eq-2", "name": "Heater", "quantity": 1, "expected_price": "n/a"},
        ],
        materials=[
            {"id": "mat-1", "name": "Tile", "quantity": 120, "unit": "sq ft", "expected_price": 300},
        ],
        additional=[
            {"id": "add-1", "description": "Permit fees", "expected_value": 150},
            {"id": "add-2", "description": "Dumpster rental", "amount": 50},
        ],
    )


# ---------------------------------------------------------------------------
# Milestone fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def scenario_milestones():
    """
    Initial fee, three pass-through milestones (1000 / 500 / 200) with no
    explicit markup, final inspection.
    """
    from app.services.document_models import Milestone, MilestoneType
    return [
        Milestone(id="m-init", name="Initial Contract Fee", milestone_type=MilestoneType.INITIAL_FEE, sequence=0),
        Milestone(id="m-sub", name="Excavation", milestone_type=MilestoneType.SUBCONTRACTOR,
                  cost=1000.0, sequence=1, subcontractor_fee_id="sf-1"),
        Milestone(id="m-eq", name="Equipment", milestone_type=MilestoneType.EQUIPMENT_MATERIALS,
                  cost=500.0, sequence=2),
        Milestone(id="m-mat", name="Materials", milestone_type=MilestoneType.EQUIPMENT_MATERIALS,
                  cost=200.0, sequence=3),
        Milestone(id="m-final", name="Final Inspection", milestone_type=MilestoneType.FINAL_INSPECTION, sequence=4),
    ]


@pytest.fixture
def counter_ids():
    """Deterministic id factory: id-1, id-2, ..."""
    state = {"n": 0}

    def _next() -> str:
        state["n"] += 1
        return f"id-{state['n']}"

    return _next
