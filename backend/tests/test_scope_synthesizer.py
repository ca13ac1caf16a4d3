"""
test_scope_synthesizer.py — Unit tests for scope-of-work synthesis and merge.

Tests cover:
  - bullet formatting with quantity, unit and pluralization
  - empty and disabled categories produce no scope item
  - in-place description replacement for existing auto titles
  - user-authored items are never touched or reordered
"""

import pytest

from app.services.document_models import ExpenseCategory, ExpenseLineItem, ProjectExpenses, ScopeItem
from app.services.pricing_config import (
    SCOPE_TITLE_ADDITIONAL,
    SCOPE_TITLE_EQUIPMENT_MATERIALS,
    SCOPE_TITLE_SUBCONTRACTOR,
    PricingConfig,
)
from app.services.scope_synthesizer import (
    bullet_line,
    merge_scope_items,
    pluralize_unit,
    synthesize_scope,
    sync_scope,
    SynthesizedScope,
)


def _item(name="", description="", quantity=None, unit="", category=ExpenseCategory.EQUIPMENT):
    return ExpenseLineItem(
        id="x", category=category, name=name, description=description,
        quantity=quantity, unit=unit,
    )


class TestBullets:

    @pytest.mark.parametrize(
        "unit, quantity, expected",
        [
            ("bag", 1, "bag"),
            ("bag", 2, "bags"),
            ("bag", 0, "bags"),
            ("bag", 1.5, "bags"),
            ("sq ft", 10, "sq fts"),
            ("yards", 3, "yards"),
            ("gallons", 1, "gallons"),
            ("", 4, ""),
        ],
    )
    def test_pluralize(self, unit, quantity, expected):
        assert pluralize_unit(unit, quantity) == expected

    def test_quantity_bullet(self):
        assert bullet_line(_item(name="Gravel", quantity=3, unit="ton")) == "• Gravel (3 tons)"

    def test_single_quantity(self):
        assert bullet_line(_item(name="Pool pump", quantity=1)) == "• Pool pump (1 unit)"

    def test_fractional_quantity(self):
        assert bullet_line(_item(name="Sand", quantity=2.5, unit="yard")) == "• Sand (2.5 yards)"

    @pytest.mark.parametrize(
        "quantity, text",
        [
            (1234567.5, "1234567.5"),
            (0.0000001, "0.0000001"),
            (12.125, "12.125"),
        ],
    )
    def test_quantity_keeps_every_digit(self, quantity, text):
        assert bullet_line(_item(name="Tile", quantity=quantity, unit="ft")) == f"• Tile ({text} fts)"

    def test_plain_bullet(self):
        assert bullet_line(_item(description="Permit fees")) == "• Permit fees"

    def test_no_text_no_bullet(self):
        assert bullet_line(_item(quantity=2)) is None


class TestSynthesize:

    def test_scenario(self, scenario_expenses, default_config):
        entries = synthesize_scope(scenario_expenses, default_config)
        assert [e.title for e in entries] == [SCOPE_TITLE_SUBCONTRACTOR, SCOPE_TITLE_EQUIPMENT_MATERIALS]
        assert entries[0].description == "• Excavation"
        assert entries[1].description == "• Pool pump (1 unit)\n• Gravel (3 tons)"

    def test_subcontractor_uses_job_description(self, mixed_expenses, default_config):
        entries = {e.title: e for e in synthesize_scope(mixed_expenses, default_config)}
        assert entries[SCOPE_TITLE_SUBCONTRACTOR].description == "• Excavation\n• Electrical rough-in"
        assert entries[SCOPE_TITLE_ADDITIONAL].description == "• Permit fees\n• Dumpster rental"

    def test_no_equipment_materials_no_item(self, default_config):
        """Zero equipment/material lines with the flag on → no item at all."""
        expenses = ProjectExpenses.from_records(
            subcontractor_fees=[{"id": "s", "job_description": "Framing", "expected_value": 10}],
        )
        titles = [e.title for e in synthesize_scope(expenses, default_config)]
        assert SCOPE_TITLE_EQUIPMENT_MATERIALS not in titles
        assert titles == [SCOPE_TITLE_SUBCONTRACTOR]

    def test_disabled_category_skipped(self, mixed_expenses):
        config = PricingConfig(auto_include_subcontractor=False, auto_include_additional_expenses=False)
        titles = [e.title for e in synthesize_scope(mixed_expenses, config)]
        assert titles == [SCOPE_TITLE_EQUIPMENT_MATERIALS]

    def test_empty_expenses(self, default_config):
        assert synthesize_scope(ProjectExpenses(), default_config) == []


class TestMerge:

    def _existing(self):
        return [
            ScopeItem(id="u1", title="Site prep", description="Clear the yard", sequence=0),
            ScopeItem(id="a1", title=SCOPE_TITLE_SUBCONTRACTOR, description="old text",
                      is_auto_generated=False, sequence=1),
            ScopeItem(id="u2", title="Cleanup", description="Haul debris", sequence=2),
        ]

    def test_replaces_in_place(self, counter_ids):
        merged = merge_scope_items(
            self._existing(),
            [SynthesizedScope(SCOPE_TITLE_SUBCONTRACTOR, "• New")],
            id_factory=counter_ids,
        )
        assert [s.id for s in merged] == ["u1", "a1", "u2"]
        assert merged[1].description == "• New"
        assert merged[1].is_auto_generated is True
        assert merged[1].sequence == 1

    def test_appends_missing_category(self, counter_ids):
        merged = merge_scope_items(
            self._existing(),
            [SynthesizedScope(SCOPE_TITLE_ADDITIONAL, "• Permit")],
            id_factory=counter_ids,
        )
        assert [s.id for s in merged] == ["u1", "a1", "u2", "id-1"]
        assert merged[-1].title == SCOPE_TITLE_ADDITIONAL
        assert merged[-1].is_auto_generated is True
        assert merged[-1].sequence == 3

    def test_user_items_untouched(self, counter_ids):
        existing = self._existing()
        merged = merge_scope_items(
            existing,
            [
                SynthesizedScope(SCOPE_TITLE_SUBCONTRACTOR, "• A"),
                SynthesizedScope(SCOPE_TITLE_EQUIPMENT_MATERIALS, "• B"),
            ],
            id_factory=counter_ids,
        )
        assert merged[0] == existing[0]
        assert merged[2] == existing[2]
        # input list is not modified
        assert existing[1].description == "old text"

    def test_empty_synthesis_keeps_list(self):
        existing = self._existing()
        assert merge_scope_items(existing, []) == existing

    def test_sync_scope_is_idempotent(self, scenario_expenses, default_config):
        once = sync_scope([], scenario_expenses, default_config)
        twice = sync_scope(once, scenario_expenses, default_config)
        assert [(s.id, s.title, s.description) for s in once] == [
            (s.id, s.title, s.description) for s in twice
        ]
