"""
test_import_safety.py — Import and layering checks.

Verifies that:
  1. Every service module imports cleanly with no circular import failures.
  2. The pricing services are pure computation: no web framework, no I/O.
  3. The API layer and application module import and expose their routes.

No database, network, or external services are required.
"""

import importlib
import inspect

import pytest

_PURE_SERVICE_MODULES = [
    "app.services.money",
    "app.services.pricing_config",
    "app.services.document_models",
    "app.services.cost_aggregator",
    "app.services.pricing_engine",
    "app.services.scope_synthesizer",
    "app.services.totals_engine",
    "app.services.ordering",
    "app.services.document_builder",
]

_INFRA_MODULES = [
    "app.services.logging_config",
    "app.services.middleware",
    "app.api.pricing_routes",
    "app.main",
]


class TestModuleImports:

    @pytest.mark.parametrize("module_path", _PURE_SERVICE_MODULES + _INFRA_MODULES)
    def test_module_imports(self, module_path):
        mod = importlib.import_module(module_path)
        assert mod is not None, f"Module {module_path} is None after import"


class TestServiceLayering:
    """Pricing services must not reach up into the HTTP layer."""

    @pytest.mark.parametrize("module_path", _PURE_SERVICE_MODULES)
    def test_no_web_framework(self, module_path):
        src = inspect.getsource(importlib.import_module(module_path))
        assert "fastapi" not in src, f"{module_path} must not depend on fastapi"
        assert "starlette" not in src, f"{module_path} must not depend on starlette"

    def test_money_is_leaf(self):
        """money has no app imports, so every other service can use it."""
        import app.services.money as money
        src = inspect.getsource(money)
        assert "from app." not in src

    def test_routes_registered(self):
        from app.main import app
        paths = {route.path for route in app.routes}
        for path in (
            "/health",
            "/api/documents/defaults",
            "/api/documents/preview",
            "/api/documents/generate",
            "/api/documents/milestones/reorder",
            "/api/documents/scope/reorder",
            "/api/documents/milestones/import",
            "/api/documents/scope/import",
        ):
            assert path in paths, f"{path} not registered"
