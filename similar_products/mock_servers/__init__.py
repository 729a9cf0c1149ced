"""Mock catalog server for local runs and tests."""

from .app import DEFAULT_CATALOG, DEFAULT_SIMILAR, create_app, create_mock_catalog_app

__all__ = ["DEFAULT_CATALOG", "DEFAULT_SIMILAR", "create_app", "create_mock_catalog_app"]
