"""
HTTP API (FastAPI).

    from storefront.api import create_app

    app = create_app(Settings.from_env())
"""

from __future__ import annotations

from storefront.api._app import ApiError, unwrap, create_app

__all__ = ("ApiError", "unwrap", "create_app")
