"""HTTP boundary for the similar products service."""

from .app import create_app

__all__ = ["create_app"]
