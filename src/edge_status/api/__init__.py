"""REST API for EdgeStatus."""

from .app import create_app

__all__ = ["create_app"]
