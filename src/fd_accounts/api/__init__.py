"""HTTP surface: admin time control, manual job triggers, accounts, reports."""

from .app import create_app

__all__ = ["create_app"]
