"""
asgi.py -- ASGI entry point for Snips.

Run with:  uvicorn asgi:app --reload

api/main.py assembles the app; this module only re-exports it so process
managers have one stable import path.
"""

from api.main import app

__all__ = ["app"]
