"""
asgi.py -- ASGI entry point for Gatekeeper.

Run with:  uvicorn asgi:app --reload

api/main.py builds the app; this module is the stable import path for
servers and process managers so deployments never reference api/ directly.
"""

from api.main import app

__all__ = ["app"]
