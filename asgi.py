"""
asgi.py -- ASGI entry point for the Conduit auth core.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Other Conduit routers (articles, profiles, comments) mount onto this same app
and depend on auth.dependencies.get_current_user for protected routes.
"""

from api.main import app

__all__ = ["app"]
