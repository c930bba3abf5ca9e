"""
FastAPI/ASGI application entrypoint.

Run with: uvicorn backend_stellark.api_server.app:app --host 0.0.0.0 --port 7042
"""

from backend_stellark.api_server.server import app

__all__ = ["app"]
