"""HTTP surface for arenacontent (FastAPI).

Run with ``arenacontent serve`` or any ASGI server pointed at
``arenacontent.server.app:create_app`` (factory).
"""

from arenacontent.server.app import create_app

__all__ = ["create_app"]
