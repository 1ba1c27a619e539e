"""
Web Routes Package.

This package contains FastAPI route modules:
- status: Amplifier status and control (/status, /source)
"""

from cxabridge.web.routes.status import register_status_routes

__all__ = [
    "register_status_routes",
]
