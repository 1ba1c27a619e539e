"""
CXA Bridge Web Layer.

This package provides the HTTP API for the bridge:
- WebServer: FastAPI application with all routes
- routes.status: GET/POST /status and POST /source
- auth: Optional HTTP Basic authentication
"""

from cxabridge.web.server import WebServer

__all__ = [
    "WebServer",
]
