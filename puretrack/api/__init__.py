"""
FastAPI service for digest acknowledgement.

Provides:
- GET/POST /acknowledge - Close a digest with its emailed token
- GET /health - Service health check
"""

from puretrack.api.app import create_app

__all__ = ["create_app"]
