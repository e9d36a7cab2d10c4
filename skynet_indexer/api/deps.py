"""
Shared FastAPI dependencies.
"""

from fastapi import Request

from ..core.service import SkynetService


def get_service(request: Request) -> SkynetService:
    """Dependency: the service instance bound to this app."""
    return request.app.state.service
