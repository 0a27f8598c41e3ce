"""API routers package.

This package contains all FastAPI routers for the application.
"""

from .project_members import router as project_members_router

__all__ = [
    "project_members_router",
]
