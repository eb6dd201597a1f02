"""API endpoints package for GitNarrator."""

from narrator.app.api.repos import resolve_router
from narrator.app.api.repos import router as repos_router

__all__ = [
    "repos_router",
    "resolve_router",
]
