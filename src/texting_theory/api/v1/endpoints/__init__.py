"""API endpoint modules for version 1."""

from .posts import router as posts_router
from .votes import router as votes_router

__all__ = [
    "posts_router",
    "votes_router",
]
