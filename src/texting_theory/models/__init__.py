"""SQLAlchemy models for the Texting Theory application."""

from .post import Post, Target

__all__ = ["Post", "Target"]
