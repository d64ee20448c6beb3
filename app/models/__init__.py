"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.review import Review

__all__ = ["Base", "Review"]
