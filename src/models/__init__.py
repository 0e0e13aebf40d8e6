"""SQLAlchemy models."""
from models.base import Base
from models.user import Gender, User

__all__ = ["Base", "Gender", "User"]
