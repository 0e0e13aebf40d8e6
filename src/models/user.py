"""User model - the single entity managed by the store."""
from enum import StrEnum

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class Gender(StrEnum):
    """Allowed values for User.gender."""

    MALE = "MALE"
    FEMALE = "FEMALE"
    ATTACK_HELICOPTER = "ATTACK_HELICOPTER"
    OTHER = "OTHER"


class User(Base):
    """User row. The id is assigned by the database on insert and never changes."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Stored as the enum name so rows stay readable outside the app
    gender: Mapped[str] = mapped_column(String(32), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
