"""SQLAlchemy model for user accounts mirrored from the identity provider."""

import json
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from laterstack.models.saved_item import Base, SavedItem

DEFAULT_READING_SPEED = 250  # words per minute
MIN_READING_SPEED = 50
MAX_READING_SPEED = 1000
MAX_GOALS_LENGTH = 500


class User(Base):
    """A reader. Exactly one row per identity-provider user id."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str] = mapped_column(String(100), unique=True)  # identity provider id

    # Profile (owned by the identity provider)
    email: Mapped[str] = mapped_column(String(320), default="")
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Preferences (owned by the user)
    interests: Mapped[str] = mapped_column(Text, default="[]")  # JSON list
    goals: Mapped[str] = mapped_column(String(MAX_GOALS_LENGTH), default="")
    reading_speed: Mapped[int] = mapped_column(Integer, default=DEFAULT_READING_SPEED)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    saved_items: Mapped[list[SavedItem]] = relationship(back_populates="user")

    @property
    def interest_list(self) -> list[str]:
        return json.loads(self.interests) if self.interests else []

    def __repr__(self) -> str:
        return f"<User(id={self.id}, external_id='{self.external_id}')>"
