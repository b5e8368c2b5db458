"""SQLAlchemy models for saved items and API usage, plus engine/session setup."""

import json
import logging
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.ext.asyncio import AsyncAttrs, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from laterstack.config import get_settings

logger = logging.getLogger(__name__)


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all models."""

    pass


class SavedItem(Base):
    """An article a user saved for later, with its extracted content and analysis."""

    __tablename__ = "saved_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))

    url: Mapped[str] = mapped_column(String(2000))
    title: Mapped[str] = mapped_column(String(500))
    content: Mapped[str] = mapped_column(Text, default="")
    estimated_time: Mapped[int] = mapped_column(Integer, default=1)  # minutes, >= 1

    # Analysis
    topics: Mapped[str] = mapped_column(Text, default="[]")  # JSON list, at most 5
    relevance_score: Mapped[float] = mapped_column(Float, default=0.0)  # 0-1
    reasoning: Mapped[str] = mapped_column(String(500), default="")

    # Triage state: two independent timestamps, not an enum
    saved_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    read_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="saved_items")  # noqa: F821

    __table_args__ = (
        UniqueConstraint("user_id", "url", name="uq_saved_items_user_url"),
        Index("idx_saved_items_user", "user_id"),
        Index("idx_saved_items_relevance", "relevance_score", "saved_at"),
    )

    @property
    def topic_list(self) -> list[str]:
        return json.loads(self.topics) if self.topics else []

    def __repr__(self) -> str:
        return f"<SavedItem(id={self.id}, user_id={self.user_id}, url='{self.url}')>"


class ApiUsageLog(Base):
    """Log of Anthropic API usage for cost tracking."""

    __tablename__ = "api_usage_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    service: Mapped[str] = mapped_column(String(30))  # analyzer
    model: Mapped[str] = mapped_column(String(50))
    input_tokens: Mapped[int] = mapped_column(Integer, default=0)
    output_tokens: Mapped[int] = mapped_column(Integer, default=0)
    cost_usd: Mapped[float] = mapped_column(Float, default=0.0)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("idx_usage_timestamp", "timestamp"),
        Index("idx_usage_service", "service"),
    )


# Database engine and session factory
_engine = None
_session_factory = None


async def get_engine():
    """Get or create the async database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        # Set busy timeout via connect_args so SQLite waits for locks
        # instead of immediately raising "database is locked".
        _engine = create_async_engine(
            settings.database_url, echo=False, connect_args={"timeout": 30}
        )

        # Instrument for OTel tracing
        try:
            from laterstack.tracing import instrument_engine

            instrument_engine(_engine)
        except Exception:
            logger.debug("SQLAlchemy tracing unavailable", exc_info=True)
    return _engine


async def get_session_factory():
    """Get or create the async session factory."""
    global _session_factory
    if _session_factory is None:
        engine = await get_engine()
        _session_factory = async_sessionmaker(engine, expire_on_commit=False)
    return _session_factory


async def init_db():
    """Initialize the database, creating all tables."""
    engine = await get_engine()

    # Enable WAL mode for better concurrent read/write performance
    async with engine.begin() as conn:
        await conn.execute(text("PRAGMA journal_mode=WAL"))

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")


async def get_session():
    """Get a database session (dependency injection helper)."""
    factory = await get_session_factory()
    async with factory() as session:
        yield session
