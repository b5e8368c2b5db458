"""Request and response bodies for the HTTP API (shared with the Python client)."""

from datetime import datetime

from pydantic import BaseModel


class SaveArticleRequest(BaseModel):
    url: str | None = None


class SavedItemResponse(BaseModel):
    """A persisted saved item, without its extracted body."""

    id: int
    url: str
    title: str
    estimated_time: int
    topics: list[str]
    relevance_score: float
    reasoning: str
    saved_at: datetime
    read_at: datetime | None
    archived_at: datetime | None
    status: str


class ActionResult(BaseModel):
    """Uniform result of every mutating operation."""

    success: bool
    error: str | None = None
    error_code: str | None = None
    retryable: bool | None = None
    item_id: int | None = None
    item: SavedItemResponse | None = None


class ItemCounts(BaseModel):
    all: int = 0
    unread: int = 0
    read: int = 0
    archived: int = 0
    quick_read: int = 0


class ItemGroups(BaseModel):
    unread: list[SavedItemResponse]
    read: list[SavedItemResponse]
    archived: list[SavedItemResponse]


class ItemListResponse(BaseModel):
    filter: str
    items: list[SavedItemResponse]
    counts: ItemCounts
    groups: ItemGroups | None = None


class ProfileUpdateRequest(BaseModel):
    """Profile form fields, validated by laterstack.validation."""

    interests: str | None = ""
    goals: str | None = ""
    reading_speed: str | int | float | None = 250


class ProfileResponse(BaseModel):
    email: str
    name: str | None
    interests: list[str]
    goals: str
    reading_speed: int
