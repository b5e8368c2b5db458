"""Database models."""

from laterstack.models.saved_item import ApiUsageLog, Base, SavedItem
from laterstack.models.user import User

__all__ = [
    "ApiUsageLog",
    "Base",
    "SavedItem",
    "User",
]
