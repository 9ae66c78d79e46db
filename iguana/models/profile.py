from datetime import datetime

from beanie import Document
from pydantic import Field


class Profile(Document):
    """User account keyed by the identity provider's user id."""
    id: str
    username: str | None = None
    full_name: str | None = None
    credits: int = 0
    applied_transactions: list[str] = Field(default_factory=list)  # transaction ids already granted
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "profiles"
