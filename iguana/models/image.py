from datetime import datetime

from beanie import Document
from pydantic import Field


class Image(Document):
    user_id: str
    prompt: str
    model: str  # iguana-fast, iguana-sketch, iguana-pro
    image_url: str
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "images"
        indexes = [[("user_id", 1), ("created_at", -1)]]

    def to_public(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": self.user_id,
            "prompt": self.prompt,
            "model": self.model,
            "image_url": self.image_url,
            "created_at": self.created_at.isoformat(),
        }
