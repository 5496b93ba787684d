from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

PLACEHOLDER_IMAGE = "https://via.placeholder.com/300x200"


class Category(str, Enum):
    LATEST = "latest"
    AI_TECH = "ai-tech"
    INDUSTRY = "industry"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Category":
        """Map a raw category string to a member, defaulting to LATEST."""
        for member in cls:
            if member.value == value:
                return member
        return cls.LATEST


@dataclass(frozen=True)
class Article:
    """
    A normalized news item.

    Articles are never mutated after a fetch. Favorites and read history hold
    copies made with `stamped`, which only adds `favorited_at` / `read_at`.
    """
    id: str
    title: str
    description: str
    content: str
    url: str
    image: str
    source: str
    published_at: str
    category: str
    favorited_at: Optional[str] = None
    read_at: Optional[str] = None

    def stamped(self, **timestamps: str) -> "Article":
        return replace(self, **timestamps)

    def as_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "url": self.url,
            "image": self.image,
            "source": self.source,
            "publishedAt": self.published_at,
            "category": self.category,
        }
        if self.favorited_at:
            data["favoritedAt"] = self.favorited_at
        if self.read_at:
            data["readAt"] = self.read_at
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            description=data.get("description") or "",
            content=data.get("content") or "",
            url=data.get("url") or "",
            image=data.get("image") or PLACEHOLDER_IMAGE,
            source=data.get("source") or "",
            published_at=data.get("publishedAt") or "",
            category=data.get("category") or Category.LATEST.value,
            favorited_at=data.get("favoritedAt"),
            read_at=data.get("readAt"),
        )
