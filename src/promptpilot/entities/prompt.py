"""Prompt domain entity."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Prompt:
    """Normalized view of a prompt document.

    Prompt documents carry both legacy and current field names; services
    fold them into this single shape (see services.prompt_feed.to_prompt).
    """

    id: str
    title: str = ""
    content: str = ""
    text: str = ""
    description: str = ""
    category: str = "Allgemein"
    tags: tuple[str, ...] = field(default_factory=tuple)
    author_id: str = ""
    author_name: str = "Unbekannter Autor"
    author_image_url: str = ""
    likes_count: int = 0
    views_count: int = 0
    comments_count: int = 0
    average_rating: float = 0.0
    rating_count: int = 0
    is_public: bool = True
    is_premium: bool = False
    is_featured: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title, content, category and tags."""
        needle = query.lower()
        return (
            needle in self.title.lower()
            or needle in self.content.lower()
            or needle in self.category.lower()
            or any(needle in tag.lower() for tag in self.tags)
        )
