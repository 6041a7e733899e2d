from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import Field, field_validator

from inkwell.core.clock import ensure_utc
from inkwell.models.base import CamelModel
from inkwell.models.post import Author, AuthorIn


class CommentStatus(str, Enum):
    PUBLISHED = "published"
    PENDING = "pending"
    FLAGGED = "flagged"


class Comment(CamelModel):
    id: str
    post_id: str
    author: Author = Field(default_factory=Author)
    body: str
    status: CommentStatus = CommentStatus.PUBLISHED
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class CommentCreate(CamelModel):
    body: Optional[str] = None
    author: Optional[Union[str, AuthorIn]] = None


class CommentUpdate(CamelModel):
    body: Optional[str] = None
    status: Optional[str] = None
