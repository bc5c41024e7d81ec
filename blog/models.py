"""
blog/models.py -- Domain dataclasses for posts and threaded comments.

These are pure data containers. Derived fields (slug, excerpt, read time,
published_at) are computed by blog/store.py on write.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class PostStatus(str, Enum):
    draft = "draft"
    published = "published"


@dataclass
class Post:
    """A blog post.

    slug is unique across all posts and is recomputed when the title changes.
    published_at is stamped the first time status becomes "published" and is
    kept if the post is later moved back to draft.

    id is None before the record is written to the database.
    """

    title: str
    content: str
    author_id: str
    status: PostStatus = PostStatus.draft
    id: Optional[str] = None
    slug: str = ""
    excerpt: str = ""
    tags: list[str] = field(default_factory=list)
    cover_image: Optional[str] = None
    read_time: int = 0
    published_at: Optional[str] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""


@dataclass
class Comment:
    """A comment on a post. parent_id links a reply to the comment it answers."""

    post_id: str
    user_id: str
    content: str
    id: Optional[str] = None
    parent_id: Optional[str] = None
    is_edited: bool = False
    created_at: str = ""
    updated_at: str = ""
