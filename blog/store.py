"""
blog/store.py -- SQLAlchemy-backed persistence for posts and comments.

Uses SQLAlchemy Core (not ORM) so the dataclasses in blog/models.py remain the
authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. BlogStore is the repository; the _row_to_*
functions are the mappers. Route handlers never touch SQL directly.

Derived fields are computed here, on write, so every caller gets the same
rules:
  slug       -- from the title, lowercase ascii words joined by "-", made
                unique with a numeric suffix ("hello-world-2").
  excerpt    -- when none is supplied: tags stripped, first 200 chars, "..."
                appended if the text was cut.
  read_time  -- ceil(words / 200), in minutes.

Security: all queries use bound parameters. LIKE patterns are built with
autoescape so user search text cannot inject wildcards.

Usage:
    store = BlogStore("sqlite:///:memory:")
    post = store.create_post(Post(title="Hello", content="...", author_id=uid))
    page, total = store.list_published(page=1, limit=10, tag="python")
    store.close()
"""

import math
import re
import unicodedata
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    or_,
    select,
)
from sqlalchemy.engine import Connection, Engine

from blog.models import Comment, Post, PostStatus
from core.config import get_settings
from core.db import make_engine

_EXCERPT_LENGTH = 200
_WORDS_PER_MINUTE = 200

_TAG_RE = re.compile(r"<[^>]*>")
_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_posts = Table(
    "posts",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("title", String(200), nullable=False),
    Column("slug", String(255), nullable=False, unique=True),
    Column("content", Text, nullable=False),
    Column("excerpt", String(300), nullable=False, server_default=""),
    Column("author_id", String(32), nullable=False, index=True),
    Column("cover_image", Text),
    Column("status", String(10), nullable=False, server_default=PostStatus.draft.value),
    Column("read_time", Integer, nullable=False, server_default="0"),
    Column("published_at", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_post_tags = Table(
    "post_tags",
    metadata,
    Column("post_id", String(32), nullable=False, index=True),
    Column("tag", String(50), nullable=False, index=True),
    Column("position", Integer, nullable=False),
    UniqueConstraint("post_id", "tag", name="uq_post_tag"),
)

_comments = Table(
    "comments",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("post_id", String(32), nullable=False, index=True),
    Column("user_id", String(32), nullable=False),
    Column("content", String(1000), nullable=False),
    Column("parent_id", String(32), index=True),  # NULL = top-level
    Column("is_edited", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Derived-field helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def slugify(title: str) -> str:
    """Turn a title into a URL slug: "Héllo, World!" -> "hello-world"."""
    ascii_title = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    slug = _NON_SLUG_RE.sub("-", ascii_title.lower()).strip("-")
    return slug or "post"


def make_excerpt(content: str) -> str:
    plain = _TAG_RE.sub("", content).strip()
    if len(plain) <= _EXCERPT_LENGTH:
        return plain
    return plain[:_EXCERPT_LENGTH] + "..."


def read_time(content: str) -> int:
    words = _TAG_RE.sub(" ", content).split()
    return math.ceil(len(words) / _WORDS_PER_MINUTE)


def _clean_tags(tags: list[str]) -> list[str]:
    """Strip whitespace, drop blanks and duplicates, keep first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class BlogStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Posts -- writes
    # ------------------------------------------------------------------

    def create_post(self, post: Post) -> Post:
        """Insert a post, filling in id, slug, excerpt, read time and timestamps."""
        now = _now_iso()
        post.id = post.id or uuid.uuid4().hex
        post.tags = _clean_tags(post.tags)
        post.excerpt = post.excerpt.strip() or make_excerpt(post.content)
        post.read_time = read_time(post.content)
        post.created_at = post.updated_at = now
        if post.status == PostStatus.published and post.published_at is None:
            post.published_at = now

        with self.engine.connect() as conn:
            post.slug = self._unique_slug(conn, slugify(post.title), post.id)
            conn.execute(_posts.insert().values(**_post_values(post), created_at=now))
            self._write_tags(conn, post.id, post.tags)
            conn.commit()
        return post

    def update_post(self, post: Post) -> Post:
        """Write back an edited post and recompute its derived fields.

        The slug changes only if the title did. published_at is stamped on
        the first transition to published.
        """
        now = _now_iso()
        post.tags = _clean_tags(post.tags)
        post.excerpt = post.excerpt.strip() or make_excerpt(post.content)
        post.read_time = read_time(post.content)
        post.updated_at = now
        if post.status == PostStatus.published and post.published_at is None:
            post.published_at = now

        with self.engine.connect() as conn:
            current_title = conn.execute(select(_posts.c.title).where(_posts.c.id == post.id)).scalar()
            if current_title is not None and current_title != post.title:
                post.slug = self._unique_slug(conn, slugify(post.title), post.id)
            conn.execute(_posts.update().where(_posts.c.id == post.id).values(**_post_values(post)))
            conn.execute(_post_tags.delete().where(_post_tags.c.post_id == post.id))
            self._write_tags(conn, post.id, post.tags)
            conn.commit()
        return post

    def delete_post(self, post_id: str) -> bool:
        """Delete a post together with its tags and every comment on it."""
        with self.engine.connect() as conn:
            conn.execute(_comments.delete().where(_comments.c.post_id == post_id))
            conn.execute(_post_tags.delete().where(_post_tags.c.post_id == post_id))
            result = conn.execute(_posts.delete().where(_posts.c.id == post_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Posts -- queries
    # ------------------------------------------------------------------

    def get_post(self, post_id: str) -> Optional[Post]:
        with self.engine.connect() as conn:
            row = conn.execute(_posts.select().where(_posts.c.id == post_id)).fetchone()
            return self._hydrate(conn, [row])[0] if row is not None else None

    def get_published_by_slug(self, slug: str) -> Optional[Post]:
        with self.engine.connect() as conn:
            row = conn.execute(
                _posts.select().where((_posts.c.slug == slug) & (_posts.c.status == PostStatus.published.value))
            ).fetchone()
            return self._hydrate(conn, [row])[0] if row is not None else None

    def list_published(
        self,
        page: int = 1,
        limit: int = 10,
        tag: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Post], int]:
        """Return one page of published posts (newest first) and the total match count."""
        condition = _posts.c.status == PostStatus.published.value
        if tag:
            condition = condition & _posts.c.id.in_(select(_post_tags.c.post_id).where(_post_tags.c.tag == tag))
        if search:
            needle = search.lower()
            condition = condition & or_(
                func.lower(_posts.c.title).contains(needle, autoescape=True),
                func.lower(_posts.c.content).contains(needle, autoescape=True),
                func.lower(_posts.c.excerpt).contains(needle, autoescape=True),
            )

        with self.engine.connect() as conn:
            total = conn.execute(select(func.count()).select_from(_posts).where(condition)).scalar() or 0
            rows = conn.execute(
                _posts.select()
                .where(condition)
                .order_by(_posts.c.published_at.desc(), _posts.c.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            ).fetchall()
            return self._hydrate(conn, rows), total

    def list_by_author(self, author_id: str) -> list[Post]:
        """Every post by one author, drafts included, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _posts.select().where(_posts.c.author_id == author_id).order_by(_posts.c.created_at.desc())
            ).fetchall()
            return self._hydrate(conn, rows)

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def create_comment(self, comment: Comment) -> Comment:
        now = _now_iso()
        comment.id = comment.id or uuid.uuid4().hex
        comment.created_at = comment.updated_at = now
        with self.engine.connect() as conn:
            conn.execute(
                _comments.insert().values(
                    id=comment.id,
                    post_id=comment.post_id,
                    user_id=comment.user_id,
                    content=comment.content,
                    parent_id=comment.parent_id,
                    is_edited=1 if comment.is_edited else 0,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return comment

    def get_comment(self, comment_id: str) -> Optional[Comment]:
        with self.engine.connect() as conn:
            row = conn.execute(_comments.select().where(_comments.c.id == comment_id)).fetchone()
        return _row_to_comment(row) if row is not None else None

    def list_comments(self, post_id: str, parent_id: Optional[str] = None) -> list[Comment]:
        """Comments on a post under one parent (top-level when parent_id is None), newest first."""
        parent_cond = _comments.c.parent_id.is_(None) if parent_id is None else _comments.c.parent_id == parent_id
        with self.engine.connect() as conn:
            rows = conn.execute(
                _comments.select()
                .where((_comments.c.post_id == post_id) & parent_cond)
                .order_by(_comments.c.created_at.desc())
            ).fetchall()
        return [_row_to_comment(r) for r in rows]

    def update_comment_content(self, comment: Comment, content: str) -> Comment:
        """Replace a comment's text and mark it edited."""
        comment.content = content
        comment.is_edited = True
        comment.updated_at = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _comments.update()
                .where(_comments.c.id == comment.id)
                .values(content=content, is_edited=1, updated_at=comment.updated_at)
            )
            conn.commit()
        return comment

    def delete_comment_thread(self, comment_id: str) -> int:
        """Delete a comment and all replies beneath it. Returns rows removed."""
        with self.engine.connect() as conn:
            doomed: list[str] = []
            frontier = [comment_id]
            while frontier:
                doomed.extend(frontier)
                frontier = list(
                    conn.execute(select(_comments.c.id).where(_comments.c.parent_id.in_(frontier))).scalars()
                )
            result = conn.execute(_comments.delete().where(_comments.c.id.in_(doomed)))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _unique_slug(self, conn: Connection, base: str, post_id: str) -> str:
        taken = set(
            conn.execute(
                select(_posts.c.slug).where(
                    (_posts.c.id != post_id)
                    & ((_posts.c.slug == base) | _posts.c.slug.startswith(base + "-", autoescape=True))
                )
            ).scalars()
        )
        if base not in taken:
            return base
        n = 2
        while f"{base}-{n}" in taken:
            n += 1
        return f"{base}-{n}"

    def _write_tags(self, conn: Connection, post_id: str, tags: list[str]) -> None:
        if tags:
            conn.execute(
                _post_tags.insert(),
                [{"post_id": post_id, "tag": t, "position": i} for i, t in enumerate(tags)],
            )

    def _hydrate(self, conn: Connection, rows) -> list[Post]:
        """Map post rows to Posts and attach their tags with one extra query."""
        ids = [r.id for r in rows]
        tags: dict[str, list[str]] = {pid: [] for pid in ids}
        if ids:
            tag_rows = conn.execute(
                select(_post_tags.c.post_id, _post_tags.c.tag)
                .where(_post_tags.c.post_id.in_(ids))
                .order_by(_post_tags.c.post_id, _post_tags.c.position)
            ).fetchall()
            for post_id, tag in tag_rows:
                tags[post_id].append(tag)
        return [_row_to_post(r, tags[r.id]) for r in rows]


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _post_values(post: Post) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "content": post.content,
        "excerpt": post.excerpt,
        "author_id": post.author_id,
        "cover_image": post.cover_image,
        "status": PostStatus(post.status).value,
        "read_time": post.read_time,
        "published_at": post.published_at,
        "updated_at": post.updated_at,
    }


def _row_to_post(row, tags: list[str]) -> Post:
    return Post(
        id=row.id,
        title=row.title,
        slug=row.slug,
        content=row.content,
        excerpt=row.excerpt or "",
        author_id=row.author_id,
        cover_image=row.cover_image,
        status=PostStatus(row.status),
        read_time=row.read_time,
        published_at=row.published_at,
        tags=tags,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_comment(row) -> Comment:
    return Comment(
        id=row.id,
        post_id=row.post_id,
        user_id=row.user_id,
        content=row.content,
        parent_id=row.parent_id,
        is_edited=bool(row.is_edited),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
