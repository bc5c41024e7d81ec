"""
api/routes/v1/posts.py -- Blog post REST endpoints.

Routes:
  POST   /api/v1/posts            -- create (author or admin)
  GET    /api/v1/posts            -- published posts, paginated (public)
  GET    /api/v1/posts/mine       -- caller's posts incl. drafts (author or admin)
  GET    /api/v1/posts/{slug}     -- one published post with top-level comments (public)
  PUT    /api/v1/posts/{post_id}  -- edit (owner or admin)
  DELETE /api/v1/posts/{post_id}  -- delete with its comments (owner or admin)

/posts/mine is registered before /posts/{slug} so "mine" is never taken for a slug.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.limiter import default_limit
from api.models import (
    CommentOut,
    MessageResponse,
    Pagination,
    PostDetail,
    PostDetailResponse,
    PostListResponse,
    PostOut,
    PostResponse,
    PostUpdate,
    PostWrite,
)
from auth.dependencies import authenticate, authorize
from auth.models import Identity, Role
from auth.store import UserStore
from blog.models import Post
from blog.store import BlogStore
from core.errors import Forbidden, NotFound

logger = logging.getLogger("quill.api")

router = APIRouter()

_writers = authorize(Role.author, Role.admin)


def _load_owned_post(request: Request, post_id: str, identity: Identity) -> Post:
    """Fetch a post the caller may modify: its author, or any admin."""
    blog_store: BlogStore = request.app.state.blog_store
    post = blog_store.get_post(post_id)
    if post is None:
        raise NotFound("Post not found.")
    if post.author_id != identity.id and identity.role != Role.admin:
        raise Forbidden()
    return post


@router.post("/posts", response_model=PostResponse, status_code=201)
@default_limit
def create_post(request: Request, body: PostWrite, identity: Identity = Depends(_writers)) -> PostResponse:
    blog_store: BlogStore = request.app.state.blog_store
    post = blog_store.create_post(
        Post(
            title=body.title,
            content=body.content,
            author_id=identity.id,
            status=body.status,
            excerpt=body.excerpt or "",
            tags=body.tags,
            cover_image=body.cover_image,
        )
    )
    logger.info("Post %s created by %s", post.id, identity.id)
    return PostResponse(data=PostOut.from_post(post))


@router.get("/posts", response_model=PostListResponse)
@default_limit
def list_posts(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    tag: Optional[str] = Query(None, max_length=50),
    search: Optional[str] = Query(None, max_length=100),
) -> PostListResponse:
    """Published posts, newest first. Bodies are left out of list entries."""
    blog_store: BlogStore = request.app.state.blog_store
    user_store: UserStore = request.app.state.user_store
    posts, total = blog_store.list_published(page=page, limit=limit, tag=tag, search=search)
    authors = user_store.find_many({p.author_id for p in posts})
    return PostListResponse(
        count=len(posts),
        pagination=Pagination(total=total, pages=math.ceil(total / limit), page=page, limit=limit),
        data=[PostOut.from_post(p, authors.get(p.author_id), include_content=False) for p in posts],
    )


@router.get("/posts/mine", response_model=PostListResponse)
@default_limit
def my_posts(request: Request, identity: Identity = Depends(_writers)) -> PostListResponse:
    blog_store: BlogStore = request.app.state.blog_store
    posts = blog_store.list_by_author(identity.id)
    return PostListResponse(
        count=len(posts),
        data=[PostOut.from_post(p, include_content=False) for p in posts],
    )


@router.get("/posts/{slug}", response_model=PostDetailResponse)
@default_limit
def get_post(request: Request, slug: str) -> PostDetailResponse:
    """One published post with its author and its top-level comments."""
    blog_store: BlogStore = request.app.state.blog_store
    user_store: UserStore = request.app.state.user_store
    post = blog_store.get_published_by_slug(slug)
    if post is None:
        raise NotFound("Post not found.")
    comments = blog_store.list_comments(post.id)
    users = user_store.find_many({post.author_id} | {c.user_id for c in comments})
    base = PostOut.from_post(post, users.get(post.author_id))
    detail = PostDetail(
        **base.model_dump(),
        comments=[CommentOut.from_comment(c, users.get(c.user_id)) for c in comments],
    )
    return PostDetailResponse(data=detail)


@router.put("/posts/{post_id}", response_model=PostResponse)
@default_limit
def update_post(
    request: Request,
    post_id: str,
    body: PostUpdate,
    identity: Identity = Depends(authenticate),
) -> PostResponse:
    blog_store: BlogStore = request.app.state.blog_store
    post = _load_owned_post(request, post_id, identity)

    changes = body.model_dump(exclude_unset=True)
    for field_name in ("title", "content", "tags", "status"):
        if changes.get(field_name) is not None:
            setattr(post, field_name, changes[field_name])
    if "cover_image" in changes:
        post.cover_image = changes["cover_image"]
    # Without an explicit excerpt the store derives one from the content.
    post.excerpt = changes.get("excerpt") or ""

    post = blog_store.update_post(post)
    logger.info("Post %s updated by %s", post.id, identity.id)
    return PostResponse(data=PostOut.from_post(post))


@router.delete("/posts/{post_id}", response_model=MessageResponse)
@default_limit
def delete_post(request: Request, post_id: str, identity: Identity = Depends(authenticate)) -> MessageResponse:
    blog_store: BlogStore = request.app.state.blog_store
    post = _load_owned_post(request, post_id, identity)
    blog_store.delete_post(post.id)
    logger.info("Post %s deleted by %s", post.id, identity.id)
    return MessageResponse(message="Post removed.")
