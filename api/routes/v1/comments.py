"""
api/routes/v1/comments.py -- Threaded comment REST endpoints.

Routes:
  POST   /api/v1/comments/{post_id}     -- add a comment or a reply (any signed-in user)
  GET    /api/v1/comments/{post_id}     -- one level of a thread (public)
  PUT    /api/v1/comments/{comment_id}  -- edit (author of the comment only)
  DELETE /api/v1/comments/{comment_id}  -- delete with all replies (author or admin)

Admins may remove a comment but never rewrite one.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.limiter import default_limit
from api.models import CommentEdit, CommentListResponse, CommentOut, CommentResponse, CommentWrite, MessageResponse
from auth.dependencies import authenticate
from auth.models import Identity, Role
from auth.store import UserStore
from blog.models import Comment
from blog.store import BlogStore
from core.errors import Forbidden, NotFound

logger = logging.getLogger("quill.api")

router = APIRouter()


@router.post("/comments/{post_id}", response_model=CommentResponse, status_code=201)
@default_limit
def add_comment(
    request: Request,
    post_id: str,
    body: CommentWrite,
    identity: Identity = Depends(authenticate),
) -> CommentResponse:
    """Comment on a post. With parent set, the comment is a reply on the same post."""
    blog_store: BlogStore = request.app.state.blog_store
    user_store: UserStore = request.app.state.user_store
    if blog_store.get_post(post_id) is None:
        raise NotFound("Post not found.")
    if body.parent is not None:
        parent = blog_store.get_comment(body.parent)
        if parent is None or parent.post_id != post_id:
            raise NotFound("Parent comment not found.")

    comment = blog_store.create_comment(
        Comment(post_id=post_id, user_id=identity.id, content=body.content, parent_id=body.parent)
    )
    return CommentResponse(data=CommentOut.from_comment(comment, user_store.find_by_id(identity.id)))


@router.get("/comments/{post_id}", response_model=CommentListResponse)
@default_limit
def list_comments(
    request: Request,
    post_id: str,
    parent: Optional[str] = Query(None),
) -> CommentListResponse:
    """Comments directly under parent (top-level when omitted), newest first."""
    blog_store: BlogStore = request.app.state.blog_store
    user_store: UserStore = request.app.state.user_store
    comments = blog_store.list_comments(post_id, parent_id=parent)
    users = user_store.find_many({c.user_id for c in comments})
    return CommentListResponse(
        count=len(comments),
        data=[CommentOut.from_comment(c, users.get(c.user_id)) for c in comments],
    )


@router.put("/comments/{comment_id}", response_model=CommentResponse)
@default_limit
def edit_comment(
    request: Request,
    comment_id: str,
    body: CommentEdit,
    identity: Identity = Depends(authenticate),
) -> CommentResponse:
    blog_store: BlogStore = request.app.state.blog_store
    user_store: UserStore = request.app.state.user_store
    comment = blog_store.get_comment(comment_id)
    if comment is None:
        raise NotFound("Comment not found.")
    if comment.user_id != identity.id:
        raise Forbidden()
    comment = blog_store.update_comment_content(comment, body.content)
    return CommentResponse(data=CommentOut.from_comment(comment, user_store.find_by_id(identity.id)))


@router.delete("/comments/{comment_id}", response_model=MessageResponse)
@default_limit
def delete_comment(request: Request, comment_id: str, identity: Identity = Depends(authenticate)) -> MessageResponse:
    blog_store: BlogStore = request.app.state.blog_store
    comment = blog_store.get_comment(comment_id)
    if comment is None:
        raise NotFound("Comment not found.")
    if comment.user_id != identity.id and identity.role != Role.admin:
        raise Forbidden()
    removed = blog_store.delete_comment_thread(comment.id)
    logger.info("Comment %s deleted by %s (%d rows)", comment.id, identity.id, removed)
    return MessageResponse(message="Comment removed.")
