"""
API request and response models for Quill REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
blog/models.py, which own the internal domain representation. Route handlers
map between the two.

Wire format: JSON keys are camelCase (accessToken, avatarUrl, publishedAt).
ApiModel applies the alias generator once; populate_by_name lets Python code
construct models with snake_case keyword arguments.

Separation of concerns: domain models = domain truth; api/ models = API contract.
The password hash and the refresh fingerprint have no field here, so they can
never be serialized by accident.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from auth.models import Role, User
from blog.models import Comment, Post, PostStatus

# bcrypt rejects inputs over 72 bytes; 50 characters of multi-byte text can
# exceed that, so byte length is checked separately from character length.
_BCRYPT_MAX_BYTES = 72


def _check_tag_lengths(tags: list[str]) -> None:
    for tag in tags:
        if len(tag.strip()) > 50:
            raise ValueError("Tags cannot exceed 50 characters")


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenApiModel(ApiModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Auth -- requests
# ---------------------------------------------------------------------------


class RegisterRequest(ApiModel):
    """Request body for POST /api/v1/auth/register.

    role is optional. "admin" is accepted by the schema but clamped to
    "reader" by the session authority; an unknown role is a 400.
    """

    name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6, max_length=50)
    role: Optional[Role] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > _BCRYPT_MAX_BYTES:
            raise ValueError(f"Password cannot exceed {_BCRYPT_MAX_BYTES} bytes")
        return value


class LoginRequest(ApiModel):
    """Request body for POST /api/v1/auth/login."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


# ---------------------------------------------------------------------------
# Auth -- responses
# ---------------------------------------------------------------------------


class UserSummary(FrozenApiModel):
    """The user block returned alongside an access token."""

    id: str
    name: str
    email: str
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(id=user.id, name=user.name, email=user.email, role=user.role)


class UserProfile(UserSummary):
    bio: str = ""
    avatar_url: str = ""
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            bio=user.bio,
            avatar_url=user.avatar_url,
            created_at=user.created_at,
        )


class AuthResponse(FrozenApiModel):
    """Response for register and login. The refresh token is in the cookie only."""

    success: bool = True
    access_token: str
    user: UserSummary


class RefreshResponse(FrozenApiModel):
    success: bool = True
    access_token: str


class ProfileResponse(FrozenApiModel):
    success: bool = True
    user: UserProfile


class MessageResponse(FrozenApiModel):
    success: bool = True
    message: str


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class FieldError(FrozenApiModel):
    field: str
    message: str


class ErrorResponse(FrozenApiModel):
    """Envelope returned on every 4xx/5xx response."""

    success: bool = False
    message: str
    errors: Optional[list[FieldError]] = None


class HealthResponse(FrozenApiModel):
    """Response for GET /api/v1/health."""

    status: str = "healthy"
    version: str
    components: dict[str, str]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class AuthorSummary(FrozenApiModel):
    """Public view of a user: never includes the email address."""

    id: str
    name: str
    bio: str = ""
    avatar_url: str = ""

    @classmethod
    def from_user(cls, user: User) -> "AuthorSummary":
        return cls(id=user.id, name=user.name, bio=user.bio, avatar_url=user.avatar_url)


class PublicProfile(AuthorSummary):
    role: Role
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "PublicProfile":
        return cls(
            id=user.id,
            name=user.name,
            bio=user.bio,
            avatar_url=user.avatar_url,
            role=user.role,
            created_at=user.created_at,
        )


class ProfileUpdate(ApiModel):
    """Request body for PUT /api/v1/users/profile. Omitted fields are left unchanged."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    bio: Optional[str] = Field(default=None, max_length=250)
    avatar_url: Optional[str] = Field(default=None, max_length=2048)


class RoleUpdate(ApiModel):
    role: Role


class AuthorListResponse(FrozenApiModel):
    success: bool = True
    count: int
    data: list[AuthorSummary]


class PublicProfileResponse(FrozenApiModel):
    success: bool = True
    data: PublicProfile


class UserProfileResponse(FrozenApiModel):
    success: bool = True
    data: UserProfile


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------


class PostWrite(ApiModel):
    """Request body for POST /api/v1/posts."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1)
    excerpt: Optional[str] = Field(default=None, max_length=300)
    tags: list[str] = Field(default_factory=list, max_length=20)
    cover_image: Optional[str] = Field(default=None, max_length=2048)
    status: PostStatus = PostStatus.draft

    @field_validator("tags")
    @classmethod
    def tag_lengths(cls, values: list[str]) -> list[str]:
        _check_tag_lengths(values)
        return values


class PostUpdate(ApiModel):
    """Request body for PUT /api/v1/posts/{id}. Omitted fields are left unchanged."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1)
    excerpt: Optional[str] = Field(default=None, max_length=300)
    tags: Optional[list[str]] = Field(default=None, max_length=20)
    cover_image: Optional[str] = Field(default=None, max_length=2048)
    status: Optional[PostStatus] = None

    @field_validator("tags")
    @classmethod
    def tag_lengths(cls, values: Optional[list[str]]) -> Optional[list[str]]:
        if values is not None:
            _check_tag_lengths(values)
        return values


class PostOut(FrozenApiModel):
    id: str
    title: str
    slug: str
    excerpt: str
    content: Optional[str] = None
    tags: list[str]
    cover_image: Optional[str]
    status: PostStatus
    read_time: int
    published_at: Optional[str]
    created_at: str
    updated_at: str
    author_id: str
    author: Optional[AuthorSummary] = None

    @classmethod
    def from_post(
        cls,
        post: Post,
        author: Optional[User] = None,
        include_content: bool = True,
    ) -> "PostOut":
        """Map a domain Post. List views pass include_content=False to keep pages small."""
        return cls(
            id=post.id,
            title=post.title,
            slug=post.slug,
            excerpt=post.excerpt,
            content=post.content if include_content else None,
            tags=post.tags,
            cover_image=post.cover_image,
            status=post.status,
            read_time=post.read_time,
            published_at=post.published_at,
            created_at=post.created_at,
            updated_at=post.updated_at,
            author_id=post.author_id,
            author=AuthorSummary.from_user(author) if author else None,
        )


class CommentOut(FrozenApiModel):
    id: str
    post_id: str
    content: str
    parent_id: Optional[str]
    is_edited: bool
    created_at: str
    updated_at: str
    user_id: str
    user: Optional[AuthorSummary] = None

    @classmethod
    def from_comment(cls, comment: Comment, user: Optional[User] = None) -> "CommentOut":
        return cls(
            id=comment.id,
            post_id=comment.post_id,
            content=comment.content,
            parent_id=comment.parent_id,
            is_edited=comment.is_edited,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            user_id=comment.user_id,
            user=AuthorSummary.from_user(user) if user else None,
        )


class PostDetail(PostOut):
    comments: list[CommentOut] = Field(default_factory=list)


class Pagination(FrozenApiModel):
    total: int
    pages: int
    page: int
    limit: int


class PostListResponse(FrozenApiModel):
    success: bool = True
    count: int
    pagination: Optional[Pagination] = None
    data: list[PostOut]


class PostResponse(FrozenApiModel):
    success: bool = True
    data: PostOut


class PostDetailResponse(FrozenApiModel):
    success: bool = True
    data: PostDetail


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


class CommentWrite(ApiModel):
    """Request body for POST /api/v1/comments/{post_id}. parent makes it a reply."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    content: str = Field(min_length=1, max_length=1000)
    parent: Optional[str] = None


class CommentEdit(ApiModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    content: str = Field(min_length=1, max_length=1000)


class CommentResponse(FrozenApiModel):
    success: bool = True
    data: CommentOut


class CommentListResponse(FrozenApiModel):
    success: bool = True
    count: int
    data: list[CommentOut]
