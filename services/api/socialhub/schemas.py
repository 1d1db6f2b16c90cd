"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from socialhub.errors import ValidationError
from socialhub.models import NotificationType


# ──────────────────────────── Action results ──────────────────────────────


class ActionResult(BaseModel):
    """Uniform shape returned by every write action."""
    success: bool
    error: Optional[str] = None


# ──────────────────────────── Users ───────────────────────────────────────


class UserSummary(BaseModel):
    user_id: str
    username: str
    name: Optional[str] = None
    image: Optional[str] = None

    class Config:
        from_attributes = True


class UserSearchResult(UserSummary):
    follower_count: int


class ProfileResponse(UserSummary):
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    created_at: datetime
    follower_count: int
    following_count: int
    post_count: int


class ProfilePatch(BaseModel):
    """
    Partial profile update.

    Only fields present in the request are applied; a present field
    (even "" or null) overwrites the stored value, an absent one keeps it.
    """
    name: Optional[str] = Field(None, max_length=255)
    bio: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    website: Optional[str] = Field(None, max_length=500)


class ImageUpdate(BaseModel):
    image: str = Field(..., max_length=1000)


class ImageUpdateResult(ActionResult):
    warning: Optional[str] = None


class UserSyncResult(ActionResult):
    user: Optional[UserSummary] = None


class FollowToggleResult(ActionResult):
    following: Optional[bool] = None


class FollowStatusResponse(BaseModel):
    following: bool


class DebugUserSample(BaseModel):
    user_id: str
    username: str
    name: Optional[str]
    email: str
    follower_count: int
    following_count: int
    post_count: int


class DebugUsersResponse(BaseModel):
    total_users: int
    user_samples: list[DebugUserSample]
    database_provider: str


# ──────────────────────────── Posts ───────────────────────────────────────


class PostCreate(BaseModel):
    content: Optional[str] = None
    image: Optional[str] = Field(None, max_length=1000)


class CommentCreate(BaseModel):
    content: Optional[str] = None


class CommentResponse(BaseModel):
    comment_id: str
    post_id: str
    content: str
    created_at: datetime
    author: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class PostResponse(BaseModel):
    post_id: str
    content: Optional[str]
    image: Optional[str]
    created_at: datetime
    author: Optional[UserSummary]
    comments: list[CommentResponse]
    # user_ids of everyone who liked the post
    liked_by: list[str]
    like_count: int
    comment_count: int


class PostActionResult(ActionResult):
    post: Optional[PostResponse] = None


class CommentActionResult(ActionResult):
    comment: Optional[CommentResponse] = None


class LikeToggleResult(ActionResult):
    liked: Optional[bool] = None
    like_count: Optional[int] = None


# ──────────────────────────── Mentions ────────────────────────────────────


class MentionRequest(BaseModel):
    content: Optional[str] = None
    post_id: Optional[str] = None
    comment_id: Optional[str] = None


class MentionResult(ActionResult):
    message: Optional[str] = None
    mention_ids: list[str] = []
    notification_ids: list[str] = []
    # Handles written more than once in the text; each user is notified once
    repeated_handles: list[str] = []
    # Handles whose mention could not be written
    failed_handles: list[str] = []


# ──────────────────────────── Notifications ───────────────────────────────


class NotificationPost(BaseModel):
    post_id: str
    content: Optional[str]
    image: Optional[str]

    class Config:
        from_attributes = True


class NotificationComment(BaseModel):
    comment_id: str
    content: str

    class Config:
        from_attributes = True


class NotificationResponse(BaseModel):
    notification_id: str
    type: NotificationType
    read: bool
    created_at: datetime
    creator: Optional[UserSummary]
    post: Optional[NotificationPost] = None
    comment: Optional[NotificationComment] = None

    class Config:
        from_attributes = True


class MarkReadRequest(BaseModel):
    notification_ids: list[str]


class MarkReadResult(ActionResult):
    updated: int = 0


# ──────────────────────────── Identity provider ───────────────────────────


class ClerkEmailAddress(BaseModel):
    id: Optional[str] = None
    email_address: str


class ClerkUserData(BaseModel):
    """User object as sent by Clerk webhooks and the Backend API."""
    id: str
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    primary_email_address_id: Optional[str] = None
    email_addresses: list[ClerkEmailAddress] = []


class ClerkWebhookEvent(BaseModel):
    type: str
    data: dict


def email_local_part(email: str) -> str:
    return email.split("@")[0]


class ProviderProfile(BaseModel):
    """The identity provider's view of an account, normalised."""
    external_id: str
    email: str
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def default_username(self) -> str:
        return self.username or email_local_part(self.email)

    @classmethod
    def from_clerk(cls, data: ClerkUserData) -> "ProviderProfile":
        if not data.email_addresses:
            raise ValidationError("Account has no email address")
        primary = next(
            (e for e in data.email_addresses if e.id == data.primary_email_address_id),
            data.email_addresses[0],
        )
        return cls(
            external_id=data.id,
            email=primary.email_address,
            username=data.username,
            first_name=data.first_name,
            last_name=data.last_name,
            image_url=data.image_url,
        )


class WebhookResult(ActionResult):
    message: Optional[str] = None
