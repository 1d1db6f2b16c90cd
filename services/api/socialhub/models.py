"""
SQLAlchemy ORM models.

Tables:
  users         — local mirror of identity-provider accounts + profile fields
  follows       — social graph edges (follower → followee)
  posts         — authored posts
  comments      — comments on posts
  likes         — user × post engagement
  mentions      — @handle facts, immutable once written
  notifications — per-recipient activity feed; only `read` ever changes

Every child row is removed by ON DELETE CASCADE when its user, post or
comment goes away, so deletes are issued as plain DELETE statements.
"""
import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import Mapped, mapped_column, relationship

from socialhub.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Microsecond precision keeps "newest first" ordering stable on MySQL/TiDB.
Timestamp = DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql")


class NotificationType(str, enum.Enum):
    LIKE = "LIKE"
    COMMENT = "COMMENT"
    FOLLOW = "FOLLOW"
    MENTION = "MENTION"


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    # Identity-provider account id (Clerk "user_...")
    external_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    bio: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(255))
    website: Mapped[Optional[str]] = mapped_column(String(500))
    image: Mapped[Optional[str]] = mapped_column(String(1000))
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        Timestamp, default=_utcnow, onupdate=_utcnow, nullable=False
    )


class Follow(Base):
    __tablename__ = "follows"

    follower_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True
    )
    followee_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=_utcnow, nullable=False)

    __table_args__ = (
        # Fast lookup "who follows user X?"
        Index("idx_followee", "followee_id"),
    )


class Post(Base):
    __tablename__ = "posts"

    post_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[Optional[str]] = mapped_column(Text)
    # Externally hosted image URL
    image: Mapped[Optional[str]] = mapped_column(String(1000))
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        Timestamp, default=_utcnow, onupdate=_utcnow, nullable=False
    )

    author = relationship("User", lazy="raise")
    comments = relationship(
        "Comment",
        back_populates="post",
        order_by="Comment.created_at",
        passive_deletes=True,
        lazy="raise",
    )
    likes = relationship("Like", passive_deletes=True, lazy="raise")

    __table_args__ = (
        Index("idx_posts_author", "author_id"),
        Index("idx_posts_created", "created_at"),
    )


class Comment(Base):
    __tablename__ = "comments"

    comment_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    author_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.post_id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=_utcnow, nullable=False)

    author = relationship("User", lazy="raise")
    post = relationship("Post", back_populates="comments", lazy="raise")

    __table_args__ = (Index("idx_comments_post", "post_id"),)


class Like(Base):
    __tablename__ = "likes"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True
    )
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.post_id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=_utcnow, nullable=False)

    __table_args__ = (Index("idx_likes_post", "post_id"),)


class Mention(Base):
    __tablename__ = "mentions"

    mention_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    # The user who was mentioned
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    mentioner_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    post_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("posts.post_id", ondelete="CASCADE")
    )
    comment_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("comments.comment_id", ondelete="CASCADE")
    )
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=_utcnow, nullable=False)

    __table_args__ = (Index("idx_mentions_user", "user_id"),)


class Notification(Base):
    __tablename__ = "notifications"

    notification_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    # Recipient
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    # Actor who triggered it
    creator_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType, name="notification_type"), nullable=False
    )
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    post_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("posts.post_id", ondelete="CASCADE")
    )
    comment_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("comments.comment_id", ondelete="CASCADE")
    )
    created_at: Mapped[datetime] = mapped_column(Timestamp, default=_utcnow, nullable=False)

    creator = relationship("User", foreign_keys=[creator_id], lazy="raise")
    post = relationship("Post", lazy="raise")
    comment = relationship("Comment", lazy="raise")

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
    )
