import pytest
from prometheus_client import REGISTRY
from sqlalchemy import func, select

from socialhub.actions.mentions import (
    check_mention_context,
    extract_handles,
    process_mentions,
    resolve_handles,
)
from socialhub.errors import NotFoundError, UnauthorizedError, ValidationError
from socialhub.models import Comment, Mention, Notification, NotificationType, Post


async def _count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


def _created_notifications(kind: str) -> float:
    value = REGISTRY.get_sample_value("notifications_created_total", {"type": kind})
    return value or 0.0


class TestExtractHandles:
    def test_keeps_order_and_repeats(self):
        text = "hello @alice and @bob, great job @alice"
        assert extract_handles(text) == ["alice", "bob", "alice"]

    def test_word_characters_only(self):
        assert extract_handles("ping @dave_99! and @e-mail") == ["dave_99", "e"]

    @pytest.mark.parametrize("text", ["", None, "no handles here", "mail me at @"])
    def test_nothing_to_extract(self, text):
        assert extract_handles(text) == []


async def test_resolve_handles_drops_unknown(db, make_user):
    alice = await make_user("alice")
    resolved = await resolve_handles(db, ["alice", "ghost", "alice"])
    assert resolved == [(alice.user_id, "alice")]


async def test_empty_content_is_rejected(db, make_user):
    carol = await make_user("carol")
    with pytest.raises(ValidationError, match="No content provided"):
        await process_mentions(db, content="", mentioner_id=carol.user_id)


async def test_text_without_mentions_writes_nothing(db, make_user):
    carol = await make_user("carol")
    outcome = await process_mentions(
        db, content="just a regular post", mentioner_id=carol.user_id
    )

    assert outcome.message == "No mentions found"
    assert await _count(db, Mention) == 0
    assert await _count(db, Notification) == 0


async def test_unknown_handle_writes_nothing(db, make_user):
    carol = await make_user("carol")
    outcome = await process_mentions(
        db, content="hey @unknown_handle", mentioner_id=carol.user_id
    )

    assert outcome.message == "No valid users mentioned"
    assert await _count(db, Mention) == 0


async def test_self_mention_is_skipped(db, make_user):
    carol = await make_user("carol")
    outcome = await process_mentions(
        db, content="note to @carol: ship it", mentioner_id=carol.user_id
    )

    assert outcome.mentions == []
    assert outcome.message == "Created 0 mentions and notifications"
    assert await _count(db, Mention) == 0
    assert await _count(db, Notification) == 0


async def test_fan_out_writes_one_pair_per_user(db, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    post = Post(author_id=carol.user_id, content="hello @alice and @bob, great job @alice")
    db.add(post)
    await db.flush()

    outcome = await process_mentions(
        db,
        content=post.content,
        mentioner_id=carol.user_id,
        post_id=post.post_id,
    )

    assert outcome.message == "Created 2 mentions and notifications"
    assert outcome.repeated_handles == ["alice"]
    assert outcome.failed_handles == []

    mentions = (await db.execute(select(Mention))).scalars().all()
    assert sorted(m.user_id for m in mentions) == sorted([alice.user_id, bob.user_id])
    assert all(m.mentioner_id == carol.user_id and m.post_id == post.post_id for m in mentions)

    notifications = (await db.execute(select(Notification))).scalars().all()
    assert len(notifications) == 2
    assert {n.type for n in notifications} == {NotificationType.MENTION}
    assert {n.user_id for n in notifications} == {alice.user_id, bob.user_id}
    assert all(n.creator_id == carol.user_id and not n.read for n in notifications)


async def test_comment_context_is_recorded(db, make_user):
    alice = await make_user("alice")
    carol = await make_user("carol")
    post = Post(author_id=alice.user_id, content="launch day")
    db.add(post)
    await db.flush()
    comment = Comment(author_id=carol.user_id, post_id=post.post_id, content="congrats @alice")
    db.add(comment)
    await db.flush()

    outcome = await process_mentions(
        db,
        content=comment.content,
        mentioner_id=carol.user_id,
        post_id=post.post_id,
        comment_id=comment.comment_id,
    )

    [notification] = outcome.notifications
    assert notification.comment_id == comment.comment_id
    assert notification.post_id == post.post_id


async def test_failing_recipient_does_not_block_the_rest(db, make_user, monkeypatch):
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")

    from socialhub.actions import mentions as mention_module

    real_create = mention_module.create_notification

    async def flaky_create(session, **kwargs):
        if kwargs["recipient_id"] == alice.user_id:
            # a comment that does not exist: FK violation at flush
            kwargs["comment_id"] = "missing-comment"
        return await real_create(session, **kwargs)

    monkeypatch.setattr(mention_module, "create_notification", flaky_create)
    mention_count_before = _created_notifications("MENTION")

    outcome = await process_mentions(
        db, content="@alice @bob", mentioner_id=carol.user_id
    )

    assert outcome.failed_handles == ["alice"]
    assert [m.user_id for m in outcome.mentions] == [bob.user_id]
    # alice's pair rolled back as a whole
    mentions = (await db.execute(select(Mention))).scalars().all()
    assert [m.user_id for m in mentions] == [bob.user_id]
    # only the row that made it to the database is counted
    assert _created_notifications("MENTION") - mention_count_before == 1


class TestMentionContext:
    async def test_post_must_exist(self, db, make_user):
        carol = await make_user("carol")
        with pytest.raises(NotFoundError):
            await check_mention_context(db, carol.user_id, "nope", None)

    async def test_post_must_belong_to_mentioner(self, db, make_user):
        alice = await make_user("alice")
        carol = await make_user("carol")
        post = Post(author_id=alice.user_id, content="mine")
        db.add(post)
        await db.flush()

        with pytest.raises(UnauthorizedError):
            await check_mention_context(db, carol.user_id, post.post_id, None)

    async def test_comment_author_may_mention_on_others_post(self, db, make_user):
        alice = await make_user("alice")
        carol = await make_user("carol")
        post = Post(author_id=alice.user_id, content="mine")
        db.add(post)
        await db.flush()
        comment = Comment(author_id=carol.user_id, post_id=post.post_id, content="@alice hi")
        db.add(comment)
        await db.flush()

        await check_mention_context(db, carol.user_id, post.post_id, comment.comment_id)


async def test_empty_content_checked_before_ownership(db, make_user):
    alice = await make_user("alice")
    carol = await make_user("carol")
    post = Post(author_id=alice.user_id, content="not carol's")
    db.add(post)
    await db.flush()

    with pytest.raises(ValidationError, match="No content provided"):
        await process_mentions(db, content="", mentioner_id=carol.user_id, post_id=post.post_id)


async def test_foreign_post_refused(db, make_user):
    alice = await make_user("alice")
    carol = await make_user("carol")
    post = Post(author_id=alice.user_id, content="not carol's")
    db.add(post)
    await db.flush()

    with pytest.raises(UnauthorizedError):
        await process_mentions(
            db, content="@alice look", mentioner_id=carol.user_id, post_id=post.post_id
        )
    assert await _count(db, Mention) == 0
