import pytest

from socialhub.actions import notifications as notification_actions
from socialhub.actions import posts as post_actions
from socialhub.actions import users as user_actions
from socialhub.dependencies import ANONYMOUS
from socialhub.errors import UnauthenticatedError
from socialhub.models import NotificationType
from socialhub.schemas import NotificationResponse


async def test_inbox_newest_first_with_previews(db, make_user, as_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    post = await post_actions.create_post(db, as_user(alice), "hello world", None)
    await post_actions.toggle_like(db, as_user(bob), post.post_id)
    comment = await post_actions.create_comment(db, as_user(bob), post.post_id, "nice one")
    await user_actions.toggle_follow(db, as_user(bob), alice.user_id)

    inbox = await notification_actions.list_notifications(db, as_user(alice))

    assert [n.type for n in inbox] == [
        NotificationType.FOLLOW,
        NotificationType.COMMENT,
        NotificationType.LIKE,
    ]
    rendered = [NotificationResponse.model_validate(n) for n in inbox]
    assert all(r.creator.username == "bob" for r in rendered)
    assert rendered[1].comment.content == "nice one"
    assert rendered[1].comment.comment_id == comment.comment_id
    assert rendered[2].post.content == "hello world"
    assert rendered[0].post is None

    # nothing for bob
    assert await notification_actions.list_notifications(db, as_user(bob)) == []


async def test_mark_read_only_touches_own(db, make_user, as_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    await user_actions.toggle_follow(db, as_user(alice), bob.user_id)
    await user_actions.toggle_follow(db, as_user(bob), alice.user_id)

    [for_alice] = await notification_actions.list_notifications(db, as_user(alice))
    [for_bob] = await notification_actions.list_notifications(db, as_user(bob))

    updated = await notification_actions.mark_notifications_read(
        db, as_user(alice), [for_alice.notification_id, for_bob.notification_id]
    )

    assert updated == 1
    assert for_alice.read is True
    assert for_bob.read is False


async def test_mark_read_empty_list(db, make_user, as_user):
    alice = await make_user("alice")
    assert await notification_actions.mark_notifications_read(db, as_user(alice), []) == 0


async def test_inbox_requires_session(db):
    with pytest.raises(UnauthenticatedError):
        await notification_actions.list_notifications(db, ANONYMOUS)
