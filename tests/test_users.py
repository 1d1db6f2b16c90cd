import pytest
from sqlalchemy import select

from socialhub.actions import users as user_actions
from socialhub.dependencies import RequestContext
from socialhub.errors import NotFoundError, ValidationError
from socialhub.models import Follow, Notification, NotificationType, Post


class TestToggleFollow:
    async def test_self_follow_rejected(self, db, make_user, as_user):
        alice = await make_user("alice")
        with pytest.raises(ValidationError, match="You cannot follow yourself"):
            await user_actions.toggle_follow(db, as_user(alice), alice.user_id)

    async def test_unknown_target(self, db, make_user, as_user):
        alice = await make_user("alice")
        with pytest.raises(NotFoundError):
            await user_actions.toggle_follow(db, as_user(alice), "missing")

    async def test_follow_notifies_then_unfollow(self, db, make_user, as_user):
        alice = await make_user("alice")
        bob = await make_user("bob")

        assert await user_actions.toggle_follow(db, as_user(alice), bob.user_id) is True
        [notification] = (await db.execute(select(Notification))).scalars().all()
        assert notification.type is NotificationType.FOLLOW
        assert notification.user_id == bob.user_id
        assert notification.creator_id == alice.user_id
        assert notification.post_id is None

        assert await user_actions.toggle_follow(db, as_user(alice), bob.user_id) is False
        assert await db.get(Follow, (alice.user_id, bob.user_id)) is None


async def test_follower_and_following_lists(db, make_user, as_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    await user_actions.toggle_follow(db, as_user(alice), carol.user_id)
    await user_actions.toggle_follow(db, as_user(bob), carol.user_id)

    followers = await user_actions.list_followers(db, carol.user_id)
    assert [u.username for u in followers] == ["bob", "alice"]

    following = await user_actions.list_following(db, alice.user_id)
    assert [u.username for u in following] == ["carol"]

    mine = await user_actions.following_of_actor(db, as_user(alice))
    assert [u.username for u in mine] == ["carol"]


async def test_suggestions_skip_self_and_followed(db, make_user, as_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    await make_user("carol")
    await user_actions.toggle_follow(db, as_user(alice), bob.user_id)

    suggestions = await user_actions.suggested_users(db, as_user(alice))
    assert [(u.username, n) for u, n in suggestions] == [("carol", 0)]


class TestSearch:
    async def test_blank_query(self, db, make_user):
        await make_user("alice")
        assert await user_actions.search_users(db, "   ") == []
        assert await user_actions.search_users(db, None) == []

    async def test_matches_handle_or_name_case_insensitively(self, db, make_user):
        await make_user("alice", name="Alice Chen")
        await make_user("bob_builder", name="Bob Martinez")
        await make_user("carol", name="Carol Alison")

        results = await user_actions.search_users(db, "ALI")
        assert [u.username for u, _ in results] == ["alice", "carol"]

    async def test_wildcards_are_literal(self, db, make_user):
        await make_user("alice")
        await make_user("bob_builder")
        results = await user_actions.search_users(db, "_")
        assert [u.username for u, _ in results] == ["bob_builder"]

    async def test_limit_and_follower_counts(self, db, make_user, as_user):
        users = [await make_user(f"user{i}") for i in range(4)]
        await user_actions.toggle_follow(db, as_user(users[1]), users[0].user_id)

        results = await user_actions.search_users(db, "user", limit=2)
        assert [(u.username, n) for u, n in results] == [("user0", 1), ("user1", 0)]


class TestUpdateImage:
    async def test_pushes_to_provider(self, db, make_user, as_user, identity_provider):
        alice = await make_user("alice")
        warning = await user_actions.update_user_image(
            db, as_user(alice), "https://img/new.png", identity_provider
        )
        assert warning is None
        assert alice.image == "https://img/new.png"
        assert identity_provider.pushed_images == [(alice.external_id, "https://img/new.png")]

    async def test_provider_failure_is_a_warning(self, db, make_user, as_user, identity_provider):
        identity_provider.fail_image_push = True
        alice = await make_user("alice")

        warning = await user_actions.update_user_image(
            db, as_user(alice), "https://img/new.png", identity_provider
        )
        assert warning is not None
        assert alice.image == "https://img/new.png"


async def test_debug_snapshot(db, make_user, as_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    await user_actions.toggle_follow(db, as_user(bob), alice.user_id)
    db.add(Post(author_id=alice.user_id, content="hi"))
    await db.flush()

    snapshot = await user_actions.debug_user_snapshot(db)
    assert snapshot["total_users"] == 2
    assert snapshot["database_provider"] == "sqlite"
    first = snapshot["user_samples"][0]
    assert first["username"] == "alice"
    assert (first["follower_count"], first["following_count"], first["post_count"]) == (1, 0, 1)


async def test_follow_rolled_back_when_notification_fails(client, seed, acting, monkeypatch):
    alice, bob = await seed("alice", "bob")
    acting.ctx = RequestContext(alice.external_id)
    real_create = user_actions.create_notification

    async def failing_create(session, **kwargs):
        # a comment that does not exist: FK violation at flush
        return await real_create(session, comment_id="missing-comment", **kwargs)

    monkeypatch.setattr(user_actions, "create_notification", failing_create)

    response = await client.post(f"/users/{bob.user_id}/follow")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Error toggling follow"}
    assert (await client.get(f"/users/{bob.user_id}/followers")).json() == []
    status = (await client.get(f"/profiles/{bob.user_id}/follow-status")).json()
    assert status == {"following": False}
