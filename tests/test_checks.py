"""
Unit tests for rule fragments and models.
"""

import pytest

from post_access.collaborators import RolePermissionChecker
from post_access.models import Actor, FormAccessPolicy, Permission, Post, PostStatus
from post_access.rules.checks import (
    can_access_deployment,
    is_form_restricted,
    is_user_admin,
    is_user_and_owner_anonymous,
    is_user_owner,
    is_visible_to_actor,
)


class TestOwnership:
    """Test cases for ownership checks."""

    def test_owner(self):
        assert is_user_owner(Post(owner_id="u-1"), Actor(id="u-1", role="user")) is True

    def test_other_user(self):
        assert is_user_owner(Post(owner_id="u-1"), Actor(id="u-2", role="user")) is False

    def test_ownerless_post(self):
        assert is_user_owner(Post(owner_id=None), Actor(id="u-1")) is False

    def test_anonymous_never_owns(self):
        """Test anonymous actors never own posts, even without ids on both sides."""
        assert is_user_owner(Post(owner_id=None), Actor.anonymous()) is False
        assert is_user_and_owner_anonymous(Post(owner_id=None), Actor.anonymous()) is True
        assert is_user_and_owner_anonymous(Post(owner_id="u-1"), Actor.anonymous()) is False
        assert is_user_and_owner_anonymous(Post(owner_id=None), Actor(id="u-1")) is False


class TestDeploymentAndAdmin:
    """Test cases for deployment and admin checks."""

    @pytest.mark.parametrize("private,actor,expected", [
        (False, Actor.anonymous(), True),
        (True, Actor.anonymous(), False),
        (True, Actor(id="u-1"), True),
        (True, Actor(id="u-1", is_anonymous=True), False),
    ])
    def test_can_access_deployment(self, private, actor, expected):
        assert can_access_deployment(actor, private) is expected

    def test_is_user_admin(self):
        assert is_user_admin(Actor(id="a", role="admin")) is True
        assert is_user_admin(Actor(id="a", role="user")) is False
        assert is_user_admin(Actor.anonymous()) is False
        assert is_user_admin(Actor(id="a", role="root"), admin_role="root") is True


class TestVisibility:
    """Test cases for published visibility."""

    def test_public_published(self):
        post = Post(id=1, status="published")

        assert is_visible_to_actor(post, Actor.anonymous()) is True

    def test_limited_to_roles(self):
        post = Post(id=1, status=PostStatus.PUBLISHED, published_to=["member", "editor"])

        assert is_visible_to_actor(post, Actor(id="u", role="member")) is True
        assert is_visible_to_actor(post, Actor(id="u", role="contributor")) is False
        assert is_visible_to_actor(post, Actor.anonymous()) is False

    @pytest.mark.parametrize("status", [PostStatus.DRAFT, PostStatus.UNDER_REVIEW, PostStatus.ARCHIVED])
    def test_unpublished_never_visible(self, status):
        assert is_visible_to_actor(Post(id=1, status=status), Actor(id="u", role="member")) is False


class TestFormRestriction:
    """Test cases for form restriction."""

    def test_no_form(self):
        assert is_form_restricted(Post(), Actor(role="user"), FormAccessPolicy.restricted_to([])) is False

    def test_no_policy(self):
        assert is_form_restricted(Post(form_id=5), Actor(role="user"), None) is False

    def test_everyone_can_create(self):
        policy = FormAccessPolicy(everyone_can_create=True, roles=["editor"])

        assert is_form_restricted(Post(form_id=5), Actor(role="user"), policy) is False

    def test_role_allowed(self):
        policy = FormAccessPolicy.restricted_to(["editor"])

        assert is_form_restricted(Post(form_id=5), Actor(role="editor"), policy) is False
        assert is_form_restricted(Post(form_id=5), Actor(role="contributor"), policy) is True
        assert is_form_restricted(Post(form_id=5), Actor.anonymous(), policy) is True


class TestModels:
    """Test cases for model normalisation."""

    def test_actor_anonymity_follows_id(self):
        assert Actor().is_anonymous is True
        assert Actor(id=0).is_anonymous is False
        assert Actor(id="u-1", is_anonymous=True).is_anonymous is True

    def test_post_normalises_fields(self):
        post = Post(id=1, status="under_review", published_to=["a", "a"], changed_fields=["title"])

        assert post.status is PostStatus.UNDER_REVIEW
        assert post.published_to == frozenset({"a"})
        assert post.has_changed("title") is True
        assert post.is_persisted is True
        assert Post().is_persisted is False

    def test_unknown_status_kept(self):
        post = Post(id=1, status="in_review")

        assert post.status == "in_review"
        assert is_visible_to_actor(post, Actor(id="u", role="user")) is False
        assert Post(status="published").status is PostStatus.PUBLISHED

    def test_role_permission_checker(self):
        checker = RolePermissionChecker({"user": ["Edit their own posts", Permission.DELETE_OWN_POSTS]})

        assert checker.has_permission(Actor(id="u", role="user"), Permission.EDIT_OWN_POSTS) is True
        assert checker.has_permission(Actor(id="u", role="user"), Permission.MANAGE_POSTS) is False
        assert checker.has_permission(Actor(id="u", role="guest"), Permission.EDIT_OWN_POSTS) is False
        assert checker.has_permission(Actor.anonymous(), Permission.EDIT_OWN_POSTS) is False
