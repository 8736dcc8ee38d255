"""
Rule fragments shared by the decision engine.

Each check takes the actor and post explicitly and has no side effects.
Checks that need a collaborator receive it as an argument.
"""

from typing import Optional

from ..models import Actor, FormAccessPolicy, Post, PostStatus


def can_access_deployment(actor: Actor, private_deployment: bool) -> bool:
    """Only authenticated actors can reach a private deployment."""
    return not private_deployment or not actor.is_anonymous


def is_user_admin(actor: Actor, admin_role: str = "admin") -> bool:
    return actor.role is not None and actor.role == admin_role


def is_user_owner(post: Post, actor: Actor) -> bool:
    """True when a signed-in actor is the post's owner."""
    if actor.is_anonymous or actor.id is None or post.owner_id is None:
        return False
    return post.owner_id == actor.id


def is_user_and_owner_anonymous(post: Post, actor: Actor) -> bool:
    return actor.is_anonymous and post.owner_id is None


def is_visible_to_actor(post: Post, actor: Actor) -> bool:
    """Published posts are visible to everyone unless limited to roles."""
    if post.status != PostStatus.PUBLISHED:
        return False

    # No visibility info, assume public
    if not post.published_to:
        return True

    return actor.role in post.published_to


def is_form_restricted(post: Post, actor: Actor, policy: Optional[FormAccessPolicy]) -> bool:
    """Whether the post's form keeps this actor from creating under it.

    ``policy`` is the form's access policy, or None when the post has no
    form or the form has no policy stored.
    """
    if post.form_id is None or policy is None:
        return False

    if policy.everyone_can_create:
        return False

    return actor.role not in policy.roles
