"""
Post Access decision engine.

This package decides whether an actor may exercise a privilege on a post.
It provides:

- post_access.models: Actor, Post, Privilege, Permission and decision types.
- post_access.collaborators: Permission, parent post and form lookups.
- post_access.rules: Rule fragments and the ordered DecisionEngine.

Guidelines:
- The engine is stateless; the acting user is passed on every call.
- A denial is a normal result. Failures to determine access raise.
"""

from .collaborators import (
    InMemoryFormRepository,
    InMemoryPostRepository,
    RolePermissionChecker,
    guard_forms,
    guard_permissions,
    guard_posts,
)
from .models import (
    OWNER_FIELD,
    AccessDecision,
    Actor,
    FormAccessPolicy,
    Permission,
    Post,
    PostStatus,
    Privilege,
)
from .rules import DecisionEngine

__all__ = [
    "AccessDecision",
    "Actor",
    "DecisionEngine",
    "FormAccessPolicy",
    "InMemoryFormRepository",
    "InMemoryPostRepository",
    "OWNER_FIELD",
    "Permission",
    "Post",
    "PostStatus",
    "Privilege",
    "RolePermissionChecker",
    "guard_forms",
    "guard_permissions",
    "guard_posts",
]
