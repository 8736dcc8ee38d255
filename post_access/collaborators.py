"""
Collaborators consulted by the decision engine.

The engine depends only on the three protocols below. Lookups report
absence by returning ``None`` or raising ``NotFoundError``; anything else
they raise is an infrastructure failure.
"""

from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Union

from shared.circuit_breaker import CircuitBreaker
from shared.errors import NotFoundError
from shared.metrics import DecisionMetrics

from .models import Actor, FormAccessPolicy, Permission, Post


class PermissionChecker(Protocol):
    def has_permission(self, actor: Actor, permission: Permission) -> bool:
        ...


class ParentResolver(Protocol):
    def get(self, post_id: Any) -> Optional[Post]:
        ...


class FormAccessResolver(Protocol):
    def get_create_roles(self, form_id: Any) -> Optional[FormAccessPolicy]:
        ...


class RolePermissionChecker:
    """Answers permission checks from a role -> permissions map."""

    def __init__(self, role_permissions: Optional[Mapping[str, Iterable[Union[Permission, str]]]] = None):
        self._role_permissions: Dict[str, frozenset] = {
            role: frozenset(Permission(p) for p in perms)
            for role, perms in (role_permissions or {}).items()
        }

    def has_permission(self, actor: Actor, permission: Permission) -> bool:
        if actor.role is None:
            return False
        return Permission(permission) in self._role_permissions.get(actor.role, frozenset())


class InMemoryPostRepository:
    """Dict-backed post store."""

    def __init__(self, posts: Iterable[Post] = ()):
        self._posts: Dict[Any, Post] = {}
        for post in posts:
            self.add(post)

    def add(self, post: Post) -> Post:
        if post.id is None:
            raise ValueError("Only persisted posts can be stored")
        self._posts[post.id] = post
        return post

    def get(self, post_id: Any) -> Optional[Post]:
        return self._posts.get(post_id)


class InMemoryFormRepository:
    """Dict-backed form access policies."""

    def __init__(self, policies: Optional[Mapping[Any, FormAccessPolicy]] = None):
        self._policies: Dict[Any, FormAccessPolicy] = dict(policies or {})

    def set_policy(self, form_id: Any, policy: FormAccessPolicy):
        self._policies[form_id] = policy

    def get_create_roles(self, form_id: Any) -> Optional[FormAccessPolicy]:
        return self._policies.get(form_id)


class _Guarded:
    """Base for collaborators wrapped in a circuit breaker."""

    def __init__(self, inner, breaker: CircuitBreaker, metrics: Optional[DecisionMetrics] = None):
        self.inner = inner
        self.breaker = breaker
        self.metrics = metrics

    def _call(self, method: str, *args) -> Any:
        try:
            return self.breaker.call(getattr(self.inner, method), *args)
        finally:
            if self.metrics is not None:
                self.metrics.record_breaker_state(self.breaker.name, self.breaker.state)


class GuardedPermissionChecker(_Guarded):
    def has_permission(self, actor: Actor, permission: Permission) -> bool:
        return self._call("has_permission", actor, permission)


class GuardedParentResolver(_Guarded):
    def get(self, post_id: Any) -> Optional[Post]:
        return self._call("get", post_id)


class GuardedFormAccessResolver(_Guarded):
    def get_create_roles(self, form_id: Any) -> Optional[FormAccessPolicy]:
        return self._call("get_create_roles", form_id)


def _breaker(name: str, failure_threshold: int, recovery_timeout: float) -> CircuitBreaker:
    return CircuitBreaker(
        failure_threshold=failure_threshold,
        recovery_timeout=recovery_timeout,
        ignored_exceptions=(NotFoundError,),
        name=name
    )


def guard_permissions(inner: PermissionChecker, name: str = "permissions", failure_threshold: int = 5,
                      recovery_timeout: float = 30.0,
                      metrics: Optional[DecisionMetrics] = None) -> GuardedPermissionChecker:
    """Wrap a permission checker in a circuit breaker."""
    return GuardedPermissionChecker(inner, _breaker(name, failure_threshold, recovery_timeout), metrics)


def guard_posts(inner: ParentResolver, name: str = "posts", failure_threshold: int = 5,
                recovery_timeout: float = 30.0,
                metrics: Optional[DecisionMetrics] = None) -> GuardedParentResolver:
    """Wrap a parent post lookup in a circuit breaker."""
    return GuardedParentResolver(inner, _breaker(name, failure_threshold, recovery_timeout), metrics)


def guard_forms(inner: FormAccessResolver, name: str = "forms", failure_threshold: int = 5,
                recovery_timeout: float = 30.0,
                metrics: Optional[DecisionMetrics] = None) -> GuardedFormAccessResolver:
    """Wrap a form access lookup in a circuit breaker."""
    return GuardedFormAccessResolver(inner, _breaker(name, failure_threshold, recovery_timeout), metrics)
