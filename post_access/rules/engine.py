"""
Ordered rule chain deciding access to posts.

The chain is a fixed sequence of named rules. Each rule returns True
(allow), False (deny) or None (no verdict), and evaluation stops at the
first verdict. The private deployment, admin role and parent access rules
are absolute: nothing after them can reverse their outcome.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, List, Optional, Tuple, Union

from shared.config import AuthorizerConfig
from shared.errors import (
    AccessLayerException,
    AuthorizationError,
    AuthorizationUndeterminedError,
    CollaboratorUnavailableError,
    CyclicParentError,
    NotFoundError,
)
from shared.logging import get_logger
from shared.metrics import DecisionMetrics

from ..collaborators import (
    FormAccessResolver,
    ParentResolver,
    PermissionChecker,
    guard_forms,
    guard_permissions,
    guard_posts,
)
from ..models import OWNER_FIELD, AccessDecision, Actor, Permission, Post, Privilege
from .checks import (
    can_access_deployment,
    is_form_restricted,
    is_user_admin,
    is_user_and_owner_anonymous,
    is_user_owner,
    is_visible_to_actor,
)


FORM_RESTRICTED_PRIVILEGES = frozenset({Privilege.CREATE, Privilege.UPDATE, Privilege.LOCK})
OPEN_PRIVILEGES = frozenset({Privilege.CREATE, Privilege.SEARCH})
OWNER_EDIT_PRIVILEGES = frozenset({Privilege.UPDATE, Privilege.LOCK})


@dataclass(frozen=True)
class EvaluationContext:
    """Inputs of a single evaluation, including the parent ids already visited."""
    actor: Actor
    post: Post
    privilege: Privilege
    visited: FrozenSet[Any] = frozenset()


@dataclass(frozen=True)
class NamedRule:
    """A rule in the chain."""
    name: str
    check: Callable[[EvaluationContext], Optional[bool]]
    description: str


class DecisionEngine:
    """Decides whether an actor may exercise a privilege on a post."""

    def __init__(self,
                 permissions: PermissionChecker,
                 posts: ParentResolver,
                 forms: FormAccessResolver,
                 private_deployment: bool = False,
                 admin_role: str = "admin",
                 strict_parent_lookup: bool = False,
                 metrics: Optional[DecisionMetrics] = None):
        self.permissions = permissions
        self.posts = posts
        self.forms = forms
        self.private_deployment = private_deployment
        self.admin_role = admin_role
        self.strict_parent_lookup = strict_parent_lookup
        self.metrics = metrics
        self.logger = get_logger("post_access.decision_engine")

        self.rules: Tuple[NamedRule, ...] = (
            NamedRule("private_deployment", self._private_deployment,
                      "Only signed-in users can access a private deployment"),
            NamedRule("manage_posts_permission", self._manage_posts_permission,
                      "Actor holds the Manage Posts permission"),
            NamedRule("delete_posts_permission", self._delete_posts_permission,
                      "Actor holds the Delete Posts permission"),
            NamedRule("admin_role", self._admin_role,
                      "Admins can access everything"),
            NamedRule("parent_access", self._parent_access,
                      "Access to the parent post was denied"),
            NamedRule("create_for_self", self._create_for_self,
                      "Posts can only be created for their own owner"),
            NamedRule("form_restriction", self._form_restriction,
                      "The post's form restricts which roles can create posts"),
            NamedRule("open_create_search", self._open_create_search,
                      "Anyone can create and search posts"),
            NamedRule("published_visibility", self._published_visibility,
                      "The post is published to the actor's role"),
            NamedRule("preflight_read", self._preflight_read,
                      "Posts that are not yet stored can be read"),
            NamedRule("change_status_lockout", self._change_status_lockout,
                      "Only managers and admins can change a post's status"),
            NamedRule("ownership_change_lockout", self._ownership_change_lockout,
                      "Only managers and admins can change a post's owner"),
            NamedRule("owner_edit", self._owner_edit,
                      "Owners with Edit their own posts can update and lock"),
            NamedRule("owner_delete", self._owner_delete,
                      "Owners with Delete their own posts can delete"),
            NamedRule("owner_read", self._owner_read,
                      "Owners can always read their posts"),
        )

    @classmethod
    def from_config(cls,
                    config: AuthorizerConfig,
                    permissions: PermissionChecker,
                    posts: ParentResolver,
                    forms: FormAccessResolver,
                    metrics: Optional[DecisionMetrics] = None) -> "DecisionEngine":
        """Build an engine whose collaborators sit behind circuit breakers."""
        if not config.enable_metrics:
            metrics = None

        breaker_settings = {
            "failure_threshold": config.breaker_failure_threshold,
            "recovery_timeout": config.breaker_recovery_timeout,
            "metrics": metrics,
        }
        return cls(
            permissions=guard_permissions(permissions, **breaker_settings),
            posts=guard_posts(posts, **breaker_settings),
            forms=guard_forms(forms, **breaker_settings),
            private_deployment=config.private_deployment,
            admin_role=config.admin_role,
            strict_parent_lookup=config.strict_parent_lookup,
            metrics=metrics,
        )

    @property
    def rule_names(self) -> List[str]:
        return [rule.name for rule in self.rules] + ["default_deny"]

    def evaluate(self, actor: Actor, post: Post, privilege: Union[Privilege, str]) -> bool:
        """Return whether ``actor`` may exercise ``privilege`` on ``post``.

        Raises:
            CollaboratorUnavailableError: a collaborator could not answer.
            CyclicParentError: the post's parent chain loops.
        """
        allowed, _ = self._timed_decide(actor, post, Privilege(privilege))
        return allowed

    def explain(self, actor: Actor, post: Post, privilege: Union[Privilege, str]) -> AccessDecision:
        """Evaluate and report which rule decided.

        Undeterminable outcomes are reported as denied with
        ``undetermined`` set and the cause attached.
        """
        privilege = Privilege(privilege)
        start_time = time.perf_counter()
        try:
            allowed, rule = self._timed_decide(actor, post, privilege)
        except AuthorizationUndeterminedError as e:
            return AccessDecision(
                allowed=False,
                privilege=privilege,
                rule="undetermined",
                reason=e.message,
                evaluation_time_ms=(time.perf_counter() - start_time) * 1000,
                undetermined=True,
                error=e,
            )

        return AccessDecision(
            allowed=allowed,
            privilege=privilege,
            rule=rule.name if rule else "default_deny",
            reason=rule.description if rule else "No rule granted access",
            evaluation_time_ms=(time.perf_counter() - start_time) * 1000,
        )

    def allowed_privileges(self, actor: Actor, post: Post) -> List[str]:
        """List every privilege the actor holds on the post."""
        return [
            privilege.value for privilege in Privilege
            if self.evaluate(actor, post, privilege)
        ]

    def ensure_allowed(self, actor: Actor, post: Post, privilege: Union[Privilege, str]) -> None:
        """Raise AuthorizationError unless access is allowed."""
        privilege = Privilege(privilege)
        if not self.evaluate(actor, post, privilege):
            raise AuthorizationError(
                f"User cannot {privilege.value} post",
                details={
                    "actor_id": actor.id,
                    "post_id": post.id,
                    "privilege": privilege.value,
                }
            )

    def _timed_decide(self, actor: Actor, post: Post, privilege: Privilege) -> Tuple[bool, Optional[NamedRule]]:
        start_time = time.perf_counter()
        visited = frozenset([post.id]) if post.is_persisted else frozenset()
        try:
            allowed, rule = self._decide(EvaluationContext(actor, post, privilege, visited))
        except AuthorizationUndeterminedError as e:
            if self.metrics is not None:
                self.metrics.record_undetermined(e.code)
            raise

        rule_name = rule.name if rule else "default_deny"
        if self.metrics is not None:
            self.metrics.record_decision(privilege.value, allowed, rule_name, time.perf_counter() - start_time)

        self.logger.debug(
            "Access decision",
            actor_id=actor.id,
            post_id=post.id,
            privilege=privilege.value,
            allowed=allowed,
            rule=rule_name
        )
        return allowed, rule

    def _decide(self, ctx: EvaluationContext) -> Tuple[bool, Optional[NamedRule]]:
        for rule in self.rules:
            verdict = rule.check(ctx)
            if verdict is not None:
                return verdict, rule

        return False, None

    def _consult(self, collaborator: str, target: Any, method: str, *args) -> Any:
        """Call a collaborator method, mapping not-found to None."""
        try:
            return getattr(target, method)(*args)
        except NotFoundError:
            return None
        except AccessLayerException:
            raise
        except Exception as e:
            self.logger.warning(
                "Collaborator failed",
                collaborator=collaborator,
                error=str(e),
                error_type=type(e).__name__
            )
            raise CollaboratorUnavailableError(collaborator, f"{type(e).__name__}: {e}") from e

    def _has_permission(self, actor: Actor, permission: Permission) -> bool:
        return bool(self._consult("permissions", self.permissions, "has_permission", actor, permission))

    # Rules, in chain order

    def _private_deployment(self, ctx: EvaluationContext) -> Optional[bool]:
        if not can_access_deployment(ctx.actor, self.private_deployment):
            return False
        return None

    def _manage_posts_permission(self, ctx: EvaluationContext) -> Optional[bool]:
        if ctx.privilege != Privilege.DELETE and self._has_permission(ctx.actor, Permission.MANAGE_POSTS):
            return True
        return None

    def _delete_posts_permission(self, ctx: EvaluationContext) -> Optional[bool]:
        if ctx.privilege == Privilege.DELETE and self._has_permission(ctx.actor, Permission.DELETE_POSTS):
            return True
        return None

    def _admin_role(self, ctx: EvaluationContext) -> Optional[bool]:
        if is_user_admin(ctx.actor, self.admin_role):
            return True
        return None

    def _parent_access(self, ctx: EvaluationContext) -> Optional[bool]:
        # Never grants access; a denied parent denies the child even when public
        if not self._is_allowed_parent(ctx):
            return False
        return None

    def _is_allowed_parent(self, ctx: EvaluationContext) -> bool:
        parent_id = ctx.post.parent_id
        if parent_id is None:
            return True

        if parent_id in ctx.visited:
            self.logger.error(
                "Cyclic parent chain detected",
                post_id=ctx.post.id,
                parent_id=parent_id,
                integrity_violation=True
            )
            raise CyclicParentError(parent_id, sorted(ctx.visited, key=str))

        parent = self._consult("posts", self.posts, "get", parent_id)
        if parent is None:
            if self.strict_parent_lookup:
                self.logger.info("Parent post not found, denying", post_id=ctx.post.id, parent_id=parent_id)
                return False
            return True

        allowed, _ = self._decide(EvaluationContext(
            actor=ctx.actor,
            post=parent,
            privilege=ctx.privilege,
            visited=ctx.visited | {parent_id},
        ))
        return allowed

    def _create_for_self(self, ctx: EvaluationContext) -> Optional[bool]:
        # Posts must be created for their owner, or without owner by anonymous users
        if (ctx.privilege == Privilege.CREATE
                and not is_user_owner(ctx.post, ctx.actor)
                and not is_user_and_owner_anonymous(ctx.post, ctx.actor)):
            return False
        return None

    def _form_restriction(self, ctx: EvaluationContext) -> Optional[bool]:
        if ctx.privilege not in FORM_RESTRICTED_PRIVILEGES or ctx.post.form_id is None:
            return None

        policy = self._consult("forms", self.forms, "get_create_roles", ctx.post.form_id)
        if is_form_restricted(ctx.post, ctx.actor, policy):
            return False
        return None

    def _open_create_search(self, ctx: EvaluationContext) -> Optional[bool]:
        if ctx.privilege in OPEN_PRIVILEGES:
            return True
        return None

    def _published_visibility(self, ctx: EvaluationContext) -> Optional[bool]:
        if ctx.privilege == Privilege.READ and is_visible_to_actor(ctx.post, ctx.actor):
            return True
        return None

    def _preflight_read(self, ctx: EvaluationContext) -> Optional[bool]:
        if ctx.privilege == Privilege.READ and not ctx.post.is_persisted:
            return True
        return None

    def _change_status_lockout(self, ctx: EvaluationContext) -> Optional[bool]:
        if ctx.privilege == Privilege.CHANGE_STATUS:
            return False
        return None

    def _ownership_change_lockout(self, ctx: EvaluationContext) -> Optional[bool]:
        if ctx.post.has_changed(OWNER_FIELD):
            return False
        return None

    def _owner_edit(self, ctx: EvaluationContext) -> Optional[bool]:
        if (ctx.privilege in OWNER_EDIT_PRIVILEGES
                and is_user_owner(ctx.post, ctx.actor)
                and self._has_permission(ctx.actor, Permission.EDIT_OWN_POSTS)):
            return True
        return None

    def _owner_delete(self, ctx: EvaluationContext) -> Optional[bool]:
        if (ctx.privilege == Privilege.DELETE
                and is_user_owner(ctx.post, ctx.actor)
                and self._has_permission(ctx.actor, Permission.DELETE_OWN_POSTS)):
            return True
        return None

    def _owner_read(self, ctx: EvaluationContext) -> Optional[bool]:
        if ctx.privilege == Privilege.READ and is_user_owner(ctx.post, ctx.actor):
            return True
        return None
