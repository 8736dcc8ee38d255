"""
Data models for the Post Access decision engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Union

from shared.errors import AccessLayerException


# Field that holds a post's owner; changing it is an ownership transfer
OWNER_FIELD = "owner_id"


class Privilege(str, Enum):
    """Actions an actor can request against a post."""
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    SEARCH = "search"
    CHANGE_STATUS = "change_status"
    LOCK = "lock"
    READ_FULL = "read_full"


class Permission(str, Enum):
    """Named capabilities granted to roles."""
    MANAGE_POSTS = "Manage Posts"
    DELETE_POSTS = "Delete Posts"
    EDIT_OWN_POSTS = "Edit their own posts"
    DELETE_OWN_POSTS = "Delete their own posts"


class PostStatus(str, Enum):
    """Publication states of a post."""
    DRAFT = "draft"
    PUBLISHED = "published"
    UNDER_REVIEW = "under_review"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class Actor:
    """The party requesting access.

    An actor without an id is anonymous unless ``is_anonymous`` says
    otherwise.
    """
    id: Optional[Any] = None
    role: Optional[str] = None
    is_anonymous: Optional[bool] = None

    def __post_init__(self):
        if self.is_anonymous is None:
            object.__setattr__(self, "is_anonymous", self.id is None)

    @classmethod
    def anonymous(cls) -> "Actor":
        return cls(id=None, role=None, is_anonymous=True)


@dataclass(frozen=True)
class Post:
    """A post (report) being authorized."""
    id: Optional[Any] = None
    owner_id: Optional[Any] = None
    status: Union[PostStatus, str] = PostStatus.DRAFT
    published_to: FrozenSet[str] = field(default_factory=frozenset)
    parent_id: Optional[Any] = None
    form_id: Optional[Any] = None
    changed_fields: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        try:
            object.__setattr__(self, "status", PostStatus(self.status))
        except ValueError:
            # Statuses outside PostStatus are kept as plain strings
            pass
        object.__setattr__(self, "published_to", frozenset(self.published_to or ()))
        object.__setattr__(self, "changed_fields", frozenset(self.changed_fields or ()))

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    def has_changed(self, field_name: str) -> bool:
        return field_name in self.changed_fields


@dataclass(frozen=True)
class FormAccessPolicy:
    """Who may create posts under a form."""
    everyone_can_create: bool = True
    roles: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "roles", frozenset(self.roles or ()))

    @classmethod
    def restricted_to(cls, roles: Iterable[str]) -> "FormAccessPolicy":
        return cls(everyone_can_create=False, roles=frozenset(roles))


@dataclass
class AccessDecision:
    """Outcome of an explained evaluation."""
    allowed: bool
    privilege: Privilege
    rule: str
    reason: Optional[str] = None
    evaluation_time_ms: float = 0.0
    undetermined: bool = False
    error: Optional[AccessLayerException] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "allowed": self.allowed,
            "privilege": self.privilege.value,
            "rule": self.rule,
            "reason": self.reason,
            "evaluation_time_ms": self.evaluation_time_ms,
            "undetermined": self.undetermined,
        }
        if self.error is not None:
            data["error"] = self.error.to_response().model_dump()
        return data
