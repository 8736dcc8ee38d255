"""
Shared error handling for the Post Access decision engine.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AccessLayerException(Exception):
    """Base exception for the Post Access packages."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        if request_id is None:
            request_id = request_id_var.get()

        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class NotFoundError(AccessLayerException):
    """A collaborator has nothing stored under the requested identifier."""

    def __init__(self, resource: str, identifier: Any, details: Optional[Dict[str, Any]] = None):
        self.resource = resource
        self.identifier = identifier
        merged = {"resource": resource, "id": identifier}
        merged.update(details or {})
        super().__init__("NOT_FOUND", f"{resource} {identifier} not found", merged)


class AuthorizationError(AccessLayerException):
    """Authorization-related errors."""

    def __init__(self, message: str = "Authorization failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHORIZATION_ERROR", message, details)


class AuthorizationUndeterminedError(AccessLayerException):
    """Access could not be determined; callers must treat it as a denial."""

    def __init__(self, code: str = "AUTHORIZATION_UNDETERMINED",
                 message: str = "Access could not be determined",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(code, message, details)


class CollaboratorUnavailableError(AuthorizationUndeterminedError):
    """A collaborator (permission store, post or form lookup) could not answer."""

    def __init__(self, collaborator: str, message: str = "Collaborator unavailable",
                 details: Optional[Dict[str, Any]] = None):
        self.collaborator = collaborator
        merged = {"collaborator": collaborator}
        merged.update(details or {})
        super().__init__("COLLABORATOR_UNAVAILABLE", f"{collaborator}: {message}", merged)


class CircuitBreakerOpenError(CollaboratorUnavailableError):
    """Raised when a circuit breaker refuses a call."""

    def __init__(self, name: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(name, f"Circuit breaker '{name}' is OPEN - blocking call", details)


class CyclicParentError(AuthorizationUndeterminedError):
    """The parent chain of a post revisits an identifier."""

    def __init__(self, post_id: Any, chain: Optional[list] = None):
        self.post_id = post_id
        self.chain = list(chain or [])
        super().__init__(
            "CYCLIC_PARENT",
            f"Parent chain revisits post {post_id}",
            {"post_id": post_id, "chain": self.chain}
        )
