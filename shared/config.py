"""
Shared configuration management for the Post Access decision engine.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="POST_ACCESS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    service_name: str = Field(default="post_access")

    # Observability
    enable_metrics: bool = Field(default=True)


class AuthorizerConfig(BaseConfig):
    """Settings consumed by the decision engine and its collaborators."""

    # Deployment
    private_deployment: bool = Field(default=False, description="Only authenticated actors may access posts")
    admin_role: str = Field(default="admin", description="Role granted unconditional access")

    # Parent lookups that report not-found deny instead of being ignored
    strict_parent_lookup: bool = Field(default=False)

    # Collaborator circuit breakers
    breaker_failure_threshold: int = Field(default=5, ge=1)
    breaker_recovery_timeout: float = Field(default=30.0, gt=0)


def get_config(**overrides) -> AuthorizerConfig:
    """Get configuration, environment first, keyword overrides last."""
    return AuthorizerConfig(**overrides)
