"""
Shared utilities for the Post Access decision engine.

This package aggregates common building blocks:

- config: Settings via pydantic-settings
- logging: Structured logging with correlation context
- metrics: Prometheus decision metrics
- errors: Canonical error types and responses
- circuit_breaker: Protection for collaborator calls
- test_helpers: Factories for actors, posts and engines used by tests

Only test_helpers imports from post_access.
"""
