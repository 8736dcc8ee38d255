"""
Rules package.

Defines the rule fragments and the ordered chain used to decide access to
posts. The engine walks a fixed list of named rules and stops at the first
verdict, returning a deterministic allow/deny decision and the rule that
produced it for observability.

Modules of interest:
- checks: Side-effect-free ownership, admin, visibility and form checks.
- engine: DecisionEngine and the rule chain.
"""

from .engine import DecisionEngine, EvaluationContext, NamedRule

__all__ = ["DecisionEngine", "EvaluationContext", "NamedRule"]
