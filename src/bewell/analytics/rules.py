"""Ordered decision tables for the rule-based classifiers.

A table is a list of :class:`Rule` evaluated top to bottom; the first rule
whose predicate holds decides the label.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Sequence, TypeVar

F = TypeVar("F")


@dataclass(frozen=True)
class Rule(Generic[F]):
    """One row of a decision table.

    Attributes:
        name: Short identifier, used in reprs and tests.
        label: The label emitted when the rule fires.
        predicate: Features → bool.
        confidence: Optional features → confidence (0-100).
        effect: Optional rule-specific side-effect tag for the caller.
    """

    name: str
    label: Any
    predicate: Callable[[F], bool]
    confidence: Callable[[F], float] | None = None
    effect: Any = None

    def matches(self, features: F) -> bool:
        return bool(self.predicate(features))


@dataclass(frozen=True)
class Decision:
    """The outcome of evaluating a table against one feature set."""

    label: Any
    confidence: float | None
    rule: Rule

    def __repr__(self) -> str:
        conf = f"{self.confidence:.0f}%" if self.confidence is not None else "-"
        return f"Decision({self.label}, {conf}, rule={self.rule.name})"


def first_match(rules: Sequence[Rule[F]], features: F) -> Rule[F] | None:
    """Return the first rule whose predicate holds, or None."""
    for rule in rules:
        if rule.matches(features):
            return rule
    return None


def decide(
    rules: Sequence[Rule[F]],
    features: F,
    fallback: Rule[F] | None = None,
) -> Decision | None:
    """Evaluate *rules* in order and build a :class:`Decision`.

    When no rule matches, *fallback* decides (its predicate is ignored).
    Returns None if nothing matched and no fallback was given.
    """
    rule = first_match(rules, features)
    if rule is None:
        rule = fallback
    if rule is None:
        return None
    confidence = float(rule.confidence(features)) if rule.confidence is not None else None
    return Decision(label=rule.label, confidence=confidence, rule=rule)
