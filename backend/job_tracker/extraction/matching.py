"""Ordered rule tables evaluated first-match-wins."""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")

Predicate = Callable[[str], bool]
Rule = tuple[Predicate, T]


def contains_any(phrases: Sequence[str]) -> Predicate:
    """Build a predicate that is true when the text contains any phrase.

    Matching is plain substring matching; callers lower-case the text.
    """
    needles = tuple(phrases)

    def _predicate(text: str) -> bool:
        return any(needle in text for needle in needles)

    return _predicate


def first_match(rules: Iterable[Rule[T]], text: str, default: Optional[T] = None) -> Optional[T]:
    """Return the result of the first rule whose predicate accepts *text*."""
    for predicate, result in rules:
        if predicate(text):
            return result
    return default


def first_result(strategies: Iterable[Callable[[], Optional[R]]]) -> Optional[R]:
    """Run strategies in order and return the first non-None result."""
    for strategy in strategies:
        value = strategy()
        if value is not None:
            return value
    return None
