"""Orderings applied to forest alternatives during marking."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


class Order:
    """An ordering of sum alternatives and product factors.

    The default keeps alternatives as they are and chooses no factor.
    ``preferred_factor`` names the position of a factor to choose, if any.
    """

    preferred_factor: int | None = None

    def sum(self, alternatives: Sequence[T]) -> Sequence[T]:
        """Apply the order to the alternatives of a sum node."""
        return alternatives[:]

    def product(self, factors: Sequence[tuple[int, int]]) -> int | None:
        """Apply the order to the factors of a product node."""
        index = self.preferred_factor
        if index is None or not 0 <= index < len(factors):
            return None
        return index


class NullOrder(Order):
    """The order that changes nothing."""