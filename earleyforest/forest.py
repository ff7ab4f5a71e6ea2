"""The interface shared by parse forests, and the grammar view they rely on."""

from __future__ import annotations

import operator
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

NULL_HANDLE = 0xFFFF_FFFF
"""Handle value that stands for "no node"."""


def handle_or_none(handle: int) -> int | None:
    """Return ``handle``, or ``None`` if it is the null handle."""
    return None if handle == NULL_HANDLE else handle


@dataclass(frozen=True)
class ForestGrammar:
    """The parts of a processed grammar that a forest consults.

    Symbols, actions and rule identifiers are plain integers.
    ``nulling_actions`` maps an action to ``(symbol, on_right)``: the nulling
    symbol that was omitted from the rule and whether it belongs to the right
    of the remaining factor.  ``external_origins`` maps an action to the
    identifier of the user's rule it came from; actions absent from it are
    internal.  ``lhs_of`` maps an action to its left-hand side symbol.
    """

    max_nulling: int | None = None
    nulling_intermediates: Sequence[tuple[int, int, int]] = ()
    nulling_actions: Mapping[int, tuple[int, bool]] = field(default_factory=dict)
    external_origins: Mapping[int, int] = field(default_factory=dict)
    lhs_of: Mapping[int, int] = field(default_factory=dict)

    def max_nulling_symbol(self) -> int | None:
        """The largest nulling symbol, or ``None`` if there is none."""
        return self.max_nulling

    def eliminated_nulling_intermediate(self) -> Sequence[tuple[int, int, int]]:
        """Triples ``(lhs, rhs0, rhs1)`` of binarized nulling rules."""
        return self.nulling_intermediates

    def nulling(self, action: int) -> tuple[int, bool] | None:
        """The omitted nulling symbol of ``action`` and its side, if any."""
        return self.nulling_actions.get(action)

    def external_origin(self, action: int) -> int | None:
        """The external rule that ``action`` stems from, if any."""
        return self.external_origins.get(action)

    def get_lhs(self, action: int) -> int:
        """The left-hand side symbol of ``action``."""
        try:
            return self.lhs_of[action]
        except KeyError:
            raise KeyError(f"no rule for action {action}") from None


class Forest(ABC):
    """A store that receives the results of recognition."""

    FOREST_BYTES_PER_RECOGNIZER_BYTE: int = 0

    @staticmethod
    def _nulling_handle(token: int) -> int:
        """The handle of a nulling symbol's node: the symbol itself."""
        handle = operator.index(token)
        if not 0 <= handle < NULL_HANDLE:
            raise ValueError(f"invalid symbol {token!r}")
        return handle

    @abstractmethod
    def begin_sum(self) -> None:
        """Start collecting the alternatives of one node."""

    @abstractmethod
    def push_summand(self, action: int, left_node: Any, right_node: Any) -> None:
        """Add one alternative derivation to the current node."""

    @abstractmethod
    def sum(self, lhs_sym: int, origin: int) -> Any:
        """Finish the current node and return a reference to it."""

    @abstractmethod
    def leaf(self, token: int, pos: int, value: Any) -> Any:
        """Add a node for a scanned token."""

    @abstractmethod
    def nulling(self, token: int) -> Any:
        """Return the node of a nulling symbol."""


class NullForest(Forest):
    """A forest that keeps nothing; every node reference is ``None``."""

    FOREST_BYTES_PER_RECOGNIZER_BYTE = 0

    def begin_sum(self) -> None:
        return None

    def push_summand(self, action: int, left_node: Any, right_node: Any) -> None:
        return None

    def sum(self, lhs_sym: int, origin: int) -> None:
        return None

    def leaf(self, token: int, pos: int, value: Any) -> None:
        return None

    def nulling(self, token: int) -> None:
        """Check the symbol; no node is kept for it."""
        self._nulling_handle(token)
        return None