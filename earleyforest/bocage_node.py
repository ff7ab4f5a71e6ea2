"""Nodes of the bocage forest and their packed three-word form."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from earleyforest.forest import NULL_HANDLE, handle_or_none

_TAG_BIT = 30
_TAG_MASK = 0b11 << _TAG_BIT
_WORD_MASK = 0xFFFF_FFFF
_NULL_VALUES = 0xFFFF_FFFF

NULL_ACTION = ~_TAG_MASK & _WORD_MASK
"""Action of products that join nulling symbols and have no rule."""


class _Tag(IntEnum):
    LEAF = 0b00 << _TAG_BIT
    SUM = 0b01 << _TAG_BIT
    PRODUCT = 0b10 << _TAG_BIT


@dataclass(frozen=True)
class Sum:
    """An ambiguous node; the ``count`` alternatives follow it directly."""

    nonterminal: int
    count: int


@dataclass(frozen=True)
class Product:
    """One derivation, made of one or two factors."""

    action: int
    left_factor: int
    right_factor: int | None = None


@dataclass(frozen=True)
class NullingLeaf:
    """The node of a symbol that derives the empty string."""

    symbol: int


@dataclass(frozen=True)
class Evaluated:
    """A leaf or a node whose value has been computed."""

    symbol: int
    values: int


Node = Sum | Product | NullingLeaf | Evaluated


def _word(value: int, name: str) -> int:
    if not 0 <= value <= _WORD_MASK:
        raise ValueError(f"{name} {value} does not fit in 32 bits")
    return value


def _encode(node: Node) -> tuple[int, int, int]:
    if isinstance(node, Product):
        right = NULL_HANDLE if node.right_factor is None else node.right_factor
        words, tag = (node.action, node.left_factor, right), _Tag.PRODUCT
    elif isinstance(node, Sum):
        words, tag = (node.nonterminal, node.count, 0), _Tag.SUM
    elif isinstance(node, NullingLeaf):
        words, tag = (node.symbol, _NULL_VALUES, 0), _Tag.LEAF
    elif isinstance(node, Evaluated):
        words, tag = (node.symbol, node.values, 0), _Tag.LEAF
    else:
        raise TypeError(f"not a bocage node: {node!r}")
    first, second, third = (_word(w, "field") for w in words)
    if first & _TAG_MASK:
        raise ValueError(f"first field {first} overlaps the tag bits")
    return first | tag, second, third


class CompactNode:
    """A mutable cell holding one node in packed form."""

    __slots__ = ("_fields",)

    def __init__(self, node: Node) -> None:
        self._fields = _encode(node)

    def set(self, node: Node) -> None:
        """Replace the stored node."""
        self._fields = _encode(node)

    def expand(self) -> Node:
        """Unpack the stored node."""
        first, second, third = self._fields
        tag = _Tag(first & _TAG_MASK)
        first &= ~_TAG_MASK & _WORD_MASK
        if tag is _Tag.LEAF:
            if second == _NULL_VALUES:
                return NullingLeaf(first)
            return Evaluated(first, second)
        if tag is _Tag.PRODUCT:
            return Product(first, second, handle_or_none(third))
        return Sum(first, second)

    def __copy__(self) -> CompactNode:
        duplicate = CompactNode.__new__(CompactNode)
        duplicate._fields = self._fields
        return duplicate

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompactNode):
            return NotImplemented
        return self._fields == other._fields

    def __hash__(self) -> int:
        return hash(self._fields)

    def __repr__(self) -> str:
        return f"CompactNode({self.expand()!r})"


def compact(node: Node) -> CompactNode:
    """Pack ``node`` into a new cell."""
    return CompactNode(node)