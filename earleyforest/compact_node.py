"""Nodes of the compact bocage, packed into a list of 16-bit words."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum

from earleyforest.forest import NULL_HANDLE, handle_or_none

_TAG_BIT = 5 + 8
_TAG_MASK = 0b111 << _TAG_BIT
_SMALL_LEAF_TAG_MASK = 0b1111 << (_TAG_BIT - 1)
_HALF_MASK = 0xFFFF
_WORD_MASK = 0xFFFF_FFFF

NULL_ACTION = ~(_TAG_MASK << 16) & _WORD_MASK
"""Action of products that join nulling symbols and have no rule."""


class Tag(IntEnum):
    """The form a node takes in the graph, stored in the top bits of its first word."""

    SMALL_SUM = 0b000 << _TAG_BIT
    SMALL_LINK = 0b001 << _TAG_BIT
    MEDIUM_LINK = 0b010 << _TAG_BIT
    SMALL_PRODUCT = 0b011 << _TAG_BIT
    SMALL_LEAF = 0b100 << _TAG_BIT
    SMALL_NULLING_LEAF = 0b1001 << (_TAG_BIT - 1)
    LEAF = 0b101 << _TAG_BIT
    SUM = 0b111 << _TAG_BIT
    PRODUCT = 0b110 << _TAG_BIT
    NOP = 0xFFFF

    def size(self) -> int:
        """Number of words a node of this form occupies."""
        return _TAG_SIZES[self]

    def mask(self) -> int:
        """The bits of the first word that belong to the tag."""
        if self is Tag.NOP:
            return 0xFFFF
        if self in (Tag.SMALL_LEAF, Tag.SMALL_NULLING_LEAF):
            return _SMALL_LEAF_TAG_MASK
        return _TAG_MASK


_TAG_SIZES = {
    Tag.SMALL_SUM: 1,
    Tag.SMALL_LINK: 1,
    Tag.MEDIUM_LINK: 2,
    Tag.SMALL_PRODUCT: 2,
    Tag.SMALL_LEAF: 1,
    Tag.SMALL_NULLING_LEAF: 1,
    Tag.LEAF: 4,
    Tag.SUM: 4,
    Tag.PRODUCT: 6,
    Tag.NOP: 1,
}


@dataclass(frozen=True)
class Sum:
    """An ambiguous node; its ``count`` alternatives follow it."""

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
    """A leaf, or a node whose evaluation has ended."""

    symbol: int


Node = Sum | Product | NullingLeaf | Evaluated


def _u32(value: int, name: str) -> int:
    if not 0 <= value <= _WORD_MASK:
        raise ValueError(f"{name} {value} does not fit in 32 bits")
    return value


def _validate(node: Node) -> None:
    if isinstance(node, Sum):
        _u32(node.nonterminal, "nonterminal")
        _u32(node.count, "count")
    elif isinstance(node, Product):
        _u32(node.action, "action")
        _u32(node.left_factor, "left factor")
        if node.right_factor is not None:
            _u32(node.right_factor, "right factor")
    elif isinstance(node, (NullingLeaf, Evaluated)):
        _u32(node.symbol, "symbol")
    else:
        raise TypeError(f"not a compact bocage node: {node!r}")


def classify(node: Node, position: int) -> Tag:
    """The smallest form in which ``node`` can be stored at ``position``."""
    if isinstance(node, Product):
        left = node.left_factor
        right = node.right_factor
        if right is not None:
            if (
                position >= right
                and position >= left
                and position - right < (1 << 5)
                and position - left < (1 << 8)
                and node.action < (1 << 16)
            ):
                return Tag.SMALL_PRODUCT
            return Tag.PRODUCT
        if position >= left and position - left < (1 << 5) and node.action < (1 << 8):
            return Tag.SMALL_LINK
        if (
            position >= left
            and position - left < (1 << (5 + 8))
            and node.action < (1 << 16)
        ):
            return Tag.MEDIUM_LINK
        return Tag.PRODUCT
    if isinstance(node, NullingLeaf):
        return Tag.SMALL_NULLING_LEAF if node.symbol < (1 << (4 + 8)) else Tag.LEAF
    if isinstance(node, Evaluated):
        return Tag.SMALL_LEAF if node.symbol < (1 << (4 + 8)) else Tag.LEAF
    if isinstance(node, Sum):
        if node.count < (1 << 5) and node.nonterminal < (1 << 8):
            return Tag.SMALL_SUM
        return Tag.SUM
    raise TypeError(f"not a compact bocage node: {node!r}")


def _split(value: int) -> tuple[int, int]:
    return value >> 16, value & _HALF_MASK


def _join(high: int, low: int) -> int:
    return (high << 16) | low


def _payload(node: Node, tag: Tag, position: int) -> tuple[int, ...]:
    if isinstance(node, Sum):
        if tag is Tag.SMALL_SUM:
            return (node.nonterminal | node.count << 8,)
        return (*_split(node.count), *_split(node.nonterminal))
    if isinstance(node, Product):
        if tag is Tag.SMALL_LINK:
            return (node.action | (position - node.left_factor) << 8,)
        if tag is Tag.MEDIUM_LINK:
            return (position - node.left_factor, node.action)
        if tag is Tag.SMALL_PRODUCT:
            assert node.right_factor is not None
            left_distance = position - node.left_factor
            right_distance = position - node.right_factor
            return (left_distance | right_distance << 8, node.action)
        right = NULL_HANDLE if node.right_factor is None else node.right_factor
        return (*_split(node.action), *_split(node.left_factor), *_split(right))
    if tag in (Tag.SMALL_LEAF, Tag.SMALL_NULLING_LEAF):
        return (node.symbol,)
    return (*_split(node.symbol), 0, 0)


def to_repr(node: Node, position: int) -> tuple[tuple[int, ...], Tag]:
    """Encode ``node`` for storage at ``position``; returns its words and tag."""
    _validate(node)
    _u32(position, "position")
    tag = classify(node, position)
    words = _payload(node, tag, position)
    head = words[0]
    if head & tag.mask():
        raise ValueError(f"{node!r} does not fit the {tag.name} form")
    head |= int(tag)
    if head == Tag.NOP:
        raise ValueError(f"{node!r} cannot be told apart from padding")
    return (head, *words[1:]), tag


def decode_tag(field: int) -> tuple[Tag, int]:
    """Split the first word of a node into its tag and the remaining bits."""
    if not 0 <= field <= _HALF_MASK:
        raise ValueError(f"word {field} does not fit in 16 bits")
    if field == Tag.NOP:
        tag = Tag.NOP
    else:
        kind = field & _TAG_MASK
        if kind == Tag.SMALL_LEAF:
            tag = Tag(field & _SMALL_LEAF_TAG_MASK)
        else:
            tag = Tag(kind)
    return tag, field & ~tag.mask() & _HALF_MASK


def expand_repr(fields: Sequence[int], tag: Tag, position: int) -> Node:
    """Decode the words of a node stored at ``position``, tag bits removed."""
    if tag is Tag.NOP:
        raise ValueError("padding is not a node")
    if len(fields) != tag.size():
        raise ValueError(f"{tag.name} needs {tag.size()} words, got {len(fields)}")
    first = fields[0]
    if tag is Tag.SMALL_SUM:
        return Sum(first & 0xFF, first >> 8)
    if tag is Tag.SUM:
        return Sum(_join(fields[2], fields[3]), _join(first, fields[1]))
    if tag is Tag.SMALL_LINK:
        return Product(first & 0xFF, position - (first >> 8))
    if tag is Tag.MEDIUM_LINK:
        return Product(fields[1], position - first)
    if tag is Tag.SMALL_PRODUCT:
        return Product(fields[1], position - (first & 0xFF), position - (first >> 8))
    if tag is Tag.PRODUCT:
        return Product(
            _join(first, fields[1]),
            _join(fields[2], fields[3]),
            handle_or_none(_join(fields[4], fields[5])),
        )
    if tag is Tag.SMALL_NULLING_LEAF:
        return NullingLeaf(first)
    if tag is Tag.SMALL_LEAF:
        return Evaluated(first)
    return Evaluated(_join(first, fields[1]))


class GraphIter:
    """Reads the nodes of a graph one after another, skipping padding."""

    __slots__ = ("words", "handle")

    def __init__(self, words: list[int], handle: int) -> None:
        self.words = words
        self.handle = handle

    def __iter__(self) -> GraphIter:
        return self

    def __next__(self) -> Node:
        words = self.words
        while self.handle < len(words):
            tag, head = decode_tag(words[self.handle])
            if tag is Tag.NOP:
                self.handle += 1
                continue
            end = self.handle + tag.size()
            if end > len(words):
                raise ValueError(f"node at {self.handle} is cut short")
            node = expand_repr((head, *words[self.handle + 1 : end]), tag, self.handle)
            self.handle = end
            return node
        raise StopIteration

    def peek(self) -> Node | None:
        """The next node without advancing, or ``None`` at the end."""
        return next(self.copy(), None)

    def copy(self) -> GraphIter:
        """An independent iterator at the same position."""
        return GraphIter(self.words, self.handle)


class Graph:
    """Nodes packed into a flat list of 16-bit words; a handle is a word index."""

    def __init__(self) -> None:
        self.words: list[int] = []

    def __len__(self) -> int:
        return len(self.words)

    def push(self, node: Node) -> int:
        """Append ``node`` and return its handle."""
        position = len(self.words)
        words, _ = to_repr(node, position)
        self.words.extend(words)
        return position

    def set_up(self, handle: int, node: Node) -> None:
        """Write ``node`` at ``handle``, moving the nodes it covers to the end."""
        words, _ = to_repr(node, handle)
        size = len(words)
        cursor = self.iter_from(handle)
        while cursor.handle < handle + size:
            self.push(next(cursor))
        self.words[handle : handle + size] = words
        for position in range(handle + size, cursor.handle):
            self.words[position] = int(Tag.NOP)

    def get(self, handle: int) -> Node:
        """The node stored at ``handle`` (padding is skipped)."""
        try:
            return next(self.iter_from(handle))
        except StopIteration:
            raise IndexError(f"no node at or after {handle}") from None

    def iter_from(self, handle: int) -> GraphIter:
        """Iterate over the nodes from ``handle`` on."""
        return GraphIter(self.words, handle)