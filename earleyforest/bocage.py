"""A parse forest kept as a flat list of packed nodes, and its traversal."""

from __future__ import annotations

import copy
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from earleyforest.bocage_node import (
    NULL_ACTION,
    CompactNode,
    Evaluated,
    Node,
    NullingLeaf,
    Product,
    Sum,
    compact,
)
from earleyforest.forest import Forest, ForestGrammar
from earleyforest.order import NullOrder, Order

_NULLING_LEAF_LIMIT = 1 << 20


class Bocage(Forest):
    """A forest of sum and product nodes stored in one list.

    The first nodes are the leaves of nulling symbols, one per symbol, so that
    the handle of a nulling symbol's node is the symbol itself.
    """

    FOREST_BYTES_PER_RECOGNIZER_BYTE = 2

    def __init__(self, grammar: ForestGrammar) -> None:
        self.grammar = grammar
        self.graph: list[CompactNode] = []
        self.liveness: list[bool] = []
        self.summand_count = 0
        self._initialize_nulling()

    def _initialize_nulling(self) -> None:
        max_nulling = self.grammar.max_nulling_symbol()
        nulling_leaf_count = 0 if max_nulling is None else max_nulling
        if nulling_leaf_count >= _NULLING_LEAF_LIMIT:
            raise ValueError("invalid nullable symbol")
        self.graph.extend(
            compact(NullingLeaf(symbol)) for symbol in range(nulling_leaf_count + 1)
        )
        for lhs, rhs0, rhs1 in self.grammar.eliminated_nulling_intermediate():
            self.graph[lhs].set(Product(NULL_ACTION, rhs0, rhs1))

    def mark_alive(self, root: int, order: Order | None = None) -> None:
        """Mark every node reachable from ``root`` as alive."""
        order = NullOrder() if order is None else order
        self.liveness = [False] * len(self.graph)
        dfs = [root]
        while dfs:
            node = dfs.pop()
            self.liveness[node] = True
            for summand in order.sum(self._summands(node)):
                self._restore_nulling_factor(summand)
                self._queue_factors(summand, dfs)

    def _summands(self, handle: int) -> Sequence[CompactNode]:
        node = self.graph[handle].expand()
        if isinstance(node, Sum):
            return self.graph[handle + 1 : handle + node.count + 1]
        return [self.graph[handle]]

    def _restore_nulling_factor(self, summand: CompactNode) -> None:
        node = summand.expand()
        if not isinstance(node, Product) or node.right_factor is not None:
            return
        omitted = self.grammar.nulling(node.action)
        if omitted is None:
            return
        symbol, on_right = omitted
        if on_right:
            left, right = node.left_factor, self.nulling(symbol)
        else:
            left, right = self.nulling(symbol), node.left_factor
        summand.set(Product(node.action, left, right))

    def _is_dead(self, handle: int) -> bool:
        return 0 <= handle < len(self.liveness) and not self.liveness[handle]

    def _queue_factors(self, summand: CompactNode, dfs: list[int]) -> None:
        node = summand.expand()
        if isinstance(node, Product):
            for factor in (node.right_factor, node.left_factor):
                if factor is not None and self._is_dead(factor):
                    dfs.append(factor)
        elif isinstance(node, Sum):
            raise ValueError("a sum node cannot be an alternative")

    def is_transparent(self, action: int) -> bool:
        """Whether products with ``action`` are hidden from traversal."""
        return action == NULL_ACTION or self.grammar.external_origin(action) is None

    def traverse(self) -> Traverse:
        """Walk the alive nodes; call after :meth:`mark_alive`."""
        return Traverse(self)

    def begin_sum(self) -> None:
        return None

    def push_summand(self, action: int, left_node: int, right_node: int | None) -> None:
        self.graph.append(compact(Product(action, left_node, right_node)))
        self.summand_count += 1

    def sum(self, lhs_sym: int, origin: int) -> int:
        count = self.summand_count
        if count == 0:
            raise ValueError("sum of no alternatives")
        if count == 1:
            result = len(self.graph) - 1
        else:
            first = len(self.graph) - count
            self.graph.append(copy.copy(self.graph[first]))
            self.graph[first] = compact(Sum(lhs_sym, count))
            result = first
        self.summand_count = 0
        return result

    def leaf(self, token: int, pos: int, value: int) -> int:
        handle = len(self.graph)
        self.graph.append(compact(Evaluated(token, value)))
        return handle

    def nulling(self, token: int) -> int:
        """The handle of the nulling symbol's node."""
        return self._nulling_handle(token)


@dataclass(frozen=True)
class NullingHandle:
    """The traversed node is the leaf of a nulling symbol."""


@dataclass(frozen=True)
class LeafHandle:
    """The traversed node is an evaluated leaf holding ``values``."""

    values: int


@dataclass(frozen=True)
class ProductHandle:
    """One derivation: the external rule and the factors' ``(symbol, values)``."""

    action: int
    factors: tuple[tuple[int, int], ...]


class Products:
    """The alternative derivations of one traversed node."""

    def __init__(self, products: Sequence[CompactNode], traverse: Traverse) -> None:
        self._products = iter(products)
        self._traverse = traverse

    def next_product(self) -> ProductHandle | None:
        """The next derivation of an external rule, or ``None`` at the end."""
        grammar = self._traverse.bocage.grammar
        for compact_node in self._products:
            node = compact_node.expand()
            if not isinstance(node, Product):
                raise ValueError(f"alternative is not a product: {node!r}")
            origin = grammar.external_origin(node.action)
            if origin is not None:
                factors = self._traverse._unfold_factors(node.left_factor, node.right_factor)
                return ProductHandle(origin, factors)
        return None

    def __iter__(self) -> Iterator[ProductHandle]:
        while (product := self.next_product()) is not None:
            yield product


@dataclass
class TraversalHandle:
    """An alive node met during traversal."""

    node: CompactNode
    symbol: int
    item: Products | NullingHandle | LeafHandle

    def set_evaluation_result(self, values: int) -> None:
        """Replace the node with a leaf that refers to its evaluated ``values``."""
        self.node.set(Evaluated(self.symbol, values))


class Traverse:
    """Visits the alive nodes of a bocage in storage order."""

    def __init__(self, bocage: Bocage) -> None:
        self.bocage = bocage
        self._position = 0
        self._factor_stack: list[tuple[int, int]] = []
        self._factor_traversal: list[int] = []

    def next_node(self) -> TraversalHandle | None:
        """The next alive, visible node, or ``None`` at the end."""
        graph = self.bocage.graph
        liveness = self.bocage.liveness
        while self._position < len(graph) and self._position < len(liveness):
            compact_node = graph[self._position]
            alive = liveness[self._position]
            self._position += 1
            if not alive:
                continue
            node = compact_node.expand()
            if isinstance(node, Product):
                if self.bocage.is_transparent(node.action):
                    continue
                symbol = self.bocage.grammar.get_lhs(node.action)
                return TraversalHandle(compact_node, symbol, Products([compact_node], self))
            if isinstance(node, Sum):
                start = self._position
                self._position += node.count
                products = graph[start : start + node.count]
                return TraversalHandle(compact_node, node.nonterminal, Products(products, self))
            if isinstance(node, NullingLeaf):
                return TraversalHandle(compact_node, node.symbol, NullingHandle())
            return TraversalHandle(compact_node, node.symbol, LeafHandle(node.values))
        return None

    def __iter__(self) -> Iterator[TraversalHandle]:
        while (handle := self.next_node()) is not None:
            yield handle

    def _unfold_factors(
        self, left: int, right: int | None
    ) -> tuple[tuple[int, int], ...]:
        self._factor_stack.clear()
        self._enqueue(left, right)
        while self._factor_traversal:
            node: Node = self.bocage.graph[self._factor_traversal.pop()].expand()
            if isinstance(node, Product):
                self._enqueue(node.left_factor, node.right_factor)
            elif isinstance(node, Evaluated):
                self._factor_stack.append((node.symbol, node.values))
            else:
                self._factor_traversal.clear()
                raise ValueError(f"factor has not been evaluated: {node!r}")
        return tuple(self._factor_stack)

    def _enqueue(self, left: int, right: int | None) -> None:
        if right is not None:
            self._factor_traversal.append(right)
        self._factor_traversal.append(left)