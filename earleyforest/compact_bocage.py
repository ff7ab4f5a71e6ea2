"""A parse forest packed into 16-bit words, and its traversal."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from itertools import islice

from earleyforest.compact_node import (
    NULL_ACTION,
    Evaluated,
    Graph,
    GraphIter,
    Node,
    NullingLeaf,
    Product,
    Sum,
    Tag,
    classify,
)
from earleyforest.forest import Forest, ForestGrammar
from earleyforest.order import Order

_NULLING_LEAF_LIMIT = 1 << 20


class CompactBocage(Forest):
    """A forest of sum and product nodes packed into a word graph.

    The graph begins with the nodes of nulling symbols, laid out in symbol
    order.  Handles are word positions in the graph.
    """

    FOREST_BYTES_PER_RECOGNIZER_BYTE = 2

    def __init__(self, grammar: ForestGrammar) -> None:
        self.grammar = grammar
        self.graph = Graph()
        self.liveness: list[bool] = []
        self.first_summand = 0
        self.summand_count = 0
        self._initialize_nulling()

    def _initialize_nulling(self) -> None:
        max_nulling = self.grammar.max_nulling_symbol()
        nulling_leaf_count = 1 if max_nulling is None else max_nulling + 1
        if nulling_leaf_count >= _NULLING_LEAF_LIMIT:
            raise ValueError("invalid nullable symbol")
        nodes: list[Node] = [NullingLeaf(symbol) for symbol in range(nulling_leaf_count)]
        for lhs, rhs0, rhs1 in self.grammar.eliminated_nulling_intermediate():
            nodes[lhs] = Product(NULL_ACTION, rhs0, rhs1)
        relocation: list[int] = []
        position = 0
        for node in nodes:
            relocation.append(position)
            position += classify(node, position).size()
        for node in nodes:
            if isinstance(node, Product):
                right = None if node.right_factor is None else relocation[node.right_factor]
                node = Product(node.action, relocation[node.left_factor], right)
            self.graph.push(node)

    def mark_alive(self, root: int, order: Order | None = None) -> None:
        """Mark every node reachable from ``root`` as alive.

        The order is accepted for symmetry with the other forest; the
        alternatives are visited as stored.
        """
        self.liveness = [False] * len(self.graph)
        dfs = [root]
        while dfs:
            handle = dfs.pop()
            self.liveness[handle] = True
            for summand in self._summands(handle):
                self._queue_factors(summand, dfs)

    def _summands(self, handle: int) -> Iterable[Node]:
        cursor = self.graph.iter_from(handle)
        head = cursor.peek()
        if isinstance(head, Sum):
            next(cursor)
            return islice(cursor, head.count)
        return islice(cursor, 1)

    def _is_dead(self, handle: int) -> bool:
        return 0 <= handle < len(self.liveness) and not self.liveness[handle]

    def _queue_factors(self, summand: Node, dfs: list[int]) -> None:
        if isinstance(summand, Product):
            for factor in (summand.right_factor, summand.left_factor):
                if factor is not None and self._is_dead(factor):
                    dfs.append(factor)
        elif isinstance(summand, Sum):
            raise ValueError("a sum node cannot be an alternative")

    def _restore_nulling_factor(self, node: Product) -> Product:
        if node.right_factor is not None:
            return node
        omitted = self.grammar.nulling(node.action)
        if omitted is None:
            return node
        symbol, on_right = omitted
        if on_right:
            return Product(node.action, node.left_factor, self.nulling(symbol))
        return Product(node.action, self.nulling(symbol), node.left_factor)

    def is_transparent(self, action: int) -> bool:
        """Whether products with ``action`` are hidden from traversal."""
        return action == NULL_ACTION or self.grammar.external_origin(action) is None

    def traverse(self) -> Traverse:
        """Walk the alive nodes; call after :meth:`mark_alive`."""
        return Traverse(self)

    def begin_sum(self) -> None:
        self.first_summand = len(self.graph)

    def push_summand(self, action: int, left_node: int, right_node: int | None) -> None:
        self.graph.push(self._restore_nulling_factor(Product(action, left_node, right_node)))
        self.summand_count += 1

    def sum(self, lhs_sym: int, origin: int) -> int:
        count = self.summand_count
        if count == 0:
            raise ValueError("sum of no alternatives")
        if count > 1:
            self.graph.set_up(self.first_summand, Sum(lhs_sym, count))
        self.summand_count = 0
        return self.first_summand

    def leaf(self, token: int, pos: int, value: object) -> int:
        return self.graph.push(Evaluated(token))

    def nulling(self, token: int) -> int:
        """The handle of the nulling symbol's node."""
        return self._nulling_handle(token)


@dataclass(frozen=True)
class NullingHandle:
    """The traversed node is the leaf of a nulling symbol."""


@dataclass(frozen=True)
class LeafHandle:
    """The traversed node is a leaf."""


@dataclass(frozen=True)
class ProductHandle:
    """One derivation: the external rule and the factors' ``(symbol, handle)``."""

    action: int
    factors: tuple[tuple[int, int], ...]


class Products:
    """The alternative derivations of one traversed node."""

    def __init__(self, products: Iterable[Node], traverse: Traverse) -> None:
        self._products = iter(products)
        self._traverse = traverse

    def next_product(self) -> ProductHandle | None:
        """The next derivation of an external rule, or ``None`` at the end."""
        grammar = self._traverse.bocage.grammar
        for node in self._products:
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

    cursor: GraphIter
    symbol: int
    item: Products | NullingHandle | LeafHandle

    def end_evaluation(self) -> None:
        """Turn the node into a plain leaf so that it reads as evaluated."""
        self.cursor.words[self.cursor.handle] = int(Tag.SMALL_LEAF)

    def handle(self) -> int:
        """The position of the node in the graph."""
        return self.cursor.handle


class Traverse:
    """Visits the alive nodes of a compact bocage in storage order."""

    def __init__(self, bocage: CompactBocage) -> None:
        self.bocage = bocage
        self._cursor = bocage.graph.iter_from(0)
        self._factor_stack: list[tuple[int, int]] = []
        self._factor_traversal: list[int] = []

    def _skip_padding(self) -> None:
        words = self.bocage.graph.words
        while self._cursor.handle < len(words) and words[self._cursor.handle] == Tag.NOP:
            self._cursor.handle += 1

    def next_node(self) -> TraversalHandle | None:
        """The next alive, visible node, or ``None`` at the end."""
        liveness = self.bocage.liveness
        while True:
            self._skip_padding()
            node = self._cursor.peek()
            if node is None:
                return None
            position = self._cursor.handle
            at_node = self._cursor.copy()
            alive = position < len(liveness) and liveness[position]
            next(self._cursor)
            if not alive:
                continue
            if isinstance(node, Product):
                if self.bocage.is_transparent(node.action):
                    continue
                symbol = self.bocage.grammar.get_lhs(node.action)
                products = Products(islice(at_node.copy(), 1), self)
                return TraversalHandle(at_node, symbol, products)
            if isinstance(node, Sum):
                products = Products(islice(self._cursor.copy(), node.count), self)
                for _ in range(node.count):
                    next(self._cursor, None)
                return TraversalHandle(at_node, node.nonterminal, products)
            if isinstance(node, NullingLeaf):
                return TraversalHandle(at_node, node.symbol, NullingHandle())
            return TraversalHandle(at_node, node.symbol, LeafHandle())

    def __iter__(self) -> Iterator[TraversalHandle]:
        while (handle := self.next_node()) is not None:
            yield handle

    def _unfold_factors(
        self, left: int, right: int | None
    ) -> tuple[tuple[int, int], ...]:
        self._factor_stack.clear()
        self._enqueue(left, right)
        graph = self.bocage.graph
        while self._factor_traversal:
            handle = self._factor_traversal.pop()
            node = graph.get(handle)
            if isinstance(node, Product):
                self._enqueue(node.left_factor, node.right_factor)
            elif isinstance(node, Evaluated):
                self._factor_stack.append((node.symbol, handle))
            else:
                self._factor_traversal.clear()
                raise ValueError(f"factor has not been evaluated: {node!r}")
        return tuple(self._factor_stack)

    def _enqueue(self, left: int, right: int | None) -> None:
        if right is not None:
            self._factor_traversal.append(right)
        self._factor_traversal.append(left)