# earleyforest

Parse forests for Earley parsers. A recognizer reports completed items to a
*forest*; the forest records them as a shared packed parse forest (a
"bocage") that can afterwards be marked from its root and walked node by
node to evaluate every parse.

## Installation

```
pip install earleyforest
```

## Forests

Every forest offers the interface of `earleyforest.forest.Forest`:

- `begin_sum()` – start collecting the alternatives of one node,
- `push_summand(action, left_node, right_node)` – add one alternative,
- `sum(lhs_sym, origin)` – finish the node and return its handle
  (raises `ValueError` if no alternative was pushed),
- `leaf(token, pos, value)` – record a scanned token,
- `nulling(token)` – the handle of a nulling symbol's node, which is the
  symbol itself (`ValueError` for a negative or out-of-range symbol).

Three implementations are provided:

- `earleyforest.forest.NullForest` – keeps nothing and returns `None` for
  every node; for when only recognition matters.
- `earleyforest.bocage.Bocage` – a list of packed three-word nodes
  (`earleyforest.bocage_node.CompactNode`, holding a `Sum`, `Product`,
  `NullingLeaf` or `Evaluated`). A leaf stores the `value` it was given.
- `earleyforest.compact_bocage.CompactBocage` – nodes packed into a list of
  16-bit words (`earleyforest.compact_node.Graph`), each taking one to six
  words depending on its contents (`earleyforest.compact_node.Tag`). Handles
  are word positions. Leaves do not store a value.

Both bocages begin with one node per nulling symbol, and turn each triple of
`eliminated_nulling_intermediate()` into a product joining two nulling nodes.

## Grammar

The bocages consult a grammar for a few facts about actions. The dataclass
`earleyforest.forest.ForestGrammar` holds them as plain mappings:

- `max_nulling_symbol()` – from `max_nulling`, the largest nulling symbol or `None`,
- `eliminated_nulling_intermediate()` – from `nulling_intermediates`,
  `(lhs, rhs0, rhs1)` triples,
- `nulling(action)` – from `nulling_actions`, the `(symbol, on_right)` of a
  nulling factor omitted from the rule, or `None`,
- `external_origin(action)` – from `external_origins`, the user's rule id,
  or `None` for internal actions,
- `get_lhs(action)` – from `lhs_of`, the left-hand side symbol (`KeyError`
  if unknown).

Any object with these methods can be used instead.

## Marking and traversal

```python
from earleyforest.bocage import Bocage, LeafHandle, NullingHandle, Products
from earleyforest.forest import ForestGrammar

grammar = ForestGrammar(external_origins={0: 0}, lhs_of={0: 5})
bocage = Bocage(grammar)

a = bocage.leaf(3, 0, 10)
b = bocage.leaf(4, 1, 20)
bocage.begin_sum()
bocage.push_summand(0, a, b)
root = bocage.sum(5, 0)

bocage.mark_alive(root)
for node in bocage.traverse():
    if isinstance(node.item, Products):
        for product in node.item:
            print(node.symbol, product.action, product.factors)  # 5 0 ((3, 10), (4, 20))
    elif isinstance(node.item, LeafHandle):
        print("leaf", node.symbol, node.item.values)
    elif isinstance(node.item, NullingHandle):
        print("nulling", node.symbol)
```

`mark_alive(root, order)` marks every node reachable from `root`; on a
`Bocage` it also puts back the nulling factors that `nulling(action)`
reports as omitted (a `CompactBocage` does this already in
`push_summand`). `traverse()` then yields the alive nodes in storage
order as `TraversalHandle`s; products whose action is `NULL_ACTION` or has
no external origin are skipped. `next_node()` and `next_product()` are the
step-by-step forms of the two iterations and return `None` at the end.

A product's `factors` are `(symbol, values)` pairs in a `Bocage` and
`(symbol, handle)` pairs in a `CompactBocage`; internal products among the
factors are unfolded. A factor that is not yet evaluated raises `ValueError`.

To evaluate bottom-up:

- with a `Bocage`, store the node's results somewhere and call
  `TraversalHandle.set_evaluation_result(values)`, which turns the node into
  an `Evaluated` leaf carrying `values`; later products see that number in
  their factors;
- with a `CompactBocage`, key the results by `TraversalHandle.handle()` and
  call `TraversalHandle.end_evaluation()`, which rewrites the node's first
  word as a leaf.

## Orders

`earleyforest.order.Order.sum(alternatives)` is applied to a node's
alternatives when a `Bocage` is marked; the default returns them unchanged.
`Order.product(factors)` returns `preferred_factor` if it is a valid index,
otherwise `None`. `NullOrder` changes nothing. `CompactBocage.mark_alive`
accepts an order but visits alternatives as stored.

## What this package does not do

It holds and walks forests only. It has no recognizer that feeds them, does
not build the grammar facts from a grammar, and has no evaluator that
combines the values of ambiguous derivations; those are left to the caller.

## Running the tests

```
pip install -e ".[test]"
pytest
```