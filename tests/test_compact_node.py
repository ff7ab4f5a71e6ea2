import pytest

from earleyforest.compact_node import (
    NULL_ACTION,
    Evaluated,
    Graph,
    NullingLeaf,
    Product,
    Sum,
    Tag,
    classify,
    decode_tag,
    expand_repr,
    to_repr,
)

ROUND_TRIP_CASES = [
    (Sum(3, 2), 10),
    (Sum(300, 2), 10),
    (Sum(3, 40), 10),
    (Product(7, 9, None), 10),
    (Product(300, 9, None), 10),
    (Product(7, 0, None), 9000),
    (Product(7, 20, None), 10),
    (Product(5, 8, 9), 10),
    (Product(5, 0, 1), 100),
    (Product(70000, 8, 9), 10),
    (Product(NULL_ACTION, 1, 2), 3),
    (NullingLeaf(5), 0),
    (Evaluated(7), 0),
    (Evaluated(5000), 0),
]


@pytest.mark.parametrize("node, position", ROUND_TRIP_CASES)
def test_repr_round_trip(node, position):
    words, tag = to_repr(node, position)
    assert len(words) == tag.size()
    assert tag == classify(node, position)
    decoded_tag, head = decode_tag(words[0])
    assert decoded_tag == tag
    assert expand_repr((head, *words[1:]), tag, position) == node


def test_large_nulling_leaf_reads_back_as_evaluated():
    words, tag = to_repr(NullingLeaf(5000), 0)
    assert tag is Tag.LEAF
    _, head = decode_tag(words[0])
    assert expand_repr((head, *words[1:]), tag, 0) == Evaluated(5000)


@pytest.mark.parametrize(
    "node, position, expected",
    [
        (Sum(1, 31), 0, Tag.SMALL_SUM),
        (Sum(1, 32), 0, Tag.SUM),
        (Sum(256, 2), 0, Tag.SUM),
        (Product(255, 69, None), 100, Tag.SMALL_LINK),
        (Product(256, 69, None), 100, Tag.MEDIUM_LINK),
        (Product(255, 68, None), 100, Tag.MEDIUM_LINK),
        (Product(1 << 16, 99, None), 100, Tag.PRODUCT),
        (Product(1, 0, None), 1 << 13, Tag.PRODUCT),
        (Product(1, 101, None), 100, Tag.PRODUCT),
        (Product(1, 0, 69), 100, Tag.SMALL_PRODUCT),
        (Product(1, 0, 68), 100, Tag.PRODUCT),
        (Product(1, 101, 99), 100, Tag.PRODUCT),
        (NullingLeaf(4095), 0, Tag.SMALL_NULLING_LEAF),
        (NullingLeaf(4096), 0, Tag.LEAF),
        (Evaluated(4095), 0, Tag.SMALL_LEAF),
        (Evaluated(4096), 0, Tag.LEAF),
    ],
)
def test_classify_thresholds(node, position, expected):
    assert classify(node, position) is expected


def test_decode_padding_word():
    assert decode_tag(0xFFFF) == (Tag.NOP, 0)


def test_decode_small_nulling_leaf():
    words, _ = to_repr(NullingLeaf(5), 0)
    assert decode_tag(words[0]) == (Tag.SMALL_NULLING_LEAF, 5)


def test_decode_rejects_wide_word():
    with pytest.raises(ValueError):
        decode_tag(1 << 16)


@pytest.mark.parametrize("tag", list(Tag))
def test_bare_tag_word_decodes_to_its_tag(tag):
    assert decode_tag(int(tag)) == (tag, 0)


@pytest.mark.parametrize(
    "tag, expected",
    [
        (Tag.SUM, 0xE000),
        (Tag.SMALL_LINK, 0xE000),
        (Tag.SMALL_LEAF, 0xF000),
        (Tag.SMALL_NULLING_LEAF, 0xF000),
        (Tag.NOP, 0xFFFF),
    ],
)
def test_tag_masks(tag, expected):
    assert tag.mask() == expected


@pytest.mark.parametrize(
    "node",
    [
        Sum(-1, 2),
        Evaluated(-3),
        Product(1, -1, None),
        Sum(1, 1 << 29),
        Sum(1, 0x1FFF << 16),
        Product(1 << 29, 0, 1),
        Evaluated(1 << 32),
    ],
)
def test_to_repr_rejects_unrepresentable(node):
    with pytest.raises(ValueError):
        to_repr(node, 0)


def test_to_repr_rejects_other_objects():
    with pytest.raises(TypeError):
        to_repr("node", 0)


def test_expand_repr_checks_length_and_padding():
    with pytest.raises(ValueError):
        expand_repr((1,), Tag.PRODUCT, 0)
    with pytest.raises(ValueError):
        expand_repr((0,), Tag.NOP, 0)


def test_push_and_get():
    graph = Graph()
    nodes = [NullingLeaf(0), Evaluated(1), Product(3, 0, 1), Sum(300, 5)]
    handles = [graph.push(node) for node in nodes]
    assert handles[0] == 0
    for handle, node, following in zip(handles, nodes, handles[1:] + [len(graph)]):
        assert graph.get(handle) == node
        assert following - handle == classify(node, handle).size()
    assert list(graph.iter_from(0)) == nodes


def test_get_past_end_raises():
    graph = Graph()
    graph.push(Evaluated(1))
    with pytest.raises(IndexError):
        graph.get(len(graph))


def test_iterator_peek_and_copy():
    graph = Graph()
    graph.push(Evaluated(1))
    graph.push(Evaluated(2))
    cursor = graph.iter_from(0)
    assert cursor.peek() == Evaluated(1)
    assert cursor.peek() == Evaluated(1)
    twin = cursor.copy()
    assert next(cursor) == Evaluated(1)
    assert next(twin) == Evaluated(1)
    assert next(cursor) == Evaluated(2)
    assert cursor.peek() is None
    with pytest.raises(StopIteration):
        next(cursor)


def test_set_up_small_sum_moves_covered_summand():
    graph = Graph()
    for symbol in range(3):
        graph.push(Evaluated(symbol))
    first_summand = Product(1, 0, 1)
    second_summand = Product(2, 2, None)
    first = graph.push(first_summand)
    graph.push(second_summand)
    graph.set_up(first, Sum(9, 2))
    nodes = list(graph.iter_from(first))
    assert nodes == [Sum(9, 2), second_summand, first_summand]
    assert int(Tag.NOP) in graph.words
    assert [graph.get(h) for h in range(3)] == [Evaluated(0), Evaluated(1), Evaluated(2)]


def test_set_up_large_sum_moves_several_summands():
    graph = Graph()
    for symbol in range(3):
        graph.push(Evaluated(symbol))
    summands = [Product(1, 0, None), Product(2, 1, None), Product(3, 2, None)]
    first = graph.push(summands[0])
    for summand in summands[1:]:
        graph.push(summand)
    sum_node = Sum(500, len(summands))
    graph.set_up(first, sum_node)
    cursor = graph.iter_from(first)
    assert next(cursor) == sum_node
    rest = list(cursor)
    assert sorted(rest, key=lambda p: p.action) == summands


def test_end_of_evaluation_word_reads_as_leaf():
    graph = Graph()
    handle = graph.push(Product(4, 0, None))
    graph.words[handle] = int(Tag.SMALL_LEAF)
    assert graph.get(handle) == Evaluated(0)