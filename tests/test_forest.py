import pytest

from earleyforest.forest import (
    NULL_HANDLE,
    Forest,
    ForestGrammar,
    NullForest,
    handle_or_none,
)


def test_null_handle_maps_to_none():
    assert handle_or_none(NULL_HANDLE) is None


@pytest.mark.parametrize("handle", [0, 1, 42, NULL_HANDLE - 1])
def test_other_handles_pass_through(handle):
    assert handle_or_none(handle) == handle


def test_all_ones_handle_is_null():
    assert handle_or_none(0xFFFF_FFFF) is None
    assert handle_or_none(0xFFFF_FFFE) == 0xFFFF_FFFE


def test_forest_is_abstract():
    with pytest.raises(TypeError):
        Forest()


def test_null_forest_returns_nothing():
    forest = NullForest()
    assert forest.begin_sum() is None
    assert forest.push_summand(3, None, None) is None
    assert forest.sum(1, 0) is None
    assert forest.leaf(2, 0, None) is None
    assert forest.nulling(5) is None
    assert forest.FOREST_BYTES_PER_RECOGNIZER_BYTE == 0


def test_grammar_defaults():
    grammar = ForestGrammar()
    assert grammar.max_nulling_symbol() is None
    assert list(grammar.eliminated_nulling_intermediate()) == []
    assert grammar.nulling(0) is None
    assert grammar.external_origin(0) is None


def test_grammar_lookups():
    grammar = ForestGrammar(
        max_nulling=4,
        nulling_intermediates=((4, 1, 2),),
        nulling_actions={7: (3, True)},
        external_origins={7: 0, 8: 1},
        lhs_of={7: 10, 8: 11},
    )
    assert grammar.max_nulling_symbol() == 4
    assert list(grammar.eliminated_nulling_intermediate()) == [(4, 1, 2)]
    assert grammar.nulling(7) == (3, True)
    assert grammar.nulling(8) is None
    assert grammar.external_origin(8) == 1
    assert grammar.external_origin(9) is None
    assert grammar.get_lhs(7) == 10


def test_grammar_unknown_lhs_raises():
    with pytest.raises(KeyError):
        ForestGrammar(lhs_of={1: 2}).get_lhs(3)