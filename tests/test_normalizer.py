"""Boolean normalizer tests."""

import pytest

from pyparadeql._normalizer import Entry, FoldStrategy, JoinOp, normalize, simplify
from pyparadeql.nodes import (
    Boolean,
    Boost,
    FuzzyTerm,
    Parse,
    Term,
    iter_nodes,
    must,
    must_not,
    should,
)

A = Term("f", "a")
B = Term("f", "b")
C = Term("f", "c")
D = Term("f", "d")
E = Term("f", "e")


def _entries(*pairs):
    return [Entry(node, op) for node, op in pairs]


def _min_children(node):
    if isinstance(node, Boolean):
        own = len(node.children) if node.kind != "must_not" else 2
        return min([own, *(_min_children(c) for c in node.children)])
    if isinstance(node, Boost):
        return _min_children(node.query)
    return 2


class TestLeftToRight:
    def test_empty(self):
        assert normalize([]) is None

    def test_single(self):
        assert normalize(_entries((A, JoinOp.AND))) == A

    def test_first_op_ignored(self):
        assert normalize(_entries((A, JoinOp.OR_ALL_PRIOR))) == A

    def test_and_flattens(self):
        tree = normalize(_entries((A, JoinOp.AND), (B, JoinOp.AND), (C, JoinOp.AND)))
        assert tree == must(A, B, C)

    def test_or_flattens(self):
        tree = normalize(_entries((A, JoinOp.AND), (B, JoinOp.OR), (C, JoinOp.OR)))
        assert tree == should(A, B, C)

    def test_or_all_prior_wraps_conjunction(self):
        tree = normalize(_entries((A, JoinOp.AND), (B, JoinOp.AND), (C, JoinOp.OR_ALL_PRIOR)))
        assert tree == should(must(A, B), C)

    def test_or_all_prior_does_not_flatten_should(self):
        tree = normalize(_entries((A, JoinOp.AND), (B, JoinOp.OR), (C, JoinOp.OR_ALL_PRIOR)))
        assert tree == should(should(A, B), C)

    def test_kind_change_wraps(self):
        tree = normalize(_entries(
            (A, JoinOp.AND), (B, JoinOp.AND), (C, JoinOp.OR), (D, JoinOp.AND),
        ))
        assert tree == must(should(must(A, B), C), D)

    def test_and_after_or_all_prior(self):
        tree = normalize(_entries((A, JoinOp.AND), (B, JoinOp.OR_ALL_PRIOR), (C, JoinOp.AND)))
        assert tree == must(should(A, B), C)

    def test_scenario_fuzzy(self):
        walking = Parse("transcript:walking")
        fuzzy = FuzzyTerm("transcript", "walk")
        running = Parse("transcript:running")
        tree = normalize(_entries(
            (walking, JoinOp.AND), (fuzzy, JoinOp.AND), (running, JoinOp.OR_ALL_PRIOR),
        ))
        assert tree == should(must(walking, fuzzy), running)

    def test_does_not_mutate_input(self):
        entries = _entries((A, JoinOp.AND), (B, JoinOp.AND))
        snapshot = list(entries)
        normalize(entries)
        normalize(entries)
        assert entries == snapshot


class TestAndPrecedence:
    def test_and_binds_tighter(self):
        tree = normalize(
            _entries((A, JoinOp.AND), (B, JoinOp.AND), (C, JoinOp.OR), (D, JoinOp.AND)),
            FoldStrategy.AND_PRECEDENCE,
        )
        assert tree == should(must(A, B), must(C, D))

    def test_all_and(self):
        tree = normalize(
            _entries((A, JoinOp.AND), (B, JoinOp.AND), (C, JoinOp.AND)),
            FoldStrategy.AND_PRECEDENCE,
        )
        assert tree == must(A, B, C)

    def test_or_all_prior_closes_prior(self):
        tree = normalize(
            _entries(
                (A, JoinOp.AND), (B, JoinOp.OR), (C, JoinOp.AND),
                (D, JoinOp.OR_ALL_PRIOR), (E, JoinOp.AND),
            ),
            "and_precedence",
        )
        assert tree == should(should(A, must(B, C)), must(D, E))

    def test_matches_left_to_right_for_or_all_prior_scenario(self):
        entries = _entries((A, JoinOp.AND), (B, JoinOp.AND), (C, JoinOp.OR_ALL_PRIOR))
        assert normalize(entries, FoldStrategy.AND_PRECEDENCE) == normalize(entries)


class TestSimplify:
    def test_single_child_must_collapses(self):
        assert simplify(must(A)) == A

    def test_nested_collapse(self):
        assert simplify(should(must(A), B)) == should(A, B)

    def test_must_not_kept(self):
        assert simplify(must_not(A)) == must_not(A)

    def test_inside_boost(self):
        assert simplify(Boost(should(A), 2.0)) == Boost(A, 2.0)

    def test_unchanged_returns_same_object(self):
        tree = must(A, B)
        assert simplify(tree) is tree

    def test_very_deep_tree(self):
        node = A
        for i in range(1500):
            node = must(should(Term("f", str(i)), node))
        result = simplify(node)
        booleans = [n for n in iter_nodes(result) if isinstance(n, Boolean)]
        assert len(booleans) == 1500
        assert all(n.kind == "should" and len(n.children) == 2 for n in booleans)

    def test_very_deep_unchanged_tree(self):
        node = A
        for i in range(1500):
            node = must(Term("f", str(i)), node)
        assert simplify(node) is node


class TestInvariants:
    SEQUENCES = [
        [(A, JoinOp.AND)],
        [(must(A), JoinOp.AND), (B, JoinOp.AND)],
        [(A, JoinOp.AND), (should(B), JoinOp.OR), (C, JoinOp.OR_ALL_PRIOR)],
        [(A, JoinOp.OR), (B, JoinOp.AND), (C, JoinOp.OR), (D, JoinOp.OR_ALL_PRIOR), (E, JoinOp.AND)],
    ]

    @pytest.mark.parametrize("strategy", list(FoldStrategy))
    @pytest.mark.parametrize("pairs", SEQUENCES)
    def test_no_boolean_with_fewer_than_two_children(self, pairs, strategy):
        tree = normalize(_entries(*pairs), strategy)
        assert _min_children(tree) >= 2
