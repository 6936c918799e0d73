"""Folds an accumulated predicate sequence into one boolean tree."""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from pyparadeql.nodes import Boolean, BooleanKind, Boost, PredicateNode

logger = logging.getLogger(__name__)


class JoinOp(enum.StrEnum):
    """How an accumulated predicate combines with what came before it."""

    AND = "and"
    OR = "or"
    OR_ALL_PRIOR = "or_all_prior"


class FoldStrategy(enum.StrEnum):
    """Grouping rule for sequences that mix AND and OR.

    ``LEFT_TO_RIGHT`` folds strictly in call order: consecutive operators of
    the same kind flatten, a change of kind wraps everything so far.
    ``AND_PRECEDENCE`` binds AND tighter than OR, like SQL. Both treat an
    ``OR_ALL_PRIOR`` entry as "OR against everything accumulated before it".
    """

    LEFT_TO_RIGHT = "left_to_right"
    AND_PRECEDENCE = "and_precedence"


@dataclass(frozen=True)
class Entry:
    node: PredicateNode
    op: JoinOp = JoinOp.AND


def _children(node: PredicateNode) -> tuple[PredicateNode, ...]:
    if isinstance(node, Boolean):
        return node.children
    if isinstance(node, Boost):
        return (node.query,)
    return ()


def _rebuild(node: PredicateNode, children: tuple[PredicateNode, ...]) -> PredicateNode:
    if isinstance(node, Boost):
        return node if children[0] is node.query else Boost(children[0], node.factor)
    if not isinstance(node, Boolean):
        return node
    if len(children) == 1 and node.kind is not BooleanKind.MUST_NOT:
        return children[0]
    if all(a is b for a, b in zip(children, node.children)):
        return node
    return Boolean(node.kind, children)


def simplify(node: PredicateNode) -> PredicateNode:
    """Collapse single-child must/should nodes into their child, at any depth.

    Walks bottom-up with an explicit stack; unchanged subtrees are returned
    as the same objects.
    """
    done: dict[int, PredicateNode] = {}
    stack: list[tuple[PredicateNode, bool]] = [(node, False)]
    while stack:
        current, expanded = stack.pop()
        children = _children(current)
        if children and not expanded:
            stack.append((current, True))
            stack.extend((c, False) for c in children)
            continue
        done[id(current)] = _rebuild(current, tuple(done[id(c)] for c in children))
    return done[id(node)]


def _combine(kind: BooleanKind, acc: PredicateNode, node: PredicateNode) -> Boolean:
    """``kind([acc, node])``, appending to ``acc`` when it already is ``kind``."""
    if isinstance(acc, Boolean) and acc.kind is kind:
        return Boolean(kind, (*acc.children, node))
    return Boolean(kind, (acc, node))


def _fold_left_to_right(entries: Sequence[Entry]) -> PredicateNode:
    acc = entries[0].node
    for entry in entries[1:]:
        if entry.op is JoinOp.AND:
            acc = _combine(BooleanKind.MUST, acc, entry.node)
        elif entry.op is JoinOp.OR:
            acc = _combine(BooleanKind.SHOULD, acc, entry.node)
        else:
            # Everything so far is one opaque branch; never flatten into it.
            acc = Boolean(BooleanKind.SHOULD, (acc, entry.node))
    return acc


def _close_groups(groups: list[list[PredicateNode]]) -> PredicateNode:
    branches = [g[0] if len(g) == 1 else Boolean(BooleanKind.MUST, tuple(g)) for g in groups]
    if len(branches) == 1:
        return branches[0]
    return Boolean(BooleanKind.SHOULD, tuple(branches))


def _fold_and_precedence(entries: Sequence[Entry]) -> PredicateNode:
    groups: list[list[PredicateNode]] = [[entries[0].node]]
    for entry in entries[1:]:
        if entry.op is JoinOp.AND:
            groups[-1].append(entry.node)
        elif entry.op is JoinOp.OR:
            groups.append([entry.node])
        else:
            prior = _close_groups(groups)
            groups = [[prior], [entry.node]]
    return _close_groups(groups)


_FOLDS = {
    FoldStrategy.LEFT_TO_RIGHT: _fold_left_to_right,
    FoldStrategy.AND_PRECEDENCE: _fold_and_precedence,
}


def normalize(
    entries: Sequence[Entry],
    strategy: FoldStrategy = FoldStrategy.LEFT_TO_RIGHT,
) -> PredicateNode | None:
    """Fold ``entries`` into a single predicate tree.

    The first entry's operator is ignored. Returns ``None`` for an empty
    sequence: the relation then stays an ordinary table reference.
    """
    if not entries:
        return None
    simplified = [Entry(simplify(e.node), e.op) for e in entries]
    root = _FOLDS[FoldStrategy(strategy)](simplified)
    logger.debug(
        "normalized %d predicates with %s into %s root",
        len(entries), strategy, type(root).__name__,
    )
    return root
