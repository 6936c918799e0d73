"""Host query seam: relation bindings, per-alias accumulators and rendering."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pyparadeql._accumulator import Accumulator, NormalizedTree
from pyparadeql._emitter import Emitter, SearchExpression
from pyparadeql._errors import (
    ERR_MSG_REOPENED,
    ERR_MSG_UNKNOWN_RELATION,
    InvalidArgumentsError,
    InvalidBindingError,
    ReopenedAccumulatorError,
    UnknownRelationError,
)
from pyparadeql._normalizer import FoldStrategy, JoinOp
from pyparadeql._resolver import BindingResolver
from pyparadeql._utils import validate_field_name, validate_relation_name
from pyparadeql.nodes import PredicateNode
from pyparadeql.schema import SchemaRegistry

logger = logging.getLogger(__name__)

_JOIN_KINDS = {"INNER", "LEFT", "RIGHT", "FULL", "CROSS"}


@dataclass(frozen=True)
class _RelationRef:
    relation: str
    alias: str
    join_kind: str | None = None
    on: str | None = None


class SearchQuery:
    """A SELECT over one or more relations, some of which are searched.

    Ordinary clauses are raw SQL fragments passed through unchanged. Search
    predicates are accumulated per alias and, when the query is built, each
    searched alias's table reference is replaced by its search call::

        q = SearchQuery(registry).from_("calls", "c")
        q.add("c", Parse("transcript:walking"))
        q.add("c", Range("call_length", "[3,)"))
        build_sql(q)

    A query is owned by one caller at a time; it is not thread-safe.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        *,
        strategy: FoldStrategy = FoldStrategy.LEFT_TO_RIGHT,
    ) -> None:
        self._resolver = BindingResolver(registry)
        self._strategy = FoldStrategy(strategy)
        self._refs: dict[str, _RelationRef] = {}
        self._accumulators: dict[str, Accumulator] = {}
        self._trees: dict[str, NormalizedTree] | None = None
        self._columns: list[str] = []
        self._where: list[str] = []
        self._order_by: list[str] = []

    # ---- Relational clauses ----

    def from_(self, relation: str, alias: str | None = None) -> SearchQuery:
        if self._refs:
            raise InvalidArgumentsError(
                "query already has a FROM relation",
                f"from_({relation!r}) called on a query with relations {list(self._refs)}",
            )
        self._add_ref(_RelationRef(relation, alias or _default_alias(relation)))
        return self

    def join(
        self,
        relation: str,
        alias: str | None = None,
        *,
        on: str | None = None,
        kind: str = "INNER",
    ) -> SearchQuery:
        if not self._refs:
            raise InvalidArgumentsError(
                "join requires a FROM relation",
                f"join({relation!r}) called before from_()",
            )
        kind = kind.upper()
        if kind not in _JOIN_KINDS:
            raise InvalidArgumentsError(
                "invalid join kind",
                f"join kind {kind!r} is not one of {sorted(_JOIN_KINDS)}",
            )
        if kind != "CROSS" and not on:
            raise InvalidArgumentsError(
                "join requires an ON condition",
                f"{kind} JOIN {relation!r} has no ON condition",
            )
        self._add_ref(_RelationRef(relation, alias or _default_alias(relation), kind, on))
        return self

    def select(self, *columns: str) -> SearchQuery:
        self._columns.extend(columns)
        return self

    def where(self, fragment: str) -> SearchQuery:
        self._where.append(fragment)
        return self

    def order_by(self, fragment: str) -> SearchQuery:
        self._order_by.append(fragment)
        return self

    def _add_ref(self, ref: _RelationRef) -> None:
        validate_relation_name(ref.relation)
        validate_field_name(ref.alias)
        existing = self._refs.get(ref.alias)
        if existing is not None:
            raise InvalidBindingError(
                "alias is already bound to another relation",
                f"alias '{ref.alias}' is already used for '{existing.relation}'",
            )
        self._refs[ref.alias] = ref

    @property
    def aliases(self) -> list[str]:
        return list(self._refs)

    # ---- Search predicates ----

    def _accumulator(self, alias: str) -> Accumulator:
        if self._trees is not None:
            raise ReopenedAccumulatorError(
                ERR_MSG_REOPENED,
                f"query was already finalized; cannot search alias '{alias}'",
            )
        acc = self._accumulators.get(alias)
        if acc is not None:
            return acc
        ref = self._refs.get(alias)
        if ref is None:
            raise UnknownRelationError(
                ERR_MSG_UNKNOWN_RELATION,
                f"alias '{alias}' is not a relation of this query; known: {list(self._refs)}",
            )
        binding = self._resolver.bind(alias, ref.relation)
        acc = Accumulator(binding)
        self._accumulators[alias] = acc
        return acc

    def add(self, alias: str, node: PredicateNode, op: JoinOp = JoinOp.AND) -> SearchQuery:
        self._accumulator(alias).add(node, op)
        return self

    def or_add(self, alias: str, node: PredicateNode) -> SearchQuery:
        self._accumulator(alias).or_add(node)
        return self

    def or_all_prior(self, alias: str, node: PredicateNode) -> SearchQuery:
        self._accumulator(alias).or_all_prior(node)
        return self

    def set_option(self, alias: str, name: str, value: Any) -> SearchQuery:
        self._accumulator(alias).set_option(name, value)
        return self

    # ---- Build ----

    @property
    def finalized(self) -> bool:
        return self._trees is not None

    def finalize(self) -> Mapping[str, NormalizedTree]:
        """Validate and normalize every searched alias; closes the query.

        Every alias is validated before any tree is kept, so a failure leaves
        nothing half-built. Aliases with no predicates get no tree.
        """
        if self._trees is not None:
            return dict(self._trees)
        for acc in self._accumulators.values():
            acc.validate(self._resolver)
        trees: dict[str, NormalizedTree] = {}
        for alias, acc in self._accumulators.items():
            tree = acc.finalize(self._resolver, self._strategy)
            if tree is not None:
                trees[alias] = tree
        self._trees = trees
        logger.debug("finalized query: searched aliases %s", list(trees))
        return dict(trees)

    def search_expressions(self, emitter: Emitter) -> dict[str, SearchExpression]:
        """Emit every searched alias, numbering placeholders across all of them.

        Aliases come in the order each got its first predicate.
        """
        expressions: dict[str, SearchExpression] = {}
        next_param = 1
        for alias, tree in self.finalize().items():
            expr = emitter.emit(tree, next_param)
            next_param += len(expr.parameters)
            expressions[alias] = expr
        return expressions

    def build(self, emitter: Emitter) -> tuple[str, list[Any]]:
        """Render the full SELECT and collect its parameters in placeholder order."""
        if not self._refs:
            raise InvalidArgumentsError(
                "query has no FROM relation",
                "build() called before from_()",
            )
        expressions = self.search_expressions(emitter)
        parameters = [p for expr in expressions.values() for p in expr.parameters]
        return self._render(expressions), parameters

    def render(self, emitter: Emitter) -> str:
        """Render the full SELECT with search calls in place of searched tables."""
        sql, _ = self.build(emitter)
        return sql

    def _render(self, expressions: Mapping[str, SearchExpression]) -> str:
        parts = [f"SELECT {', '.join(self._columns) if self._columns else '*'}"]
        for i, ref in enumerate(self._refs.values()):
            expr = expressions.get(ref.alias)
            item = expr.as_from_item() if expr is not None else _plain_item(ref)
            if i == 0:
                parts.append(f"FROM {item}")
            elif ref.join_kind == "CROSS":
                parts.append(f"CROSS JOIN {item}")
            else:
                parts.append(f"{ref.join_kind} JOIN {item} ON {ref.on}")
        if self._where:
            if len(self._where) == 1:
                parts.append(f"WHERE {self._where[0]}")
            else:
                parts.append("WHERE " + " AND ".join(f"({c})" for c in self._where))
        if self._order_by:
            parts.append(f"ORDER BY {', '.join(self._order_by)}")
        return " ".join(parts)


def _default_alias(relation: str) -> str:
    return relation.rsplit(".", 1)[-1]


def _plain_item(ref: _RelationRef) -> str:
    if ref.alias == ref.relation:
        return ref.relation
    return f"{ref.relation} AS {ref.alias}"
