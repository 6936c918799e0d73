"""Serializes a normalized predicate tree into a search table-function call."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from io import StringIO
from typing import Any

from pyparadeql._accumulator import NormalizedTree
from pyparadeql._constants import (
    DEFAULT_MAX_RECURSION_DEPTH,
    DEFAULT_MAX_SQL_OUTPUT_LENGTH,
    SEARCH_OPTIONS,
)
from pyparadeql._encoder import LiteralKind, encode
from pyparadeql._errors import (
    ERR_MSG_UNSUPPORTED_EXPRESSION,
    MaxDepthExceededError,
    MaxOutputLengthExceededError,
    UnsupportedExpressionError,
)
from pyparadeql.dialect._base import Dialect, NamedArg
from pyparadeql.nodes import (
    Boolean,
    Boost,
    Exists,
    FuzzyTerm,
    Parse,
    Phrase,
    PredicateNode,
    Range,
    Term,
)

logger = logging.getLogger(__name__)

_FUZZY_OPTIONS = ("distance", "transpose_cost_one", "prefix")


@dataclass(frozen=True)
class SearchExpression:
    """The search call that replaces a relation's plain table reference."""

    alias: str
    relation: str
    index_name: str
    sql: str
    parameters: tuple[Any, ...] = ()

    def as_from_item(self) -> str:
        """The call with its alias, ready for a FROM or JOIN clause."""
        return f"{self.sql} AS {self.alias}"


class Emitter:
    """Writes search calls for normalized trees through a :class:`Dialect`.

    Emission is pure: the same tree and ``first_param`` always give the same
    expression. Numbering across the relations of one query is the caller's
    job, see :meth:`SearchQuery.search_expressions`.
    """

    def __init__(
        self,
        dialect: Dialect,
        parameterize: bool = False,
        max_depth: int = DEFAULT_MAX_RECURSION_DEPTH,
        max_output_length: int = DEFAULT_MAX_SQL_OUTPUT_LENGTH,
    ) -> None:
        self._dialect = dialect
        self._parameterize = parameterize
        self._parameters: list[Any] = []
        self._param_base = 0
        self._max_depth = max_depth
        self._max_output_length = max_output_length
        self._w = StringIO()
        self._depth = 0

    def emit(self, tree: NormalizedTree, first_param: int = 1) -> SearchExpression:
        """Serialize one relation's tree and options.

        Placeholders are numbered from ``first_param``.

        Raises:
            MaxDepthExceededError: If the tree nests too deeply.
            MaxOutputLengthExceededError: If the call grows too long.
            UnsupportedExpressionError: On a node type with no serialization.
        """
        self._w = StringIO()
        self._depth = 0
        self._parameters = []
        self._param_base = first_param - 1

        options: list[NamedArg] = [
            (name, partial(self._write_value, tree.options[name], name))
            for name in SEARCH_OPTIONS
            if name in tree.options
        ]
        index = tree.binding.index
        self._dialect.write_search_call(
            self._w,
            index.name,
            partial(self._visit, tree.root),
            options,
        )
        self._check_limits()

        sql = self._w.getvalue()
        logger.debug("emitted search call for alias %r: %d chars", tree.binding.alias, len(sql))
        return SearchExpression(
            alias=tree.binding.alias,
            relation=tree.binding.relation,
            index_name=index.name,
            sql=sql,
            parameters=tuple(self._parameters),
        )

    def _check_limits(self) -> None:
        if self._depth > self._max_depth:
            raise MaxDepthExceededError(
                "maximum recursion depth exceeded",
                f"depth {self._depth} exceeds limit {self._max_depth}",
            )
        if self._w.tell() > self._max_output_length:
            raise MaxOutputLengthExceededError(
                "maximum SQL output length exceeded",
                f"output length exceeds limit {self._max_output_length}",
            )

    def _add_param(self, value: Any) -> int:
        """Add a parameter and return its 1-based index."""
        self._parameters.append(value)
        return self._param_base + len(self._parameters)

    def _write_value(self, value: Any, argument: str | None = None) -> None:
        literal = encode(value)
        # Booleans are never parameterized.
        if self._parameterize and literal.kind is not LiteralKind.BOOLEAN:
            index = self._add_param(literal.value)
            self._dialect.write_param_placeholder(self._w, index, literal, argument)
        else:
            self._dialect.write_literal(self._w, literal)

    def _visit(self, node: PredicateNode) -> None:
        self._depth += 1
        try:
            self._check_limits()
            self._write_node(node)
        finally:
            self._depth -= 1

    def _write_node(self, node: PredicateNode) -> None:
        w = self._w
        d = self._dialect
        match node:
            case Parse(query=query):
                d.write_parse(w, partial(self._write_value, query))
            case Term(field=field, value=value):
                d.write_term(w, field, partial(self._write_value, value))
            case FuzzyTerm(field=field, value=value):
                options: list[NamedArg] = [
                    (d.fuzzy_option_name(name), partial(self._write_value, getattr(node, name), name))
                    for name in _FUZZY_OPTIONS
                    if getattr(node, name) is not None
                ]
                d.write_fuzzy_term(w, field, partial(self._write_value, value), options)
            case Phrase(field=field, phrases=phrases, slop=slop):
                write_slop = partial(self._write_value, slop, "slop") if slop is not None else None
                d.write_phrase(w, field, partial(self._write_value, list(phrases)), write_slop)
            case Range(field=field, range=range_):
                d.write_range(w, field, partial(self._write_value, range_))
            case Exists(field=field):
                d.write_exists(w, field)
            case Boolean(kind=kind, children=children):
                d.write_boolean(w, str(kind), [partial(self._visit, c) for c in children])
            case Boost(query=query, factor=factor):
                d.write_boost(w, partial(self._write_value, float(factor), "factor"), partial(self._visit, query))
            case _:
                raise UnsupportedExpressionError(
                    ERR_MSG_UNSUPPORTED_EXPRESSION,
                    f"no serialization for {type(node).__name__}",
                )
