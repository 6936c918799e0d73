"""pyparadeql - Compile composable search predicates into ParadeDB search SQL."""

from __future__ import annotations

__version__ = "0.1.0"

from dataclasses import dataclass, field
from typing import Any

from pyparadeql._accumulator import Accumulator, NormalizedTree
from pyparadeql._emitter import Emitter, SearchExpression
from pyparadeql._encoder import EncodedLiteral, decode, encode
from pyparadeql._errors import (
    CompileError,
    IntrospectionError,
    InvalidArgumentsError,
    InvalidBindingError,
    InvalidFieldNameError,
    InvalidOptionError,
    InvalidRangeLiteralError,
    InvalidSchemaError,
    MaxDepthExceededError,
    MaxOutputLengthExceededError,
    ReopenedAccumulatorError,
    UnknownFieldError,
    UnknownRelationError,
    UnsupportedExpressionError,
    UnsupportedTypeError,
)
from pyparadeql._normalizer import FoldStrategy, JoinOp, normalize
from pyparadeql._resolver import BindingResolver, RelationBinding
from pyparadeql.dialect._base import Dialect
from pyparadeql.dialect.paradedb import ParadeDBDialect
from pyparadeql.dialect.shorthand import ShorthandDialect
from pyparadeql.introspect import introspect_postgres
from pyparadeql.nodes import (
    Boolean,
    BooleanKind,
    Boost,
    Exists,
    FuzzyTerm,
    Parse,
    Phrase,
    PredicateNode,
    Range,
    SearchRange,
    Term,
    must,
    must_not,
    should,
)
from pyparadeql.query import SearchQuery
from pyparadeql.schema import SchemaRegistry, SearchField, SearchIndex

__all__ = [
    "build_sql",
    "build_sql_parameterized",
    "search_expressions",
    "introspect_postgres",
    "encode",
    "decode",
    "normalize",
    "Result",
    "SearchQuery",
    "SearchExpression",
    "SchemaRegistry",
    "SearchIndex",
    "SearchField",
    "PredicateNode",
    "Parse",
    "Term",
    "FuzzyTerm",
    "Phrase",
    "Range",
    "Boolean",
    "BooleanKind",
    "Boost",
    "Exists",
    "SearchRange",
    "must",
    "should",
    "must_not",
    "JoinOp",
    "FoldStrategy",
    "Accumulator",
    "NormalizedTree",
    "BindingResolver",
    "RelationBinding",
    "Emitter",
    "EncodedLiteral",
    "Dialect",
    "ParadeDBDialect",
    "ShorthandDialect",
    "CompileError",
    "UnknownRelationError",
    "UnknownFieldError",
    "InvalidOptionError",
    "UnsupportedTypeError",
    "InvalidRangeLiteralError",
    "ReopenedAccumulatorError",
    "InvalidSchemaError",
    "InvalidFieldNameError",
    "InvalidArgumentsError",
    "InvalidBindingError",
    "UnsupportedExpressionError",
    "MaxDepthExceededError",
    "MaxOutputLengthExceededError",
    "IntrospectionError",
]


@dataclass(frozen=True)
class Result:
    """Result of a parameterized build."""

    sql: str
    parameters: list[Any] = field(default_factory=list)


def _make_emitter(
    dialect: Dialect | None,
    parameterize: bool,
    max_depth: int | None,
    max_output_length: int | None,
) -> Emitter:
    if dialect is None:
        dialect = ParadeDBDialect()

    kwargs: dict[str, Any] = {"parameterize": parameterize}
    if max_depth is not None:
        kwargs["max_depth"] = max_depth
    if max_output_length is not None:
        kwargs["max_output_length"] = max_output_length
    return Emitter(dialect, **kwargs)


def build_sql(
    query: SearchQuery,
    *,
    dialect: Dialect | None = None,
    max_depth: int | None = None,
    max_output_length: int | None = None,
) -> str:
    """Build the query's SQL with literals written inline.

    Args:
        query: The query to build. It is finalized by this call.
        dialect: Dialect to use. Defaults to ParadeDB.
        max_depth: Maximum predicate nesting depth. Defaults to 100.
        max_output_length: Maximum length of each search call. Defaults to 50000.

    Returns:
        The SELECT statement.

    Raises:
        CompileError: If any relation fails validation or emission.
    """
    emitter = _make_emitter(dialect, False, max_depth, max_output_length)
    return query.render(emitter)


def build_sql_parameterized(
    query: SearchQuery,
    *,
    dialect: Dialect | None = None,
    max_depth: int | None = None,
    max_output_length: int | None = None,
) -> Result:
    """Build the query's SQL with literals bound as parameters.

    Args:
        query: The query to build. It is finalized by this call.
        dialect: Dialect to use. Defaults to ParadeDB.
        max_depth: Maximum predicate nesting depth. Defaults to 100.
        max_output_length: Maximum length of each search call. Defaults to 50000.

    Returns:
        Result with SQL containing $1, $2, ... placeholders and parameter list.

    Raises:
        CompileError: If any relation fails validation or emission.
    """
    emitter = _make_emitter(dialect, True, max_depth, max_output_length)
    sql, parameters = query.build(emitter)
    return Result(sql=sql, parameters=parameters)


def search_expressions(
    query: SearchQuery,
    *,
    dialect: Dialect | None = None,
    parameterize: bool = True,
    max_depth: int | None = None,
    max_output_length: int | None = None,
) -> dict[str, SearchExpression]:
    """Build only the per-alias search calls, for hosts that splice them in.

    Placeholder numbering starts at ``$1`` and runs across all returned
    expressions in the order each alias got its first search predicate.
    """
    emitter = _make_emitter(dialect, parameterize, max_depth, max_output_length)
    return query.search_expressions(emitter)
