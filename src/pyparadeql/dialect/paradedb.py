"""ParadeDB dialect: executable ``pg_search`` function-call SQL."""

from __future__ import annotations

from collections.abc import Sequence
from io import StringIO

from pyparadeql._encoder import EncodedLiteral, LiteralKind
from pyparadeql._utils import escape_string_literal
from pyparadeql.dialect._base import Dialect, NamedArg, WriteFunc, write_call, write_sequence

_SCHEMA = "paradedb"

# Option names as spelled by the extension
_FUZZY_OPTIONS: dict[str, str] = {
    "distance": "distance",
    "transpose_cost_one": "transposition_cost_one",
    "prefix": "prefix",
}

# Declared types of the non-polymorphic arguments
_ARGUMENT_TYPES: dict[str, str] = {
    "limit_rows": "integer",
    "offset_rows": "integer",
    "distance": "integer",
    "slop": "integer",
    "factor": "real",
}


def _quote(value: str) -> str:
    return f"'{escape_string_literal(value)}'"


class ParadeDBDialect(Dialect):
    """ParadeDB dialect for search call generation."""

    # --- Literals ---

    def write_literal(self, w: StringIO, literal: EncodedLiteral) -> None:
        kind = literal.kind
        if kind is LiteralKind.STRING:
            w.write(_quote(literal.value))
        elif kind is LiteralKind.BOOLEAN:
            w.write("true" if literal.value else "false")
        elif kind is LiteralKind.FLOAT:
            w.write(repr(literal.value))
        elif kind is LiteralKind.INTEGER:
            w.write(str(literal.value))
        elif kind is LiteralKind.RANGE:
            w.write(f"{_quote(literal.value)}::{literal.sql_type}")
        else:
            write_sequence(w, "ARRAY[", "]::text[]", [
                lambda item=item: w.write(_quote(item)) for item in literal.value
            ])

    def write_param_placeholder(
        self,
        w: StringIO,
        param_index: int,
        literal: EncodedLiteral,
        argument: str | None = None,
    ) -> None:
        # Function lookup does not narrow bigint or double precision; cast to
        # the declared argument type where there is one.
        sql_type = _ARGUMENT_TYPES.get(argument or "", literal.sql_type)
        w.write(f"${param_index}::{sql_type}")

    def write_field_name(self, w: StringIO, name: str) -> None:
        w.write(_quote(name))

    # --- Leaf predicates ---

    def write_parse(self, w: StringIO, write_query: WriteFunc) -> None:
        write_call(w, f"{_SCHEMA}.parse", [], positional=write_query)

    def write_term(
        self, w: StringIO, field_name: str, write_value: WriteFunc
    ) -> None:
        write_call(w, f"{_SCHEMA}.term", [
            ("field", lambda: self.write_field_name(w, field_name)),
            ("value", write_value),
        ])

    def write_fuzzy_term(
        self,
        w: StringIO,
        field_name: str,
        write_value: WriteFunc,
        options: Sequence[NamedArg],
    ) -> None:
        write_call(w, f"{_SCHEMA}.fuzzy_term", [
            ("field", lambda: self.write_field_name(w, field_name)),
            ("value", write_value),
            *options,
        ])

    def write_phrase(
        self,
        w: StringIO,
        field_name: str,
        write_phrases: WriteFunc,
        write_slop: WriteFunc | None,
    ) -> None:
        args: list[NamedArg] = [
            ("field", lambda: self.write_field_name(w, field_name)),
            ("phrases", write_phrases),
        ]
        if write_slop is not None:
            args.append(("slop", write_slop))
        write_call(w, f"{_SCHEMA}.phrase", args)

    def write_range(
        self, w: StringIO, field_name: str, write_range: WriteFunc
    ) -> None:
        write_call(w, f"{_SCHEMA}.range", [
            ("field", lambda: self.write_field_name(w, field_name)),
            ("range", write_range),
        ])

    def write_exists(self, w: StringIO, field_name: str) -> None:
        write_call(w, f"{_SCHEMA}.exists", [
            ("field", lambda: self.write_field_name(w, field_name)),
        ])

    # --- Combinators ---

    def write_boolean(
        self, w: StringIO, kind: str, write_children: Sequence[WriteFunc]
    ) -> None:
        write_call(w, f"{_SCHEMA}.boolean", [
            (kind, lambda: write_sequence(w, "ARRAY[", "]", write_children)),
        ])

    def write_boost(
        self, w: StringIO, write_factor: WriteFunc, write_query: WriteFunc
    ) -> None:
        write_call(w, f"{_SCHEMA}.boost", [
            ("factor", write_factor),
            ("query", write_query),
        ])

    # --- Search call ---

    def write_search_call(
        self,
        w: StringIO,
        index_name: str,
        write_query: WriteFunc,
        options: Sequence[NamedArg],
    ) -> None:
        write_call(w, f"{index_name}.search", [("query", write_query), *options])

    # --- Capabilities ---

    def fuzzy_option_name(self, option: str) -> str:
        return _FUZZY_OPTIONS[option]
