"""Shorthand dialect: the compact call notation used in docs and explain output.

``calls_search_idx.search(query => boolean(must => [parse('transcript:walking'),
range(field=>'call_length', range=>'[3,)')]))``
"""

from __future__ import annotations

from collections.abc import Sequence
from io import StringIO

from pyparadeql._encoder import EncodedLiteral, LiteralKind
from pyparadeql._utils import escape_string_literal
from pyparadeql.dialect._base import Dialect, NamedArg, WriteFunc, write_call, write_sequence

# Leaf arguments are written tight, combinator and search arguments spaced.
_LEAF_ARROW = "=>"


def _quote(value: str) -> str:
    return f"'{escape_string_literal(value)}'"


class ShorthandDialect(Dialect):
    """Compact, schema-less notation of the search call tree."""

    # --- Literals ---

    def write_literal(self, w: StringIO, literal: EncodedLiteral) -> None:
        kind = literal.kind
        if kind in (LiteralKind.STRING, LiteralKind.RANGE):
            w.write(_quote(literal.value))
        elif kind is LiteralKind.BOOLEAN:
            w.write("true" if literal.value else "false")
        elif kind is LiteralKind.FLOAT:
            w.write(repr(literal.value))
        elif kind is LiteralKind.INTEGER:
            w.write(str(literal.value))
        else:
            write_sequence(w, "[", "]", [
                lambda item=item: w.write(_quote(item)) for item in literal.value
            ])

    def write_param_placeholder(
        self,
        w: StringIO,
        param_index: int,
        literal: EncodedLiteral,
        argument: str | None = None,
    ) -> None:
        w.write(f"${param_index}")

    def write_field_name(self, w: StringIO, name: str) -> None:
        w.write(_quote(name))

    # --- Leaf predicates ---

    def _write_leaf(self, w: StringIO, name: str, field_name: str, args: Sequence[NamedArg]) -> None:
        write_call(
            w,
            name,
            [("field", lambda: self.write_field_name(w, field_name)), *args],
            arrow=_LEAF_ARROW,
        )

    def write_parse(self, w: StringIO, write_query: WriteFunc) -> None:
        write_call(w, "parse", [], positional=write_query)

    def write_term(
        self, w: StringIO, field_name: str, write_value: WriteFunc
    ) -> None:
        self._write_leaf(w, "term", field_name, [("value", write_value)])

    def write_fuzzy_term(
        self,
        w: StringIO,
        field_name: str,
        write_value: WriteFunc,
        options: Sequence[NamedArg],
    ) -> None:
        self._write_leaf(w, "fuzzy_term", field_name, [("value", write_value), *options])

    def write_phrase(
        self,
        w: StringIO,
        field_name: str,
        write_phrases: WriteFunc,
        write_slop: WriteFunc | None,
    ) -> None:
        args: list[NamedArg] = [("phrases", write_phrases)]
        if write_slop is not None:
            args.append(("slop", write_slop))
        self._write_leaf(w, "phrase", field_name, args)

    def write_range(
        self, w: StringIO, field_name: str, write_range: WriteFunc
    ) -> None:
        self._write_leaf(w, "range", field_name, [("range", write_range)])

    def write_exists(self, w: StringIO, field_name: str) -> None:
        self._write_leaf(w, "exists", field_name, [])

    # --- Combinators ---

    def write_boolean(
        self, w: StringIO, kind: str, write_children: Sequence[WriteFunc]
    ) -> None:
        write_call(w, "boolean", [
            (kind, lambda: write_sequence(w, "[", "]", write_children)),
        ])

    def write_boost(
        self, w: StringIO, write_factor: WriteFunc, write_query: WriteFunc
    ) -> None:
        write_call(w, "boost", [("factor", write_factor), ("query", write_query)])

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
        return option
