"""Abstract base class for search call dialects."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from io import StringIO

from pyparadeql._encoder import EncodedLiteral

WriteFunc = Callable[[], None]
"""Callback that writes a sub-expression to the shared StringIO buffer."""

NamedArg = tuple[str, WriteFunc]
"""A ``name => value`` argument: the name and the writer for its value."""


class DialectName(enum.StrEnum):
    PARADEDB = "paradedb"
    SHORTHAND = "shorthand"


def write_call(
    w: StringIO,
    name: str,
    args: Sequence[NamedArg],
    arrow: str = " => ",
    positional: WriteFunc | None = None,
) -> None:
    """Write ``name(positional, a => x, b => y)``."""
    w.write(f"{name}(")
    first = True
    if positional is not None:
        positional()
        first = False
    for arg_name, write_value in args:
        if not first:
            w.write(", ")
        first = False
        w.write(f"{arg_name}{arrow}")
        write_value()
    w.write(")")


def write_sequence(w: StringIO, open_: str, close: str, writers: Sequence[WriteFunc]) -> None:
    w.write(open_)
    for i, write_item in enumerate(writers):
        if i:
            w.write(", ")
        write_item()
    w.write(close)


class Dialect(ABC):
    """Abstract base class defining the search call dialect interface.

    All syntax-specific code lives behind this interface. Methods receive a
    StringIO writer and callback functions for sub-expressions.
    """

    # --- Literals ---

    @abstractmethod
    def write_literal(self, w: StringIO, literal: EncodedLiteral) -> None: ...

    @abstractmethod
    def write_param_placeholder(
        self,
        w: StringIO,
        param_index: int,
        literal: EncodedLiteral,
        argument: str | None = None,
    ) -> None:
        """Write placeholder ``param_index`` for ``literal``.

        ``argument`` names the call argument the value is bound to, when the
        target function declares a fixed type for it.
        """

    @abstractmethod
    def write_field_name(self, w: StringIO, name: str) -> None: ...

    # --- Leaf predicates ---

    @abstractmethod
    def write_parse(self, w: StringIO, write_query: WriteFunc) -> None: ...

    @abstractmethod
    def write_term(
        self, w: StringIO, field_name: str, write_value: WriteFunc
    ) -> None: ...

    @abstractmethod
    def write_fuzzy_term(
        self,
        w: StringIO,
        field_name: str,
        write_value: WriteFunc,
        options: Sequence[NamedArg],
    ) -> None: ...

    @abstractmethod
    def write_phrase(
        self,
        w: StringIO,
        field_name: str,
        write_phrases: WriteFunc,
        write_slop: WriteFunc | None,
    ) -> None: ...

    @abstractmethod
    def write_range(
        self, w: StringIO, field_name: str, write_range: WriteFunc
    ) -> None: ...

    @abstractmethod
    def write_exists(self, w: StringIO, field_name: str) -> None: ...

    # --- Combinators ---

    @abstractmethod
    def write_boolean(
        self, w: StringIO, kind: str, write_children: Sequence[WriteFunc]
    ) -> None: ...

    @abstractmethod
    def write_boost(
        self, w: StringIO, write_factor: WriteFunc, write_query: WriteFunc
    ) -> None: ...

    # --- Search call ---

    @abstractmethod
    def write_search_call(
        self,
        w: StringIO,
        index_name: str,
        write_query: WriteFunc,
        options: Sequence[NamedArg],
    ) -> None: ...

    # --- Capabilities ---

    @abstractmethod
    def fuzzy_option_name(self, option: str) -> str: ...
