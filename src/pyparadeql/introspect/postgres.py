"""PostgreSQL search index introspection."""

from __future__ import annotations

import logging
import re
from typing import Any, Protocol, runtime_checkable

from pyparadeql._errors import IntrospectionError
from pyparadeql.schema import SchemaRegistry, SearchIndex

logger = logging.getLogger(__name__)

_BM25_RE = re.compile(
    r"USING\s+bm25\s*\((?P<columns>.*?)\)(?:\s+WITH\s*\((?P<options>.*)\))?\s*$",
    re.IGNORECASE | re.DOTALL,
)
_LEADING_IDENT_RE = re.compile(r'^\(*\s*"?([A-Za-z_][A-Za-z0-9_]*)"?')
_KEY_FIELD_RE = re.compile(r"key_field\s*=\s*'?\"?([A-Za-z_][A-Za-z0-9_]*)", re.IGNORECASE)


@runtime_checkable
class PgCursor(Protocol):
    """Minimal cursor protocol for PostgreSQL drivers."""

    def execute(self, query: str, params: Any = ..., /) -> Any: ...
    def fetchall(self) -> list[tuple[Any, ...]]: ...
    def close(self) -> None: ...


@runtime_checkable
class PgConnection(Protocol):
    """Minimal connection protocol for PostgreSQL drivers."""

    def cursor(self) -> PgCursor: ...


def introspect_postgres(
    conn: PgConnection,
    *,
    table_names: list[str],
    schema_name: str = "public",
) -> SchemaRegistry:
    """Discover BM25 search indexes for the given tables.

    Args:
        conn: A PostgreSQL connection (e.g. ``psycopg.Connection``).
        table_names: Tables whose search index to load.
        schema_name: Schema name (default ``"public"``).

    Returns:
        A :class:`~pyparadeql.schema.SchemaRegistry` keyed by table name.

    Raises:
        IntrospectionError: If a table has no BM25 index, or more than one,
            or an index definition cannot be read.
    """
    if not table_names:
        return SchemaRegistry()

    cur = conn.cursor()
    try:
        return _introspect(cur, table_names, schema_name)
    finally:
        cur.close()


def _introspect(
    cur: PgCursor,
    table_names: list[str],
    schema_name: str,
) -> SchemaRegistry:
    placeholders = ", ".join(["%s"] * len(table_names))
    query = f"""
        SELECT tablename, indexname, indexdef
        FROM pg_indexes
        WHERE schemaname = %s
          AND tablename IN ({placeholders})
          AND indexdef ILIKE '%%USING bm25%%'
        ORDER BY tablename, indexname
    """
    cur.execute(query, [schema_name, *table_names])
    rows = cur.fetchall()

    indexes: dict[str, SearchIndex] = {}
    for table_name, index_name, index_def in rows:
        table = str(table_name)
        if table in indexes:
            raise IntrospectionError(
                f"multiple search indexes on table: {table!r}",
                internal_details=(
                    f"table {table!r} has indexes {indexes[table].name!r} and {index_name!r}"
                ),
            )
        indexes[table] = _parse_index_def(table, str(index_name), str(index_def))

    registry = SchemaRegistry()
    for name in table_names:
        index = indexes.get(name)
        if index is None:
            raise IntrospectionError(
                f"search index not found: {name!r}",
                internal_details=f"no bm25 index on {schema_name!r}.{name!r}",
            )
        registry.register(
            name,
            index.field_names,
            index_name=index.name,
            key_field=index.key_field,
        )
    logger.debug("introspected %d search indexes in schema %r", len(registry), schema_name)
    return registry


def _split_top_level(text: str) -> list[str]:
    """Split on commas that are not inside parentheses or quotes."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    for ch in text:
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    if current:
        parts.append("".join(current).strip())
    return [p for p in parts if p]


def _parse_index_def(table: str, index_name: str, index_def: str) -> SearchIndex:
    match = _BM25_RE.search(index_def)
    if match is None:
        raise IntrospectionError(
            f"unreadable search index definition: {index_name!r}",
            internal_details=f"cannot parse indexdef for {index_name!r}: {index_def!r}",
        )

    fields: list[str] = []
    for column in _split_top_level(match.group("columns")):
        ident = _LEADING_IDENT_RE.match(column)
        if ident is None:
            raise IntrospectionError(
                f"unreadable search index column: {index_name!r}",
                internal_details=f"cannot read column {column!r} of {index_name!r}",
            )
        if ident.group(1) not in fields:
            fields.append(ident.group(1))

    key_field = fields[0] if fields else None
    options = match.group("options")
    if options:
        key_match = _KEY_FIELD_RE.search(options)
        if key_match is not None:
            key_field = key_match.group(1)
            if key_field not in fields:
                fields.insert(0, key_field)

    return SearchIndex(table, fields, name=index_name, key_field=key_field)
