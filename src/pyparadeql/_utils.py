"""Validation helpers and escaping utilities."""

from __future__ import annotations

import re

from pyparadeql._errors import InvalidFieldNameError, UnsupportedTypeError

MAX_POSTGRESQL_IDENTIFIER_LENGTH = 63

FIELD_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

RESERVED_SQL_KEYWORDS: set[str] = {
    "all", "alter", "and", "any", "array", "as", "asc", "between",
    "by", "case", "cast", "check", "column", "constraint", "create",
    "cross", "current", "current_date", "current_time", "current_timestamp",
    "current_user", "default", "delete", "desc", "distinct", "drop",
    "else", "end", "except", "exists", "false", "for", "foreign",
    "from", "full", "grant", "group", "having", "in", "index", "inner",
    "insert", "intersect", "into", "is", "join", "left", "like", "limit",
    "not", "null", "offset", "on", "or", "order", "outer", "primary",
    "references", "right", "select", "session_user", "set", "some",
    "table", "then", "to", "true", "union", "unique", "update", "user",
    "using", "values", "when", "where", "with",
}


def validate_field_name(name: str) -> None:
    """Validate a SQL field/identifier name."""
    if not name:
        raise InvalidFieldNameError(
            "field name cannot be empty",
            "empty field name provided",
        )
    if len(name) > MAX_POSTGRESQL_IDENTIFIER_LENGTH:
        raise InvalidFieldNameError(
            "field name too long",
            f"field name '{name}' exceeds {MAX_POSTGRESQL_IDENTIFIER_LENGTH} characters",
        )
    if not FIELD_NAME_RE.match(name):
        raise InvalidFieldNameError(
            "invalid field name format",
            f"field name '{name}' contains invalid characters",
        )
    if name.lower() in RESERVED_SQL_KEYWORDS:
        raise InvalidFieldNameError(
            "field name is a reserved SQL keyword",
            f"field name '{name}' is a reserved SQL keyword",
        )


def validate_relation_name(name: str) -> None:
    """Validate a relation or index name, optionally schema-qualified."""
    parts = name.split(".") if name else [""]
    if len(parts) > 2:
        raise InvalidFieldNameError(
            "invalid relation name format",
            f"relation name '{name}' has more than one schema qualifier",
        )
    for part in parts:
        validate_field_name(part)


def escape_string_literal(value: str) -> str:
    """Escape a string for use as a SQL string literal."""
    return value.replace("'", "''")


def validate_no_null_bytes(value: str, context: str = "string literals") -> None:
    """Reject strings containing null bytes."""
    if "\x00" in value:
        raise UnsupportedTypeError(
            f"{context} cannot contain null bytes",
            f"null byte found in {context}: {value!r}",
        )
