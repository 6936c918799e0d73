"""Value encoding: application literals to engine-safe parameter values."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Any

from pyparadeql._errors import ERR_MSG_UNSUPPORTED_TYPE, UnsupportedTypeError
from pyparadeql._utils import validate_no_null_bytes
from pyparadeql.nodes import RangeSubtype, SearchRange


class LiteralKind(enum.StrEnum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    RANGE = "range"
    TEXT_ARRAY = "text_array"


@dataclass(frozen=True)
class EncodedLiteral:
    """A literal ready to be bound as a query parameter.

    ``value`` is what travels out-of-band to the driver; ``sql_type`` is the
    PostgreSQL type the placeholder is read as.
    """

    kind: LiteralKind
    value: Any
    sql_type: str


def encode(value: Any) -> EncodedLiteral:
    """Encode a scalar, range or list of strings.

    Raises:
        UnsupportedTypeError: If the value has no encoding.
    """
    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return EncodedLiteral(LiteralKind.BOOLEAN, value, "boolean")
    if isinstance(value, str):
        validate_no_null_bytes(value)
        return EncodedLiteral(LiteralKind.STRING, value, "text")
    if isinstance(value, int):
        return EncodedLiteral(LiteralKind.INTEGER, value, "bigint")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise UnsupportedTypeError(
                ERR_MSG_UNSUPPORTED_TYPE,
                f"non-finite float {value!r} cannot be encoded",
            )
        return EncodedLiteral(LiteralKind.FLOAT, value, "double precision")
    if isinstance(value, SearchRange):
        return EncodedLiteral(LiteralKind.RANGE, value.to_literal(), str(value.subtype))
    if isinstance(value, (list, tuple)):
        items = list(value)
        for item in items:
            if not isinstance(item, str):
                raise UnsupportedTypeError(
                    ERR_MSG_UNSUPPORTED_TYPE,
                    f"list elements must be strings, got {type(item).__name__}",
                )
            validate_no_null_bytes(item)
        return EncodedLiteral(LiteralKind.TEXT_ARRAY, items, "text[]")
    raise UnsupportedTypeError(
        ERR_MSG_UNSUPPORTED_TYPE,
        f"no encoding for values of type {type(value).__name__}",
    )


def decode(literal: EncodedLiteral) -> Any:
    """Restore the application value an :class:`EncodedLiteral` was made from."""
    if literal.kind is LiteralKind.RANGE:
        return SearchRange.parse(literal.value, RangeSubtype(literal.sql_type))
    if literal.kind is LiteralKind.TEXT_ARRAY:
        return list(literal.value)
    return literal.value
