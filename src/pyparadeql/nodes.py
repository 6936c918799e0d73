"""Search predicate tree: leaf predicates, boolean combinators and range values.

Every node is a frozen dataclass deriving from :class:`PredicateNode`. The set
of node types is closed; the emitter matches on each of them explicitly.
"""

from __future__ import annotations

import enum
import math
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Union

from pyparadeql._constants import MAX_FUZZY_DISTANCE
from pyparadeql._errors import (
    ERR_MSG_INVALID_ARGUMENTS,
    ERR_MSG_INVALID_RANGE,
    ERR_MSG_UNSUPPORTED_TYPE,
    InvalidArgumentsError,
    InvalidRangeLiteralError,
    UnsupportedTypeError,
)
from pyparadeql._ranges import parse_range_text

RangeBound = Union[int, float, date, datetime, None]
Scalar = Union[str, int, float, bool]


class RangeSubtype(enum.StrEnum):
    """PostgreSQL range types a search range can be cast to."""

    INT8 = "int8range"
    NUMERIC = "numrange"
    DATE = "daterange"
    TIMESTAMPTZ = "tstzrange"


def _bound_subtype(value: RangeBound) -> RangeSubtype | None:
    if value is None:
        return None
    # bool is an int subclass and datetime a date subclass; order matters.
    if isinstance(value, bool):
        raise UnsupportedTypeError(
            ERR_MSG_UNSUPPORTED_TYPE,
            f"boolean range bound {value!r} is not supported",
        )
    if isinstance(value, datetime):
        return RangeSubtype.TIMESTAMPTZ
    if isinstance(value, date):
        return RangeSubtype.DATE
    if isinstance(value, int):
        return RangeSubtype.INT8
    if isinstance(value, float):
        return RangeSubtype.NUMERIC
    raise UnsupportedTypeError(
        ERR_MSG_UNSUPPORTED_TYPE,
        f"range bound of type {type(value).__name__} is not supported",
    )


def _unify_subtypes(lower: RangeSubtype | None, upper: RangeSubtype | None) -> RangeSubtype:
    if lower is None and upper is None:
        return RangeSubtype.INT8
    if lower is None or upper is None or lower == upper:
        return lower or upper  # type: ignore[return-value]
    if {lower, upper} == {RangeSubtype.INT8, RangeSubtype.NUMERIC}:
        return RangeSubtype.NUMERIC
    raise UnsupportedTypeError(
        ERR_MSG_UNSUPPORTED_TYPE,
        f"range bounds mix {lower} and {upper}",
    )


def _format_bound(value: RangeBound) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float):
        return repr(value)
    return str(value)


def _exceeds(lower: RangeBound, upper: RangeBound) -> bool:
    try:
        return lower > upper  # type: ignore[operator]
    except TypeError:
        # Naive and aware datetimes do not compare; the engine decides.
        return False


def _decode_bound(text: str | None, subtype: RangeSubtype) -> RangeBound:
    if text is None:
        return None
    try:
        if subtype is RangeSubtype.INT8:
            return int(text)
        if subtype is RangeSubtype.NUMERIC:
            return int(text) if text.lstrip("+-").isdigit() else float(text)
        if subtype is RangeSubtype.DATE:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise InvalidRangeLiteralError(
            ERR_MSG_INVALID_RANGE,
            f"bound {text!r} is not a valid {subtype} value",
            wrapped=e,
        ) from e


def _infer_text_subtype(*bounds: str | None) -> RangeSubtype:
    present = [b for b in bounds if b is not None]
    if not present:
        return RangeSubtype.INT8
    if all(b.lstrip("+-").isdigit() for b in present):
        return RangeSubtype.INT8
    try:
        for b in present:
            float(b)
        return RangeSubtype.NUMERIC
    except ValueError:
        pass
    if all(len(b) == 10 for b in present):
        return RangeSubtype.DATE
    return RangeSubtype.TIMESTAMPTZ


@dataclass(frozen=True)
class SearchRange:
    """A bounded or unbounded range of numbers, dates or timestamps.

    ``None`` (or an infinite float) on either side means unbounded. Unbounded
    sides are always exclusive, matching PostgreSQL's canonical form, so
    ``SearchRange(3)`` renders as ``[3,)``.
    """

    lower: RangeBound = None
    upper: RangeBound = None
    lower_inclusive: bool = True
    upper_inclusive: bool = False
    subtype: RangeSubtype | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        for side in ("lower", "upper"):
            value = getattr(self, side)
            if isinstance(value, float):
                if math.isnan(value):
                    raise UnsupportedTypeError(
                        ERR_MSG_UNSUPPORTED_TYPE,
                        f"NaN {side} range bound",
                    )
                if math.isinf(value):
                    object.__setattr__(self, side, None)
        if self.lower is None:
            object.__setattr__(self, "lower_inclusive", False)
        if self.upper is None:
            object.__setattr__(self, "upper_inclusive", False)

        inferred = _unify_subtypes(_bound_subtype(self.lower), _bound_subtype(self.upper))
        if self.subtype is None:
            object.__setattr__(self, "subtype", inferred)
        else:
            try:
                object.__setattr__(self, "subtype", RangeSubtype(self.subtype))
            except ValueError as e:
                raise UnsupportedTypeError(
                    ERR_MSG_UNSUPPORTED_TYPE,
                    f"unknown range subtype {self.subtype!r}",
                    wrapped=e,
                ) from e

        if (
            self.lower is not None
            and self.upper is not None
            and _exceeds(self.lower, self.upper)
        ):
            raise InvalidRangeLiteralError(
                ERR_MSG_INVALID_RANGE,
                f"range lower bound {self.lower!r} exceeds upper bound {self.upper!r}",
            )

    @classmethod
    def parse(cls, text: str, subtype: RangeSubtype | str | None = None) -> SearchRange:
        """Decode range literal text like ``[3,)`` or ``(2024-01-01,2024-02-01]``."""
        lower_inc, lower, upper, upper_inc = parse_range_text(text)
        if subtype is None:
            resolved = _infer_text_subtype(lower, upper)
        else:
            try:
                resolved = RangeSubtype(subtype)
            except ValueError as e:
                raise UnsupportedTypeError(
                    ERR_MSG_UNSUPPORTED_TYPE,
                    f"unknown range subtype {subtype!r}",
                    wrapped=e,
                ) from e
        return cls(
            lower=_decode_bound(lower, resolved),
            upper=_decode_bound(upper, resolved),
            lower_inclusive=lower_inc,
            upper_inclusive=upper_inc,
            subtype=resolved,
        )

    def to_literal(self) -> str:
        left = "[" if self.lower_inclusive else "("
        right = "]" if self.upper_inclusive else ")"
        return f"{left}{_format_bound(self.lower)},{_format_bound(self.upper)}{right}"

    def __str__(self) -> str:
        return self.to_literal()


class PredicateNode:
    """Base class of every search predicate node."""

    __slots__ = ()


def _require_field(field_name: object, node: str) -> None:
    if not isinstance(field_name, str) or not field_name:
        raise InvalidArgumentsError(
            ERR_MSG_INVALID_ARGUMENTS,
            f"{node} requires a non-empty field name, got {field_name!r}",
        )


def _require_optional_bool(value: object, name: str, node: str) -> None:
    if value is not None and not isinstance(value, bool):
        raise InvalidArgumentsError(
            ERR_MSG_INVALID_ARGUMENTS,
            f"{node} {name} must be a boolean, got {value!r}",
        )


@dataclass(frozen=True)
class Parse(PredicateNode):
    """Raw query-language string passed through to the engine untouched."""

    query: str

    def __post_init__(self) -> None:
        if not isinstance(self.query, str):
            raise InvalidArgumentsError(
                ERR_MSG_INVALID_ARGUMENTS,
                f"parse query must be a string, got {type(self.query).__name__}",
            )


@dataclass(frozen=True)
class Term(PredicateNode):
    field: str
    value: Scalar

    def __post_init__(self) -> None:
        _require_field(self.field, "term")


@dataclass(frozen=True)
class FuzzyTerm(PredicateNode):
    field: str
    value: str
    distance: int | None = None
    transpose_cost_one: bool | None = None
    prefix: bool | None = None

    def __post_init__(self) -> None:
        _require_field(self.field, "fuzzy_term")
        if not isinstance(self.value, str):
            raise InvalidArgumentsError(
                ERR_MSG_INVALID_ARGUMENTS,
                f"fuzzy_term value must be a string, got {type(self.value).__name__}",
            )
        if self.distance is not None and (
            isinstance(self.distance, bool)
            or not isinstance(self.distance, int)
            or not 0 <= self.distance <= MAX_FUZZY_DISTANCE
        ):
            raise InvalidArgumentsError(
                ERR_MSG_INVALID_ARGUMENTS,
                f"fuzzy_term distance must be an integer in 0..{MAX_FUZZY_DISTANCE}, "
                f"got {self.distance!r}",
            )
        _require_optional_bool(self.transpose_cost_one, "transpose_cost_one", "fuzzy_term")
        _require_optional_bool(self.prefix, "prefix", "fuzzy_term")


@dataclass(frozen=True)
class Phrase(PredicateNode):
    field: str
    phrases: tuple[str, ...]
    slop: int | None = None

    def __post_init__(self) -> None:
        _require_field(self.field, "phrase")
        if isinstance(self.phrases, str):
            raise InvalidArgumentsError(
                ERR_MSG_INVALID_ARGUMENTS,
                "phrase terms must be a list of strings, not a single string",
            )
        object.__setattr__(self, "phrases", tuple(self.phrases))
        if not self.phrases:
            raise InvalidArgumentsError(
                ERR_MSG_INVALID_ARGUMENTS,
                "phrase requires at least one term",
            )
        if self.slop is not None and (
            isinstance(self.slop, bool) or not isinstance(self.slop, int) or self.slop < 0
        ):
            raise InvalidArgumentsError(
                ERR_MSG_INVALID_ARGUMENTS,
                f"phrase slop must be a non-negative integer, got {self.slop!r}",
            )


@dataclass(frozen=True)
class Range(PredicateNode):
    field: str
    range: SearchRange

    def __post_init__(self) -> None:
        _require_field(self.field, "range")
        if isinstance(self.range, str):
            object.__setattr__(self, "range", SearchRange.parse(self.range))
        elif not isinstance(self.range, SearchRange):
            raise InvalidArgumentsError(
                ERR_MSG_INVALID_ARGUMENTS,
                f"range must be a SearchRange or range literal, got {type(self.range).__name__}",
            )


class BooleanKind(enum.StrEnum):
    MUST = "must"
    SHOULD = "should"
    MUST_NOT = "must_not"


@dataclass(frozen=True)
class Boolean(PredicateNode):
    kind: BooleanKind
    children: tuple[PredicateNode, ...]

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "kind", BooleanKind(self.kind))
        except ValueError as e:
            raise InvalidArgumentsError(
                ERR_MSG_INVALID_ARGUMENTS,
                f"unknown boolean kind {self.kind!r}",
                wrapped=e,
            ) from e
        object.__setattr__(self, "children", tuple(self.children))
        if not self.children:
            raise InvalidArgumentsError(
                ERR_MSG_INVALID_ARGUMENTS,
                f"boolean {self.kind} requires at least one child",
            )
        for child in self.children:
            if not isinstance(child, PredicateNode):
                raise InvalidArgumentsError(
                    ERR_MSG_INVALID_ARGUMENTS,
                    f"boolean child must be a predicate node, got {type(child).__name__}",
                )


@dataclass(frozen=True)
class Boost(PredicateNode):
    """Scales the score of a wrapped predicate."""

    query: PredicateNode
    factor: float

    def __post_init__(self) -> None:
        if not isinstance(self.query, PredicateNode):
            raise InvalidArgumentsError(
                ERR_MSG_INVALID_ARGUMENTS,
                f"boost query must be a predicate node, got {type(self.query).__name__}",
            )
        if (
            isinstance(self.factor, bool)
            or not isinstance(self.factor, (int, float))
            or not math.isfinite(self.factor)
        ):
            raise InvalidArgumentsError(
                ERR_MSG_INVALID_ARGUMENTS,
                f"boost factor must be a finite number, got {self.factor!r}",
            )


@dataclass(frozen=True)
class Exists(PredicateNode):
    """Matches documents with any indexed value for a field."""

    field: str

    def __post_init__(self) -> None:
        _require_field(self.field, "exists")


def must(*nodes: PredicateNode) -> Boolean:
    return Boolean(BooleanKind.MUST, nodes)


def should(*nodes: PredicateNode) -> Boolean:
    return Boolean(BooleanKind.SHOULD, nodes)


def must_not(*nodes: PredicateNode) -> Boolean:
    return Boolean(BooleanKind.MUST_NOT, nodes)


def iter_nodes(node: PredicateNode) -> Iterator[PredicateNode]:
    """Yield every node of a predicate tree in tree order.

    Uses an explicit stack, so arbitrarily deep trees never hit the
    interpreter recursion limit.
    """
    stack: list[PredicateNode] = [node]
    while stack:
        current = stack.pop()
        yield current
        if isinstance(current, Boolean):
            stack.extend(reversed(current.children))
        elif isinstance(current, Boost):
            stack.append(current.query)


def node_fields(node: PredicateNode) -> list[str]:
    """Return every field referenced by a predicate tree, in tree order."""
    return [
        n.field
        for n in iter_nodes(node)
        if isinstance(n, (Term, FuzzyTerm, Phrase, Range, Exists))
    ]
