"""Per-relation buffer of search predicates built up across calls."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from pyparadeql._constants import SEARCH_OPTIONS
from pyparadeql._errors import (
    ERR_MSG_INVALID_ARGUMENTS,
    ERR_MSG_INVALID_OPTION,
    ERR_MSG_REOPENED,
    InvalidArgumentsError,
    InvalidOptionError,
    ReopenedAccumulatorError,
)
from pyparadeql._normalizer import Entry, FoldStrategy, JoinOp, normalize
from pyparadeql._resolver import BindingResolver, RelationBinding
from pyparadeql.nodes import PredicateNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedTree:
    """The single predicate root for one relation, plus its search options."""

    binding: RelationBinding
    root: PredicateNode
    options: Mapping[str, Any] = field(default_factory=dict)


def validate_option(name: str, value: Any) -> None:
    """Check a top-level search option.

    Raises:
        InvalidOptionError: If the name is unknown or the value out of range.
    """
    if name not in SEARCH_OPTIONS:
        raise InvalidOptionError(
            ERR_MSG_INVALID_OPTION,
            f"unknown search option {name!r}; expected one of {', '.join(SEARCH_OPTIONS)}",
        )
    if name == "stable_sort":
        if not isinstance(value, bool):
            raise InvalidOptionError(
                ERR_MSG_INVALID_OPTION,
                f"stable_sort must be a boolean, got {value!r}",
            )
        return
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidOptionError(
            ERR_MSG_INVALID_OPTION,
            f"{name} must be a non-negative integer, got {value!r}",
        )


class Accumulator:
    """Append-only sequence of ``(node, op)`` entries for one relation binding.

    Once :meth:`finalize` has run, any further mutation raises
    :class:`ReopenedAccumulatorError`.
    """

    def __init__(self, binding: RelationBinding) -> None:
        self._binding = binding
        self._entries: list[Entry] = []
        self._options: dict[str, Any] = {}
        self._finalized = False
        self._tree: NormalizedTree | None = None

    @property
    def binding(self) -> RelationBinding:
        return self._binding

    @property
    def entries(self) -> tuple[Entry, ...]:
        return tuple(self._entries)

    @property
    def options(self) -> Mapping[str, Any]:
        return MappingProxyType(self._options)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def __len__(self) -> int:
        return len(self._entries)

    def _check_open(self) -> None:
        if self._finalized:
            raise ReopenedAccumulatorError(
                ERR_MSG_REOPENED,
                f"relation alias '{self._binding.alias}' was already finalized",
            )

    def add(self, node: PredicateNode, op: JoinOp = JoinOp.AND) -> None:
        self._check_open()
        if not isinstance(node, PredicateNode):
            raise InvalidArgumentsError(
                ERR_MSG_INVALID_ARGUMENTS,
                f"expected a predicate node, got {type(node).__name__}",
            )
        try:
            op = JoinOp(op)
        except ValueError as e:
            raise InvalidArgumentsError(
                ERR_MSG_INVALID_ARGUMENTS,
                f"unknown join operator {op!r}",
                wrapped=e,
            ) from e
        self._entries.append(Entry(node, op))

    def or_add(self, node: PredicateNode) -> None:
        self.add(node, JoinOp.OR)

    def or_all_prior(self, node: PredicateNode) -> None:
        self.add(node, JoinOp.OR_ALL_PRIOR)

    def set_option(self, name: str, value: Any) -> None:
        self._check_open()
        validate_option(name, value)
        self._options[name] = value

    def validate(self, resolver: BindingResolver) -> None:
        """Check every entry and option without closing the accumulator."""
        for entry in self._entries:
            resolver.validate(self._binding, entry.node)
        if self._options and not self._entries:
            raise InvalidOptionError(
                "search options set on a relation with no search predicates",
                f"alias '{self._binding.alias}' has options {sorted(self._options)} "
                "but no predicates",
            )

    def finalize(
        self,
        resolver: BindingResolver,
        strategy: FoldStrategy = FoldStrategy.LEFT_TO_RIGHT,
    ) -> NormalizedTree | None:
        """Validate and fold the entries; closes the accumulator.

        Returns ``None`` when nothing was added. Calling it again returns the
        tree built the first time.

        Raises:
            UnknownFieldError: If any entry references an undeclared field.
            UnsupportedTypeError: If any entry carries an unencodable literal.
            InvalidOptionError: If options were set but nothing was added.
        """
        if self._finalized:
            return self._tree
        self.validate(resolver)
        root = normalize(self._entries, strategy)
        self._finalized = True
        if root is not None:
            self._tree = NormalizedTree(
                binding=self._binding,
                root=root,
                options=MappingProxyType(dict(self._options)),
            )
        logger.debug(
            "finalized alias %r with %d entries", self._binding.alias, len(self._entries)
        )
        return self._tree
