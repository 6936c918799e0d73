"""Target binding: query aliases to search indexes, and field validation."""

from __future__ import annotations

from dataclasses import dataclass

from pyparadeql._encoder import encode
from pyparadeql._errors import (
    ERR_MSG_UNKNOWN_FIELD,
    ERR_MSG_UNKNOWN_RELATION,
    InvalidBindingError,
    UnknownFieldError,
    UnknownRelationError,
)
from pyparadeql.nodes import (
    FuzzyTerm,
    Parse,
    Phrase,
    PredicateNode,
    Range,
    Term,
    iter_nodes,
    node_fields,
)
from pyparadeql.schema import SchemaRegistry, SearchIndex


@dataclass(frozen=True)
class RelationBinding:
    """A query alias paired with the search index of its relation."""

    alias: str
    relation: str
    index: SearchIndex


class BindingResolver:
    """Static lookup of aliases and fields against a :class:`SchemaRegistry`."""

    def __init__(self, registry: SchemaRegistry) -> None:
        self._registry = registry
        self._bindings: dict[str, RelationBinding] = {}

    def bind(self, alias: str, relation: str) -> RelationBinding:
        """Bind an alias to a relation's search index.

        Binding the same alias to the same relation again returns the
        existing binding.

        Raises:
            UnknownRelationError: If the relation has no registered index.
            InvalidBindingError: If the alias is already bound elsewhere.
        """
        existing = self._bindings.get(alias)
        if existing is not None:
            if existing.relation != relation:
                raise InvalidBindingError(
                    "alias is already bound to another relation",
                    f"alias '{alias}' is bound to '{existing.relation}', not '{relation}'",
                )
            return existing
        index = self._registry.get(relation)
        if index is None:
            raise UnknownRelationError(
                ERR_MSG_UNKNOWN_RELATION,
                f"relation '{relation}' has no registered search index",
            )
        binding = RelationBinding(alias=alias, relation=relation, index=index)
        self._bindings[alias] = binding
        return binding

    def binding(self, alias: str) -> RelationBinding:
        binding = self._bindings.get(alias)
        if binding is None:
            raise UnknownRelationError(
                ERR_MSG_UNKNOWN_RELATION,
                f"alias '{alias}' is not bound to a search index",
            )
        return binding

    def resolve(self, target: RelationBinding | str, field: str) -> SearchIndex:
        """Return the index a field reference targets.

        Raises:
            UnknownRelationError: If the alias is not bound.
            UnknownFieldError: If the field is not declared on the index.
        """
        binding = target if isinstance(target, RelationBinding) else self.binding(target)
        index = binding.index
        if index.find_field(field) is None:
            raise UnknownFieldError(
                ERR_MSG_UNKNOWN_FIELD,
                f"field '{field}' not found in index '{index.name}' "
                f"for relation '{binding.relation}' (alias '{binding.alias}')",
            )
        return index

    def validate(self, target: RelationBinding | str, node: PredicateNode) -> None:
        """Check every field and literal of a predicate tree.

        Raises:
            UnknownFieldError: On the first undeclared field.
            UnsupportedTypeError: On the first literal with no encoding.
        """
        for field in node_fields(node):
            self.resolve(target, field)
        _check_literals(node)


def _check_literals(node: PredicateNode) -> None:
    for current in iter_nodes(node):
        if isinstance(current, Parse):
            encode(current.query)
        elif isinstance(current, (Term, FuzzyTerm)):
            encode(current.value)
        elif isinstance(current, Phrase):
            encode(current.phrases)
        elif isinstance(current, Range):
            encode(current.range)
