"""Search schema types: indexed fields, search indexes and the registry."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from pyparadeql._constants import DEFAULT_INDEX_SUFFIX
from pyparadeql._errors import ERR_MSG_INVALID_SCHEMA, InvalidSchemaError
from pyparadeql._utils import validate_field_name, validate_relation_name


def default_index_name(relation: str) -> str:
    """Return the conventional search index name for a relation."""
    return f"{relation.rsplit('.', 1)[-1]}{DEFAULT_INDEX_SUFFIX}"


@dataclass(frozen=True)
class SearchField:
    """A searchable field and the index it belongs to."""

    name: str
    index_name: str


class SearchIndex:
    """Search index over a relation with O(1) field lookup."""

    def __init__(
        self,
        relation: str,
        fields: Iterable[str | SearchField],
        name: str | None = None,
        key_field: str | None = None,
    ) -> None:
        validate_relation_name(relation)
        self._relation = relation
        self._name = name or default_index_name(relation)
        validate_relation_name(self._name)

        self._index: dict[str, SearchField] = {}
        for f in fields:
            field_name = f.name if isinstance(f, SearchField) else f
            validate_field_name(field_name)
            if field_name in self._index:
                raise InvalidSchemaError(
                    ERR_MSG_INVALID_SCHEMA,
                    f"duplicate field '{field_name}' in index '{self._name}'",
                )
            self._index[field_name] = SearchField(name=field_name, index_name=self._name)
        if not self._index:
            raise InvalidSchemaError(
                ERR_MSG_INVALID_SCHEMA,
                f"index '{self._name}' declares no fields",
            )

        if key_field is not None and key_field not in self._index:
            raise InvalidSchemaError(
                ERR_MSG_INVALID_SCHEMA,
                f"key field '{key_field}' is not a field of index '{self._name}'",
            )
        self._key_field = key_field

    @property
    def name(self) -> str:
        return self._name

    @property
    def relation(self) -> str:
        return self._relation

    @property
    def key_field(self) -> str | None:
        return self._key_field

    @property
    def fields(self) -> list[SearchField]:
        return list(self._index.values())

    @property
    def field_names(self) -> list[str]:
        return list(self._index)

    def find_field(self, name: str) -> SearchField | None:
        return self._index.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"SearchIndex({self._relation!r}, {self.field_names!r}, name={self._name!r})"


class SchemaRegistry:
    """Relation name to search index mapping, filled once at startup.

    Entries are immutable: a relation can be registered only once.
    """

    def __init__(self, indexes: Iterable[SearchIndex] = ()) -> None:
        self._indexes: dict[str, SearchIndex] = {}
        for index in indexes:
            self._add(index)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> SchemaRegistry:
        """Build a registry from plain data.

        Each value is either a list of field names or a mapping with a
        ``fields`` list and optional ``index_name`` and ``key_field``::

            SchemaRegistry.from_mapping({
                "calls": ["transcript", "call_length"],
                "notes": {"fields": ["body"], "index_name": "notes_idx"},
            })
        """
        registry = cls()
        for relation, entry in mapping.items():
            if isinstance(entry, Mapping):
                if "fields" not in entry:
                    raise InvalidSchemaError(
                        ERR_MSG_INVALID_SCHEMA,
                        f"schema entry for '{relation}' has no 'fields' key",
                    )
                registry.register(
                    relation,
                    entry["fields"],
                    index_name=entry.get("index_name"),
                    key_field=entry.get("key_field"),
                )
            else:
                registry.register(relation, entry)
        return registry

    def register(
        self,
        relation: str,
        fields: Iterable[str | SearchField],
        *,
        index_name: str | None = None,
        key_field: str | None = None,
    ) -> SearchIndex:
        index = SearchIndex(relation, fields, name=index_name, key_field=key_field)
        self._add(index)
        return index

    def _add(self, index: SearchIndex) -> None:
        if index.relation in self._indexes:
            raise InvalidSchemaError(
                ERR_MSG_INVALID_SCHEMA,
                f"relation '{index.relation}' is already registered",
            )
        self._indexes[index.relation] = index

    def get(self, relation: str) -> SearchIndex | None:
        return self._indexes.get(relation)

    def __contains__(self, relation: object) -> bool:
        return relation in self._indexes

    def __iter__(self) -> Iterator[SearchIndex]:
        return iter(self._indexes.values())

    def __len__(self) -> int:
        return len(self._indexes)
