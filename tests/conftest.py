"""Shared test fixtures."""

import pytest

from pyparadeql.dialect.paradedb import ParadeDBDialect
from pyparadeql.dialect.shorthand import ShorthandDialect
from pyparadeql.schema import SchemaRegistry


@pytest.fixture
def paradedb_dialect():
    return ParadeDBDialect()


@pytest.fixture
def shorthand_dialect():
    return ShorthandDialect()


@pytest.fixture
def registry():
    return SchemaRegistry.from_mapping({
        "calls": ["transcript", "call_length"],
        "notes": {"fields": ["id", "body", "rating"], "key_field": "id"},
    })

