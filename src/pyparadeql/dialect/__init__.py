"""Dialect system for search call generation."""

from pyparadeql.dialect._base import Dialect, DialectName
from pyparadeql.dialect.paradedb import ParadeDBDialect
from pyparadeql.dialect.shorthand import ShorthandDialect

__all__ = [
    "Dialect",
    "DialectName",
    "ParadeDBDialect",
    "ShorthandDialect",
    "get_dialect",
]

_REGISTRY: dict[str, type[Dialect]] = {
    DialectName.PARADEDB: ParadeDBDialect,
    DialectName.SHORTHAND: ShorthandDialect,
}


def get_dialect(name: str) -> Dialect:
    """Get a dialect instance by name.

    Args:
        name: Dialect name (``"paradedb"`` or ``"shorthand"``).

    Returns:
        A Dialect instance.

    Raises:
        ValueError: If the dialect name is unknown.
    """
    cls = _REGISTRY.get(name)
    if cls is None:
        raise ValueError(
            f"unknown dialect: {name!r}. "
            f"Available: {', '.join(sorted(_REGISTRY))}"
        )
    return cls()
