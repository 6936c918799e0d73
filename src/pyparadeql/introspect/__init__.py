"""Search index introspection.

Discover declared search fields from a live database connection instead of
registering them by hand.
"""

from __future__ import annotations

from pyparadeql.introspect.postgres import introspect_postgres

__all__ = [
    "introspect_postgres",
]
