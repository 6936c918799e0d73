"""Resource limits and defaults for search query compilation."""

DEFAULT_MAX_RECURSION_DEPTH = 100
"""Maximum predicate tree nesting depth during emission (CWE-674 prevention)."""

DEFAULT_MAX_SQL_OUTPUT_LENGTH = 50000
"""Maximum generated SQL string length."""

DEFAULT_INDEX_SUFFIX = "_search_idx"
"""Suffix appended to a relation name to form its default search index name."""

MAX_FUZZY_DISTANCE = 2
"""Largest Levenshtein distance the search engine accepts for fuzzy terms."""

SEARCH_OPTIONS = ("limit_rows", "offset_rows", "stable_sort")
"""Top-level options accepted by the search table function, in emission order."""
