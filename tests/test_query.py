"""End-to-end query building tests."""

import logging

import pytest

from pyparadeql import (
    Result,
    SearchQuery,
    build_sql,
    build_sql_parameterized,
    search_expressions,
)
from pyparadeql._errors import (
    InvalidArgumentsError,
    InvalidBindingError,
    InvalidFieldNameError,
    InvalidOptionError,
    MaxDepthExceededError,
    ReopenedAccumulatorError,
    UnknownFieldError,
    UnknownRelationError,
)
from pyparadeql.dialect.shorthand import ShorthandDialect
from pyparadeql.nodes import FuzzyTerm, Parse, Range, Term, must

SCENARIO_CALL = (
    "calls_search_idx.search(query => paradedb.boolean(must => ARRAY["
    "paradedb.parse('transcript:walking'), "
    "paradedb.range(field => 'call_length', range => '[3,)'::int8range)]))"
)


def _scenario(registry):
    q = SearchQuery(registry).from_("calls", "c")
    q.add("c", Parse("transcript:walking"))
    q.add("c", Range("call_length", "[3,)"))
    return q


class TestBuildSql:
    def test_scenario(self, registry):
        assert build_sql(_scenario(registry)) == f"SELECT * FROM {SCENARIO_CALL} AS c"

    def test_shorthand(self, registry):
        sql = build_sql(_scenario(registry), dialect=ShorthandDialect())
        assert sql == (
            "SELECT * FROM calls_search_idx.search(query => boolean(must => ["
            "parse('transcript:walking'), range(field=>'call_length', range=>'[3,)')])) AS c"
        )

    def test_or_all_prior(self, registry):
        q = SearchQuery(registry).from_("calls", "c")
        q.add("c", Parse("transcript:walking"))
        q.add("c", FuzzyTerm("transcript", "walk"))
        q.or_all_prior("c", Parse("transcript:running"))
        sql = build_sql(q, dialect=ShorthandDialect())
        assert sql == (
            "SELECT * FROM calls_search_idx.search(query => boolean(should => [boolean(must => "
            "[parse('transcript:walking'), fuzzy_term(field=>'transcript', value=>'walk')]), "
            "parse('transcript:running')])) AS c"
        )

    def test_default_alias(self, registry):
        q = SearchQuery(registry).from_("calls").add("calls", Parse("transcript:walking"))
        assert build_sql(q) == (
            "SELECT * FROM calls_search_idx.search(query => "
            "paradedb.parse('transcript:walking')) AS calls"
        )

    def test_no_predicates_is_plain_table(self, registry):
        q = SearchQuery(registry).from_("calls", "c")
        assert build_sql(q) == "SELECT * FROM calls AS c"

    def test_clauses_pass_through(self, registry):
        q = (
            SearchQuery(registry)
            .from_("calls", "c")
            .select("c.id", "c.call_length")
            .where("c.call_length < 60")
            .order_by("c.id DESC")
            .add("c", Parse("transcript:walking"))
        )
        assert build_sql(q) == (
            "SELECT c.id, c.call_length FROM calls_search_idx.search(query => "
            "paradedb.parse('transcript:walking')) AS c "
            "WHERE c.call_length < 60 ORDER BY c.id DESC"
        )

    def test_multiple_where_fragments(self, registry):
        q = SearchQuery(registry).from_("calls", "c").where("a = 1 OR b = 2").where("c = 3")
        assert build_sql(q).endswith("WHERE (a = 1 OR b = 2) AND (c = 3)")

    def test_options(self, registry):
        q = _scenario(registry).set_option("c", "limit_rows", 10)
        assert build_sql(q).endswith(", limit_rows => 10) AS c")

    def test_strategy(self, registry):
        q = SearchQuery(registry, strategy="and_precedence").from_("calls", "c")
        q.add("c", Term("transcript", "a")).add("c", Term("transcript", "b"))
        q.or_add("c", Term("transcript", "c")).add("c", Term("transcript", "d"))
        sql = build_sql(q, dialect=ShorthandDialect())
        assert "boolean(should => [boolean(must => [" in sql

    def test_repeat_build_is_identical(self, registry):
        q = _scenario(registry)
        assert build_sql(q) == build_sql(q)


class TestJoins:
    def test_unsearched_join_stays_plain(self, registry):
        q = (
            SearchQuery(registry)
            .from_("calls", "c")
            .join("tags", "tg", on="tg.call_id = c.id")
            .add("c", Parse("transcript:walking"))
        )
        assert build_sql(q, dialect=ShorthandDialect()) == (
            "SELECT * FROM calls_search_idx.search(query => parse('transcript:walking')) AS c "
            "INNER JOIN tags AS tg ON tg.call_id = c.id"
        )

    def test_two_searched_relations(self, registry):
        q = (
            SearchQuery(registry)
            .from_("calls", "c")
            .join("notes", "n", on="n.id = c.id", kind="left")
            .add("c", Parse("transcript:walking"))
            .add("n", Term("body", "refund"))
        )
        result = build_sql_parameterized(q)
        assert isinstance(result, Result)
        assert result.sql == (
            "SELECT * FROM calls_search_idx.search(query => paradedb.parse($1::text)) AS c "
            "LEFT JOIN notes_search_idx.search(query => "
            "paradedb.term(field => 'body', value => $2::text)) AS n ON n.id = c.id"
        )
        assert result.parameters == ["transcript:walking", "refund"]

    def test_cross_join(self, registry):
        q = SearchQuery(registry).from_("calls", "c").join("tags", kind="cross")
        assert build_sql(q) == "SELECT * FROM calls AS c CROSS JOIN tags"

    def test_join_requires_on(self, registry):
        q = SearchQuery(registry).from_("calls", "c")
        with pytest.raises(InvalidArgumentsError):
            q.join("tags", "tg")

    def test_join_kind(self, registry):
        q = SearchQuery(registry).from_("calls", "c")
        with pytest.raises(InvalidArgumentsError):
            q.join("tags", "tg", on="true", kind="SIDEWAYS")

    def test_join_before_from(self, registry):
        with pytest.raises(InvalidArgumentsError):
            SearchQuery(registry).join("tags", "tg", on="true")

    def test_second_from(self, registry):
        q = SearchQuery(registry).from_("calls", "c")
        with pytest.raises(InvalidArgumentsError):
            q.from_("notes", "n")

    def test_duplicate_alias(self, registry):
        q = SearchQuery(registry).from_("calls", "c")
        with pytest.raises(InvalidBindingError):
            q.join("notes", "c", on="true")

    def test_invalid_alias(self, registry):
        with pytest.raises(InvalidFieldNameError):
            SearchQuery(registry).from_("calls", "c; DROP TABLE calls")

    def test_aliases(self, registry):
        q = SearchQuery(registry).from_("calls", "c").join("tags", "tg", on="true")
        assert q.aliases == ["c", "tg"]


class TestParameterized:
    def test_scenario(self, registry):
        result = build_sql_parameterized(_scenario(registry))
        assert result.sql == (
            "SELECT * FROM calls_search_idx.search(query => paradedb.boolean(must => ARRAY["
            "paradedb.parse($1::text), "
            "paradedb.range(field => 'call_length', range => $2::int8range)])) AS c"
        )
        assert result.parameters == ["transcript:walking", "[3,)"]

    def test_options(self, registry):
        q = _scenario(registry)
        q.set_option("c", "limit_rows", 10).set_option("c", "stable_sort", True)
        result = build_sql_parameterized(q)
        assert result.sql.endswith("limit_rows => $3::integer, stable_sort => true) AS c")
        assert result.parameters == ["transcript:walking", "[3,)", 10]

    def test_no_predicates(self, registry):
        result = build_sql_parameterized(SearchQuery(registry).from_("calls", "c"))
        assert result == Result(sql="SELECT * FROM calls AS c", parameters=[])


class TestSearchExpressions:
    def test_per_alias(self, registry):
        q = (
            SearchQuery(registry)
            .from_("calls", "c")
            .join("notes", "n", on="n.id = c.id")
            .join("tags", "tg", on="tg.call_id = c.id")
            .add("c", Parse("transcript:walking"))
            .add("n", Term("body", "refund"))
        )
        exprs = search_expressions(q)
        assert list(exprs) == ["c", "n"]
        assert exprs["c"].sql == "calls_search_idx.search(query => paradedb.parse($1::text))"
        assert exprs["c"].parameters == ("transcript:walking",)
        assert exprs["n"].parameters == ("refund",)
        assert "value => $2::text" in exprs["n"].sql

    def test_numbering_follows_first_predicate(self, registry):
        q = (
            SearchQuery(registry)
            .from_("calls", "c")
            .join("notes", "n", on="n.id = c.id")
            .add("n", Term("body", "refund"))
            .add("c", Parse("transcript:walking"))
        )
        exprs = search_expressions(q)
        assert list(exprs) == ["n", "c"]
        assert "value => $1::text" in exprs["n"].sql
        assert exprs["c"].sql == "calls_search_idx.search(query => paradedb.parse($2::text))"

    def test_inline(self, registry):
        exprs = search_expressions(_scenario(registry), parameterize=False)
        assert exprs["c"].sql == SCENARIO_CALL


class TestErrors:
    def test_unknown_alias(self, registry):
        q = SearchQuery(registry).from_("calls", "c")
        with pytest.raises(UnknownRelationError):
            q.add("x", Parse("transcript:walking"))

    def test_unindexed_relation(self, registry):
        q = SearchQuery(registry).from_("calls", "c").join("tags", "tg", on="true")
        with pytest.raises(UnknownRelationError):
            q.add("tg", Parse("name:urgent"))

    @pytest.mark.parametrize("position", [0, 1, 2])
    def test_unknown_field_fails_before_emission(self, registry, position):
        nodes = [Parse("transcript:walking"), Term("transcript", "walk"), Range("call_length", "[3,)")]
        nodes[position] = Term("nonexistent", "x")
        q = SearchQuery(registry).from_("calls", "c")
        for node in nodes:
            q.add("c", node)
        with pytest.raises(UnknownFieldError):
            build_sql(q)
        assert not q.finalized

    def test_failure_in_second_relation_builds_nothing(self, registry):
        q = (
            SearchQuery(registry)
            .from_("calls", "c")
            .join("notes", "n", on="n.id = c.id")
            .add("c", Parse("transcript:walking"))
            .add("n", Term("transcript", "x"))
        )
        with pytest.raises(UnknownFieldError):
            build_sql(q)
        assert not q.finalized

    def test_invalid_option(self, registry):
        q = SearchQuery(registry).from_("calls", "c")
        with pytest.raises(InvalidOptionError):
            q.set_option("c", "limit_rows", -1)

    @pytest.mark.parametrize("mutate", [
        lambda q: q.add("c", Parse("transcript:x")),
        lambda q: q.or_add("c", Parse("transcript:x")),
        lambda q: q.or_all_prior("c", Parse("transcript:x")),
        lambda q: q.set_option("c", "limit_rows", 5),
    ])
    def test_reopen_after_build(self, registry, mutate):
        q = _scenario(registry)
        build_sql(q)
        with pytest.raises(ReopenedAccumulatorError):
            mutate(q)

    def test_render_without_from(self, registry):
        with pytest.raises(InvalidArgumentsError):
            build_sql(SearchQuery(registry))

    def test_options_without_predicates(self, registry):
        q = SearchQuery(registry).from_("calls", "c").set_option("c", "limit_rows", 5)
        with pytest.raises(InvalidOptionError, match="no search predicates"):
            build_sql(q)
        assert not q.finalized

    def test_options_on_unsearched_join(self, registry):
        q = (
            SearchQuery(registry)
            .from_("calls", "c")
            .join("notes", "n", on="n.id = c.id")
            .add("c", Parse("transcript:walking"))
            .set_option("n", "stable_sort", True)
        )
        with pytest.raises(InvalidOptionError):
            build_sql_parameterized(q)
        assert not q.finalized

    def test_very_deep_tree(self, registry):
        node = Term("transcript", "leaf")
        for i in range(1500):
            node = must(Term("transcript", str(i)), node)
        q = SearchQuery(registry).from_("calls", "c").add("c", node)
        with pytest.raises(MaxDepthExceededError):
            build_sql(q)


class TestLogging:
    def test_debug_records(self, registry, caplog):
        with caplog.at_level(logging.DEBUG, logger="pyparadeql"):
            build_sql(_scenario(registry))
        assert "finalized query" in caplog.text
        assert "emitted search call" in caplog.text
