"""
Tests for naming strategies and in-value templating.
"""

import pytest

from seedsync.core.naming import NAMING_STRATEGIES, as_is, snake_case
from seedsync.core.template import render_meta


class TestNamingStrategies:
    """Test suite for naming strategies."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("TableA", "table_a"),
            ("tableARef", "table_a_ref"),
            ("fooBar", "foo_bar"),
            ("HTTPServer", "http_server"),
            ("already_snake", "already_snake"),
            ("table_d_ref_id1", "table_d_ref_id1"),
            ("kebab-case name", "kebab_case_name"),
        ],
    )
    def test_snake_case(self, name, expected):
        assert snake_case(name) == expected

    def test_as_is(self):
        assert as_is("TableA") == "TableA"

    def test_registry(self):
        assert NAMING_STRATEGIES["AsIs"] is as_is
        assert NAMING_STRATEGIES["SnakeCase"] is snake_case


class TestRenderMeta:
    """Test suite for {name} references inside values."""

    def test_renders_known_names(self):
        assert render_meta("{table}-1", {"table": "table_a"}) == "table_a-1"
        assert render_meta("{ tableName }/x", {"tableName": "t"}) == "t/x"

    def test_unknown_names_render_empty(self):
        assert render_meta("a{missing}b", {}) == "ab"

    def test_plain_strings_untouched(self):
        context = {"table": "t"}
        assert render_meta("no references here", context) == "no references here"
