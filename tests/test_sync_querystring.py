"""Tests for sync/querystring.py: query string parsing and rebuilding."""

import pytest

from querystring_sync.sync.querystring import build_query, parse_query, replace_params


class TestParseQuery:
    """Tests for parse_query()."""

    def test_pairs_in_order(self):
        assert parse_query("?b=2&a=1&b=3") == [("b", "2"), ("a", "1"), ("b", "3")]

    def test_blank_values_kept(self):
        assert parse_query("a=&b") == [("a", ""), ("b", "")]

    def test_percent_decoding(self):
        assert parse_query("?state=count:5%26tags@=x") == [("state", "count:5&tags@=x")]

    def test_empty(self):
        assert parse_query("") == []
        assert parse_query("?") == []


class TestBuildQuery:
    """Tests for build_query()."""

    def test_grammar_characters_readable(self):
        assert build_query([("state", "a$b@:1;/,.~")]) == "state=a$b@:1;/,.~"

    @pytest.mark.parametrize(
        "value, encoded",
        [
            ("a&b", "a%26b"),
            ("a+b", "a%2Bb"),
            ("a#b", "a%23b"),
            ("a b", "a%20b"),
            ("é", "%C3%A9"),
        ],
    )
    def test_query_delimiters_encoded(self, value, encoded):
        assert build_query([("k", value)]) == f"k={encoded}"

    def test_equals_encoded_in_keys_only(self):
        assert build_query([("a=b", "c=d")]) == "a%3Db=c=d"

    def test_round_trip(self):
        pairs = [("state", "s=a/&b&x:1"), ("utm", "a b+c"), ("e", "")]
        assert parse_query(build_query(pairs)) == pairs


class TestReplaceParams:
    """Tests for replace_params()."""

    @staticmethod
    def owned(name):
        return name == "state"

    def test_replaced_in_place(self):
        pairs = [("utm", "x"), ("state", "old"), ("z", "2")]
        result = replace_params(pairs, self.owned, [("state", "new")])
        assert result == [("utm", "x"), ("state", "new"), ("z", "2")]

    def test_appended_when_absent(self):
        result = replace_params([("utm", "x")], self.owned, [("state", "new")])
        assert result == [("utm", "x"), ("state", "new")]

    def test_duplicates_collapsed(self):
        pairs = [("state", "1"), ("a", "x"), ("state", "2")]
        result = replace_params(pairs, self.owned, [("state", "3")])
        assert result == [("state", "3"), ("a", "x")]

    def test_removal(self):
        pairs = [("a", "x"), ("state", "1")]
        assert replace_params(pairs, self.owned, []) == [("a", "x")]
