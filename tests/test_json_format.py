"""Tests for formats/json.py: JSON text with baseline-driven date revival."""

from datetime import datetime

import pytest
from conftest import NEW_YEAR, Point

from querystring_sync.errors import MalformedEncoding
from querystring_sync.formats.common import ParseContext
from querystring_sync.formats.json import JsonFormat, revive_dates, to_jsonable
from querystring_sync.values import UNDEFINED


@pytest.fixture
def fmt():
    return JsonFormat()


class TestToJsonable:
    """Tests for to_jsonable()."""

    def test_dates_become_iso(self):
        assert to_jsonable({"d": NEW_YEAR}) == {"d": "2024-01-01T00:00:00.000Z"}

    def test_undefined_and_functions(self):
        value = {"u": UNDEFINED, "f": print, "l": [UNDEFINED, print, 1]}
        assert to_jsonable(value) == {"l": [None, None, 1]}

    def test_atomic(self):
        assert to_jsonable(Point(1, 2)) == {"x": 1, "y": 2}

    def test_tuples_become_lists(self):
        assert to_jsonable((1, 2)) == [1, 2]


class TestReviveDates:
    """Tests for revive_dates()."""

    def test_nested(self):
        value = {"a": {"d": "2024-01-01T00:00:00.000Z"}, "l": ["2024-01-01T00:00:00Z"]}
        hint = {"a": {"d": NEW_YEAR}, "l": [NEW_YEAR]}
        assert revive_dates(value, hint) == {"a": {"d": NEW_YEAR}, "l": [NEW_YEAR]}

    def test_without_hint_strings_stay(self):
        assert revive_dates({"d": "2024-01-01T00:00:00Z"}, {}) == {
            "d": "2024-01-01T00:00:00Z"
        }

    def test_unparseable_string_kept(self):
        assert revive_dates("soon", NEW_YEAR) == "soon"

    def test_naive_hint_gives_naive_date(self):
        naive = datetime(2024, 1, 1, 12, 30)
        assert revive_dates("2024-01-01T12:30:00.000Z", naive) == naive


class TestJsonFormat:
    """Tests for the JsonFormat codec."""

    def test_stringify_is_compact(self, fmt):
        assert fmt.stringify({"a": 1, "b": [True, None]}) == '{"a":1,"b":[true,null]}'

    def test_non_ascii_kept(self, fmt):
        assert fmt.stringify({"s": "héllo"}) == '{"s":"héllo"}'

    def test_parse_revives_dates_from_baseline(self, fmt):
        encoded = fmt.stringify({"d": NEW_YEAR, "n": 2})
        ctx = ParseContext(initial_state={"d": NEW_YEAR})
        assert fmt.parse(encoded, ctx) == {"d": NEW_YEAR, "n": 2}

    def test_parse_invalid_json(self, fmt):
        with pytest.raises(MalformedEncoding) as exc_info:
            fmt.parse('{"a":')
        assert exc_info.value.position == 5

    def test_parse_requires_object(self, fmt):
        with pytest.raises(MalformedEncoding, match="Expected a JSON object"):
            fmt.parse("[1, 2]")

    def test_standalone(self, fmt):
        params = fmt.stringify_standalone({"q": "lamp", "page": 2, "u": UNDEFINED})
        assert params == {"q": ['"lamp"'], "page": ["2"]}
        assert fmt.parse_standalone(params, ParseContext()) == {"q": "lamp", "page": 2}

    def test_standalone_skips_invalid(self, fmt):
        params = {"a": ["1"], "b": ["{"], "c": []}
        assert fmt.parse_standalone(params, ParseContext()) == {"a": 1}

    def test_top_level_key(self, fmt):
        assert fmt.top_level_key("user") == "user"
