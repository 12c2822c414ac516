"""Tests for validators.py: parameter key and prefix checks."""

import pytest

from querystring_sync.validators import (
    format_validation_error,
    validate_param_key,
    validate_prefix,
)


class TestValidateParamKey:
    """Tests for validate_param_key()."""

    @pytest.mark.parametrize("key", ["state", "$", "s.x", "f_1", "ü"])
    def test_valid(self, key):
        assert validate_param_key(key) == (True, "")

    def test_empty(self):
        assert validate_param_key("") == (False, "Parameter key cannot be empty")

    def test_reserved_characters_listed(self):
        valid, message = validate_param_key("a=b&c")
        assert not valid
        assert message == "Parameter key cannot contain ['&', '=']"

    def test_whitespace(self):
        valid, message = validate_param_key("a\tb")
        assert not valid
        assert "cannot contain" in message


class TestValidatePrefix:
    """Tests for validate_prefix()."""

    def test_empty_is_valid(self):
        assert validate_prefix("") == (True, "")

    def test_valid(self):
        assert validate_prefix("f_") == (True, "")

    def test_reserved(self):
        assert validate_prefix("f?") == (False, "Prefix cannot contain ['?']")


def test_format_validation_error():
    assert format_validation_error("Prefix", "is bad") == "Prefix is bad"
