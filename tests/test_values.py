"""Tests for values.py: ValueKind discriminant, equality and snapshots."""

import copy
import math
from datetime import date, datetime

from conftest import NEW_YEAR, Point

from querystring_sync.values import (
    UNDEFINED,
    ValueKind,
    atomic_fields,
    deep_equal,
    is_plain_object,
    kind_of,
    snapshot,
)

# ---------------------------------------------------------------------------
# kind_of
# ---------------------------------------------------------------------------


class TestKindOf:
    """Tests for kind_of()."""

    def test_scalars(self):
        assert kind_of(None) is ValueKind.NULL
        assert kind_of(UNDEFINED) is ValueKind.UNDEFINED
        assert kind_of("x") is ValueKind.STRING
        assert kind_of(1) is ValueKind.NUMBER
        assert kind_of(1.5) is ValueKind.NUMBER

    def test_bool_is_not_a_number(self):
        assert kind_of(True) is ValueKind.BOOLEAN

    def test_datetime_is_date(self):
        assert kind_of(NEW_YEAR) is ValueKind.DATE
        assert kind_of(datetime.now()) is ValueKind.DATE

    def test_sequences_are_arrays(self):
        assert kind_of([1]) is ValueKind.ARRAY
        assert kind_of((1, 2)) is ValueKind.ARRAY

    def test_dict_is_plain_object(self):
        assert kind_of({}) is ValueKind.PLAIN_OBJECT
        assert is_plain_object({"a": 1})

    def test_callables_are_functions(self):
        assert kind_of(lambda: None) is ValueKind.FUNCTION
        assert kind_of(print) is ValueKind.FUNCTION
        assert kind_of(Point) is ValueKind.FUNCTION

    def test_instances_are_atomic(self):
        assert kind_of(Point(1, 2)) is ValueKind.ATOMIC
        assert kind_of(date(2024, 1, 1)) is ValueKind.ATOMIC
        assert not is_plain_object(Point(1, 2))


# ---------------------------------------------------------------------------
# UNDEFINED sentinel
# ---------------------------------------------------------------------------


class TestUndefined:
    """Tests for the UNDEFINED singleton."""

    def test_is_falsy(self):
        assert not UNDEFINED

    def test_survives_copies(self):
        assert copy.copy(UNDEFINED) is UNDEFINED
        assert copy.deepcopy({"a": UNDEFINED})["a"] is UNDEFINED

    def test_repr(self):
        assert repr(UNDEFINED) == "UNDEFINED"


# ---------------------------------------------------------------------------
# deep_equal
# ---------------------------------------------------------------------------


class TestDeepEqual:
    """Tests for deep_equal()."""

    def test_nested_structures(self):
        a = {"a": [1, {"b": "x"}], "c": None}
        b = {"c": None, "a": [1, {"b": "x"}]}
        assert deep_equal(a, b)

    def test_nan_is_never_equal(self):
        assert not deep_equal(math.nan, math.nan)

    def test_int_and_float_compare_by_value(self):
        assert deep_equal(1, 1.0)

    def test_kind_mismatch(self):
        assert not deep_equal(1, True)
        assert not deep_equal(None, UNDEFINED)

    def test_list_and_tuple_are_both_arrays(self):
        assert deep_equal([1, 2], (1, 2))

    def test_missing_key(self):
        assert not deep_equal({"a": 1}, {"a": 1, "b": 2})

    def test_array_length(self):
        assert not deep_equal([1, 2], [1, 2, 3])

    def test_atomic_compared_by_fields(self):
        assert deep_equal(Point(1, 2), Point(1, 2))
        assert not deep_equal(Point(1, 2), Point(1, 3))

    def test_atomic_of_different_types(self):
        class Other:
            def __init__(self):
                self.x = 1
                self.y = 2

        assert not deep_equal(Point(1, 2), Other())

    def test_atomic_without_fields_uses_eq(self):
        assert deep_equal(date(2024, 1, 1), date(2024, 1, 1))

    def test_functions_by_identity(self):
        def f():
            pass

        assert deep_equal(f, f)
        assert not deep_equal(f, lambda: None)


# ---------------------------------------------------------------------------
# snapshot / atomic_fields
# ---------------------------------------------------------------------------


class TestSnapshot:
    """Tests for snapshot() and atomic_fields()."""

    def test_containers_are_copied(self):
        state = {"a": {"b": [1, 2]}}
        copied = snapshot(state)
        assert copied == state
        assert copied["a"] is not state["a"]
        assert copied["a"]["b"] is not state["a"]["b"]

    def test_tuple_stays_tuple(self):
        assert snapshot((1, [2])) == (1, [2])
        assert isinstance(snapshot((1,)), tuple)

    def test_atomic_deep_copied(self):
        point = Point(1, [2])
        copied = snapshot(point)
        assert copied is not point
        assert copied.y is not point.y
        assert deep_equal(copied, point)

    def test_functions_kept_by_reference(self):
        def f():
            pass

        assert snapshot({"f": f})["f"] is f

    def test_atomic_fields(self):
        assert atomic_fields(Point(1, 2)) == {"x": 1, "y": 2}
        assert atomic_fields(date(2024, 1, 1)) is None
