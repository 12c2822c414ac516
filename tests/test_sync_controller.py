"""Tests for sync/controller.py: QueryStringSync end to end.

Covers:
- Restoring state from the URL on bind
- Writing the delta back on every mutation
- Coexistence with parameters the controller does not own
- Malformed URL state
- Route-dependent selections
- Standalone mode with a prefix
- The pure load / compute / apply operations
"""

import logging

import pytest

from querystring_sync.formats import PlainFormat
from querystring_sync.location import MemoryLocation
from querystring_sync.store import Store
from querystring_sync.sync import QueryStringSync, QueryUpdate, SyncAction, SyncOptions


class BrokenFormat:
    """Codec whose encoder always fails."""

    name = "broken"

    def stringify(self, state):
        raise RuntimeError("boom")

    def parse(self, value, ctx=None):
        return {}

    def stringify_standalone(self, state):
        raise RuntimeError("boom")

    def parse_standalone(self, params, ctx):
        return {}

    def top_level_key(self, param_key):
        return param_key


# ---------------------------------------------------------------------------
# Restore on bind
# ---------------------------------------------------------------------------


class TestRestore:
    """Tests for bind() restoring state from the URL."""

    def test_restores_encoded_state(self, make_sync):
        _, store, location = make_sync(
            {"count": 0, "tags": []}, url="/?state=count:5%26tags@=x"
        )
        assert store.get_state() == {"count": 5, "tags": ["x"]}
        assert location.href == "/?state=count:5%26tags@=x"

    def test_baseline_captured_before_restore(self, make_sync):
        sync, _, _ = make_sync({"count": 0}, url="/?state=count:5")
        assert sync.baseline == {"count": 0}

    def test_bind_returns_state(self):
        location = MemoryLocation("/?state=count:2")
        sync = QueryStringSync(SyncOptions(), location)
        store = Store({"count": 0}, middleware=[sync.middleware])
        assert sync.bind(store) == {"count": 2}

    def test_no_params_keeps_initial_state(self, make_sync):
        _, store, location = make_sync({"count": 0})
        assert store.get_state() == {"count": 0}
        assert location.href == "/"

    def test_partial_state_merged_onto_baseline(self, make_sync):
        _, store, _ = make_sync(
            {"user": {"name": "Ann", "age": 30}, "page": 1},
            url="/?state=user$age:31",
        )
        assert store.get_state() == {"user": {"name": "Ann", "age": 31}, "page": 1}

    def test_functions_survive_restore(self, make_sync):
        def increment():
            pass

        _, store, _ = make_sync({"count": 0, "inc": increment}, url="/?state=count:1")
        assert store.get_state()["inc"] is increment

    def test_untrimmed_input_canonicalised(self, make_sync):
        _, store, location = make_sync({"count": 0}, url="/?state=$count:5;;")
        assert store.get_state() == {"count": 5}
        assert location.href == "/?state=count:5"

    def test_bind_twice(self, make_sync):
        sync, store, _ = make_sync({"count": 0})
        with pytest.raises(RuntimeError, match="already bound"):
            sync.bind(store)

    def test_restore_from_options_url(self):
        sync = QueryStringSync(SyncOptions(url="/items?state=page:2"))
        store = Store({"page": 1}, middleware=[sync.middleware])
        assert sync.bind(store) == {"page": 2}

        store.set_state({"page": 3})
        assert store.get_state() == {"page": 3}

    def test_no_location_and_no_url(self):
        sync = QueryStringSync()
        store = Store({"page": 1}, middleware=[sync.middleware])
        assert sync.bind(store) == {"page": 1}


# ---------------------------------------------------------------------------
# Writing on mutation
# ---------------------------------------------------------------------------


class TestWrite:
    """Tests for the URL following store mutations."""

    def test_mutation_written(self, make_sync):
        _, store, location = make_sync({"count": 0})
        store.set_state({"count": 3})
        assert location.href == "/?state=count:3"

    def test_reverting_to_baseline_removes_param(self, make_sync):
        _, store, location = make_sync({"count": 0})
        store.set_state({"count": 3})
        store.set_state({"count": 0})
        assert location.href == "/"

    def test_callable_update(self, make_sync):
        _, store, location = make_sync({"count": 1})
        store.set_state(lambda state: {"count": state["count"] + 1})
        assert location.href == "/?state=count:2"

    def test_unrelated_params_preserved(self, make_sync):
        _, store, location = make_sync(
            {"count": 0}, url="/?utm=x&state=count:2&z=2"
        )
        assert location.href == "/?utm=x&state=count:2&z=2"

        store.set_state({"count": 0})
        assert location.href == "/?utm=x&z=2"

    def test_null_skipped_by_default(self, make_sync):
        _, store, location = make_sync({"a": 1})
        store.set_state({"a": None})
        assert location.href == "/"

    def test_null_synced_when_enabled(self, make_sync):
        _, store, location = make_sync({"a": 1}, sync_null=True)
        store.set_state({"a": None})
        assert location.href == "/?state=a:null"

    def test_store_without_middleware_still_written(self):
        location = MemoryLocation("/?state=$count:5;;")
        sync = QueryStringSync(SyncOptions(), location)
        store = Store({"count": 0})
        sync.bind(store)
        assert location.href == "/?state=count:5"

    def test_single_write_per_restore(self, make_sync):
        _, _, location = make_sync({"count": 0}, url="/?state=count:5")
        assert location.replacements == ["/?state=count:5"]

    def test_encoder_failure_is_logged(self, make_sync, caplog):
        _, store, location = make_sync({"a": 1}, format=BrokenFormat())
        with caplog.at_level(logging.ERROR):
            store.set_state({"a": 2})
        assert store.get_state() == {"a": 2}
        assert location.href == "/"
        assert "Failed to write state to the URL" in caplog.text

    def test_plain_format(self, make_sync):
        _, store, location = make_sync(
            {"tags": [], "page": 1}, format=PlainFormat()
        )
        store.set_state({"tags": ["a", "b"]})
        assert location.href == "/?state=tags=a,b"

        _, restored, _ = make_sync(
            {"tags": [], "page": 1}, url=location.href, format=PlainFormat()
        )
        assert restored.get_state() == {"tags": ["a", "b"], "page": 1}


# ---------------------------------------------------------------------------
# Malformed URL state
# ---------------------------------------------------------------------------


class TestMalformed:
    """Undecodable URL state falls back to the baseline."""

    def test_baseline_used_and_param_stripped(self, make_sync, caplog):
        with caplog.at_level(logging.WARNING):
            _, store, location = make_sync({"a": 1}, url="/?state=$a&keep=1")
        assert store.get_state() == {"a": 1}
        assert location.href == "/?keep=1"
        assert "Ignoring undecodable URL state" in caplog.text

    def test_non_object_state_rejected(self, make_sync):
        _, store, location = make_sync({"a": 1}, url="/?state=@:1")
        assert store.get_state() == {"a": 1}
        assert location.href == "/"

    def test_huge_plain_index_rejected(self, make_sync):
        _, store, location = make_sync(
            {"items": []},
            url="/?state=items.2000000.id=1&keep=1",
            format=PlainFormat(),
        )
        assert store.get_state() == {"items": []}
        assert location.href == "/?keep=1"


# ---------------------------------------------------------------------------
# Selections and route changes
# ---------------------------------------------------------------------------


def select_by_route(pathname):
    if pathname == "/items":
        return {"page": True}
    return {"query": True}


class TestSelection:
    """Tests for route-dependent selections."""

    def test_only_selected_fields_written(self, make_sync):
        _, store, location = make_sync(
            {"page": 1, "query": ""}, url="/items", select=select_by_route
        )
        store.set_state({"page": 2, "query": "lamp"})
        assert location.href == "/items?state=page:2"

    def test_only_selected_fields_restored(self, make_sync):
        _, store, _ = make_sync(
            {"page": 1, "query": ""},
            url="/items?state=page:2%26query=lamp",
            select=select_by_route,
        )
        assert store.get_state() == {"page": 2, "query": ""}

    def test_route_change_rewrites(self, make_sync):
        _, store, location = make_sync(
            {"page": 1, "query": ""}, url="/items", select=select_by_route
        )
        store.set_state({"page": 2, "query": "lamp"})

        location.navigate("/search?state=page:2")
        assert location.href == "/search?state=query=lamp"

    def test_same_pathname_ignored(self, make_sync):
        _, _, location = make_sync({"page": 1})
        before = list(location.replacements)
        location.pathname_changed.emit("/")
        assert location.replacements == before

    def test_close_unsubscribes(self, make_sync):
        sync, _, location = make_sync({"page": 1})
        assert len(location.pathname_changed) == 1
        sync.close()
        sync.close()
        assert len(location.pathname_changed) == 0


# ---------------------------------------------------------------------------
# Standalone mode
# ---------------------------------------------------------------------------


class TestStandalone:
    """Tests for one parameter per top-level field."""

    def test_restore_and_rewrite(self, make_sync):
        _, store, location = make_sync(
            {"q": "", "page": 1},
            url="/?f_q=lamp&other=1&f_page=:3",
            mode="standalone",
            prefix="f_",
        )
        assert store.get_state() == {"q": "lamp", "page": 3}
        assert location.href == "/?f_q=lamp&f_page=:3&other=1"

    def test_revert_removes_params(self, make_sync):
        _, store, location = make_sync(
            {"q": "", "page": 1}, mode="standalone", prefix="f_"
        )
        store.set_state({"q": "lamp"})
        assert location.href == "/?f_q=lamp"

        store.set_state({"q": ""})
        assert location.href == "/"

    def test_unknown_field_not_owned(self, make_sync):
        _, _, location = make_sync(
            {"q": ""}, url="/?f_zzz=1", mode="standalone", prefix="f_"
        )
        assert location.href == "/?f_zzz=1"

    def test_field_missing_from_baseline_not_written(self, make_sync):
        _, store, location = make_sync({"a": 1}, mode="standalone")
        store.set_state({"b": 2})
        assert store.get_state() == {"a": 1, "b": 2}
        assert location.href == "/"

    def test_set_then_clear_leaves_no_stale_param(self, make_sync):
        _, store, location = make_sync({"a": 1}, mode="standalone")
        store.set_state({"a": 2, "b": 2})
        assert location.href == "/?a=:2"

        store.set_state({"a": 1, "b": None})
        assert location.href == "/"

    def test_compute_ignores_fields_missing_from_baseline(self):
        sync = QueryStringSync(SyncOptions(mode="standalone"))
        update = sync.compute({"a": 1, "b": 2}, {"a": 1}, "/")
        assert update.action is SyncAction.REMOVE


# ---------------------------------------------------------------------------
# Pure operations
# ---------------------------------------------------------------------------


class TestPureOperations:
    """Tests for load(), compute() and apply() without a store."""

    BASELINE = {"page": 1, "q": ""}

    @pytest.fixture
    def sync(self):
        return QueryStringSync()

    def test_load(self, sync):
        result = sync.load("?state=page:2", self.BASELINE, "/")
        assert result.state == {"page": 2, "q": ""}
        assert not result.clean

    def test_load_without_params(self, sync):
        result = sync.load("", self.BASELINE, "/")
        assert result.state == self.BASELINE
        assert result.state is not self.BASELINE

    def test_load_malformed(self, sync):
        result = sync.load("?state=@:1", self.BASELINE, "/")
        assert result.clean
        assert "Expected an object" in result.error
        assert result.state == self.BASELINE

    def test_compute(self, sync):
        state = {"page": 2, "q": ""}
        update = sync.compute(state, self.BASELINE, "/")
        assert update == QueryUpdate(action=SyncAction.SET, params=[("state", "page:2")])
        assert sync.compute(state, self.BASELINE, "/") == update

    def test_compute_unchanged(self, sync):
        update = sync.compute(dict(self.BASELINE), self.BASELINE, "/")
        assert update.action is SyncAction.REMOVE

    def test_apply(self, sync):
        update = QueryUpdate(action=SyncAction.SET, params=[("state", "page:2")])
        assert sync.apply("a=1&state=old", update, self.BASELINE) == "a=1&state=page:2"

    def test_apply_remove(self, sync):
        update = QueryUpdate(action=SyncAction.REMOVE)
        assert sync.apply("?a=1&state=old", update, self.BASELINE) == "a=1"

    def test_load_of_compute_round_trip(self, sync):
        state = {"page": 4, "q": "a&b;c"}
        update = sync.compute(state, self.BASELINE, "/")
        query = sync.apply("", update, self.BASELINE)
        assert sync.load(query, self.BASELINE, "/").state == state
