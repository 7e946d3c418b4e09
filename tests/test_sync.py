"""
Tests for loading flows into graphs and saving them back.
"""

import pytest
from botflow.core.ir import FlowNode, TEXT
from botflow.core.serialization import JsonSerializer
from botflow.engine.editor import GraphEditor
from botflow.exceptions import ApiError, StaleFlowError, SyncError
from botflow.store import InMemoryNodeStore
from botflow.sync import FlowSync


class SpyStore(InMemoryNodeStore):
    """Records write calls; each entry of fail_on makes one call of that kind fail."""

    def __init__(self, fail_on=()):
        super().__init__()
        self.calls = []
        self.fail_on = list(fail_on)

    def _record(self, action):
        self.calls.append(action)
        if action in self.fail_on:
            self.fail_on.remove(action)
            raise ApiError(f"{action} refused", status_code=500)

    def create_node(self, flow_id, node):
        self._record("create")
        return super().create_node(flow_id, node)

    def update_node(self, identity, node):
        self._record("update")
        return super().update_node(identity, node)

    def delete_node(self, identity):
        self._record("delete")
        return super().delete_node(identity)


@pytest.fixture
def spy(property_nodes):
    store = SpyStore()
    store.add("flow-1", property_nodes)
    return store


def keys(store, flow_id="flow-1"):
    return [n.node_key for n in store.list_nodes(flow_id)]


def by_key(store, flow_id="flow-1"):
    return {n.node_key: n for n in store.list_nodes(flow_id)}


class TestLoad:

    def test_load_sets_revision_and_layout(self, store, grid_layout):
        graph = FlowSync(store, "flow-1", layout=grid_layout).load()

        assert graph.flow_id == "flow-1"
        assert graph.revision == JsonSerializer.fingerprint(store.list_nodes("flow-1"))
        assert grid_layout.calls == 1
        assert graph.get_node("catalog").position == (800.0, 0.0)

    def test_load_without_layout(self, store):
        graph = FlowSync(store, "flow-1").load()

        assert len(graph.nodes) == 4
        assert all(n.position == (0.0, 0.0) for n in graph.nodes.values())

    def test_load_empty_flow(self, store):
        graph = FlowSync(store, "other").load()
        assert graph.nodes == {}


class TestSave:

    def test_unchanged_graph_updates_in_place(self, spy):
        sync = FlowSync(spy, "flow-1")
        graph = sync.load()

        result = sync.save(graph)

        assert (result.deleted, result.updated, result.created) == (0, 4, 0)
        assert spy.calls == ["update"] * 4
        assert result.revision == graph.revision

    def test_rename_is_an_update_not_a_recreate(self):
        """A node loaded as node_123 and renamed to welcome keeps its identity."""
        spy = SpyStore()
        spy.add("flow-2", [FlowNode("node_123", message_text="Hi", identity="n1")])
        sync = FlowSync(spy, "flow-2")
        editor = GraphEditor(sync.load())

        editor.update_field("node_key", "welcome", node_id="node_123")
        sync.save(editor.graph)

        assert spy.calls == ["update"]
        stored = spy.list_nodes("flow-2")
        assert [(n.node_key, n.identity) for n in stored] == [("welcome", "n1")]

    def test_rename_rewrites_links(self, store):
        sync = FlowSync(store, "flow-1")
        editor = GraphEditor(sync.load())

        editor.update_field("node_key", "main_menu", node_id="menu")
        result = sync.save(editor.graph)

        assert by_key(store)["welcome"].default_next_node_key == "main_menu"
        assert result.graph.get_node("main_menu").identity == "id-menu"

    def test_deleting_every_node_only_deletes(self, spy):
        sync = FlowSync(spy, "flow-1")
        editor = GraphEditor(sync.load())
        for node_id in list(editor.graph.nodes):
            editor.delete_node(node_id)

        result = sync.save(editor.graph)

        assert spy.calls == ["delete"] * 4
        assert spy.list_nodes("flow-1") == []
        assert result.deleted == 4
        assert result.graph.nodes == {}

    def test_new_node_is_created_and_linked(self, store):
        sync = FlowSync(store, "flow-1")
        editor = GraphEditor(sync.load())
        node = editor.add_node(TEXT)
        editor.update_field("message_text", "Thanks, bye!")
        editor.connect("agent", node.id)

        result = sync.save(editor.graph)

        assert result.created == 1
        stored = by_key(store)
        assert stored[node.id].identity
        assert stored[node.id].message_text == "Thanks, bye!"
        assert stored["agent"].default_next_node_key == node.id
        assert result.graph.get_node(node.id).identity == stored[node.id].identity

    def test_refresh_keeps_positions(self, store, grid_layout):
        sync = FlowSync(store, "flow-1", layout=grid_layout)
        editor = GraphEditor(sync.load())
        editor.move_node("menu", 55.0, 66.0)

        result = sync.save(editor.graph)

        assert result.graph.get_node("menu").position == (55.0, 66.0)
        assert grid_layout.calls == 1

    def test_duplicate_keys_are_rejected_before_any_call(self, spy):
        sync = FlowSync(spy, "flow-1")
        editor = GraphEditor(sync.load())
        editor.update_field("node_key", "welcome", node_id="menu")

        with pytest.raises(ValueError, match="Duplicate node keys: welcome"):
            sync.save(editor.graph)
        assert spy.calls == []

    def test_empty_key_is_rejected(self, store):
        sync = FlowSync(store, "flow-1")
        editor = GraphEditor(sync.load())
        editor.update_field("node_key", "", node_id="agent")

        with pytest.raises(ValueError):
            sync.save(editor.graph)


class TestStaleFlow:

    def test_save_over_changed_flow_raises(self, store):
        sync = FlowSync(store, "flow-1")
        graph = sync.load()
        store.update_node("id-agent", FlowNode("agent", message_text="Changed elsewhere"))

        with pytest.raises(StaleFlowError) as info:
            sync.save(graph)

        assert info.value.flow_id == "flow-1"
        assert info.value.expected == graph.revision
        assert by_key(store)["agent"].message_text == "Changed elsewhere"

    def test_force_overwrites(self, store):
        sync = FlowSync(store, "flow-1")
        graph = sync.load()
        store.update_node("id-agent", FlowNode("agent", message_text="Changed elsewhere"))

        sync.save(graph, force=True)

        assert by_key(store)["agent"].message_text == "Share your number and an agent will call you."

    def test_vanished_node_is_created_again(self, store):
        sync = FlowSync(store, "flow-1")
        graph = sync.load()
        store.delete_node("id-agent")

        result = sync.save(graph, force=True)

        assert (result.deleted, result.updated, result.created) == (0, 3, 1)
        agent = by_key(store)["agent"]
        assert agent.identity != "id-agent"
        assert agent.save_reply_to_field == "phone"


class TestRollback:

    def _edit(self, sync):
        editor = GraphEditor(sync.load())
        editor.delete_node("agent")
        editor.add_node(TEXT)
        return editor.graph

    def test_failed_create_rolls_back(self, spy, property_nodes):
        sync = FlowSync(spy, "flow-1")
        graph = self._edit(sync)
        spy.fail_on = ["create"]

        with pytest.raises(SyncError) as info:
            sync.save(graph)

        error = info.value
        assert error.rolled_back
        assert isinstance(error.cause, ApiError)
        assert error.applied == [
            ("delete", "agent"),
            ("update", "welcome"),
            ("update", "menu"),
            ("update", "catalog"),
        ]
        assert spy.calls[4:] == ["create", "update", "update", "update", "create"]

        stored = by_key(spy)
        assert sorted(stored) == ["agent", "catalog", "menu", "welcome"]
        assert stored["menu"].buttons[1].target_node_key == "agent"
        assert stored["catalog"].list_sections[0].rows[0].target_node_key == "agent"
        assert stored["agent"].message_text == property_nodes[3].message_text

    def test_failed_rollback_is_reported(self, spy):
        sync = FlowSync(spy, "flow-1")
        graph = self._edit(sync)
        spy.fail_on = ["create", "create"]

        with pytest.raises(SyncError) as info:
            sync.save(graph)

        assert not info.value.rolled_back
        assert len(info.value.rollback_errors) == 1
        assert "rollback incomplete" in str(info.value)
        assert "agent" not in keys(spy)

    def test_failed_first_delete_changes_nothing(self, spy):
        sync = FlowSync(spy, "flow-1")
        graph = self._edit(sync)
        spy.fail_on = ["delete"]

        with pytest.raises(SyncError) as info:
            sync.save(graph)

        assert info.value.applied == []
        assert spy.calls == ["delete"]
        assert "agent" in keys(spy)


def test_plan_splits_writes():
    store = InMemoryNodeStore()
    store.add("f", [FlowNode("a", identity="1"), FlowNode("b", identity="2")])
    sync = FlowSync(store, "f")
    editor = GraphEditor(sync.load())
    editor.delete_node("b")
    editor.add_node(TEXT)

    plan = FlowSync.plan(editor.graph, store.list_nodes("f"))

    assert [n.node_key for n in plan.deletes] == ["b"]
    assert [n.node_key for n in plan.updates] == ["a"]
    assert len(plan.creates) == 1
