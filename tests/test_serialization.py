import json
from botflow.core.ir import BUTTONS, LIST, TEXT, FlowGraph, ListItem, NodeContent, VisualEdge, VisualNode, list_slot
from botflow.core.serialization import JsonSerializer


class TestNodeWireFormat:
    """Backend node documents."""

    def test_decode_text_node(self):
        node = JsonSerializer.node_from_dict({
            "_id": "65f0",
            "nodeId": "welcome",
            "messageType": "text",
            "messageText": "Hi!",
            "saveToField": "name",
            "nextNodeId": "menu",
            "createdAt": "2024-01-01",
        })

        assert node.identity == "65f0"
        assert node.node_key == "welcome"
        assert node.message_kind == TEXT
        assert node.save_reply_to_field == "name"
        assert node.default_next_node_key == "menu"
        assert node.list_menu_label == "Open Menu"

    def test_decode_buttons_without_ids(self):
        node = JsonSerializer.node_from_dict({
            "nodeId": "menu",
            "messageType": "buttons",
            "buttons": [{"title": "Yes", "nextNodeId": "x"}, {"title": "No"}],
        })

        assert node.message_kind == BUTTONS
        assert [b.label for b in node.buttons] == ["Yes", "No"]
        assert [b.target_node_key for b in node.buttons] == ["x", ""]
        assert [b.id for b in node.buttons] == ["menu-btn-0", "menu-btn-1"]

    def test_decode_sections(self):
        node = JsonSerializer.node_from_dict({
            "nodeId": "catalog",
            "messageType": "list",
            "listButtonText": "See",
            "listSections": [
                {"title": "Flats", "rows": [{"title": "2BHK", "description": "d", "nextNodeId": "a"}]},
                {"title": "Villas", "rows": [{"id": "v", "title": "Villa"}]},
            ],
        })

        assert node.message_kind == LIST
        assert node.list_menu_label == "See"
        assert [s.title for s in node.list_sections] == ["Flats", "Villas"]
        assert node.list_sections[0].rows[0].id == "catalog-list-0"
        assert node.list_sections[1].rows[0].id == "v"

    def test_decode_legacy_list_items(self):
        node = JsonSerializer.node_from_dict({
            "nodeId": "old",
            "messageType": "list",
            "listSections": [],
            "listItems": [{"title": "A", "nextNodeId": "x"}, {"title": "B"}],
        })

        assert len(node.list_sections) == 1
        assert node.list_sections[0].title == "Options"
        assert [r.label for r in node.list_sections[0].rows] == ["A", "B"]

    def test_encode_new_node_has_no_identity(self, property_nodes):
        node = property_nodes[0]
        node.identity = None

        data = JsonSerializer.node_to_dict(node)

        assert "_id" not in data
        assert data["nodeId"] == "welcome"
        assert data["nextNodeId"] == "menu"

    def test_wire_roundtrip(self, property_nodes):
        for node in property_nodes:
            data = JsonSerializer.node_to_dict(node)
            assert JsonSerializer.node_from_dict(json.loads(json.dumps(data))) == node


class TestFingerprint:

    def test_independent_of_order(self, property_nodes):
        assert JsonSerializer.fingerprint(property_nodes) == JsonSerializer.fingerprint(reversed(property_nodes))

    def test_changes_with_content(self, property_nodes):
        before = JsonSerializer.fingerprint(property_nodes)
        property_nodes[0].message_text = "Hello again"
        assert JsonSerializer.fingerprint(property_nodes) != before


class TestFlowFormat:

    def test_flow_roundtrip(self):
        flow = JsonSerializer.flow_from_dict({
            "_id": "f1",
            "name": "Property Bot",
            "wabaAccount": "w1",
            "completionFollowUpEnabled": True,
            "completionFollowUpDelay": 15,
            "completionFollowUpMessage": "Did you find it?",
        })

        assert flow.identity == "f1"
        assert flow.completion_follow_up_delay == 15
        assert JsonSerializer.flow_to_dict(flow)["completionFollowUpMessage"] == "Did you find it?"

    def test_follow_up_delay_defaults_and_floor(self):
        flow = JsonSerializer.flow_from_dict({"name": "x"})
        assert flow.completion_follow_up_delay == 60

        flow.completion_follow_up_delay = 0
        assert JsonSerializer.flow_to_dict(flow)["completionFollowUpDelay"] == 1


def test_graph_json_roundtrip():
    graph = FlowGraph("flow-1")
    graph.revision = "abc"
    graph.add_node(VisualNode("a", NodeContent(node_key="welcome", identity="id-a"), (10.0, 20.0)))
    content = NodeContent(node_key="b", message_kind=LIST)
    graph.add_node(VisualNode("b", content))
    content.list_items = [ListItem("Row", id="r1", section="Flats")]
    graph.add_edge(VisualEdge("b", "a", slot=list_slot("r1"), label="Row"))

    data = json.loads(JsonSerializer.to_json(graph))
    assert data["flowId"] == "flow-1"
    assert data["revision"] == "abc"

    loaded = JsonSerializer.from_json(json.dumps(data))
    assert loaded.flow_id == "flow-1"
    assert loaded.revision == "abc"
    assert loaded.get_node("a").label == "welcome"
    assert loaded.get_node("a").identity == "id-a"
    assert loaded.get_node("a").position == (10.0, 20.0)
    assert loaded.get_node("b").content.list_items[0].section == "Flats"
    assert loaded.edges[0].slot == list_slot("r1")
    assert loaded.edges[0].id == graph.edges[0].id
