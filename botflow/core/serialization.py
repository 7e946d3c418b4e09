"""
JSON serialization for bot flows.

Two formats live here:

- the backend wire format for persisted nodes and flows (camelCase keys,
  ``_id`` for the server identity, list rows wrapped in ``listSections``);
- the visual graph document written by ``botflow pull`` and read back by
  ``botflow push``: node content, positions, slot-bound edges and the
  revision the graph was loaded from.
"""

import hashlib
import json
from typing import Any, Dict, Iterable, List, Optional, Set

from botflow.core.ir import (
    DEFAULT_MENU_LABEL, DEFAULT_SECTION_TITLE, TEXT,
    BotFlow, Button, FlowGraph, FlowNode, ListItem, ListSection,
    NodeContent, VisualEdge, VisualNode, claim_item_id,
)


class JsonSerializer:
    """
    Converts flow nodes, flows and visual graphs to and from JSON-ready dicts.

    Decoding is lenient: unknown keys are ignored, missing links and empty
    strings both mean "no link", and the legacy flat ``listItems`` array is
    accepted when a node carries no ``listSections``.
    """

    # --- Persisted nodes (backend wire format) ---

    @staticmethod
    def _button_from_dict(data: Dict[str, Any], fallback_id: str, seen: Set[str]) -> Button:
        return Button(
            label=data.get("title") or "",
            target_node_key=data.get("nextNodeId") or "",
            id=claim_item_id(str(data.get("id") or ""), fallback_id, seen),
        )

    @staticmethod
    def _row_from_dict(data: Dict[str, Any], fallback_id: str, seen: Set[str],
                       section: Optional[str] = None) -> ListItem:
        return ListItem(
            label=data.get("title") or "",
            description=data.get("description") or "",
            target_node_key=data.get("nextNodeId") or "",
            id=claim_item_id(str(data.get("id") or ""), fallback_id, seen),
            section=section,
        )

    @staticmethod
    def node_from_dict(data: Dict[str, Any]) -> FlowNode:
        node_key = data.get("nodeId") or ""
        # Duplicate ids within a node would make two items share one slot
        button_ids: Set[str] = set()
        row_ids: Set[str] = set()
        buttons = [
            JsonSerializer._button_from_dict(b, f"{node_key}-btn-{idx}", button_ids)
            for idx, b in enumerate(data.get("buttons") or [])
        ]

        sections = []
        idx = 0
        for section_data in data.get("listSections") or []:
            title = section_data.get("title") or DEFAULT_SECTION_TITLE
            rows = []
            for row in section_data.get("rows") or []:
                rows.append(JsonSerializer._row_from_dict(row, f"{node_key}-list-{idx}", row_ids, section=title))
                idx += 1
            sections.append(ListSection(title=title, rows=rows))

        if not sections and data.get("listItems"):
            # Legacy flat rows, stored before sections existed
            rows = [
                JsonSerializer._row_from_dict(row, f"{node_key}-list-{i}", row_ids)
                for i, row in enumerate(data["listItems"])
            ]
            sections.append(ListSection(title=DEFAULT_SECTION_TITLE, rows=rows))

        identity = data.get("_id")
        return FlowNode(
            node_key=node_key,
            message_kind=data.get("messageType") or TEXT,
            message_text=data.get("messageText") or "",
            identity=str(identity) if identity else None,
            save_reply_to_field=data.get("saveToField") or None,
            buttons=buttons,
            list_menu_label=data.get("listButtonText") or DEFAULT_MENU_LABEL,
            list_sections=sections,
            default_next_node_key=data.get("nextNodeId") or "",
        )

    @staticmethod
    def node_to_dict(node: FlowNode) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if node.identity:
            data["_id"] = node.identity
        data.update({
            "nodeId": node.node_key,
            "messageType": node.message_kind,
            "messageText": node.message_text,
            "buttons": [
                {"id": b.id, "title": b.label, "nextNodeId": b.target_node_key}
                for b in node.buttons
            ],
            "listButtonText": node.list_menu_label,
            "listSections": [
                {
                    "title": section.title,
                    "rows": [
                        {
                            "id": row.id,
                            "title": row.label,
                            "description": row.description,
                            "nextNodeId": row.target_node_key,
                        }
                        for row in section.rows
                    ],
                }
                for section in node.list_sections
            ],
            "nextNodeId": node.default_next_node_key,
        })
        if node.save_reply_to_field:
            data["saveToField"] = node.save_reply_to_field
        return data

    @staticmethod
    def nodes_from_list(items: Iterable[Dict[str, Any]]) -> List[FlowNode]:
        return [JsonSerializer.node_from_dict(item) for item in items]

    # --- Flows ---

    @staticmethod
    def flow_from_dict(data: Dict[str, Any]) -> BotFlow:
        identity = data.get("_id")
        return BotFlow(
            name=data.get("name") or "",
            waba_account=data.get("wabaAccount"),
            identity=str(identity) if identity else None,
            completion_follow_up_enabled=bool(data.get("completionFollowUpEnabled", False)),
            completion_follow_up_delay=int(data.get("completionFollowUpDelay") or 60),
            completion_follow_up_message=data.get("completionFollowUpMessage") or "",
        )

    @staticmethod
    def flow_to_dict(flow: BotFlow) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if flow.identity:
            data["_id"] = flow.identity
        data.update({
            "name": flow.name,
            "wabaAccount": flow.waba_account,
            "completionFollowUpEnabled": flow.completion_follow_up_enabled,
            # The dashboard never stores a delay below one minute
            "completionFollowUpDelay": max(1, flow.completion_follow_up_delay),
            "completionFollowUpMessage": flow.completion_follow_up_message,
        })
        return data

    # --- Revision fingerprint ---

    @staticmethod
    def fingerprint(nodes: Iterable[FlowNode]) -> str:
        """
        Stable digest of a set of persisted nodes.

        Independent of the order the backend returns nodes in, so two fetches
        of an unchanged flow always produce the same value.
        """
        encoded = sorted(
            json.dumps(JsonSerializer.node_to_dict(n), sort_keys=True, separators=(",", ":"))
            for n in nodes
        )
        digest = hashlib.sha256()
        for line in encoded:
            digest.update(line.encode("utf-8"))
            digest.update(b"\n")
        return digest.hexdigest()

    # --- Visual graph document ---

    @staticmethod
    def _content_to_dict(content: NodeContent) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "_id": content.identity,
            "nodeId": content.node_key,
            "messageType": content.message_kind,
            "messageText": content.message_text,
            "saveToField": content.save_reply_to_field,
            "buttons": [
                {"id": b.id, "title": b.label, "nextNodeId": b.target_node_key}
                for b in content.buttons
            ],
            "listButtonText": content.list_menu_label,
            "listItems": [
                {
                    "id": i.id,
                    "title": i.label,
                    "description": i.description,
                    "nextNodeId": i.target_node_key,
                    "section": i.section,
                }
                for i in content.list_items
            ],
            "nextNodeId": content.default_next_node_key,
        }
        return data

    @staticmethod
    def _content_from_dict(data: Dict[str, Any]) -> NodeContent:
        node_key = data.get("nodeId") or ""
        identity = data.get("_id")
        button_ids: Set[str] = set()
        row_ids: Set[str] = set()
        return NodeContent(
            node_key=node_key,
            message_kind=data.get("messageType") or TEXT,
            message_text=data.get("messageText") or "",
            identity=str(identity) if identity else None,
            save_reply_to_field=data.get("saveToField") or None,
            buttons=[
                JsonSerializer._button_from_dict(b, f"{node_key}-btn-{idx}", button_ids)
                for idx, b in enumerate(data.get("buttons") or [])
            ],
            list_menu_label=data.get("listButtonText") or DEFAULT_MENU_LABEL,
            list_items=[
                JsonSerializer._row_from_dict(i, f"{node_key}-list-{idx}", row_ids, section=i.get("section"))
                for idx, i in enumerate(data.get("listItems") or [])
            ],
            default_next_node_key=data.get("nextNodeId") or "",
        )

    @staticmethod
    def graph_to_dict(graph: FlowGraph) -> Dict[str, Any]:
        nodes_data = []
        for node in graph.nodes.values():
            x, y = node.position
            nodes_data.append({
                "id": node.id,
                "label": node.label,
                "position": {"x": x, "y": y},
                "data": JsonSerializer._content_to_dict(node.content),
            })

        edges_data = [
            {
                "id": edge.id,
                "source": edge.source_id,
                "target": edge.target_id,
                "slot": edge.slot,
                "label": edge.label,
            }
            for edge in graph.edges
        ]

        return {
            "flowId": graph.flow_id,
            "revision": graph.revision,
            "nodes": nodes_data,
            "edges": edges_data,
        }

    @staticmethod
    def to_json(graph: FlowGraph, indent: int = 2) -> str:
        return json.dumps(JsonSerializer.graph_to_dict(graph), indent=indent)

    @staticmethod
    def graph_from_dict(data: Dict[str, Any]) -> FlowGraph:
        graph = FlowGraph(flow_id=data.get("flowId"))
        graph.revision = data.get("revision")

        for node_data in data.get("nodes", []):
            content = JsonSerializer._content_from_dict(node_data.get("data") or {})
            position = node_data.get("position") or {}
            node = VisualNode(
                node_id=node_data.get("id") or content.node_key,
                content=content,
                position=(float(position.get("x", 0.0)), float(position.get("y", 0.0))),
            )
            node.label = node_data.get("label") or content.node_key
            graph.add_node(node)

        for edge_data in data.get("edges", []):
            graph.add_edge(VisualEdge(
                source_id=edge_data["source"],
                target_id=edge_data["target"],
                slot=edge_data.get("slot"),
                label=edge_data.get("label"),
                edge_id=edge_data.get("id"),
            ))

        return graph

    @staticmethod
    def from_json(json_str: str) -> FlowGraph:
        data = json.loads(json_str)
        return JsonSerializer.graph_from_dict(data)
