"""Converts an edited visual graph back into persisted flow nodes."""

import logging
from typing import List, Optional

from botflow.core.ir import (
    BUTTONS, DEFAULT_SECTION_TITLE, DEFAULT_SLOT, LIST, TEXT,
    Button, FlowGraph, FlowNode, ListItem, ListSection, VisualNode,
    button_slot, list_slot,
)

logger = logging.getLogger(__name__)


class GraphExporter:
    """
    Rebuilds persisted nodes from a FlowGraph.

    Outgoing links are taken from the graph's edges, not from the stored
    content: a button whose edge was deleted exports with an empty target.
    Targets are written as the target node's current node_key, so renaming a
    node also updates every link to it.
    """

    @staticmethod
    def _target_key(graph: FlowGraph, target_id: str) -> str:
        target = graph.get_node(target_id)
        if target is None:
            # Dangling link from the loaded data; keep it as it was
            return target_id
        return target.content.node_key or target.id

    @staticmethod
    def _slot_target(graph: FlowGraph, node: VisualNode, slot: str) -> str:
        edge = graph.edge_for_slot(node.id, slot)
        if edge is None:
            return ""
        return GraphExporter._target_key(graph, edge.target_id)

    @staticmethod
    def _sections(items: List[ListItem]) -> List[ListSection]:
        """Group consecutive items by the section title they were loaded with."""
        sections: List[ListSection] = []
        current: Optional[ListSection] = None
        for item in items:
            title = item.section or DEFAULT_SECTION_TITLE
            if current is None or current.title != title:
                current = ListSection(title=title, rows=[])
                sections.append(current)
            current.rows.append(item)
        return sections

    @staticmethod
    def to_node(graph: FlowGraph, node: VisualNode) -> FlowNode:
        content = node.content
        kind = content.message_kind

        default_next = content.default_next_node_key
        if kind == TEXT:
            default_next = GraphExporter._slot_target(graph, node, DEFAULT_SLOT)

        buttons = list(content.buttons)
        if kind == BUTTONS:
            buttons = [
                Button(
                    label=b.label,
                    target_node_key=GraphExporter._slot_target(graph, node, button_slot(b.id)),
                    id=b.id,
                )
                for b in content.buttons
            ]

        items = list(content.list_items)
        if kind == LIST:
            items = [
                ListItem(
                    label=i.label,
                    description=i.description,
                    target_node_key=GraphExporter._slot_target(graph, node, list_slot(i.id)),
                    id=i.id,
                    section=i.section,
                )
                for i in content.list_items
            ]

        return FlowNode(
            node_key=content.node_key or node.id,
            message_kind=kind,
            message_text=content.message_text,
            identity=content.identity,
            save_reply_to_field=content.save_reply_to_field,
            buttons=buttons,
            list_menu_label=content.list_menu_label,
            list_sections=GraphExporter._sections(items),
            default_next_node_key=default_next,
        )

    @staticmethod
    def to_nodes(graph: FlowGraph) -> List[FlowNode]:
        """Every node of the graph in persisted form, in graph order."""
        nodes = [GraphExporter.to_node(graph, node) for node in graph.nodes.values()]
        logger.debug("Exported %d nodes from flow %s", len(nodes), graph.flow_id)
        return nodes
