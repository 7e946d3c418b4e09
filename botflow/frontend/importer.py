"""Builds the editable visual graph from a flow's persisted nodes."""

import copy
import logging
from typing import Iterable, Optional, Set

from botflow.core.ir import (
    BUTTONS, DEFAULT_SLOT, LIST, TEXT,
    FlowGraph, FlowNode, NodeContent, VisualEdge, VisualNode,
    button_slot, claim_item_id, list_slot,
)

logger = logging.getLogger(__name__)


class GraphImporter:
    """
    Converts persisted flow nodes into a FlowGraph.

    Every node becomes a VisualNode whose id is its node_key, and every
    non-empty outgoing link becomes a VisualEdge bound to the slot it came
    from. Links to keys that are not part of the flow are kept as dangling
    edges rather than rejected.

    Example:
        graph = GraphImporter.to_graph(store.list_nodes(flow_id), flow_id)
        editor = GraphEditor(graph, layout=GraphvizLayout())
        editor.auto_layout()
    """

    @staticmethod
    def _unique_id(node: FlowNode, item_id: str, fallback: str, seen: Set[str]) -> str:
        unique = claim_item_id(item_id, fallback, seen)
        if unique != item_id:
            logger.warning("Node %s repeats item id %r; using %r", node.node_key, item_id, unique)
        return unique

    @staticmethod
    def to_content(node: FlowNode) -> NodeContent:
        """Copy a persisted node into editable content, flattening list sections."""
        button_ids: Set[str] = set()
        buttons = []
        for idx, button in enumerate(node.buttons):
            button = copy.copy(button)
            button.id = GraphImporter._unique_id(node, button.id, f"{node.node_key}-btn-{idx}", button_ids)
            buttons.append(button)

        row_ids: Set[str] = set()
        list_items = []
        for section in node.list_sections:
            for row in section.rows:
                item = copy.copy(row)
                item.id = GraphImporter._unique_id(node, row.id, f"{node.node_key}-list-{len(list_items)}", row_ids)
                item.section = section.title
                list_items.append(item)

        return NodeContent(
            node_key=node.node_key,
            message_kind=node.message_kind,
            message_text=node.message_text,
            identity=node.identity,
            save_reply_to_field=node.save_reply_to_field,
            buttons=buttons,
            list_menu_label=node.list_menu_label,
            list_items=list_items,
            default_next_node_key=node.default_next_node_key,
        )

    @staticmethod
    def to_graph(nodes: Iterable[FlowNode], flow_id: Optional[str] = None) -> FlowGraph:
        graph = FlowGraph(flow_id=flow_id)
        nodes = list(nodes)

        for node in nodes:
            content = GraphImporter.to_content(node)
            node_id = node.node_key
            if node_id in graph.nodes or not node_id:
                # Keys should be unique; keep the node reachable by its identity
                fallback = node.identity or f"{node_id or 'node'}-{len(graph.nodes)}"
                logger.warning("Duplicate or empty node key %r in flow %s; using id %r",
                               node.node_key, flow_id, fallback)
                node_id = fallback
            graph.add_node(VisualNode(node_id, content))

        for visual in list(graph.nodes.values()):
            GraphImporter._add_edges(graph, visual)

        dangling = len(graph.edges) - len(graph.renderable_edges())
        if dangling:
            logger.warning("Flow %s has %d link(s) to missing nodes", flow_id, dangling)

        logger.debug("Imported flow %s: %d nodes, %d edges", flow_id, len(graph.nodes), len(graph.edges))
        return graph

    @staticmethod
    def _add_edges(graph: FlowGraph, node: VisualNode) -> None:
        content = node.content

        if content.message_kind == TEXT and content.default_next_node_key:
            graph.add_edge(VisualEdge(node.id, content.default_next_node_key, slot=DEFAULT_SLOT))

        if content.message_kind == BUTTONS:
            for button in content.buttons:
                if button.target_node_key:
                    graph.add_edge(VisualEdge(
                        node.id, button.target_node_key,
                        slot=button_slot(button.id), label=button.label,
                    ))

        if content.message_kind == LIST:
            for item in content.list_items:
                if item.target_node_key:
                    graph.add_edge(VisualEdge(
                        node.id, item.target_node_key,
                        slot=list_slot(item.id), label=item.label,
                    ))
