"""Editing session over a flow's visual graph."""

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Optional, Protocol, Tuple

from botflow.core.ir import (
    BUTTONS, DEFAULT_MENU_LABEL, DEFAULT_SLOT, EDITABLE_FIELDS, LIST, MAX_BUTTONS,
    MAX_LIST_ITEMS, MESSAGE_KINDS,
    Button, FlowGraph, ListItem, NodeContent, VisualEdge, VisualNode,
    button_slot, list_slot, parse_slot,
)

logger = logging.getLogger(__name__)

VIEWING = "viewing"
EDITING_NODE = "editing-node"
EDITING_EDGE = "editing-edge"

NEW_MESSAGE_TEXT = "New message..."

_LIST_ITEM_FIELDS = ("label", "description")


class LayoutEngine(Protocol):
    def compute(self, node_ids: Iterable[str], edges: Iterable[Tuple[str, str]]) -> Dict[str, Tuple[float, float]]:
        ...


@dataclass
class Viewport:
    """Pan and zoom of the canvas, used to map screen points into the graph."""
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0

    def to_graph(self, screen_x: float, screen_y: float) -> Tuple[float, float]:
        return ((screen_x - self.x) / self.zoom, (screen_y - self.y) / self.zoom)


class GraphEditor:
    """
    Holds a flow's visual graph and applies the user's edits to it.

    At most one node or one edge is selected at a time. Operations that act
    on "the selected node" take an optional node_id; without one they use the
    selection, and do nothing when nothing is selected.

    Example:
        editor = GraphEditor(graph, layout=GraphvizLayout())
        node = editor.add_node("buttons", 420, 180)
        editor.add_button()
        editor.connect(node.id, "welcome", slot=button_slot(node.content.buttons[0].id))
    """

    def __init__(self, graph: Optional[FlowGraph] = None, layout: Optional[LayoutEngine] = None,
                 viewport: Optional[Viewport] = None):
        self.graph = graph if graph is not None else FlowGraph()
        self.layout = layout
        self.viewport = viewport or Viewport()
        self.selected_node_id: Optional[str] = None
        self.selected_edge_id: Optional[str] = None

    # --- Selection ---

    @property
    def mode(self) -> str:
        if self.selected_node_id is not None:
            return EDITING_NODE
        if self.selected_edge_id is not None:
            return EDITING_EDGE
        return VIEWING

    @property
    def selected_node(self) -> Optional[VisualNode]:
        if self.selected_node_id is None:
            return None
        return self.graph.get_node(self.selected_node_id)

    @property
    def selected_edge(self) -> Optional[VisualEdge]:
        if self.selected_edge_id is None:
            return None
        return self.graph.get_edge(self.selected_edge_id)

    def select_node(self, node_id: str) -> VisualNode:
        node = self._require_node(node_id)
        self.selected_node_id = node.id
        self.selected_edge_id = None
        return node

    def select_edge(self, edge_id: str) -> VisualEdge:
        edge = self.graph.get_edge(edge_id)
        if edge is None:
            raise ValueError(f"Edge {edge_id} does not exist.")
        self.selected_edge_id = edge.id
        self.selected_node_id = None
        return edge

    def clear_selection(self) -> None:
        self.selected_node_id = None
        self.selected_edge_id = None

    # --- Nodes ---

    def add_node(self, message_kind: str, screen_x: float = 0.0, screen_y: float = 0.0) -> VisualNode:
        """Create a node where it was dropped and select it."""
        if message_kind not in MESSAGE_KINDS:
            raise ValueError(f"Unknown message kind: {message_kind}. Use: {', '.join(MESSAGE_KINDS)}")

        node_id = self._new_node_id()
        content = NodeContent(
            node_key=node_id,
            message_kind=message_kind,
            message_text=NEW_MESSAGE_TEXT,
            list_menu_label=DEFAULT_MENU_LABEL,
        )
        node = self.graph.add_node(VisualNode(node_id, content, self.viewport.to_graph(screen_x, screen_y)))
        self.select_node(node.id)
        logger.debug("Added %s node %s at %s", message_kind, node.id, node.position)
        return node

    def move_node(self, node_id: str, x: float, y: float) -> VisualNode:
        node = self._require_node(node_id)
        node.position = (x, y)
        return node

    def update_field(self, field: str, value: Any, node_id: Optional[str] = None) -> Optional[VisualNode]:
        """
        Set one content field of a node.

        Changing node_key relabels the node but keeps its id, which is how a
        rename is told apart from a delete plus create on save.
        """
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Unknown field: {field}")
        node = self._target_node(node_id)
        if node is None:
            return None

        if field == "message_kind" and value not in MESSAGE_KINDS:
            raise ValueError(f"Unknown message kind: {value}")
        if field == "buttons" and len(value) > MAX_BUTTONS:
            raise ValueError(f"A node can have at most {MAX_BUTTONS} buttons.")
        if field == "list_items" and len(value) > MAX_LIST_ITEMS:
            raise ValueError(f"A node can have at most {MAX_LIST_ITEMS} list items.")
        if field in ("buttons", "list_items"):
            ids = [item.id for item in value]
            if len(set(ids)) != len(ids):
                raise ValueError(f"Every item in {field} needs a distinct id.")

        setattr(node.content, field, value)
        if field == "node_key":
            node.label = value
        if field in ("buttons", "list_items", "message_kind"):
            self._prune_slots(node)
        logger.debug("Node %s: %s updated", node.id, field)
        return node

    def delete_node(self, node_id: Optional[str] = None) -> Optional[VisualNode]:
        """Remove a node and every edge into or out of it."""
        node = self._target_node(node_id)
        if node is None:
            return None
        self.graph.remove_node(node.id)
        if self.selected_node_id == node.id:
            self.selected_node_id = None
        selected_edge = self.selected_edge_id
        if selected_edge is not None and self.graph.get_edge(selected_edge) is None:
            self.selected_edge_id = None
        logger.debug("Deleted node %s", node.id)
        return node

    # --- Edges ---

    def connect(self, source_id: str, target_id: str, slot: str = DEFAULT_SLOT) -> VisualEdge:
        """
        Link a slot of source_id to target_id.

        Whatever edge already left that slot is replaced, so a slot never has
        more than one outgoing edge.
        """
        source = self._require_node(source_id)
        self._require_node(target_id)
        if not source.has_slot(slot):
            raise ValueError(f"Node {source_id} has no slot {slot}.")

        edge = self.graph.add_edge(VisualEdge(source.id, target_id, slot=slot, label=self._slot_label(source, slot)))
        logger.debug("Connected %s[%s] -> %s", source.id, slot, target_id)
        return edge

    def delete_edge(self, edge_id: Optional[str] = None) -> Optional[VisualEdge]:
        edge_id = edge_id if edge_id is not None else self.selected_edge_id
        if edge_id is None:
            return None
        edge = self.graph.remove_edge(edge_id)
        if edge is None:
            raise ValueError(f"Edge {edge_id} does not exist.")
        if self.selected_edge_id == edge_id:
            self.selected_edge_id = None
        return edge

    # --- Buttons ---

    def add_button(self, node_id: Optional[str] = None, label: str = "New Button") -> Optional[Button]:
        """Append a button; does nothing once the node has MAX_BUTTONS."""
        node = self._target_node(node_id)
        if node is None:
            return None
        buttons = node.content.buttons
        if len(buttons) >= MAX_BUTTONS:
            logger.debug("Node %s already has %d buttons", node.id, MAX_BUTTONS)
            return None
        button = Button(label=label)
        node.content.buttons = buttons + [button]
        return button

    def remove_button(self, index: int, node_id: Optional[str] = None) -> Optional[Button]:
        node = self._target_node(node_id)
        if node is None:
            return None
        buttons = list(node.content.buttons)
        button = buttons.pop(self._check_index(index, buttons))
        node.content.buttons = buttons
        self._prune_slots(node)
        return button

    def update_button(self, index: int, label: str, node_id: Optional[str] = None) -> Optional[Button]:
        node = self._target_node(node_id)
        if node is None:
            return None
        buttons = list(node.content.buttons)
        index = self._check_index(index, buttons)
        buttons[index] = replace(buttons[index], label=label)
        node.content.buttons = buttons
        self._relabel_edge(node, button_slot(buttons[index].id), label)
        return buttons[index]

    # --- List items ---

    def add_list_item(self, node_id: Optional[str] = None, label: str = "New Item") -> Optional[ListItem]:
        """Append a list row; does nothing once the node has MAX_LIST_ITEMS."""
        node = self._target_node(node_id)
        if node is None:
            return None
        items = node.content.list_items
        if len(items) >= MAX_LIST_ITEMS:
            logger.debug("Node %s already has %d list items", node.id, MAX_LIST_ITEMS)
            return None
        item = ListItem(label=label)
        node.content.list_items = items + [item]
        return item

    def remove_list_item(self, index: int, node_id: Optional[str] = None) -> Optional[ListItem]:
        node = self._target_node(node_id)
        if node is None:
            return None
        items = list(node.content.list_items)
        item = items.pop(self._check_index(index, items))
        node.content.list_items = items
        self._prune_slots(node)
        return item

    def update_list_item(self, index: int, field: str, value: str, node_id: Optional[str] = None) -> Optional[ListItem]:
        if field not in _LIST_ITEM_FIELDS:
            raise ValueError(f"Unknown list item field: {field}. Use: {', '.join(_LIST_ITEM_FIELDS)}")
        node = self._target_node(node_id)
        if node is None:
            return None
        items = list(node.content.list_items)
        index = self._check_index(index, items)
        item = replace(items[index], **{field: value})
        items[index] = item
        node.content.list_items = items
        if field == "label":
            self._relabel_edge(node, list_slot(item.id), value)
        return item

    # --- Layout ---

    def auto_layout(self) -> FlowGraph:
        """Recompute every node position with the layout engine."""
        if self.layout is None:
            raise RuntimeError("No layout engine configured.")
        edges = [(e.source_id, e.target_id) for e in self.graph.renderable_edges()]
        positions = self.layout.compute(list(self.graph.nodes.keys()), edges)
        for node_id, position in positions.items():
            node = self.graph.get_node(node_id)
            if node is not None:
                node.position = position
        return self.graph

    # --- Helpers ---

    def _new_node_id(self) -> str:
        while True:
            node_id = f"node_{uuid.uuid4().hex[:8]}"
            if node_id not in self.graph.nodes and self.graph.find_by_key(node_id) is None:
                return node_id

    def _require_node(self, node_id: str) -> VisualNode:
        node = self.graph.get_node(node_id)
        if node is None:
            raise ValueError(f"Node {node_id} does not exist.")
        return node

    def _target_node(self, node_id: Optional[str]) -> Optional[VisualNode]:
        if node_id is not None:
            return self._require_node(node_id)
        return self.selected_node

    @staticmethod
    def _check_index(index: int, items: list) -> int:
        if index < 0 or index >= len(items):
            raise IndexError(f"Index {index} out of range for {len(items)} item(s).")
        return index

    @staticmethod
    def _slot_label(node: VisualNode, slot: str) -> Optional[str]:
        kind, item_id = parse_slot(slot)
        if kind == BUTTONS:
            return next((b.label for b in node.content.buttons if b.id == item_id), None)
        if kind == LIST:
            return next((i.label for i in node.content.list_items if i.id == item_id), None)
        return None

    def _relabel_edge(self, node: VisualNode, slot: str, label: str) -> None:
        edge = self.graph.edge_for_slot(node.id, slot)
        if edge is not None:
            edge.label = label

    def _prune_slots(self, node: VisualNode) -> None:
        """Drop edges leaving slots the node no longer has."""
        keep = []
        for edge in self.graph.edges:
            if edge.source_id != node.id or node.has_slot(edge.slot):
                keep.append(edge)
            else:
                logger.debug("Dropped edge %s from removed slot", edge.id)
        self.graph.edges = keep
        if self.selected_edge_id is not None and self.graph.get_edge(self.selected_edge_id) is None:
            self.selected_edge_id = None
