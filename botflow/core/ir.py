import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

# Message kinds a flow node can send.
TEXT = "text"
BUTTONS = "buttons"
LIST = "list"
MESSAGE_KINDS = (TEXT, BUTTONS, LIST)

# WhatsApp caps reply buttons at 3 and list rows at 10 per message.
MAX_BUTTONS = 3
MAX_LIST_ITEMS = 10

DEFAULT_MENU_LABEL = "Open Menu"
DEFAULT_SECTION_TITLE = "Options"

DEFAULT_SLOT = "default"
_BUTTON_PREFIX = "btn:"
_LIST_PREFIX = "list:"


def button_slot(item_id: str) -> str:
    return f"{_BUTTON_PREFIX}{item_id}"


def list_slot(item_id: str) -> str:
    return f"{_LIST_PREFIX}{item_id}"


def parse_slot(slot: Optional[str]) -> Tuple[str, Optional[str]]:
    """
    Split a slot into (kind, item_id).

    kind is DEFAULT_SLOT, BUTTONS or LIST. A missing slot is the default slot.
    """
    if not slot or slot == DEFAULT_SLOT:
        return DEFAULT_SLOT, None
    if slot.startswith(_BUTTON_PREFIX):
        return BUTTONS, slot[len(_BUTTON_PREFIX):]
    if slot.startswith(_LIST_PREFIX):
        return LIST, slot[len(_LIST_PREFIX):]
    raise ValueError(f"Unknown slot: {slot}")


def new_item_id() -> str:
    return uuid.uuid4().hex[:12]


def claim_item_id(item_id: Optional[str], fallback: str, seen: Set[str]) -> str:
    """
    Return an id not yet in seen and record it there.

    item_id is kept when it is set and unused; otherwise fallback is used,
    suffixed with -1, -2, ... until it is free. Button and list item ids
    must be unique within a node because each one names a slot.
    """
    if item_id and item_id not in seen:
        seen.add(item_id)
        return item_id
    candidate = fallback
    n = 1
    while candidate in seen:
        candidate = f"{fallback}-{n}"
        n += 1
    seen.add(candidate)
    return candidate


@dataclass
class Button:
    """A reply button. target_node_key is the node_key it leads to."""
    label: str = "New Button"
    target_node_key: str = ""
    id: str = field(default_factory=new_item_id)


@dataclass
class ListItem:
    """A row of a list message."""
    label: str = "New Item"
    description: str = ""
    target_node_key: str = ""
    id: str = field(default_factory=new_item_id)
    # Title of the section the row was loaded from; None for rows added in the editor.
    section: Optional[str] = field(default=None, compare=False)


@dataclass
class ListSection:
    title: str = DEFAULT_SECTION_TITLE
    rows: List[ListItem] = field(default_factory=list)


@dataclass
class FlowNode:
    """
    One persisted step of a bot flow.

    identity is assigned by the backend and is None until the node has been
    created there. node_key is the user-facing key other nodes link to.
    """
    node_key: str
    message_kind: str = TEXT
    message_text: str = ""
    identity: Optional[str] = None
    save_reply_to_field: Optional[str] = None
    buttons: List[Button] = field(default_factory=list)
    list_menu_label: str = DEFAULT_MENU_LABEL
    list_sections: List[ListSection] = field(default_factory=list)
    default_next_node_key: str = ""


@dataclass
class NodeContent:
    """
    Editable copy of a FlowNode held by a VisualNode.

    List sections are flattened into list_items; each item remembers its
    section title so the exporter can regroup them.
    """
    node_key: str
    message_kind: str = TEXT
    message_text: str = ""
    identity: Optional[str] = None
    save_reply_to_field: Optional[str] = None
    buttons: List[Button] = field(default_factory=list)
    list_menu_label: str = DEFAULT_MENU_LABEL
    list_items: List[ListItem] = field(default_factory=list)
    default_next_node_key: str = ""


# Fields the editor may set through update_field.
EDITABLE_FIELDS = (
    "node_key",
    "message_kind",
    "message_text",
    "save_reply_to_field",
    "buttons",
    "list_menu_label",
    "list_items",
    "default_next_node_key",
)


class VisualNode:
    """A node of the editable visual graph."""
    def __init__(self, node_id: str, content: NodeContent, position: Tuple[float, float] = (0.0, 0.0)):
        self.id = node_id
        self.content = content
        self.position = position
        self.label = content.node_key

    @property
    def identity(self) -> Optional[str]:
        return self.content.identity

    def slots(self) -> List[str]:
        """Slots the node exposes for its message kind."""
        kind = self.content.message_kind
        if kind == BUTTONS:
            return [button_slot(b.id) for b in self.content.buttons]
        if kind == LIST:
            return [list_slot(i.id) for i in self.content.list_items]
        return [DEFAULT_SLOT]

    def has_slot(self, slot: Optional[str]) -> bool:
        return (slot or DEFAULT_SLOT) in self.slots()

    def __repr__(self):
        return f"<VisualNode id={self.id} key='{self.content.node_key}' kind={self.content.message_kind}>"


def make_edge_id(source_id: str, slot: str, target_id: str) -> str:
    return f"e-{source_id}-{slot}-{target_id}"


class VisualEdge:
    """A link from one slot of a source node to a target node."""
    def __init__(self, source_id: str, target_id: str, slot: str = DEFAULT_SLOT,
                 label: Optional[str] = None, edge_id: Optional[str] = None):
        self.source_id = source_id
        self.target_id = target_id
        self.slot = slot or DEFAULT_SLOT
        self.label = label  # Button or list item title, for display
        self.id = edge_id or make_edge_id(source_id, self.slot, target_id)

    def __repr__(self):
        return f"<VisualEdge {self.source_id}[{self.slot}] -> {self.target_id}>"


class FlowGraph:
    """The in-memory visual graph of one flow."""
    def __init__(self, flow_id: Optional[str] = None):
        self.flow_id = flow_id
        # Fingerprint of the persisted nodes this graph was loaded from.
        self.revision: Optional[str] = None
        self.nodes: Dict[str, VisualNode] = {}
        self.edges: List[VisualEdge] = []

    def add_node(self, node: VisualNode) -> VisualNode:
        if node.id in self.nodes:
            raise ValueError(f"Node with id {node.id} already exists.")
        self.nodes[node.id] = node
        return node

    def add_edge(self, edge: VisualEdge) -> VisualEdge:
        """
        Add an edge, replacing whatever edge occupied the same source slot.

        The target may be missing from the graph: such dangling edges are
        kept so their link is not lost, but they are never rendered.
        """
        if edge.source_id not in self.nodes:
            raise ValueError(f"Source node {edge.source_id} does not exist.")
        self.edges = [
            e for e in self.edges
            if not (e.source_id == edge.source_id and e.slot == edge.slot)
        ]
        self.edges.append(edge)
        return edge

    def get_node(self, node_id: str) -> Optional[VisualNode]:
        return self.nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Optional[VisualEdge]:
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def remove_node(self, node_id: str) -> Optional[VisualNode]:
        """Remove a node and every edge that starts or ends at it."""
        node = self.nodes.pop(node_id, None)
        if node is not None:
            self.edges = [
                e for e in self.edges
                if e.source_id != node_id and e.target_id != node_id
            ]
        return node

    def remove_edge(self, edge_id: str) -> Optional[VisualEdge]:
        edge = self.get_edge(edge_id)
        if edge is not None:
            self.edges.remove(edge)
        return edge

    def outgoing(self, node_id: str) -> List[VisualEdge]:
        return [e for e in self.edges if e.source_id == node_id]

    def edge_for_slot(self, node_id: str, slot: str) -> Optional[VisualEdge]:
        for edge in self.edges:
            if edge.source_id == node_id and edge.slot == slot:
                return edge
        return None

    def renderable_edges(self) -> List[VisualEdge]:
        return [e for e in self.edges if e.target_id in self.nodes]

    def find_by_key(self, node_key: str) -> Optional[VisualNode]:
        for node in self.nodes.values():
            if node.content.node_key == node_key:
                return node
        return None

    def __repr__(self):
        return f"<FlowGraph flow={self.flow_id} nodes={len(self.nodes)} edges={len(self.edges)}>"


@dataclass
class BotFlow:
    """A named chatbot flow owned by one WhatsApp Business account."""
    name: str
    waba_account: Optional[str] = None
    identity: Optional[str] = None
    completion_follow_up_enabled: bool = False
    completion_follow_up_delay: int = 60  # minutes
    completion_follow_up_message: str = ""
