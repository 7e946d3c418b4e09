"""Persistence of flow nodes."""

import copy
import uuid
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from botflow.core.ir import FlowNode
from botflow.exceptions import NotFoundError


class NodeStore(ABC):
    """
    Node CRUD surface of the flow backend.

    Implementations return fresh FlowNode objects; callers may mutate them
    freely.
    """

    @abstractmethod
    def list_nodes(self, flow_id: str) -> List[FlowNode]:
        """Every node currently stored for a flow."""

    @abstractmethod
    def create_node(self, flow_id: str, node: FlowNode) -> FlowNode:
        """Store a new node; the returned node carries its assigned identity."""

    @abstractmethod
    def update_node(self, identity: str, node: FlowNode) -> FlowNode:
        """Replace the content of an existing node."""

    @abstractmethod
    def delete_node(self, identity: str) -> None:
        """Remove a node."""


class InMemoryNodeStore(NodeStore):
    """
    Dict-backed NodeStore.

    Useful offline and in tests. Nodes keep insertion order per flow.

    Example:
        store = InMemoryNodeStore()
        store.add("flow-1", [FlowNode("welcome", message_text="Hi!")])
        graph = FlowSync(store, "flow-1").load()
    """

    def __init__(self):
        self._nodes: Dict[str, FlowNode] = {}
        self._flows: Dict[str, str] = {}  # identity -> flow id

    def add(self, flow_id: str, nodes: Iterable[FlowNode]) -> List[FlowNode]:
        """Seed a flow with nodes, assigning identities where missing."""
        created = []
        for node in nodes:
            stored = copy.deepcopy(node)
            stored.identity = stored.identity or self._new_identity()
            self._nodes[stored.identity] = stored
            self._flows[stored.identity] = flow_id
            created.append(copy.deepcopy(stored))
        return created

    def list_nodes(self, flow_id: str) -> List[FlowNode]:
        return [
            copy.deepcopy(node) for identity, node in self._nodes.items()
            if self._flows[identity] == flow_id
        ]

    def create_node(self, flow_id: str, node: FlowNode) -> FlowNode:
        stored = copy.deepcopy(node)
        stored.identity = self._new_identity()
        self._nodes[stored.identity] = stored
        self._flows[stored.identity] = flow_id
        return copy.deepcopy(stored)

    def update_node(self, identity: str, node: FlowNode) -> FlowNode:
        if identity not in self._nodes:
            raise NotFoundError(f"Node {identity} not found")
        stored = copy.deepcopy(node)
        stored.identity = identity
        self._nodes[identity] = stored
        return copy.deepcopy(stored)

    def delete_node(self, identity: str) -> None:
        if identity not in self._nodes:
            raise NotFoundError(f"Node {identity} not found")
        del self._nodes[identity]
        del self._flows[identity]

    def get(self, identity: str) -> Optional[FlowNode]:
        node = self._nodes.get(identity)
        return copy.deepcopy(node) if node is not None else None

    @staticmethod
    def _new_identity() -> str:
        return uuid.uuid4().hex[:24]
