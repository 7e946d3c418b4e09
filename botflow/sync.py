"""
Loading a flow into a visual graph and saving it back.

Saving re-fetches the flow, compares it with the revision the graph was
loaded from, then applies deletes followed by per-node writes one call at a
time. Every applied call is journaled; if a later call fails the journal is
undone in reverse so the backend ends up as it was before the save.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from botflow.backend.exporter import GraphExporter
from botflow.core.ir import FlowGraph, FlowNode
from botflow.core.serialization import JsonSerializer
from botflow.engine.editor import GraphEditor, LayoutEngine
from botflow.exceptions import StaleFlowError, SyncError
from botflow.frontend.importer import GraphImporter
from botflow.store import NodeStore

logger = logging.getLogger(__name__)


@dataclass
class SyncPlan:
    """
    The calls needed to make the backend match a graph.

    writes keeps graph order; a node with an identity is an update, any
    other node is a create.
    """
    deletes: List[FlowNode] = field(default_factory=list)
    writes: List[FlowNode] = field(default_factory=list)

    @property
    def updates(self) -> List[FlowNode]:
        return [n for n in self.writes if n.identity]

    @property
    def creates(self) -> List[FlowNode]:
        return [n for n in self.writes if not n.identity]


@dataclass
class SyncResult:
    graph: FlowGraph
    deleted: int = 0
    updated: int = 0
    created: int = 0

    @property
    def revision(self) -> Optional[str]:
        return self.graph.revision


class FlowSync:
    """
    Moves one flow between a NodeStore and a FlowGraph.

    Example:
        sync = FlowSync(client, flow_id, layout=GraphvizLayout())
        graph = sync.load()
        editor = GraphEditor(graph)
        ...
        graph = sync.save(editor.graph).graph
    """

    def __init__(self, store: NodeStore, flow_id: str, layout: Optional[LayoutEngine] = None):
        self.store = store
        self.flow_id = flow_id
        self.layout = layout

    def load(self) -> FlowGraph:
        """Fetch the flow, build its visual graph and lay it out."""
        nodes = self.store.list_nodes(self.flow_id)
        graph = GraphImporter.to_graph(nodes, flow_id=self.flow_id)
        graph.revision = JsonSerializer.fingerprint(nodes)
        if self.layout is not None:
            GraphEditor(graph, layout=self.layout).auto_layout()
        logger.info("Loaded flow %s (%d nodes)", self.flow_id, len(graph.nodes))
        return graph

    @staticmethod
    def plan(graph: FlowGraph, current: List[FlowNode]) -> SyncPlan:
        """
        Work out the calls that turn current into graph.

        A stored node whose identity no longer appears in the graph was
        deleted by the user. A graph node whose identity no longer exists
        on the server is created again rather than updated.
        """
        exported = GraphExporter.to_nodes(graph)
        kept = {n.identity for n in exported if n.identity}
        current_ids = {n.identity for n in current if n.identity}

        plan = SyncPlan()
        plan.deletes = [n for n in current if n.identity and n.identity not in kept]
        for node in exported:
            if node.identity and node.identity not in current_ids:
                logger.warning("Node %s (%s) is gone from the server; creating it again",
                               node.node_key, node.identity)
                node.identity = None
            plan.writes.append(node)
        return plan

    @staticmethod
    def validate(graph: FlowGraph) -> None:
        """Reject graphs whose node keys are empty or not unique."""
        keys = [n.content.node_key for n in graph.nodes.values()]
        if any(not k for k in keys):
            raise ValueError("Every node needs a node key.")
        duplicates = sorted(k for k, count in Counter(keys).items() if count > 1)
        if duplicates:
            raise ValueError(f"Duplicate node keys: {', '.join(duplicates)}")

    def save(self, graph: FlowGraph, base_revision: Optional[str] = None, force: bool = False) -> SyncResult:
        """
        Write the graph back to the store and return the refreshed graph.

        base_revision defaults to the revision the graph was loaded with.
        Raises StaleFlowError when the flow changed on the server since
        then, unless force is set, and SyncError when a call fails.
        """
        self.validate(graph)
        base_revision = base_revision if base_revision is not None else graph.revision

        current = self.store.list_nodes(self.flow_id)
        revision = JsonSerializer.fingerprint(current)
        if base_revision and revision != base_revision and not force:
            raise StaleFlowError(self.flow_id, base_revision, revision)

        plan = self.plan(graph, current)
        logger.info("Saving flow %s: %d delete(s), %d update(s), %d create(s)",
                    self.flow_id, len(plan.deletes), len(plan.updates), len(plan.creates))
        self._apply(plan, {n.identity: n for n in current if n.identity})

        refreshed = self._refresh(graph)
        return SyncResult(
            graph=refreshed,
            deleted=len(plan.deletes),
            updated=len(plan.updates),
            created=len(plan.creates),
        )

    def _apply(self, plan: SyncPlan, previous: Dict[str, FlowNode]) -> None:
        journal: List[Tuple[str, FlowNode]] = []
        try:
            for node in plan.deletes:
                self.store.delete_node(node.identity)
                journal.append(("delete", node))
            for node in plan.writes:
                if node.identity:
                    self.store.update_node(node.identity, node)
                    journal.append(("update", previous[node.identity]))
                else:
                    journal.append(("create", self.store.create_node(self.flow_id, node)))
        except Exception as e:
            logger.error("Saving flow %s failed after %d call(s): %s", self.flow_id, len(journal), e)
            rollback_errors = self._rollback(journal)
            applied = [(action, node.node_key) for action, node in journal]
            if rollback_errors:
                message = f"Failed to save flow {self.flow_id}: {e}; rollback incomplete"
            else:
                message = f"Failed to save flow {self.flow_id}: {e}; changes rolled back"
            raise SyncError(message, cause=e, applied=applied, rollback_errors=rollback_errors) from e

    def _rollback(self, journal: List[Tuple[str, FlowNode]]) -> List[BaseException]:
        errors: List[BaseException] = []
        for action, node in reversed(journal):
            try:
                if action == "create":
                    if not node.identity:
                        raise SyncError(f"Created node {node.node_key} has no identity to delete")
                    self.store.delete_node(node.identity)
                elif action == "update":
                    self.store.update_node(node.identity, node)
                else:
                    # The backend assigns a new identity to the restored node
                    self.store.create_node(self.flow_id, node)
            except Exception as e:
                logger.warning("Could not undo %s of node %s: %s", action, node.node_key, e)
                errors.append(e)
        return errors

    def _refresh(self, graph: FlowGraph) -> FlowGraph:
        """Reload the flow, keeping the positions nodes had in the saved graph."""
        positions = {n.content.node_key: n.position for n in graph.nodes.values()}
        nodes = self.store.list_nodes(self.flow_id)
        refreshed = GraphImporter.to_graph(nodes, flow_id=self.flow_id)
        refreshed.revision = JsonSerializer.fingerprint(nodes)

        missing = False
        for node in refreshed.nodes.values():
            if node.content.node_key in positions:
                node.position = positions[node.content.node_key]
            else:
                missing = True
        if missing and self.layout is not None:
            GraphEditor(refreshed, layout=self.layout).auto_layout()
        return refreshed

