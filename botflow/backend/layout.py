"""Automatic layout of a flow graph using Graphviz.

Positions are computed by the ``dot`` executable. Every node is laid out
with the same placeholder size, so the result depends only on the graph's
structure and is identical for identical input.

Requirements:
    Graphviz must be installed on your system:
    - macOS: brew install graphviz
    - Ubuntu/Debian: sudo apt-get install graphviz
    - Windows: Download from https://graphviz.org/download/
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import graphviz

from botflow.core.ir import FlowGraph
from botflow.exceptions import LayoutError

logger = logging.getLogger(__name__)

# Graphviz measures node sizes in inches and positions in points.
_POINTS_PER_INCH = 72.0

DIRECTIONS = ("LR", "RL", "TB", "BT")

Position = Tuple[float, float]


class GraphvizLayout:
    """
    Assigns positions to nodes so links flow in one direction.

    Positions are the top-left corner of each node, with y growing downward
    as on screen.

    Example:
        layout = GraphvizLayout(direction="LR")
        positions = layout.compute(["a", "b"], [("a", "b")])
    """

    NODE_WIDTH = 300.0
    NODE_HEIGHT = 150.0

    def __init__(self, direction: str = "LR", node_width: float = NODE_WIDTH, node_height: float = NODE_HEIGHT):
        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown layout direction: {direction}. Use: {', '.join(DIRECTIONS)}")
        self.direction = direction
        self.node_width = node_width
        self.node_height = node_height

    @staticmethod
    def internal_names(node_ids: Iterable[str]) -> Dict[str, str]:
        """
        Map node ids to the names used inside the DOT graph.

        Node ids are user-edited keys; DOT reads "a:b" in an edge as node a,
        port b, so the graph only ever sees n0, n1, ...
        """
        names: Dict[str, str] = {}
        for node_id in node_ids:
            if node_id not in names:
                names[node_id] = f"n{len(names)}"
        return names

    def to_digraph(self, node_ids: Iterable[str], edges: Iterable[Tuple[str, str]]) -> graphviz.Digraph:
        dot = graphviz.Digraph(name="layout")
        dot.attr(rankdir=self.direction)
        dot.attr("node", shape="box", fixedsize="true",
                 width=f"{self.node_width / _POINTS_PER_INCH:.4f}",
                 height=f"{self.node_height / _POINTS_PER_INCH:.4f}",
                 label="")

        names = self.internal_names(node_ids)
        for name in names.values():
            dot.node(name)

        for source, target in edges:
            # Edges to unknown nodes would make dot invent extra nodes
            if source in names and target in names:
                dot.edge(names[source], names[target])

        return dot

    def compute(self, node_ids: Iterable[str], edges: Iterable[Tuple[str, str]]) -> Dict[str, Position]:
        node_ids = list(node_ids)
        if not node_ids:
            return {}

        names = self.internal_names(node_ids)
        dot = self.to_digraph(node_ids, edges)
        try:
            output = dot.pipe(format="json")
        except graphviz.ExecutableNotFound as e:
            raise LayoutError(
                "Graphviz executable not found. "
                "Please install Graphviz: https://graphviz.org/download/"
            ) from e
        except graphviz.CalledProcessError as e:
            raise LayoutError(f"Graphviz layout failed: {e}") from e

        node_ids_by_name = {name: node_id for node_id, name in names.items()}
        positions = self.positions_from_json(json.loads(output.decode("utf-8")), node_ids_by_name)
        missing = [n for n in node_ids if n not in positions]
        if missing:
            raise LayoutError(f"Graphviz returned no position for: {', '.join(missing)}")
        return positions

    def positions_from_json(self, data: Dict[str, Any],
                            node_ids_by_name: Optional[Dict[str, str]] = None) -> Dict[str, Position]:
        """
        Read node centers from Graphviz JSON output.

        Graphviz puts the origin at the bottom-left; the bounding box height
        flips y so that the result grows downward, and half the node size is
        subtracted to get the top-left corner. When node_ids_by_name is given,
        DOT names are translated back and unknown names are skipped.
        """
        bb = [float(v) for v in data.get("bb", "0,0,0,0").split(",")]
        height = bb[3]

        positions: Dict[str, Position] = {}
        for obj in data.get("objects", []):
            if "pos" not in obj or "name" not in obj:
                continue
            node_id = obj["name"]
            if node_ids_by_name is not None:
                node_id = node_ids_by_name.get(node_id)
                if node_id is None:
                    continue
            x, y = (float(v) for v in obj["pos"].split(","))
            positions[node_id] = (
                x - self.node_width / 2,
                (height - y) - self.node_height / 2,
            )
        return positions

    def apply(self, graph: FlowGraph) -> FlowGraph:
        """Replace every node position of the graph."""
        edges: List[Tuple[str, str]] = [(e.source_id, e.target_id) for e in graph.renderable_edges()]
        positions = self.compute(graph.nodes.keys(), edges)
        for node_id, position in positions.items():
            graph.nodes[node_id].position = position
        logger.debug("Laid out %d nodes (%s)", len(positions), self.direction)
        return graph
