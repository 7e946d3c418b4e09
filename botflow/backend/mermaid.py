import re
from typing import Dict

from botflow.core.ir import FlowGraph, BUTTONS, LIST


class MermaidExporter:
    """Exports a FlowGraph to Mermaid.js syntax."""

    # Mermaid shape syntax: text uses a rectangle, buttons a rounded box, lists a subroutine box
    _SHAPES = {
        "text": ('["', '"]'),
        BUTTONS: ('("', '")'),
        LIST: ('[["', '"]]'),
    }

    @staticmethod
    def _sanitize(text: str) -> str:
        """Escape special characters for Mermaid syntax."""
        return text.replace('"', '#quot;').replace("(", "#40;").replace(")", "#41;")

    @staticmethod
    def _node_refs(graph: FlowGraph) -> Dict[str, str]:
        """
        Mermaid ids may not contain spaces or punctuation.

        Each node id is reduced to word characters; ids that end up equal
        ("a-b" and "a_b") get a numeric suffix so they stay separate nodes.
        """
        refs: Dict[str, str] = {}
        used = set()
        for node_id in graph.nodes:
            base = re.sub(r'[^A-Za-z0-9_]', '_', node_id) or "node"
            if base.lower() == "end":
                # Reserved word in Mermaid flowcharts
                base = f"{base}_"
            ref = base
            n = 1
            while ref in used:
                ref = f"{base}_{n}"
                n += 1
            used.add(ref)
            refs[node_id] = ref
        return refs

    @staticmethod
    def _format_node(ref: str, label: str, kind: str) -> str:
        """Format a node with the shape for its message kind."""
        left, right = MermaidExporter._SHAPES.get(kind, MermaidExporter._SHAPES["text"])
        return f'{ref}{left}{label}{right}'

    @staticmethod
    def to_mermaid(graph: FlowGraph, direction: str = "LR", include_messages: bool = True) -> str:
        """
        Convert a flow graph to Mermaid diagram syntax.

        Args:
            graph: The flow graph to convert
            direction: Graph direction (LR, TD, etc.)
            include_messages: If True, include each node's message text in its label
        """
        lines = [f"graph {direction}"]
        refs = MermaidExporter._node_refs(graph)

        for node in graph.nodes.values():
            label = MermaidExporter._sanitize(node.label)

            if include_messages and node.content.message_text:
                message = MermaidExporter._sanitize(node.content.message_text).replace('\n', '<br/>')
                label = f"{label}<br/><i>{message}</i>"

            lines.append("    " + MermaidExporter._format_node(refs[node.id], label, node.content.message_kind))

        for edge in graph.renderable_edges():
            source = refs[edge.source_id]
            target = refs[edge.target_id]
            if edge.label:
                clean_label = MermaidExporter._sanitize(edge.label)
                lines.append(f"    {source} -- {clean_label} --> {target}")
            else:
                lines.append(f"    {source} --> {target}")

        return "\n".join(lines)
