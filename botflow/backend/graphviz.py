import graphviz
from typing import Optional
from botflow.backend.layout import GraphvizLayout
from botflow.core.ir import FlowGraph, BUTTONS, LIST


class GraphvizExporter:
    """Exports a FlowGraph to Graphviz/Dot format or renders it."""

    # Message kind to shape mapping
    _SHAPES = {
        "text": "box",
        BUTTONS: "component",
        LIST: "tab",
    }

    @staticmethod
    def _escape_html(text: str) -> str:
        """Escape HTML special characters for Graphviz."""
        return (
            text.replace('&', '&amp;')
            .replace('<', '&lt;')
            .replace('>', '&gt;')
            .replace('"', '&quot;')
        )

    @staticmethod
    def _html_label(label: str, message: Optional[str] = None) -> str:
        """Generate HTML-like label for a node, optionally including its message text."""
        label = GraphvizExporter._escape_html(label)
        if message:
            message_html = GraphvizExporter._escape_html(message).replace('\n', '<BR/>')
            return (
                f'<<TABLE BORDER="0" CELLBORDER="0" CELLSPACING="4" CELLPADDING="8">'
                f'<TR><TD ALIGN="LEFT"><B>{label}</B></TD></TR>'
                f'<TR><TD ALIGN="LEFT" BALIGN="LEFT"><FONT POINT-SIZE="10">{message_html}</FONT></TD></TR>'
                f'</TABLE>>'
            )
        else:
            return f'<<B>{label}</B>>'

    @staticmethod
    def to_digraph(graph: FlowGraph, include_messages: bool = True, direction: str = "LR") -> graphviz.Digraph:
        """
        Converts FlowGraph to a graphviz.Digraph object.

        Args:
            graph: The flow graph to convert
            include_messages: If True, include each node's message text in its label
            direction: Graphviz rankdir
        """
        name = graph.flow_id or "flow"
        dot = graphviz.Digraph(name=name, comment=name)
        dot.attr(rankdir=direction)

        # Node ids are free text; DOT would read "a:b" in an edge as a port
        names = GraphvizLayout.internal_names(graph.nodes)
        for node in graph.nodes.values():
            shape = GraphvizExporter._SHAPES.get(node.content.message_kind, "box")
            message = node.content.message_text if include_messages else None
            label = GraphvizExporter._html_label(node.label, message)
            dot.node(names[node.id], label=label, shape=shape)

        # Dangling links have nothing to point at
        for edge in graph.renderable_edges():
            dot.edge(names[edge.source_id], names[edge.target_id], label=edge.label or "")

        return dot

    @staticmethod
    def to_dot(graph: FlowGraph) -> str:
        """Returns the DOT source string for the flow."""
        return GraphvizExporter.to_digraph(graph).source
