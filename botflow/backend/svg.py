"""SVG backend for bot flows using Graphviz.

Requirements:
    Graphviz must be installed on your system:
    - macOS: brew install graphviz
    - Ubuntu/Debian: sudo apt-get install graphviz
    - Windows: Download from https://graphviz.org/download/

Example:
    >>> graph = FlowSync(store, "flow-1").load()
    >>> svg_string = SvgExporter.to_svg(graph)
    >>> with open("flow.svg", "w") as f:
    ...     f.write(svg_string)
"""

import graphviz

from botflow.backend.graphviz import GraphvizExporter
from botflow.core.ir import FlowGraph
from botflow.exceptions import LayoutError


__all__ = ["SvgExporter"]


class SvgExporter:
    """Exports a FlowGraph to SVG format using Graphviz."""

    @staticmethod
    def to_svg(graph: FlowGraph, include_messages: bool = True) -> str:
        """
        Convert a flow graph to an SVG string using Graphviz.

        Raises:
            LayoutError: If the Graphviz executable is not available
        """
        digraph = GraphvizExporter.to_digraph(graph, include_messages=include_messages)
        try:
            svg_bytes = digraph.pipe(format='svg')
        except graphviz.ExecutableNotFound as e:
            raise LayoutError(
                "Graphviz executable not found. "
                "Please install Graphviz: https://graphviz.org/download/"
            ) from e
        return svg_bytes.decode('utf-8')
