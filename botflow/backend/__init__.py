"""Backends that consume a flow's visual graph."""

from botflow.backend.exporter import GraphExporter
from botflow.backend.graphviz import GraphvizExporter
from botflow.backend.layout import GraphvizLayout
from botflow.backend.mermaid import MermaidExporter
from botflow.backend.svg import SvgExporter

__all__ = [
    "GraphExporter",
    "GraphvizExporter",
    "GraphvizLayout",
    "MermaidExporter",
    "SvgExporter",
]
