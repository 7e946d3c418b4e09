"""Stateful operations over a flow's visual graph."""

from .editor import GraphEditor, Viewport, VIEWING, EDITING_NODE, EDITING_EDGE

__all__ = [
    "GraphEditor",
    "Viewport",
    "VIEWING",
    "EDITING_NODE",
    "EDITING_EDGE",
]
