"""Core data structures for botflow flows."""

from .ir import (
    BotFlow,
    Button,
    FlowGraph,
    FlowNode,
    ListItem,
    ListSection,
    NodeContent,
    VisualEdge,
    VisualNode,
    DEFAULT_SLOT,
    MAX_BUTTONS,
    MAX_LIST_ITEMS,
    button_slot,
    list_slot,
)
from .serialization import JsonSerializer

__all__ = [
    "BotFlow",
    "Button",
    "FlowGraph",
    "FlowNode",
    "ListItem",
    "ListSection",
    "NodeContent",
    "VisualEdge",
    "VisualNode",
    "DEFAULT_SLOT",
    "MAX_BUTTONS",
    "MAX_LIST_ITEMS",
    "button_slot",
    "list_slot",
    "JsonSerializer",
]
