"""
botflow - Edit WhatsApp Business chatbot flows as graphs.

Main APIs:
- GraphImporter: Builds an editable graph from a flow's persisted nodes
- GraphEditor: Selection, node/edge edits and automatic layout
- GraphExporter: Turns the edited graph back into persisted nodes
- FlowSync: Loads a flow and saves it back, rolling back on failure

Persistence:
- FlowApiClient: REST client for the bot-flow backend
- InMemoryNodeStore: Dict-backed store for offline work and tests

Backends:
- GraphvizLayout: Automatic layout (requires Graphviz)
- MermaidExporter: Mermaid.js diagram syntax
- GraphvizExporter: Graphviz DOT format
- SvgExporter: SVG format (requires Graphviz)
"""

from botflow.core.ir import (
    BotFlow, Button, FlowGraph, FlowNode, ListItem, ListSection, NodeContent,
    VisualEdge, VisualNode, DEFAULT_SLOT, MAX_BUTTONS, MAX_LIST_ITEMS,
    button_slot, list_slot,
)
from botflow.core.serialization import JsonSerializer
from botflow.frontend import GraphImporter
from botflow.engine import GraphEditor, Viewport
from botflow.backend import GraphExporter, GraphvizLayout, MermaidExporter, GraphvizExporter, SvgExporter
from botflow.store import NodeStore, InMemoryNodeStore
from botflow.client import FlowApiClient
from botflow.sync import FlowSync, SyncPlan, SyncResult
from botflow.config import Config, load_config

__all__ = [
    # Core IR
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
    # Serialization
    "JsonSerializer",
    # Graph
    "GraphImporter",
    "GraphEditor",
    "Viewport",
    "GraphExporter",
    # Persistence
    "NodeStore",
    "InMemoryNodeStore",
    "FlowApiClient",
    "FlowSync",
    "SyncPlan",
    "SyncResult",
    # Backends
    "GraphvizLayout",
    "MermaidExporter",
    "GraphvizExporter",
    "SvgExporter",
    # Config
    "Config",
    "load_config",
]
