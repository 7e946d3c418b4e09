"""Tests for the Graphviz backend exporter."""

import pytest
import graphviz
from botflow.backend.graphviz import GraphvizExporter
from botflow.core.ir import FlowGraph, FlowNode, NodeContent, VisualEdge, VisualNode
from botflow.frontend.importer import GraphImporter


class TestGraphvizExporter:
    """Tests for GraphvizExporter functionality."""

    @pytest.fixture
    def graph(self, property_nodes):
        return GraphImporter.to_graph(property_nodes, flow_id="flow-1")

    def test_to_digraph_structure(self, graph):
        dot = GraphvizExporter.to_digraph(graph)

        assert isinstance(dot, graphviz.Digraph)
        assert dot.name == "flow-1"

        source = dot.source
        assert "<B>welcome</B>" in source
        assert "label=Buy" in source
        assert 'label="Talk to us"' in source
        assert "rankdir=LR" in source

    def test_shapes_follow_message_kind(self, graph):
        source = GraphvizExporter.to_digraph(graph).source

        assert "shape=box" in source
        assert "shape=component" in source
        assert "shape=tab" in source

    def test_messages_can_be_left_out(self, graph):
        with_messages = GraphvizExporter.to_digraph(graph).source
        without = GraphvizExporter.to_digraph(graph, include_messages=False).source

        assert "Welcome to Acme Homes" in with_messages
        assert "Welcome to Acme Homes" not in without

    def test_escapes_html(self):
        graph = FlowGraph()
        graph.add_node(VisualNode("a", NodeContent("a", message_text="1 < 2 & \"3\"")))

        source = GraphvizExporter.to_dot(graph)

        assert "1 &lt; 2 &amp; &quot;3&quot;" in source

    def test_dangling_edges_are_not_drawn(self):
        graph = FlowGraph()
        graph.add_node(VisualNode("a", NodeContent("a")))
        graph.add_edge(VisualEdge("a", "ghost"))

        assert "ghost" not in GraphvizExporter.to_dot(graph)

    def test_keys_with_colons_are_not_ports(self):
        graph = GraphImporter.to_graph([
            FlowNode("step:1", default_next_node_key="end"),
            FlowNode("end"),
        ])

        source = GraphvizExporter.to_dot(graph)

        assert "n0 -> n1" in source
        assert "step:1 ->" not in source
        assert "<B>step:1</B>" in source

    def test_unnamed_graph(self):
        assert GraphvizExporter.to_digraph(FlowGraph()).name == "flow"
