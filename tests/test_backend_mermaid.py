"""Tests for the Mermaid backend exporter."""

import pytest
from botflow.backend.mermaid import MermaidExporter
from botflow.core.ir import FlowGraph, NodeContent, VisualEdge, VisualNode
from botflow.frontend.importer import GraphImporter


class TestMermaidExporter:

    @pytest.fixture
    def graph(self, property_nodes):
        return GraphImporter.to_graph(property_nodes, flow_id="flow-1")

    def test_header_and_direction(self, graph):
        assert MermaidExporter.to_mermaid(graph).startswith("graph LR")
        assert MermaidExporter.to_mermaid(graph, direction="TD").startswith("graph TD")

    def test_node_shapes(self, graph):
        output = MermaidExporter.to_mermaid(graph, include_messages=False)

        assert '    welcome["welcome"]' in output
        assert '    menu("menu")' in output
        assert '    catalog[["catalog"]]' in output

    def test_edges_carry_item_labels(self, graph):
        output = MermaidExporter.to_mermaid(graph)

        assert "    welcome --> menu" in output
        assert "    menu -- Buy --> catalog" in output
        assert "    catalog -- 2BHK --> agent" in output

    def test_messages_included(self, graph):
        output = MermaidExporter.to_mermaid(graph)
        assert "<i>Hi! Welcome to Acme Homes.</i>" in output

    def test_special_characters(self):
        graph = FlowGraph()
        graph.add_node(VisualNode("ask-1", NodeContent("ask (1)", message_text='Say "yes"')))
        graph.add_node(VisualNode("b", NodeContent("b")))
        graph.add_edge(VisualEdge("ask-1", "b", label="Yes (sure)"))

        output = MermaidExporter.to_mermaid(graph)

        assert 'ask_1["ask #40;1#41;<br/><i>Say #quot;yes#quot;</i>"]' in output
        assert "ask_1 -- Yes #40;sure#41; --> b" in output

    def test_dangling_edges_are_not_drawn(self):
        graph = FlowGraph()
        graph.add_node(VisualNode("a", NodeContent("a")))
        graph.add_edge(VisualEdge("a", "ghost"))

        assert "ghost" not in MermaidExporter.to_mermaid(graph)

    def test_similar_keys_stay_separate_nodes(self):
        graph = FlowGraph()
        graph.add_node(VisualNode("a-b", NodeContent("a-b")))
        graph.add_node(VisualNode("a_b", NodeContent("a_b")))
        graph.add_edge(VisualEdge("a-b", "a_b"))

        output = MermaidExporter.to_mermaid(graph, include_messages=False)

        assert '    a_b["a-b"]' in output
        assert '    a_b_1["a_b"]' in output
        assert "    a_b --> a_b_1" in output

    def test_reserved_word_is_renamed(self):
        graph = FlowGraph()
        graph.add_node(VisualNode("end", NodeContent("end")))

        assert '    end_["end"]' in MermaidExporter.to_mermaid(graph, include_messages=False)
