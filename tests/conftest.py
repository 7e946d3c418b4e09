import sys
import os
import pytest
sys.path.append(os.path.dirname(__file__))

from sample_flow import create_property_flow_nodes, FakeBackend

from botflow.client import FlowApiClient
from botflow.store import InMemoryNodeStore


class GridLayout:
    """Deterministic stand-in for GraphvizLayout: one row, 400px apart."""

    def __init__(self):
        self.calls = 0

    def compute(self, node_ids, edges):
        self.calls += 1
        return {node_id: (i * 400.0, 0.0) for i, node_id in enumerate(node_ids)}


@pytest.fixture
def property_nodes():
    return create_property_flow_nodes()


@pytest.fixture
def store(property_nodes):
    store = InMemoryNodeStore()
    store.add("flow-1", property_nodes)
    return store


@pytest.fixture
def grid_layout():
    return GridLayout()


@pytest.fixture
def backend(property_nodes):
    backend = FakeBackend()
    backend.store.add("flow-1", property_nodes)
    return backend


@pytest.fixture
def api_client(backend):
    client = FlowApiClient("http://test/api", token="secret", transport=backend.transport())
    yield client
    client.close()
