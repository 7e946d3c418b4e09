"""
Frontends that produce a flow's visual graph.

- GraphImporter: builds the editable graph from persisted flow nodes
"""

from .importer import GraphImporter

__all__ = [
    "GraphImporter",
]
