"""Adapters layer - Concrete implementations of ports."""
from adapters.explorer_api_source import ExplorerApiSource
from adapters.local_storage import LocalStorageAdapter
from adapters.networkx_layout import NetworkXLayoutAdapter
from adapters.mock_adapters import MockTransactionSource, InMemoryKeyValueStore, MockLayoutAdapter

__all__ = [
    "ExplorerApiSource",
    "LocalStorageAdapter",
    "NetworkXLayoutAdapter",
    "MockTransactionSource",
    "InMemoryKeyValueStore",
    "MockLayoutAdapter",
]
