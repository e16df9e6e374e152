"""Persistence layer - two-tier exploration state cache."""
from persistence.graph_state_store import (
    GraphStateStore,
    get_graph_state_store,
    reset_graph_state_store,
)

__all__ = ["GraphStateStore", "get_graph_state_store", "reset_graph_state_store"]
