"""Domain layer - Core entities, the graph arena and errors."""
from domain.exceptions import (
    ExplorerError,
    InvalidGraphError,
    StateValidationError,
    AdapterError,
    FetchFailure,
    StorageError,
    StorageQuotaExceeded,
)
from domain.models import (
    AccountRef,
    BalanceChange,
    Transaction,
    Node,
    Edge,
    Viewport,
    GraphState,
    EnhancedGraphState,
    SavedGraphSummary,
)
from domain.graph_models import TransactionGraph, edge_id, format_sol_change

__all__ = [
    "ExplorerError",
    "InvalidGraphError",
    "StateValidationError",
    "AdapterError",
    "FetchFailure",
    "StorageError",
    "StorageQuotaExceeded",
    "AccountRef",
    "BalanceChange",
    "Transaction",
    "Node",
    "Edge",
    "Viewport",
    "GraphState",
    "EnhancedGraphState",
    "SavedGraphSummary",
    "TransactionGraph",
    "edge_id",
    "format_sol_change",
]
