"""Graph layer - incremental construction and focus handling."""
from graph.builder import CancellationToken, GraphBuilder, DEFAULT_EXCLUDED_ADDRESSES
from graph.focus import FocusController

__all__ = ["CancellationToken", "GraphBuilder", "DEFAULT_EXCLUDED_ADDRESSES", "FocusController"]
