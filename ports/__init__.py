"""Ports layer - Abstract interfaces for external dependencies."""
from ports.transactions import TransactionSourcePort
from ports.storage import KeyValueStorePort
from ports.layout import LayoutPort

__all__ = ["TransactionSourcePort", "KeyValueStorePort", "LayoutPort"]
