"""Dependency Injection Container - Wires up the application."""
from pathlib import Path
from collections.abc import Callable

from config.settings import Settings
from ports.transactions import TransactionSourcePort
from ports.storage import KeyValueStorePort
from ports.layout import LayoutPort
from graph.builder import GraphBuilder
from graph.focus import FocusController
from persistence.graph_state_store import GraphStateStore, get_graph_state_store


class Container:
    """Dependency Injection Container."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()
        self._source: TransactionSourcePort | None = None
        self._storage: KeyValueStorePort | None = None
        self._layout: LayoutPort | None = None
        self._state_store: GraphStateStore | None = None

    @property
    def source(self) -> TransactionSourcePort:
        if self._source is None:
            if (self.settings.data_source or "").strip().lower() == "mock":
                from adapters.mock_adapters import MockTransactionSource
                print("Using mock transaction source")
                self._source = MockTransactionSource()
                return self._source

            from adapters.explorer_api_source import ExplorerApiSource
            print(f"Using explorer API at {self.settings.explorer_base_url}")
            self._source = ExplorerApiSource(
                base_url=self.settings.explorer_base_url,
                timeout=self.settings.request_timeout,
                prefer_transfers=self.settings.prefer_transfers,
            )
        return self._source

    @property
    def storage(self) -> KeyValueStorePort:
        if self._storage is None:
            backend = (self.settings.storage_backend or "").strip().lower()
            if backend == "memory":
                from adapters.mock_adapters import InMemoryKeyValueStore
                print("Using in-memory state storage (nothing survives the process)")
                self._storage = InMemoryKeyValueStore(quota_bytes=self.settings.storage_quota_bytes)
            else:
                from adapters.local_storage import LocalStorageAdapter
                self._storage = LocalStorageAdapter(
                    base_path=Path(self.settings.storage_dir),
                    quota_bytes=self.settings.storage_quota_bytes,
                )
        return self._storage

    @property
    def layout(self) -> LayoutPort:
        if self._layout is None:
            from adapters.networkx_layout import NetworkXLayoutAdapter
            self._layout = NetworkXLayoutAdapter(seed=self.settings.layout_seed)
        return self._layout

    @property
    def state_store(self) -> GraphStateStore:
        if self._state_store is None:
            self._state_store = get_graph_state_store(storage=self.storage, settings=self.settings)
        return self._state_store

    def new_builder(self) -> GraphBuilder:
        """One builder per exploration session."""
        return GraphBuilder(
            source=self.source,
            layout=self.layout,
            max_depth=self.settings.max_depth,
            fetch_limit=self.settings.fetch_limit,
            eager_depth=self.settings.eager_depth,
            max_accounts_per_tx=self.settings.max_accounts_per_tx,
            excluded_addresses=self.settings.excluded_address_set,
        )

    def new_focus_controller(
        self,
        builder: GraphBuilder,
        on_focus_changed: Callable[[str], None] | None = None,
    ) -> FocusController:
        return FocusController(
            builder,
            on_focus_changed=on_focus_changed,
            debounce_seconds=self.settings.focus_debounce_ms / 1000,
        )

