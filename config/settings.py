"""Application settings using Pydantic."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # === Data Source Configuration ===
    # "api" talks to an explorer REST API, "mock" serves canned data.
    data_source: str = "api"
    explorer_base_url: str = "http://localhost:3000"
    request_timeout: float = 15.0
    # Try the transfers endpoint before the generic transactions endpoint.
    prefer_transfers: bool = True

    # === Graph Construction ===
    max_depth: int = 7
    fetch_limit: int = 10
    # Newly discovered accounts are expanded eagerly only below this depth.
    eager_depth: int = 2
    max_accounts_per_tx: int = 20
    # Comma-separated addresses never added to the graph, on top of the built-in program list.
    excluded_addresses: str = ""
    focus_debounce_ms: int = 300
    layout_seed: int = 42

    # === State Cache ===
    storage_backend: str = "local"
    storage_dir: str = "output/graph-state"
    storage_quota_bytes: int = 10_000_000
    storage_namespace: str = "txgraph-state"
    memory_max_entries: int = 100
    memory_budget_bytes: int = 50_000_000
    memory_ttl_seconds: int = 30 * 60
    durable_max_bytes: int = 5_000_000
    retention_days: int = 7
    autosave_interval_seconds: float = 2.0
    autosave_node_delta: int = 3

    # === Logging ===
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def excluded_address_set(self) -> set[str]:
        return {a.strip() for a in self.excluded_addresses.split(",") if a.strip()}
