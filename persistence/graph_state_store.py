"""
Two-tier cache of exploration state, keyed by focused transaction signature.

Memory tier: an LRU of EnhancedGraphState objects, bounded by entry count,
with a per-entry size guard and an idle TTL. Durable tier: JSON records in a
KeyValueStorePort under ``{namespace}`` (latest state) and
``{namespace}-{signature}`` (per-signature state).

Sets live only in memory; records store ``expandedNodes`` as an array and
are converted back when loaded.

Every public method degrades instead of raising when the durable tier fails,
so exploration keeps working with storage unavailable.
"""
import json
import logging
import math
import time
from collections import OrderedDict
from collections.abc import Callable

from pydantic import ValidationError

from config.settings import Settings
from ports.storage import KeyValueStorePort
from domain.models import EnhancedGraphState, GraphState, SavedGraphSummary
from domain.exceptions import StateValidationError, StorageError, StorageQuotaExceeded

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000
_ENHANCED_FIELDS = ("expandedNodes", "expansionDepth", "lastTouched")


def _finite_number(value) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


class GraphStateStore:
    """
    Persists and restores exploration state across navigation events.

    Per signature an entry moves through:
    absent -> in memory -> LRU candidate -> durable only -> absent
    (expired by retention or TTL, evicted, or deleted).
    """

    def __init__(
        self,
        storage: KeyValueStorePort | None = None,
        namespace: str = "txgraph-state",
        max_entries: int = 100,
        memory_budget_bytes: int = 50_000_000,
        memory_ttl_seconds: float = 30 * 60,
        durable_max_bytes: int = 5_000_000,
        retention_days: float = 7,
        autosave_interval_seconds: float = 2.0,
        autosave_node_delta: int = 3,
        max_depth: int = 7,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the state store.

        Args:
            storage: Durable key-value tier; None runs memory-only
            namespace: Key prefix of every durable record
            max_entries: Memory tier capacity (LRU beyond it)
            memory_budget_bytes: Total memory budget; one entry may use 1% of it
            memory_ttl_seconds: Idle time after which a memory entry expires
            durable_max_bytes: Payload size above which only a minimal record is written
            retention_days: Durable records older than this are swept
            autosave_interval_seconds: Minimum time between autosaves of one signature
            autosave_node_delta: Node-count change that forces an autosave
            max_depth: Upper bound of recorded expansion depths
            clock: Time source in epoch seconds
        """
        self.storage = storage
        self.namespace = namespace
        self.max_entries = max_entries
        self.memory_budget_bytes = memory_budget_bytes
        self.memory_ttl_ms = int(memory_ttl_seconds * 1000)
        self.durable_max_bytes = durable_max_bytes
        self.retention_ms = int(retention_days * DAY_MS)
        self.autosave_interval_ms = int(autosave_interval_seconds * 1000)
        self.autosave_node_delta = autosave_node_delta
        self.max_depth = max_depth
        self.clock = clock

        self._memory: OrderedDict[str, EnhancedGraphState] = OrderedDict()
        self._last_persist: dict[str, int] = {}
        self._last_autosave_signature: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings, storage: KeyValueStorePort | None = None) -> "GraphStateStore":
        return cls(
            storage=storage,
            namespace=settings.storage_namespace,
            max_entries=settings.memory_max_entries,
            memory_budget_bytes=settings.memory_budget_bytes,
            memory_ttl_seconds=settings.memory_ttl_seconds,
            durable_max_bytes=settings.durable_max_bytes,
            retention_days=settings.retention_days,
            autosave_interval_seconds=settings.autosave_interval_seconds,
            autosave_node_delta=settings.autosave_node_delta,
            max_depth=settings.max_depth,
        )

    # === Keys & helpers ===

    def key_for(self, signature: str | None = None) -> str:
        return f"{self.namespace}-{signature}" if signature else self.namespace

    def _owns(self, key: str) -> bool:
        return key == self.namespace or key.startswith(f"{self.namespace}-")

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def estimate_memory_usage(self, state: EnhancedGraphState) -> int:
        """Rough size estimate: two bytes per serialized character."""
        return len(json.dumps(state.to_record())) * 2

    def is_cached(self, signature: str) -> bool:
        """Whether the signature currently sits in the memory tier."""
        return signature in self._memory

    def memory_signatures(self) -> list[str]:
        """Memory tier keys, least recently touched first."""
        return list(self._memory)

    def _coerce(self, state) -> GraphState | None:
        """Validate caller input; warn and return None when it is unusable."""
        if isinstance(state, GraphState):
            return state
        if not isinstance(state, dict):
            logger.warning("Invalid state object provided: %s", type(state).__name__)
            return None

        focused = state.get("focusedTransaction", state.get("focused_transaction"))
        if not isinstance(focused, str) or not focused:
            logger.warning("Invalid focusedTransaction in state, skipping save")
            return None
        if not isinstance(state.get("nodes"), list) or not isinstance(state.get("edges"), list):
            logger.warning("Invalid nodes or edges in state for %s, skipping save", focused)
            return None

        model = EnhancedGraphState if any(f in state for f in _ENHANCED_FIELDS) else GraphState
        try:
            return model.model_validate(self._repair_legacy(state))
        except ValidationError as e:
            logger.warning("State for %s failed validation: %s", focused, e)
            return None

    @staticmethod
    def _repair_legacy(data: dict) -> dict:
        data = dict(data)
        if "viewport" not in data and "viewportState" in data:
            data["viewport"] = data.pop("viewportState")
        return data

    def _parse_record(self, data, model: type[GraphState]) -> GraphState:
        """Validate a durable record and repair older shapes."""
        if not isinstance(data, dict):
            raise StateValidationError("record", "object", type(data).__name__)
        data = self._repair_legacy(data)

        # Minimal fallback records carry no element lists.
        if "nodes" not in data and "edges" not in data and "viewport" in data:
            data["nodes"], data["edges"] = [], []

        focused = data.get("focusedTransaction")
        if not isinstance(focused, str) or not focused:
            raise StateValidationError("focusedTransaction", "non-empty string", repr(focused))
        for field in ("nodes", "edges"):
            if not isinstance(data.get(field), list):
                raise StateValidationError(field, "array", type(data.get(field)).__name__)

        if model is EnhancedGraphState:
            if not isinstance(data.get("expandedNodes"), list):
                data["expandedNodes"] = []
            depths = data.get("expansionDepth")
            if not isinstance(depths, dict):
                depths = {}
            data["expansionDepth"] = {
                k: min(int(v), self.max_depth) for k, v in depths.items()
                if _finite_number(v)
            }
        return model.model_validate(data)

    def _expired(self, state: GraphState) -> bool:
        return state.timestamp is not None and self._now_ms() - state.timestamp > self.retention_ms

    def _remove_quietly(self, key: str) -> None:
        if self.storage is None:
            return
        try:
            self.storage.remove(key)
        except StorageError as e:
            logger.error("Failed to remove %s: %s", key, e)

    def _read_durable(self, key: str, model: type[GraphState]) -> GraphState | None:
        """Read, validate and repair one durable record; corrupt records are deleted."""
        if self.storage is None:
            return None
        try:
            raw = self.storage.get(key)
        except StorageError as e:
            logger.error("Error accessing durable storage for %s: %s", key, e)
            return None
        if raw is None:
            return None

        try:
            state = self._parse_record(json.loads(raw), model)
        except (ValueError, OverflowError, ValidationError, StateValidationError) as e:
            logger.warning("Discarding corrupt graph state %s: %s", key, e)
            self._remove_quietly(key)
            return None

        if self._expired(state):
            logger.info("Graph state %s is past retention, removing", key)
            self._remove_quietly(key)
            return None
        return state

    def _fresh_entry(self, signature: str, now: int) -> EnhancedGraphState | None:
        """Memory entry for the signature, dropping it once idle past the TTL."""
        cached = self._memory.get(signature)
        if cached is None:
            return None
        if self.memory_ttl_ms and now - (cached.last_touched or 0) > self.memory_ttl_ms:
            logger.info("Memory entry for %s expired, falling back to durable tier", signature)
            del self._memory[signature]
            return None
        return cached

    def _remember(self, signature: str, state: EnhancedGraphState) -> bool:
        size = self.estimate_memory_usage(state)
        if size > self.memory_budget_bytes / 100:
            logger.warning("State for %s too large (%d bytes), skipping memory cache", signature, size)
            # An older, smaller entry must not shadow the durable record.
            self._memory.pop(signature, None)
            return False
        self._memory[signature] = state
        self._memory.move_to_end(signature)
        self.trim_memory_cache()
        return True

    def _merge(self, state: GraphState, existing: EnhancedGraphState | None, now: int) -> EnhancedGraphState:
        """Apply new element/viewport data while keeping the deepest expansion bookkeeping."""
        expanded: set[str] = set()
        depths: dict[str, int] = {}
        if isinstance(state, EnhancedGraphState):
            expanded |= state.expanded_nodes
            depths.update(state.expansion_depth)
        if existing is not None:
            expanded |= existing.expanded_nodes
            for node_id, depth in existing.expansion_depth.items():
                depths[node_id] = max(depths.get(node_id, depth), depth)

        return EnhancedGraphState(
            focused_transaction=state.focused_transaction,
            nodes=list(state.nodes),
            edges=list(state.edges),
            viewport=state.viewport.model_copy(deep=True),
            title=state.title or (existing.title if existing else None),
            timestamp=state.timestamp if state.timestamp is not None else now,
            expanded_nodes=expanded,
            expansion_depth={k: min(v, self.max_depth) for k, v in depths.items()},
            last_touched=now,
        )

    def _write_durable(self, key: str, record: dict, state: GraphState) -> bool:
        if self.storage is None:
            return False

        minimal = {
            "focusedTransaction": state.focused_transaction,
            "viewport": state.viewport.model_dump(mode="json"),
            "timestamp": self._now_ms(),
        }
        payload = json.dumps(record, separators=(",", ":"))
        if len(payload) > self.durable_max_bytes:
            logger.warning("State %s too large for durable storage (%d bytes), saving minimal record",
                           key, len(payload))
            payload = json.dumps(minimal, separators=(",", ":"))

        try:
            self.storage.set(key, payload)
            return True
        except StorageQuotaExceeded as e:
            logger.warning("Storage quota exceeded writing %s: %s", key, e)
            self.cleanup_old_states()
            try:
                self.storage.set(key, json.dumps(minimal, separators=(",", ":")))
                return True
            except StorageError as retry_error:
                logger.error("Failed to save even minimal state for %s: %s", key, retry_error)
                return False
        except StorageError as e:
            logger.error("Failed to save %s to durable storage: %s", key, e)
            return False

    # === Public API ===

    def save_state(self, state: GraphState | dict, signature: str | None = None) -> bool:
        """
        Save a snapshot to the memory and durable tiers.

        Without a signature the snapshot becomes the latest-state record.
        With one, it is merged into any existing state for that signature.

        Returns:
            True if the snapshot was kept in at least one tier
        """
        parsed = self._coerce(state)
        if parsed is None:
            return False

        now = self._now_ms()
        if not signature:
            record = parsed.to_record()
            record.setdefault("timestamp", now)
            return self._write_durable(self.key_for(), record, parsed)

        existing = self._memory.get(signature)
        if existing is None:
            existing = self._read_durable(self.key_for(signature), EnhancedGraphState)
        enhanced = self._merge(parsed, existing, now)

        remembered = self._remember(signature, enhanced)
        persisted = self._write_durable(self.key_for(signature), enhanced.to_record(), parsed)
        if remembered or persisted:
            self._last_persist[signature] = now
        return remembered or persisted

    def load_state(self, signature: str | None = None) -> GraphState | None:
        """
        Load a snapshot: memory tier first, then the durable tier.

        Returns:
            EnhancedGraphState for a signature, GraphState for the latest
            state, or None when absent, expired or corrupt
        """
        if not signature:
            return self._read_durable(self.key_for(), GraphState)

        now = self._now_ms()
        cached = self._fresh_entry(signature, now)
        if cached is not None:
            cached.last_touched = now
            self._memory.move_to_end(signature)
            return cached.model_copy(deep=True)

        state = self._read_durable(self.key_for(signature), EnhancedGraphState)
        if state is None:
            return None
        state.last_touched = now
        self._remember(signature, state)
        return state.model_copy(deep=True)

    def auto_save(self, state: GraphState | dict) -> bool:
        """
        Save only when the snapshot changed meaningfully.

        Triggers: no cached state for the signature, the autosave interval
        elapsed, the node count moved by more than the configured delta, or
        the focus moved to another signature.

        Returns:
            True if a save happened
        """
        parsed = self._coerce(state)
        if parsed is None:
            return False
        if not parsed.nodes and not parsed.edges:
            return False

        signature = parsed.focused_transaction
        existing = self._memory.get(signature)
        now = self._now_ms()
        last = self._last_persist.get(signature)

        should_save = (
            existing is None
            or last is None
            or now - last > self.autosave_interval_ms
            or abs(len(existing.nodes) - len(parsed.nodes)) > self.autosave_node_delta
            or self._last_autosave_signature != signature
        )

        saved = False
        if should_save:
            saved = self.save_state(parsed, signature)
            self.save_state(parsed)
            self._last_autosave_signature = signature

        self.trim_memory_cache()
        return saved

    def trim_memory_cache(self) -> list[str]:
        """
        Evict least recently touched entries until within capacity.

        Returns:
            Signatures evicted from memory
        """
        evicted = []
        while len(self._memory) > self.max_entries:
            # Ties on lastTouched fall back to recency order.
            oldest = min(self._memory, key=lambda s: self._memory[s].last_touched or 0)
            del self._memory[oldest]
            evicted.append(oldest)
        if evicted:
            logger.debug("Evicted %d graph states from memory", len(evicted))
        return evicted

    def cleanup_old_states(self) -> int:
        """
        Remove durable records past retention or that fail to parse.

        Returns:
            Number of records removed
        """
        if self.storage is None:
            return 0
        try:
            keys = [k for k in self.storage.keys() if self._owns(k)]
        except StorageError as e:
            logger.error("Error during cleanup: %s", e)
            return 0

        cutoff = self._now_ms() - self.retention_ms
        removed = 0
        for key in keys:
            try:
                raw = self.storage.get(key)
            except StorageError as e:
                logger.error("Failed to read %s during cleanup: %s", key, e)
                continue
            if raw is None:
                continue

            try:
                data = json.loads(raw)
                timestamp = data.get("timestamp") if isinstance(data, dict) else None
                stale = not isinstance(data, dict) or (
                    isinstance(timestamp, (int, float)) and timestamp < cutoff
                )
            except ValueError:
                stale = True

            if stale:
                try:
                    self.storage.remove(key)
                    removed += 1
                except StorageError as e:
                    logger.error("Failed to remove key %s: %s", key, e)

        logger.info("Cleaned up %d old graph states", removed)
        return removed

    def has_state(self, signature: str) -> bool:
        if self._fresh_entry(signature, self._now_ms()) is not None:
            return True
        if self.storage is None:
            return False
        try:
            return self.storage.get(self.key_for(signature)) is not None
        except StorageError as e:
            logger.error("Error checking for graph state %s: %s", signature, e)
            return False

    def delete_graph(self, signature: str) -> bool:
        """Remove a signature from both tiers."""
        self._memory.pop(signature, None)
        self._last_persist.pop(signature, None)
        if self.storage is None:
            return True
        try:
            self.storage.remove(self.key_for(signature))
            return True
        except StorageError as e:
            logger.error("Error deleting graph state %s: %s", signature, e)
            return False

    def get_saved_graphs(self) -> list[SavedGraphSummary]:
        """List saved graphs, newest first."""
        prefix = f"{self.namespace}-"
        now = self._now_ms()
        summaries: dict[str, SavedGraphSummary] = {}

        keys: list[str] = []
        if self.storage is not None:
            try:
                keys = [k for k in self.storage.keys() if k.startswith(prefix)]
            except StorageError as e:
                logger.error("Error listing graph states: %s", e)

        for key in keys:
            signature = key[len(prefix):]
            try:
                raw = self.storage.get(key)
                data = json.loads(raw) if raw is not None else None
                if not isinstance(data, dict):
                    continue
                timestamp = data.get("timestamp")
                summaries[signature] = SavedGraphSummary(
                    signature=signature,
                    title=data.get("title") or f"{signature[:8]}...",
                    timestamp=int(timestamp) if _finite_number(timestamp) else now,
                )
            except (StorageError, ValueError, ValidationError) as e:
                logger.warning("Invalid graph state entry %s: %s", key, e)

        # States that never reached durable storage are still restorable.
        for signature, state in self._memory.items():
            if signature not in summaries:
                summaries[signature] = SavedGraphSummary(
                    signature=signature,
                    title=state.title or f"{signature[:8]}...",
                    timestamp=state.timestamp or now,
                )

        return sorted(summaries.values(), key=lambda s: s.timestamp, reverse=True)

    def clear_all_states(self) -> int:
        """
        Drop every state from both tiers.

        Returns:
            Number of durable records removed
        """
        self._memory.clear()
        self._last_persist.clear()
        self._last_autosave_signature = None
        if self.storage is None:
            return 0

        removed = 0
        try:
            keys = [k for k in self.storage.keys() if self._owns(k)]
        except StorageError as e:
            logger.error("Failed to clear graph states: %s", e)
            return 0
        for key in keys:
            try:
                if self.storage.remove(key):
                    removed += 1
            except StorageError as e:
                logger.error("Failed to remove key %s: %s", key, e)
        return removed


_store: GraphStateStore | None = None


def get_graph_state_store(
    storage: KeyValueStorePort | None = None,
    settings: Settings | None = None,
) -> GraphStateStore:
    """
    Return the process-wide state store, creating it on first use.

    The memory tier is shared by every exploration session in the process.
    Arguments only matter on the first call; reset_graph_state_store()
    tears the instance down so a fresh one can be built.
    """
    global _store
    if _store is None:
        _store = GraphStateStore.from_settings(settings or Settings(), storage)
    return _store


def reset_graph_state_store() -> None:
    """Drop the process-wide store and its memory tier."""
    global _store
    if _store is not None:
        _store._memory.clear()
    _store = None
