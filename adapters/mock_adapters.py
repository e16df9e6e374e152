"""Mock adapters for testing and offline exploration."""
import asyncio
from collections import Counter

from ports.transactions import TransactionSourcePort
from ports.storage import KeyValueStorePort
from ports.layout import LayoutPort
from domain.models import AccountRef, BalanceChange, Transaction
from domain.graph_models import TransactionGraph
from domain.exceptions import FetchFailure, StorageError, StorageQuotaExceeded


class MockTransactionSource(TransactionSourcePort):
    """
    Mock data source.
    Serves canned transaction windows per address and can simulate
    latency and per-address failures.
    """

    def __init__(
        self,
        windows: dict[str, list[Transaction]] | None = None,
        details: dict[str, list[str]] | None = None,
        failing: set[str] | None = None,
        delay: float = 0.0,
        delays: dict[str, float] | None = None,
    ):
        """
        Initialize mock source.

        Args:
            windows: Transactions returned per account address
            details: Involved accounts returned per signature
            failing: Addresses/signatures whose fetch raises FetchFailure
            delay: Simulated latency in seconds for every fetch
            delays: Per-address latency overrides
        """
        self.windows = windows or {}
        self.details = details or {}
        self.failing = failing or set()
        self._delay = delay
        self._delays = delays or {}
        self.calls: Counter[str] = Counter()
        self.detail_calls: Counter[str] = Counter()

    @property
    def source_name(self) -> str:
        return "mock"

    async def _sleep(self, key: str) -> None:
        delay = self._delays.get(key, self._delay)
        if delay:
            await asyncio.sleep(delay)
        else:
            await asyncio.sleep(0)

    async def get_account_transactions(
        self,
        address: str,
        limit: int = 10,
    ) -> list[Transaction]:
        self.calls[address] += 1
        await self._sleep(address)
        if address in self.failing:
            raise FetchFailure("MockTransactionSource", f"account-transactions {address}",
                               ConnectionError("simulated outage"))
        return [tx.model_copy(deep=True) for tx in self.windows.get(address, [])[:limit]]

    async def get_transaction_accounts(self, signature: str) -> list[str]:
        self.detail_calls[signature] += 1
        await self._sleep(signature)
        if signature in self.failing:
            raise FetchFailure("MockTransactionSource", f"transaction {signature}",
                               ConnectionError("simulated outage"))
        if signature in self.details:
            return list(self.details[signature])
        # Fall back to any window that contains the signature.
        for window in self.windows.values():
            for tx in window:
                if tx.signature == signature:
                    return [a.pubkey for a in tx.accounts]
        return []

    @staticmethod
    def transfer(
        signature: str,
        sender: str,
        receiver: str,
        lamports: int,
        success: bool = True,
        timestamp: int | None = None,
    ) -> Transaction:
        """Build a plain two-party transfer transaction."""
        return Transaction(
            signature=signature,
            timestamp=timestamp,
            success=success,
            accounts=[
                AccountRef(pubkey=sender, is_signer=True, is_writable=True),
                AccountRef(pubkey=receiver, is_writable=True),
            ],
            transfers=[
                BalanceChange(account=sender, change=-lamports),
                BalanceChange(account=receiver, change=lamports),
            ],
        )


class InMemoryKeyValueStore(KeyValueStorePort):
    """
    Dict-backed durable tier with an optional quota.
    Set `unavailable` to simulate storage that refuses every operation.
    """

    def __init__(self, quota_bytes: int | None = None):
        self.data: dict[str, str] = {}
        self.quota_bytes = quota_bytes
        self.unavailable = False
        self.set_calls = 0

    @property
    def storage_type(self) -> str:
        return "memory"

    def _check(self, operation: str) -> None:
        if self.unavailable:
            raise StorageError("InMemoryKeyValueStore", operation, OSError("storage unavailable"))

    def get(self, key: str) -> str | None:
        self._check("get")
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check("set")
        self.set_calls += 1
        if self.quota_bytes is not None:
            used = sum(len(v) for k, v in self.data.items() if k != key)
            if used + len(value) > self.quota_bytes:
                raise StorageQuotaExceeded("InMemoryKeyValueStore", key, used + len(value), self.quota_bytes)
        self.data[key] = value

    def remove(self, key: str) -> bool:
        self._check("remove")
        return self.data.pop(key, None) is not None

    def keys(self) -> list[str]:
        self._check("keys")
        return list(self.data)


class MockLayoutAdapter(LayoutPort):
    """Places nodes on a line in arena order and counts runs."""

    def __init__(self):
        self.run_count = 0

    @property
    def layout_name(self) -> str:
        return "mock-line"

    def run(self, graph: TransactionGraph) -> dict[str, tuple[float, float]]:
        self.run_count += 1
        positions = {}
        for i, node in enumerate(graph.nodes.values()):
            positions[node.id] = (float(i), 0.0)
            node.position = positions[node.id]
        return positions
