"""Incremental transaction graph construction."""
import asyncio
import logging

from ports.transactions import TransactionSourcePort
from ports.layout import LayoutPort
from domain.models import EnhancedGraphState, Node, Edge, Transaction, Viewport, GraphState
from domain.graph_models import TransactionGraph, edge_id, format_sol_change, shorten

logger = logging.getLogger(__name__)

# Program and sysvar accounts touched by nearly every transaction. Expanding
# them would pull the whole chain into the graph.
DEFAULT_EXCLUDED_ADDRESSES = frozenset({
    "11111111111111111111111111111111",
    "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
    "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb",
    "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL",
    "ComputeBudget111111111111111111111111111111",
    "Vote111111111111111111111111111111111111111",
    "Stake11111111111111111111111111111111111111",
    "MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr",
    "SysvarRent111111111111111111111111111111111",
    "SysvarC1ock11111111111111111111111111111111",
    "SysvarRecentB1ockHashes11111111111111111111",
    "Sysvar1nstructions1111111111111111111111111",
})


class CancellationToken:
    """
    Generation token of one expansion pass.
    Once cancelled, late fetch results carrying it are discarded.
    """

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class GraphBuilder:
    """
    Grows the node/edge arena of one exploration session.

    Every element id is a pure function of its inputs and is added at most
    once, so repeated or concurrent expansions of the same account converge
    on the same graph. Edges of a transaction are derived from the
    transaction alone (never from the account whose fetch delivered it),
    which keeps the final graph independent of fetch arrival order.

    Safety mechanisms:
    - Max depth per expansion branch
    - Eager recursion only below `eager_depth`
    - Loaded-account / loaded-transaction tracking sets
    - Per-branch failure isolation
    """

    def __init__(
        self,
        source: TransactionSourcePort,
        layout: LayoutPort | None = None,
        max_depth: int = 7,
        fetch_limit: int = 10,
        eager_depth: int = 2,
        max_accounts_per_tx: int = 20,
        excluded_addresses: set[str] | None = None,
    ):
        """
        Initialize the graph builder.

        Args:
            source: Transaction data source port
            layout: Layout port run after each batch of additions
            max_depth: Depth at which expansion stops
            fetch_limit: Transactions fetched per account
            eager_depth: Discovered accounts are expanded only below this depth
            max_accounts_per_tx: Transactions touching more accounts are skipped
            excluded_addresses: Extra addresses never added to the graph
        """
        self.source = source
        self.layout = layout
        self.max_depth = max_depth
        self.fetch_limit = fetch_limit
        self.eager_depth = eager_depth
        self.max_accounts_per_tx = max_accounts_per_tx
        self.excluded_addresses = DEFAULT_EXCLUDED_ADDRESSES | set(excluded_addresses or ())

        self.graph = TransactionGraph()
        self.loaded_accounts: set[str] = set()
        self.loaded_transactions: set[str] = set()
        self.expansion_depth: dict[str, int] = {}
        self.failed_accounts: dict[str, str] = {}
        self._inflight: dict[str, asyncio.Future] = {}

    # === Filters ===

    def should_exclude(self, address: str) -> bool:
        return not address or address in self.excluded_addresses

    def should_include(self, tx: Transaction) -> bool:
        return 0 < len(tx.accounts) <= self.max_accounts_per_tx

    def anchor_account(self, tx: Transaction) -> str | None:
        """The account an account->tx edge starts from: first signer, else first account."""
        candidates = [a for a in tx.accounts if not self.should_exclude(a.pubkey)]
        for acc in candidates:
            if acc.is_signer:
                return acc.pubkey
        return candidates[0].pubkey if candidates else None

    # === Expansion ===

    async def add_account(
        self,
        address: str,
        depth: int = 0,
        parent_signature: str | None = None,
        token: CancellationToken | None = None,
    ) -> set[str]:
        """
        Fetch an account's transaction window and merge it into the arena.

        Args:
            address: Account to expand
            depth: Hops from the exploration seed
            parent_signature: Transaction through which the account was reached
            token: Expansion pass token; a cancelled token discards results

        Returns:
            Ids of nodes and edges added by this call and its eager recursion
        """
        if depth >= self.max_depth:
            logger.debug("Max depth %d reached for %s", self.max_depth, address)
            return set()
        if address in self.loaded_accounts or self.should_exclude(address):
            return set()
        if token is not None and token.cancelled:
            return set()

        future = self._inflight.get(address)
        if future is None:
            future = asyncio.ensure_future(
                self.source.get_account_transactions(address, self.fetch_limit)
            )
            self._inflight[address] = future

        try:
            transactions = await asyncio.shield(future)
        except asyncio.CancelledError:
            if not future.cancelled():
                raise
            return set()
        except Exception as e:
            self.failed_accounts[address] = str(e)
            logger.warning("Fetch failed for %s (reached via %s): %s", address, parent_signature, e)
            return set()
        finally:
            # Callers arriving until the first waiter resumes share the finished fetch.
            if self._inflight.get(address) is future:
                del self._inflight[address]

        if token is not None and token.cancelled:
            logger.debug("Discarding superseded window for %s", address)
            return set()
        # Another caller sharing the same fetch may have applied it already.
        if address in self.loaded_accounts:
            return set()

        added = self._apply_window(address, transactions)
        self.loaded_accounts.add(address)
        self.expansion_depth[address] = depth
        self.failed_accounts.pop(address, None)
        logger.info("Expanded %s at depth %d: %d new elements", address, depth, len(added))

        if added:
            self.run_layout()

        if depth < self.eager_depth and depth + 1 < self.max_depth:
            discovered = self._discovered_accounts(address, transactions)
            results = await asyncio.gather(*(
                self.add_account(acc, depth + 1, signature, token)
                for acc, signature in discovered.items()
            ))
            for result in results:
                added |= result

        return added

    def _discovered_accounts(self, address: str, transactions: list[Transaction]) -> dict[str, str]:
        """Unexpanded accounts touched by the window, mapped to the first signature that touched them."""
        discovered: dict[str, str] = {}
        for tx in transactions:
            if not self.should_include(tx):
                continue
            for acc in tx.accounts:
                pubkey = acc.pubkey
                if pubkey == address or pubkey in discovered or self.should_exclude(pubkey):
                    continue
                if pubkey not in self.loaded_accounts:
                    discovered[pubkey] = tx.signature
        return discovered

    def _apply_window(self, address: str, transactions: list[Transaction]) -> set[str]:
        """Merge one fetched window into the arena. Runs without suspension points."""
        added: set[str] = set()
        included = [tx for tx in transactions if self.should_include(tx)]
        status = "loaded" if included else "empty"

        if self.graph.add_node(Node(id=address, kind="account", label=shorten(address), status=status)):
            added.add(address)
        else:
            self.graph.set_status(address, status)

        for tx in included:
            if tx.signature in self.loaded_transactions:
                continue
            added |= self._add_transaction(tx)
            self.loaded_transactions.add(tx.signature)

        return added

    def _ensure_account(self, pubkey: str, is_signer: bool = False, is_writable: bool = False) -> bool:
        return self.graph.add_node(Node(
            id=pubkey,
            kind="account",
            label=shorten(pubkey),
            status="pending",
            is_signer=is_signer,
            is_writable=is_writable,
        ))

    def _add_edge(self, source: str, target: str, kind: str, **fields) -> str | None:
        element_id = edge_id(source, target, kind)
        if self.graph.add_edge(Edge(id=element_id, source=source, target=target, kind=kind, **fields)):
            return element_id
        return None

    def _add_transaction(self, tx: Transaction) -> set[str]:
        added: set[str] = set()
        status = "success" if tx.success else "failure"

        tx_node = Node(
            id=tx.signature,
            kind="transaction",
            label=shorten(tx.signature),
            status=status,
            timestamp=tx.timestamp,
        )
        if self.graph.add_node(tx_node):
            added.add(tx.signature)
        else:
            self.graph.set_status(tx.signature, status)

        accounts = {}
        for acc in tx.accounts:
            if not self.should_exclude(acc.pubkey) and acc.pubkey not in accounts:
                accounts[acc.pubkey] = acc
        for acc in accounts.values():
            if self._ensure_account(acc.pubkey, acc.is_signer, acc.is_writable):
                added.add(acc.pubkey)

        anchor = self.anchor_account(tx)
        if anchor is not None:
            added.add(self._add_edge(anchor, tx.signature, "account-tx"))
        for pubkey in accounts:
            if pubkey != anchor:
                added.add(self._add_edge(tx.signature, pubkey, "tx-account"))

        for change in tx.transfers:
            if not change.change or self.should_exclude(change.account):
                continue
            if self._ensure_account(change.account):
                added.add(change.account)
            if change.change < 0:
                source, target = change.account, tx.signature
            else:
                source, target = tx.signature, change.account
            added.add(self._add_edge(
                source, target, "transfer",
                amount=change.change,
                label=format_sol_change(change.change),
            ))

        added.discard(None)
        return added

    async def seed_transaction(
        self,
        signature: str,
        token: CancellationToken | None = None,
    ) -> list[str]:
        """
        Seed the arena from a signature alone.

        Returns:
            Non-excluded accounts involved in the transaction
        """
        try:
            involved = await self.source.get_transaction_accounts(signature)
        except Exception as e:
            self.failed_accounts[signature] = str(e)
            logger.warning("Transaction lookup failed for %s: %s", signature, e)
            return []

        if token is not None and token.cancelled:
            return []

        accounts = [a for a in dict.fromkeys(involved) if not self.should_exclude(a)]
        self.graph.add_node(Node(id=signature, kind="transaction", label=shorten(signature)))
        for i, pubkey in enumerate(accounts):
            self._ensure_account(pubkey)
            # Detail sources list the fee payer first.
            if i == 0:
                self._add_edge(pubkey, signature, "account-tx")
            else:
                self._add_edge(signature, pubkey, "tx-account")
        return accounts

    async def explore(self, account: str | None = None, signature: str | None = None) -> set[str]:
        """Entry point: seed from an account, or from a signature's accounts."""
        if account:
            return await self.add_account(account, 0, signature)
        if not signature:
            raise ValueError("explore() needs an account or a signature")

        added: set[str] = set()
        accounts = await self.seed_transaction(signature)
        if self.graph.has_node(signature):
            added.add(signature)
        results = await asyncio.gather(*(self.add_account(a, 1, signature) for a in accounts))
        for result in results:
            added |= result
        self.run_layout()
        return added

    # === Layout & snapshots ===

    def run_layout(self) -> dict[str, tuple[float, float]]:
        """Full layout recompute. Idempotent, safe to call back-to-back."""
        if self.layout is None:
            return {}
        return self.layout.run(self.graph)

    def expansion_state(self) -> tuple[set[str], dict[str, int]]:
        return set(self.loaded_accounts), dict(self.expansion_depth)

    def snapshot(
        self,
        focused_transaction: str,
        viewport: Viewport | None = None,
        title: str | None = None,
    ) -> GraphState:
        return self.graph.snapshot(focused_transaction, viewport, title)

    def enhanced_snapshot(
        self,
        focused_transaction: str,
        viewport: Viewport | None = None,
        title: str | None = None,
    ) -> EnhancedGraphState:
        """Snapshot carrying this session's expansion bookkeeping."""
        state = self.snapshot(focused_transaction, viewport, title)
        expanded, depths = self.expansion_state()
        return EnhancedGraphState(
            **state.model_dump(),
            expanded_nodes=expanded,
            expansion_depth=depths,
        )

    def reset(self) -> None:
        """Tear down the session: drop the arena and cancel in-flight fetches."""
        for future in list(self._inflight.values()):
            future.cancel()
        self._inflight.clear()
        self.graph = TransactionGraph()
        self.loaded_accounts.clear()
        self.loaded_transactions.clear()
        self.expansion_depth.clear()
        self.failed_accounts.clear()
