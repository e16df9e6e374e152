"""Focus handling: debounced, cancellable re-expansion around a transaction."""
import asyncio
import logging
from collections.abc import Callable

from graph.builder import CancellationToken, GraphBuilder

logger = logging.getLogger(__name__)


class FocusController:
    """
    Tracks the focused transaction and expands its neighbourhood.

    Requests are debounced: a burst of calls collapses to the last one.
    Each expansion pass carries a CancellationToken; a newer request cancels
    it so late fetch results never land on a superseded focus. The
    `focused` / `highlighted` pair is replaced only when a pass completes.
    """

    def __init__(
        self,
        builder: GraphBuilder,
        on_focus_changed: Callable[[str], None] | None = None,
        debounce_seconds: float = 0.3,
    ):
        self.builder = builder
        self.on_focus_changed = on_focus_changed
        self.debounce_seconds = debounce_seconds

        self.focused: str | None = None
        self.highlighted: frozenset[str] = frozenset()
        self.expansion_passes = 0

        self._generation = 0
        self._token: CancellationToken | None = None

    async def focus_on_transaction(self, signature: str) -> bool:
        """
        Focus a transaction and expand its unexpanded accounts.

        Returns:
            True if this request completed, False if a newer one superseded it
        """
        self._generation += 1
        generation = self._generation
        if self._token is not None:
            self._token.cancel()

        await asyncio.sleep(self.debounce_seconds)
        if generation != self._generation:
            return False

        token = CancellationToken()
        self._token = token
        self.expansion_passes += 1

        await self._expand(signature, token)

        if token.cancelled or generation != self._generation:
            logger.debug("Focus pass for %s superseded", signature)
            return False

        graph = self.builder.graph
        connected = graph.connected_accounts(signature) if graph.has_node(signature) else []
        self.highlighted = frozenset([signature, *connected])
        self.focused = signature
        self._token = None

        self.builder.run_layout()
        if self.on_focus_changed is not None:
            self.on_focus_changed(signature)
        return True

    def request_focus(self, signature: str) -> asyncio.Task:
        """Fire-and-forget variant for UI event handlers."""
        return asyncio.ensure_future(self.focus_on_transaction(signature))

    async def _expand(self, signature: str, token: CancellationToken) -> None:
        graph = self.builder.graph
        if graph.has_node(signature):
            accounts = graph.connected_accounts(signature)
        else:
            accounts = await self.builder.seed_transaction(signature, token)

        if token.cancelled:
            return

        pending = [a for a in accounts if a not in self.builder.loaded_accounts]
        logger.info("Focusing %s: expanding %d of %d accounts", signature, len(pending), len(accounts))
        await asyncio.gather(*(
            self.builder.add_account(account, 0, signature, token)
            for account in pending
        ))

    def cancel(self) -> None:
        """Invalidate any pending debounce and in-flight pass (session teardown)."""
        self._generation += 1
        if self._token is not None:
            self._token.cancel()
            self._token = None

    def close(self) -> None:
        self.cancel()
        self.on_focus_changed = None
