"""Explorer REST API transaction source."""
import logging
from datetime import datetime

import httpx
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ports.transactions import TransactionSourcePort
from domain.models import AccountRef, BalanceChange, Transaction
from domain.exceptions import FetchFailure

logger = logging.getLogger(__name__)

LAMPORTS_PER_TOKEN_UNIT = 1_000_000_000


def _parse_timestamp(value) -> int | None:
    """Normalize epoch seconds, epoch milliseconds or ISO strings to epoch ms."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        # Block times arrive in seconds, UI timestamps in milliseconds.
        return int(value * 1000) if value < 10_000_000_000 else int(value)
    try:
        return int(datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp() * 1000)
    except ValueError:
        return None


def parse_transaction(raw: dict) -> Transaction | None:
    """Map a raw account-transactions entry onto a Transaction, or None if unusable."""
    accounts = []
    for acc in raw.get("accounts") or []:
        if isinstance(acc, str):
            accounts.append(AccountRef(pubkey=acc))
        elif isinstance(acc, dict) and acc.get("pubkey"):
            accounts.append(AccountRef.model_validate(acc))

    transfers = [
        BalanceChange(account=t["account"], change=t.get("change", 0) or 0)
        for t in raw.get("transfers") or []
        if isinstance(t, dict) and t.get("account")
    ]

    try:
        return Transaction(
            signature=raw.get("signature", ""),
            timestamp=_parse_timestamp(raw.get("timestamp", raw.get("blockTime"))),
            success=raw.get("success") is not False and not raw.get("err"),
            accounts=accounts,
            transfers=transfers,
        )
    except ValidationError as e:
        logger.warning("Skipping malformed transaction record: %s", e)
        return None


def parse_transfer(raw: dict) -> Transaction | None:
    """Map an account-transfers entry onto a two-account Transaction."""
    sender, receiver = raw.get("from"), raw.get("to")
    if not raw.get("txId") or not sender or not receiver:
        return None
    try:
        amount = float(raw.get("tokenAmount") or 0) * LAMPORTS_PER_TOKEN_UNIT
    except (TypeError, ValueError):
        amount = 0.0
    return Transaction(
        signature=raw["txId"],
        timestamp=_parse_timestamp(raw.get("date")),
        success=True,
        accounts=[
            AccountRef(pubkey=sender, is_signer=True, is_writable=True),
            AccountRef(pubkey=receiver, is_writable=True),
        ],
        transfers=[
            BalanceChange(account=sender, change=-amount),
            BalanceChange(account=receiver, change=amount),
        ],
    )


class ExplorerApiSource(TransactionSourcePort):
    """
    Adapter for an explorer REST API exposing account and transaction endpoints.
    Account windows come from the transfers endpoint when it has data, otherwise
    from the generic account-transactions endpoint.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout: float = 15.0,
        prefer_transfers: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the explorer API adapter.

        Args:
            base_url: Explorer base URL
            timeout: Per-request timeout in seconds
            prefer_transfers: Query the transfers endpoint first
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._prefer_transfers = prefer_transfers
        self._transport = transport

    @property
    def source_name(self) -> str:
        return "explorer-api"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Cache-Control": "no-cache"},
        )

    async def get_account_transactions(
        self,
        address: str,
        limit: int = 10,
    ) -> list[Transaction]:
        if self._prefer_transfers:
            transfers = await self._get_transfers(address, limit)
            if transfers:
                return transfers
        return await self._get_transactions(address, limit)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(FetchFailure),
        reraise=True,
    )
    async def _get_transactions(self, address: str, limit: int) -> list[Transaction]:
        try:
            async with self._client() as client:
                response = await client.get(
                    f"/api/account-transactions/{address}", params={"limit": limit}
                )
                if response.status_code == 400:
                    logger.warning("Bad request for account %s, treating as empty", address)
                    return []
                response.raise_for_status()
                data = response.json()

        except Exception as e:
            raise FetchFailure("ExplorerApiSource", f"account-transactions {address}", e)

        transactions = []
        for raw in data.get("transactions", []) if isinstance(data, dict) else []:
            tx = parse_transaction(raw) if isinstance(raw, dict) else None
            if tx is not None:
                transactions.append(tx)
        return transactions[:limit]

    async def _get_transfers(self, address: str, limit: int) -> list[Transaction]:
        """Transfers are best-effort: any failure falls through to the transactions endpoint."""
        try:
            async with self._client() as client:
                response = await client.get(
                    f"/api/account-transfers/{address}", params={"limit": limit}
                )
                if not response.is_success:
                    logger.info("Transfers endpoint answered %s for %s", response.status_code, address)
                    return []
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.info("Transfers lookup failed for %s: %s", address, e)
            return []

        transactions = []
        for raw in data.get("data", []) if isinstance(data, dict) else []:
            tx = parse_transfer(raw) if isinstance(raw, dict) else None
            if tx is not None:
                transactions.append(tx)
        return transactions[:limit]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(FetchFailure),
        reraise=True,
    )
    async def get_transaction_accounts(self, signature: str) -> list[str]:
        try:
            async with self._client() as client:
                response = await client.get(f"/api/transaction/{signature}")
                response.raise_for_status()
                data = response.json()

        except Exception as e:
            raise FetchFailure("ExplorerApiSource", f"transaction {signature}", e)

        details = (data.get("details") or data) if isinstance(data, dict) else {}
        accounts = []
        for acc in details.get("accounts") or []:
            pubkey = acc if isinstance(acc, str) else (acc or {}).get("pubkey")
            if pubkey:
                accounts.append(pubkey)
        return list(dict.fromkeys(accounts))
