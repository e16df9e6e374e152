"""Abstract interface for blockchain transaction data."""
from abc import ABC, abstractmethod
from domain.models import Transaction


class TransactionSourcePort(ABC):
    """
    Port for the blockchain data source.
    Abstracts away the explorer REST API, an RPC node, an indexer, etc.

    Implementations raise FetchFailure when the source is unreachable.
    A source that answers but has nothing to offer returns an empty list.
    """

    @abstractmethod
    async def get_account_transactions(
        self,
        address: str,
        limit: int = 10,
    ) -> list[Transaction]:
        """
        Fetch a bounded window of an account's recent transactions.

        Args:
            address: Account address
            limit: Maximum number of transactions to return

        Returns:
            List of Transaction objects, newest first
        """
        raise NotImplementedError

    @abstractmethod
    async def get_transaction_accounts(self, signature: str) -> list[str]:
        """
        Fetch the accounts involved in a transaction.
        Used to seed exploration when only a signature is known.

        Args:
            signature: Transaction signature

        Returns:
            List of account addresses in instruction order
        """
        raise NotImplementedError

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return the data source name."""
        raise NotImplementedError
