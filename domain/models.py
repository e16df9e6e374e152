"""Core domain entities and value objects."""
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator


class AccountRef(BaseModel):
    """An account touched by a transaction."""

    model_config = ConfigDict(populate_by_name=True)

    pubkey: str = Field(..., min_length=1, description="Account address")
    is_signer: bool = Field(default=False, alias="isSigner")
    is_writable: bool = Field(default=False, alias="isWritable")


class BalanceChange(BaseModel):
    """
    A balance delta of one account within a transaction.
    `change` is expressed in lamports and may be negative.
    """

    account: str = Field(..., min_length=1)
    change: float = Field(default=0, description="Signed balance delta in lamports")


class Transaction(BaseModel):
    """
    A transaction record as delivered by the account-transactions source.
    Immutable value object.
    """

    signature: str = Field(..., min_length=1, description="Transaction signature")
    timestamp: int | None = Field(default=None, description="Block time in epoch milliseconds")
    success: bool = Field(default=True)
    accounts: list[AccountRef] = Field(default_factory=list)
    transfers: list[BalanceChange] = Field(default_factory=list)

    @property
    def signers(self) -> list[str]:
        return [a.pubkey for a in self.accounts if a.is_signer]


class Node(BaseModel):
    """
    A vertex of the exploration graph: an account or a transaction.
    Addressed by string id, never by object reference.
    """

    id: str = Field(..., min_length=1)
    kind: Literal["account", "transaction"]
    label: str = Field(default="")
    status: Literal["pending", "loaded", "empty", "success", "failure"] | None = None
    timestamp: int | None = None
    is_signer: bool = False
    is_writable: bool = False
    position: tuple[float, float] | None = Field(
        default=None, description="Owned by the layout adapter"
    )


class Edge(BaseModel):
    """A directed relation between two nodes of the arena."""

    id: str = Field(..., min_length=1)
    source: str
    target: str
    kind: Literal["account-tx", "tx-account", "transfer"]
    amount: float | None = Field(default=None, description="Lamports moved (transfer edges)")
    label: str = Field(default="")


class Pan(BaseModel):
    x: float = 0.0
    y: float = 0.0


class Viewport(BaseModel):
    """Zoom level and pan offset of the exploration view."""

    zoom: float = 1.0
    pan: Pan = Field(default_factory=Pan)


class GraphState(BaseModel):
    """
    A snapshot of an exploration session, keyed by its focused transaction.
    Serialized with camelCase names.
    """

    model_config = ConfigDict(populate_by_name=True)

    focused_transaction: str = Field(..., min_length=1, alias="focusedTransaction")
    nodes: list[str] = Field(default_factory=list, description="Node ids")
    edges: list[str] = Field(default_factory=list, description="Edge ids")
    viewport: Viewport = Field(default_factory=Viewport)
    title: str | None = None
    timestamp: int | None = Field(default=None, description="Epoch milliseconds")

    @field_validator("nodes")
    @classmethod
    def _unique_node_ids(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    def to_record(self) -> dict:
        """Wire/storage representation."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class EnhancedGraphState(GraphState):
    """
    GraphState plus expansion bookkeeping.
    `expanded_nodes` is a set in memory and an array on the wire.
    """

    expanded_nodes: set[str] = Field(default_factory=set, alias="expandedNodes")
    expansion_depth: dict[str, int] = Field(default_factory=dict, alias="expansionDepth")
    last_touched: int | None = Field(default=None, alias="lastTouched")

    def to_record(self) -> dict:
        record = super().to_record()
        record["expandedNodes"] = sorted(self.expanded_nodes)
        return record


class SavedGraphSummary(BaseModel):
    """Metadata about a persisted exploration state."""

    signature: str
    title: str
    timestamp: int
