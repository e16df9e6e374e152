"""Transaction graph arena: nodes and edges addressed by string id."""
from decimal import Decimal
from typing import Literal

from domain.models import Edge, GraphState, Node, Viewport
from domain.exceptions import InvalidGraphError

LAMPORTS_PER_SOL = Decimal(1_000_000_000)

EdgeKind = Literal["account-tx", "tx-account", "transfer"]


def edge_id(source: str, target: str, kind: EdgeKind) -> str:
    """Deterministic composite id of an edge: endpoints plus role."""
    return f"{source}->{target}:{kind}"


def shorten(value: str, length: int = 8) -> str:
    """Shorten an address or signature for display, e.g. 'Abcd...wxyz'."""
    if not value or len(value) <= length:
        return value
    start = length // 2
    end = length - start
    return f"{value[:start]}...{value[-end:]}"


def format_sol_change(lamports: float) -> str:
    """
    Human-readable signed SOL amount.

    >>> format_sol_change(5)
    '+0.000000005 SOL'
    >>> format_sol_change(-1_500_000_000)
    '-1.5 SOL'
    """
    sol = Decimal(str(lamports)) / LAMPORTS_PER_SOL
    text = f"{abs(sol):.9f}".rstrip("0").rstrip(".")
    sign = "-" if sol < 0 else "+"
    return f"{sign}{text} SOL"


class TransactionGraph:
    """
    The shared node/edge arena of one exploration session.

    Insertion order is preserved so snapshots list elements in the order
    they were discovered. Elements are never removed; only node status and
    position fields change after insertion.
    """

    def __init__(self):
        self.nodes: dict[str, Node] = {}
        self.edges: dict[str, Edge] = {}

    def __len__(self) -> int:
        return len(self.nodes)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def has_edge(self, element_id: str) -> bool:
        return element_id in self.edges

    def get_node(self, node_id: str) -> Node | None:
        return self.nodes.get(node_id)

    def add_node(self, node: Node) -> bool:
        """Add a node if it doesn't exist. Returns True if added."""
        if node.id in self.nodes:
            return False
        self.nodes[node.id] = node
        return True

    def add_edge(self, edge: Edge) -> bool:
        """Add an edge if it doesn't exist. Returns True if added."""
        if edge.id in self.edges:
            return False
        for endpoint in (edge.source, edge.target):
            if endpoint not in self.nodes:
                raise InvalidGraphError(edge.id, f"unknown endpoint '{endpoint}'")
        self.edges[edge.id] = edge
        return True

    def set_status(self, node_id: str, status: str) -> None:
        node = self.nodes.get(node_id)
        if node is not None:
            node.status = status

    def neighbors(self, node_id: str) -> list[str]:
        """Ids of nodes directly connected to node_id, in either direction."""
        seen: dict[str, None] = {}
        for edge in self.edges.values():
            if edge.source == node_id:
                seen[edge.target] = None
            elif edge.target == node_id:
                seen[edge.source] = None
        return list(seen)

    def connected_accounts(self, signature: str) -> list[str]:
        return [
            n for n in self.neighbors(signature)
            if self.nodes[n].kind == "account"
        ]

    def nodes_of_kind(self, kind: str) -> list[Node]:
        return [n for n in self.nodes.values() if n.kind == kind]

    def edges_of_kind(self, kind: str) -> list[Edge]:
        return [e for e in self.edges.values() if e.kind == kind]

    def snapshot(
        self,
        focused_transaction: str,
        viewport: Viewport | None = None,
        title: str | None = None,
        timestamp: int | None = None,
    ) -> GraphState:
        """Capture the arena as an id-only GraphState."""
        return GraphState(
            focused_transaction=focused_transaction,
            nodes=list(self.nodes),
            edges=list(self.edges),
            viewport=viewport or Viewport(),
            title=title,
            timestamp=timestamp,
        )

    def get_summary(self) -> dict:
        """Element counts by kind."""
        return {
            "nodes": len(self.nodes),
            "accounts": len(self.nodes_of_kind("account")),
            "transactions": len(self.nodes_of_kind("transaction")),
            "edges": len(self.edges),
            "account_tx": len(self.edges_of_kind("account-tx")),
            "tx_account": len(self.edges_of_kind("tx-account")),
            "transfers": len(self.edges_of_kind("transfer")),
        }
