"""NetworkX force-directed layout adapter."""
import networkx as nx

from ports.layout import LayoutPort
from domain.graph_models import TransactionGraph


class NetworkXLayoutAdapter(LayoutPort):
    """
    Spring (Fruchterman-Reingold) layout over the whole arena.
    A fixed seed makes every run a deterministic full recompute.
    """

    def __init__(self, seed: int = 42, iterations: int = 50, scale: float = 1.0):
        self.seed = seed
        self.iterations = iterations
        self.scale = scale
        self.run_count = 0

    @property
    def layout_name(self) -> str:
        return "networkx-spring"

    def to_networkx(self, graph: TransactionGraph) -> nx.DiGraph:
        g = nx.DiGraph()
        for node in graph.nodes.values():
            g.add_node(node.id, kind=node.kind)
        for edge in graph.edges.values():
            g.add_edge(edge.source, edge.target, kind=edge.kind)
        return g

    def run(self, graph: TransactionGraph) -> dict[str, tuple[float, float]]:
        self.run_count += 1
        if not graph.nodes:
            return {}

        g = self.to_networkx(graph)
        raw = nx.spring_layout(g, seed=self.seed, iterations=self.iterations, scale=self.scale)

        positions: dict[str, tuple[float, float]] = {}
        for node_id, (x, y) in raw.items():
            positions[node_id] = (float(x), float(y))
            graph.nodes[node_id].position = positions[node_id]
        return positions
