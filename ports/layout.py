"""Abstract interface for graph layout engines."""
from abc import ABC, abstractmethod
from domain.graph_models import TransactionGraph


class LayoutPort(ABC):
    """
    Port for graph layout.

    A layout run is a full recompute over the whole arena and must be
    idempotent: running it twice on the same graph yields the same
    positions, so back-to-back triggers are harmless.
    """

    @abstractmethod
    def run(self, graph: TransactionGraph) -> dict[str, tuple[float, float]]:
        """
        Compute positions for every node and store them on the nodes.

        Args:
            graph: The arena to lay out

        Returns:
            Mapping of node id to (x, y)
        """
        raise NotImplementedError

    @property
    @abstractmethod
    def layout_name(self) -> str:
        raise NotImplementedError
