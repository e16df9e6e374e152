"""
Shared pytest fixtures for explorer tests
"""
import pytest

from adapters.mock_adapters import InMemoryKeyValueStore, MockLayoutAdapter, MockTransactionSource
from domain.models import AccountRef, BalanceChange, Transaction
from graph.builder import GraphBuilder
from persistence.graph_state_store import GraphStateStore, reset_graph_state_store


class FakeClock:
    """Controllable epoch-seconds clock"""

    def __init__(self, start: float = 1_760_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_tx(signature, accounts, transfers=None, signer=None, success=True, timestamp=None):
    """Build a Transaction from plain addresses; the first account signs unless `signer` says otherwise"""
    signer = signer if signer is not None else accounts[0]
    return Transaction(
        signature=signature,
        timestamp=timestamp,
        success=success,
        accounts=[AccountRef(pubkey=a, is_signer=(a == signer), is_writable=True) for a in accounts],
        transfers=[BalanceChange(account=a, change=c) for a, c in (transfers or {}).items()],
    )


@pytest.fixture(autouse=True)
def _fresh_state_store():
    """Every test starts without a process-wide store"""
    reset_graph_state_store()
    yield
    reset_graph_state_store()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv, clock):
    return GraphStateStore(storage=kv, clock=clock)


@pytest.fixture
def scenario_a_source():
    """Acc1 signed Tx1, moving 5 lamports to Acc2"""
    tx1 = make_tx("Tx1", ["Acc1", "Acc2"], transfers={"Acc1": -5, "Acc2": 5})
    return MockTransactionSource(windows={"Acc1": [tx1]})


@pytest.fixture
def chain_source():
    """A -> B -> C -> D, one transaction per hop"""
    t_ab = make_tx("TxAB", ["A", "B"])
    t_bc = make_tx("TxBC", ["B", "C"])
    t_cd = make_tx("TxCD", ["C", "D"])
    return MockTransactionSource(windows={
        "A": [t_ab],
        "B": [t_ab, t_bc],
        "C": [t_bc, t_cd],
        "D": [t_cd],
    })


@pytest.fixture
def layout():
    return MockLayoutAdapter()


@pytest.fixture
def builder(scenario_a_source, layout):
    return GraphBuilder(source=scenario_a_source, layout=layout)


@pytest.fixture
def sample_state():
    """Record-shaped state as a UI would hand it over"""
    return {
        "focusedTransaction": "Sig1",
        "nodes": ["Acc1", "Sig1", "Acc2"],
        "edges": ["Acc1->Sig1:account-tx", "Sig1->Acc2:tx-account"],
        "viewport": {"zoom": 1.5, "pan": {"x": 10.0, "y": -4.0}},
    }
