"""
Unit tests for domain helpers, settings and container wiring
"""
import asyncio

import pytest

from adapters.mock_adapters import MockTransactionSource
from config.settings import Settings
from container import Container
from main import run_exploration
from domain.exceptions import InvalidGraphError, StorageQuotaExceeded
from domain.graph_models import TransactionGraph, edge_id, format_sol_change, shorten
from domain.models import Edge, EnhancedGraphState, Node, Viewport
from graph.builder import GraphBuilder
from tests.conftest import make_tx


@pytest.mark.unit
class TestGraphHelpers:
    """Tests for id and label helpers"""

    def test_edge_id_is_composite(self):
        assert edge_id("A", "T", "account-tx") == "A->T:account-tx"
        assert edge_id("A", "T", "transfer") != edge_id("A", "T", "account-tx")

    @pytest.mark.parametrize("lamports,expected", [
        (5, "+0.000000005 SOL"),
        (-5, "-0.000000005 SOL"),
        (1_500_000_000, "+1.5 SOL"),
        (-2_000_000_000, "-2 SOL"),
    ])
    def test_format_sol_change(self, lamports, expected):
        assert format_sol_change(lamports) == expected

    def test_shorten(self):
        assert shorten("ABCDEFGHIJKLMNOP") == "ABCD...MNOP"
        assert shorten("short") == "short"


@pytest.mark.unit
class TestTransactionGraph:
    """Tests for the node/edge arena"""

    def test_add_node_once(self):
        graph = TransactionGraph()

        assert graph.add_node(Node(id="A", kind="account")) is True
        assert graph.add_node(Node(id="A", kind="account", label="other")) is False
        assert graph.nodes["A"].label == ""

    def test_edge_needs_both_endpoints(self):
        graph = TransactionGraph()
        graph.add_node(Node(id="A", kind="account"))

        with pytest.raises(InvalidGraphError):
            graph.add_edge(Edge(id="A->T:account-tx", source="A", target="T", kind="account-tx"))

    def test_summary_counts(self):
        graph = TransactionGraph()
        graph.add_node(Node(id="A", kind="account"))
        graph.add_node(Node(id="T", kind="transaction"))
        graph.add_edge(Edge(id="A->T:account-tx", source="A", target="T", kind="account-tx"))

        summary = graph.get_summary()

        assert summary["accounts"] == 1
        assert summary["transactions"] == 1
        assert summary["account_tx"] == 1
        assert graph.connected_accounts("T") == ["A"]


@pytest.mark.unit
class TestModels:
    """Tests for state records"""

    def test_enhanced_record_uses_camel_case_and_arrays(self):
        state = EnhancedGraphState(
            focused_transaction="S",
            nodes=["B", "S"],
            expanded_nodes={"B", "A"},
            expansion_depth={"A": 1},
        )

        record = state.to_record()

        assert record["focusedTransaction"] == "S"
        assert record["expandedNodes"] == ["A", "B"]
        assert record["expansionDepth"] == {"A": 1}
        assert "title" not in record

    def test_quota_error_context(self):
        error = StorageQuotaExceeded("Store", "key", 120, 100)

        assert error.context["quota"] == 100
        assert "exceeds quota" in str(error)


@pytest.mark.unit
class TestSettings:
    """Tests for Settings defaults and overrides"""

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.max_depth == 7
        assert settings.fetch_limit == 10
        assert settings.eager_depth == 2
        assert settings.max_accounts_per_tx == 20
        assert settings.memory_max_entries == 100
        assert settings.memory_ttl_seconds == 1800
        assert settings.durable_max_bytes == 5_000_000
        assert settings.retention_days == 7
        assert settings.focus_debounce_ms == 300

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MAX_DEPTH", "3")
        monkeypatch.setenv("EXCLUDED_ADDRESSES", "Spam1, Spam2,")

        settings = Settings(_env_file=None)

        assert settings.max_depth == 3
        assert settings.excluded_address_set == {"Spam1", "Spam2"}


@pytest.mark.integration
class TestContainer:
    """Tests for dependency wiring"""

    @pytest.fixture
    def container(self, tmp_path):
        return Container(Settings(
            _env_file=None,
            data_source="mock",
            storage_backend="local",
            storage_dir=str(tmp_path),
            max_depth=4,
            excluded_addresses="Spam",
        ))

    def test_builder_follows_settings(self, container):
        builder = container.new_builder()

        assert isinstance(builder, GraphBuilder)
        assert builder.max_depth == 4
        assert builder.should_exclude("Spam")
        assert container.source.source_name == "mock"

    def test_focus_controller_debounce(self, container):
        controller = container.new_focus_controller(container.new_builder())

        assert controller.debounce_seconds == pytest.approx(0.3)

    def test_state_store_is_shared(self, container):
        assert container.state_store is container.state_store
        assert container.state_store.storage is container.storage
        assert container.storage.storage_type == "local"


@pytest.mark.integration
class TestRunExploration:
    """Tests for the CLI exploration flow"""

    def test_previous_session_carries_into_new_save(self):
        """Test a re-explored signature keeps its saved viewport, title and expansion"""
        container = Container(Settings(
            _env_file=None,
            data_source="mock",
            storage_backend="memory",
            focus_debounce_ms=0,
        ))
        container._source = MockTransactionSource(
            windows={"Acc1": [make_tx("Sig", ["Acc1", "Acc2"])]},
            details={"Sig": ["Acc1", "Acc2"]},
        )
        container.state_store.save_state(EnhancedGraphState(
            focused_transaction="Sig",
            nodes=["Sig", "Acc1", "Old"],
            viewport=Viewport(zoom=2.5),
            title="Trace",
            expanded_nodes={"Old"},
            expansion_depth={"Old": 3},
        ), "Sig")

        asyncio.run(run_exploration(container, None, "Sig"))

        restored = container.state_store.load_state("Sig")
        assert restored.viewport.zoom == 2.5
        assert restored.title == "Trace"
        assert {"Old", "Acc1"} <= restored.expanded_nodes
        assert restored.expansion_depth["Old"] == 3
        assert "Acc2" in restored.nodes
