"""
Unit tests for debounced focus handling
"""
import asyncio

import pytest

from adapters.mock_adapters import MockTransactionSource
from graph.builder import GraphBuilder
from graph.focus import FocusController
from tests.conftest import make_tx


@pytest.fixture
def focus_source():
    return MockTransactionSource(
        windows={
            "Acc1": [make_tx("Tx1", ["Acc1", "Acc2"])],
            "Acc5": [make_tx("Tx3", ["Acc5", "Acc6"])],
        },
        details={
            "Tx1": ["Acc1", "Acc2"],
            "Tx2": ["Acc3", "Acc4"],
            "Tx3": ["Acc5", "Acc6"],
        },
    )


@pytest.mark.unit
class TestFocusController:
    """Tests for FocusController"""

    def test_rapid_requests_collapse_into_one_pass(self, focus_source):
        """Test three quick focus changes run a single expansion for the last one"""
        builder = GraphBuilder(source=focus_source)
        changes = []
        controller = FocusController(builder, on_focus_changed=changes.append, debounce_seconds=0.05)

        async def burst():
            first = asyncio.ensure_future(controller.focus_on_transaction("Tx1"))
            await asyncio.sleep(0.01)
            second = asyncio.ensure_future(controller.focus_on_transaction("Tx2"))
            await asyncio.sleep(0.01)
            third = asyncio.ensure_future(controller.focus_on_transaction("Tx3"))
            return await asyncio.gather(first, second, third)

        results = asyncio.run(burst())

        assert results == [False, False, True]
        assert controller.expansion_passes == 1
        assert controller.focused == "Tx3"
        assert controller.highlighted == frozenset({"Tx3", "Acc5", "Acc6"})
        assert changes == ["Tx3"]
        assert focus_source.detail_calls["Tx1"] == 0
        assert focus_source.detail_calls["Tx2"] == 0

    def test_focus_expands_unloaded_neighbours(self, focus_source):
        """Test focusing a known transaction expands only its unloaded accounts"""
        builder = GraphBuilder(source=focus_source, eager_depth=0)
        controller = FocusController(builder, debounce_seconds=0)

        async def scenario():
            await builder.add_account("Acc1")
            return await controller.focus_on_transaction("Tx1")

        assert asyncio.run(scenario()) is True
        assert "Acc2" in builder.loaded_accounts
        assert focus_source.calls["Acc1"] == 1
        assert focus_source.calls["Acc2"] == 1
        assert focus_source.detail_calls["Tx1"] == 0
        assert controller.highlighted == frozenset({"Tx1", "Acc1", "Acc2"})

    def test_superseded_pass_leaves_no_trace(self):
        """Test a pass cancelled during its fetch never mutates the graph"""
        source = MockTransactionSource(
            details={"TxSlow": ["Slow1"], "TxFast": ["Fast1"]},
            delays={"TxSlow": 0.1},
        )
        builder = GraphBuilder(source=source)
        controller = FocusController(builder, debounce_seconds=0)

        async def scenario():
            slow = asyncio.ensure_future(controller.focus_on_transaction("TxSlow"))
            await asyncio.sleep(0.02)
            fast = asyncio.ensure_future(controller.focus_on_transaction("TxFast"))
            return await asyncio.gather(slow, fast)

        results = asyncio.run(scenario())

        assert results == [False, True]
        assert controller.focused == "TxFast"
        assert not builder.graph.has_node("TxSlow")
        assert not builder.graph.has_node("Slow1")
        assert controller.expansion_passes == 2

    def test_cancel_drops_pending_request(self, focus_source):
        """Test cancel() before the debounce elapses abandons the request"""
        builder = GraphBuilder(source=focus_source)
        controller = FocusController(builder, debounce_seconds=0.05)

        async def scenario():
            task = controller.request_focus("Tx1")
            await asyncio.sleep(0.01)
            controller.cancel()
            return await task

        assert asyncio.run(scenario()) is False
        assert controller.focused is None
        assert controller.expansion_passes == 0
        assert len(builder.graph) == 0
