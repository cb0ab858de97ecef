"""Тесты Reconciler: сверка локального зеркала с chain state."""

import logging

import pytest

from src.core.config import LAMPORTS_PER_SOL, EngineConfig
from src.core.domain import TradeSide
from src.core.errors import InconsistentState, TokenNotFound
from src.execution import ChainReserves, Reconciler


class FakeLedger:
    """ChainLedger с подменяемым ответом."""

    def __init__(self):
        self.reserves = {}

    def fetch_reserves(self, token_id):
        return self.reserves[token_id]


def _mirror(state, sol_drift=0, token_drift=0, is_graduated=None, token_id=None):
    """Chain ответ, совпадающий с локальным состоянием с точностью до drift."""
    return ChainReserves(
        token_id=token_id or state.token_id,
        real_sol_reserves=state.real_sol_reserves + sol_drift,
        real_token_reserves=state.remaining_curve_supply + token_drift,
        is_graduated=state.is_graduated if is_graduated is None else is_graduated,
    )


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def traded(store, executor):
    store.launch("AGENT1", "creator1")
    executor.execute_trade("AGENT1", TradeSide.BUY, LAMPORTS_PER_SOL, 0)
    return store.get("AGENT1")


class TestReconcile:
    """Сверка одного токена"""

    def test_in_sync(self, store, ledger, traded):
        ledger.reserves["AGENT1"] = _mirror(traded)

        report = Reconciler(store, ledger).reconcile("AGENT1")

        assert report.in_sync
        assert report.sol_drift == 0
        assert report.token_drift == 0
        assert report.local_version == traded.version
        assert report.is_graduated is False

    def test_drift_within_tolerance(self, store, ledger, traded):
        ledger.reserves["AGENT1"] = _mirror(traded, sol_drift=-5, token_drift=3)
        config = EngineConfig(reconcile_sol_tolerance=10, reconcile_token_tolerance=10)

        report = Reconciler(store, ledger, config).reconcile("AGENT1")

        assert not report.in_sync
        assert report.sol_drift == -5
        assert report.token_drift == 3

    def test_sol_drift_raises(self, store, ledger, traded, caplog):
        ledger.reserves["AGENT1"] = _mirror(traded, sol_drift=1)

        with pytest.raises(InconsistentState, match="real_sol_reserves drift 1"):
            Reconciler(store, ledger).reconcile("AGENT1")
        assert any(r.levelno == logging.ERROR for r in caplog.records)

    def test_token_drift_raises(self, store, ledger, traded):
        ledger.reserves["AGENT1"] = _mirror(traded, token_drift=-100)

        with pytest.raises(InconsistentState, match="token reserves drift"):
            Reconciler(store, ledger).reconcile("AGENT1")

    def test_flag_mismatch_raises(self, store, ledger, traded):
        ledger.reserves["AGENT1"] = _mirror(traded, is_graduated=True)

        with pytest.raises(InconsistentState, match="graduation flag mismatch"):
            Reconciler(store, ledger).reconcile("AGENT1")

    def test_never_clears_local_flag(self, seeded_store, near_threshold_state, ledger):
        state = near_threshold_state(30_001).evolve(is_graduated=True)
        store = seeded_store(state)
        ledger.reserves["AGENT1"] = _mirror(state, is_graduated=False)

        with pytest.raises(InconsistentState):
            Reconciler(store, ledger).reconcile("AGENT1")
        assert store.get("AGENT1").is_graduated

    def test_failure_leaves_state_untouched(self, store, ledger, traded):
        ledger.reserves["AGENT1"] = _mirror(traded, sol_drift=10**9)

        with pytest.raises(InconsistentState):
            Reconciler(store, ledger).reconcile("AGENT1")
        assert store.get("AGENT1") is traded

    def test_ledger_answers_for_other_token(self, store, ledger, traded):
        ledger.reserves["AGENT1"] = _mirror(traded, token_id="OTHER")

        with pytest.raises(InconsistentState, match="OTHER"):
            Reconciler(store, ledger).reconcile("AGENT1")

    def test_unknown_token(self, store, ledger):
        with pytest.raises(TokenNotFound):
            Reconciler(store, ledger).reconcile("NOPE")


class TradingLedger:
    """ChainLedger, за время запроса которого проходит локальная сделка."""

    def __init__(self, store, executor, trades):
        self.store = store
        self.executor = executor
        self.remaining = trades
        self.calls = 0

    def fetch_reserves(self, token_id):
        self.calls += 1
        if self.remaining:
            self.remaining -= 1
            self.executor.execute_trade(token_id, TradeSide.BUY, LAMPORTS_PER_SOL, 0)
        return _mirror(self.store.get(token_id))


class TestReconcileConcurrency:
    """Chain запрос не держит per-token lock"""

    def test_chain_fetch_outside_token_lock(self, store, traded):
        class LockCheckingLedger:
            def fetch_reserves(self, token_id):
                # Lock свободен: сделки не ждут chain
                with store.locked(token_id, timeout=0.01):
                    return _mirror(store.get(token_id))

        report = Reconciler(store, LockCheckingLedger()).reconcile("AGENT1")

        assert report.in_sync

    def test_trade_during_fetch_retried(self, store, executor, traded):
        ledger = TradingLedger(store, executor, trades=1)

        report = Reconciler(store, ledger).reconcile("AGENT1")

        assert report.in_sync
        assert report.local_version == traded.version + 1
        assert ledger.calls == 2

    def test_busy_token_reconciled_under_lock(self, store, executor, traded):
        ledger = TradingLedger(store, executor, trades=3)

        report = Reconciler(store, ledger).reconcile("AGENT1")

        assert report.in_sync
        assert report.local_version == traded.version + 3
        assert ledger.calls == 4
