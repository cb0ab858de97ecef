"""Общие fixtures: протокольные параметры, хранилища, executor-ы."""

import pytest

from src.core.config import LAMPORTS_PER_SOL, TOKEN_BASE_UNITS, CurveParams, EngineConfig
from src.core.domain import ReserveState
from src.execution import GraduationOutbox, TradeExecutor
from src.store import InMemoryBackend, ReserveStore

T0_MS = 1_700_000_000_000


class FakeClock:
    """Детерминированные часы: каждый вызов +1 мс."""

    def __init__(self, start_ms: int = T0_MS):
        self.now_ms = start_ms

    def __call__(self) -> int:
        self.now_ms += 1
        return self.now_ms


class RecordingNotifier:
    """GraduationNotifier, запоминающий события."""

    def __init__(self):
        self.events = []

    def notify_graduated(self, event):
        self.events.append(event)


# =============================================================================
# ПАРАМЕТРЫ
# =============================================================================


@pytest.fixture
def params():
    """Протокольные константы по умолчанию (30 SOL / 1.073B, 800M на curve)."""
    return CurveParams()


@pytest.fixture
def deep_params():
    """
    Curve, на которой порог 30,000 SOL достижим.

    При bonding_curve_supply = 800M запас curve исчерпывается около 85 SOL,
    поэтому для сценариев graduation весь virtual token reserve доступен.
    """
    supply = 1_073_000_000 * TOKEN_BASE_UNITS
    return CurveParams(bonding_curve_supply=supply, total_supply=supply)


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def zero_fee_config():
    """Без комиссий: real_sol растёт ровно на sol_in."""
    return EngineConfig(platform_fee_bps=0, creator_fee_bps=0)


# =============================================================================
# СОСТОЯНИЯ
# =============================================================================


@pytest.fixture
def fresh_state(params):
    """Только что запущенный токен."""
    return ReserveState.initial("AGENT1", "creator1", params, T0_MS)


@pytest.fixture
def near_threshold_state(deep_params):
    """
    Фабрика состояния с заданным real_sol_reserves (в SOL) на deep curve.

    Virtual reserves согласованы с k исходной curve, как будто real_sol
    внесён покупками без комиссий.
    """

    def _make(real_sol_sol: int, token_id: str = "AGENT1", version: int = 7) -> ReserveState:
        base = ReserveState.initial(token_id, "creator1", deep_params, T0_MS)
        k = base.invariant_product
        real_sol = real_sol_sol * LAMPORTS_PER_SOL
        vs = base.virtual_sol_reserves + real_sol
        vt = k // vs
        return base.evolve(
            virtual_sol_reserves=vs,
            virtual_token_reserves=vt,
            real_sol_reserves=real_sol,
            circulating_supply=base.virtual_token_reserves - vt,
            version=version,
        )

    return _make


# =============================================================================
# ХРАНИЛИЩЕ / EXECUTOR
# =============================================================================


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def store(backend, clock):
    return ReserveStore(backend=backend, clock=clock)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def executor(store, notifier):
    return TradeExecutor(store, outbox=GraduationOutbox(notifier))


@pytest.fixture
def seeded_store(backend, clock, zero_fee_config):
    """
    Фабрика ReserveStore с заранее сохранённым состоянием (без комиссий).

    Состояние кладётся напрямую в backend, как после рестарта процесса.
    """

    def _make(state: ReserveState, config: EngineConfig = zero_fee_config) -> ReserveStore:
        backend.commit(state.token_id, state.model_dump(mode="json"))
        return ReserveStore(backend=backend, config=config, clock=clock)

    return _make


@pytest.fixture
def store_factory():
    """Фабрика независимых ReserveStore (свои backend и часы)."""

    def _make(config: EngineConfig = None) -> ReserveStore:
        return ReserveStore(config=config, clock=FakeClock())

    return _make
