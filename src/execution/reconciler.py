"""
Reconciler — сверка локального зеркала резервов с chain state

Локальное состояние и on-chain программа не должны молча расходиться.
Расхождение больше допуска (или несовпадение флага graduation) поднимается
как InconsistentState и никогда не «угадывается»: reconciliation не пишет в
локальное состояние и не сбрасывает is_graduated.

Сверяемые величины:
- real_sol_reserves (lamports), допуск config.reconcile_sol_tolerance
- remaining_curve_supply ↔ chain real_token_reserves, допуск
  config.reconcile_token_tolerance
- is_graduated (строгое равенство)
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.core.config import EngineConfig
from src.core.errors import InconsistentState
from src.execution.interfaces import ChainLedger, ChainReserves
from src.store.reserve_store import ReserveStore

# Попытки сверки без lock, пока токен торгуется
RECONCILE_ATTEMPTS = 3


@dataclass(frozen=True)
class ReconciliationReport:
    """Результат успешной сверки."""

    token_id: str
    local_version: int
    sol_drift: int  # chain - local
    token_drift: int  # chain - local
    is_graduated: bool
    checked_at_ms: int

    @property
    def in_sync(self) -> bool:
        return self.sol_drift == 0 and self.token_drift == 0


class Reconciler:
    """Сверка ReserveStore с ChainLedger."""

    def __init__(
        self,
        store: ReserveStore,
        ledger: ChainLedger,
        config: Optional[EngineConfig] = None,
    ):
        self.store = store
        self.ledger = ledger
        self.config = config or store.config
        self.logger = logging.getLogger(__name__)

    def reconcile(self, token_id: str) -> ReconciliationReport:
        """
        Сверка одного токена.

        Chain запрос выполняется без per-token lock. Если за время запроса
        прошла локальная сделка (сменилась version), попытка повторяется;
        после RECONCILE_ATTEMPTS неудач последняя сверка идёт под lock.

        Raises:
            InconsistentState: расхождение больше допуска или флаги не совпадают
            TokenNotFound, LockTimeout
        """
        for attempt in range(1, RECONCILE_ATTEMPTS + 1):
            state = self.store.get(token_id)
            chain = self.ledger.fetch_reserves(token_id)
            if self.store.get(token_id).version == state.version:
                break
            self.logger.debug(f"{token_id} traded during chain fetch (attempt {attempt})")
        else:
            with self.store.locked(token_id):
                state = self.store.get(token_id)
                chain = self.ledger.fetch_reserves(token_id)

        self._check_identity(token_id, chain)

        sol_drift = chain.real_sol_reserves - state.real_sol_reserves
        token_drift = chain.real_token_reserves - state.remaining_curve_supply

        if chain.is_graduated != state.is_graduated:
            self._fail(
                token_id,
                f"graduation flag mismatch: chain={chain.is_graduated} local={state.is_graduated}",
            )
        if abs(sol_drift) > self.config.reconcile_sol_tolerance:
            self._fail(
                token_id,
                f"real_sol_reserves drift {sol_drift} exceeds tolerance "
                f"{self.config.reconcile_sol_tolerance}",
            )
        if abs(token_drift) > self.config.reconcile_token_tolerance:
            self._fail(
                token_id,
                f"curve token reserves drift {token_drift} exceeds tolerance "
                f"{self.config.reconcile_token_tolerance}",
            )

        report = ReconciliationReport(
            token_id=token_id,
            local_version=state.version,
            sol_drift=sol_drift,
            token_drift=token_drift,
            is_graduated=state.is_graduated,
            checked_at_ms=self.store.now_ms(),
        )
        if not report.in_sync:
            self.logger.info(
                f"{token_id} within tolerance: sol_drift={sol_drift} token_drift={token_drift}"
            )
        return report

    def _check_identity(self, token_id: str, chain: ChainReserves) -> None:
        if chain.token_id != token_id:
            self._fail(token_id, f"ledger answered for {chain.token_id}")

    def _fail(self, token_id: str, reason: str) -> None:
        self.logger.error(f"Reconciliation failed for {token_id}: {reason}")
        raise InconsistentState(f"Reconciliation failed for {token_id}: {reason}",
                                token_id=token_id)
