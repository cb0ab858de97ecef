"""
TradeExecutor — единственный writer ReserveState

Порядок исполнения:
1. Получение per-token lock (ограниченное ожидание → LockTimeout)
2. Загрузка текущего снапшота
3. GraduatedToken если флаг установлен
4. Повторная котировка против ТЕКУЩЕГО снапшота (котировке вызывающей
   стороны не доверяем)
5. SlippageExceeded если amount_out < min_out
6. Применение дельт (checked арифметика) → GraduationDetector
7. Commit снапшота и записи журнала
8. Освобождение lock, доставка события graduation

Любая ошибка до шага 7 оставляет сохранённое состояние без изменений:
запись происходит только после прохождения всех проверок.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from src.core.config import EngineConfig
from src.core.domain.reserve_state import ReserveState
from src.core.domain.trade import TradeRecord, TradeSide
from src.core.errors import GraduatedToken, InvalidAmount, SlippageExceeded
from src.core.math.checked import checked_add, checked_sub
from src.curve.quote_engine import Quote, quote
from src.execution.interfaces import GraduationEvent
from src.execution.notifications import GraduationOutbox
from src.graduation.state_machine import GraduationDetector, GraduationTransition
from src.store.reserve_store import ReserveStore


@dataclass(frozen=True)
class TradeResult:
    """Результат исполненной сделки."""

    token_id: str
    side: TradeSide
    amount_in: int
    amount_out: int
    new_state: ReserveState
    graduated: bool  # именно эта сделка вызвала graduation
    quote: Quote
    transition: GraduationTransition
    record: TradeRecord


class TradeExecutor:
    """Исполнение сделок по bonding curve."""

    def __init__(
        self,
        store: ReserveStore,
        config: Optional[EngineConfig] = None,
        detector: Optional[GraduationDetector] = None,
        outbox: Optional[GraduationOutbox] = None,
    ):
        """
        Args:
            store: хранилище резервов (lock + persistence)
            config: параметры движка (default store.config)
            detector: детектор graduation
            outbox: outbox событий graduation (default без notifier)
        """
        self.store = store
        self.config = config or store.config
        self.detector = detector or GraduationDetector()
        self.outbox = outbox or GraduationOutbox()
        self.logger = logging.getLogger(__name__)

    def execute_trade(
        self,
        token_id: str,
        side: TradeSide,
        amount_in: int,
        min_out: int,
        cancel_event: Optional[threading.Event] = None,
        trader: Optional[str] = None,
    ) -> TradeResult:
        """
        Исполнение сделки.

        Args:
            token_id: токен
            side: BUY (amount_in в lamports) или SELL (amount_in в base units)
            amount_in: входящая сумма
            min_out: минимально приемлемый выход (net)
            cancel_event: отмена до входа в critical section
            trader: адрес трейдера для журнала (статистика по трейдерам)

        Returns:
            TradeResult

        Raises:
            InvalidAmount, TokenNotFound, GraduatedToken, InsufficientOutput,
            SlippageExceeded, Overflow, LockTimeout, TradeCancelled,
            InconsistentState
        """
        side = TradeSide(side)
        if isinstance(min_out, bool) or not isinstance(min_out, int) or min_out < 0:
            raise InvalidAmount(f"min_out must be a non-negative integer, got {min_out!r}",
                                token_id=token_id)

        with self.store.locked(token_id, cancel_event=cancel_event):
            state = self.store.get(token_id)

            if state.is_graduated:
                raise GraduatedToken(
                    f"Token {token_id} has graduated; trade via the DEX venue",
                    token_id=token_id,
                )

            fresh = quote(state, side, amount_in, config=self.config)

            if fresh.amount_out < min_out:
                raise SlippageExceeded(
                    f"{side.value} on {token_id}: amount_out {fresh.amount_out} < min_out {min_out}",
                    token_id=token_id,
                    amount_out=fresh.amount_out,
                    min_out=min_out,
                )

            now_ms = max(self.store.now_ms(), state.updated_at_ms)
            updated = self._apply(state, fresh, now_ms)
            transition = self.detector.evaluate(state, updated)
            if transition.transition_occurred:
                updated = updated.evolve(is_graduated=True)

            record = TradeRecord(
                token_id=token_id,
                side=side,
                amount_in=fresh.amount_in,
                amount_out=fresh.amount_out,
                fees_total=fresh.fees.total,
                virtual_sol_after=updated.virtual_sol_reserves,
                virtual_token_after=updated.virtual_token_reserves,
                real_sol_after=updated.real_sol_reserves,
                version=updated.version,
                ts_utc_ms=now_ms,
                caused_graduation=transition.transition_occurred,
                trader=trader,
            )

            self.store.commit(state, updated, record)

            if transition.transition_occurred:
                self.outbox.enqueue(
                    GraduationEvent(
                        token_id=token_id,
                        real_sol_reserves=updated.real_sol_reserves,
                        graduation_threshold=updated.graduation_threshold,
                        version=updated.version,
                        ts_utc_ms=now_ms,
                    )
                )

        self.logger.info(
            f"Executed {side.value} on {token_id}: in={fresh.amount_in} out={fresh.amount_out} "
            f"fees={fresh.fees.total} impact={fresh.price_impact_pct:.4f}% "
            f"real_sol={updated.real_sol_reserves} v={updated.version}"
        )
        if transition.transition_occurred:
            self.logger.warning(f"Token {token_id} graduated: {transition.details}")
        self.outbox.deliver()

        return TradeResult(
            token_id=token_id,
            side=side,
            amount_in=fresh.amount_in,
            amount_out=fresh.amount_out,
            new_state=updated,
            graduated=transition.transition_occurred,
            quote=fresh,
            transition=transition,
            record=record,
        )

    def _apply(self, state: ReserveState, fresh: Quote, now_ms: int) -> ReserveState:
        """
        Новый снапшот с дельтами сделки (флаг graduation не меняется).

        BUY:  real_sol += net SOL, circulating += tokens_out
        SELL: real_sol -= gross SOL, circulating -= tokens_in
        """
        if fresh.side is TradeSide.BUY:
            real_sol = checked_add(state.real_sol_reserves, fresh.curve_sol_delta)
            circulating = checked_add(state.circulating_supply, fresh.amount_out)
        else:
            real_sol = checked_sub(state.real_sol_reserves, fresh.curve_sol_delta)
            circulating = checked_sub(state.circulating_supply, fresh.amount_in)

        return state.evolve(
            virtual_sol_reserves=fresh.new_virtual_sol_reserves,
            virtual_token_reserves=fresh.new_virtual_token_reserves,
            real_sol_reserves=real_sol,
            circulating_supply=circulating,
            updated_at_ms=now_ms,
            version=state.version + 1,
        )
