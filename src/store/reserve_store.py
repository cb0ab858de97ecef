"""
ReserveStore — граница persistence и конкурентности для ReserveState

- Per-token mutual exclusion: один threading.Lock на token_id, создаётся
  лениво под registry lock. Кросс-токенных блокировок нет.
- Ограниченное ожидание lock: LockTimeout после EngineConfig.lock_timeout_sec.
- Отмена до входа в critical section через threading.Event (TradeCancelled).
- Snapshot reads без lock: последний закоммиченный immutable снапшот.
- Commit: контрактная валидация → backend → замена ссылки на снапшот.
  Частично применённое состояние снаружи не наблюдается.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from pydantic import ValidationError

from src.core.config import CurveParams, EngineConfig
from src.core.contracts import ReserveStateValidator, TradeRecordValidator
from src.core.domain.reserve_state import ReserveState
from src.core.domain.trade import TradeRecord
from src.core.errors import (
    InconsistentState,
    LockTimeout,
    TokenAlreadyExists,
    TokenNotFound,
    TradeCancelled,
)
from src.graduation.state_machine import ensure_monotonic
from src.store.backends import InMemoryBackend, PersistenceBackend

# Интервал проверки cancel_event во время ожидания lock
CANCEL_POLL_SEC = 0.02


def _now_ms() -> int:
    return int(time.time() * 1000)


class ReserveStore:
    """Хранилище снапшотов резервов с per-token блокировками."""

    def __init__(
        self,
        backend: Optional[PersistenceBackend] = None,
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            backend: persistence коллаборатор (default InMemoryBackend)
            config: параметры движка (lock timeout)
            clock: источник времени в UTC миллисекундах (для тестов)
        """
        self.backend = backend if backend is not None else InMemoryBackend()
        self.config = config or EngineConfig()
        self._clock = clock or _now_ms

        self._registry_lock = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._snapshots: Dict[str, ReserveState] = {}

        self._state_contract = ReserveStateValidator()
        self._trade_contract = TradeRecordValidator()
        self.logger = logging.getLogger(__name__)

    def now_ms(self) -> int:
        return self._clock()

    # -------------------------------------------------------------------------
    # Блокировки
    # -------------------------------------------------------------------------

    def _lock_for(self, token_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(token_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[token_id] = lock
            return lock

    @contextmanager
    def locked(
        self,
        token_id: str,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Iterator[None]:
        """
        Критическая секция токена.

        Args:
            token_id: токен
            timeout: ожидание lock в секундах (default config.lock_timeout_sec)
            cancel_event: отмена ожидания вызывающей стороной

        Raises:
            LockTimeout: lock не получен за timeout
            TradeCancelled: cancel_event установлен до получения lock
        """
        lock = self._lock_for(token_id)
        wait = self.config.lock_timeout_sec if timeout is None else timeout

        if cancel_event is None:
            acquired = lock.acquire(timeout=wait)
        else:
            acquired = self._acquire_cancellable(lock, wait, cancel_event, token_id)

        if not acquired:
            self.logger.warning(f"Lock timeout for {token_id} after {wait:.3f}s")
            raise LockTimeout(
                f"Could not lock token {token_id} within {wait:.3f}s", token_id=token_id
            )
        try:
            yield
        finally:
            lock.release()

    def _acquire_cancellable(
        self,
        lock: threading.Lock,
        wait: float,
        cancel_event: threading.Event,
        token_id: str,
    ) -> bool:
        deadline = time.monotonic() + wait
        while True:
            if cancel_event.is_set():
                raise TradeCancelled(
                    f"Trade on {token_id} cancelled before lock acquisition", token_id=token_id
                )
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            if lock.acquire(timeout=min(remaining, CANCEL_POLL_SEC)):
                if cancel_event.is_set():
                    lock.release()
                    raise TradeCancelled(
                        f"Trade on {token_id} cancelled before lock acquisition",
                        token_id=token_id,
                    )
                return True

    # -------------------------------------------------------------------------
    # Чтение
    # -------------------------------------------------------------------------

    def get(self, token_id: str) -> ReserveState:
        """
        Последний закоммиченный снапшот (без per-token lock).

        Raises:
            TokenNotFound: токен не запущен
            InconsistentState: сохранённый документ нарушает контракт
        """
        snapshot = self._snapshots.get(token_id)
        if snapshot is not None:
            return snapshot

        doc = self.backend.load_state(token_id)
        if doc is None:
            raise TokenNotFound(f"Token {token_id} not found", token_id=token_id)

        state = self._decode_state(doc, token_id)
        with self._registry_lock:
            # Параллельный commit мог опередить загрузку
            return self._snapshots.setdefault(token_id, state)

    def exists(self, token_id: str) -> bool:
        return token_id in self._snapshots or self.backend.load_state(token_id) is not None

    def token_ids(self) -> List[str]:
        return sorted(set(self.backend.list_tokens()) | set(self._snapshots))

    def trades(self, token_id: str) -> List[TradeRecord]:
        """Журнал сделок токена в порядке commit."""
        self.get(token_id)
        records = []
        for doc in self.backend.load_trades(token_id):
            self._trade_contract.ensure_consistent(doc, token_id=token_id)
            records.append(TradeRecord.model_validate(doc))
        return records

    def _decode_state(self, doc: dict, token_id: str) -> ReserveState:
        self._state_contract.ensure_consistent(doc, token_id=token_id)
        try:
            state = ReserveState.model_validate(doc)
        except ValidationError as e:
            raise InconsistentState(
                f"Stored state for {token_id} violates invariants: {e}", token_id=token_id
            ) from e
        if state.token_id != token_id:
            raise InconsistentState(
                f"Stored state under {token_id} belongs to {state.token_id}", token_id=token_id
            )
        return state

    # -------------------------------------------------------------------------
    # Запись
    # -------------------------------------------------------------------------

    def launch(
        self,
        token_id: str,
        creator: str,
        params: Optional[CurveParams] = None,
    ) -> ReserveState:
        """
        Запуск токена: начальное состояние из протокольных констант.

        Raises:
            TokenAlreadyExists: token_id уже запущен
        """
        params = params or CurveParams()
        with self.locked(token_id):
            if self.exists(token_id):
                raise TokenAlreadyExists(f"Token {token_id} already launched", token_id=token_id)

            state = ReserveState.initial(token_id, creator, params, self.now_ms())
            doc = state.model_dump(mode="json")
            self._state_contract.ensure_consistent(doc, token_id=token_id)
            self.backend.commit(token_id, doc)
            with self._registry_lock:
                self._snapshots[token_id] = state

        self.logger.info(
            f"Launched {token_id} creator={creator} "
            f"vs={state.virtual_sol_reserves} vt={state.virtual_token_reserves} "
            f"threshold={state.graduation_threshold}"
        )
        return state

    def commit(
        self,
        previous: ReserveState,
        new_state: ReserveState,
        record: Optional[TradeRecord] = None,
    ) -> None:
        """
        Commit нового снапшота. Вызывается только внутри locked(token_id).

        Проверки до записи:
        - previous совпадает с текущим закоммиченным снапшотом (нет lost update)
        - version растёт ровно на 1
        - is_graduated не сбрасывается
        - документы проходят JSON Schema контракты

        Raises:
            InconsistentState: любая из проверок не прошла
        """
        token_id = previous.token_id
        current = self.get(token_id)

        if new_state.token_id != token_id:
            raise InconsistentState(
                f"Commit of {new_state.token_id} over {token_id}", token_id=token_id
            )
        if current.version != previous.version:
            raise InconsistentState(
                f"Stale commit for {token_id}: based on version {previous.version}, "
                f"current is {current.version}",
                token_id=token_id,
            )
        if new_state.version != previous.version + 1:
            raise InconsistentState(
                f"Version must advance by one: {previous.version} -> {new_state.version}",
                token_id=token_id,
            )
        ensure_monotonic(current, new_state)

        state_doc = new_state.model_dump(mode="json")
        self._state_contract.ensure_consistent(state_doc, token_id=token_id)
        trade_doc = None
        if record is not None:
            trade_doc = record.model_dump(mode="json")
            self._trade_contract.ensure_consistent(trade_doc, token_id=token_id)

        self.backend.commit(token_id, state_doc, trade_doc)
        with self._registry_lock:
            self._snapshots[token_id] = new_state
