"""
GraduationOutbox — доставка событий graduation ровно один раз на переход

Событие ставится в outbox внутри critical section TradeExecutor (ровно один
раз: переход единственный), доставляется после освобождения lock. Ошибка
notifier не откатывает уже закоммиченную сделку: событие остаётся в outbox
и доставляется при следующем deliver().
"""

import logging
import threading
from typing import Dict, List, Optional

from src.execution.interfaces import GraduationEvent, GraduationNotifier


class GraduationOutbox:
    """Outbox событий graduation."""

    def __init__(self, notifier: Optional[GraduationNotifier] = None):
        self.notifier = notifier
        self._lock = threading.Lock()
        self._pending: Dict[str, GraduationEvent] = {}
        self._in_flight: set[str] = set()
        self._delivered: set[str] = set()
        self.logger = logging.getLogger(__name__)

    def enqueue(self, event: GraduationEvent) -> bool:
        """
        Постановка события в очередь.

        Returns:
            False если событие для этого токена уже было поставлено/доставлено
        """
        with self._lock:
            if event.token_id in self._pending or event.token_id in self._in_flight \
                    or event.token_id in self._delivered:
                self.logger.warning(f"Duplicate graduation event for {event.token_id} ignored")
                return False
            self._pending[event.token_id] = event
            return True

    def pending(self) -> List[GraduationEvent]:
        with self._lock:
            return list(self._pending.values())

    def deliver(self) -> int:
        """
        Доставка ожидающих событий notifier-у.

        Returns:
            Количество доставленных событий
        """
        if self.notifier is None:
            return 0

        # Забираем batch целиком: параллельный deliver() не получит те же события
        with self._lock:
            batch = list(self._pending.values())
            self._pending.clear()
            self._in_flight.update(e.token_id for e in batch)

        delivered = 0
        for event in batch:
            try:
                self.notifier.notify_graduated(event)
            except Exception as e:
                self.logger.error(
                    f"Graduation notification for {event.token_id} failed, kept for retry: {e}"
                )
                with self._lock:
                    self._in_flight.discard(event.token_id)
                    self._pending[event.token_id] = event
                continue
            with self._lock:
                self._in_flight.discard(event.token_id)
                self._delivered.add(event.token_id)
            delivered += 1
        return delivered
