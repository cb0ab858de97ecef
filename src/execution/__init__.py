"""Execution — исполнение сделок, маршрутизация и сверка с внешними системами.

- TradeExecutor: единственный writer ReserveState
- TradeRouter: bonding curve ↔ DEX по сохранённому флагу graduation
- Reconciler: сверка с chain state (InconsistentState при расхождении)
- GraduationOutbox: доставка событий graduation ровно один раз
"""

from .interfaces import (
    ChainLedger,
    ChainReserves,
    DexFill,
    DexVenue,
    GraduationEvent,
    GraduationNotifier,
)
from .notifications import GraduationOutbox
from .reconciler import ReconciliationReport, Reconciler
from .router import RoutedTrade, TradeRouter, Venue
from .trade_executor import TradeExecutor, TradeResult

__all__ = [
    "ChainLedger",
    "ChainReserves",
    "DexFill",
    "DexVenue",
    "GraduationEvent",
    "GraduationNotifier",
    "GraduationOutbox",
    "ReconciliationReport",
    "Reconciler",
    "RoutedTrade",
    "TradeRouter",
    "Venue",
    "TradeExecutor",
    "TradeResult",
]
