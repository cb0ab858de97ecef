"""Graduation — монотонный переход bonding curve → DEX.

- Единственное правило перехода (state_machine), исполняется только TradeExecutor
- Read-only статус прогресса и статистика журнала (status), читает сохранённый флаг
"""

from .state_machine import (
    GraduationDetector,
    GraduationState,
    GraduationTransition,
    ensure_monotonic,
)
from .status import (
    GraduationStatus,
    TradingStats,
    Unavailable,
    graduation_status,
    holder_balances,
    price_change_pct,
    traded_volume,
    trader_history,
    trading_stats,
)

__all__ = [
    "GraduationDetector",
    "GraduationState",
    "GraduationTransition",
    "ensure_monotonic",
    "GraduationStatus",
    "Unavailable",
    "graduation_status",
    "price_change_pct",
    "traded_volume",
    "TradingStats",
    "trading_stats",
    "trader_history",
    "holder_balances",
]
