"""
Domain models and value objects.

Contains fundamental domain entities: ReserveState, TradeRecord, TradeSide.
"""

from src.core.domain.reserve_state import ReserveState
from src.core.domain.trade import TradeRecord, TradeSide

__all__ = [
    # Reserve state
    "ReserveState",
    # Trade journal
    "TradeRecord",
    "TradeSide",
]
