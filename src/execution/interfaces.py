"""
Интерфейсы внешних коллабораторов движка

- ChainLedger: авторитетное on-chain состояние резервов (для reconciliation)
- DexVenue: торговля после graduation, та же форма (side, amount_in, min_out)
- GraduationNotifier: события {token_id, graduated: true}, ровно одно на переход

Коллабораторы реализуются вне движка (RPC клиент, DEX роутер, websocket fan-out).
"""

from dataclasses import dataclass
from typing import Protocol

from src.core.domain.trade import TradeSide


@dataclass(frozen=True)
class ChainReserves:
    """Резервы токена по данным on-chain программы.

    real_token_reserves — токены, оставшиеся на curve (on-chain семантика),
    соответствует ReserveState.remaining_curve_supply.
    """

    token_id: str
    real_sol_reserves: int
    real_token_reserves: int
    is_graduated: bool


@dataclass(frozen=True)
class DexFill:
    """Результат исполнения на DEX."""

    token_id: str
    side: TradeSide
    amount_in: int
    amount_out: int
    venue: str = "dex"
    tx_id: str | None = None


@dataclass(frozen=True)
class GraduationEvent:
    """Событие graduation для notification коллаборатора."""

    token_id: str
    real_sol_reserves: int
    graduation_threshold: int
    version: int
    ts_utc_ms: int
    graduated: bool = True


class ChainLedger(Protocol):
    def fetch_reserves(self, token_id: str) -> ChainReserves:
        ...


class DexVenue(Protocol):
    def swap(self, token_id: str, side: TradeSide, amount_in: int, min_out: int) -> DexFill:
        ...


class GraduationNotifier(Protocol):
    def notify_graduated(self, event: GraduationEvent) -> None:
        ...
