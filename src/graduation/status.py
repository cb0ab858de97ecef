"""Graduation Status — read-only представление прогресса bonding curve.

Читает сохранённый флаг is_graduated; graduation здесь не вычисляется.
Статистика цены по журналу сделок возвращает явный Unavailable при
отсутствии данных вместо синтетических значений.
"""

from dataclasses import dataclass
from fractions import Fraction
from typing import Dict, Iterable, List, Optional

from src.core.domain.reserve_state import ReserveState
from src.core.domain.trade import TradeRecord, TradeSide
from src.core.math.checked import pct_change
from src.graduation.state_machine import GraduationState


@dataclass(frozen=True)
class Unavailable:
    """Явное отсутствие значения (нет данных для расчёта)."""

    reason: str


@dataclass(frozen=True)
class GraduationStatus:
    """Снапшот прогресса graduation для status-запросов и UI polling."""

    token_id: str
    creator: str
    state: GraduationState
    is_graduated: bool
    current_reserve: int
    graduation_threshold: int
    progress_pct: float
    remaining_to_graduation: int
    spot_price: Fraction
    market_cap_lamports: int
    circulating_supply: int
    total_supply: int
    version: int


def graduation_status(state: ReserveState) -> GraduationStatus:
    """Построение статуса из снапшота.

    progress_pct = min(real_sol / threshold * 100, 100)
    remaining_to_graduation = max(threshold - real_sol, 0)
    """
    threshold = state.graduation_threshold
    reserve = state.real_sol_reserves

    return GraduationStatus(
        token_id=state.token_id,
        creator=state.creator,
        state=GraduationState.of(state),
        is_graduated=state.is_graduated,
        current_reserve=reserve,
        graduation_threshold=threshold,
        progress_pct=min(float(Fraction(reserve, threshold) * 100), 100.0),
        remaining_to_graduation=max(threshold - reserve, 0),
        spot_price=state.spot_price,
        market_cap_lamports=state.market_cap_lamports,
        circulating_supply=state.circulating_supply,
        total_supply=state.total_supply,
        version=state.version,
    )


def price_change_pct(
    records: Iterable[TradeRecord],
    since_ms: int,
    until_ms: Optional[int] = None,
) -> float | Unavailable:
    """Изменение цены curve в окне [since_ms, until_ms] по журналу сделок.

    Нужны минимум две сделки в окне: первая даёт базовую цену, последняя —
    текущую.

    Returns:
        Процентное изменение или Unavailable
    """
    window = [
        r for r in records
        if r.ts_utc_ms >= since_ms and (until_ms is None or r.ts_utc_ms <= until_ms)
    ]
    if len(window) < 2:
        return Unavailable(reason=f"{len(window)} trade(s) in window, need at least 2")

    window.sort(key=lambda r: r.version)
    return pct_change(window[0].price_after, window[-1].price_after)


def traded_volume(
    records: Iterable[TradeRecord],
    since_ms: int,
) -> int | Unavailable:
    """SOL-объём сделок (lamports) с момента since_ms.

    BUY учитывается по amount_in, SELL по amount_out + fees_total (gross).
    """
    window = [r for r in records if r.ts_utc_ms >= since_ms]
    if not window:
        return Unavailable(reason="no trades in window")

    return sum(_sol_volume(r) for r in window)


def _sol_volume(record: TradeRecord) -> int:
    if record.side is TradeSide.BUY:
        return record.amount_in
    return record.amount_out + record.fees_total


# =============================================================================
# АКТИВНОСТЬ ТОРГОВЛИ
# =============================================================================


@dataclass(frozen=True)
class TradingStats:
    """Сводка торговли по журналу за окно."""

    total_trades: int
    buy_count: int
    sell_count: int
    volume_lamports: int
    avg_trade_size_lamports: int  # floor(volume / total_trades)
    all_time_high: Fraction
    all_time_low: Fraction
    last_price: Fraction
    unique_traders: int  # сделки без trader не учитываются
    first_trade_ms: int
    last_trade_ms: int


def trading_stats(
    records: Iterable[TradeRecord],
    since_ms: int = 0,
) -> TradingStats | Unavailable:
    """Статистика сделок с момента since_ms.

    Цены high/low/last берутся из price_after каждой сделки окна.
    """
    window = sorted((r for r in records if r.ts_utc_ms >= since_ms), key=lambda r: r.version)
    if not window:
        return Unavailable(reason="no trades in window")

    prices = [r.price_after for r in window]
    volume = sum(_sol_volume(r) for r in window)
    buys = sum(1 for r in window if r.side is TradeSide.BUY)

    return TradingStats(
        total_trades=len(window),
        buy_count=buys,
        sell_count=len(window) - buys,
        volume_lamports=volume,
        avg_trade_size_lamports=volume // len(window),
        all_time_high=max(prices),
        all_time_low=min(prices),
        last_price=prices[-1],
        unique_traders=len({r.trader for r in window if r.trader is not None}),
        first_trade_ms=window[0].ts_utc_ms,
        last_trade_ms=window[-1].ts_utc_ms,
    )


def trader_history(
    records: Iterable[TradeRecord],
    trader: str,
    limit: int = 50,
) -> List[TradeRecord]:
    """Сделки трейдера, новые первыми."""
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")
    own = [r for r in records if r.trader == trader]
    own.sort(key=lambda r: r.version, reverse=True)
    return own[:limit]


def holder_balances(records: Iterable[TradeRecord]) -> Dict[str, int]:
    """Токены на руках у каждого трейдера (base units), только положительные.

    Считается по полному журналу: BUY добавляет amount_out, SELL списывает
    amount_in. Сделки без trader не учитываются.
    """
    balances: Dict[str, int] = {}
    for r in records:
        if r.trader is None:
            continue
        delta = r.amount_out if r.side is TradeSide.BUY else -r.amount_in
        balances[r.trader] = balances.get(r.trader, 0) + delta
    return {trader: amount for trader, amount in sorted(balances.items()) if amount > 0}
