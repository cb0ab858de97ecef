"""
TradeRouter — единая точка входа для сделок: bonding curve или DEX

Вызывающей стороне не нужно ветвиться по curve/DEX: форма запроса
(side, amount_in, min_out) одинакова. Решение принимается по СОХРАНЁННОМУ
флагу is_graduated; если graduation произошла между чтением флага и
получением lock, executor вернёт GraduatedToken и сделка уйдёт на DEX.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.core.domain.trade import TradeSide
from src.core.errors import GraduatedToken
from src.execution.interfaces import DexFill, DexVenue
from src.execution.trade_executor import TradeExecutor, TradeResult


class Venue(str, Enum):
    """Площадка исполнения"""

    BONDING_CURVE = "bonding_curve"
    DEX = "dex"


@dataclass(frozen=True)
class RoutedTrade:
    """Результат маршрутизированной сделки."""

    token_id: str
    venue: Venue
    amount_out: int
    graduated: bool
    curve_result: Optional[TradeResult] = None
    dex_fill: Optional[DexFill] = None


class TradeRouter:
    """Маршрутизация сделок между curve и DEX."""

    def __init__(self, executor: TradeExecutor, dex: Optional[DexVenue] = None):
        self.executor = executor
        self.dex = dex
        self.logger = logging.getLogger(__name__)

    def route_trade(
        self,
        token_id: str,
        side: TradeSide,
        amount_in: int,
        min_out: int,
        cancel_event: Optional[threading.Event] = None,
        trader: Optional[str] = None,
    ) -> RoutedTrade:
        """
        Исполнение сделки на подходящей площадке.

        Raises:
            GraduatedToken: токен graduated, а DEX коллаборатор не настроен
            (прочие ошибки TradeExecutor пробрасываются без изменений)
        """
        side = TradeSide(side)
        state = self.executor.store.get(token_id)

        if not state.is_graduated:
            try:
                result = self.executor.execute_trade(
                    token_id, side, amount_in, min_out, cancel_event=cancel_event, trader=trader
                )
            except GraduatedToken:
                self.logger.info(f"{token_id} graduated before execution, rerouting to DEX")
            else:
                return RoutedTrade(
                    token_id=token_id,
                    venue=Venue.BONDING_CURVE,
                    amount_out=result.amount_out,
                    graduated=result.graduated,
                    curve_result=result,
                )

        return self._route_to_dex(token_id, side, amount_in, min_out)

    def _route_to_dex(
        self,
        token_id: str,
        side: TradeSide,
        amount_in: int,
        min_out: int,
    ) -> RoutedTrade:
        if self.dex is None:
            raise GraduatedToken(
                f"Token {token_id} has graduated and no DEX venue is configured",
                token_id=token_id,
            )

        fill = self.dex.swap(token_id, side, amount_in, min_out)
        self.logger.info(
            f"Routed {side.value} on {token_id} to DEX: in={amount_in} out={fill.amount_out}"
        )
        return RoutedTrade(
            token_id=token_id,
            venue=Venue.DEX,
            amount_out=fill.amount_out,
            graduated=True,
            dex_fill=fill,
        )
