"""
Trade — Модель исполненной сделки на bonding curve

Immutable Pydantic модель записи журнала сделок. TradeRecord создаётся
TradeExecutor в том же commit, что и новое ReserveState, и содержит
достаточно данных для статистики цены без обращения к внешним источникам.
Полная совместимость с JSON Schema (contracts/schema/trade_record.json).
"""

from enum import Enum
from fractions import Fraction
from typing import Optional

from pydantic import BaseModel, Field

from src.core.math.checked import U128_MAX, ratio


# =============================================================================
# ENUMS
# =============================================================================


class TradeSide(str, Enum):
    """Направление сделки"""

    BUY = "buy"  # SOL → токены
    SELL = "sell"  # токены → SOL


# =============================================================================
# TRADE RECORD
# =============================================================================


class TradeRecord(BaseModel):
    """
    Запись журнала сделок.

    amount_in/amount_out в единицах стороны: для BUY вход в lamports, выход в
    base units токена; для SELL наоборот (выход — net SOL после комиссий).
    """

    token_id: str = Field(..., min_length=1, description="Идентификатор токена")
    side: TradeSide = Field(..., description="Направление сделки (buy/sell)")
    amount_in: int = Field(..., gt=0, le=U128_MAX, description="Входящая сумма")
    amount_out: int = Field(..., gt=0, le=U128_MAX, description="Исходящая сумма (net)")
    fees_total: int = Field(..., ge=0, le=U128_MAX, description="Комиссии (lamports)")
    virtual_sol_after: int = Field(..., gt=0, le=U128_MAX, description="vs после сделки")
    virtual_token_after: int = Field(..., gt=0, le=U128_MAX, description="vt после сделки")
    real_sol_after: int = Field(..., ge=0, le=U128_MAX, description="Real SOL после сделки")
    version: int = Field(..., gt=0, description="Версия ReserveState после commit")
    ts_utc_ms: int = Field(..., ge=0, description="Время commit (UTC, миллисекунды)")
    caused_graduation: bool = Field(False, description="Сделка вызвала graduation")
    trader: Optional[str] = Field(
        None, min_length=1, description="Адрес трейдера (если известен)"
    )

    model_config = {"frozen": True}

    @property
    def price_after(self) -> Fraction:
        """Цена curve сразу после сделки (SOL за токен)."""
        return ratio(self.virtual_sol_after, self.virtual_token_after)
