"""
QuoteEngine — Constant-product котировки bonding curve

Чистые функции над immutable снапшотом ReserveState. Снапшот никогда не
мутирует: k = virtual_sol * virtual_token сохраняется при любой котировке и
меняется только через исполненную сделку (TradeExecutor).

ФОРМУЛЫ:
    k = vs * vt                                (checked u128)

    BUY (комиссия ДО swap):
        sol_in_net = sol_in - fees(sol_in)
        new_vs     = vs + sol_in_net
        new_vt     = floor(k / new_vs)
        tokens_out = vt - new_vt

    SELL (комиссия ПОСЛЕ swap):
        new_vt   = vt + tokens_in
        new_vs   = ceil(k / new_vt)            (выплата округляется вниз)
        sol_out  = vs - new_vs
        net_out  = sol_out - fees(sol_out)

    price        = vs / vt
    price_impact = (new_price - price) / price * 100
    minimum_received = floor(output * (10000 - slippage_bps) / 10000)

Асимметрия порядка комиссий buy/sell повторяет on-chain программу и
является частью экономического контракта.
"""

from dataclasses import dataclass
from fractions import Fraction

from src.core.config import EngineConfig
from src.core.domain.reserve_state import ReserveState
from src.core.domain.trade import TradeSide
from src.core.errors import GraduatedToken, InsufficientOutput, InvalidAmount
from src.core.math.checked import (
    BPS_DENOMINATOR,
    apply_bps_floor,
    checked_add,
    checked_div,
    checked_div_ceil,
    checked_sub,
    pct_change,
    ratio,
    validate_bps,
)
from src.core.math.fees import FeeBreakdown, compute_fees

_DEFAULT_CONFIG = EngineConfig()


@dataclass(frozen=True)
class Quote:
    """
    Котировка сделки.

    amount_out — то, что получит трейдер: токены (BUY) или net SOL после
    комиссий (SELL). curve_sol_delta — изменение SOL резерва curve: net SOL
    внесённый (BUY) или gross SOL выведенный (SELL).
    """

    token_id: str
    side: TradeSide
    amount_in: int
    amount_out: int
    gross_amount_out: int
    fees: FeeBreakdown
    curve_sol_delta: int
    price_before: Fraction
    new_price: Fraction
    price_impact_pct: float
    minimum_received: int
    slippage_bps: int
    new_virtual_sol_reserves: int
    new_virtual_token_reserves: int
    state_version: int

    @property
    def new_invariant_product(self) -> int:
        return self.new_virtual_sol_reserves * self.new_virtual_token_reserves


# =============================================================================
# ВАЛИДАЦИЯ ВХОДОВ
# =============================================================================


def _ensure_active(state: ReserveState) -> None:
    """Котировки по graduated токену запрещены: торговля идёт через DEX."""
    if state.is_graduated:
        raise GraduatedToken(
            f"Token {state.token_id} has graduated; quote via the DEX venue",
            token_id=state.token_id,
        )


def _ensure_amount(amount: int, minimum: int, what: str, token_id: str) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"{what} must be an integer, got {amount!r}", token_id=token_id)
    if amount <= 0:
        raise InvalidAmount(f"{what} must be positive, got {amount}", token_id=token_id)
    if amount < minimum:
        raise InvalidAmount(
            f"{what}={amount} below minimum tradable unit {minimum}", token_id=token_id
        )
    return amount


def _resolve_slippage(slippage_bps: int | None, config: EngineConfig) -> int:
    if slippage_bps is None:
        return config.default_slippage_bps
    return validate_bps(slippage_bps, "slippage_bps")


def minimum_received(amount_out: int, slippage_bps: int) -> int:
    """
    Минимальный выход с учётом slippage tolerance (округление вниз).

    Examples:
        >>> minimum_received(10_000, 50)
        9950
    """
    return apply_bps_floor(amount_out, BPS_DENOMINATOR - validate_bps(slippage_bps))


# =============================================================================
# КОТИРОВКИ
# =============================================================================


def quote_buy(
    state: ReserveState,
    sol_in: int,
    slippage_bps: int | None = None,
    config: EngineConfig | None = None,
) -> Quote:
    """
    Котировка покупки: sol_in lamports → токены.

    Args:
        state: Снапшот резервов (не мутирует)
        sol_in: Входящий SOL в lamports (включая комиссии)
        slippage_bps: Slippage tolerance; None → config.default_slippage_bps
        config: Параметры движка (комиссии, минимумы)

    Returns:
        Quote с amount_out = tokens_out

    Raises:
        GraduatedToken: Токен уже graduated
        InvalidAmount: sol_in <= 0, ниже минимума или целиком уходит в комиссии
        InsufficientOutput: tokens_out == 0 или превышает остаток supply curve
        Overflow: Переполнение u128
    """
    config = config or _DEFAULT_CONFIG
    _ensure_active(state)
    _ensure_amount(sol_in, config.min_sol_in, "sol_in", state.token_id)
    slippage = _resolve_slippage(slippage_bps, config)

    k = state.invariant_product

    # Комиссия ДО swap
    fees = compute_fees(sol_in, config.platform_fee_bps, config.creator_fee_bps)
    if fees.total >= sol_in:
        raise InvalidAmount(
            f"sol_in={sol_in} is fully consumed by fees ({fees.total})",
            token_id=state.token_id,
        )
    sol_in_net = checked_sub(sol_in, fees.total)

    new_vs = checked_add(state.virtual_sol_reserves, sol_in_net)
    new_vt = checked_div(k, new_vs)
    tokens_out = checked_sub(state.virtual_token_reserves, new_vt)

    if tokens_out == 0:
        raise InsufficientOutput(
            f"Buy of {sol_in} lamports rounds to zero tokens", token_id=state.token_id
        )
    if tokens_out > state.remaining_curve_supply or new_vt == 0:
        raise InsufficientOutput(
            f"Buy would mint {tokens_out} tokens, only "
            f"{state.remaining_curve_supply} remain on the curve",
            token_id=state.token_id,
        )

    price_before = state.spot_price
    new_price = ratio(new_vs, new_vt)

    return Quote(
        token_id=state.token_id,
        side=TradeSide.BUY,
        amount_in=sol_in,
        amount_out=tokens_out,
        gross_amount_out=tokens_out,
        fees=fees,
        curve_sol_delta=sol_in_net,
        price_before=price_before,
        new_price=new_price,
        price_impact_pct=pct_change(price_before, new_price),
        minimum_received=minimum_received(tokens_out, slippage),
        slippage_bps=slippage,
        new_virtual_sol_reserves=new_vs,
        new_virtual_token_reserves=new_vt,
        state_version=state.version,
    )


def quote_sell(
    state: ReserveState,
    tokens_in: int,
    slippage_bps: int | None = None,
    config: EngineConfig | None = None,
) -> Quote:
    """
    Котировка продажи: tokens_in base units → SOL.

    Args:
        state: Снапшот резервов (не мутирует)
        tokens_in: Продаваемые токены в base units
        slippage_bps: Slippage tolerance; None → config.default_slippage_bps
        config: Параметры движка

    Returns:
        Quote с amount_out = net SOL после комиссий

    Raises:
        GraduatedToken: Токен уже graduated
        InvalidAmount: tokens_in <= 0, ниже минимума или больше circulating supply
        InsufficientOutput: Выплата нулевая, съедается комиссиями или
            превышает real SOL reserves
        Overflow: Переполнение u128
    """
    config = config or _DEFAULT_CONFIG
    _ensure_active(state)
    _ensure_amount(tokens_in, config.min_tokens_in, "tokens_in", state.token_id)
    slippage = _resolve_slippage(slippage_bps, config)

    if tokens_in > state.circulating_supply:
        raise InvalidAmount(
            f"tokens_in={tokens_in} exceeds circulating supply {state.circulating_supply}",
            token_id=state.token_id,
        )

    k = state.invariant_product

    new_vt = checked_add(state.virtual_token_reserves, tokens_in)
    new_vs = checked_div_ceil(k, new_vt)
    sol_out = checked_sub(state.virtual_sol_reserves, new_vs)

    if sol_out == 0:
        raise InsufficientOutput(
            f"Sell of {tokens_in} tokens rounds to zero SOL", token_id=state.token_id
        )
    if sol_out > state.real_sol_reserves:
        raise InsufficientOutput(
            f"Sell would pay {sol_out} lamports, curve holds {state.real_sol_reserves}",
            token_id=state.token_id,
        )

    # Комиссия ПОСЛЕ swap
    fees = compute_fees(sol_out, config.platform_fee_bps, config.creator_fee_bps)
    if fees.total >= sol_out:
        raise InsufficientOutput(
            f"Sell payout {sol_out} is fully consumed by fees ({fees.total})",
            token_id=state.token_id,
        )
    net_out = checked_sub(sol_out, fees.total)

    price_before = state.spot_price
    new_price = ratio(new_vs, new_vt)

    return Quote(
        token_id=state.token_id,
        side=TradeSide.SELL,
        amount_in=tokens_in,
        amount_out=net_out,
        gross_amount_out=sol_out,
        fees=fees,
        curve_sol_delta=sol_out,
        price_before=price_before,
        new_price=new_price,
        price_impact_pct=pct_change(price_before, new_price),
        minimum_received=minimum_received(net_out, slippage),
        slippage_bps=slippage,
        new_virtual_sol_reserves=new_vs,
        new_virtual_token_reserves=new_vt,
        state_version=state.version,
    )


def quote(
    state: ReserveState,
    side: TradeSide,
    amount_in: int,
    slippage_bps: int | None = None,
    config: EngineConfig | None = None,
) -> Quote:
    """Диспетчеризация по направлению сделки."""
    if TradeSide(side) is TradeSide.BUY:
        return quote_buy(state, amount_in, slippage_bps=slippage_bps, config=config)
    return quote_sell(state, amount_in, slippage_bps=slippage_bps, config=config)
