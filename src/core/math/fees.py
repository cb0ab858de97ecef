"""
FeeCalculator — Разделение комиссий platform / creator

Фиксированные ставки в basis points (по умолчанию 1% + 1% = 2% total).
Каждая составляющая округляется вверх: собираемые комиссии округляются в
пользу протокола, выплаты трейдеру — вниз. Повторное округление не даёт
утечки стоимости.

Порядок применения (задаётся QuoteEngine, не здесь):
- buy: комиссия берётся с входящего SOL ДО swap
- sell: комиссия берётся с исходящего SOL ПОСЛЕ swap
"""

from dataclasses import dataclass
from typing import Final

from src.core.math.checked import apply_bps_ceil, checked_add, ensure_u128, validate_bps

# =============================================================================
# СТАВКИ ПО УМОЛЧАНИЮ
# =============================================================================

PLATFORM_FEE_BPS_DEFAULT: Final[int] = 100  # 1%
CREATOR_FEE_BPS_DEFAULT: Final[int] = 100  # 1%


@dataclass(frozen=True)
class FeeBreakdown:
    """Разбивка комиссии по получателям (в lamports)."""

    platform_fee: int
    creator_fee: int
    total: int


def compute_fees(
    amount: int,
    platform_bps: int = PLATFORM_FEE_BPS_DEFAULT,
    creator_bps: int = CREATOR_FEE_BPS_DEFAULT,
) -> FeeBreakdown:
    """
    Вычисление комиссий с суммы сделки.

    platform_fee = ceil(amount * platform_bps / 10000)
    creator_fee  = ceil(amount * creator_bps / 10000)

    Args:
        amount: Сумма в lamports (u128)
        platform_bps: Ставка платформы в basis points
        creator_bps: Ставка создателя токена в basis points

    Returns:
        FeeBreakdown

    Raises:
        Overflow: Если amount вне u128
        ValueError: Если ставки вне [0, 10000] или суммарно > 10000

    Examples:
        >>> compute_fees(10_000_000)
        FeeBreakdown(platform_fee=100000, creator_fee=100000, total=200000)
        >>> compute_fees(1).total
        2
    """
    ensure_u128(amount, "fee base amount")
    validate_bps(platform_bps, "platform_bps")
    validate_bps(creator_bps, "creator_bps")
    validate_bps(platform_bps + creator_bps, "platform_bps + creator_bps")

    platform_fee = apply_bps_ceil(amount, platform_bps)
    creator_fee = apply_bps_ceil(amount, creator_bps)

    return FeeBreakdown(
        platform_fee=platform_fee,
        creator_fee=creator_fee,
        total=checked_add(platform_fee, creator_fee),
    )
