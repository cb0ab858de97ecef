"""
Конфигурация движка

- CurveParams: протокольные константы, с которыми запускается каждый токен
  (pump.fun-style: 30 SOL / 1.073B virtual, 800M на curve, 1B total,
  graduation на 30,000 SOL)
- EngineConfig: параметры исполнения (комиссии, slippage по умолчанию,
  минимальные суммы, lock timeout, допуски reconciliation)

Единицы: lamports (1 SOL = 10^9) и base units токена (9 decimals).
"""

from dataclasses import dataclass, fields
from typing import Any, Final, Mapping

from src.core.math.checked import ensure_u128, validate_bps
from src.core.math.fees import CREATOR_FEE_BPS_DEFAULT, PLATFORM_FEE_BPS_DEFAULT

# =============================================================================
# ЕДИНИЦЫ
# =============================================================================

LAMPORTS_PER_SOL: Final[int] = 1_000_000_000
TOKEN_DECIMALS: Final[int] = 9
TOKEN_BASE_UNITS: Final[int] = 10**TOKEN_DECIMALS

# Slippage tolerance по умолчанию (0.5%)
DEFAULT_SLIPPAGE_BPS: Final[int] = 50

# Ограниченное ожидание per-token lock
DEFAULT_LOCK_TIMEOUT_SEC: Final[float] = 5.0


@dataclass(frozen=True)
class CurveParams:
    """Протокольные константы bonding curve при запуске токена."""

    virtual_sol_reserves: int = 30 * LAMPORTS_PER_SOL
    virtual_token_reserves: int = 1_073_000_000 * TOKEN_BASE_UNITS
    bonding_curve_supply: int = 800_000_000 * TOKEN_BASE_UNITS
    total_supply: int = 1_000_000_000 * TOKEN_BASE_UNITS
    graduation_threshold: int = 30_000 * LAMPORTS_PER_SOL

    def __post_init__(self):
        for f in fields(self):
            ensure_u128(getattr(self, f.name), f.name)
        if self.virtual_sol_reserves == 0 or self.virtual_token_reserves == 0:
            raise ValueError("Virtual reserves must be positive")
        if self.bonding_curve_supply > self.total_supply:
            raise ValueError(
                f"bonding_curve_supply {self.bonding_curve_supply} exceeds "
                f"total_supply {self.total_supply}"
            )
        if self.graduation_threshold == 0:
            raise ValueError("graduation_threshold must be positive")


@dataclass(frozen=True)
class EngineConfig:
    """
    Параметры исполнения.

    min_sol_in — минимальная торгуемая сумма buy (lamports)
    min_tokens_in — минимальная торгуемая сумма sell (base units)
    reconcile_sol_tolerance / reconcile_token_tolerance — допустимый drift
    между локальным зеркалом и chain state
    """

    platform_fee_bps: int = PLATFORM_FEE_BPS_DEFAULT
    creator_fee_bps: int = CREATOR_FEE_BPS_DEFAULT
    default_slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    min_sol_in: int = 1_000
    min_tokens_in: int = 1
    lock_timeout_sec: float = DEFAULT_LOCK_TIMEOUT_SEC
    reconcile_sol_tolerance: int = 0
    reconcile_token_tolerance: int = 0

    def __post_init__(self):
        validate_bps(self.platform_fee_bps, "platform_fee_bps")
        validate_bps(self.creator_fee_bps, "creator_fee_bps")
        validate_bps(
            self.platform_fee_bps + self.creator_fee_bps,
            "platform_fee_bps + creator_fee_bps",
        )
        validate_bps(self.default_slippage_bps, "default_slippage_bps")
        if self.min_sol_in < 1 or self.min_tokens_in < 1:
            raise ValueError("Minimum tradable amounts must be >= 1")
        if not self.lock_timeout_sec > 0:
            raise ValueError(f"lock_timeout_sec must be positive, got {self.lock_timeout_sec}")
        if self.reconcile_sol_tolerance < 0 or self.reconcile_token_tolerance < 0:
            raise ValueError("Reconciliation tolerances cannot be negative")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EngineConfig":
        """
        Построение из словаря (например, распарсенного YAML/JSON конфига).

        Raises:
            ValueError: Если есть неизвестные ключи
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown EngineConfig keys: {sorted(unknown)}")
        return cls(**dict(data))
