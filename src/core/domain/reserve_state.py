"""
ReserveState — Снапшот резервов bonding curve одного токена

Immutable Pydantic модель. Единственный writer — TradeExecutor (через
ReserveStore.commit); все остальные компоненты читают снапшоты.
Полная совместимость с JSON Schema (contracts/schema/reserve_state.json).

Единицы: lamports для SOL, base units (9 decimals) для токена.
"""

from fractions import Fraction

from pydantic import BaseModel, Field, model_validator

from src.core.config import CurveParams
from src.core.math.checked import U128_MAX, checked_div, checked_mul, ratio


class ReserveState(BaseModel):
    """
    Модель состояния резервов токена.

    Immutable модель (frozen=True). Новое состояние создаётся через evolve(),
    которое повторно валидирует инварианты.
    """

    # Идентификация (immutable после запуска)
    token_id: str = Field(..., min_length=1, description="Идентификатор токена (mint)")
    creator: str = Field(..., min_length=1, description="Адрес создателя агента")

    # Virtual reserves (задают цену curve)
    virtual_sol_reserves: int = Field(
        ..., gt=0, le=U128_MAX, strict=True, description="Virtual SOL reserve (lamports)"
    )
    virtual_token_reserves: int = Field(
        ..., gt=0, le=U128_MAX, strict=True, description="Virtual token reserve (base units)"
    )

    # Real reserves
    real_sol_reserves: int = Field(
        0, ge=0, le=U128_MAX, strict=True, description="SOL, фактически внесённый сделками"
    )
    circulating_supply: int = Field(
        0, ge=0, le=U128_MAX, strict=True, description="Токены, выпущенные трейдерам через curve"
    )

    # Протокольные константы
    bonding_curve_supply: int = Field(
        ..., ge=0, le=U128_MAX, strict=True, description="Лимит выпуска через curve"
    )
    total_supply: int = Field(..., ge=0, le=U128_MAX, strict=True, description="Total supply")
    graduation_threshold: int = Field(
        ..., gt=0, le=U128_MAX, strict=True, description="Порог graduation (lamports)"
    )

    # Graduation (монотонный флаг)
    is_graduated: bool = Field(False, strict=True, description="True после graduation")

    # Метаданные
    created_at_ms: int = Field(
        ..., ge=0, strict=True, description="Время запуска (UTC, миллисекунды)"
    )
    updated_at_ms: int = Field(
        ..., ge=0, strict=True, description="Время последнего commit (UTC, мс)"
    )
    version: int = Field(0, ge=0, strict=True, description="Монотонный счётчик commit")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_supply_bounds(self) -> "ReserveState":
        """circulating_supply <= bonding_curve_supply <= total_supply"""
        if self.bonding_curve_supply > self.total_supply:
            raise ValueError(
                f"bonding_curve_supply {self.bonding_curve_supply} exceeds "
                f"total_supply {self.total_supply}"
            )
        if self.circulating_supply > self.bonding_curve_supply:
            raise ValueError(
                f"circulating_supply {self.circulating_supply} exceeds "
                f"bonding_curve_supply {self.bonding_curve_supply}"
            )
        if self.updated_at_ms < self.created_at_ms:
            raise ValueError(
                f"updated_at_ms {self.updated_at_ms} precedes created_at_ms {self.created_at_ms}"
            )
        return self

    @classmethod
    def initial(
        cls,
        token_id: str,
        creator: str,
        params: CurveParams,
        now_ms: int,
    ) -> "ReserveState":
        """
        Начальное состояние при запуске токена.

        Virtual reserves = протокольные константы, real/circulating = 0.
        """
        return cls(
            token_id=token_id,
            creator=creator,
            virtual_sol_reserves=params.virtual_sol_reserves,
            virtual_token_reserves=params.virtual_token_reserves,
            real_sol_reserves=0,
            circulating_supply=0,
            bonding_curve_supply=params.bonding_curve_supply,
            total_supply=params.total_supply,
            graduation_threshold=params.graduation_threshold,
            is_graduated=False,
            created_at_ms=now_ms,
            updated_at_ms=now_ms,
            version=0,
        )

    def evolve(self, **changes) -> "ReserveState":
        """
        Новый снапшот с изменёнными полями (с полной повторной валидацией).

        model_copy(update=...) не валидирует, поэтому не используется.
        """
        return type(self).model_validate({**self.model_dump(), **changes})

    @property
    def invariant_product(self) -> int:
        """k = virtual_sol_reserves * virtual_token_reserves (checked u128)."""
        return checked_mul(self.virtual_sol_reserves, self.virtual_token_reserves)

    @property
    def spot_price(self) -> Fraction:
        """
        Текущая цена: SOL за токен.

        SOL и токен имеют одинаковые 9 decimals, поэтому отношение base
        units совпадает с отношением целых единиц.
        """
        return ratio(self.virtual_sol_reserves, self.virtual_token_reserves)

    @property
    def remaining_curve_supply(self) -> int:
        """Токены, которые curve ещё может выпустить."""
        return self.bonding_curve_supply - self.circulating_supply

    @property
    def market_cap_lamports(self) -> int:
        """Market cap в lamports: circulating_supply * spot_price (вниз)."""
        return checked_div(
            checked_mul(self.circulating_supply, self.virtual_sol_reserves),
            self.virtual_token_reserves,
        )
