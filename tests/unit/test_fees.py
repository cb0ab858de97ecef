"""Тесты FeeCalculator и конфигурации движка."""

import pytest

from src.core.config import (
    DEFAULT_SLIPPAGE_BPS,
    LAMPORTS_PER_SOL,
    TOKEN_BASE_UNITS,
    CurveParams,
    EngineConfig,
)
from src.core.errors import Overflow
from src.core.math import (
    CREATOR_FEE_BPS_DEFAULT,
    PLATFORM_FEE_BPS_DEFAULT,
    U128_MAX,
    FeeBreakdown,
    compute_fees,
)


class TestComputeFees:
    """Разделение комиссии platform / creator"""

    def test_default_rates(self) -> None:
        assert PLATFORM_FEE_BPS_DEFAULT == 100
        assert CREATOR_FEE_BPS_DEFAULT == 100

    def test_one_hundredth_sol(self) -> None:
        """0.01 SOL → 1% + 1% = 200,000 lamports"""
        fees = compute_fees(10_000_000)
        assert fees == FeeBreakdown(platform_fee=100_000, creator_fee=100_000, total=200_000)

    def test_each_component_rounds_up(self) -> None:
        """150 * 1% = 1.5 → 2 для каждой составляющей"""
        fees = compute_fees(150)
        assert fees.platform_fee == 2
        assert fees.creator_fee == 2
        assert fees.total == 4

    def test_dust_amount_still_charged(self) -> None:
        assert compute_fees(1).total == 2

    def test_total_is_sum_of_components(self) -> None:
        for amount in (1, 99, 12_345, 987_654_321, 30_000 * LAMPORTS_PER_SOL):
            fees = compute_fees(amount, platform_bps=70, creator_bps=30)
            assert fees.total == fees.platform_fee + fees.creator_fee
            assert fees.total >= amount * 100 // 10_000

    def test_zero_rates(self) -> None:
        assert compute_fees(12_345, platform_bps=0, creator_bps=0) == FeeBreakdown(platform_fee=0, creator_fee=0, total=0)

    def test_rates_above_100_percent_rejected(self) -> None:
        with pytest.raises(ValueError):
            compute_fees(1_000, platform_bps=6_000, creator_bps=5_000)

    def test_out_of_range_amount(self) -> None:
        with pytest.raises(Overflow):
            compute_fees(U128_MAX + 1)


class TestCurveParams:
    """Протокольные константы"""

    def test_defaults(self, params) -> None:
        assert params.virtual_sol_reserves == 30 * LAMPORTS_PER_SOL
        assert params.virtual_token_reserves == 1_073_000_000 * TOKEN_BASE_UNITS
        assert params.bonding_curve_supply == 800_000_000 * TOKEN_BASE_UNITS
        assert params.total_supply == 1_000_000_000 * TOKEN_BASE_UNITS
        assert params.graduation_threshold == 30_000 * LAMPORTS_PER_SOL

    def test_curve_supply_above_total_rejected(self) -> None:
        with pytest.raises(ValueError, match="exceeds"):
            CurveParams(bonding_curve_supply=2, total_supply=1)

    def test_zero_virtual_reserve_rejected(self) -> None:
        with pytest.raises(ValueError):
            CurveParams(virtual_sol_reserves=0)

    def test_zero_threshold_rejected(self) -> None:
        with pytest.raises(ValueError):
            CurveParams(graduation_threshold=0)

    def test_negative_value_overflows(self) -> None:
        with pytest.raises(Overflow):
            CurveParams(total_supply=-1)


class TestEngineConfig:
    """Параметры исполнения"""

    def test_defaults(self, config) -> None:
        assert config.platform_fee_bps == 100
        assert config.creator_fee_bps == 100
        assert config.default_slippage_bps == DEFAULT_SLIPPAGE_BPS == 50
        assert config.lock_timeout_sec == 5.0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"platform_fee_bps": -1},
            {"platform_fee_bps": 9_000, "creator_fee_bps": 2_000},
            {"default_slippage_bps": 10_001},
            {"min_sol_in": 0},
            {"lock_timeout_sec": 0},
            {"reconcile_sol_tolerance": -5},
        ],
    )
    def test_invalid_values_rejected(self, overrides) -> None:
        with pytest.raises(ValueError):
            EngineConfig(**overrides)

    def test_from_mapping(self) -> None:
        config = EngineConfig.from_mapping({"platform_fee_bps": 50, "lock_timeout_sec": 0.5})
        assert config.platform_fee_bps == 50
        assert config.creator_fee_bps == 100
        assert config.lock_timeout_sec == 0.5

    def test_from_mapping_rejects_unknown_keys(self) -> None:
        with pytest.raises(ValueError, match="fee_bps_typo"):
            EngineConfig.from_mapping({"fee_bps_typo": 10})

    def test_frozen(self, config) -> None:
        with pytest.raises(AttributeError):
            config.platform_fee_bps = 0
