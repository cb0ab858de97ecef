"""
Тесты для модуля Checked Math

Проверяет:
1. Границы u128 и отказ от молчаливого переполнения
2. Деление вниз / вверх и деление на ноль
3. Basis points (валидация, округление)
4. Точные цены и процентное изменение
"""

from fractions import Fraction

import pytest

from src.core.errors import Overflow
from src.core.math import (
    BPS_DENOMINATOR,
    U128_MAX,
    apply_bps_ceil,
    apply_bps_floor,
    checked_add,
    checked_div,
    checked_div_ceil,
    checked_mul,
    checked_sub,
    ensure_u128,
    pct_change,
    ratio,
    validate_bps,
)

# =============================================================================
# ГРАНИЦЫ U128
# =============================================================================


class TestEnsureU128:
    """Тесты для ensure_u128"""

    def test_bounds_accepted(self) -> None:
        assert ensure_u128(0) == 0
        assert ensure_u128(U128_MAX) == U128_MAX

    def test_above_max_raises_overflow(self) -> None:
        with pytest.raises(Overflow, match="outside u128"):
            ensure_u128(U128_MAX + 1)

    def test_negative_raises_overflow(self) -> None:
        with pytest.raises(Overflow):
            ensure_u128(-1)

    @pytest.mark.parametrize("value", [1.0, "1", None, True])
    def test_non_int_rejected(self, value) -> None:
        """float, str, None и bool не являются суммами"""
        with pytest.raises(TypeError):
            ensure_u128(value)

    def test_overflow_is_not_recoverable(self) -> None:
        with pytest.raises(Overflow) as exc_info:
            ensure_u128(U128_MAX + 1)
        assert exc_info.value.code == "overflow"
        assert exc_info.value.recoverable is False


# =============================================================================
# CHECKED ОПЕРАЦИИ
# =============================================================================


class TestCheckedOperations:
    """Тесты для checked_add/sub/mul/div"""

    def test_add(self) -> None:
        assert checked_add(2, 3) == 5

    def test_add_overflow(self) -> None:
        with pytest.raises(Overflow):
            checked_add(U128_MAX, 1)

    def test_sub(self) -> None:
        assert checked_sub(5, 3) == 2
        assert checked_sub(5, 5) == 0

    def test_sub_underflow(self) -> None:
        """Никакого saturating: 3 - 5 это ошибка, а не 0"""
        with pytest.raises(Overflow, match="underflow"):
            checked_sub(3, 5)

    def test_mul_overflow(self) -> None:
        with pytest.raises(Overflow):
            checked_mul(2**64, 2**64)

    def test_mul_at_boundary(self) -> None:
        assert checked_mul(2**64 - 1, 2**64 + 1) == U128_MAX

    def test_div_rounds_down(self) -> None:
        assert checked_div(7, 2) == 3
        assert checked_div(6, 2) == 3

    def test_div_ceil_rounds_up(self) -> None:
        assert checked_div_ceil(7, 2) == 4
        assert checked_div_ceil(6, 2) == 3
        assert checked_div_ceil(0, 5) == 0

    @pytest.mark.parametrize("fn", [checked_div, checked_div_ceil])
    def test_division_by_zero(self, fn) -> None:
        with pytest.raises(Overflow, match="Division by zero"):
            fn(10, 0)


# =============================================================================
# BASIS POINTS
# =============================================================================


class TestBasisPoints:
    """Тесты для bps хелперов"""

    def test_denominator(self) -> None:
        assert BPS_DENOMINATOR == 10_000

    @pytest.mark.parametrize("bps", [0, 1, 50, 10_000])
    def test_valid_bps(self, bps) -> None:
        assert validate_bps(bps) == bps

    @pytest.mark.parametrize("bps", [-1, 10_001, 1.5, True])
    def test_invalid_bps(self, bps) -> None:
        with pytest.raises(ValueError):
            validate_bps(bps)

    def test_ceil_collects_in_protocol_favor(self) -> None:
        assert apply_bps_ceil(10_000_000, 100) == 100_000
        assert apply_bps_ceil(150, 100) == 2
        assert apply_bps_ceil(1, 1) == 1

    def test_floor_pays_out_down(self) -> None:
        assert apply_bps_floor(150, 9_950) == 149
        assert apply_bps_floor(10_000, 9_950) == 9_950

    def test_zero_amount(self) -> None:
        assert apply_bps_ceil(0, 100) == 0
        assert apply_bps_floor(0, 100) == 0


# =============================================================================
# ЦЕНЫ
# =============================================================================


class TestPrices:
    """Тесты для ratio и pct_change"""

    def test_ratio_is_exact(self) -> None:
        assert ratio(30, 1_073) == Fraction(30, 1_073)

    def test_ratio_zero_denominator(self) -> None:
        with pytest.raises(Overflow):
            ratio(1, 0)

    def test_pct_change(self) -> None:
        assert pct_change(Fraction(1), Fraction(3, 2)) == pytest.approx(50.0)
        assert pct_change(Fraction(2), Fraction(1)) == pytest.approx(-50.0)
        assert pct_change(Fraction(5, 7), Fraction(5, 7)) == 0.0

    def test_pct_change_from_zero(self) -> None:
        with pytest.raises(Overflow):
            pct_change(Fraction(0), Fraction(1))
