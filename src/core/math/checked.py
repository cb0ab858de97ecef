"""
Checked Math — Целочисленная арифметика u128 без молчаливых переполнений

Python int не переполняется, поэтому границы u128 проверяются явно. Все
операции над резервами и суммами проходят через этот модуль.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Результат вне [0, U128_MAX] → Overflow (никогда не saturate/clamp)
2. Деление на ноль → Overflow (как checked_div в on-chain программе)
3. Все операции детерминированы и воспроизводимы
"""

from fractions import Fraction
from typing import Final

from src.core.errors import Overflow

# =============================================================================
# ГРАНИЦЫ
# =============================================================================

U128_MAX: Final[int] = 2**128 - 1

# Basis points: 10_000 bps = 100%
BPS_DENOMINATOR: Final[int] = 10_000


# =============================================================================
# ПРОВЕРКИ
# =============================================================================


def ensure_u128(value: int, what: str = "value") -> int:
    """
    Проверка, что значение укладывается в u128.

    Args:
        value: Целое значение
        what: Имя величины для сообщения об ошибке

    Returns:
        value без изменений

    Raises:
        Overflow: Если value < 0 или value > U128_MAX
        TypeError: Если value не int (bool тоже отклоняется)
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{what} must be int, got {type(value).__name__}")
    if value < 0 or value > U128_MAX:
        raise Overflow(f"{what}={value} is outside u128 range")
    return value


# =============================================================================
# CHECKED ОПЕРАЦИИ
# =============================================================================


def checked_add(a: int, b: int) -> int:
    """a + b с проверкой переполнения."""
    return ensure_u128(ensure_u128(a, "lhs") + ensure_u128(b, "rhs"), "sum")


def checked_sub(a: int, b: int) -> int:
    """
    a - b с проверкой underflow.

    Raises:
        Overflow: Если b > a
    """
    result = ensure_u128(a, "lhs") - ensure_u128(b, "rhs")
    if result < 0:
        raise Overflow(f"Subtraction underflow: {a} - {b}")
    return result


def checked_mul(a: int, b: int) -> int:
    """a * b с проверкой переполнения u128."""
    return ensure_u128(ensure_u128(a, "lhs") * ensure_u128(b, "rhs"), "product")


def checked_div(a: int, b: int) -> int:
    """
    Целочисленное деление с округлением к нулю.

    Raises:
        Overflow: Если b == 0
    """
    ensure_u128(a, "dividend")
    if ensure_u128(b, "divisor") == 0:
        raise Overflow(f"Division by zero: {a} / 0")
    return a // b


def checked_div_ceil(a: int, b: int) -> int:
    """
    Целочисленное деление с округлением вверх.

    Используется там, где округление должно быть в пользу протокола
    (комиссии, резерв, остающийся в curve после sell).

    Raises:
        Overflow: Если b == 0
    """
    ensure_u128(a, "dividend")
    if ensure_u128(b, "divisor") == 0:
        raise Overflow(f"Division by zero: {a} / 0")
    return -(-a // b)


# =============================================================================
# BASIS POINTS
# =============================================================================


def validate_bps(bps: int, what: str = "bps") -> int:
    """
    Проверка basis points в диапазоне [0, 10000].

    Raises:
        ValueError: Если bps вне диапазона или не int
    """
    if isinstance(bps, bool) or not isinstance(bps, int):
        raise ValueError(f"{what} must be int, got {bps!r}")
    if bps < 0 or bps > BPS_DENOMINATOR:
        raise ValueError(f"{what} must be in [0, {BPS_DENOMINATOR}], got {bps}")
    return bps


def apply_bps_ceil(amount: int, bps: int) -> int:
    """
    Доля amount в basis points, округление вверх (сбор в пользу протокола).

    Examples:
        >>> apply_bps_ceil(10_000_000, 100)
        100000
        >>> apply_bps_ceil(150, 100)
        2
    """
    return checked_div_ceil(checked_mul(amount, validate_bps(bps)), BPS_DENOMINATOR)


def apply_bps_floor(amount: int, bps: int) -> int:
    """
    Доля amount в basis points, округление вниз (выплата трейдеру).

    Examples:
        >>> apply_bps_floor(150, 9950)
        149
    """
    return checked_div(checked_mul(amount, validate_bps(bps)), BPS_DENOMINATOR)


# =============================================================================
# ЦЕНЫ
# =============================================================================


def ratio(numerator: int, denominator: int) -> Fraction:
    """
    Точное отношение двух резервов (цена без потерь на float).

    Raises:
        Overflow: Если denominator == 0
    """
    if denominator == 0:
        raise Overflow(f"Price ratio with zero denominator: {numerator} / 0")
    return Fraction(numerator, denominator)


def pct_change(before: Fraction, after: Fraction) -> float:
    """
    Процентное изменение: (after - before) / before * 100.

    Raises:
        Overflow: Если before == 0
    """
    if before == 0:
        raise Overflow("Percentage change from zero base")
    return float((after - before) / before * 100)
