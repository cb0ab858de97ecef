"""
Core math modules для bonding-curve движка

Целочисленная u128 арифметика с явными переполнениями и расчёт комиссий.
"""

# Checked u128 arithmetic
from src.core.math.checked import (
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

# Fees
from src.core.math.fees import (
    CREATOR_FEE_BPS_DEFAULT,
    PLATFORM_FEE_BPS_DEFAULT,
    FeeBreakdown,
    compute_fees,
)

__all__ = [
    # Checked — Constants
    "BPS_DENOMINATOR",
    "U128_MAX",
    # Checked — Functions
    "apply_bps_ceil",
    "apply_bps_floor",
    "checked_add",
    "checked_div",
    "checked_div_ceil",
    "checked_mul",
    "checked_sub",
    "ensure_u128",
    "pct_change",
    "ratio",
    "validate_bps",
    # Fees — Constants
    "CREATOR_FEE_BPS_DEFAULT",
    "PLATFORM_FEE_BPS_DEFAULT",
    # Fees — Types
    "FeeBreakdown",
    # Fees — Functions
    "compute_fees",
]
