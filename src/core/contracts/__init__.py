"""
Contract Validation Module

Модуль для валидации JSON контрактов персистентного состояния движка.
"""

from .validators import (
    ContractValidator,
    ReserveStateValidator,
    SchemaLoader,
    TradeRecordValidator,
)

__all__ = [
    "SchemaLoader",
    "ContractValidator",
    "ReserveStateValidator",
    "TradeRecordValidator",
]
