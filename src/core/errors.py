"""
Errors — Таксономия ошибок bonding-curve движка

Все ошибки движка наследуются от CurveEngineError и несут стабильный
машиночитаемый code (используется вызывающей стороной для маршрутизации,
например GraduatedToken → DEX).

КЛАССЫ ОШИБОК:
- Recoverable (quote/trade просто не состоялся): InvalidAmount, TokenNotFound,
  TokenAlreadyExists, GraduatedToken, InsufficientOutput, SlippageExceeded,
  LockTimeout, TradeCancelled
- Hard failures (никогда не маскируются fallback-эвристикой): Overflow,
  InconsistentState
"""


class CurveEngineError(Exception):
    """Базовая ошибка движка."""

    code: str = "curve_engine_error"
    recoverable: bool = True

    def __init__(self, message: str, token_id: str | None = None):
        super().__init__(message)
        self.token_id = token_id


class InvalidAmount(CurveEngineError):
    """Неположительная сумма или сумма ниже минимальной торгуемой единицы."""

    code = "invalid_amount"


class TokenNotFound(CurveEngineError):
    """Токен с таким token_id не запущен."""

    code = "token_not_found"


class TokenAlreadyExists(CurveEngineError):
    """Повторный запуск токена с существующим token_id."""

    code = "token_already_exists"


class GraduatedToken(CurveEngineError):
    """Операция bonding curve после graduation. Торговля только через DEX."""

    code = "graduated_token"


class InsufficientOutput(CurveEngineError):
    """Quote округляется в ноль или превышает доступный резерв."""

    code = "insufficient_output"


class SlippageExceeded(CurveEngineError):
    """Пересчитанный внутри lock выход меньше min_out вызывающей стороны."""

    code = "slippage_exceeded"

    def __init__(
        self,
        message: str,
        token_id: str | None = None,
        amount_out: int = 0,
        min_out: int = 0,
    ):
        super().__init__(message, token_id=token_id)
        self.amount_out = amount_out
        self.min_out = min_out


class Overflow(CurveEngineError):
    """Арифметика вышла бы за пределы u128. Фатально для запроса."""

    code = "overflow"
    recoverable = False


class LockTimeout(CurveEngineError):
    """Per-token lock не получен за отведённое время."""

    code = "lock_timeout"


class TradeCancelled(CurveEngineError):
    """Вызывающая сторона отменила trade до входа в critical section."""

    code = "trade_cancelled"


class InconsistentState(CurveEngineError):
    """Локальное состояние расходится с авторитетным (chain / persistence)."""

    code = "inconsistent_state"
    recoverable = False
