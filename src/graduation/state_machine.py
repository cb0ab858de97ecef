"""Graduation State Machine — переход bonding curve → DEX.

Ровно два состояния:
- ACTIVE: торговля по bonding curve
- GRADUATED: терминальное состояние, curve закрыта, торговля через DEX

Единственное правило перехода:
    is_graduated = is_graduated OR real_sol_reserves >= graduation_threshold

Переход вычисляется ТОЛЬКО внутри critical section TradeExecutor сразу после
расчёта дельт сделки. Все остальные читатели (status, UI polling,
reconciliation) читают сохранённый флаг и никогда не вычисляют его сами.
"""

from dataclasses import dataclass
from enum import Enum

from src.core.domain.reserve_state import ReserveState
from src.core.errors import InconsistentState


class GraduationState(str, Enum):
    """Состояние bonding curve токена."""

    ACTIVE = "ACTIVE"
    GRADUATED = "GRADUATED"

    @classmethod
    def of(cls, state: ReserveState) -> "GraduationState":
        """Состояние по сохранённому флагу (без пересчёта)."""
        return cls.GRADUATED if state.is_graduated else cls.ACTIVE


@dataclass(frozen=True)
class GraduationTransition:
    """Результат оценки перехода."""

    new_state: GraduationState
    previous_state: GraduationState

    # Диагностика
    transition_occurred: bool
    transition_reason: str
    real_sol_reserves: int
    graduation_threshold: int

    # Для отладки
    details: str

    @property
    def is_graduated(self) -> bool:
        return self.new_state is GraduationState.GRADUATED


class GraduationDetector:
    """Детектор graduation с одним детерминированным правилом.

    Stateless: всё состояние хранится в ReserveState, writer — TradeExecutor.
    """

    def evaluate(
        self,
        previous: ReserveState,
        updated: ReserveState,
    ) -> GraduationTransition:
        """Оценка перехода после применения дельт сделки.

        Args:
            previous: снапшот до сделки (источник текущего флага)
            updated: снапшот с применёнными дельтами сделки (флаг ещё не обновлён)

        Returns:
            GraduationTransition с новым состоянием

        Raises:
            InconsistentState: если снапшоты относятся к разным токенам или
                updated уже сбросил флаг
        """
        if previous.token_id != updated.token_id:
            raise InconsistentState(
                f"Graduation evaluated across tokens: {previous.token_id} vs {updated.token_id}",
                token_id=previous.token_id,
            )
        ensure_monotonic(previous, updated)

        previous_state = GraduationState.of(previous)
        real_sol = updated.real_sol_reserves
        threshold = updated.graduation_threshold

        # 1. Терминальное состояние
        if previous_state is GraduationState.GRADUATED:
            return self._create_result(
                new_state=GraduationState.GRADUATED,
                previous_state=previous_state,
                transition_occurred=False,
                transition_reason="already_graduated",
                real_sol_reserves=real_sol,
                graduation_threshold=threshold,
                details="GRADUATED is terminal",
            )

        # 2. Порог достигнут этой сделкой
        if real_sol >= threshold:
            return self._create_result(
                new_state=GraduationState.GRADUATED,
                previous_state=previous_state,
                transition_occurred=True,
                transition_reason="threshold_reached",
                real_sol_reserves=real_sol,
                graduation_threshold=threshold,
                details=f"real_sol_reserves {real_sol} >= threshold {threshold}",
            )

        # 3. Нет перехода
        return self._create_result(
            new_state=GraduationState.ACTIVE,
            previous_state=previous_state,
            transition_occurred=False,
            transition_reason="below_threshold",
            real_sol_reserves=real_sol,
            graduation_threshold=threshold,
            details=f"Remaining to threshold: {threshold - real_sol}",
        )

    def _create_result(
        self,
        new_state: GraduationState,
        previous_state: GraduationState,
        transition_occurred: bool,
        transition_reason: str,
        real_sol_reserves: int,
        graduation_threshold: int,
        details: str,
    ) -> GraduationTransition:
        """Создание результата перехода."""
        return GraduationTransition(
            new_state=new_state,
            previous_state=previous_state,
            transition_occurred=transition_occurred,
            transition_reason=transition_reason,
            real_sol_reserves=real_sol_reserves,
            graduation_threshold=graduation_threshold,
            details=details,
        )


def ensure_monotonic(before: ReserveState, after: ReserveState) -> None:
    """Проверка монотонности флага: переход True → False запрещён.

    Raises:
        InconsistentState: если after сбрасывает is_graduated
    """
    if before.is_graduated and not after.is_graduated:
        raise InconsistentState(
            f"Illegal graduation reset for token {before.token_id}",
            token_id=before.token_id,
        )
