"""
JSON Schema Contract Validators

Модуль для валидации персистентных документов согласно формальным JSON
Schema контрактам. Использует библиотеку jsonschema для проверки
соответствия данных схемам на границе persistence.

Схемы (contracts/schema/):
- reserve_state.json — снапшот резервов токена
- trade_record.json — запись журнала сделок
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import jsonschema
from jsonschema import Draft202012Validator, ValidationError

from src.core.errors import InconsistentState


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    По умолчанию находит схемы в contracts/schema/ относительно корня проекта.
    """

    def __init__(self, schema_dir: Optional[Path] = None):
        # Корень проекта: 4 уровня вверх от этого файла
        self._schema_dir = schema_dir or (
            Path(__file__).parent.parent.parent.parent / "contracts" / "schema"
        )
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    @property
    def schema_dir(self) -> Path:
        return self._schema_dir

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'reserve_state')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема не проходит meta-validation
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Валидируем саму схему (meta-validation)
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str, loader: Optional[SchemaLoader] = None):
        self.schema_name = schema_name
        self.schema = (loader or _SCHEMA_LOADER).load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Валидация данных против схемы.

        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        """Проверка валидности данных без exception."""
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]):
        """Итератор по всем ошибкам валидации."""
        return self.validator.iter_errors(data)

    def ensure_consistent(self, data: Dict[str, Any], token_id: Optional[str] = None) -> None:
        """
        Валидация документа на границе persistence.

        Нарушение контракта означает повреждённое или чужое состояние и
        эскалируется как InconsistentState.

        Raises:
            InconsistentState: Если документ не соответствует схеме
        """
        try:
            self.validator.validate(data)
        except ValidationError as e:
            raise InconsistentState(
                f"Document violates {self.schema_name} contract: {e.message}",
                token_id=token_id,
            ) from e


class ReserveStateValidator(ContractValidator):
    """Валидатор для reserve_state контракта."""

    def __init__(self, loader: Optional[SchemaLoader] = None):
        super().__init__("reserve_state", loader)


class TradeRecordValidator(ContractValidator):
    """Валидатор для trade_record контракта."""

    def __init__(self, loader: Optional[SchemaLoader] = None):
        super().__init__("trade_record", loader)
