"""
JSON Schema Contract Validators

Модуль для валидации внешних JSON контрактов протокола:
- audit_record.json: запись append-only audit log (одна на действие)
- market_snapshot.json: срез состояния Market
- account_snapshot.json: срез позиции аккаунта в Market

Использует библиотеку jsonschema (Draft 2020-12).
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable

import jsonschema
from jsonschema import Draft202012Validator

from src.core.domain.audit import AuditRecord


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Автоматически находит схемы в contracts/schema/ относительно корня проекта.
    """

    def __init__(self):
        # Корень проекта (4 уровня вверх от этого файла)
        self._schema_dir = Path(__file__).parent.parent.parent.parent / "contracts" / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла (с кэшированием).

        Args:
            schema_name: Имя схемы без расширения (например, 'audit_record')

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема сама по себе невалидна
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Meta-validation
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """Валидация данных против одной JSON Schema."""

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]):
        return self.validator.iter_errors(data)


class AuditRecordValidator(ContractValidator):
    def __init__(self):
        super().__init__("audit_record")


class MarketSnapshotValidator(ContractValidator):
    def __init__(self):
        super().__init__("market_snapshot")


class AccountSnapshotValidator(ContractValidator):
    def __init__(self):
        super().__init__("account_snapshot")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_audit_record(data: Dict[str, Any]) -> None:
    """
    Валидация одной audit-записи (результат AuditRecord.to_dict()).

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    AuditRecordValidator().validate(data)


def validate_market_snapshot(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    MarketSnapshotValidator().validate(data)


def validate_account_snapshot(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    AccountSnapshotValidator().validate(data)


def validate_audit_log(records: Iterable[AuditRecord]) -> int:
    """
    Валидация всего audit log (например, Ledger.audit_log) одной схемой.

    Returns:
        Количество проверенных записей

    Raises:
        ValidationError: На первой записи, не соответствующей схеме
    """
    validator = AuditRecordValidator()
    count = 0
    for record in records:
        validator.validate(record.to_dict())
        count += 1
    return count
