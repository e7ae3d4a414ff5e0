"""
Контракты входа basket solver

JSON от коллабораторов проверяется по схемам из schema/ до того, как из него
строятся Pydantic модели:
- pool_snapshot: снапшот резервов и весов, прочитанный из контракта пула
- solve_request: резервы, веса, депозиты и необязательная конфигурация

Схема проверяет форму (типы, decimal-паттерн строк, enum порядка метода).
Знак значений проверяют модели PoolState/DepositVector, выравнивание длин
массивов проверяет SolveRequestValidator.
"""

import json
from pathlib import Path
from typing import Any, Dict

from jsonschema import Draft202012Validator, SchemaError, ValidationError


SCHEMA_DIR = Path(__file__).parent / "schema"


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Чтение схем <name>.json из каталога.

    Каждая схема один раз проверяется по мета-схеме Draft 2020-12
    и дальше отдаётся из памяти.
    """

    def __init__(self, schema_dir: Path | None = None):
        self.schema_dir = schema_dir or SCHEMA_DIR
        if not self.schema_dir.is_dir():
            raise RuntimeError(f"Schema directory not found: {self.schema_dir}")
        self._loaded: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, name: str) -> Dict[str, Any]:
        """
        Схема по имени без расширения.

        Raises:
            FileNotFoundError: нет файла <name>.json
            ValueError: файл не проходит мета-схему
        """
        cached = self._loaded.get(name)
        if cached is not None:
            return cached

        path = self.schema_dir / f"{name}.json"
        if not path.is_file():
            raise FileNotFoundError(f"Schema not found: {path}")

        schema = json.loads(path.read_text(encoding="utf-8"))
        try:
            Draft202012Validator.check_schema(schema)
        except SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {path.name}: {e.message}") from e

        self._loaded[name] = schema
        return schema


_loader = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """Проверка документа по одной схеме пакета."""

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self._validator = Draft202012Validator(_loader.load_schema(schema_name))

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: первое найденное нарушение схемы
        """
        self._validator.validate(data)


class PoolSnapshotValidator(ContractValidator):
    def __init__(self):
        super().__init__("pool_snapshot")


class SolveRequestValidator(ContractValidator):
    """
    solve_request: схема плюс одинаковая длина reserves/weights/deposits.
    """

    def __init__(self):
        super().__init__("solve_request")

    def validate(self, data: Dict[str, Any]) -> None:
        super().validate(data)

        n = len(data["reserves"])
        for key in ("weights", "deposits"):
            if len(data[key]) != n:
                raise ValidationError(
                    f"{key} length {len(data[key])} does not match reserves length {n}"
                )


# =============================================================================
# HELPERS
# =============================================================================


def validate_pool_snapshot(data: Dict[str, Any]) -> None:
    """Raises ValidationError, если снапшот не соответствует pool_snapshot."""
    PoolSnapshotValidator().validate(data)


def validate_solve_request(data: Dict[str, Any]) -> None:
    """Raises ValidationError, если запрос не соответствует solve_request."""
    SolveRequestValidator().validate(data)
