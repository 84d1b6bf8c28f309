"""Record store contract and filter-formula helpers."""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from skills.application_sync.types import ApplicationRecord


@runtime_checkable
class RecordStore(Protocol):
    """Opaque keyed table of application records."""

    def find_one(self, formula: str) -> Optional[ApplicationRecord]:
        """Return the first record matching ``formula`` or None."""
        ...

    def create(self, fields: dict[str, str]) -> ApplicationRecord:
        ...

    def update(self, record_id: str, fields: dict[str, str]) -> None:
        ...


def escape_formula_value(value: str) -> str:
    return str(value).replace("\\", "\\\\").replace("'", "\\'")


def field_equals_formula(field: str, value: str) -> str:
    return f"{{{field}}} = '{escape_formula_value(value)}'"


def all_of(*clauses: str) -> str:
    if len(clauses) == 1:
        return clauses[0]
    return f"AND({', '.join(clauses)})"
