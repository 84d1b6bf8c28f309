"""In-process record store for dry runs and tests."""

from __future__ import annotations

import re
from typing import Optional

from skills.application_sync.types import ApplicationRecord

_CLAUSE_RE = re.compile(r"\{([^}]+)\}\s*=\s*'((?:\\.|[^'\\])*)'")


def parse_equality_formula(formula: str) -> list[tuple[str, str]]:
    clauses = [(name, re.sub(r"\\(.)", r"\1", raw)) for name, raw in _CLAUSE_RE.findall(formula)]
    if not clauses:
        raise ValueError(f"Unsupported formula: {formula}")
    return clauses


class MemoryStore:
    def __init__(self) -> None:
        self._rows: dict[str, dict[str, str]] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._rows)

    def all(self) -> list[ApplicationRecord]:
        return [ApplicationRecord.from_fields(rid, dict(f)) for rid, f in self._rows.items()]

    def find_one(self, formula: str) -> Optional[ApplicationRecord]:
        clauses = parse_equality_formula(formula)
        for record_id, fields in self._rows.items():
            if all(str(fields.get(name, "")) == value for name, value in clauses):
                return ApplicationRecord.from_fields(record_id, dict(fields))
        return None

    def create(self, fields: dict[str, str]) -> ApplicationRecord:
        record_id = f"rec{self._next_id:06d}"
        self._next_id += 1
        self._rows[record_id] = dict(fields)
        return ApplicationRecord.from_fields(record_id, dict(fields))

    def update(self, record_id: str, fields: dict[str, str]) -> None:
        if record_id not in self._rows:
            raise KeyError(f"Unknown record: {record_id}")
        self._rows[record_id].update(fields)
