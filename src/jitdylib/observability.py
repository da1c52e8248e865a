"""Structured logging for build and load operations."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class StructuredLogger:
    records: list[dict[str, Any]] = field(default_factory=list)
    _bound: dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    def log(
        self,
        *,
        operation: str,
        library: str | None,
        phase: str | None,
        tool: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            **self._bound,
            "level": level,
            "operation": operation,
            "library": library,
            "phase": phase,
            "tool": tool,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)

    @contextmanager
    def bind(self, **fields: Any) -> Iterator[StructuredLogger]:
        """Stamp *fields* onto every record logged inside the block.

        Nested binds add to the outer fields; leaving a block restores them.
        """
        previous = self._bound
        self._bound = {**previous, **fields}
        try:
            yield self
        finally:
            self._bound = previous

    def records_for_library(self, library: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("library") == library]

    def records_for_build(self, build_id: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("build_id") == build_id]

    def records_at_level(self, level: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("level") == level]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path
