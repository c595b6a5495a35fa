"""JSON Lines result records for processing runs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Mapping


class JsonlLogger:
    """Append per-run result records to a JSON Lines file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def write(self, record: Mapping[str, Any]) -> None:
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(dict(record), ensure_ascii=False) + "\n")

    def write_many(self, records: Iterable[Mapping[str, Any]]) -> None:
        for record in records:
            self.write(record)


def read_jsonl(path: str | Path) -> list[dict[str, Any]]:
    """Read every record of a JSON Lines file."""
    with Path(path).open("r", encoding="utf-8") as handle:
        return [json.loads(line) for line in handle if line.strip()]
