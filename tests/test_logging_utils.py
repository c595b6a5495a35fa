from __future__ import annotations

from pathlib import Path

from aecnr.logging_utils import JsonlLogger, read_jsonl


def test_jsonl_logger_appends_records(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "results.jsonl"
    logger = JsonlLogger(path)

    logger.write({"strategy": "MWF", "snr": 3.5})
    logger.write_many([{"strategy": "AEC-NR", "snr": 4.0}, {"strategy": "NR-AEC"}])

    records = read_jsonl(path)
    assert [r["strategy"] for r in records] == ["MWF", "AEC-NR", "NR-AEC"]
    assert records[0]["snr"] == 3.5
