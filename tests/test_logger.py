import json
from pathlib import Path

from azure_vm_verify.logging import (
    CompositeLogger,
    ConsoleLogger,
    FileLogger,
    LogLevel,
    NullLogger,
)


def _events(path: Path):
    return [json.loads(line) for line in path.read_text().splitlines()]


def test_file_logger_writes_json_lines(tmp_path: Path):
    path = tmp_path / "run.jsonl"
    logger = FileLogger(str(path))

    logger.info("check.passed", "vm exists", {"check": "vm_exists"})
    logger.error("check.failed", "offer mismatch")

    entries = _events(path)
    assert [e["event"] for e in entries] == ["check.passed", "check.failed"]
    assert entries[0]["level"] == "info"
    assert entries[0]["data"] == {"check": "vm_exists"}
    assert "data" not in entries[1]


def test_file_logger_filters_by_level(tmp_path: Path):
    path = tmp_path / "run.jsonl"
    logger = FileLogger(str(path), min_level=LogLevel.WARNING)

    logger.debug("check.skipped", "skipped")
    logger.info("check.passed", "ok")
    logger.warning("teardown.failed", "locked")

    assert [e["event"] for e in _events(path)] == ["teardown.failed"]


def test_composite_logger_fans_out(tmp_path: Path):
    first = tmp_path / "a.jsonl"
    second = tmp_path / "b.jsonl"
    logger = CompositeLogger([FileLogger(str(first)), NullLogger(), FileLogger(str(second))])

    logger.info("run.started", "go")

    assert _events(first)[0]["event"] == "run.started"
    assert _events(second)[0]["event"] == "run.started"


def test_console_logger_prints_key_data(capsys):
    logger = ConsoleLogger(colored=False)

    logger.error("check.failed", "Unexpected sku", {"check": "image_sku", "expected": "a", "actual": "b"})
    logger.debug("check.skipped", "hidden")
    logger.info("run.completed", "5/6 checks passed", {"passed": False})

    out = capsys.readouterr().out
    assert "Unexpected sku (check=image_sku, expected=a, actual=b)" in out
    assert "hidden" not in out
    assert "FAILED" in out
    assert "5/6 checks passed" in out
