import json
from pathlib import Path

from jitdylib.observability import StructuredLogger


def test_logger_filters_and_writes_json_lines(tmp_path: Path) -> None:
    logger = StructuredLogger()
    logger.log(operation="build_start", library="Foo", phase="build", tool=None, message="start")
    logger.log(
        operation="workspace_cleanup_failed",
        library="Foo",
        phase="cleanup",
        tool=None,
        message="left behind",
        level="warning",
        extra={"workspace": "/tmp/jitdylib_x"},
    )
    logger.log(operation="build_start", library="Bar", phase="build", tool=None, message="start")

    assert len(logger.records_for_library("Foo")) == 2
    assert [r["operation"] for r in logger.records_at_level("warning")] == ["workspace_cleanup_failed"]

    path = logger.to_json_lines(tmp_path / "logs" / "build.jsonl")
    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [line["library"] for line in lines] == ["Foo", "Foo", "Bar"]
    assert lines[1]["extra"] == {"workspace": "/tmp/jitdylib_x"}
    assert "extra" not in lines[0]


def test_bound_fields_stamp_records_until_the_block_exits() -> None:
    logger = StructuredLogger()

    with logger.bind(build_id="abc"):
        logger.log(operation="build_start", library="Foo", phase="build", tool=None, message="start")
        with logger.bind(attempt=2):
            logger.log(operation="link", library="Foo", phase="link", tool="clang", message="link")
    logger.log(operation="load", library="Foo", phase=None, tool=None, message="load")

    assert [r["operation"] for r in logger.records_for_build("abc")] == ["build_start", "link"]
    assert logger.records[1]["attempt"] == 2
    assert "attempt" not in logger.records[0]
    assert "build_id" not in logger.records[2]


def test_bound_fields_are_restored_after_an_error() -> None:
    logger = StructuredLogger()

    try:
        with logger.bind(build_id="boom"):
            raise RuntimeError("fail")
    except RuntimeError:
        pass
    logger.log(operation="after", library=None, phase=None, tool=None, message="after")

    assert "build_id" not in logger.records[0]
