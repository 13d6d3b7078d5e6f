import json
import logging

from flotilla.infra.config import Settings
from flotilla.infra.logging import (
    JsonFormatter,
    LoggingConfig,
    configure_logging,
    parse_event,
    setup_logging,
    stop_logging,
)


def test_json_formatter_includes_fields_and_message() -> None:
    logger = logging.getLogger("test.json.formatter")
    record = logger.makeRecord(
        name=logger.name,
        level=logging.INFO,
        fn=__file__,
        lno=1,
        msg="hello %s",
        args=("world",),
        exc_info=None,
        extra={"custom": 1},
    )
    payload = json.loads(JsonFormatter().format(record))
    assert payload["msg"] == "hello world"
    assert payload["level"] == "INFO"
    assert payload["fields"] == {"custom": 1}


def test_parse_event_decodes_typed_fields() -> None:
    event, fields = parse_event(
        "skill_rejected reason='Cannot repair this part.' ai=False turn=7 delay=1.5 seed=None"
    )
    assert event == "skill_rejected"
    assert fields == {
        "reason": "Cannot repair this part.",
        "ai": False,
        "turn": 7,
        "delay": 1.5,
        "seed": None,
    }


def test_parse_event_without_leading_event_name() -> None:
    assert parse_event("logging_file=/tmp/run.jsonl") == (None, {"logging_file": "/tmp/run.jsonl"})
    assert parse_event("Plain sentence.") == (None, {})


def test_json_formatter_emits_event_and_typed_fields() -> None:
    record = logging.getLogger("test.json.event").makeRecord(
        name="test.json.event",
        level=logging.INFO,
        fn=__file__,
        lno=1,
        msg="match_finished id=%s winner=%s turns=%d",
        args=("g1", "Alpha", 42),
        exc_info=None,
        extra={"turns": 43},
    )
    payload = json.loads(JsonFormatter().format(record))
    assert payload["event"] == "match_finished"
    assert payload["fields"] == {"id": "g1", "winner": "Alpha", "turns": 43}


def test_configure_logging_text_console_only() -> None:
    configure_logging(LoggingConfig(level_name="DEBUG", console_format="text"))
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert not isinstance(root.handlers[0].formatter, JsonFormatter)


def test_setup_logging_writes_json_lines_run_log(tmp_path) -> None:
    log_dir = tmp_path / "logs"
    path = setup_logging(Settings(log_level="INFO", log_format="json", log_dir=str(log_dir)))
    try:
        logging.getLogger("test.logging.file").info("match_finished winner=%s", "p1")
    finally:
        stop_logging()

    assert path is not None
    files = list(log_dir.glob("flotilla_run_*.jsonl"))
    assert files
    lines = [json.loads(line) for line in files[0].read_text(encoding="utf-8").splitlines()]
    finished = [line for line in lines if line.get("event") == "match_finished"]
    assert finished
    assert finished[0]["fields"] == {"winner": "p1"}


def test_setup_logging_without_log_dir_has_no_file() -> None:
    assert setup_logging(Settings(log_dir=None)) is None
