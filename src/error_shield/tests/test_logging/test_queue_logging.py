# src/error_shield/tests/test_logging/test_queue_logging.py
import json
import logging
import logging.handlers
import queue
from pathlib import Path

from error_shield.core.logging import builder
from error_shield.core.logging.builder import (
    DIAGNOSTICS_LOGGER_NAME,
    NonBlockingQueueHandler,
    get_queue_stats,
    setup_logging,
    stop_queue_logging,
)
from error_shield.core.logging.filters import reset_request_id, set_request_id

def make_queue_settings(settings_factory, tmp_path: Path, **overrides):
    values = dict(
        LOG_TO_STDOUT=False,     # write to files, not stdout
        LOG_DIR=tmp_path,
        LOG_USE_QUEUE=True,
        LOG_QUEUE_MAX_SIZE=1000,
    )
    values.update(overrides)
    return settings_factory(**values)

def test_queue_listener_writes_file(tmp_path, settings_factory, restore_logging):
    settings = make_queue_settings(settings_factory, tmp_path)
    setup_logging(settings)
    assert get_queue_stats()["queue_present"] is True

    logger = logging.getLogger("test.queue")
    token = set_request_id("test-req-1")
    try:
        for i in range(10):
            logger.info("test message %d", i, extra={"iteration": i})
    finally:
        reset_request_id(token)

    # stop() drains the queue, so everything logged above is on disk afterwards
    stop_queue_logging()

    text = (tmp_path / "app.log").read_text()
    assert "test message 0" in text
    assert "test message 9" in text
    assert "iteration" in text
    assert "test-req-1" in text  # stamped in the producer context

def test_diagnostics_go_to_their_own_file(tmp_path, settings_factory, restore_logging):
    setup_logging(make_queue_settings(settings_factory, tmp_path))

    logging.getLogger(DIAGNOSTICS_LOGGER_NAME).error(
        "diagnostic.error_captured", extra={"status_code": 409, "body": {"details": {"c": "unique_email"}}}
    )
    logging.getLogger("test.queue").error("unrelated failure")
    stop_queue_logging()

    lines = (tmp_path / "diagnostics.log").read_text().splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["status_code"] == 409
    assert record["body"]["details"]["c"] == "unique_email"
    assert "unique_email" not in (tmp_path / "app.log").read_text()

def test_stop_queue_logging_restores_real_handlers(tmp_path, settings_factory, restore_logging):
    setup_logging(make_queue_settings(settings_factory, tmp_path))
    root = logging.getLogger()
    assert any(isinstance(h, logging.handlers.QueueHandler) for h in root.handlers)

    stop_queue_logging()

    assert not any(isinstance(h, logging.handlers.QueueHandler) for h in root.handlers)
    assert get_queue_stats()["queue_present"] is False
    logging.getLogger("test.queue").info("after shutdown")
    assert "after shutdown" in (tmp_path / "app.log").read_text()

def test_stop_queue_logging_without_listener_is_noop():
    stop_queue_logging()
    stop_queue_logging()

def test_non_blocking_handler_drops_instead_of_blocking(monkeypatch):
    monkeypatch.setattr(builder, "_DROPPED_LOGS_COUNT", 0)
    q = queue.Queue(maxsize=1)
    handler = NonBlockingQueueHandler(q, drop_warning_threshold=0)
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg %d", (1,), None)

    handler.emit(record)
    handler.emit(record)   # queue full: must return immediately
    handler.emit(record)

    assert q.qsize() == 1
    assert get_queue_stats()["dropped_logs"] == 2

def test_non_blocking_handler_reports_every_nth_drop(monkeypatch):
    monkeypatch.setattr(builder, "_DROPPED_LOGS_COUNT", 0)
    reported = []
    q = queue.Queue(maxsize=1)
    handler = NonBlockingQueueHandler(q, drop_warning_threshold=2)
    monkeypatch.setattr(handler, "handleError", lambda record: reported.append(record))
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", (), None)

    for _ in range(5):
        handler.emit(record)

    # 4 drops, reported on the 2nd and 4th
    assert len(reported) == 2
