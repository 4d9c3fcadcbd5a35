from __future__ import annotations

import io
import json
import logging

from projectflow.core.config import Settings
from projectflow.core.context import bind_actor_id, bind_request_id, reset_actor_id, reset_request_id
from projectflow.core.logging import JsonLogFormatter, configure_logging


def test_configure_logging_outputs_json_with_request_id() -> None:
    settings = Settings(environment="test")
    settings.log_level = "INFO"
    configure_logging(settings)

    root_logger = logging.getLogger()
    handler = next(
        (h for h in root_logger.handlers if isinstance(h, logging.StreamHandler)),
        None,
    )
    assert handler is not None, "Expected JSON stream handler to be configured"

    buffer = io.StringIO()
    previous_stream = handler.setStream(buffer)

    request_token = bind_request_id("req-json-1")
    actor_token = bind_actor_id(42)
    try:
        logger = logging.getLogger("projectflow.tests.logging")
        logger.info("structured log event", extra={"component": "unit-test"})
    finally:
        handler.flush()
        reset_actor_id(actor_token)
        reset_request_id(request_token)
        handler.setStream(previous_stream)

    log_lines = buffer.getvalue().strip().splitlines()
    assert log_lines, "Expected structured log line to be captured"
    payload = json.loads(log_lines[-1])

    assert payload["message"] == "structured log event"
    assert payload["request_id"] == "req-json-1"
    assert payload["actor_id"] == 42
    assert payload["environment"] == settings.environment
    assert payload["level"] == "INFO"
    assert payload["component"] == "unit-test"
    assert payload["service"] == settings.project_name


def test_formatter_stringifies_unserialisable_extras() -> None:
    formatter = JsonLogFormatter()
    record = logging.LogRecord("projectflow", logging.WARNING, __file__, 1, "hello %s", ("world",), None)
    record.payload = object()

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "hello world"
    assert payload["request_id"] == "-"
    assert payload["actor_id"] is None
    assert payload["payload"].startswith("<object object")
