"""Tests for observability/logger.py and observability/metrics.py"""
import io
import json
import logging
import sys
import time
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock


class TestStructuredFormatter:
    def _get_record(
        self,
        msg,
        level=logging.INFO,
        exc_info=None,
        stack_info=None,
        extra_fields=None,
    ):
        record = logging.LogRecord(
            name="guestlens.test",
            level=level,
            pathname="",
            lineno=0,
            msg=msg,
            args=(),
            exc_info=exc_info,
        )
        if extra_fields is not None:
            record.extra_fields = extra_fields
        if stack_info is not None:
            record.stack_info = stack_info
        return record

    def test_basic_format(self):
        from guestlens.observability.logger import StructuredFormatter

        result = json.loads(StructuredFormatter().format(self._get_record("hello world")))
        assert result["message"] == "hello world"
        assert result["level"] == "INFO"
        assert result["logger"] == "guestlens.test"
        assert "ts" in result

    def test_extra_fields_merged(self):
        from guestlens.observability.logger import StructuredFormatter

        record = self._get_record("msg", extra_fields={"image_id": "abc", "items": 5})
        result = json.loads(StructuredFormatter().format(record))
        assert result["image_id"] == "abc"
        assert result["items"] == 5

    def test_secret_fields_redacted(self):
        from guestlens.observability.logger import StructuredFormatter

        record = self._get_record(
            "msg",
            extra_fields={"wedauthkey": "live-key-99887766", "image": "data:image/webp;base64,AAAA"},
        )
        line = StructuredFormatter().format(record)
        assert "live-key" not in line
        result = json.loads(line)
        assert result["wedauthkey"] == "<redacted:...7766>"
        assert result["image"] == "<data_uri:3_bytes>"

    def test_non_json_values_stringified(self):
        from guestlens.observability.logger import StructuredFormatter

        when = datetime(2025, 6, 14, tzinfo=timezone.utc)
        record = self._get_record("msg", extra_fields={"at": when})
        result = json.loads(StructuredFormatter().format(record))
        assert result["at"] == str(when)

    def test_exception_serialised(self):
        from guestlens.observability.logger import StructuredFormatter

        try:
            raise ValueError("boom")
        except ValueError:
            record = self._get_record("failed", level=logging.ERROR, exc_info=sys.exc_info())
        result = json.loads(StructuredFormatter().format(record))
        assert "ValueError: boom" in result["exception"]

    def test_stack_info(self):
        from guestlens.observability.logger import StructuredFormatter

        record = self._get_record("msg", stack_info="Stack (most recent call last)")
        result = json.loads(StructuredFormatter().format(record))
        assert result["stack_info"].startswith("Stack")

    def test_single_line(self):
        from guestlens.observability.logger import StructuredFormatter

        output = StructuredFormatter().format(self._get_record("line one\nline two"))
        assert "\n" not in output


class TestGetLogger:
    def test_writes_json_to_stream(self):
        from guestlens.observability.logger import get_logger

        stream = io.StringIO()
        log = get_logger("guestlens.test.stream", stream=stream)
        log.info("uploaded", extra={"extra_fields": {"chunk": 2}})
        entry = json.loads(stream.getvalue().strip())
        assert entry["message"] == "uploaded"
        assert entry["chunk"] == 2

    def test_idempotent(self):
        from guestlens.observability.logger import get_logger

        first = get_logger("guestlens.test.idempotent", stream=io.StringIO())
        second = get_logger("guestlens.test.idempotent", stream=io.StringIO())
        assert first is second
        assert len(first.handlers) == 1

    def test_string_level(self):
        from guestlens.observability.logger import get_logger

        stream = io.StringIO()
        log = get_logger("guestlens.test.level", level="warning", stream=stream)
        log.info("hidden")
        log.warning("shown")
        lines = stream.getvalue().strip().splitlines()
        assert [json.loads(line)["message"] for line in lines] == ["shown"]

    def test_does_not_propagate(self):
        from guestlens.observability.logger import get_logger

        assert get_logger("guestlens.test.propagate", stream=io.StringIO()).propagate is False


class TestLoggedEvents:
    async def test_moderation_decision_logged_with_admin(self, config, store):
        from guestlens.models import AdminSession, GalleryImage
        from guestlens.moderation import ModerationQueue
        from guestlens.observability.logger import StructuredFormatter

        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(StructuredFormatter())
        logger = logging.getLogger("guestlens.moderation")
        logger.addHandler(handler)
        try:
            api = MagicMock()
            api.list_unapproved = AsyncMock(return_value=[
                GalleryImage("img1", "https://b/user_images/img1.webp", "3", False,
                             datetime(2025, 6, 14, tzinfo=timezone.utc)),
            ])
            api.decide = AsyncMock(return_value="approved")
            now = time.time()
            session = AdminSession("7", "groom", now, now + 60)
            queue = ModerationQueue(api, store, config, session=session)
            await queue.load()
            await queue.approve("img1")
        finally:
            logger.removeHandler(handler)

        entries = [json.loads(line) for line in stream.getvalue().splitlines()]
        decision = next(e for e in entries if e["message"] == "Moderation decision recorded")
        assert decision["image_id"] == "img1"
        assert decision["decision"] == "approved"
        assert decision["admin_id"] == "7"


class TestMetrics:
    def test_noop_accepts_everything(self):
        from guestlens.observability.metrics import NoopMetricsHook

        hook = NoopMetricsHook()
        assert hook.increment("x") is None
        assert hook.increment("x", 3, tags={"a": "b"}) is None
        assert hook.timing("x", 1.5) is None
        assert hook.gauge("x", 2.0, tags=None) is None

    def test_noop_satisfies_protocol(self):
        from guestlens.observability.metrics import MetricsHook, NoopMetricsHook

        assert isinstance(NoopMetricsHook(), MetricsHook)

    def test_custom_hook_satisfies_protocol(self):
        from guestlens.observability.metrics import MetricsHook

        class Recorder:
            def __init__(self):
                self.calls = []

            def increment(self, name, value=1, tags=None):
                self.calls.append(("increment", name, value))

            def timing(self, name, ms, tags=None):
                self.calls.append(("timing", name, ms))

            def gauge(self, name, value, tags=None):
                self.calls.append(("gauge", name, value))

        assert isinstance(Recorder(), MetricsHook)

    def test_resolve_metrics(self):
        from guestlens.observability.metrics import NoopMetricsHook, resolve_metrics

        assert isinstance(resolve_metrics(None), NoopMetricsHook)
        hook = MagicMock()
        assert resolve_metrics(hook) is hook
