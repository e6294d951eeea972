#!/usr/bin/env python3
"""
Tests for the log formatters and the log_timing decorator.
"""
import json
import logging
from dataclasses import dataclass

import pytest

from truthlens.logging_config import DevFormatter, JSONFormatter, log_timing


def _record(**extra):
    record = logging.LogRecord("truthlens.jobs", logging.INFO, __file__, 1, "done", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    def test_json_includes_extras(self):
        payload = json.loads(JSONFormatter().format(_record(duration_ms=12.5, stories_count=3)))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "truthlens.jobs"
        assert payload["message"] == "done"
        assert payload["duration_ms"] == 12.5
        assert payload["stories_count"] == 3

    def test_dev_renders_known_extras(self):
        line = DevFormatter().format(_record(duration_ms=4.2, articles_count=7))
        assert "truthlens.jobs: done" in line
        assert "[4.2ms articles=7]" in line


@dataclass
class _Report:
    stories: int


class TestLogTiming:
    """Tests for the timing decorator."""

    @pytest.fixture(autouse=True)
    def _capture(self, caplog):
        caplog.set_level(logging.INFO)
        self.caplog = caplog

    def _completed(self):
        return [r for r in self.caplog.records if r.getMessage().endswith("completed")]

    def test_bare_decorator(self):
        @log_timing
        def step():
            return "ok"

        assert step() == "ok"
        record = self._completed()[0]
        assert record.getMessage() == "step completed"
        assert record.duration_ms >= 0

    @pytest.mark.parametrize(
        "result, expected",
        [([1, 2, 3], 3), (5, 5), (_Report(stories=2), 2)],
    )
    def test_count_field(self, result, expected):
        @log_timing("detect", count_field="stories_count")
        def step():
            return result

        step()
        assert self._completed()[0].stories_count == expected

    def test_no_count_for_unknown_result(self):
        @log_timing("detect", count_field="stories_count")
        def step():
            return "n/a"

        step()
        assert not hasattr(self._completed()[0], "stories_count")

    def test_failure_is_logged_and_raised(self):
        @log_timing("detect")
        def step():
            raise RuntimeError("store down")

        with pytest.raises(RuntimeError):
            step()
        errors = [r for r in self.caplog.records if r.levelno == logging.ERROR]
        assert errors[0].getMessage() == "detect failed: store down"
        assert errors[0].exc_info is not None
