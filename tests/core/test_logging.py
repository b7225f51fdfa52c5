"""Tests for logging module."""

import json
from datetime import date

from hostprobe.core.logging import ProbeLogger, get_log_path, open_logger, query_logs
from tests.conftest import MockContext


class TestGetLogPath:
    """Tests for get_log_path function."""

    def test_returns_path_with_date_and_probe(self, tmp_path):
        """Returns path in format {base}/{date}/{probe}.jsonl."""
        path = get_log_path("blkstat", base_path=tmp_path / "logs")

        today = date.today().isoformat()
        assert path == tmp_path / "logs" / today / "blkstat.jsonl"


class TestProbeLogger:
    """Tests for ProbeLogger class."""

    def test_logs_to_file(self, tmp_path):
        """Writes log entries to JSONL file."""
        log_path = tmp_path / "test.jsonl"
        logger = ProbeLogger("blkstat", log_path=log_path)

        logger.info("Test message")
        logger.close()

        entry = json.loads(log_path.read_text().strip())
        assert entry["level"] == "info"
        assert entry["message"] == "Test message"
        assert entry["probe"] == "blkstat"
        assert "T" in entry["timestamp"]

    def test_logs_multiple_levels(self, tmp_path):
        """Logs debug, info, warning, error levels."""
        log_path = tmp_path / "test.jsonl"

        with ProbeLogger("blkstat", log_path=log_path) as logger:
            logger.debug("Debug msg")
            logger.info("Info msg")
            logger.warning("Warning msg")
            logger.error("Error msg")

        levels = [json.loads(line)["level"] for line in log_path.read_text().splitlines()]
        assert levels == ["debug", "info", "warning", "error"]

    def test_logs_extra_data(self, tmp_path):
        """Log entries can include extra data."""
        log_path = tmp_path / "test.jsonl"

        with ProbeLogger("blkstat", log_path=log_path) as logger:
            logger.info("result", device="sda", iops=8.0)

        entry = json.loads(log_path.read_text().strip())
        assert entry["device"] == "sda"
        assert entry["iops"] == 8.0

    def test_creates_parent_directories(self, tmp_path):
        log_path = tmp_path / "a" / "b" / "test.jsonl"

        with ProbeLogger("blkstat", log_path=log_path) as logger:
            logger.info("x")

        assert log_path.exists()

    def test_disabled_logger_writes_nothing(self, tmp_path):
        logger = ProbeLogger("blkstat")

        logger.info("dropped")
        logger.close()

        assert not logger.enabled
        assert list(tmp_path.iterdir()) == [tmp_path / "home"]

    def test_unwritable_path_disables_logger(self, tmp_path, capsys):
        """Open failures disable the logger instead of raising."""
        (tmp_path / "file").write_text("")
        logger = ProbeLogger("blkstat", log_path=tmp_path / "file" / "test.jsonl")

        logger.debug("first")
        logger.info("second")
        logger.close()

        assert not logger.enabled
        assert "file/test.jsonl" in logger.failure
        err = capsys.readouterr().err
        assert err.count("run log disabled") == 1


class TestOpenLogger:
    """Tests for open_logger."""

    def test_uses_configured_directory(self, tmp_path):
        context = MockContext(env={"HOSTPROBE_LOG_DIR": str(tmp_path / "logs")})

        logger = open_logger("kernel", context)

        assert logger.log_path == get_log_path("kernel", tmp_path / "logs")

    def test_disabled_when_off(self):
        logger = open_logger("kernel", MockContext(env={"HOSTPROBE_LOG_DIR": "off"}))

        assert logger.log_path is None


class TestQueryLogs:
    """Tests for query_logs."""

    def write_entries(self, base_path):
        with ProbeLogger("blkstat", log_path=get_log_path("blkstat", base_path)) as logger:
            logger.debug("started")
            logger.info("ok")
            logger.error("failed")

    def test_returns_all_entries(self, tmp_path):
        self.write_entries(tmp_path)

        entries = query_logs(tmp_path, "blkstat")

        assert [e["message"] for e in entries] == ["started", "ok", "failed"]

    def test_filters_by_level(self, tmp_path):
        self.write_entries(tmp_path)

        entries = query_logs(tmp_path, "blkstat", min_level="warning")

        assert [e["message"] for e in entries] == ["failed"]

    def test_limit(self, tmp_path):
        self.write_entries(tmp_path)

        assert len(query_logs(tmp_path, "blkstat", limit=2)) == 2

    def test_missing_log_is_empty(self, tmp_path):
        assert query_logs(tmp_path, "kernel") == []

    def test_skips_corrupt_lines(self, tmp_path):
        log_path = get_log_path("blkstat", tmp_path)
        log_path.parent.mkdir(parents=True)
        log_path.write_text('{"level": "info", "message": "good"}\nnot json\n\n')

        assert [e["message"] for e in query_logs(tmp_path, "blkstat")] == ["good"]
