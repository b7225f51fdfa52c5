"""Tests for kernel probe."""

import pytest

from hostprobe.core.logging import query_logs
from hostprobe.core.output import Output, Severity
from hostprobe.probes.kernel import (
    OSRELEASE,
    VERSION_SIGNATURE,
    VersionParseError,
    compare_versions,
    normalize_version,
    run,
)
from tests.conftest import MockContext, load_fixture


class TestNormalizeVersion:
    """Tests for normalize_version."""

    @pytest.mark.parametrize("raw,expected", [
        ("3.2.0-30.48-generic", (3, 2, 0, 30)),
        ("3.2.0-30", (3, 2, 0, 30)),
        ("3.2.0.48", (3, 2, 0, 48)),
        ("5.15.0-91-generic", (5, 15, 0, 91)),
        ("6.1.0-18-amd64\n", (6, 1, 0, 18)),
        ("4.19", (4, 19)),
        ("v4.19.x", (4, 19)),
        ("6.9.7-arch1-1", (6, 9, 7)),
        ("6.8.0-rc1", (6, 8, 0)),
        ("6.1.0-rc7+", (6, 1, 0)),
    ])
    def test_normalizes(self, raw, expected):
        assert normalize_version(raw) == expected

    @pytest.mark.parametrize("raw", ["", "generic", "..."])
    def test_nothing_numeric_raises(self, raw):
        with pytest.raises(VersionParseError):
            normalize_version(raw)


class TestCompareVersions:
    """Tests for compare_versions."""

    def test_behind_is_critical(self):
        severity, message = compare_versions((3, 2, 0, 30), (3, 2, 0, 48))

        assert severity is Severity.CRITICAL
        assert "behind" in message

    def test_ahead_is_ok(self):
        severity, message = compare_versions((3, 5, 0, 10), (3, 2, 0, 48))

        assert severity is Severity.OK
        assert "ahead" in message

    def test_exact_match_is_ok(self):
        severity, message = compare_versions((3, 2, 0, 48), (3, 2, 0, 48))

        assert severity is Severity.OK
        assert "up to date" in message

    def test_first_difference_decides(self):
        """A larger later component doesn't outweigh an earlier one."""
        severity, _ = compare_versions((3, 1, 99, 99), (3, 2, 0, 0))

        assert severity is Severity.CRITICAL

    def test_desired_prefix_of_running_is_ok(self):
        severity, message = compare_versions((3, 2, 0, 48), (3, 2))

        assert severity is Severity.OK
        assert "matches" in message

    def test_running_prefix_of_desired_is_unknown(self):
        severity, message = compare_versions((3, 2), (3, 2, 0, 48))

        assert severity is Severity.UNKNOWN
        assert "unable to compare" in message


class TestKernelRun:
    """Tests for the probe entry point."""

    def signature_context(self, probe_env) -> MockContext:
        return MockContext(
            file_contents={VERSION_SIGNATURE: load_fixture("proc", "version_signature.txt")},
            env=probe_env,
        )

    def test_behind_returns_2(self, probe_env, capsys):
        result = run(["-c", "3.2.0-48"], Output(), self.signature_context(probe_env))

        assert result == 2
        assert capsys.readouterr().out == (
            "KERNEL CRITICAL: running kernel 3.2.0.30 is behind desired 3.2.0.48\n"
        )

    def test_up_to_date_returns_0(self, probe_env, capsys):
        result = run(["-c", "3.2.0-30"], Output(), self.signature_context(probe_env))

        assert result == 0
        assert capsys.readouterr().out == "KERNEL OK: running kernel 3.2.0.30 is up to date\n"

    def test_ahead_returns_0(self, probe_env, capsys):
        result = run(["-c", "3.0.0-12"], Output(), self.signature_context(probe_env))

        assert result == 0
        assert "ahead" in capsys.readouterr().out

    def test_falls_back_to_osrelease(self, probe_env, capsys):
        context = MockContext(
            file_contents={OSRELEASE: load_fixture("proc", "osrelease.txt")},
            env=probe_env,
        )
        output = Output()

        result = run(["-c", "6.1.0-21"], output, context)

        assert result == 2
        assert output.data["running"] == "6.1.0-18-amd64"
        assert output.data["running_version"] == "6.1.0.18"

    def test_no_version_source_is_unknown(self, probe_env, capsys):
        result = run(["-c", "6.1"], Output(), MockContext(env=probe_env))

        assert result == 3
        assert capsys.readouterr().out.startswith("KERNEL UNKNOWN: File not found")

    def test_malformed_signature_is_unknown(self, probe_env, capsys):
        context = MockContext(file_contents={VERSION_SIGNATURE: "Ubuntu\n"}, env=probe_env)

        result = run(["-c", "6.1"], Output(), context)

        assert result == 3
        assert "unexpected" in capsys.readouterr().out

    def test_unreadable_signature_is_unknown(self, probe_env, capsys):
        context = MockContext(
            file_contents={VERSION_SIGNATURE: PermissionError(13, "Permission denied")},
            env=probe_env,
        )

        result = run(["-c", "6.1"], Output(), context)

        assert result == 3
        assert "Permission denied" in capsys.readouterr().out

    @pytest.mark.parametrize("args,expected", [
        ([], "required"),
        (["-c", "latest"], "invalid desired version"),
        (["-c", "3.2.0_48"], "invalid desired version"),
    ])
    def test_usage_errors_are_unknown(self, args, expected, probe_env, capsys):
        result = run(args, Output(), self.signature_context(probe_env))

        assert result == 3
        out = capsys.readouterr().out
        assert out.startswith("KERNEL UNKNOWN: usage error: ")
        assert expected in out

    def test_help_exits_zero(self, probe_env, capsys):
        result = run(["-c", "nope", "-h"], Output(), self.signature_context(probe_env))

        assert result == 0
        assert "usage: check_kernel" in capsys.readouterr().out

    def test_logs_start_and_result(self, probe_env, tmp_path, capsys):
        run(["-c", "3.2.0-48"], Output(), self.signature_context(probe_env))

        entries = query_logs(tmp_path / "logs", "kernel")
        assert [e["level"] for e in entries] == ["debug", "info"]
        assert entries[1]["severity"] == "CRITICAL"
        assert entries[1]["running_version"] == "3.2.0.30"

    def test_release_suffix_digits_do_not_inflate_version(self, probe_env, capsys):
        context = MockContext(file_contents={OSRELEASE: "6.9.7-arch1-1\n"}, env=probe_env)

        result = run(["-c", "6.9.8"], Output(), context)

        assert result == 2
        assert capsys.readouterr().out == (
            "KERNEL CRITICAL: running kernel 6.9.7 is behind desired 6.9.8\n"
        )

    def test_undecodable_signature_is_unknown(self, probe_env, capsys):
        context = MockContext(
            file_contents={
                VERSION_SIGNATURE: UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
            },
            env=probe_env,
        )

        result = run(["-c", "6.1"], Output(), context)

        assert result == 3
        assert capsys.readouterr().out.startswith(
            "KERNEL UNKNOWN: Cannot decode /proc/version_signature"
        )
