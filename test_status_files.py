"""
Status File Tests
=================

Tests for the runner/orchestrator status-file handshake.
Run with: pytest test_status_files.py
"""

import json
import os

import psutil
import pytest

from status_files import (
    UNREADABLE_SUMMARY,
    StatusRecord,
    marker_path,
    read_status,
    runner_vanished,
    status_path,
    write_marker,
    write_status,
)


def test_status_path_layout(tmp_path):
    assert status_path(tmp_path, 3) == tmp_path / "agent-3.json"
    assert marker_path(tmp_path, 3) == tmp_path / "agent-3.pid"


def test_summary_is_truncated_not_rejected():
    record = StatusRecord(task="t", status="done", summary="s" * 1200)
    assert len(record.summary) == 500


def test_status_must_be_done_or_error():
    with pytest.raises(ValueError):
        StatusRecord(task="t", status="running")


def test_write_status_pretty_json_with_trailing_newline(tmp_path):
    record = StatusRecord(task="fix bug A", status="done", summary="ok", duration_ms=1500, cost_usd=0.5, num_turns=3)
    path = write_status(tmp_path, 0, record)

    text = path.read_text(encoding="utf-8")
    assert text.endswith("}\n")
    assert "\n  " in text
    assert json.loads(text) == {
        "task": "fix bug A",
        "status": "done",
        "summary": "ok",
        "duration_ms": 1500,
        "cost_usd": 0.5,
        "num_turns": 3,
    }
    assert not (tmp_path / "agent-0.json.tmp").exists()


def test_write_status_creates_missing_directory(tmp_path):
    status_dir = tmp_path / "not" / "yet" / "created"
    write_status(status_dir, 2, StatusRecord(task="t", status="error", summary="Error: x"))
    assert status_path(status_dir, 2).exists()


def test_read_status_roundtrip(tmp_path):
    write_status(tmp_path, 1, StatusRecord(task="t", status="done", summary="fine", num_turns=4))
    record = read_status(tmp_path, 1, "t")
    assert record.ok
    assert record.num_turns == 4


def test_read_status_corrupt_file_becomes_error(tmp_path):
    status_path(tmp_path, 0).write_text("{not json", encoding="utf-8")
    record = read_status(tmp_path, 0, "the task")
    assert record.status == "error"
    assert record.task == "the task"
    assert record.summary == UNREADABLE_SUMMARY


def test_read_status_missing_file_becomes_error(tmp_path):
    record = read_status(tmp_path, 5, "gone")
    assert record.status == "error"
    assert record.summary == UNREADABLE_SUMMARY


def test_read_status_invalid_schema_becomes_error(tmp_path):
    status_path(tmp_path, 0).write_text(json.dumps({"task": "t", "status": "weird"}), encoding="utf-8")
    assert read_status(tmp_path, 0, "t").status == "error"


def test_read_status_invalid_utf8_becomes_error(tmp_path):
    status_path(tmp_path, 0).write_bytes(b'{"task": "\xff\xfe", "status": "done"}')
    record = read_status(tmp_path, 0, "t")
    assert record.status == "error"
    assert record.summary == UNREADABLE_SUMMARY


def test_no_marker_is_not_vanished(tmp_path):
    assert runner_vanished(tmp_path, 0) is False


def test_live_process_marker_is_not_vanished(tmp_path):
    write_marker(tmp_path, 0)
    assert marker_path(tmp_path, 0).exists()
    assert runner_vanished(tmp_path, 0) is False


def test_reused_pid_is_vanished(tmp_path):
    create_time = psutil.Process(os.getpid()).create_time()
    marker_path(tmp_path, 0).write_text(f"{os.getpid()}:{create_time - 100}", encoding="utf-8")
    assert runner_vanished(tmp_path, 0) is True


def test_dead_pid_is_vanished(tmp_path, monkeypatch):
    marker_path(tmp_path, 0).write_text("424242:1700000000.0", encoding="utf-8")
    monkeypatch.setattr("status_files.psutil.pid_exists", lambda pid: False)
    assert runner_vanished(tmp_path, 0) is True


def test_malformed_marker_is_not_vanished(tmp_path):
    marker_path(tmp_path, 0).write_text("garbage", encoding="utf-8")
    assert runner_vanished(tmp_path, 0) is False
