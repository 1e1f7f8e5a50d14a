"""
Agent Runner Tests
==================

Drives the runner with a scripted agent engine instead of the real SDK.
Run with: pytest test_agent_runner.py
"""

import asyncio
import json
from pathlib import Path

import pytest
from claude_agent_sdk import AssistantMessage, ResultMessage, SystemMessage, TextBlock, ToolUseBlock

import agent_runner
from agent_runner import PaneRun, run_pane
from status_files import marker_path, status_path


def make_query(messages, error=None, seen=None):
    """Fake ``claude_agent_sdk.query`` yielding ``messages`` then optionally raising."""

    async def fake_query(*, prompt, options):
        if seen is not None:
            seen.append((prompt, options))
        for message in messages:
            yield message
        if error is not None:
            raise error

    return fake_query


def assistant(*texts: str) -> AssistantMessage:
    return AssistantMessage(content=[TextBlock(text=t) for t in texts], model="claude-x")


def result(**overrides) -> ResultMessage:
    fields = dict(
        subtype="success",
        duration_ms=4200,
        duration_api_ms=4000,
        is_error=False,
        num_turns=5,
        session_id="s",
        total_cost_usd=0.25,
        result="final result text",
    )
    fields.update(overrides)
    return ResultMessage(**fields)


def read_record(status_dir: Path, index: int = 0) -> dict:
    return json.loads(status_path(status_dir, index).read_text(encoding="utf-8"))


def pane(tmp_path: Path, **overrides) -> PaneRun:
    fields = dict(task="fix bug A", cwd=tmp_path, model="claude-x", pane_index=0, total_panes=2, status_dir=tmp_path / "status")
    fields.update(overrides)
    return PaneRun(**fields)


def test_successful_run_writes_done_record(tmp_path, capsys):
    messages = [
        SystemMessage(subtype="init", data={"model": "claude-x", "tools": ["Bash"]}),
        assistant("Looking around"),
        AssistantMessage(content=[ToolUseBlock(id="t1", name="Bash", input={"command": "pytest"})], model="claude-x"),
        assistant("Fixed the bug"),
        result(),
    ]
    run = pane(tmp_path)

    assert run_pane(run, make_query(messages)) == 0

    record = read_record(run.status_dir)
    assert record == {
        "task": "fix bug A",
        "status": "done",
        "summary": "Fixed the bug",
        "duration_ms": 4200,
        "cost_usd": 0.25,
        "num_turns": 5,
    }
    out = capsys.readouterr().out
    assert "Agent 1/2" in out
    assert "Task: fix bug A" in out
    assert "$ pytest" in out
    assert "Done!" in out


def test_marker_is_written_on_startup(tmp_path):
    run = pane(tmp_path)
    run_pane(run, make_query([result()]))
    assert marker_path(run.status_dir, 0).exists()


def test_summary_is_truncated_to_500_chars(tmp_path):
    run = pane(tmp_path, pane_index=1)
    run_pane(run, make_query([assistant("z" * 2000), result()]))
    assert len(read_record(run.status_dir, 1)["summary"]) == 500


def test_missing_result_defaults_metadata_to_zero(tmp_path):
    run = pane(tmp_path)
    assert run_pane(run, make_query([assistant("partial")])) == 0
    record = read_record(run.status_dir)
    assert record["status"] == "done"
    assert record["summary"] == "partial"
    assert record["duration_ms"] == 0
    assert record["cost_usd"] == 0
    assert record["num_turns"] == 0


def test_result_text_used_when_no_assistant_text(tmp_path):
    run = pane(tmp_path)
    run_pane(run, make_query([result()]))
    assert read_record(run.status_dir)["summary"] == "final result text"


def test_failure_writes_error_record_and_exits_nonzero(tmp_path, capsys):
    run = pane(tmp_path)
    exit_code = run_pane(run, make_query([assistant("starting")], error=RuntimeError("boom")))

    assert exit_code == 1
    record = read_record(run.status_dir)
    assert record["status"] == "error"
    assert record["summary"] == "Error: boom"
    assert record["cost_usd"] == 0
    assert record["num_turns"] == 0
    err = capsys.readouterr().err
    assert "Error: boom" in err
    assert "Traceback" in err


def test_error_summary_is_truncated(tmp_path):
    run = pane(tmp_path)
    run_pane(run, make_query([], error=RuntimeError("x" * 900)))
    assert len(read_record(run.status_dir)["summary"]) == 500


def test_auth_failure_prints_login_hint(tmp_path, capsys):
    run = pane(tmp_path)
    run_pane(run, make_query([], error=RuntimeError("Not logged in. Please run claude login")))
    assert "claude login" in capsys.readouterr().err


def test_exactly_one_record_per_runner(tmp_path):
    run = pane(tmp_path)
    run_pane(run, make_query([assistant("done"), result()]))
    assert sorted(p.name for p in run.status_dir.glob("*.json")) == ["agent-0.json"]


def test_exactly_one_record_after_failure(tmp_path):
    run = pane(tmp_path)
    run_pane(run, make_query([assistant("halfway")], error=RuntimeError("boom")))
    assert sorted(p.name for p in run.status_dir.glob("*.json")) == ["agent-0.json"]
    assert read_record(run.status_dir)["status"] == "error"


def test_cancelled_engine_still_writes_error_record(tmp_path):
    run = pane(tmp_path)

    with pytest.raises(asyncio.CancelledError):
        run_pane(run, make_query([assistant("halfway")], error=asyncio.CancelledError()))

    record = read_record(run.status_dir)
    assert record["status"] == "error"
    assert record["summary"] == "Error: CancelledError"


def test_unwritable_status_dir_is_reported_not_fatal(tmp_path, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    run = pane(tmp_path, status_dir=blocker)

    assert run_pane(run, make_query([assistant("ok"), result()])) == 0
    assert "could not write status file" in capsys.readouterr().err


def test_no_status_dir_skips_reporting(tmp_path):
    run = pane(tmp_path, status_dir=None)
    assert run_pane(run, make_query([result()])) == 0
    assert list(tmp_path.iterdir()) == []


def test_query_receives_task_and_options(tmp_path):
    seen = []
    run = pane(tmp_path, task="refactor the parser")
    run_pane(run, make_query([result()], seen=seen))

    prompt, options = seen[0]
    assert prompt == "refactor the parser"
    assert options.permission_mode == "bypassPermissions"
    assert options.max_turns == 50
    assert options.cwd == str(tmp_path.resolve())


def test_main_requires_task(capsys):
    with pytest.raises(SystemExit) as exc_info:
        agent_runner.main(["--pane-index", "0"])
    assert exc_info.value.code == 1
    assert "--task is required" in capsys.readouterr().err


def test_main_passes_arguments(tmp_path, monkeypatch):
    captured = {}

    def fake_run_pane(run):
        captured["run"] = run
        return 0

    monkeypatch.setattr(agent_runner, "run_pane", fake_run_pane)
    with pytest.raises(SystemExit) as exc_info:
        agent_runner.main([
            "--task=it's a 'quoted' task",
            "--cwd", str(tmp_path),
            "--pane-index", "2",
            "--total-panes", "3",
            "--model", "claude-y",
            "--status-dir", str(tmp_path / "status"),
        ])

    assert exc_info.value.code == 0
    run = captured["run"]
    assert run.task == "it's a 'quoted' task"
    assert run.pane_index == 2
    assert run.total_panes == 3
    assert run.model == "claude-y"
    assert run.status_dir == tmp_path / "status"
    assert run.pane_color == "magenta"
