import queue
from datetime import datetime, timedelta

import pytest

from autodev.progress import (
    Phase,
    Report,
    Status,
    Tracker,
    format_bar,
    render_report,
    status_icon,
)


def test_new_tracker_report_task_info():
    tracker = Tracker("task-xyz", "My important task")
    report = tracker.report()
    assert report.task_id == "task-xyz"
    assert report.task_desc == "My important task"


def test_register_phase():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("parse", "Parse input")
    report = tracker.report()
    assert len(report.phases) == 1
    assert report.phases[0].name == "parse"
    assert report.phases[0].status is Status.PENDING


def test_register_multiple_phases_keeps_order():
    tracker = Tracker("t1", "desc")
    for name in ("a", "b", "c"):
        tracker.register_phase(name, name.upper())
    assert [p.name for p in tracker.report().phases] == ["a", "b", "c"]


def test_start_phase():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("parse", "Parse")
    tracker.start_phase("parse")
    report = tracker.report()
    assert report.phases[0].status is Status.RUNNING
    assert report.phases[0].started_at is not None
    assert report.current_phase == "parse"


def test_complete_phase():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("parse", "Parse")
    tracker.complete_phase("parse", 100)
    report = tracker.report()
    assert report.phases[0].status is Status.COMPLETED
    assert report.phases[0].tokens_used == 100
    assert report.total_tokens == 100


def test_complete_phase_accumulates():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("a", "A")
    tracker.register_phase("b", "B")
    tracker.complete_phase("a", 50)
    tracker.complete_phase("b", 75)
    assert tracker.report().total_tokens == 125


def test_fail_phase():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("parse", "Parse")
    tracker.fail_phase("parse", "syntax error")
    report = tracker.report()
    assert report.phases[0].status is Status.FAILED
    assert report.errors == ["[parse] syntax error"]


def test_retry_phase():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("test", "Test")
    tracker.retry_phase("test", 2)
    phase = tracker.report().phases[0]
    assert phase.status is Status.RETRYING
    assert phase.retries == 2


def test_skip_phase():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("lint", "Lint")
    tracker.skip_phase("lint", "no linter configured")
    report = tracker.report()
    assert report.phases[0].status is Status.SKIPPED
    assert len(report.warnings) == 1
    assert "no linter" in report.warnings[0]


def test_add_error():
    tracker = Tracker("t1", "desc")
    tracker.add_error("network timeout")
    assert tracker.report().errors == ["network timeout"]


def test_add_warning():
    tracker = Tracker("t1", "desc")
    tracker.add_warning("deprecated API")
    assert tracker.report().warnings == ["deprecated API"]


def test_report_snapshots_are_independent():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("a", "A")
    tracker.register_phase("b", "B")
    r1 = tracker.report()
    r1.phases[0].status = Status.FAILED
    r2 = tracker.report()
    assert len(r2.phases) == 2
    assert r2.phases[0].status is Status.PENDING


def test_overall_status_running():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("a", "A")
    tracker.register_phase("b", "B")
    tracker.start_phase("a")
    assert tracker.report().overall_status is Status.RUNNING


def test_overall_status_completed():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("a", "A")
    tracker.register_phase("b", "B")
    tracker.complete_phase("a", 0)
    tracker.complete_phase("b", 0)
    assert tracker.report().overall_status is Status.COMPLETED


def test_overall_status_completed_with_skip():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("a", "A")
    tracker.register_phase("b", "B")
    tracker.complete_phase("a", 0)
    tracker.skip_phase("b", "not needed")
    assert tracker.report().overall_status is Status.COMPLETED


def test_overall_status_failed():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("a", "A")
    tracker.fail_phase("a", "error")
    assert tracker.report().overall_status is Status.FAILED


def test_overall_status_running_despite_errors():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("a", "A")
    tracker.start_phase("a")
    tracker.add_error("transient")
    assert tracker.report().overall_status is Status.RUNNING


def test_overall_status_no_phases_is_running():
    assert Tracker("t1", "desc").report().overall_status is Status.RUNNING


def test_summary():
    tracker = Tracker("t1", "desc")
    for name in ("a", "b", "c"):
        tracker.register_phase(name, name)
    tracker.complete_phase("a", 100)
    tracker.start_phase("b")
    summary = tracker.summary()
    assert "1/3" in summary
    assert "33%" in summary
    assert "Tokens: 100" in summary
    assert summary.startswith("[Running]")


def test_summary_all_done():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("a", "A")
    tracker.register_phase("b", "B")
    tracker.complete_phase("a", 0)
    tracker.complete_phase("b", 0)
    assert "Done" in tracker.summary()


def test_summary_errors():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("a", "A")
    tracker.fail_phase("a", "fatal")
    assert "Errors" in tracker.summary()


def test_summary_zero_phases():
    summary = Tracker("t1", "desc").summary()
    assert "0/0" in summary
    assert "(0%)" in summary
    assert "Time: 0s" in summary


def test_string_output():
    tracker = Tracker("t1", "Test Task")
    tracker.register_phase("parse", "Parse input")
    tracker.start_phase("parse")
    output = str(tracker)
    assert "Test Task" in output
    assert "parse" in output
    assert "[~]" in output


@pytest.mark.parametrize(
    "completed,total,width,expected",
    [
        (0, 10, 10, "----------"),
        (10, 10, 10, "=========="),
        (5, 10, 10, "=====-----"),
        (0, 0, 10, " " * 10),
        (3, 5, 5, "===--"),
        (100, 10, 10, "=========="),
    ],
)
def test_format_bar(completed, total, width, expected):
    assert format_bar(completed, total, width) == expected


def test_format_bar_zero_width_uses_default():
    assert format_bar(5, 10, 0) == "=" * 10 + "-" * 10


@pytest.mark.parametrize(
    "status,expected",
    [
        (Status.COMPLETED, "[+]"),
        (Status.RUNNING, "[~]"),
        (Status.FAILED, "[!]"),
        (Status.RETRYING, "[R]"),
        (Status.SKIPPED, "[-]"),
        (Status.PENDING, "[ ]"),
    ],
)
def test_status_icon(status, expected):
    assert status_icon(status) == expected


def test_on_complete_callback():
    tracker = Tracker("t1", "desc")
    received = []
    tracker.on_complete(received.append)
    tracker.finish()
    assert len(received) == 1
    assert received[0].task_id == "t1"


def test_finish_without_callback_notifies_subscribers():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("a", "A")
    updates = queue.Queue()
    tracker.subscribe(updates)
    tracker.finish()
    report = updates.get_nowait()
    assert report.task_id == "t1"
    assert [p.name for p in report.phases] == ["a"]


def test_subscriber_receives_updates_and_full_queue_is_skipped():
    tracker = Tracker("t1", "desc")
    tracker.register_phase("a", "A")
    updates = queue.Queue(maxsize=1)
    tracker.subscribe(updates)
    tracker.start_phase("a")
    tracker.complete_phase("a", 5)
    assert updates.qsize() == 1
    report = updates.get_nowait()
    assert report.phases[0].status is Status.RUNNING


def test_errors_and_warnings_are_copied():
    tracker = Tracker("t1", "desc")
    tracker.add_error("err1")
    tracker.add_warning("warn1")
    r1 = tracker.report()
    r1.errors[0] = "modified"
    r1.warnings[0] = "modified"
    r2 = tracker.report()
    assert r2.errors == ["err1"]
    assert r2.warnings == ["warn1"]


def test_unknown_phase_operations_are_ignored():
    tracker = Tracker("t1", "desc")
    tracker.start_phase("nonexistent")
    tracker.complete_phase("nonexistent", 10)
    tracker.fail_phase("nonexistent", "error")
    tracker.retry_phase("nonexistent", 1)
    tracker.skip_phase("nonexistent", "reason")
    report = tracker.report()
    assert report.phases == []
    assert report.errors == []
    assert report.warnings == []
    assert report.total_tokens == 0
    assert report.current_phase == ""


def test_render_report_layout():
    start = datetime(2024, 1, 1, 12, 0, 0)
    report = Report(
        task_id="t1",
        task_desc="Task",
        overall_status=Status.FAILED,
        current_phase="build",
        phases=[
            Phase(
                name="build",
                description="Build it",
                status=Status.COMPLETED,
                started_at=start,
                completed_at=start + timedelta(milliseconds=1500),
            ),
            Phase(name="test", description="Test it", status=Status.RETRYING, retries=2),
        ],
        total_tokens=42,
        elapsed_time=timedelta(seconds=3),
        errors=["err1"],
        warnings=["warn1"],
    )
    text = render_report(report)
    assert text == (
        "Task: Task\n"
        "Status: failed | Phase: build\n"
        "Elapsed: 3s | Tokens: 42\n"
        "\n"
        "  [+] build        Build it (1.5s)\n"
        "  [R] test         Test it\n"
        "              Retries: 2\n"
        "\n"
        "Errors:\n"
        "  - err1\n"
        "\n"
        "Warnings:\n"
        "  - warn1\n"
    )


def test_render_report_sub_second_and_minutes():
    start = datetime(2024, 1, 1)
    report = Report(
        task_desc="x",
        phases=[
            Phase("a", "A", Status.COMPLETED, start, start + timedelta(milliseconds=250)),
        ],
        elapsed_time=timedelta(seconds=65),
    )
    text = render_report(report)
    assert "(250ms)" in text
    assert "Elapsed: 1m5s" in text