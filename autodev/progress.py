"""Tracking and reporting of pipeline phase progress."""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional


class Status(str, Enum):
    """Execution state of a phase or of the whole pipeline."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    RETRYING = "retrying"
    SKIPPED = "skipped"


@dataclass
class Phase:
    """A distinct stage in the pipeline execution."""

    name: str
    description: str = ""
    status: Status = Status.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    tokens_used: int = 0
    retries: int = 0


@dataclass
class Report:
    """A snapshot of the pipeline execution status."""

    task_id: str = ""
    task_desc: str = ""
    overall_status: Status = Status.RUNNING
    current_phase: str = ""
    phases: list[Phase] = field(default_factory=list)
    total_tokens: int = 0
    elapsed_time: timedelta = field(default_factory=timedelta)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)


class Tracker:
    """Monitors and records pipeline execution progress."""

    def __init__(self, task_id: str = "", task_desc: str = "") -> None:
        self.task_id = task_id
        self.task_desc = task_desc
        self._start = time.monotonic()
        self._lock = threading.RLock()
        self._phases: dict[str, Phase] = {}
        self._current_phase = ""
        self._total_tokens = 0
        self._errors: list[str] = []
        self._warnings: list[str] = []
        self._subscribers: list[queue.Queue] = []
        self._on_complete: Optional[Callable[[Report], None]] = None

    def register_phase(self, name: str, description: str) -> None:
        """Add a phase to track, in registration order."""
        with self._lock:
            self._phases.pop(name, None)
            self._phases[name] = Phase(name=name, description=description)

    def start_phase(self, name: str) -> None:
        """Mark a phase as running; unknown names are ignored."""
        with self._lock:
            phase = self._phases.get(name)
            if phase is None:
                return
            phase.status = Status.RUNNING
            phase.started_at = datetime.now()
            self._current_phase = name
            self._notify()

    def complete_phase(self, name: str, tokens_used: int) -> None:
        """Mark a phase as completed and add its token usage."""
        with self._lock:
            phase = self._phases.get(name)
            if phase is None:
                return
            phase.status = Status.COMPLETED
            phase.completed_at = datetime.now()
            phase.tokens_used = tokens_used
            self._total_tokens += tokens_used
            self._notify()

    def fail_phase(self, name: str, message: str) -> None:
        """Mark a phase as failed and record the error."""
        with self._lock:
            phase = self._phases.get(name)
            if phase is None:
                return
            phase.status = Status.FAILED
            phase.completed_at = datetime.now()
            self._errors.append(f"[{name}] {message}")
            self._notify()

    def retry_phase(self, name: str, attempt: int) -> None:
        """Mark a phase as retrying with the given attempt number."""
        with self._lock:
            phase = self._phases.get(name)
            if phase is None:
                return
            phase.status = Status.RETRYING
            phase.retries = attempt
            phase.started_at = datetime.now()
            self._notify()

    def skip_phase(self, name: str, reason: str) -> None:
        """Mark a phase as skipped and record a warning."""
        with self._lock:
            phase = self._phases.get(name)
            if phase is None:
                return
            phase.status = Status.SKIPPED
            phase.completed_at = datetime.now()
            self._warnings.append(f"[{name}] Skipped: {reason}")
            self._notify()

    def add_error(self, message: str) -> None:
        """Record an error without failing a phase."""
        with self._lock:
            self._errors.append(message)
            self._notify()

    def add_warning(self, message: str) -> None:
        """Record a warning."""
        with self._lock:
            self._warnings.append(message)
            self._notify()

    def report(self) -> Report:
        """Return an independent snapshot of the current progress."""
        with self._lock:
            return self._build_report()

    def subscribe(self, queue: queue.Queue) -> None:
        """Deliver a report to the queue on every update; full queues are skipped."""
        with self._lock:
            self._subscribers.append(queue)

    def __str__(self) -> str:
        return render_report(self.report())

    def summary(self) -> str:
        """Return a concise one-line summary."""
        report = self.report()
        completed = sum(1 for p in report.phases if p.status is Status.COMPLETED)
        failed = sum(1 for p in report.phases if p.status is Status.FAILED)
        total = len(report.phases)
        percent = completed * 100 // total if total else 0

        if failed:
            status = "Errors"
        elif total and completed == total:
            status = "Done"
        else:
            status = "Running"

        elapsed = _format_duration(report.elapsed_time, 1000)
        return (
            f"[{status}] {completed}/{total} phases ({percent}%) - "
            f"Tokens: {report.total_tokens} - Time: {elapsed}"
        )

    def on_complete(self, callback: Callable[[Report], None]) -> None:
        """Set a callback invoked by finish()."""
        with self._lock:
            self._on_complete = callback

    def finish(self) -> None:
        """Mark the tracker as complete, run the callback and notify subscribers."""
        report = self.report()
        with self._lock:
            callback = self._on_complete
        if callback is not None:
            callback(report)
        with self._lock:
            self._notify()

    def _build_report(self) -> Report:
        phases = [replace(phase) for phase in self._phases.values()]
        overall = Status.RUNNING
        if self._errors and self._any_running():
            overall = Status.RUNNING
        elif self._errors:
            overall = Status.FAILED
        elif self._all_completed():
            overall = Status.COMPLETED
        return Report(
            task_id=self.task_id,
            task_desc=self.task_desc,
            overall_status=overall,
            current_phase=self._current_phase,
            phases=phases,
            total_tokens=self._total_tokens,
            elapsed_time=timedelta(seconds=time.monotonic() - self._start),
            errors=list(self._errors),
            warnings=list(self._warnings),
            timestamp=datetime.now(),
        )

    def _notify(self) -> None:
        if not self._subscribers:
            return
        report = self._build_report()
        for subscriber in self._subscribers:
            try:
                subscriber.put_nowait(report)
            except queue.Full:
                pass

    def _any_running(self) -> bool:
        return any(
            p.status in (Status.RUNNING, Status.RETRYING) for p in self._phases.values()
        )

    def _all_completed(self) -> bool:
        return bool(self._phases) and all(
            p.status in (Status.COMPLETED, Status.SKIPPED) for p in self._phases.values()
        )


def _format_duration(duration: timedelta, resolution_ms: int) -> str:
    """Format a duration rounded to the given resolution, in h/m/s notation."""
    millis = max(0.0, duration.total_seconds() * 1000)
    total_ms = int(millis / resolution_ms + 0.5) * resolution_ms
    if total_ms == 0:
        return "0s"
    if total_ms < 1000:
        return f"{total_ms}ms"
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    seconds, ms = divmod(rest, 1000)
    sec_text = str(seconds) + (f".{ms:03d}".rstrip("0") if ms else "")
    if hours:
        return f"{hours}h{minutes}m{sec_text}s"
    if minutes:
        return f"{minutes}m{sec_text}s"
    return f"{sec_text}s"


def status_icon(status: Status) -> str:
    """Return the bracketed marker for a status."""
    return {
        Status.COMPLETED: "[+]",
        Status.RUNNING: "[~]",
        Status.FAILED: "[!]",
        Status.RETRYING: "[R]",
        Status.SKIPPED: "[-]",
    }.get(status, "[ ]")


def render_report(report: Report) -> str:
    """Return a multi-line text representation of a report."""
    status = report.overall_status.value if isinstance(report.overall_status, Status) else report.overall_status
    lines = [
        f"Task: {report.task_desc}",
        f"Status: {status} | Phase: {report.current_phase}",
        f"Elapsed: {_format_duration(report.elapsed_time, 1000)} | Tokens: {report.total_tokens}",
        "",
    ]
    for phase in report.phases:
        duration = ""
        if phase.started_at is not None and phase.completed_at is not None:
            duration = f" ({_format_duration(phase.completed_at - phase.started_at, 1)})"
        lines.append(f"  {status_icon(phase.status)} {phase.name:<12} {phase.description}{duration}")
        if phase.retries > 0:
            lines.append(f"              Retries: {phase.retries}")

    if report.errors:
        lines += ["", "Errors:"] + [f"  - {e}" for e in report.errors]
    if report.warnings:
        lines += ["", "Warnings:"] + [f"  - {w}" for w in report.warnings]

    return "\n".join(lines) + "\n"


def format_bar(completed: int, total: int, width: int) -> str:
    """Return an ASCII progress bar of the given width (20 if not positive)."""
    if width <= 0:
        width = 20
    if total == 0:
        return " " * width
    filled = min(completed * width // total, width)
    return "=" * filled + "-" * (width - filled)