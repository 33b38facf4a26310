"""Rule-based decomposition of a task description into ordered subtasks."""

from __future__ import annotations

import itertools
import re
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Iterable


class TaskType(str, Enum):
    """The nature of a subtask."""

    IMPLEMENTATION = "implementation"
    FEATURE = "feature"
    FIX = "fix"
    REFACTOR = "refactor"
    TEST = "test"
    CONFIG = "config"
    DOC = "documentation"


class TaskStatus(str, Enum):
    """Execution state of a subtask."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class TaskValidationError(ValueError):
    """Raised when a decomposed task is malformed."""


@dataclass
class SubTask:
    """A single step of a decomposed task."""

    id: str
    title: str = ""
    description: str = ""
    type: TaskType = TaskType.IMPLEMENTATION
    priority: int = 0
    files: list[str] = field(default_factory=list)
    depends_on: list[str] = field(default_factory=list)
    agent: str = ""
    status: TaskStatus = TaskStatus.PENDING


@dataclass
class DecomposedTask:
    """A user task broken into subtasks."""

    id: str = ""
    original_task: str = ""
    title: str = ""
    description: str = ""
    subtasks: list[SubTask] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)


# (id prefix, title, description template, type, priority, agent)
_TEMPLATES: dict[TaskType, list[tuple[str, str, str, TaskType, int, str]]] = {
    TaskType.FEATURE: [
        ("feat", "Analyze requirements",
         "Understand the feature requirements and identify dependencies",
         TaskType.FEATURE, 1, "agent-parser"),
        ("feat", "Implement feature",
         "Build and implement the requested feature: {task}",
         TaskType.FEATURE, 2, "agent-developer"),
        ("test", "Add tests for feature",
         "Write unit tests to validate the new feature works correctly",
         TaskType.TEST, 3, "agent-tester"),
    ],
    TaskType.FIX: [
        ("fix", "Identify root cause",
         "Analyze the reported issue and find the root cause",
         TaskType.FIX, 1, "agent-parser"),
        ("fix", "Fix the issue", "Apply fix for: {task}",
         TaskType.FIX, 2, "agent-developer"),
        ("test", "Verify fix with tests",
         "Create test cases to prevent regression",
         TaskType.TEST, 3, "agent-tester"),
    ],
    TaskType.REFACTOR: [
        ("refactor", "Analyze code structure",
         "Review current implementation and identify refactoring opportunities",
         TaskType.REFACTOR, 1, "agent-checker"),
        ("refactor", "Apply refactoring", "Refactor code: {task}",
         TaskType.REFACTOR, 2, "agent-developer"),
        ("test", "Run validation tests",
         "Ensure refactored code passes all existing tests",
         TaskType.TEST, 3, "agent-tester"),
    ],
    TaskType.TEST: [
        ("test", "Create test cases", "Write tests for: {task}",
         TaskType.TEST, 1, "agent-tester"),
        ("test", "Run test suite", "Execute tests and verify coverage",
         TaskType.TEST, 2, "agent-tester"),
    ],
    TaskType.CONFIG: [
        ("config", "Configure settings", "Setup configuration: {task}",
         TaskType.CONFIG, 1, "agent-developer"),
    ],
}

_DEFAULT_TEMPLATE = [
    ("impl", "Implement task", "{task}", TaskType.IMPLEMENTATION, 1, "agent-developer"),
]

_KEYWORD_RULES: list[tuple[tuple[str, ...], TaskType]] = [
    (("add", "new", "create", "implement"), TaskType.FEATURE),
    (("fix", "bug", "error", "issue", "broken", "not working"), TaskType.FIX),
    (("refactor", "restructure", "optimize", "improve", "clean"), TaskType.REFACTOR),
    (("test", "unit test", "integration test", "e2e"), TaskType.TEST),
    (("config", "setup", "initialize", "configure"), TaskType.CONFIG),
]

_FILE_EXTENSIONS = ("go", "py", "js", "ts", "yaml", "yml", "json", "md", "toml", "cfg", "ini")
_FILE_PATTERNS = [re.compile(r"[a-zA-Z0-9_\-/.]+\." + ext) for ext in _FILE_EXTENSIONS]

_subtask_counter = itertools.count(1)
_counter_lock = threading.Lock()
_task_id_lock = threading.Lock()
_last_task_stamp = 0


def decompose(task_desc: str) -> DecomposedTask:
    """Break a task description into structured subtasks."""
    return DecomposedTask(
        id=generate_task_id(),
        original_task=task_desc,
        title=extract_title(task_desc),
        description=task_desc,
        subtasks=_generate_subtasks(task_desc),
    )


def _generate_subtasks(task_desc: str) -> list[SubTask]:
    lowered = task_desc.lower()
    subtasks = [
        subtask
        for keywords, task_type in _KEYWORD_RULES
        if contains_any(lowered, keywords)
        for subtask in _subtasks_for(task_desc, task_type)
    ]
    if not subtasks:
        subtasks.append(
            SubTask(
                id="task-001",
                title="Implement requested functionality",
                description=task_desc,
                type=TaskType.IMPLEMENTATION,
                priority=1,
                agent="agent-developer",
            )
        )
    _chain_dependencies(subtasks)
    return subtasks


def _subtasks_for(task_desc: str, task_type: TaskType) -> list[SubTask]:
    return [
        SubTask(
            id=generate_subtask_id(prefix),
            title=title,
            description=template.format(task=task_desc),
            type=kind,
            priority=priority,
            agent=agent,
        )
        for prefix, title, template, kind, priority, agent in _TEMPLATES.get(
            task_type, _DEFAULT_TEMPLATE
        )
    ]


def _chain_dependencies(subtasks: list[SubTask]) -> None:
    for previous, current in zip(subtasks, subtasks[1:]):
        current.depends_on.append(previous.id)


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    """Return True if any keyword occurs in text."""
    return any(keyword in text for keyword in keywords)


def extract_title(task_desc: str) -> str:
    """Build a short title from the description, capitalising its first word."""
    first, *rest = task_desc.split(" ", 3)
    if first:
        first = first[0].upper() + first[1:]
    return first + " " + " ".join(rest)


def generate_task_id() -> str:
    """Return a unique, time-based task identifier."""
    global _last_task_stamp
    with _task_id_lock:
        stamp = max(time.time_ns(), _last_task_stamp + 1)
        _last_task_stamp = stamp
    return f"task-{stamp}"


def generate_subtask_id(prefix: str) -> str:
    """Return a process-wide unique subtask identifier with the given prefix."""
    with _counter_lock:
        number = next(_subtask_counter)
    return f"{prefix}-{number:03d}"


def validate_task(task: DecomposedTask | None) -> None:
    """Raise TaskValidationError if the task is missing, untitled, empty or has dangling dependencies."""
    if task is None:
        raise TaskValidationError("nil task")
    if not task.title:
        raise TaskValidationError("task title is required")
    if not task.subtasks:
        raise TaskValidationError("task must have at least one subtask")

    known = {subtask.id for subtask in task.subtasks}
    for subtask in task.subtasks:
        for dependency in subtask.depends_on:
            if dependency not in known:
                raise TaskValidationError(
                    f"subtask {subtask.id} depends on missing subtask {dependency}"
                )


def merge_subtasks(*args: DecomposedTask) -> DecomposedTask | None:
    """Merge several decomposed tasks into one, chaining all subtasks in order."""
    if not args:
        return None

    first = args[0]
    merged = DecomposedTask(
        id=generate_task_id(),
        title=first.title,
        description=first.description,
    )
    for task in args:
        merged.subtasks.extend(
            replace(subtask, files=list(subtask.files), depends_on=list(subtask.depends_on))
            for subtask in task.subtasks
        )
        if task.original_task:
            merged.original_task += "; " + task.original_task

    _chain_dependencies(merged.subtasks)
    return merged


def summarize_task_plan(task: DecomposedTask) -> str:
    """Return a human-readable summary of the task plan."""
    lines = [f"Task: {task.title}", f"Subtasks ({len(task.subtasks)}):"]
    for subtask in task.subtasks:
        deps = f" (depends on: {', '.join(subtask.depends_on)})" if subtask.depends_on else ""
        kind = subtask.type.value if isinstance(subtask.type, TaskType) else str(subtask.type)
        lines.append(f"  [{subtask.id}] {kind.upper()} - {subtask.title}{deps}")
    return "\n".join(lines) + "\n"


def extract_files_from_task(task_desc: str) -> list[str]:
    """Find file paths with common extensions mentioned in the description."""
    found: dict[str, None] = {}
    for pattern in _FILE_PATTERNS:
        for match in pattern.findall(task_desc):
            found.setdefault(match, None)
    return list(found)