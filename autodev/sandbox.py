"""Running commands and touching files inside a policy-restricted working directory."""

from __future__ import annotations

import glob
import os
import shutil
import subprocess
import sys
import tempfile
import threading
import time
from dataclasses import dataclass, field
from typing import Optional


class SandboxError(Exception):
    """Raised when an operation is refused by the sandbox or the sandbox cannot be set up."""


@dataclass
class Policy:
    """What the sandbox allows."""

    allowed_commands: set[str] = field(default_factory=set)
    allowed_dirs: list[str] = field(default_factory=list)
    max_exec_time: float = 0.0
    max_memory_mb: int = 0
    max_output_bytes: int = 0
    network_access: bool = False
    file_write_access: bool = False
    dangerous_commands: list[str] = field(default_factory=list)


def default_policy() -> Policy:
    """Return a restrictive but usable policy."""
    return Policy(
        allowed_commands={
            "go", "npm", "node", "python", "pip", "make", "cat", "ls", "find",
            "grep", "sed", "awk", "diff", "head", "tail", "wc", "sort", "uniq", "echo",
        },
        allowed_dirs=["/workspace"],
        max_exec_time=30.0,
        max_memory_mb=512,
        max_output_bytes=10 * 1024 * 1024,
        network_access=False,
        file_write_access=True,
        dangerous_commands=[
            "rm -rf", "shutdown", "reboot", "mkfs", "fdisk",
            "dd", "chmod 777", "chown root", "sudo", "su",
            "iptables", "kill -9", "curl", "wget",
        ],
    )


@dataclass
class Result:
    """The outcome of a command run in the sandbox."""

    command: str
    args: list[str] = field(default_factory=list)
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    error: str = ""
    duration: float = 0.0
    timed_out: bool = False

    def success(self) -> bool:
        """Return True if the command exited with status 0 and without a launch error."""
        return self.exit_code == 0 and not self.error


def _truncate(data: Optional[bytes], max_bytes: int) -> str:
    data = data or b""
    if len(data) <= max_bytes:
        return data.decode("utf-8", errors="replace")
    return data[:max_bytes].decode("utf-8", errors="ignore") + "... [truncated]"


class Executor:
    """Runs commands within a sandboxed working directory."""

    def __init__(self, policy: Optional[Policy] = None, work_dir: str = "") -> None:
        self.policy = policy if policy is not None else default_policy()
        if not work_dir:
            work_dir = os.path.join(tempfile.gettempdir(), "autodev-sandbox")
        self._cwd = os.path.abspath(work_dir)
        try:
            os.makedirs(self._cwd, mode=0o755, exist_ok=True)
        except OSError as exc:
            raise SandboxError(f"failed to create sandbox directory: {exc}") from exc
        self._env: dict[str, str] = dict(os.environ)
        self._lock = threading.Lock()

    @property
    def cwd(self) -> str:
        """The sandbox working directory."""
        return self._cwd

    def run(self, cmd: str, *args: str) -> Result:
        """Run a command in the sandbox; refused commands raise SandboxError."""
        with self._lock:
            self._validate(cmd, args)
            result = Result(command=cmd, args=list(args))

            executable = shutil.which(cmd, path=self._env.get("PATH"))
            if executable is None:
                result.error = f'exec: "{cmd}": executable file not found in $PATH'
                return result

            argv = self._with_resource_limit([executable, *args])
            timeout = self.policy.max_exec_time if self.policy.max_exec_time > 0 else None

            start = time.monotonic()
            try:
                completed = subprocess.run(
                    argv,
                    cwd=self._cwd,
                    env=self._env,
                    capture_output=True,
                    timeout=timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired as exc:
                result.duration = time.monotonic() - start
                result.timed_out = True
                result.exit_code = -1
                result.stdout = _truncate(exc.stdout, self.policy.max_output_bytes)
                result.stderr = _truncate(exc.stderr, self.policy.max_output_bytes)
                return result
            except OSError as exc:
                result.duration = time.monotonic() - start
                result.error = str(exc)
                return result

            result.duration = time.monotonic() - start
            result.exit_code = completed.returncode
            result.stdout = _truncate(completed.stdout, self.policy.max_output_bytes)
            result.stderr = _truncate(completed.stderr, self.policy.max_output_bytes)
            return result

    def run_shell(self, command: str) -> Result:
        """Run a shell command string through sh."""
        return self.run("sh", "-c", command)

    def write_file(self, path: str, content: str) -> None:
        """Write text to a file inside the sandbox, creating parent directories."""
        if not self._is_path_allowed(path):
            raise SandboxError(f'path "{path}" is outside allowed directories')
        target = self._resolve(path)
        os.makedirs(os.path.dirname(target), mode=0o755, exist_ok=True)
        with open(target, "w", encoding="utf-8") as handle:
            handle.write(content)

    def read_file(self, path: str) -> str:
        """Read a text file inside the sandbox."""
        if not self._is_path_allowed(path):
            raise SandboxError(f'path "{path}" is outside allowed directories')
        with open(self._resolve(path), encoding="utf-8") as handle:
            return handle.read()

    def list_files(self, pattern: str) -> list[str]:
        """Return sandbox-relative paths matching a glob pattern."""
        if ".." in pattern:
            raise SandboxError("pattern contains path traversal")
        matches = sorted(glob.glob(self._resolve(pattern)))
        return [os.path.relpath(match, self._cwd) for match in matches]

    def set_env(self, key: str, value: str) -> None:
        """Set an environment variable for commands run in the sandbox."""
        with self._lock:
            self._env[key] = value

    def cleanup(self) -> None:
        """Remove the sandbox directory."""
        if os.path.lexists(self._cwd):
            shutil.rmtree(self._cwd)

    def _resolve(self, path: str) -> str:
        return os.path.normpath(self._cwd + os.sep + path)

    def _validate(self, cmd: str, args: tuple[str, ...]) -> None:
        full_command = " ".join([cmd, *args]).lower()
        for dangerous in self.policy.dangerous_commands:
            if dangerous.lower() in full_command:
                raise SandboxError(f'command "{dangerous}" is blocked by sandbox policy')

        if cmd not in self.policy.allowed_commands:
            raise SandboxError(f'command "{cmd}" is not allowed by sandbox policy')

        if not self.policy.network_access and any(
            arg.startswith(("http://", "https://")) for arg in args
        ):
            raise SandboxError("network access is disabled by sandbox policy")

    def _is_path_allowed(self, path: str) -> bool:
        if ".." in path:
            return False
        if any(path.startswith(allowed) for allowed in self.policy.allowed_dirs):
            return True
        resolved = self._resolve(path)
        return any(
            resolved.startswith(os.path.normpath(allowed))
            for allowed in self.policy.allowed_dirs
        )

    def _with_resource_limit(self, argv: list[str]) -> list[str]:
        limit_mb = self.policy.max_memory_mb
        if limit_mb <= 0 or not sys.platform.startswith("linux"):
            return argv
        prlimit = shutil.which("prlimit")
        if prlimit is None:
            return argv
        return [prlimit, f"--as={limit_mb * 1024 * 1024}", "--", *argv]