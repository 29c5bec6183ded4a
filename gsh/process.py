"""
Shell snippet execution, process probes and the statements gsh emits.
"""
import os
import subprocess
import sys
from typing import Callable, Dict, List, Optional

import psutil

from .logging_utils import log_debug

AGENT_PROCESS_NAME = "ssh-agent"
AGENT_PID_ENV = "SSH_AGENT_PID"
AUTH_SOCKET_ENV = "SSH_AUTH_SOCK"

CREATE_AGENT_CONTENTS = (
    'eval "$(ssh-agent -s)" > /dev/null && echo "$SSH_AGENT_PID" && echo "$SSH_AUTH_SOCK"'
)
LIST_IDENTITIES_CONTENTS = "ssh-add -l"
ADD_IDENTITY_CONTENTS = "ssh-add"
KILL_CONTENTS = (
    f"ps -e | grep {AGENT_PROCESS_NAME} | grep -v grep | awk '{{print $1}}' "
    "| xargs kill > /dev/null 2>&1"
)

SHELL_PREAMBLE = ["set -e", "set -o pipefail"]

ProcessProbe = Callable[[str], bool]


class ShellCommandError(RuntimeError):
    """A shell snippet could not be run or exited unsuccessfully."""

    def __init__(self, message: str, stderr: str = "", returncode: Optional[int] = None):
        super().__init__(f"failed to execute bash command: {message}")
        self.stderr = stderr
        self.returncode = returncode


class LineCountError(RuntimeError):
    """A shell snippet ran but printed the wrong number of lines."""

    def __init__(self, expected: int, lines: List[str]):
        super().__init__(
            f"validation failed: expected exactly {expected} output lines, got {len(lines)}"
        )
        self.expected = expected
        self.lines = lines


class ShellRequest:
    """
    A snippet to hand to the shell executor.

    Args:
        contents: Snippet lines, joined with newlines
        line_count: Exact number of stdout lines expected, or None for any
        forward_stdout: Print the snippet's stdout to stderr for the user
        env: Extra environment variables for the snippet
    """

    def __init__(
        self,
        contents: List[str],
        line_count: Optional[int] = None,
        forward_stdout: bool = False,
        env: Optional[Dict[str, str]] = None
    ):
        self.contents = list(contents)
        self.line_count = line_count
        self.forward_stdout = forward_stdout
        self.env = dict(env or {})

    def script(self) -> List[str]:
        return SHELL_PREAMBLE + self.contents

    def validate(self, lines: List[str]) -> List[str]:
        """Check lines against line_count, raising LineCountError on mismatch."""
        if self.line_count is not None and len(lines) != self.line_count:
            raise LineCountError(self.line_count, lines)
        return lines

    def __repr__(self) -> str:
        return f"ShellRequest({self.contents!r}, line_count={self.line_count})"


class ShellResult:
    def __init__(self, lines: List[str], stderr: str = "", returncode: int = 0):
        self.lines = lines
        self.stderr = stderr
        self.returncode = returncode

    def __repr__(self) -> str:
        return f"ShellResult(lines={self.lines!r}, returncode={self.returncode})"


def split_output(stdout: str) -> List[str]:
    """Split stdout into lines, dropping trailing blank lines."""
    lines = stdout.splitlines()
    while lines and not lines[-1].strip():
        lines.pop()
    return lines


class ShellExecutor:
    """Runs ShellRequests through bash."""

    def __init__(self, shell: str = "bash", timeout: Optional[float] = None):
        self.shell = shell
        self.timeout = timeout

    def run(self, request: ShellRequest) -> ShellResult:
        """
        Execute a request and return its parsed output.

        Raises:
            ShellCommandError: If the shell could not be started, timed out or
                exited non-zero
            LineCountError: If the output does not match request.line_count
        """
        script = "\n".join(request.script())
        env = {**os.environ, **request.env}
        log_debug(f"Running: {request.contents}")

        try:
            result = subprocess.run(
                [self.shell, "-c", script],
                env=env,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ShellCommandError(str(e))

        if result.stderr:
            log_debug(f"stderr: {result.stderr.rstrip()}")
        if result.returncode != 0:
            raise ShellCommandError(
                f"exit status {result.returncode}",
                stderr=result.stderr,
                returncode=result.returncode
            )

        lines = split_output(result.stdout)
        if request.forward_stdout:
            for line in lines:
                print(line, file=sys.stderr)
        request.validate(lines)
        return ShellResult(lines, result.stderr, result.returncode)


def ps_probe(executor: ShellExecutor) -> ProcessProbe:
    """Probe that asks `ps -p <pid>` whether the process exists."""

    def probe(pid: str) -> bool:
        executor.run(ShellRequest([f"ps -p {double_quote(pid)}"]))
        return True

    return probe


def psutil_probe(pid: str) -> bool:
    """Probe the process table in-process via psutil."""
    return psutil.pid_exists(int(pid.strip()))


def make_probe(name: str, executor: ShellExecutor) -> ProcessProbe:
    if name == "psutil":
        return psutil_probe
    return ps_probe(executor)


def double_quote(value: str) -> str:
    """Wrap value in double quotes, escaping what the shell would expand."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("$", "\\$")
        .replace("`", "\\`")
    )
    return f'"{escaped}"'


def export_statement(name: str, value: str) -> str:
    """Render `export NAME="value"`."""
    return f"export {name}={double_quote(value)}"
