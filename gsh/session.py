"""
Session state: the agent pid and auth socket remembered between invocations.
"""
import os
from pathlib import Path
from typing import Dict

from .logging_utils import log_debug

AGENT_PID_KEY = "AGENT_PID"
AUTH_SOCKET_KEY = "AUTH_SOCKET"


class SessionState:
    """
    The managed agent's pid and socket path.

    `changed` records whether this invocation mutated either field, so the
    host knows whether to persist. It is never written to disk.
    """

    def __init__(self, agent_pid: str = "", auth_socket: str = ""):
        self.agent_pid = agent_pid
        self.auth_socket = auth_socket
        self.changed = False

    def is_complete(self) -> bool:
        """True when both fields are set (ignoring whitespace)."""
        return bool(self.agent_pid.strip()) and bool(self.auth_socket.strip())

    def update(self, agent_pid: str, auth_socket: str) -> None:
        self.agent_pid = agent_pid
        self.auth_socket = auth_socket
        self.changed = True

    def clear(self) -> None:
        self.update("", "")

    def to_dict(self) -> Dict[str, str]:
        return {AGENT_PID_KEY: self.agent_pid, AUTH_SOCKET_KEY: self.auth_socket}

    def __eq__(self, other) -> bool:
        if not isinstance(other, SessionState):
            return NotImplemented
        return (self.agent_pid, self.auth_socket) == (other.agent_pid, other.auth_socket)

    def __repr__(self) -> str:
        return (
            f"SessionState(agent_pid={self.agent_pid!r}, "
            f"auth_socket={self.auth_socket!r}, changed={self.changed})"
        )


class SessionStore:
    """Loads and saves SessionState as KEY=value lines in a small file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> SessionState:
        """
        Read the state file.

        Missing or unreadable files give an empty state; unknown keys and
        lines without '=' are skipped.
        """
        values: Dict[str, str] = {}
        try:
            with open(self.path, "r") as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#") or "=" not in line:
                        continue
                    key, value = line.split("=", 1)
                    values[key.strip()] = value.strip()
        except FileNotFoundError:
            log_debug(f"No session file at {self.path}, starting empty")
            return SessionState()
        except OSError as e:
            log_debug(f"Error reading session file {self.path}: {e}")
            return SessionState()

        return SessionState(
            agent_pid=values.get(AGENT_PID_KEY, ""),
            auth_socket=values.get(AUTH_SOCKET_KEY, ""),
        )

    def save(self, state: SessionState) -> None:
        """Write the state file with owner-only permissions."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            for key, value in state.to_dict().items():
                f.write(f"{key}={value}\n")
        os.replace(tmp_path, self.path)
        log_debug(f"Saved {state!r} to {self.path}")
