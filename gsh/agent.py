"""
SSH agent session controller: reuse a live agent or start a new one, and
return the shell statements that point the calling shell at it.
"""
from typing import List, Optional

import psutil

from .logging_utils import StderrOutput
from .process import (
    AGENT_PID_ENV, AUTH_SOCKET_ENV, ADD_IDENTITY_CONTENTS, CREATE_AGENT_CONTENTS,
    KILL_CONTENTS, LIST_IDENTITIES_CONTENTS,
    LineCountError, ProcessProbe, ShellCommandError, ShellExecutor, ShellRequest,
    export_statement, ps_probe
)
from .session import SessionState

KILL_COMMANDS = ("kill", "k")


class AgentCreationError(RuntimeError):
    """Starting a new ssh-agent failed. State is left untouched."""

    def __init__(self, cause: Exception):
        super().__init__(f"failed to create new ssh agent: {cause}")
        self.cause = cause


class CreationFailure(AgentCreationError):
    """The bootstrap snippet did not run successfully."""


class MalformedCreationOutput(AgentCreationError):
    """The bootstrap snippet ran but did not print exactly a pid and a socket."""


def treat_probe_failure_as_absent(probe: ProcessProbe, pid: str, output=None) -> bool:
    """
    Run a liveness probe, mapping every failure to "not alive".

    A missing process and a broken probe (ps erroring, unparsable pid,
    psutil refusing access) look the same from here; both mean rebuild.
    """
    try:
        return bool(probe(pid))
    except (ShellCommandError, LineCountError, ValueError, OSError, psutil.Error) as e:
        if output is not None:
            output.debug(f"Agent {pid} treated as absent: {e}")
        return False


class AgentSession:
    """
    Decides what to do about the ssh-agent for one shell session.

    Args:
        state: Session state loaded by the host
        executor: Runs shell snippets
        output: Message sink for user-facing output
        probe: Process existence check, defaults to `ps -p`
        check_identities: On reuse, add an identity when the agent has none
    """

    def __init__(
        self,
        state: SessionState,
        executor: ShellExecutor,
        output=None,
        probe: Optional[ProcessProbe] = None,
        check_identities: bool = True
    ):
        self.state = state
        self.executor = executor
        self.output = output or StderrOutput()
        self.probe = probe or ps_probe(executor)
        self.check_identities = check_identities

    def run(self, command: Optional[str] = None) -> List[str]:
        """Dispatch a subcommand ("kill"/"k", or None for the default)."""
        if command in KILL_COMMANDS:
            return self.kill()
        if command:
            raise ValueError(f"unknown command: {command}")
        return self.ensure()

    def ensure(self) -> List[str]:
        """
        Point the shell at a working agent.

        Returns:
            Shell statements, exports first

        Raises:
            AgentCreationError: If a new agent was needed and could not be started
        """
        if self.is_alive():
            self.output.debug(f"Reusing ssh-agent {self.state.agent_pid}")
            statements = self._exports()
            if self.check_identities and not self.has_identities():
                statements.append(ADD_IDENTITY_CONTENTS)
            return statements

        agent_pid, auth_socket = self.create()
        self.state.update(agent_pid, auth_socket)
        self.output.info(f"Started ssh-agent (PID: {agent_pid}, Socket: {auth_socket})")
        return self._exports() + [ADD_IDENTITY_CONTENTS]

    def kill(self) -> List[str]:
        """Forget the session and kill every ssh-agent by name."""
        self.state.clear()
        return [KILL_CONTENTS]

    def is_alive(self) -> bool:
        if not self.state.is_complete():
            return False
        return treat_probe_failure_as_absent(self.probe, self.state.agent_pid.strip(), self.output)

    def has_identities(self) -> bool:
        """True if `ssh-add -l` succeeds against the session's agent."""
        request = ShellRequest(
            [LIST_IDENTITIES_CONTENTS],
            env={AUTH_SOCKET_ENV: self.state.auth_socket, AGENT_PID_ENV: self.state.agent_pid}
        )
        try:
            self.executor.run(request)
        except ShellCommandError as e:
            self.output.debug(f"No identities loaded: {e}")
            return False
        return True

    def create(self):
        """
        Start a new agent.

        Returns:
            Tuple of (agent_pid, auth_socket)
        """
        request = ShellRequest([CREATE_AGENT_CONTENTS], line_count=2)
        try:
            result = self.executor.run(request)
        except ShellCommandError as e:
            raise CreationFailure(e)
        except LineCountError as e:
            raise MalformedCreationOutput(e)
        agent_pid, auth_socket = (line.strip() for line in result.lines)
        if not agent_pid or not auth_socket:
            raise MalformedCreationOutput(
                ValueError(f"validation failed: empty value in output {result.lines!r}")
            )
        return agent_pid, auth_socket

    def _exports(self) -> List[str]:
        return [
            export_statement(AGENT_PID_ENV, self.state.agent_pid),
            export_statement(AUTH_SOCKET_ENV, self.state.auth_socket),
        ]
