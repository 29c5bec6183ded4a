"""
CLI interface using argparse (standard library).

Statements for the shell go to stdout, one per line; everything else goes
to stderr. Use `eval "$(gsh --shell-init)"` to get a `gsh` shell function
that evaluates them.
"""
import argparse
import os
import sys
from typing import List, Optional

from . import __version__
from .agent import AgentSession, AgentCreationError, KILL_COMMANDS
from .config import load_settings, Settings
from .logging_utils import log_debug, StderrOutput
from .process import ShellExecutor, double_quote, make_probe
from .session import SessionStore


def shell_init(executable: Optional[str] = None) -> str:
    """Shell function that runs gsh and evaluates what it prints."""
    python = double_quote(executable or sys.executable)
    return (
        "gsh() {\n"
        f"    eval \"$({python} -m gsh \"$@\")\"\n"
        "}"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gsh",
        description="Reuse or start the ssh-agent for this shell session",
        allow_abbrev=False
    )
    parser.add_argument(
        "command", nargs="?", choices=KILL_COMMANDS,
        help="kill (or k): stop all ssh-agents and forget the session"
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug mode (verbose output)")
    parser.add_argument("-v", "--version", action="store_true", help="Show version information and exit")
    parser.add_argument(
        "--shell-init", action="store_true",
        help="Print a shell function that evaluates gsh output"
    )
    return parser


def run(command: Optional[str], settings: Settings, output=None) -> List[str]:
    """
    Load the session, run the controller and persist the state if it changed.

    Raises:
        AgentCreationError: If a new agent could not be started
    """
    store = SessionStore(settings.state_file)
    state = store.load()
    executor = ShellExecutor(timeout=settings.timeout)
    session = AgentSession(
        state,
        executor,
        output=output,
        probe=make_probe(settings.probe, executor),
        check_identities=settings.check_identities
    )

    statements = session.run(command)
    if state.changed:
        store.save(state)
    return statements


def cli_main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments and run gsh.

    Returns:
        Process exit status
    """
    args = build_parser().parse_args(argv)

    if args.debug:
        os.environ["DEBUG"] = "1"

    if args.version:
        print(f"gsh {__version__}", file=sys.stderr)
        return 0

    if args.shell_init:
        print(shell_init())
        return 0

    output = StderrOutput()
    settings = load_settings()
    try:
        statements = run(args.command, settings, output)
    except AgentCreationError as e:
        output.error(str(e))
        return 1
    except OSError as e:
        output.error(f"Could not save session to {settings.state_file}: {e}")
        return 1

    for statement in statements:
        log_debug(f"Emitting: {statement}")
        print(statement)
    return 0
