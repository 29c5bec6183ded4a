"""
Runtime settings read from the environment.
"""
import os
from pathlib import Path
from typing import Optional, Mapping

from .logging_utils import log_debug, log_warn

DEFAULT_STATE_FILE = "gsh-session"
PROBES = ("ps", "psutil")

_FALSE_VALUES = ("0", "false", "no", "off")


def expand_path(path: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(path)))


def get_ssh_dir() -> Path:
    return Path.home() / ".ssh"


class Settings:
    """Configuration for one gsh invocation."""

    def __init__(
        self,
        state_file: Path,
        check_identities: bool = True,
        probe: str = "ps",
        timeout: Optional[float] = None
    ):
        self.state_file = state_file
        self.check_identities = check_identities
        self.probe = probe
        self.timeout = timeout

    def __repr__(self) -> str:
        return (
            f"Settings(state_file={str(self.state_file)!r}, "
            f"check_identities={self.check_identities}, "
            f"probe={self.probe!r}, timeout={self.timeout})"
        )


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in _FALSE_VALUES


def _parse_timeout(value: Optional[str]) -> Optional[float]:
    if not value or not value.strip():
        return None
    try:
        timeout = float(value)
    except ValueError:
        log_warn(f"Ignoring invalid GSH_TIMEOUT value: {value!r}")
        return None
    if timeout <= 0:
        return None
    return timeout


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Settings for this invocation
    """
    env = os.environ if environ is None else environ

    state_file_value = env.get("GSH_STATE_FILE", "").strip()
    if state_file_value:
        state_file = expand_path(state_file_value)
    else:
        state_file = get_ssh_dir() / DEFAULT_STATE_FILE

    probe = env.get("GSH_PROBE", "ps").strip().lower() or "ps"
    if probe not in PROBES:
        log_warn(f"Unknown GSH_PROBE {probe!r}, falling back to 'ps'")
        probe = "ps"

    settings = Settings(
        state_file=state_file,
        check_identities=_parse_bool(env.get("GSH_CHECK_IDENTITIES"), True),
        probe=probe,
        timeout=_parse_timeout(env.get("GSH_TIMEOUT")),
    )
    log_debug(f"Loaded {settings!r}")
    return settings
