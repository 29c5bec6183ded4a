"""Shared fixtures: a fake shell executor and a recording output sink."""
import pytest

from gsh.process import ShellCommandError, ShellResult, split_output


class FakeRun:
    """Canned response for one ShellExecutor.run call."""

    def __init__(self, stdout=None, stderr="", err=None):
        self.stdout = stdout or []
        self.stderr = stderr
        self.err = err


class FakeExecutor:
    """Records requests and replays FakeRuns in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    @property
    def contents(self):
        return [request.script() for request in self.requests]

    def run(self, request):
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"unexpected shell request: {request!r}")
        response = self.responses.pop(0)
        if response.err is not None:
            raise ShellCommandError(response.err, stderr=response.stderr, returncode=1)
        lines = split_output("\n".join(response.stdout))
        request.validate(lines)
        return ShellResult(lines, response.stderr)


class RecordingOutput:
    def __init__(self):
        self.messages = []

    def error(self, message):
        self.messages.append(("error", message))

    def warn(self, message):
        self.messages.append(("warn", message))

    def info(self, message):
        self.messages.append(("info", message))

    def debug(self, message):
        self.messages.append(("debug", message))


@pytest.fixture
def output():
    return RecordingOutput()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DEBUG", "FORCE_COLOR", "GSH_STATE_FILE", "GSH_CHECK_IDENTITIES",
                 "GSH_PROBE", "GSH_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
