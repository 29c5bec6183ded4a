"""Tests for session state and its store."""
import os
import stat

from gsh.session import SessionState, SessionStore


def test_state_starts_unchanged():
    state = SessionState("123", "some-file")
    assert not state.changed
    assert state.is_complete()


def test_state_incomplete():
    assert not SessionState().is_complete()
    assert not SessionState("123", "").is_complete()
    assert not SessionState(" ", "some-file").is_complete()


def test_update_and_clear():
    state = SessionState()
    state.update("789", "some-other-file")
    assert state == SessionState("789", "some-other-file")
    assert state.changed

    state.clear()
    assert state == SessionState()
    assert state.changed


def test_equality_ignores_changed():
    changed = SessionState()
    changed.clear()
    assert changed == SessionState()
    assert SessionState("1", "a") != SessionState("2", "a")


def test_load_missing_file(tmp_path):
    state = SessionStore(tmp_path / "missing").load()
    assert state == SessionState()
    assert not state.changed


def test_save_and_load(tmp_path):
    path = tmp_path / "nested" / "gsh-session"
    store = SessionStore(path)
    store.save(SessionState("789", "/tmp/ssh-abc/agent.1"))

    assert path.read_text() == "AGENT_PID=789\nAUTH_SOCKET=/tmp/ssh-abc/agent.1\n"
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    loaded = store.load()
    assert loaded == SessionState("789", "/tmp/ssh-abc/agent.1")
    assert not loaded.changed


def test_load_skips_junk(tmp_path):
    path = tmp_path / "gsh-session"
    path.write_text("# comment\ngarbage\nOTHER=1\nAGENT_PID= 42 \n\nAUTH_SOCKET=/a=b\n")
    assert SessionStore(path).load() == SessionState("42", "/a=b")


def test_save_overwrites(tmp_path):
    store = SessionStore(tmp_path / "gsh-session")
    store.save(SessionState("1", "a"))
    store.save(SessionState())
    assert store.load() == SessionState()
    assert not (tmp_path / "gsh-session.tmp").exists()
