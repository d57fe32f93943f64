import subprocess

import pytest

from goo import gnokey
from goo.config import Config
from goo.errors import ContractError, GnokeyError, HashMismatch
from goo.gnokey import GnokeyExecutor


def _executor(**kw):
    return GnokeyExecutor.from_config(Config(keyname="alice", chain_id="test5", remote="tcp://node:26657"), **kw)


class FakeRun:
    def __init__(self, returncode=0, stdout="", stderr="", exc=None):
        self.calls = []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.exc = exc

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        if self.exc:
            raise self.exc
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


def test_call_command_layout():
    cmd = _executor().call_command("ProposeValue", ["0000001", "3500"], "1000000ugnot")
    assert cmd == [
        "gnokey", "maketx", "call",
        "--pkgpath", "gno.land/r/intermarch3/goo",
        "--func", "ProposeValue",
        "--gas-fee", "1000000ugnot",
        "--gas-wanted", "20000000",
        "--broadcast",
        "--chainid", "test5",
        "--remote", "tcp://node:26657",
        "--args", "0000001",
        "--args", "3500",
        "--send", "1000000ugnot",
        "alice",
    ]


def test_call_command_without_send():
    cmd = _executor().call_command("ResolveDispute", ["0000001"])
    assert "--send" not in cmd
    assert cmd[-1] == "alice"


def test_query_command_layout():
    cmd = _executor().query_command("GetRequest", ["0000001"])
    assert cmd == [
        "gnokey", "query", "vm/qeval",
        "--remote", "tcp://node:26657",
        "--data", 'gno.land/r/intermarch3/goo.GetRequest("0000001")',
    ]
    assert _executor().query_command("GetBond")[-1] == "gno.land/r/intermarch3/goo.GetBond()"


def test_gnokey_bin_from_env(monkeypatch):
    monkeypatch.setenv("GOO_GNOKEY_BIN", "/opt/gno/bin/gnokey")
    assert _executor().query_command("GetBond")[0] == "/opt/gno/bin/gnokey"


def test_query_returns_output(monkeypatch):
    run = FakeRun(stdout="height: 0\ndata: (2000000 int64)\n")
    monkeypatch.setattr(gnokey.subprocess, "run", run)
    assert _executor().query_int64("GetBond") == 2000000
    _, kwargs = run.calls[0]
    assert kwargs["timeout"] == 30


def test_query_timeout_from_env(monkeypatch):
    run = FakeRun(stdout="data: (1 int64)\n")
    monkeypatch.setattr(gnokey.subprocess, "run", run)
    monkeypatch.setenv("GOO_QUERY_TIMEOUT_SECS", "5")
    _executor().query_function("GetBond")
    assert run.calls[0][1]["timeout"] == 5


def test_query_failure_is_mapped(monkeypatch):
    run = FakeRun(returncode=1, stdout="panic: Request with this ID does not exist\n")
    monkeypatch.setattr(gnokey.subprocess, "run", run)
    with pytest.raises(ContractError) as ei:
        _executor().query_function("GetRequest", ["9"])
    assert ei.value.friendly == "Request not found - invalid request ID"


def test_query_timeout(monkeypatch):
    monkeypatch.setattr(gnokey.subprocess, "run", FakeRun(exc=subprocess.TimeoutExpired("gnokey", 30)))
    with pytest.raises(GnokeyError):
        _executor().query_function("GetBond")


def test_missing_binary(monkeypatch):
    monkeypatch.setattr(gnokey.subprocess, "run", FakeRun(exc=FileNotFoundError("gnokey")))
    with pytest.raises(GnokeyError) as ei:
        _executor().query_function("GetBond")
    assert "not found" in str(ei.value)
    with pytest.raises(GnokeyError):
        _executor().call_function("ResolveDispute", ["1"])


def test_call_success_shows_command(monkeypatch, capsys):
    run = FakeRun()
    monkeypatch.setattr(gnokey.subprocess, "run", run)
    _executor().call_function("ResolveDispute", ["0000001"])
    out = capsys.readouterr().out
    assert "Executing:" in out
    assert "--func ResolveDispute" in out
    assert run.calls[0][1]["stderr"] == subprocess.PIPE


def test_call_failure_maps_hash_mismatch(monkeypatch):
    err = "Error =-- \nData: Hash does not match the revealed value and salt\n"
    monkeypatch.setattr(gnokey.subprocess, "run", FakeRun(returncode=1, stderr=err))
    with pytest.raises(HashMismatch):
        _executor().call_function("RevealVote", ["1", "3500", "s"])


def test_verbose_call_streams_output(monkeypatch):
    run = FakeRun(returncode=2)
    monkeypatch.setattr(gnokey.subprocess, "run", run)
    with pytest.raises(GnokeyError) as ei:
        _executor(verbose=True).call_function("ResolveDispute", ["1"])
    assert "rc=2" in str(ei.value)
    assert "stdout" not in run.calls[0][1]
