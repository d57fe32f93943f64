import json
import logging

import pytest

from goo.commitment import commit, verify
from goo.errors import ContractError, HashMismatch, VoteNotFound
from goo.vote_store import VoteStore
from goo.voting import commit_vote, reveal_vote


class FakeCaller:
    def __init__(self, fail=None):
        self.calls = []
        self.fail = fail

    def call_function(self, func_name, args=(), send=""):
        self.calls.append((func_name, list(args), send))
        if self.fail:
            raise self.fail


def test_commit_submits_hash_and_saves(tmp_path):
    caller = FakeCaller()
    store = VoteStore(tmp_path)
    rec = commit_vote(caller, store, request_id="0000001", value="3500", salt="pepper")

    assert caller.calls == [("VoteOnDispute", ["0000001", commit("3500", "pepper")], "")]
    assert rec.value == "3500"
    assert rec.salt == "pepper"
    assert store.load("0000001") == ("3500", "pepper")


def test_commit_generates_salt(tmp_path):
    caller = FakeCaller()
    rec = commit_vote(caller, VoteStore(tmp_path), request_id="r1", value="1")
    assert len(rec.salt) == 64
    assert verify(rec.hash, "1", rec.salt)


def test_rejected_commit_keeps_previous_secret(tmp_path):
    store = VoteStore(tmp_path)
    commit_vote(FakeCaller(), store, request_id="r1", value="1", salt="first")

    failing = FakeCaller(fail=ContractError("You have already voted in this dispute"))
    with pytest.raises(ContractError):
        commit_vote(failing, store, request_id="r1", value="0", salt="second")
    assert store.load("r1") == ("1", "first")


def test_save_failure_logs_secret(tmp_path, monkeypatch, caplog):
    store = VoteStore(tmp_path)

    def broken_save(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(store, "save", broken_save)
    with caplog.at_level(logging.ERROR):
        with pytest.raises(OSError):
            commit_vote(FakeCaller(), store, request_id="r1", value="3500", salt="pepper")
    assert "value=3500 salt=pepper" in caplog.text


def test_reveal_sends_stored_value_and_salt(tmp_path):
    store = VoteStore(tmp_path)
    commit_vote(FakeCaller(), store, request_id="r1", value="3500", salt="pepper")

    caller = FakeCaller()
    rec = reveal_vote(caller, store, request_id="r1")
    assert caller.calls == [("RevealVote", ["r1", "3500", "pepper"], "")]
    assert rec.hash == commit("3500", "pepper")


def test_reveal_detects_tampered_record(tmp_path):
    store = VoteStore(tmp_path)
    commit_vote(FakeCaller(), store, request_id="r1", value="3500", salt="pepper")
    p = store.path_for("r1")
    doc = json.loads(p.read_text(encoding="utf-8"))
    doc["value"] = "9999"
    p.write_text(json.dumps(doc), encoding="utf-8")

    caller = FakeCaller()
    with pytest.raises(HashMismatch):
        reveal_vote(caller, store, request_id="r1")
    assert caller.calls == []


def test_reveal_without_commit(tmp_path):
    caller = FakeCaller()
    with pytest.raises(VoteNotFound):
        reveal_vote(caller, VoteStore(tmp_path), request_id="r1")
    assert caller.calls == []


def test_reveal_with_non_ascii_hash_is_mismatch(tmp_path):
    store = VoteStore(tmp_path)
    store.save("r1", "3500", "pepper", "é")

    caller = FakeCaller()
    with pytest.raises(HashMismatch):
        reveal_vote(caller, store, request_id="r1")
    assert caller.calls == []


@pytest.mark.parametrize("value", ["", "   "])
def test_blank_value_is_rejected_before_commit(tmp_path, value):
    caller = FakeCaller()
    store = VoteStore(tmp_path)
    with pytest.raises(ValueError):
        commit_vote(caller, store, request_id="r1", value=value, salt="pepper")
    assert caller.calls == []
    assert not store.exists("r1")
