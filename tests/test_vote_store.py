import json

import pytest

from goo import vote_store
from goo.commitment import commit
from goo.errors import VoteIncomplete, VoteNotFound, VoteStoreBusy, VoteStoreError
from goo.vote_store import VoteStore, default_votes_dir


def test_default_dir_follows_goo_home(goo_home):
    assert default_votes_dir() == goo_home / "votes"
    assert VoteStore().votes_dir == goo_home / "votes"


def test_save_then_load(tmp_path):
    store = VoteStore(tmp_path / "votes")
    h = commit("3500", "abcd")
    p = store.save("0000001", "3500", "abcd", h)

    assert p == tmp_path / "votes" / "0000001.json"
    assert store.load("0000001") == ("3500", "abcd")

    doc = json.loads(p.read_text(encoding="utf-8"))
    assert set(doc) == {"request_id", "value", "salt", "hash", "timestamp"}
    assert doc["hash"] == h
    assert doc["timestamp"].endswith("Z")


def test_last_write_wins(tmp_path):
    store = VoteStore(tmp_path)
    store.save("r1", "1", "s1", commit("1", "s1"))
    store.save("r1", "2", "s2", commit("2", "s2"))
    assert store.load("r1") == ("2", "s2")
    assert store.list_ids() == ["r1"]


def test_no_temp_or_lock_files_left(tmp_path):
    store = VoteStore(tmp_path)
    store.save("r1", "1", "s1", commit("1", "s1"))
    assert sorted(p.name for p in tmp_path.iterdir()) == ["r1.json"]


def test_missing_vote(tmp_path):
    with pytest.raises(VoteNotFound):
        VoteStore(tmp_path).load("nope")


def test_empty_salt_is_incomplete(tmp_path):
    store = VoteStore(tmp_path)
    store.save("r1", "3500", "", "00")
    with pytest.raises(VoteIncomplete):
        store.load("r1")


def test_unreadable_file_is_incomplete(tmp_path):
    (tmp_path / "r1.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(VoteIncomplete):
        VoteStore(tmp_path).load("r1")


def test_schema_violation_is_incomplete(tmp_path):
    (tmp_path / "r1.json").write_text(json.dumps({"request_id": "r1", "value": "1"}), encoding="utf-8")
    with pytest.raises(VoteIncomplete) as ei:
        VoteStore(tmp_path).load("r1")
    assert "invalid" in str(ei.value)


def test_legacy_integer_value(tmp_path):
    doc = {"request_id": "r1", "value": 3500, "salt": "s", "hash": commit("3500", "s"), "timestamp": 1730000000}
    (tmp_path / "r1.json").write_text(json.dumps(doc), encoding="utf-8")
    rec = VoteStore(tmp_path).get("r1")
    assert rec.value == "3500"
    assert rec.timestamp == "1730000000"


def test_bom_tolerant_read(tmp_path):
    doc = {"request_id": "r1", "value": "1", "salt": "s", "hash": commit("1", "s")}
    (tmp_path / "r1.json").write_text(json.dumps(doc), encoding="utf-8-sig")
    assert VoteStore(tmp_path).load("r1") == ("1", "s")


def test_held_lock_blocks_writer(tmp_path):
    (tmp_path / "r1.json.lock").write_text("123", encoding="utf-8")
    with pytest.raises(VoteStoreBusy):
        VoteStore(tmp_path).save("r1", "1", "s", commit("1", "s"))
    assert issubclass(VoteStoreBusy, VoteStoreError)
    assert not (tmp_path / "r1.json").exists()


@pytest.mark.parametrize("rid", ["", "../evil", "a/b", "..", "a\\b"])
def test_request_id_must_be_a_file_name(tmp_path, rid):
    with pytest.raises(ValueError):
        VoteStore(tmp_path).save(rid, "1", "s", "h")


def test_list_ids_empty_dir(tmp_path):
    assert VoteStore(tmp_path / "missing").list_ids() == []


def test_lock_fd_closed_when_write_fails(tmp_path, monkeypatch):
    closed = []
    real_close = vote_store.os.close

    def broken_write(fd, data):
        raise OSError("disk full")

    def tracking_close(fd):
        closed.append(fd)
        real_close(fd)

    store = VoteStore(tmp_path)
    with monkeypatch.context() as m:
        m.setattr(vote_store.os, "write", broken_write)
        m.setattr(vote_store.os, "close", tracking_close)
        with pytest.raises(OSError):
            store.save("r1", "1", "s", commit("1", "s"))
    assert len(closed) == 1
    assert not (tmp_path / "r1.json.lock").exists()
