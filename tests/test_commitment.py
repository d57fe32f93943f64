import pytest

from goo import commitment
from goo.commitment import WeakSaltWarning, commit, generate_salt, verify


# sha256("abc")
ABC = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_commit_is_sha256_of_concatenation():
    assert commit("a", "bc") == ABC
    # no separator between value and salt
    assert commit("ab", "c") == ABC


def test_verify():
    h = commit("3500", "s3cret")
    assert verify(h, "3500", "s3cret")
    assert verify(h.upper(), "3500", "s3cret")
    assert not verify(h, "3501", "s3cret")
    assert not verify(h, "3500", "s3creT")


def test_salt_is_hex_of_requested_length():
    s = generate_salt(32)
    assert len(s) == 64
    int(s, 16)
    assert len(generate_salt(4)) == 8


def test_salts_differ():
    assert len({generate_salt() for _ in range(20)}) == 20


def test_salt_length_must_be_positive():
    with pytest.raises(ValueError):
        generate_salt(0)


def test_salt_falls_back_when_entropy_fails(monkeypatch, caplog):
    def broken(n):
        raise OSError("no entropy")

    monkeypatch.setattr(commitment.secrets, "token_bytes", broken)
    with pytest.warns(WeakSaltWarning):
        s = generate_salt()
    assert s.isdigit()
    assert "entropy source unavailable" in caplog.text


def test_verify_non_ascii_hash_is_false():
    assert verify("é" * 64, "3500", "s") is False
    assert verify("", "3500", "s") is False
