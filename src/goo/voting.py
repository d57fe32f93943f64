from __future__ import annotations

"""
Commit-reveal voting on disputes.

commit:  hash = sha256(value + salt) -> VoteOnDispute(request_id, hash), secret saved locally
reveal:  (value, salt) loaded locally -> RevealVote(request_id, value, salt)
"""

import logging
from typing import Optional

from goo.commitment import commit, generate_salt, verify
from goo.errors import HashMismatch, VoteStoreError
from goo.gnokey import CallFunction
from goo.vote_store import VoteCommitment, VoteStore


log = logging.getLogger(__name__)


def commit_vote(
    caller: CallFunction,
    store: VoteStore,
    *,
    request_id: str,
    value: str,
    salt: Optional[str] = None,
) -> VoteCommitment:
    """
    Submits the commitment, then persists the secret.

    The record is written only after the realm accepted the commitment, so a
    rejected commit never overwrites the secret of an earlier accepted one.
    A blank value is rejected before anything is sent, since the store would
    refuse to load it for the reveal.
    """
    if not value.strip():
        raise ValueError("vote value is empty")
    salt = salt or generate_salt()
    hash_hex = commit(value, salt)

    caller.call_function("VoteOnDispute", [request_id, hash_hex])

    try:
        store.save(request_id, value, salt, hash_hex)
    except (OSError, VoteStoreError) as e:
        # the commitment is on chain; without value + salt it cannot be revealed
        log.error(
            "vote committed but not saved locally (%s); keep these to reveal: value=%s salt=%s",
            e, value, salt,
        )
        raise

    return store.get(request_id)


def reveal_vote(caller: CallFunction, store: VoteStore, *, request_id: str) -> VoteCommitment:
    record = store.get(request_id)
    if not verify(record.hash, record.value, record.salt):
        raise HashMismatch(
            f"stored value/salt for request {request_id} do not match the stored hash",
            str(store.path_for(request_id)),
        )
    caller.call_function("RevealVote", [request_id, record.value, record.salt])
    return record
