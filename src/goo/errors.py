from __future__ import annotations

"""
Error taxonomy for goo-cli.

Decode errors are fatal for a whole record (a single bad field is not an
error, see goo.fields). Vote store errors cover local commitment files.
Contract errors wrap the panic text the realm returns through gnokey.
"""

from typing import Dict, Optional


class GooError(Exception):
    pass


# ---------- decoding ----------

class DecodeError(GooError, ValueError):
    pass


class MalformedRecord(DecodeError):
    pass


class RecordNotFound(DecodeError):
    pass


class FieldCountMismatch(DecodeError):
    def __init__(self, kind: str, expected: int, actual: int):
        self.kind = kind
        self.expected = expected
        self.actual = actual
        super().__init__(f"{kind}: expected {expected} fields, got {actual}")


# ---------- vote store ----------

class VoteStoreError(GooError):
    pass


class VoteNotFound(VoteStoreError, FileNotFoundError):
    pass


class VoteIncomplete(VoteStoreError, ValueError):
    pass


class VoteStoreBusy(VoteStoreError):
    pass


# ---------- remote side ----------

class GnokeyError(GooError):
    pass


class ContractError(GnokeyError):
    def __init__(self, friendly: str, original: str = ""):
        self.friendly = friendly
        self.original = original
        super().__init__(friendly)


class HashMismatch(ContractError):
    pass


CONTRACT_ERRORS: Dict[str, str] = {
    # requests
    "Ancillary data cannot be empty": "Question/ancillary data is required",
    "Deadline must be at least 24 hours in the future": "Deadline must be at least 24 hours from now",
    "Incorrect reward amount sent": "Incorrect reward amount (check with 'goo query params')",
    "Request with this ID does not exist": "Request not found - invalid request ID",
    "Request is not in 'Requested' state": "Request is not available for proposals (may be already proposed, disputed, or resolved)",
    "Deadline for proposal has passed": "Proposal deadline has passed",
    "Request has not been proposed yet": "No proposal submitted for this request yet",
    "Request is already resolved": "Request is already resolved",
    "cannot retreive fund as requests fulfilled": "Cannot retrieve funds - request has been fulfilled",
    "Only the creator of the request can retrieve the fund": "Only the request creator can retrieve the fund",
    "Cannot retrieve fund before the deadline": "Cannot retrieve fund - deadline not reached yet",
    # proposals and disputes
    "Proposed value must be 0 or 1 for yes/no questions": "For yes/no questions, value must be 0 (no) or 1 (yes)",
    "Incorrect bond amount sent": "Incorrect bond amount (check with 'goo query params')",
    "Resolution period has not ended yet": "Cannot resolve yet - resolution period still active",
    "Request is in 'Disputed' state": "Cannot resolve - request is disputed",
    "Proposer cannot dispute their own proposal": "You cannot dispute your own proposal",
    "Request is not in 'Proposed' state": "Request is not in proposed state (may be already disputed or resolved)",
    "Dispute period has ended": "Dispute period has ended",
    "Dispute for this request already exists": "This request is already disputed",
    "Dispute is already resolved": "Dispute is already resolved",
    "Dispute period has not ended yet": "Dispute period has not ended yet",
    "Request is not resolved": "Request is not resolved yet - cannot get result",
    # votes
    "You already have a vote token": "You already own a vote token",
    "Must send exactly": "Incorrect vote token price (check with 'goo query params')",
    "Proposer and Disputer cannot vote in this dispute": "Proposers and disputers cannot vote on their own disputes",
    "Voter has already voted in this dispute": "You have already voted in this dispute",
    "You need at least 1 vote token to vote": "You need to buy a vote token first ('goo vote buy-token')",
    "Vote period has ended": "Voting period has ended",
    "Vote period has not ended yet": "Cannot reveal yet - voting period still active",
    "Reveal period has ended": "Reveal period has ended",
    "Voter did not participate in this dispute": "You did not vote in this dispute",
    "Vote already revealed": "Vote already revealed",
    "Dispute with this ID does not exist": "Dispute not found - invalid dispute ID",
    "Dispute is resolved": "Dispute is already resolved",
    # admin
    "Only the admin can": "Admin privileges required",
    "Only admin can": "Admin privileges required",
    # transport
    "missing realm argument": "Internal error - realm context required",
}

HASH_MISMATCH_PATTERN = "Hash does not match the revealed value and salt"


def _envelope_message(text: str) -> Optional[str]:
    """
    Pulls the panic message out of a gnokey 'Error =--' envelope.
    """
    if "Error =--" not in text:
        return None
    for marker in ("error:", "Data:"):
        idx = text.find(marker)
        if idx == -1:
            continue
        rest = text[idx + len(marker):]
        end = rest.find("\n")
        if end != -1:
            msg = rest[:end].strip()
            if msg:
                return msg
    return None


def parse_contract_error(text: str) -> GnokeyError:
    """
    Converts raw gnokey stderr into the most specific error available.

    Longer patterns are tried first so "Dispute is already resolved" wins over
    "Dispute is resolved".
    """
    if HASH_MISMATCH_PATTERN in text:
        return HashMismatch("Hash mismatch - value or salt incorrect (check ~/.goo/votes/)", text)

    for pattern in sorted(CONTRACT_ERRORS, key=len, reverse=True):
        if pattern in text:
            return ContractError(CONTRACT_ERRORS[pattern], text)

    inner = _envelope_message(text)
    if inner:
        return ContractError(f"Contract error: {inner}", text)

    return GnokeyError(text.strip() or "gnokey failed")
