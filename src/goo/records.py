from __future__ import annotations

"""
Record decoders for the oracle realm's qeval replies.

GetRequest  -> DataRequest (14 positional fields)
GetDispute  -> Dispute     (8 positional fields, voter index skipped)

The reply carries no field names, so fields are mapped strictly by position.
A record of the wrong shape fails as a whole; a single unreadable field is
recorded in `missing` and left as None.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from goo import wire
from goo.errors import FieldCountMismatch, MalformedRecord
from goo.fields import (
    count_items,
    extract_address,
    extract_bool,
    extract_int64,
    extract_list_items,
    extract_string,
    extract_time,
    record_body,
    split_fields,
)


REQUEST_FIELD_COUNT = 14
DISPUTE_FIELD_COUNT = 8


class RequestState(Enum):
    REQUESTED = "Requested"
    PROPOSED = "Proposed"
    DISPUTED = "Disputed"
    RESOLVED = "Resolved"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: Optional[str]) -> "RequestState":
        """
        Accepts the state name or its ordinal in the realm's enum.
        """
        if text is None:
            return cls.UNKNOWN
        t = text.strip()
        for state in cls:
            if state is not cls.UNKNOWN and state.value.lower() == t.lower():
                return state
        if t.isdigit():
            ordered = [cls.REQUESTED, cls.PROPOSED, cls.DISPUTED, cls.RESOLVED]
            idx = int(t)
            if idx < len(ordered):
                return ordered[idx]
        return cls.UNKNOWN


@dataclass(frozen=True)
class DataRequest:
    id: Optional[str]
    creator: Optional[str]
    created_at: str
    question: Optional[str]
    is_yes_no: Optional[bool]
    proposed_value: Optional[int]
    proposer: Optional[str]
    proposer_bond: Optional[int]
    disputer: Optional[str]
    disputer_bond: Optional[int]
    resolution_time: str
    winning_value: Optional[int]
    state: RequestState
    deadline: str
    missing: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "creator": self.creator,
            "created_at": self.created_at,
            "question": self.question,
            "is_yes_no": self.is_yes_no,
            "proposed_value": self.proposed_value,
            "proposer": self.proposer,
            "proposer_bond": self.proposer_bond,
            "disputer": self.disputer,
            "disputer_bond": self.disputer_bond,
            "resolution_time": self.resolution_time,
            "winning_value": self.winning_value,
            "state": self.state.value,
            "deadline": self.deadline,
        }


@dataclass(frozen=True)
class Dispute:
    request_id: Optional[str]
    vote_count: Optional[int]
    resolved_vote_count: Optional[int]
    is_resolved: Optional[bool]
    winning_value: Optional[int]
    end_time: str
    end_reveal_time: str
    missing: Tuple[str, ...] = ()

    @property
    def unrevealed_votes(self) -> Optional[int]:
        if self.vote_count is None or self.resolved_vote_count is None:
            return None
        return self.vote_count - self.resolved_vote_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "vote_count": self.vote_count,
            "resolved_vote_count": self.resolved_vote_count,
            "is_resolved": self.is_resolved,
            "winning_value": self.winning_value,
            "end_time": self.end_time,
            "end_reveal_time": self.end_reveal_time,
        }


def _skip(field: str) -> None:
    return None


def _state_text(field: str) -> Optional[str]:
    text = extract_string(field)
    if text:
        return text
    v = extract_int64(field)
    return None if v is None else str(v)


REQUEST_LAYOUT: List[Tuple[Optional[str], Callable[[str], Any]]] = [
    ("id", extract_string),
    ("creator", extract_address),
    ("created_at", extract_time),
    ("question", extract_string),
    ("is_yes_no", extract_bool),
    ("proposed_value", extract_int64),
    ("proposer", extract_address),
    ("proposer_bond", extract_int64),
    ("disputer", extract_address),
    ("disputer_bond", extract_int64),
    ("resolution_time", extract_time),
    ("winning_value", extract_int64),
    ("state", _state_text),
    ("deadline", extract_time),
]

# None marks a field that is counted but not decoded
DISPUTE_LAYOUT: List[Tuple[Optional[str], Callable[[str], Any]]] = [
    ("request_id", extract_string),
    ("vote_count", count_items),
    (None, _skip),  # voter index
    ("resolved_vote_count", extract_int64),
    ("is_resolved", extract_bool),
    ("winning_value", extract_int64),
    ("end_time", extract_time),
    ("end_reveal_time", extract_time),
]


def record_fields(raw: str, kind: str, expected: int) -> List[str]:
    """
    Locates the outer struct in a qeval reply and returns its raw fields,
    checking the arity.
    """
    payload = wire.data_payload(raw)
    fields = split_fields(record_body(payload))
    if len(fields) != expected:
        raise FieldCountMismatch(kind, expected, len(fields))
    return fields


def _apply_layout(
    fields: Sequence[str],
    layout: Sequence[Tuple[Optional[str], Callable[[str], Any]]],
) -> Tuple[Dict[str, Any], Tuple[str, ...]]:
    values: Dict[str, Any] = {}
    missing: List[str] = []
    for raw_field, (name, extractor) in zip(fields, layout):
        if name is None:
            continue
        value = extractor(raw_field)
        if value is None:
            missing.append(name)
        values[name] = value
    return values, tuple(missing)


def decode_request(raw: str) -> DataRequest:
    fields = record_fields(raw, "DataRequest", REQUEST_FIELD_COUNT)
    values, missing = _apply_layout(fields, REQUEST_LAYOUT)
    values["state"] = RequestState.parse(values["state"])
    return DataRequest(missing=missing, **values)


def decode_dispute(raw: str) -> Dispute:
    fields = record_fields(raw, "Dispute", DISPUTE_FIELD_COUNT)
    values, missing = _apply_layout(fields, DISPUTE_LAYOUT)
    return Dispute(missing=missing, **values)


def decode_request_ids(raw: str) -> List[str]:
    """
    Decodes a list of request ids, e.g.
    data: (slice[("0000001" string),("0000002" string)] []string)
    """
    payload = wire.data_payload(raw)
    items = extract_list_items(payload)
    if items is None:
        raise MalformedRecord(f"expected a list of request ids, got {payload[:80]!r}")
    ids: List[str] = []
    for item in items:
        rid = extract_string(item)
        if rid is None:
            raise MalformedRecord(f"request id is not a string literal: {item!r}")
        ids.append(rid)
    return ids


def decode_int64_result(raw: str) -> int:
    """Decodes a single int64 reply such as `data: (2000000 int64)`."""
    payload = wire.data_payload(raw)
    value = extract_int64(payload)
    if value is None:
        raise MalformedRecord(f"failed to parse int64 from query result: {payload!r}")
    return value
