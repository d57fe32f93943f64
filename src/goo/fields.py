from __future__ import annotations

"""
Field splitting and per-field extraction for qeval records.

split_fields / record_body work on raw text so a record can be cut into its
positional fields without understanding them. The extract_* helpers then read
one field each and never raise: a field that cannot be read yields None, which
the record decoders keep distinct from a decoded zero value.
"""

import logging
import re
from typing import List, Optional

from goo import wire
from goo.errors import MalformedRecord, RecordNotFound


log = logging.getLogger(__name__)

CLOSERS = {"(": ")", "[": "]", "{": "}"}

TIME_PLACEHOLDER = "N/A"
ADDRESS_PREFIX = "g1"
EMPTY_ADDRESS_MARKERS = {"nil", "undefined"}

_INT_PREFIX = re.compile(r"-?\d+")
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


# ---------- splitting ----------

def _scan_depths(text: str, start: int = 0, stop_when_closed: bool = False):
    """
    Yields (index, char, depth_before) for every char outside string literals.

    Raises MalformedRecord on a closing bracket with nothing open, a closing
    bracket of the wrong kind, or an unterminated string. With
    stop_when_closed the scan ends once the bracket at `start` is closed.
    """
    stack: List[str] = []
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
            continue
        depth = len(stack)
        if ch in CLOSERS:
            stack.append(CLOSERS[ch])
        elif ch in ")]}":
            if not stack:
                raise MalformedRecord(f"unbalanced {ch!r} at offset {i}")
            if stack.pop() != ch:
                raise MalformedRecord(f"mismatched {ch!r} at offset {i}")
        yield i, ch, depth
        if stop_when_closed and not stack:
            return
    if in_string:
        raise MalformedRecord("unterminated string literal")
    if stack:
        raise MalformedRecord(f"{len(stack)} unclosed bracket(s)")


def split_fields(body: str) -> List[str]:
    """
    Splits a record body at top-level commas.

    The fields are returned verbatim, so ",".join(result) == body. A blank
    body has no fields.
    """
    if not body.strip():
        return []
    fields: List[str] = []
    start = 0
    for i, ch, depth in _scan_depths(body):
        if ch == "," and depth == 0:
            fields.append(body[start:i])
            start = i + 1
    fields.append(body[start:])
    return fields


def _matching_close(text: str, open_idx: int) -> int:
    for i, ch, depth in _scan_depths(text, open_idx, stop_when_closed=True):
        if depth == 1 and ch in ")]}":
            return i
    raise MalformedRecord(f"no closing bracket for offset {open_idx}")


def record_body(text: str, marker: str = "struct{") -> str:
    """Returns the text between the first `marker` and its matching close."""
    idx = text.find(marker)
    if idx == -1:
        raise RecordNotFound(f"no {marker!r} marker in query output")
    open_idx = idx + len(marker) - 1
    close_idx = _matching_close(text, open_idx)
    return text[open_idx + 1:close_idx]


# ---------- scalar extractors ----------

def _parse_field(field: str) -> Optional[wire.Value]:
    try:
        return wire.parse_value(field)
    except MalformedRecord as e:
        log.debug("unreadable field %r: %s", field, e)
        return None


def extract_string(field: str) -> Optional[str]:
    node = _parse_field(field)
    if node is None:
        return None
    s = wire.first_scalar(node, lambda n: n.quoted)
    return s.text if s else None


def extract_address(field: str) -> Optional[str]:
    """
    Quoted literal, bare g1... token, or the empty address ("" for nil).
    """
    node = _parse_field(field)
    if node is None:
        return None
    s = wire.first_scalar(node)
    if s is None:
        return None
    if s.quoted:
        return s.text.strip()
    if s.text.startswith(ADDRESS_PREFIX):
        return s.text
    if s.text in EMPTY_ADDRESS_MARKERS:
        return ""
    return None


def extract_bool(field: str) -> Optional[bool]:
    node = _parse_field(field)
    if node is None:
        return None
    s = wire.first_scalar(node, lambda n: not n.quoted)
    if s is None or s.text not in ("true", "false"):
        return None
    return s.text == "true"


def extract_int64(field: str) -> Optional[int]:
    node = _parse_field(field)
    if node is None:
        return None
    s = wire.first_scalar(node, lambda n: not n.quoted)
    if s is None:
        return None
    m = _INT_PREFIX.match(s.text)
    if not m:
        return None
    value = int(m.group(0))
    if value < INT64_MIN or value > INT64_MAX:
        log.debug("int64 out of range: %s", s.text)
        return None
    return value


def extract_time(field: str) -> str:
    """
    Time values stay opaque. A ref(...) points at a value printed elsewhere in
    the reply and cannot be resolved from one field, so it reads as N/A.
    """
    node = _parse_field(field)
    if node is None or wire.contains_ref(node):
        return TIME_PLACEHOLDER
    if isinstance(node, wire.Scalar) and node.text in EMPTY_ADDRESS_MARKERS:
        return TIME_PLACEHOLDER
    return field.strip()


# ---------- collections ----------

def extract_list_items(field: str) -> Optional[List[str]]:
    """
    Raw item texts of a `tag[item,...]` field; [] for `tag[]` and nil slices.
    """
    node = _parse_field(field)
    if node is None:
        return None
    if isinstance(node, wire.Sequence):
        start, end = node.span
        inner = field[start + len(node.tag) + 1:end - 1]
        return [item.strip() for item in split_fields(inner)]
    if isinstance(node, wire.Scalar) and not node.quoted and node.text == "nil":
        return []
    return None


def count_items(field: str) -> Optional[int]:
    items = extract_list_items(field)
    return None if items is None else len(items)
