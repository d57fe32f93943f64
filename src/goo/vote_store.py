from __future__ import annotations

"""
Local vote store (one JSON file per request id).

Layout:
  <goo_home>/votes/<request_id>.json
  {"request_id": ..., "value": ..., "salt": ..., "hash": ..., "timestamp": <ISO-8601>}

Writes are atomic: the record goes to a temp file in the same directory, is
fsynced and renamed over the old one. A <request_id>.json.lock file held for
the duration of the write keeps a second writer out.

Last write wins. Nothing is cached between calls.
"""

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from jsonschema import Draft202012Validator

from goo.config import goo_home
from goo.errors import VoteIncomplete, VoteNotFound, VoteStoreBusy, VoteStoreError


log = logging.getLogger(__name__)

VOTE_RECORD_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["request_id", "value", "salt", "hash"],
    "properties": {
        "request_id": {"type": "string"},
        # older clients stored the value as an integer
        "value": {"type": ["string", "integer"]},
        "salt": {"type": "string"},
        "hash": {"type": "string"},
        "timestamp": {"type": ["string", "integer"]},
    },
}

_validator = Draft202012Validator(VOTE_RECORD_SCHEMA)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def default_votes_dir() -> Path:
    return goo_home() / "votes"


@dataclass(frozen=True)
class VoteCommitment:
    request_id: str
    value: str
    salt: str
    hash: str
    timestamp: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VoteCommitment":
        return cls(
            request_id=str(data["request_id"]),
            value=str(data["value"]),
            salt=str(data["salt"]),
            hash=str(data["hash"]),
            timestamp=str(data.get("timestamp", "")),
        )


def _validate_request_id(request_id: str) -> str:
    rid = request_id.strip()
    if not rid:
        raise ValueError("request_id is empty")
    if "/" in rid or "\\" in rid or rid in {".", ".."} or "\x00" in rid:
        raise ValueError(f"request_id is not a valid file name: {request_id!r}")
    return rid


class VoteStore:
    def __init__(self, votes_dir: Optional[Path] = None):
        self.votes_dir = Path(votes_dir) if votes_dir else default_votes_dir()

    def path_for(self, request_id: str) -> Path:
        return self.votes_dir / f"{_validate_request_id(request_id)}.json"

    @contextmanager
    def _write_lock(self, path: Path) -> Iterator[None]:
        lock = path.with_name(path.name + ".lock")
        try:
            fd = os.open(str(lock), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
        except FileExistsError:
            raise VoteStoreBusy(f"another process is writing {path.name} (remove {lock} if stale)")
        try:
            try:
                os.write(fd, str(os.getpid()).encode("ascii"))
            finally:
                os.close(fd)
            yield
        finally:
            try:
                lock.unlink()
            except FileNotFoundError:
                pass

    def save(self, request_id: str, value: str, salt: str, hash_hex: str) -> Path:
        record = VoteCommitment(
            request_id=_validate_request_id(request_id),
            value=value,
            salt=salt,
            hash=hash_hex,
            timestamp=_utc_now_iso(),
        )
        path = self.path_for(request_id)
        self.votes_dir.mkdir(parents=True, exist_ok=True)
        data = json.dumps(record.to_dict(), ensure_ascii=False, indent=2)

        with self._write_lock(path):
            fd, tmp = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=str(self.votes_dir))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.chmod(tmp, 0o600)
                os.replace(tmp, path)
            except BaseException:
                try:
                    os.unlink(tmp)
                except FileNotFoundError:
                    pass
                raise

        log.info("vote data saved to %s", path)
        return path

    def get(self, request_id: str) -> VoteCommitment:
        path = self.path_for(request_id)
        if not path.exists():
            raise VoteNotFound(f"no vote stored for request {request_id} (did you commit a vote for this request?)")
        try:
            data = json.loads(path.read_text(encoding="utf-8-sig"))
        except json.JSONDecodeError as e:
            raise VoteIncomplete(f"vote file {path} is unreadable: {e}")
        except OSError as e:
            raise VoteStoreError(f"failed to read vote file {path}: {e}")

        errors = sorted(_validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
        if errors:
            e0 = errors[0]
            loc = ".".join(str(x) for x in e0.path) if e0.path else "<root>"
            raise VoteIncomplete(f"vote file {path} is invalid at {loc}: {e0.message}")

        record = VoteCommitment.from_dict(data)
        if not record.value or not record.salt:
            raise VoteIncomplete(f"vote data for request {request_id} is incomplete")
        return record

    def load(self, request_id: str) -> Tuple[str, str]:
        record = self.get(request_id)
        return record.value, record.salt

    def exists(self, request_id: str) -> bool:
        return self.path_for(request_id).exists()

    def list_ids(self) -> List[str]:
        if not self.votes_dir.exists():
            return []
        return sorted(p.stem for p in self.votes_dir.glob("*.json"))
