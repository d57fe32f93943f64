from __future__ import annotations

"""
Vote commitments for the dispute commit-reveal flow.

  hash = sha256_hex(value + salt)    (UTF-8, no separator)

The realm recomputes the same digest from the revealed (value, salt), so the
format must not change.
"""

import hashlib
import hmac
import logging
import secrets
import time
import warnings


log = logging.getLogger(__name__)

DEFAULT_SALT_BYTES = 32


class WeakSaltWarning(UserWarning):
    pass


def _sha256_hex(b: bytes) -> str:
    return hashlib.sha256(b).hexdigest()


def commit(value: str, salt: str) -> str:
    return _sha256_hex((value + salt).encode("utf-8"))


def verify(hash_hex: str, value: str, salt: str) -> bool:
    return hmac.compare_digest(hash_hex.strip().lower().encode("utf-8"), commit(value, salt).encode("ascii"))


def generate_salt(length: int = DEFAULT_SALT_BYTES) -> str:
    """
    Returns `length` random bytes, hex encoded.

    If the OS entropy source fails, falls back to the current time in
    nanoseconds. That salt is guessable; a WeakSaltWarning is issued so the
    caller can tell the user.
    """
    if length <= 0:
        raise ValueError("salt length must be > 0")
    try:
        return secrets.token_bytes(length).hex()
    except (OSError, NotImplementedError) as e:
        log.warning("entropy source unavailable (%s); using time-derived salt", e)
        warnings.warn(
            "secure random source failed; vote salt is time-derived and guessable",
            WeakSaltWarning,
            stacklevel=2,
        )
        return str(time.time_ns())
