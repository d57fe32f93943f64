from __future__ import annotations

"""
gnokey subprocess backend.

Transactions:  gnokey maketx call --pkgpath <realm> --func <f> ... <key>
Queries:       gnokey query vm/qeval --remote <remote> --data '<realm>.<f>("a","b")'

Optional env:
  GOO_GNOKEY_BIN=gnokey          (or full path)
  GOO_QUERY_TIMEOUT_SECS=30      (queries only; transactions wait for the password prompt)
  GOO_MAX_STDERR=4000
"""

import logging
import os
import shlex
import subprocess
import sys
from dataclasses import dataclass
from typing import List, Protocol, Sequence

from goo.config import Config
from goo.errors import GnokeyError, parse_contract_error
from goo.records import decode_int64_result


log = logging.getLogger(__name__)


class QueryFunction(Protocol):
    def query_function(self, func_name: str, args: Sequence[str] = ()) -> str:
        ...


class CallFunction(Protocol):
    def call_function(self, func_name: str, args: Sequence[str] = (), send: str = "") -> None:
        ...


def _query_timeout() -> int:
    try:
        return int(os.getenv("GOO_QUERY_TIMEOUT_SECS", "30"))
    except ValueError:
        return 30


def _max_err() -> int:
    try:
        return int(os.getenv("GOO_MAX_STDERR", "4000"))
    except ValueError:
        return 4000


def format_args(args: Sequence[str]) -> List[str]:
    return [f'"{a}"' for a in args]


def render_command(cmd: Sequence[str]) -> str:
    return " ".join(shlex.quote(c) for c in cmd)


@dataclass(frozen=True)
class GnokeyExecutor:
    key_name: str
    realm_path: str
    chain_id: str
    remote: str
    gas_fee: str
    gas_wanted: int
    verbose: bool = False
    gnokey_bin: str = "gnokey"

    @classmethod
    def from_config(cls, cfg: Config, verbose: bool = False) -> "GnokeyExecutor":
        return cls(
            key_name=cfg.keyname,
            realm_path=cfg.realm_path,
            chain_id=cfg.chain_id,
            remote=cfg.remote,
            gas_fee=cfg.gas_fee,
            gas_wanted=cfg.gas_wanted,
            verbose=verbose,
            gnokey_bin=os.getenv("GOO_GNOKEY_BIN", "gnokey"),
        )

    # ---------- command builders ----------

    def call_command(self, func_name: str, args: Sequence[str] = (), send: str = "") -> List[str]:
        cmd = [
            self.gnokey_bin, "maketx", "call",
            "--pkgpath", self.realm_path,
            "--func", func_name,
            "--gas-fee", self.gas_fee,
            "--gas-wanted", str(self.gas_wanted),
            "--broadcast",
            "--chainid", self.chain_id,
            "--remote", self.remote,
        ]
        for a in args:
            cmd += ["--args", a]
        if send:
            cmd += ["--send", send]
        cmd.append(self.key_name)
        return cmd

    def query_command(self, func_name: str, args: Sequence[str] = ()) -> List[str]:
        data = f"{self.realm_path}.{func_name}({','.join(format_args(args))})"
        return [self.gnokey_bin, "query", "vm/qeval", "--remote", self.remote, "--data", data]

    # ---------- capabilities ----------

    def call_function(self, func_name: str, args: Sequence[str] = (), send: str = "") -> None:
        """
        Signs and broadcasts a call. stdin stays attached so gnokey can prompt
        for the key password.
        """
        cmd = self.call_command(func_name, args, send)
        # the user is about to sign this, so it is always shown
        print("Executing:")
        print(render_command(cmd))
        print()

        try:
            if self.verbose:
                proc = subprocess.run(cmd, stdin=sys.stdin, check=False)
            else:
                print("Password: ", end="", flush=True)
                proc = subprocess.run(
                    cmd,
                    stdin=sys.stdin,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    check=False,
                )
                print()
        except FileNotFoundError:
            raise GnokeyError(f"gnokey binary not found: {self.gnokey_bin}")

        if self.verbose:
            if proc.returncode != 0:
                raise GnokeyError(f"gnokey maketx call {func_name} failed (rc={proc.returncode})")
            return

        if proc.returncode != 0:
            err = (proc.stderr or proc.stdout or "")[-_max_err():]
            log.debug("gnokey call %s failed: %s", func_name, err)
            raise parse_contract_error(err)

    def query_function(self, func_name: str, args: Sequence[str] = ()) -> str:
        cmd = self.query_command(func_name, args)
        log.debug("executing: %s", render_command(cmd))
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=_query_timeout(),
                check=False,
            )
        except subprocess.TimeoutExpired:
            raise GnokeyError(f"query {func_name} timed out")
        except FileNotFoundError:
            raise GnokeyError(f"gnokey binary not found: {self.gnokey_bin}")

        output = proc.stdout or ""
        log.debug("query %s output:\n%s", func_name, output)
        if proc.returncode != 0:
            raise parse_contract_error(f"query failed: {output[-_max_err():]}")
        return output

    def query_int64(self, func_name: str) -> int:
        return decode_int64_result(self.query_function(func_name))
