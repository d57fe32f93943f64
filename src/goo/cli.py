from __future__ import annotations

"""
goo: command line client for the goo optimistic oracle realm.

  goo config init|show|set
  goo request create|get|retrieve-fund
  goo propose value|resolve
  goo dispute create|get|resolve
  goo vote buy-token|balance|commit|reveal|show
  goo query result|params|list|render
  goo admin set-resolution-duration|set-reward|set-bond|change-admin
"""

import argparse
import logging
import sys
from datetime import timedelta
from typing import Callable, Dict, List, Optional

from goo import __version__
from goo.config import Config, config_path, init_config, load_config, mask_secret, set_value
from goo.errors import DecodeError, GooError, VoteStoreError
from goo.format import (
    format_address,
    format_duration,
    format_ugnot,
    parse_deadline,
    print_error,
    print_info,
    print_kv,
    print_section,
    print_success,
    print_warning,
    truncate,
)
from goo.gnokey import GnokeyExecutor
from goo.records import RequestState, decode_dispute, decode_request, decode_request_ids
from goo.vote_store import VoteStore
from goo.voting import commit_vote, reveal_vote


PARAMS = [
    ("Bond", "GetBond", "ugnot"),
    ("Resolution Time", "GetResolutionTime", "seconds"),
    ("Requester Reward", "GetRequesterReward", "ugnot"),
    ("Dispute Duration", "GetDisputeDuration", "seconds"),
    ("Reveal Duration", "GetRevealDuration", "seconds"),
    ("Vote Token Price", "GetVoteTokenPrice", "ugnot"),
]


def build_executor(cfg: Config, verbose: bool = False) -> GnokeyExecutor:
    return GnokeyExecutor.from_config(cfg, verbose=verbose)


def _executor(args: argparse.Namespace) -> GnokeyExecutor:
    cfg = load_config(key_override=args.key or "")
    return build_executor(cfg, verbose=args.verbose)


def _show(value: object) -> object:
    return "N/A" if value is None else value


def _with_unit(value: int, unit: str) -> str:
    if unit == "seconds":
        return f"{value} seconds ({format_duration(timedelta(seconds=value))})"
    if unit == "ugnot":
        return format_ugnot(value)
    return str(value)


def _print_raw_on_verbose(args: argparse.Namespace, what: str, err: Exception, raw: str) -> None:
    if args.verbose:
        print_error(f"Failed to parse {what}: {err}")
        print(raw)


# ---------- config ----------

def cmd_config_init(args: argparse.Namespace) -> int:
    path = init_config(google_api_key=args.google_api_key or "")
    cfg = load_config(path)
    print_success(f"Config file created at {path}")
    print()
    print("Configuration:")
    print(f"  Key Name:       {cfg.keyname}")
    print(f"  Realm Path:     {cfg.realm_path}")
    print(f"  Chain ID:       {cfg.chain_id}")
    print(f"  Remote:         {cfg.remote}")
    print(f"  Gas Fee:        {cfg.gas_fee}")
    print(f"  Gas Wanted:     {cfg.gas_wanted}")
    print(f"  Google API Key: {mask_secret(cfg.google_api_key)}")
    print()
    print("Edit this file to customize your settings.")
    return 0


def cmd_config_show(args: argparse.Namespace) -> int:
    cfg = load_config(key_override=args.key or "")
    print_section("Current Configuration")
    print_kv("Key Name", cfg.keyname)
    print_kv("Realm Path", cfg.realm_path)
    print_kv("Chain ID", cfg.chain_id)
    print_kv("Remote", cfg.remote)
    print_kv("Gas Fee", cfg.gas_fee)
    print_kv("Gas Wanted", cfg.gas_wanted)
    print_kv("Google API Key", mask_secret(cfg.google_api_key))
    print()
    print_info(f"Config file: {config_path()}")
    return 0


def cmd_config_set(args: argparse.Namespace) -> int:
    set_value(args.name, args.value)
    print_success(f"{args.name} updated in {config_path()}")
    return 0


# ---------- requests ----------

def cmd_request_create(args: argparse.Namespace) -> int:
    ex = _executor(args)
    deadline = parse_deadline(args.deadline)

    reward = args.reward
    if reward == 0:
        print_info("Querying default requester reward from contract...")
        reward = ex.query_int64("GetRequesterReward")
        print_info(f"Default reward: {format_ugnot(reward)}")

    func_args = [args.question, "true" if args.yesno else "false", str(int(deadline.timestamp()))]
    ex.call_function("RequestData", func_args, f"{reward}ugnot")

    print_success("Request created successfully!")
    print_info(f"Question: {args.question}")
    print_info("Type: yes/no question" if args.yesno else "Type: numeric")
    print_info(f"Deadline: {deadline.isoformat().replace('+00:00', 'Z')}")
    print_info(f"Reward sent: {format_ugnot(reward)}")
    return 0


def cmd_request_get(args: argparse.Namespace) -> int:
    raw = _executor(args).query_function("GetRequest", [args.request_id])
    try:
        req = decode_request(raw)
    except DecodeError as e:
        _print_raw_on_verbose(args, "request", e, raw)
        raise

    print_section(f"Request {_show(req.id)}")
    print()
    print("Basic Information:")
    print_kv("  Request ID", _show(req.id))
    print_kv("  State", req.state)
    print_kv("  Creator", _show(req.creator))
    print_kv("  Question", _show(req.question))
    print_kv("  Type", "Yes/No Question" if req.is_yes_no else "Numeric")
    print_kv("  Created", req.created_at)
    print_kv("  Deadline", req.deadline)

    print()
    print("Proposal Information:")
    if req.proposer:
        print_kv("  Proposer", req.proposer)
        print_kv("  Proposed Value", _show(req.proposed_value))
        print_kv("  Proposer Bond", format_ugnot(req.proposer_bond or 0))
        print_kv("  Resolution Time", req.resolution_time)
    else:
        print_kv("  Status", "No proposal yet")

    print()
    print("Dispute Information:")
    if req.disputer:
        print_kv("  Disputer", req.disputer)
        print_kv("  Disputer Bond", format_ugnot(req.disputer_bond or 0))
    else:
        print_kv("  Status", "Not disputed")

    if req.state is RequestState.RESOLVED:
        print()
        print("Resolution:")
        print_kv("  Winning Value", _show(req.winning_value))

    if req.missing:
        print()
        print_warning(f"Unreadable fields: {', '.join(req.missing)}")
    print()
    return 0


def cmd_request_retrieve_fund(args: argparse.Namespace) -> int:
    _executor(args).call_function("RequesterRetreiveFund", [args.request_id])
    print_success("Fund retrieval transaction submitted!")
    print_info(f"Request ID: {args.request_id}")
    return 0


# ---------- proposals ----------

def cmd_propose_value(args: argparse.Namespace) -> int:
    ex = _executor(args)
    print_info("Querying required bond amount from contract...")
    bond = ex.query_int64("GetBond")
    print_info(f"Bond required: {format_ugnot(bond)}")
    print()

    ex.call_function("ProposeValue", [args.request_id, args.value], f"{bond}ugnot")

    print_success("Value proposed successfully!")
    print_info(f"Request ID: {args.request_id}")
    print_info(f"Proposed Value: {args.value}")
    print_info(f"Bond sent: {format_ugnot(bond)}")
    return 0


def cmd_propose_resolve(args: argparse.Namespace) -> int:
    _executor(args).call_function("ResolveRequest", [args.request_id])
    print_success("Request resolution submitted!")
    print_info(f"Request ID: {args.request_id}")
    return 0


# ---------- disputes ----------

def cmd_dispute_create(args: argparse.Namespace) -> int:
    ex = _executor(args)
    print_info("Querying required bond amount from contract...")
    bond = ex.query_int64("GetBond")
    print_info(f"Bond required: {format_ugnot(bond)}")

    ex.call_function("DisputeData", [args.request_id], f"{bond}ugnot")

    print_success("Dispute created successfully!")
    print_info(f"Request ID: {args.request_id}")
    print_info("Voting period has started")
    print_info(f"Bond sent: {format_ugnot(bond)}")
    return 0


def cmd_dispute_get(args: argparse.Namespace) -> int:
    raw = _executor(args).query_function("GetDispute", [args.request_id])
    try:
        dispute = decode_dispute(raw)
    except DecodeError as e:
        _print_raw_on_verbose(args, "dispute", e, raw)
        raise

    print_section(f"Dispute for Request {_show(dispute.request_id)}")
    print()
    print("Status:")
    print_kv("  Request ID", _show(dispute.request_id))
    if dispute.is_resolved:
        print_kv("  Status", "Resolved")
        print_kv("  Winning Value", _show(dispute.winning_value))
    else:
        print_kv("  Status", "Active")
    print_kv("  Voting Ends", dispute.end_time)
    print_kv("  Reveal Ends", dispute.end_reveal_time)

    print()
    print("Voting:")
    print_kv("  Total Votes", _show(dispute.vote_count))
    print_kv("  Revealed Votes", _show(dispute.resolved_vote_count))
    print_kv("  Unrevealed Votes", _show(dispute.unrevealed_votes))
    print()
    return 0


def cmd_dispute_resolve(args: argparse.Namespace) -> int:
    _executor(args).call_function("ResolveDispute", [args.request_id])
    print_success("Dispute resolution submitted!")
    print_info(f"Request ID: {args.request_id}")
    return 0


# ---------- votes ----------

def cmd_vote_buy_token(args: argparse.Namespace) -> int:
    ex = _executor(args)
    print_info("Querying vote token price from contract...")
    price = ex.query_int64("GetVoteTokenPrice")
    print_info(f"Vote token price: {format_ugnot(price)}")

    ex.call_function("BuyInitialVoteToken", [], f"{price}ugnot")

    print_success("Vote token purchase submitted!")
    return 0


def cmd_vote_balance(args: argparse.Namespace) -> int:
    result = _executor(args).query_function("BalanceOfVoteToken")
    print_success("Vote token balance:")
    print(result)
    return 0


def cmd_vote_commit(args: argparse.Namespace) -> int:
    ex = _executor(args)
    store = VoteStore()
    if not args.salt:
        print_warning("No salt given; a random salt will be generated and saved locally")

    record = commit_vote(ex, store, request_id=args.request_id, value=args.value, salt=args.salt or None)

    print_success("Vote committed successfully!")
    print_info(f"Request ID: {record.request_id}")
    print_info(f"Value: {record.value}")
    print_info(f"Hash: {record.hash}")
    print_info(f"Vote data saved to {store.path_for(record.request_id)} for the reveal phase")
    return 0


def cmd_vote_reveal(args: argparse.Namespace) -> int:
    record = reveal_vote(_executor(args), VoteStore(), request_id=args.request_id)
    print_success("Vote revealed successfully!")
    print_info(f"Request ID: {record.request_id}")
    print_info(f"Value: {record.value}")
    return 0


def cmd_vote_show(args: argparse.Namespace) -> int:
    store = VoteStore()
    ids = [args.request_id] if args.request_id else store.list_ids()
    if not ids:
        print_info(f"No votes stored in {store.votes_dir}")
        return 0
    failed = 0
    for rid in ids:
        try:
            record = store.get(rid)
        except (VoteStoreError, ValueError) as e:
            # a single requested id fails the command; a listing skips the bad record
            if args.request_id:
                raise
            print_error(f"{rid}: {e}")
            failed += 1
            continue
        print_section(f"Vote for Request {record.request_id}")
        print_kv("Value", record.value)
        print_kv("Salt", record.salt if args.reveal_salt else mask_secret(record.salt))
        print_kv("Hash", record.hash)
        print_kv("Saved", record.timestamp or "N/A")
    print()
    return 1 if failed else 0


# ---------- queries ----------

def cmd_query_result(args: argparse.Namespace) -> int:
    _executor(args).call_function("RequestResult", [args.request_id])
    print_success(f"Result query for request {args.request_id} executed successfully!")
    return 0


def cmd_query_params(args: argparse.Namespace) -> int:
    ex = _executor(args)
    print_section("Oracle Parameters")
    for name, func, unit in PARAMS:
        try:
            value = ex.query_int64(func)
        except GooError as e:
            print_error(f"Failed to query {name}: {e}")
            continue
        print_kv(name, _with_unit(value, unit))
    return 0


def cmd_query_list(args: argparse.Namespace) -> int:
    ex = _executor(args)
    ids = decode_request_ids(ex.query_function("GetRequestIds"))
    wanted = RequestState.parse(args.state) if args.state else None
    if args.state and wanted is RequestState.UNKNOWN:
        raise GooError(f"unknown state '{args.state}' (use Requested, Proposed, Disputed or Resolved)")

    print_section("Requests" if wanted is None else f"Requests ({wanted})")
    shown = 0
    for rid in ids:
        try:
            req = decode_request(ex.query_function("GetRequest", [rid]))
        except DecodeError as e:
            print_warning(f"Request {rid}: {e}")
            continue
        if wanted is not None and req.state is not wanted:
            continue
        shown += 1
        question = truncate(req.question, 50) if req.question is not None else "N/A"
        print_kv(rid, f"[{req.state}] {question}  by {format_address(req.creator or '')}")
    print()
    print_info(f"{shown} request(s)")
    return 0


def cmd_query_render(args: argparse.Namespace) -> int:
    print(_executor(args).query_function("Render", [""]))
    return 0


# ---------- admin ----------

def _admin_call(func: str, label: str, unit: str) -> Callable[[argparse.Namespace], int]:
    def run(args: argparse.Namespace) -> int:
        _executor(args).call_function(func, [str(args.value)])
        print_success(f"{label} updated")
        print_info(f"New value: {_with_unit(args.value, unit)}")
        return 0
    return run


# ---------- parser ----------

def _subcommands(sub: argparse._SubParsersAction, name: str, help_: str) -> argparse._SubParsersAction:
    p = sub.add_parser(name, help=help_)
    inner = p.add_subparsers(dest=f"{name}_command", metavar="<command>")
    inner.required = True
    return inner


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="goo", description="Client for the goo optimistic oracle on gno.land")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("-k", "--key", default="", help="gnokey key name (overrides config)")
    ap.add_argument("-v", "--verbose", action="store_true", help="show gnokey output and debug logs")
    sub = ap.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    cfg = _subcommands(sub, "config", "Manage CLI configuration")
    p = cfg.add_parser("init", help="Create ~/.goo/config.yaml with defaults")
    p.add_argument("--google-api-key", default="")
    p.set_defaults(func=cmd_config_init)
    p = cfg.add_parser("show", help="Show current configuration")
    p.set_defaults(func=cmd_config_show)
    p = cfg.add_parser("set", help="Set one configuration key")
    p.add_argument("name")
    p.add_argument("value")
    p.set_defaults(func=cmd_config_set)

    req = _subcommands(sub, "request", "Create, query and manage data requests")
    p = req.add_parser("create", help="Create a new data request")
    p.add_argument("--question", required=True)
    p.add_argument("--yesno", action="store_true", help="yes/no question (default: numeric)")
    p.add_argument("--deadline", required=True, help="RFC3339, e.g. 2025-10-28T12:00:00Z")
    p.add_argument("--reward", type=int, default=0, help="ugnot (default: query from contract)")
    p.set_defaults(func=cmd_request_create)
    p = req.add_parser("get", help="Get details of a request")
    p.add_argument("request_id")
    p.set_defaults(func=cmd_request_get)
    p = req.add_parser("retrieve-fund", help="Retrieve the reward of an unfulfilled request")
    p.add_argument("request_id")
    p.set_defaults(func=cmd_request_retrieve_fund)

    prop = _subcommands(sub, "propose", "Propose values and resolve requests")
    p = prop.add_parser("value", help="Propose a value (sends the bond)")
    p.add_argument("request_id")
    p.add_argument("value")
    p.set_defaults(func=cmd_propose_value)
    p = prop.add_parser("resolve", help="Resolve an undisputed request")
    p.add_argument("request_id")
    p.set_defaults(func=cmd_propose_resolve)

    disp = _subcommands(sub, "dispute", "Create, query and resolve disputes")
    p = disp.add_parser("create", help="Dispute a proposed value (sends the bond)")
    p.add_argument("request_id")
    p.set_defaults(func=cmd_dispute_create)
    p = disp.add_parser("get", help="Get details of a dispute")
    p.add_argument("request_id")
    p.set_defaults(func=cmd_dispute_get)
    p = disp.add_parser("resolve", help="Resolve a dispute after the reveal period")
    p.add_argument("request_id")
    p.set_defaults(func=cmd_dispute_resolve)

    vote = _subcommands(sub, "vote", "Commit-reveal voting on disputes")
    p = vote.add_parser("buy-token", help="Buy the initial vote token")
    p.set_defaults(func=cmd_vote_buy_token)
    p = vote.add_parser("balance", help="Show vote token balance")
    p.set_defaults(func=cmd_vote_balance)
    p = vote.add_parser("commit", help="Commit a hashed vote")
    p.add_argument("request_id")
    p.add_argument("value")
    p.add_argument("--salt", default="", help="auto-generated if omitted")
    p.set_defaults(func=cmd_vote_commit)
    p = vote.add_parser("reveal", help="Reveal a committed vote from local storage")
    p.add_argument("request_id")
    p.set_defaults(func=cmd_vote_reveal)
    p = vote.add_parser("show", help="Show locally stored votes")
    p.add_argument("request_id", nargs="?", default="")
    p.add_argument("--reveal-salt", action="store_true", help="print the full salt")
    p.set_defaults(func=cmd_vote_show)

    query = _subcommands(sub, "query", "Read-only oracle queries")
    p = query.add_parser("result", help="Get the result of a resolved request (signed call)")
    p.add_argument("request_id")
    p.set_defaults(func=cmd_query_result)
    p = query.add_parser("params", help="Show oracle parameters")
    p.set_defaults(func=cmd_query_params)
    p = query.add_parser("list", help="List requests")
    p.add_argument("--state", default="", help="Requested, Proposed, Disputed or Resolved")
    p.set_defaults(func=cmd_query_list)
    p = query.add_parser("render", help="Print the realm's Render() output")
    p.set_defaults(func=cmd_query_render)

    admin = _subcommands(sub, "admin", "Admin-only parameter changes")
    admin_cmds: Dict[str, tuple] = {
        "set-resolution-duration": ("SetResolutionDuration", "Resolution duration", "seconds"),
        "set-reward": ("SetrequesterReward", "Requester reward", "ugnot"),
        "set-bond": ("SetBond", "Bond", "ugnot"),
        "change-admin": ("ChangeAdmin", "Admin", "address"),
    }
    for name, (func, label, metavar) in admin_cmds.items():
        p = admin.add_parser(name, help=f"{label} ({metavar})")
        p.add_argument("value", metavar=metavar, type=str if metavar == "address" else int)
        p.set_defaults(func=_admin_call(func, label, metavar))

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (GooError, FileExistsError, ValueError) as e:
        print_error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
