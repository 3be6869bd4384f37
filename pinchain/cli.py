"""pinchain.cli

Command line interface entry point for pinchain.

Design constraints:
- argparse-based.
- Lazy imports: do not import httpx or pydantic at parse time.
- Exit codes carry the verdict: 0 yes, 1 no, 2 usage or config error.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

NETWORKS = ["mainnet", "testnet", "stagenet"]


@dataclass(frozen=True)
class CliContext:
    repo_root: Path


def _repo_root_from_cwd() -> Path:
    return Path.cwd()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pinchain",
        description="Block checkpoint table: pin heights to hashes, refuse deep reorgs.",
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit.")
    parser.add_argument("--network", choices=NETWORKS, default=None, help="Override the configured network.")
    parser.add_argument("--file", type=Path, default=None, help="Checkpoints hashfile (overrides config).")
    parser.add_argument("--remote", action="store_true", help="Also load the remote checkpoint feed.")

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("show", help="Print the merged checkpoint table summary")

    p_check = sub.add_parser("check-block", help="Check one block against the table")
    p_check.add_argument("height", type=int)
    p_check.add_argument("hash")

    p_fork = sub.add_parser("can-fork", help="May an alternative block exist at this height?")
    p_fork.add_argument("chain_height", type=int)
    p_fork.add_argument("block_height", type=int)

    p_verify = sub.add_parser("verify-file", help="Check a hashfile against the hardcoded checkpoints")
    p_verify.add_argument("path", type=Path)

    sub.add_parser("export", help="Print the merged table as hashfile JSON")

    return parser


def _print_version() -> None:
    from pinchain import __version__

    print(f"pinchain v{__version__}")


def _load_config(ctx: CliContext, args: argparse.Namespace):
    from pinchain.core.config import Config
    from pinchain.core.log import configure_logging

    cfg = Config.resolve(ctx.repo_root, network=args.network)
    if args.file is not None:
        cfg = cfg.model_copy(update={"checkpoints_file": args.file.resolve()})
    configure_logging(cfg.logging)
    return cfg


def _open_store(ctx: CliContext, args: argparse.Namespace):
    from pinchain.checkpoints.store import CheckpointStore

    cfg = _load_config(ctx, args)
    enable_remote = True if args.remote else None
    return CheckpointStore.bootstrap(cfg, enable_remote=enable_remote)


def _cmd_show(ctx: CliContext, args: argparse.Namespace) -> int:
    store = _open_store(ctx, args)
    table = store.table
    print("pinchain checkpoints")
    print(f"- points: {len(table)}")
    print(f"- difficulty points: {len(table.get_difficulty_points())}")
    print(f"- max height: {table.get_max_height()}")
    for report in store.reports:
        print(
            f"- source {report.source}: added={report.added} below_floor={report.below_floor} "
            f"malformed={report.malformed} conflicts={report.conflicts}"
        )
    return 0


def _cmd_check_block(ctx: CliContext, args: argparse.Namespace) -> int:
    from pinchain.core.exceptions import MalformedRecordError
    from pinchain.core.types import parse_hash

    try:
        block_hash = parse_hash(args.hash)
    except MalformedRecordError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    store = _open_store(ctx, args)
    accepted, is_checkpoint = store.check_block(args.height, block_hash)
    label = "checkpoint" if is_checkpoint else "unpinned"
    print(f"{'accepted' if accepted else 'rejected'} ({label}) height={args.height}")
    return 0 if accepted else 1


def _cmd_can_fork(ctx: CliContext, args: argparse.Namespace) -> int:
    store = _open_store(ctx, args)
    allowed = store.is_alternative_block_allowed(args.chain_height, args.block_height)
    print(f"{'allowed' if allowed else 'forbidden'} chain_height={args.chain_height} block_height={args.block_height}")
    return 0 if allowed else 1


def _cmd_verify_file(ctx: CliContext, args: argparse.Namespace) -> int:
    from pinchain.checkpoints.conflicts import find_conflicts
    from pinchain.checkpoints.defaults import init_defaults
    from pinchain.checkpoints.loader import apply_entries
    from pinchain.checkpoints.sources import read_hashfile
    from pinchain.checkpoints.table import CheckpointTable
    from pinchain.core.exceptions import UnparseableSourceError

    cfg = _load_config(ctx, args)

    try:
        hashfile = read_hashfile(args.path)
    except UnparseableSourceError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    if hashfile is None:
        print(f"error: file not found: {args.path}", file=sys.stderr)
        return 2

    defaults = CheckpointTable()
    init_defaults(defaults, cfg.network)

    candidate = CheckpointTable()
    report = apply_entries(candidate, hashfile.raw_entries(), -1, strict=False, source=str(args.path))

    conflicts = find_conflicts(defaults, candidate)
    for c in conflicts:
        print(f"conflict height={c.height} kind={c.kind} ours={c.ours} theirs={c.theirs}")
    new = [h for h in candidate.heights() if h > defaults.get_max_height()]
    print(f"records={len(hashfile.hashlines)} malformed={report.malformed} duplicates={report.conflicts}")
    print(f"new above {defaults.get_max_height()}: {len(new)}")

    ok = not conflicts and report.conflicts == 0
    print("ok" if ok else "conflicts found")
    return 0 if ok else 1


def _cmd_export(ctx: CliContext, args: argparse.Namespace) -> int:
    from pinchain.checkpoints.sources import dump_hashfile

    store = _open_store(ctx, args)
    print(dump_hashfile((e.height, e.hash) for e in store.table.entries()))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        _print_version()
        return 0

    if not args.command:
        parser.print_help()
        return 2

    ctx = CliContext(repo_root=_repo_root_from_cwd())

    dispatch: dict[str, Callable[[CliContext, argparse.Namespace], int]] = {
        "show": _cmd_show,
        "check-block": _cmd_check_block,
        "can-fork": _cmd_can_fork,
        "verify-file": _cmd_verify_file,
        "export": _cmd_export,
    }

    fn = dispatch.get(str(args.command))
    if fn is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 2

    from pinchain.core.exceptions import CheckpointLoadError, ConfigError

    try:
        return int(fn(ctx, args))
    except ConfigError as e:
        print(f"config error: {e}", file=sys.stderr)
        return 2
    except CheckpointLoadError as e:
        print(f"checkpoint load failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
