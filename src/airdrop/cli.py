"""
Merkle Airdrop Distributor - Command Line

Commands:
- build: CSV allocations -> tree.json and proofs.json
- proof: print the proof for one address from a tree artifact
- verify: check an (address, amount) pair against a tree artifact
- serve: run the HTTP service
"""

import argparse
import json
import sys

import structlog

from airdrop.core.config import settings
from airdrop.core.logging import setup_logging
from airdrop.crypto.leaf import InputError, leaf_hash, normalize_address
from airdrop.crypto.merkle import hash_to_hex, verify_proof
from airdrop.crypto.store import SerializationError, read_tree
from airdrop.services.batch import load_allocation_csv, run_build_job

logger = structlog.get_logger(__name__)


def cmd_build(args: argparse.Namespace) -> int:
    rows = load_allocation_csv(args.csv)
    result = run_build_job(rows, args.tree, args.proofs)
    print(json.dumps(result.to_dict(), indent=2))
    return 0


def cmd_proof(args: argparse.Namespace) -> int:
    tree = read_tree(args.tree)
    try:
        index = tree.index_of(args.address)
    except KeyError:
        print(f"Address not found in tree: {args.address}", file=sys.stderr)
        return 1

    leaf = tree.get_leaf(index)
    print(json.dumps(
        {
            "address": leaf.address,
            "amount": str(leaf.amount),
            "proof": [hash_to_hex(h) for h in tree.get_proof(index)],
            "root": tree.root_hex,
        },
        indent=2,
    ))
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    tree = read_tree(args.tree)
    address = normalize_address(args.address)
    try:
        proof = tree.proof_for_address(address)
    except KeyError:
        print(f"Address not found in tree: {address}", file=sys.stderr)
        return 1

    valid = verify_proof(tree.root, leaf_hash(address, args.amount), proof)
    print(f"Valid proof: {valid}")
    return 0 if valid else 1


def cmd_serve(args: argparse.Namespace) -> int:
    from airdrop.main import main as serve

    serve()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="airdrop",
        description="Merkle airdrop tree builder and distributor",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p = sub.add_parser("build", help="build tree and proof artifacts from a CSV")
    p.add_argument("--csv", required=True, help="CSV with address,amount header")
    p.add_argument("--tree", default=settings.TREE_PATH)
    p.add_argument("--proofs", default=settings.PROOFS_PATH)
    p.set_defaults(func=cmd_build)

    p = sub.add_parser("proof", help="print the proof for an address")
    p.add_argument("--tree", default=settings.TREE_PATH)
    p.add_argument("--address", required=True)
    p.set_defaults(func=cmd_proof)

    p = sub.add_parser("verify", help="verify an allocation against a tree")
    p.add_argument("--tree", default=settings.TREE_PATH)
    p.add_argument("--address", required=True)
    p.add_argument("--amount", required=True)
    p.set_defaults(func=cmd_verify)

    p = sub.add_parser("serve", help="run the HTTP service")
    p.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)

    try:
        return args.func(args)
    except (InputError, SerializationError, OSError) as e:
        logger.error("Command failed", command=args.cmd, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
