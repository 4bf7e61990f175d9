"""
Merkle Airdrop Distributor - Tree Build Job

Turns an allocation list into the two artifacts handed to claimants:

1. Read (address, amount) rows
2. Encode leaves and build the Merkle tree
3. Check that the serialized tree restores to the same root
4. Write the tree artifact and the proof artifact together

Nothing is written unless every step succeeds.
"""

import csv
import os
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import structlog

from airdrop.crypto.leaf import InputError
from airdrop.crypto.merkle import AllocationTree
from airdrop.crypto.store import SerializationError, dump_tree, load_tree, write_artifacts
from airdrop.metrics import get_airdrop_metrics

logger = structlog.get_logger(__name__)

CSV_FIELDS = ("address", "amount")


@dataclass
class BuildResult:
    """Result of a tree build job."""

    root: str
    leaf_count: int
    total_amount: int
    tree_path: str
    proofs_path: str
    duration_seconds: float

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "root": self.root,
            "leaf_count": self.leaf_count,
            "total_amount": str(self.total_amount),
            "tree_path": self.tree_path,
            "proofs_path": self.proofs_path,
            "duration_seconds": round(self.duration_seconds, 3),
        }


def load_allocation_csv(path: str | os.PathLike) -> list[tuple[str, str]]:
    """
    Read allocation rows from a CSV file with an address,amount header.

    Blank lines are skipped; a row missing either field is an error.

    Raises:
        InputError: On a missing header, incomplete rows or an empty file
    """
    rows = []
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        fieldnames = [name.strip() for name in reader.fieldnames or []]
        if not all(name in fieldnames for name in CSV_FIELDS):
            raise InputError(f"CSV needs header: {','.join(CSV_FIELDS)}")
        reader.fieldnames = fieldnames

        for row in reader:
            address = (row.get("address") or "").strip()
            amount = (row.get("amount") or "").strip()
            if not address and not amount:
                continue
            if not address or not amount:
                raise InputError(f"Incomplete row at line {reader.line_num}")
            rows.append((address, amount))

    if not rows:
        raise InputError(f"No allocation rows in {path}")

    logger.info("Loaded allocation CSV", path=str(path), rows=len(rows))
    return rows


def build_tree(rows: Iterable[tuple[str, int | str]]) -> AllocationTree:
    """
    Build the allocation tree and check its artifact round trip.

    Raises:
        InputError: On malformed or duplicate allocations
        SerializationError: If the artifact does not restore to the same tree
    """
    metrics = get_airdrop_metrics()
    start = time.perf_counter()

    tree = AllocationTree.build(rows)

    restored = load_tree(dump_tree(tree))
    if restored.root != tree.root:
        raise SerializationError("Tree artifact does not restore to the built root")

    duration = time.perf_counter() - start
    metrics.record_merkle_build(duration, tree.leaf_count)

    logger.info(
        "Built Merkle tree",
        leaves=tree.leaf_count,
        root=tree.root_hex,
        duration_seconds=round(duration, 3),
    )
    return tree


def run_build_job(
    rows: Iterable[tuple[str, int | str]],
    tree_path: str | os.PathLike,
    proofs_path: str | os.PathLike,
) -> BuildResult:
    """
    Build and persist the tree and proof artifacts.

    Args:
        rows: (address, amount) allocations
        tree_path: Destination of the tree artifact
        proofs_path: Destination of the proof artifact

    Returns:
        BuildResult describing the committed tree

    Raises:
        InputError: On malformed input; no artifact is written
        SerializationError: On encoding failure; no artifact is written
    """
    job_start = time.perf_counter()

    logger.info("Starting tree build job", tree_path=str(tree_path), proofs_path=str(proofs_path))

    try:
        tree = build_tree(rows)
        write_artifacts(tree, tree_path, proofs_path)
    except (InputError, SerializationError) as e:
        logger.error("Tree build job failed", error=str(e))
        raise

    result = BuildResult(
        root=tree.root_hex,
        leaf_count=tree.leaf_count,
        total_amount=sum(leaf.amount for leaf in tree.leaves),
        tree_path=str(tree_path),
        proofs_path=str(proofs_path),
        duration_seconds=time.perf_counter() - job_start,
    )

    logger.info("Tree build job completed", **result.to_dict())
    return result
