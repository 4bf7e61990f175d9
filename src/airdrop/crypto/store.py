"""
Merkle Airdrop Distributor - Tree Artifact Storage

Serializes an AllocationTree to a versioned JSON artifact and restores it.

Artifact schema (format "airdrop-merkle-v1"):

    {
        "format": "airdrop-merkle-v1",
        "leafEncoding": ["address", "uint256"],
        "leaves": [{"value": ["0x...", "500"], "treeIndex": 3}, ...],
        "nodeHashes": ["0x...", ...],
        "root": "0x..."
    }

- leaves are in build order; treeIndex is the leaf's position in level 0
- amounts are decimal strings
- nodeHashes hold every level flattened bottom-up; level sizes follow from
  the leaf count

Loading validates the whole payload (recomputed leaf hashes, every internal
node, the root) before a tree is returned.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import structlog

from airdrop.crypto.leaf import LEAF_ENCODING, InputError, Leaf, normalize_address
from airdrop.crypto.merkle import (
    AllocationTree,
    hash_pair,
    hash_to_hex,
    hex_to_hash,
    level_sizes,
)

logger = structlog.get_logger(__name__)

FORMAT_VERSION = "airdrop-merkle-v1"


class SerializationError(ValueError):
    """Raised when an artifact cannot be encoded or decoded."""

    pass


def dump_tree(tree: AllocationTree) -> dict[str, Any]:
    """
    Serialize a tree to its artifact dictionary.

    Args:
        tree: Built allocation tree

    Returns:
        JSON-compatible artifact
    """
    return {
        "format": FORMAT_VERSION,
        "leafEncoding": list(LEAF_ENCODING),
        "leaves": [
            {"value": leaf.to_value(), "treeIndex": tree.tree_index(i)}
            for i, leaf in enumerate(tree.leaves)
        ],
        "nodeHashes": [hash_to_hex(h) for level in tree.levels for h in level],
        "root": tree.root_hex,
    }


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise SerializationError(message)


def load_tree(data: dict[str, Any]) -> AllocationTree:
    """
    Restore a tree from its artifact dictionary.

    Args:
        data: Artifact as produced by dump_tree()

    Returns:
        Reconstructed AllocationTree

    Raises:
        SerializationError: On unknown format, unsupported encoding or any
            structural or hash inconsistency
    """
    _require(isinstance(data, dict), "Tree artifact must be a JSON object")
    _require(
        data.get("format") == FORMAT_VERSION,
        f"Unknown tree format: {data.get('format')!r}",
    )
    _require(
        data.get("leafEncoding") == list(LEAF_ENCODING),
        f"Unsupported leaf encoding: {data.get('leafEncoding')!r}",
    )

    raw_leaves = data.get("leaves")
    raw_nodes = data.get("nodeHashes")
    _require(isinstance(raw_leaves, list) and raw_leaves, "Tree artifact has no leaves")
    _require(isinstance(raw_nodes, list), "Tree artifact has no nodeHashes")

    try:
        nodes = [hex_to_hash(h) for h in raw_nodes]
        root = hex_to_hash(data.get("root"))
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Malformed hash in tree artifact: {e}") from e

    sizes = level_sizes(len(raw_leaves))
    _require(
        len(nodes) == sum(sizes),
        f"Expected {sum(sizes)} node hashes for {len(raw_leaves)} leaves, got {len(nodes)}",
    )

    levels = []
    offset = 0
    for size in sizes:
        levels.append(nodes[offset:offset + size])
        offset += size

    leaves = []
    tree_indexes = []
    for i, entry in enumerate(raw_leaves):
        try:
            address, amount = entry["value"]
            tree_index = entry["treeIndex"]
            leaf = Leaf.create(address, amount)
        except (KeyError, TypeError, ValueError) as e:
            raise SerializationError(f"Malformed leaf {i}: {e}") from e

        _require(
            isinstance(tree_index, int) and 0 <= tree_index < sizes[0],
            f"Leaf {i} has invalid treeIndex {tree_index!r}",
        )
        _require(
            levels[0][tree_index] == leaf.hash,
            f"Leaf {i} hash does not match node {tree_index}",
        )
        leaves.append(leaf)
        tree_indexes.append(tree_index)

    _require(len(set(tree_indexes)) == len(tree_indexes), "Duplicate treeIndex in leaves")
    _require(
        len({leaf.address for leaf in leaves}) == len(leaves),
        "Duplicate address in leaves",
    )
    _require(
        levels[0] == sorted(levels[0]),
        "Leaf hashes are not in tree order",
    )

    for depth in range(1, len(levels)):
        below = levels[depth - 1]
        for position, node in enumerate(levels[depth]):
            left = 2 * position
            if left + 1 < len(below):
                expected = hash_pair(below[left], below[left + 1])
            else:
                expected = below[left]
            _require(node == expected, f"Node {position} at level {depth} is inconsistent")

    _require(levels[-1][0] == root, "Root does not match node hashes")

    return AllocationTree(leaves, levels, tree_indexes)


def _stage_json(payload: Any, destination: Path) -> Path:
    """Write JSON to a temporary file beside the destination."""
    destination.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{destination.name}.",
        suffix=".tmp",
        dir=destination.parent,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
            f.write("\n")
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return Path(tmp_name)


def _write_json_atomic(payload: Any, path: str | os.PathLike) -> None:
    """Write JSON next to the destination, then rename over it."""
    destination = Path(path)
    staged = _stage_json(payload, destination)
    try:
        os.replace(staged, destination)
    except BaseException:
        staged.unlink(missing_ok=True)
        raise


def _read_json(path: str | os.PathLike) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SerializationError(f"Corrupted artifact {path}: {e}") from e


def write_tree(tree: AllocationTree, path: str | os.PathLike) -> None:
    """Persist a tree artifact atomically."""
    _write_json_atomic(dump_tree(tree), path)
    logger.info("Wrote tree artifact", path=str(path), leaves=tree.leaf_count)


def read_tree(path: str | os.PathLike) -> AllocationTree:
    """
    Load and validate a tree artifact from disk.

    Raises:
        SerializationError: On corrupted or unsupported artifacts
        OSError: If the file cannot be read
    """
    tree = load_tree(_read_json(path))
    logger.info(
        "Loaded tree artifact",
        path=str(path),
        leaves=tree.leaf_count,
        root=tree.root_hex,
    )
    return tree


def dump_proofs(tree: AllocationTree) -> dict[str, list[str]]:
    """Build the proof artifact for every leaf."""
    return tree.to_proof_map()


def load_proofs(data: dict[str, Any]) -> dict[str, list[bytes]]:
    """
    Decode a proof artifact.

    Raises:
        SerializationError: On malformed addresses or hashes
    """
    _require(isinstance(data, dict), "Proof artifact must be a JSON object")

    proofs = {}
    for address, path in data.items():
        _require(isinstance(path, list), f"Proof for {address} must be a list")
        try:
            proofs[normalize_address(address)] = [hex_to_hash(h) for h in path]
        except (InputError, TypeError, ValueError) as e:
            raise SerializationError(f"Malformed proof for {address}: {e}") from e
    return proofs


def write_proofs(proofs: dict[str, list[str]], path: str | os.PathLike) -> None:
    """Persist a proof artifact atomically."""
    _write_json_atomic(proofs, path)
    logger.info("Wrote proof artifact", path=str(path), addresses=len(proofs))


def read_proofs(path: str | os.PathLike) -> dict[str, list[bytes]]:
    """Load and decode a proof artifact from disk."""
    return load_proofs(_read_json(path))


def write_artifacts(
    tree: AllocationTree,
    tree_path: str | os.PathLike,
    proofs_path: str | os.PathLike,
) -> None:
    """
    Persist the tree and proof artifacts together.

    Both payloads are fully serialized and staged before either destination
    is replaced, so an encoding or disk error leaves no new artifact behind.
    """
    staged: list[tuple[Path, Path]] = []
    try:
        for payload, path in (
            (dump_tree(tree), tree_path),
            (dump_proofs(tree), proofs_path),
        ):
            destination = Path(path)
            staged.append((_stage_json(payload, destination), destination))

        for tmp_path, destination in staged:
            os.replace(tmp_path, destination)
    except BaseException:
        for tmp_path, _ in staged:
            tmp_path.unlink(missing_ok=True)
        raise

    logger.info(
        "Wrote tree and proof artifacts",
        tree_path=str(tree_path),
        proofs_path=str(proofs_path),
        leaves=tree.leaf_count,
    )
