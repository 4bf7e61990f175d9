"""
Merkle Airdrop Distributor - Cryptographic Utilities

Provides leaf encoding, Merkle tree construction, proof generation,
verification, and tree artifact storage.
"""

from airdrop.crypto.leaf import InputError, Leaf, leaf_hash
from airdrop.crypto.merkle import (
    AllocationTree,
    compute_root_from_proof,
    hash_pair,
    verify_proof,
)
from airdrop.crypto.store import SerializationError, dump_tree, load_tree

__all__ = [
    "AllocationTree",
    "InputError",
    "Leaf",
    "SerializationError",
    "compute_root_from_proof",
    "dump_tree",
    "hash_pair",
    "leaf_hash",
    "load_tree",
    "verify_proof",
]
