"""
Merkle Airdrop Distributor - Merkle Tree Implementation

Builds the allocation tree, generates inclusion proofs and verifies them.

Conventions (these fix the root value, so they must never change for an
issued tree):
- Leaves are double-hashed (address, uint256) allocations, see crypto.leaf
- Leaf hashes are sorted ascending before building, so the root depends only
  on the set of allocations, not on input order
- Siblings are combined as keccak256(min(a, b) || max(a, b)); a verifier
  needs only the sibling values, never their left/right position
- For odd-sized levels the last node is promoted (not duplicated) and adds
  no element to the proofs that pass through it
"""

from collections.abc import Iterable, Sequence

from eth_utils import decode_hex, encode_hex, keccak

from airdrop.crypto.leaf import HASH_LENGTH, InputError, Leaf, normalize_address


def hash_pair(a: bytes, b: bytes) -> bytes:
    """
    Combine two node hashes in sorted byte order.

    Args:
        a: First child hash
        b: Second child hash

    Returns:
        keccak256 of the lesser hash followed by the greater
    """
    if b < a:
        a, b = b, a
    return keccak(a + b)


def hash_to_hex(value: bytes) -> str:
    """Encode a hash as 0x-prefixed lowercase hex."""
    return encode_hex(value)


def hex_to_hash(value: str) -> bytes:
    """
    Decode a 0x-prefixed hex hash.

    Raises:
        ValueError: If the value is not hex or not 32 bytes
    """
    raw = decode_hex(value)
    if len(raw) != HASH_LENGTH:
        raise ValueError(f"Expected a {HASH_LENGTH}-byte hash, got {len(raw)} bytes")
    return raw


def level_sizes(leaf_count: int) -> list[int]:
    """Number of nodes per level, leaves first, root last."""
    sizes = [leaf_count]
    while sizes[-1] > 1:
        sizes.append((sizes[-1] + 1) // 2)
    return sizes


def build_levels(leaf_hashes: Sequence[bytes]) -> list[list[bytes]]:
    """
    Build all tree levels bottom-up from ordered leaf hashes.

    Args:
        leaf_hashes: Level-0 hashes, already in tree order

    Returns:
        Levels from leaves to root; the last level holds only the root
    """
    levels = [list(leaf_hashes)]
    current_level = levels[0]

    while len(current_level) > 1:
        next_level = []

        i = 0
        while i < len(current_level):
            if i + 1 < len(current_level):
                next_level.append(hash_pair(current_level[i], current_level[i + 1]))
                i += 2
            else:
                # Odd case: promote the last node
                next_level.append(current_level[i])
                i += 1

        levels.append(next_level)
        current_level = next_level

    return levels


class AllocationTree:
    """
    Merkle tree over a set of (address, amount) allocations.

    Leaves keep their input order: that index is the stable key used to
    address proofs, and it survives a store/load round trip. Tree order
    (level 0) is the sorted order of leaf hashes.

    Example:
        >>> tree = AllocationTree.build([(alice, 500), (bob, 300)])
        >>> proof = tree.get_proof(0)
        >>> verify_proof(tree.root, tree.get_leaf_hash(0), proof)
        True
    """

    def __init__(
        self,
        leaves: list[Leaf],
        levels: list[list[bytes]],
        tree_indexes: list[int],
    ) -> None:
        """
        Initialize tree (internal use).

        Use build() or from_leaves() to construct trees, or
        crypto.store.load_tree() to restore one.
        """
        self._leaves = leaves
        self._levels = levels
        self._tree_indexes = tree_indexes
        self._index_by_address = {leaf.address: i for i, leaf in enumerate(leaves)}

    @classmethod
    def build(cls, allocations: Iterable[tuple[str, int | str]]) -> "AllocationTree":
        """
        Construct a tree from raw (address, amount) pairs.

        Raises:
            InputError: On malformed rows, duplicate addresses or empty input
        """
        leaves = []
        for row_number, (address, amount) in enumerate(allocations):
            try:
                leaves.append(Leaf.create(address, amount))
            except InputError as e:
                raise InputError(f"Row {row_number}: {e}") from e

        return cls.from_leaves(leaves)

    @classmethod
    def from_leaves(cls, leaves: list[Leaf]) -> "AllocationTree":
        """
        Construct a tree from encoded leaves.

        Raises:
            InputError: If leaves is empty or an address appears twice
        """
        if not leaves:
            raise InputError("Cannot create Merkle tree from empty allocations")

        seen: set[str] = set()
        for leaf in leaves:
            if leaf.address in seen:
                raise InputError(f"Duplicate address in allocations: {leaf.address}")
            seen.add(leaf.address)

        order = sorted(range(len(leaves)), key=lambda i: leaves[i].hash)
        tree_indexes = [0] * len(leaves)
        for position, leaf_index in enumerate(order):
            tree_indexes[leaf_index] = position

        levels = build_levels([leaves[i].hash for i in order])
        return cls(list(leaves), levels, tree_indexes)

    @property
    def root(self) -> bytes:
        """Get the root hash (Merkle root)."""
        return self._levels[-1][0]

    @property
    def root_hex(self) -> str:
        """Get the root as 0x-prefixed hex."""
        return hash_to_hex(self.root)

    @property
    def leaves(self) -> list[Leaf]:
        """Get all leaves in build order."""
        return list(self._leaves)

    @property
    def levels(self) -> list[list[bytes]]:
        """Get a copy of every level, leaves first."""
        return [list(level) for level in self._levels]

    @property
    def leaf_count(self) -> int:
        """Get the number of leaves."""
        return len(self._leaves)

    @property
    def height(self) -> int:
        """Number of levels above the leaves."""
        return len(self._levels) - 1

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= len(self._leaves):
            raise IndexError(f"Leaf index {index} out of bounds")

    def get_leaf(self, index: int) -> Leaf:
        """Get a leaf by build index."""
        self._check_index(index)
        return self._leaves[index]

    def get_leaf_hash(self, index: int) -> bytes:
        """
        Get the hash of a leaf by build index.

        Raises:
            IndexError: If index out of bounds
        """
        self._check_index(index)
        return self._leaves[index].hash

    def tree_index(self, index: int) -> int:
        """Position of a leaf within level 0."""
        self._check_index(index)
        return self._tree_indexes[index]

    def index_of(self, address: str) -> int:
        """
        Find the build index for an address.

        Raises:
            InputError: If the address is malformed
            KeyError: If the address is not part of the tree
        """
        return self._index_by_address[normalize_address(address)]

    def get_proof(self, index: int) -> list[bytes]:
        """
        Generate the inclusion proof for a leaf.

        Args:
            index: Build index of the leaf

        Returns:
            Sibling hashes ordered leaf-to-root

        Raises:
            IndexError: If index out of bounds
        """
        self._check_index(index)

        proof = []
        position = self._tree_indexes[index]

        for level in self._levels[:-1]:
            sibling = position ^ 1
            # A promoted node has no sibling at this level
            if sibling < len(level):
                proof.append(level[sibling])
            position //= 2

        return proof

    def proof_for_address(self, address: str) -> list[bytes]:
        """Generate the inclusion proof for an address."""
        return self.get_proof(self.index_of(address))

    def get_all_proofs(self) -> list[list[bytes]]:
        """Generate proofs for all leaves, in build order."""
        return [self.get_proof(i) for i in range(len(self._leaves))]

    def to_proof_map(self) -> dict[str, list[str]]:
        """
        Build the proof artifact: address -> hex sibling hashes.

        Returns:
            Mapping in build order
        """
        return {
            leaf.address: [hash_to_hex(h) for h in self.get_proof(i)]
            for i, leaf in enumerate(self._leaves)
        }

    def __len__(self) -> int:
        return len(self._leaves)


def compute_root_from_proof(leaf_hash: bytes, proof: Sequence[bytes]) -> bytes:
    """
    Fold a proof over a leaf hash with sorted-pair hashing.

    Args:
        leaf_hash: Hash of the leaf
        proof: Sibling hashes, leaf-to-root

    Returns:
        Computed root hash
    """
    current_hash = leaf_hash
    for sibling in proof:
        current_hash = hash_pair(current_hash, sibling)
    return current_hash


def verify_proof(root: bytes, leaf_hash: bytes, proof: Sequence[bytes]) -> bool:
    """
    Verify a Merkle inclusion proof against a root.

    Any element that is not a 32-byte hash makes the proof invalid.

    Args:
        root: Trusted Merkle root
        leaf_hash: Hash of the claimed leaf
        proof: Sibling hashes, leaf-to-root

    Returns:
        True if the proof reconstructs the root
    """
    if len(root) != HASH_LENGTH or len(leaf_hash) != HASH_LENGTH:
        return False
    if any(len(sibling) != HASH_LENGTH for sibling in proof):
        return False

    return compute_root_from_proof(leaf_hash, proof) == root
