"""
Pytest configuration and shared fixtures for airdrop tests.
"""

import pytest

from airdrop.crypto.merkle import AllocationTree
from airdrop.services.distributor import AirdropDistributor
from airdrop.services.ledger import InMemoryNFTRegistry, InMemoryToken
from airdrop.services.state import InMemoryAirdropStore

OWNER = "0x5B38Da6a701c568545dCfcB03FcB875f56beddC4"
DISTRIBUTOR = "0xd9145CCE52D386f254917e481eB44e9943F39138"
TOKEN = "0xd8b934580fcE35a11B58C6D73aDeE468a2833fa8"
NFT = "0xBC4CA0EdA7647A8aB7C2061c2E118A18a936f13D"

ALICE = "0x" + "aa" * 20
BOB = "0x" + "bb" * 20
CAROL = "0x" + "cc" * 20
DAVE = "0x" + "dd" * 20
ZERO = "0x" + "00" * 20

RESERVE = 100_000


@pytest.fixture
def allocations() -> list[tuple[str, int]]:
    """Allocation list used by most tests."""
    return [(ALICE, 500), (BOB, 300), (CAROL, 200)]


@pytest.fixture
def tree(allocations: list[tuple[str, int]]) -> AllocationTree:
    """Tree built from the sample allocations."""
    return AllocationTree.build(allocations)


@pytest.fixture
def token() -> InMemoryToken:
    """Token with the whole supply held by the owner."""
    return InMemoryToken(
        address=TOKEN,
        name="Bored Apes Yacht Club",
        symbol="BAYC",
        total_supply=10_000_000,
        owner=OWNER,
    )


@pytest.fixture
def nft() -> InMemoryNFTRegistry:
    """Eligibility collection; Alice, Bob and Dave hold one token each."""
    registry = InMemoryNFTRegistry(NFT)
    registry.mint(ALICE, 1)
    registry.mint(BOB, 2)
    registry.mint(DAVE, 3)
    return registry


@pytest.fixture
def store() -> InMemoryAirdropStore:
    return InMemoryAirdropStore()


@pytest.fixture
def distributor(
    token: InMemoryToken,
    nft: InMemoryNFTRegistry,
    tree: AllocationTree,
    store: InMemoryAirdropStore,
) -> AirdropDistributor:
    """Distributor committed to the sample tree and funded with RESERVE."""
    token.transfer(OWNER, DISTRIBUTOR, RESERVE)
    return AirdropDistributor(
        address=DISTRIBUTOR,
        token=token,
        eligibility=nft,
        owner=OWNER,
        root=tree.root,
        store=store,
    )
