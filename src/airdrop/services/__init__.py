"""
Merkle Airdrop Distributor - Services Package

Provides the claim state machine, root management, collaborators and the
tree build job.

Note: Imports are performed lazily to avoid circular import issues.
Use direct imports from submodules when needed:
    from airdrop.services.distributor import AirdropDistributor
    from airdrop.services.batch import run_build_job
    etc.
"""

__all__ = [
    "AirdropDistributor",
    "AirdropClaimed",
    "ClaimVerifier",
    "RootManager",
    "RootUpdated",
    "FundsWithdrawn",
    "DistributorError",
    "InMemoryToken",
    "InMemoryNFTRegistry",
    "InMemoryAirdropStore",
    "BuildResult",
    "run_build_job",
]
