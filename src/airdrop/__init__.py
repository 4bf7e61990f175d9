"""
Merkle Airdrop Distributor

Builds Merkle commitments over (address, amount) allocations and serves
the claim state machine that pays them out.
"""

__version__ = "1.0.0"
