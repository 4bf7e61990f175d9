"""
Merkle Airdrop Distributor API v1

Endpoints:
- POST /airdrop/claim - Claim an allocation
- POST /airdrop/root - Rotate the Merkle root
- POST /airdrop/withdraw - Withdraw the reserve
- GET /airdrop/config - Distributor configuration
- GET /airdrop/claimed/{address} - Claim status
- GET /airdrop/proofs/{address} - Proof lookup
- POST /airdrop/verify - Off-line proof check
"""

from fastapi import APIRouter

from airdrop.api.v1.endpoints import airdrop

router = APIRouter()
router.include_router(airdrop.router, prefix="/airdrop", tags=["Airdrop"])
