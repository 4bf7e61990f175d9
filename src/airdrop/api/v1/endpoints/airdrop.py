"""
Merkle Airdrop Distributor API - Airdrop Endpoints

Implements the distributor entrypoints:
- POST /claim: Claim an allocation with a Merkle proof
- POST /root: Rotate the trusted root (owner only)
- POST /withdraw: Withdraw the remaining reserve (owner only)
- GET /config: Token, eligibility, owner, root and reserve
- GET /claimed/{address}: Claim status of an address
- GET /proofs/{address}: Proof for an address from the loaded tree artifact
- POST /verify: Check a proof off-line against the current root
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from airdrop.crypto.leaf import InputError, leaf_hash, normalize_address
from airdrop.crypto.merkle import AllocationTree, hash_to_hex, verify_proof
from airdrop.services.claim_verifier import decode_proof
from airdrop.services.distributor import AirdropDistributor
from airdrop.services.errors import (
    AlreadyClaimed,
    DistributorError,
    EligibilityError,
    InsufficientContractBalance,
    ProofInvalid,
    RootUnchanged,
    Unauthorized,
)
from airdrop.services.ledger import TokenError

logger = structlog.get_logger(__name__)
router = APIRouter()

_FORBIDDEN = (Unauthorized, EligibilityError)
_CONFLICT = (AlreadyClaimed, RootUnchanged, InsufficientContractBalance)


# Request/Response Models
class ClaimRequest(BaseModel):
    """Request to claim an allocation."""

    claimant: str = Field(..., description="Claiming address")
    amount: int | str = Field(..., description="Allocated amount (uint256, decimal)")
    proof: list[str] = Field(
        default_factory=list,
        description="Sibling hashes leaf-to-root, 0x-prefixed hex",
    )


class ClaimResponse(BaseModel):
    """Successful claim receipt."""

    claimant: str
    amount: str
    reserve: str


class UpdateRootRequest(BaseModel):
    """Request to rotate the Merkle root."""

    caller: str = Field(..., description="Must be the distributor owner")
    root: str = Field(..., min_length=66, max_length=66, description="New root, 0x-prefixed hex")


class UpdateRootResponse(BaseModel):
    """Root rotation result."""

    previous_root: str
    new_root: str
    epoch: int


class WithdrawRequest(BaseModel):
    """Request to withdraw the remaining reserve."""

    caller: str = Field(..., description="Must be the distributor owner")


class WithdrawResponse(BaseModel):
    """Withdrawal result."""

    owner: str
    amount: str


class ConfigResponse(BaseModel):
    """Distributor configuration."""

    address: str
    token: str
    eligibility: str
    owner: str
    root: str
    epoch: int
    reserve: str


class ClaimStatusResponse(BaseModel):
    """Claim status of an address."""

    address: str
    claimed: bool
    amount: str | None = None
    root: str | None = None
    claimed_at: str | None = None


class ProofResponse(BaseModel):
    """Proof for an address from the tree artifact."""

    address: str
    amount: str
    proof: list[str]
    tree_root: str
    matches_current_root: bool


class VerifyRequest(BaseModel):
    """Request to verify a proof without claiming."""

    address: str
    amount: int | str
    proof: list[str] = Field(default_factory=list)


class VerifyResponse(BaseModel):
    """Verification result."""

    verified: bool
    address: str
    root: str
    message: str


def get_distributor(req: Request) -> AirdropDistributor:
    """Resolve the distributor from app state."""
    distributor = getattr(req.app.state, "distributor", None)
    if distributor is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Distributor not initialized",
        )
    return distributor


def _revert(e: DistributorError) -> HTTPException:
    """Translate a distributor rejection into an HTTP error."""
    if isinstance(e, _FORBIDDEN):
        status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(e, _CONFLICT):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(
        status_code=status_code,
        detail={"code": e.code, "reason": e.reason},
    )


def _invalid_input(e: InputError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"code": "invalid_input", "reason": str(e)},
    )


# Endpoints
@router.post(
    "/claim",
    response_model=ClaimResponse,
    summary="Claim airdrop",
    description="Claim the caller's allocation by proving it is part of the committed tree.",
    responses={
        200: {"description": "Tokens transferred"},
        400: {"description": "Zero address, zero amount or invalid proof"},
        403: {"description": "Caller holds no eligibility token"},
        409: {"description": "Already claimed or reserve exhausted"},
    },
)
async def claim(
    request: ClaimRequest,
    distributor: AirdropDistributor = Depends(get_distributor),
) -> ClaimResponse:
    """
    Claim an allocation.

    Checks run in order: zero address, zero amount, reserve, eligibility,
    previous claim, proof. Any failure leaves balances untouched.
    """
    try:
        event = await distributor.claim(request.amount, request.proof, caller=request.claimant)
    except DistributorError as e:
        raise _revert(e) from e
    except InputError as e:
        raise _invalid_input(e) from e
    except TokenError as e:
        logger.error("Token transfer failed", claimant=request.claimant, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "token_error", "reason": str(e)},
        ) from e

    return ClaimResponse(
        claimant=event.claimant,
        amount=str(event.amount),
        reserve=str(distributor.reserve()),
    )


@router.post(
    "/root",
    response_model=UpdateRootResponse,
    summary="Rotate Merkle root",
    description="Replace the trusted root to open a new allocation epoch. Owner only.",
    responses={
        403: {"description": "Caller is not the owner"},
        409: {"description": "Root unchanged or reserve exhausted"},
    },
)
async def update_root(
    request: UpdateRootRequest,
    distributor: AirdropDistributor = Depends(get_distributor),
) -> UpdateRootResponse:
    """Rotate the root; existing claim records are kept."""
    try:
        event = await distributor.update_root(request.root, caller=request.caller)
    except DistributorError as e:
        raise _revert(e) from e
    except InputError as e:
        raise _invalid_input(e) from e

    return UpdateRootResponse(
        previous_root=hash_to_hex(event.previous_root),
        new_root=hash_to_hex(event.new_root),
        epoch=event.epoch,
    )


@router.post(
    "/withdraw",
    response_model=WithdrawResponse,
    summary="Withdraw reserve",
    description="Transfer the entire remaining reserve to the owner. Owner only.",
    responses={403: {"description": "Caller is not the owner"}},
)
async def withdraw(
    request: WithdrawRequest,
    distributor: AirdropDistributor = Depends(get_distributor),
) -> WithdrawResponse:
    """Withdraw the remaining reserve."""
    try:
        event = await distributor.withdraw(caller=request.caller)
    except DistributorError as e:
        raise _revert(e) from e
    except InputError as e:
        raise _invalid_input(e) from e

    return WithdrawResponse(owner=event.owner, amount=str(event.amount))


@router.get(
    "/config",
    response_model=ConfigResponse,
    summary="Get distributor configuration",
)
async def get_config(
    distributor: AirdropDistributor = Depends(get_distributor),
) -> ConfigResponse:
    """Token, eligibility, owner, current root and reserve."""
    return ConfigResponse(**distributor.to_dict())


@router.get(
    "/claimed/{address}",
    response_model=ClaimStatusResponse,
    summary="Get claim status",
)
async def get_claim_status(
    address: str,
    distributor: AirdropDistributor = Depends(get_distributor),
) -> ClaimStatusResponse:
    """Whether an address has claimed, with the claim details if so."""
    try:
        record = await distributor.get_claim(address)
    except InputError as e:
        raise _invalid_input(e) from e

    if record is None:
        return ClaimStatusResponse(address=normalize_address(address), claimed=False)

    return ClaimStatusResponse(claimed=True, **record.to_dict())


@router.get(
    "/proofs/{address}",
    response_model=ProofResponse,
    summary="Get proof for address",
    responses={404: {"description": "No tree loaded or address not in tree"}},
)
async def get_proof(
    address: str,
    req: Request,
    distributor: AirdropDistributor = Depends(get_distributor),
) -> ProofResponse:
    """Look up an address in the loaded tree artifact."""
    tree: AllocationTree | None = getattr(req.app.state, "tree", None)
    if tree is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No tree artifact loaded",
        )

    try:
        index = tree.index_of(address)
    except InputError as e:
        raise _invalid_input(e) from e
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Address {address} not in tree",
        ) from None

    leaf = tree.get_leaf(index)
    return ProofResponse(
        address=leaf.address,
        amount=str(leaf.amount),
        proof=[hash_to_hex(h) for h in tree.get_proof(index)],
        tree_root=tree.root_hex,
        matches_current_root=tree.root == distributor.root,
    )


@router.post(
    "/verify",
    response_model=VerifyResponse,
    summary="Verify proof",
    description="Check a proof against the current root without claiming.",
)
async def verify(
    request: VerifyRequest,
    distributor: AirdropDistributor = Depends(get_distributor),
) -> VerifyResponse:
    """Verify an (address, amount, proof) triple against the current root."""
    root = distributor.root

    try:
        address = normalize_address(request.address)
        leaf = leaf_hash(address, request.amount)
        verified = verify_proof(root, leaf, decode_proof(request.proof))
    except InputError as e:
        raise _invalid_input(e) from e
    except ProofInvalid:
        verified = False

    return VerifyResponse(
        verified=verified,
        address=address,
        root=hash_to_hex(root),
        message="Proof valid for current root" if verified else "Proof does not match current root",
    )
