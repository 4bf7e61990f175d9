"""
Merkle Airdrop Distributor - Distributor Errors

Every rejected claim, root rotation or withdrawal raises one of these.
A rejection never leaves a partial mutation behind; the caller must retry
with corrected input.
"""


class DistributorError(Exception):
    """
    Base exception for distributor rejections.

    Attributes:
        code: Stable machine-readable identifier
        reason: Revert reason reported to the caller
    """

    code = "distributor_error"
    reason = "Transaction reverted"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(f"{self.reason} ({detail})" if detail else self.reason)


class ZeroAddress(DistributorError):
    code = "zero_address"
    reason = "Zero address not allowed!"


class ZeroAmount(DistributorError):
    code = "zero_amount"
    reason = "Cannot claim zero tokens!"


class InsufficientContractBalance(DistributorError):
    code = "insufficient_contract_balance"
    reason = "All airdrop tokens claimed!"


class EligibilityError(DistributorError):
    code = "not_eligible"
    reason = "No NFT detected!"


class AlreadyClaimed(DistributorError):
    code = "already_claimed"
    reason = "Airdrop already claimed!"


class ProofInvalid(DistributorError):
    code = "invalid_proof"
    reason = "Invalid proof submitted!"


class RootUnchanged(DistributorError):
    code = "root_unchanged"
    reason = "Merkle root unchanged!"


class Unauthorized(DistributorError):
    code = "unauthorized"
    reason = "Only owner can perform this action!"
