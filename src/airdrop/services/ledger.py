"""
Merkle Airdrop Distributor - Token and Eligibility Collaborators

The distributor only needs balanceOf/transfer from the token it pays out
and an ownership query from the eligibility (NFT) collection. Both are
consumed through the protocols below; the in-memory implementations back
the service and the tests.
"""

from typing import Protocol

import structlog

from airdrop.crypto.leaf import ZERO_ADDRESS, normalize_address, normalize_amount

logger = structlog.get_logger(__name__)


class TokenError(Exception):
    """Raised when a token operation is rejected."""

    pass


class TokenLedger(Protocol):
    """ERC20-style token surface used by the distributor."""

    address: str

    def balance_of(self, account: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...


class EligibilityRegistry(Protocol):
    """ERC721-style ownership surface used for eligibility checks."""

    address: str

    def balance_of(self, owner: str) -> int: ...

    def owner_of(self, token_id: int) -> str: ...


class InMemoryToken:
    """
    Fungible token with balances held in memory.

    The whole supply is credited to the owner on creation; only the owner
    may mint more.
    """

    def __init__(
        self,
        address: str,
        name: str,
        symbol: str,
        total_supply: int,
        owner: str,
    ) -> None:
        self.address = normalize_address(address)
        self.name = name
        self.symbol = symbol
        self.owner = normalize_address(owner)
        if self.owner == ZERO_ADDRESS:
            raise TokenError("Owner cannot be the zero address")

        self._total_supply = normalize_amount(total_supply)
        self._balances: dict[str, int] = {self.owner: self._total_supply}

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(normalize_address(account), 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """
        Move tokens between accounts.

        Raises:
            TokenError: On a zero-address recipient or insufficient balance
        """
        sender = normalize_address(sender)
        recipient = normalize_address(recipient)
        amount = normalize_amount(amount)

        if recipient == ZERO_ADDRESS:
            raise TokenError("Transfer to the zero address")

        balance = self._balances.get(sender, 0)
        if balance < amount:
            raise TokenError(f"Insufficient balance: {balance} < {amount}")

        self._balances[sender] = balance - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount

        logger.debug(
            "Token transfer",
            token=self.symbol,
            sender=sender,
            recipient=recipient,
            amount=amount,
        )

    def mint(self, caller: str, amount: int) -> None:
        """
        Mint new supply to the owner.

        Raises:
            TokenError: If caller is not the owner
        """
        if normalize_address(caller) != self.owner:
            raise TokenError("Only owner can mint!")

        amount = normalize_amount(amount)
        self._total_supply += amount
        self._balances[self.owner] = self._balances.get(self.owner, 0) + amount


class InMemoryNFTRegistry:
    """Non-fungible collection tracking token ownership in memory."""

    def __init__(self, address: str) -> None:
        self.address = normalize_address(address)
        self._owners: dict[int, str] = {}

    def mint(self, to: str, token_id: int) -> None:
        if token_id in self._owners:
            raise TokenError(f"Token {token_id} already minted")
        self._owners[token_id] = normalize_address(to)

    def owner_of(self, token_id: int) -> str:
        try:
            return self._owners[token_id]
        except KeyError:
            raise TokenError(f"Nonexistent token {token_id}") from None

    def balance_of(self, owner: str) -> int:
        owner = normalize_address(owner)
        return sum(1 for holder in self._owners.values() if holder == owner)
