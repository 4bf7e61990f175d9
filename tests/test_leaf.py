"""
Unit tests for allocation leaf encoding.
"""

import pytest
from eth_utils import keccak, to_checksum_address

from airdrop.crypto.leaf import (
    UINT256_MAX,
    InputError,
    Leaf,
    encode_leaf,
    leaf_hash,
    normalize_address,
    normalize_amount,
)

from conftest import ALICE, BOB, OWNER


class TestNormalizeAddress:
    """Tests for address validation."""

    def test_lowercase_is_checksummed(self) -> None:
        """Test all-lowercase input comes back in EIP-55 form."""
        assert normalize_address(OWNER.lower()) == OWNER

    def test_valid_checksum_accepted(self) -> None:
        """Test mixed-case input with a correct checksum."""
        assert normalize_address(OWNER) == OWNER

    def test_bad_checksum_rejected(self) -> None:
        """Test mixed-case input with a broken checksum."""
        with pytest.raises(InputError):
            normalize_address("0x5b38Da6a701c568545dCfcB03FcB875f56beddC4")

    def test_missing_prefix_rejected(self) -> None:
        """Test bare hex without 0x."""
        with pytest.raises(InputError):
            normalize_address("aa" * 20)

    @pytest.mark.parametrize(
        "value",
        ["", "0x", "0x1234", "0x" + "aa" * 21, "0x" + "zz" * 20, 42, None],
    )
    def test_malformed_rejected(self, value) -> None:
        """Test wrong lengths, non-hex characters and non-strings."""
        with pytest.raises(InputError):
            normalize_address(value)


class TestNormalizeAmount:
    """Tests for amount validation."""

    def test_int(self) -> None:
        assert normalize_amount(500) == 500

    def test_decimal_string(self) -> None:
        assert normalize_amount(" 42 ") == 42

    def test_zero_allowed(self) -> None:
        assert normalize_amount(0) == 0

    def test_uint256_max_allowed(self) -> None:
        assert normalize_amount(UINT256_MAX) == UINT256_MAX
        assert normalize_amount(str(UINT256_MAX)) == UINT256_MAX

    @pytest.mark.parametrize(
        "value",
        [-1, "-5", UINT256_MAX + 1, "1e3", "0x10", "", 1.5, True, None],
    )
    def test_invalid_rejected(self, value) -> None:
        """Test negatives, overflow, non-decimal strings and non-integers."""
        with pytest.raises(InputError):
            normalize_amount(value)


class TestLeafEncoding:
    """Tests for the (address, uint256) leaf rule."""

    def test_abi_layout(self) -> None:
        """Test the encoding is two left-padded 32-byte words."""
        encoded = encode_leaf(ALICE, 500)

        assert len(encoded) == 64
        assert encoded[:12] == b"\x00" * 12
        assert encoded[12:32] == bytes.fromhex("aa" * 20)
        assert encoded[32:] == (500).to_bytes(32, "big")

    def test_double_hash(self) -> None:
        """Test the leaf is keccak of keccak of the encoding."""
        expected = keccak(keccak(encode_leaf(ALICE, 500)))
        assert leaf_hash(ALICE, 500) == expected
        assert leaf_hash(ALICE, 500) != keccak(encode_leaf(ALICE, 500))

    def test_address_case_does_not_change_hash(self) -> None:
        """Test hashing normalizes the address first."""
        assert leaf_hash(OWNER, 1) == leaf_hash(OWNER.lower(), 1)

    def test_string_and_int_amount_agree(self) -> None:
        assert leaf_hash(BOB, "300") == leaf_hash(BOB, 300)

    def test_distinct_allocations_distinct_hashes(self) -> None:
        assert leaf_hash(ALICE, 500) != leaf_hash(ALICE, 501)
        assert leaf_hash(ALICE, 500) != leaf_hash(BOB, 500)

    def test_hash_is_32_bytes(self) -> None:
        assert len(leaf_hash(ALICE, 0)) == 32


class TestLeaf:
    """Tests for the Leaf value object."""

    def test_create_normalizes(self) -> None:
        """Test create() checksums the address and parses the amount."""
        leaf = Leaf.create(ALICE, "500")

        assert leaf.address == to_checksum_address(ALICE)
        assert leaf.amount == 500
        assert leaf.hash == leaf_hash(ALICE, 500)

    def test_to_value(self) -> None:
        """Test artifact form keeps the amount as a decimal string."""
        leaf = Leaf.create(BOB, 300)
        assert leaf.to_value() == [to_checksum_address(BOB), "300"]

    def test_create_rejects_bad_input(self) -> None:
        with pytest.raises(InputError):
            Leaf.create("0xnotanaddress", 1)
