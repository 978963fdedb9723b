"""Unit tests for identity kinds and their normalization rules."""

import pytest

from src.domain.errors.userbase import ValidationError
from src.domain.models.identity import (
    EVM,
    FARCASTER,
    HIVE,
    get_identity_kind,
    validate_hive_username_format,
)

CHECKSUMMED = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


class TestGetIdentityKind:
    @pytest.mark.parametrize("name,kind", [("hive", HIVE), ("evm", EVM), ("farcaster", FARCASTER)])
    def test_known_types(self, name, kind) -> None:
        assert get_identity_kind(name) is kind

    @pytest.mark.parametrize("name", ["email", "", None, 3, "HIVE"])
    def test_unknown_type_rejected(self, name) -> None:
        with pytest.raises(ValidationError, match="Unsupported identity type"):
            get_identity_kind(name)


class TestHiveHandles:
    @pytest.mark.parametrize(
        "handle", ["xvlad", "skatehive", "abc", "a-b-c", "web3.dev", "gnars123"]
    )
    def test_valid_handles(self, handle) -> None:
        assert validate_hive_username_format(handle) is None

    @pytest.mark.parametrize(
        "handle",
        [
            "ab",  # too short
            "a" * 17,
            "1abc",
            "abc-",
            "ab..cd",
            "abc.-def",
            "abc.de",  # short segment
            "ab_cd",
        ],
    )
    def test_invalid_handles(self, handle) -> None:
        assert validate_hive_username_format(handle) is not None

    def test_normalize_trims_and_lowercases(self) -> None:
        assert HIVE.normalize("  XVlad ") == "xvlad"

    def test_normalize_is_idempotent(self) -> None:
        once = HIVE.normalize(" SkateHive")
        assert HIVE.normalize(once) == once

    def test_normalize_rejects_malformed(self) -> None:
        with pytest.raises(ValidationError, match="Invalid Hive handle"):
            HIVE.normalize("no")


class TestEvmAddresses:
    def test_checksummed_address_lowercased(self) -> None:
        assert EVM.normalize(CHECKSUMMED) == CHECKSUMMED.lower()

    def test_lowercase_address_accepted(self) -> None:
        assert EVM.normalize(f"  {CHECKSUMMED.lower()} ") == CHECKSUMMED.lower()

    def test_bad_checksum_rejected(self) -> None:
        broken = CHECKSUMMED.replace("aAeb", "aaeb")
        with pytest.raises(ValidationError, match="Invalid address"):
            EVM.normalize(broken)

    @pytest.mark.parametrize("raw", ["0x1234", "5aaeb6053f3e94c9b9a09f33669435e7ef1beaed", "hello"])
    def test_malformed_rejected(self, raw) -> None:
        with pytest.raises(ValidationError, match="Invalid address"):
            EVM.normalize(raw)


class TestFarcasterFids:
    def test_digits_accepted(self) -> None:
        assert FARCASTER.normalize(" 12345 ") == "12345"

    @pytest.mark.parametrize("raw", ["abc", "12a", "-1", "", "١٢٣", "１２"])
    def test_non_digits_rejected(self, raw) -> None:
        with pytest.raises(ValidationError, match="Invalid Farcaster fid"):
            FARCASTER.normalize(raw)
