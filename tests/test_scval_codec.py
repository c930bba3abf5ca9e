"""
Tests for the ScVal codec: address validation, amount scaling, decoding and number narrowing.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from stellar_sdk import Keypair, scval
from stellar_sdk import xdr as stellar_xdr

from backend_stellark.core.exceptions import InvalidAddress, PrecisionLoss
from backend_stellark.ledger.scval_codec import (
    MAX_SAFE_INTEGER,
    checked_number,
    decode_to_number,
    decode_value,
    decode_xdr,
    encode_address,
    from_base_units,
    is_valid_address,
    to_base_units,
    validate_contract_id,
)

CONTRACT_ID = "CDLZFC3SYJYDZT7K67VZ75HPJVIEUVNIXF47ZG2FB2RMQQVU2HHGCYSC"


def test_validate_contract_id_accepts_and_strips():
    assert validate_contract_id(f"  {CONTRACT_ID}\n") == CONTRACT_ID


@pytest.mark.parametrize("bad", ["", "GABC", "C" + "A" * 10, Keypair.random().public_key])
def test_validate_contract_id_rejects(bad):
    with pytest.raises(InvalidAddress):
        validate_contract_id(bad)


def test_encode_address_account_and_contract():
    account = Keypair.random().public_key
    assert decode_value(encode_address(account)) == account
    assert decode_value(encode_address(CONTRACT_ID)) == CONTRACT_ID


def test_encode_address_invalid_raises():
    with pytest.raises(InvalidAddress):
        encode_address("not-an-address")
    assert is_valid_address("not-an-address") is False
    assert is_valid_address(CONTRACT_ID) is True


def test_to_base_units_is_exact_for_decimal_text():
    """0.1 XLM is exactly one million stroops, not 999_999."""
    assert to_base_units(Decimal("0.1")) == 1_000_000
    assert to_base_units(0.1) == 1_000_000
    assert to_base_units("2.5") == 25_000_000


def test_to_base_units_floors_extra_precision():
    assert to_base_units("1.23456789") == 12_345_678
    assert to_base_units(Decimal("0.00000001")) == 0


def test_from_base_units():
    assert from_base_units(10_000_000) == Decimal(1)
    assert from_base_units(25_000_000) == Decimal("2.5")


def test_decode_map_with_nested_values():
    owner = Keypair.random().public_key
    entries = [
        stellar_xdr.SCMapEntry(scval.to_symbol("name"), scval.to_string("Acme")),
        stellar_xdr.SCMapEntry(scval.to_symbol("owner"), scval.to_address(owner)),
        stellar_xdr.SCMapEntry(scval.to_symbol("total_supply"), scval.to_int128(1_000_000)),
        stellar_xdr.SCMapEntry(scval.to_symbol("tags"), scval.to_vec([scval.to_uint32(1), scval.to_bool(True)])),
    ]
    value = stellar_xdr.SCVal(stellar_xdr.SCValType.SCV_MAP, map=stellar_xdr.SCMap(entries))
    assert decode_value(value) == {
        "name": "Acme",
        "owner": owner,
        "total_supply": 1_000_000,
        "tags": [1, True],
    }


def test_decode_xdr_round_trips_base64():
    assert decode_xdr(scval.to_int128(42).to_xdr()) == 42
    assert decode_xdr(None) is None
    assert decode_xdr("") is None


def test_decode_wide_integer_stays_exact():
    big = 2**100 + 7
    assert decode_value(scval.to_int128(big)) == big


def test_decode_to_number_is_lossy_beyond_safe_range():
    assert decode_to_number(MAX_SAFE_INTEGER) == MAX_SAFE_INTEGER
    wide = MAX_SAFE_INTEGER + 2
    narrowed = decode_to_number(wide)
    assert isinstance(narrowed, float)
    assert decode_to_number(scval.to_int128(500)) == 500


@pytest.mark.parametrize("value", [None, True, False, "12", b"\x01"])
def test_decode_to_number_non_numeric_is_zero(value):
    assert decode_to_number(value) == 0


def test_checked_number_raises_precision_loss():
    assert checked_number(MAX_SAFE_INTEGER) == MAX_SAFE_INTEGER
    assert checked_number(-MAX_SAFE_INTEGER) == -MAX_SAFE_INTEGER
    with pytest.raises(PrecisionLoss) as exc:
        checked_number(2**60)
    assert exc.value.value == 2**60


def test_checked_number_rejects_non_integers():
    with pytest.raises(TypeError):
        checked_number("5")
    with pytest.raises(TypeError):
        checked_number(True)
