"""
ScVal codec: native Python values <-> Soroban contract wire values (xdr.SCVal).

- Addresses: account (G...) or contract (C...) strkeys; anything else is InvalidAddress.
- Amounts: human XLM amounts are floored into base units (1 XLM = 10^7 stroops).
- Numbers: contract integers are i128. Python ints hold them exactly; decode_to_number
  mirrors the lossy float narrowing of JS clients, checked_number makes the loss observable.
Pure functions; no network access.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal
from typing import Any

from stellar_sdk import Address, scval
from stellar_sdk import xdr as stellar_xdr

from backend_stellark.core.exceptions import InvalidAddress, PrecisionLoss

STROOPS_PER_XLM = 10_000_000
MAX_SAFE_INTEGER = 2**53 - 1
CONTRACT_ID_PREFIX = "C"
CONTRACT_ID_MIN_LEN = 50

_T = stellar_xdr.SCValType


def validate_contract_id(contract_id: str) -> str:
    """
    Format precondition for contract addresses issued by deployment: 'C' prefix,
    at least 50 characters. Returns the stripped id.
    """
    cid = (contract_id or "").strip()
    if not cid.startswith(CONTRACT_ID_PREFIX) or len(cid) < CONTRACT_ID_MIN_LEN:
        raise InvalidAddress(cid, "contract id must start with 'C' and be at least 50 characters")
    return cid


def is_valid_address(address: str) -> bool:
    try:
        Address(address)
    except (ValueError, TypeError):
        return False
    return True


# -----------------------------------------------------------------------------
# Encoding
# -----------------------------------------------------------------------------


def encode_address(address: str) -> stellar_xdr.SCVal:
    """Account or contract strkey -> SCVal address. Raises InvalidAddress."""
    addr = (address or "").strip()
    try:
        parsed = Address(addr)
    except (ValueError, TypeError) as e:
        raise InvalidAddress(addr) from e
    return scval.to_address(parsed)


def encode_string(value: str) -> stellar_xdr.SCVal:
    return scval.to_string(value)


def encode_i128(value: int) -> stellar_xdr.SCVal:
    return scval.to_int128(int(value))


def to_base_units(value: Any, scale: int = STROOPS_PER_XLM) -> int:
    """
    floor(value * scale) on the decimal text of value, so 0.10 XLM is exactly 1_000_000.
    No clamping: callers validate value >= 0 first.
    """
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    return int((amount * scale).to_integral_value(rounding=ROUND_FLOOR))


def from_base_units(base_units: int, scale: int = STROOPS_PER_XLM) -> Decimal:
    """Integer base units -> Decimal amount (exact)."""
    return Decimal(int(base_units)) / Decimal(scale)


def encode_amount(value: Any, scale: int = STROOPS_PER_XLM) -> stellar_xdr.SCVal:
    """Human-facing amount -> i128 base units."""
    return encode_i128(to_base_units(value, scale))


# -----------------------------------------------------------------------------
# Decoding
# -----------------------------------------------------------------------------


def decode_value(value: stellar_xdr.SCVal | None) -> Any:
    """
    SCVal -> native Python value. Integers stay exact ints, strings are decoded
    from UTF-8, addresses become strkeys, maps become dicts keyed by their
    decoded keys, vectors become lists. None passes through.
    """
    if value is None:
        return None
    t = value.type
    if t == _T.SCV_VOID:
        return None
    if t == _T.SCV_BOOL:
        return scval.from_bool(value)
    if t == _T.SCV_U32:
        return scval.from_uint32(value)
    if t == _T.SCV_I32:
        return scval.from_int32(value)
    if t == _T.SCV_U64:
        return scval.from_uint64(value)
    if t == _T.SCV_I64:
        return scval.from_int64(value)
    if t == _T.SCV_U128:
        return scval.from_uint128(value)
    if t == _T.SCV_I128:
        return scval.from_int128(value)
    if t == _T.SCV_STRING:
        raw = scval.from_string(value)
        return raw.decode("utf-8") if isinstance(raw, bytes) else raw
    if t == _T.SCV_SYMBOL:
        return scval.from_symbol(value)
    if t == _T.SCV_BYTES:
        return scval.from_bytes(value)
    if t == _T.SCV_ADDRESS:
        return scval.from_address(value).address
    if t == _T.SCV_VEC:
        items = value.vec.sc_vec if value.vec is not None else []
        return [decode_value(v) for v in items]
    if t == _T.SCV_MAP:
        entries = value.map.sc_map if value.map is not None else []
        return {decode_value(e.key): decode_value(e.val) for e in entries}
    raise ValueError(f"Unsupported SCVal type: {t}")


def decode_xdr(value_xdr: str | None) -> Any:
    """Base64 SCVal (as returned by RPC) -> native value."""
    if not value_xdr:
        return None
    return decode_value(stellar_xdr.SCVal.from_xdr(value_xdr))


def decode_to_number(value: Any) -> int | float:
    """
    Best-effort number coercion for decoded contract values.

    ints within +/-(2**53 - 1) are returned unchanged; wider ints are narrowed to
    float and LOSE PRECISION (the last digits are rounded). Use checked_number
    where the loss must be observable. bools, None and non-numeric values give 0.
    """
    if isinstance(value, stellar_xdr.SCVal):
        value = decode_value(value)
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        if abs(value) > MAX_SAFE_INTEGER:
            return float(value)
        return value
    if isinstance(value, float):
        return value
    if isinstance(value, Decimal):
        return float(value)
    return 0


def checked_number(value: Any) -> int:
    """Explicit narrowing: exact int, or PrecisionLoss beyond the safe integer range."""
    if isinstance(value, stellar_xdr.SCVal):
        value = decode_value(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected an integer contract value, got {type(value).__name__}")
    if abs(value) > MAX_SAFE_INTEGER:
        raise PrecisionLoss(value)
    return value
