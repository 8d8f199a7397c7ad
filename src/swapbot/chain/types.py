"""Sui-specific type helpers and unit conversion.

On-chain amounts are ints in the smallest unit. Conversions go through
Decimal and always round DOWN so a computed amount never exceeds what the
inputs can cover.
"""

from decimal import ROUND_FLOOR, Decimal

SUI_ADDRESS_LENGTH = 32


def floor_units(value: Decimal) -> int:
    """Truncate a Decimal amount of base units toward negative infinity."""
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def from_base_units(units: int, decimals: int) -> Decimal:
    """Convert base units to a human amount (e.g. 1_500_000_000 -> 1.5 SUI)."""
    return Decimal(units).scaleb(-decimals)


def normalize_address(address: str) -> str:
    """Return a 0x-prefixed, lowercase, 64-hex-digit Sui address or object id.

    Short forms such as "0x2" or "0x6" are left-padded with zeros.
    """
    raw = address.lower()
    if raw.startswith("0x"):
        raw = raw[2:]
    if not raw or len(raw) > SUI_ADDRESS_LENGTH * 2:
        raise ValueError(f"Invalid Sui address: {address!r}")
    int(raw, 16)  # raises ValueError on non-hex input
    return "0x" + raw.rjust(SUI_ADDRESS_LENGTH * 2, "0")


def is_coin_type(coin_type: str, expected: str) -> bool:
    """Compare two coin type tags, tolerating short vs padded address forms."""
    try:
        a_addr, a_rest = coin_type.split("::", 1)
        b_addr, b_rest = expected.split("::", 1)
        return a_rest == b_rest and normalize_address(a_addr) == normalize_address(b_addr)
    except ValueError:
        return coin_type == expected
