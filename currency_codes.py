"""
XRPL currency code helpers.

Standard codes are three characters. Anything longer travels on-ledger as a
40 character hex string holding up to 20 bytes, right-padded with NULs.
"""

import re
from typing import Optional

_HEX_CODE = re.compile(r"^[0-9A-Fa-f]{40}$")
_ALNUM = re.compile(r"^[A-Za-z0-9]+$")
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E]")


def is_hex_code(currency: str) -> bool:
    return bool(currency) and bool(_HEX_CODE.match(currency))


def decode_currency(currency: Optional[str]) -> Optional[str]:
    """
    Return a printable symbol for a currency code.

    Hex codes are decoded when the result is a 2-20 character alphanumeric
    token; otherwise (LP tokens, binary payloads, bad hex) the raw code is
    returned unchanged.
    """
    if not currency or not is_hex_code(currency):
        return currency

    try:
        decoded = bytes.fromhex(currency).decode("utf-8", errors="ignore")
    except ValueError:
        return currency

    decoded = decoded.rstrip("\x00")
    cleaned = _NON_PRINTABLE.sub("", decoded)
    if 2 <= len(cleaned) <= 20 and _ALNUM.match(cleaned):
        return cleaned
    return currency


def encode_currency(symbol: str) -> str:
    """Encode a symbol into the form the ledger expects (3 chars or 40 hex)."""
    if is_hex_code(symbol):
        return symbol.upper()
    if len(symbol) == 3:
        return symbol
    raw = symbol.encode("utf-8")
    if len(raw) > 20:
        raise ValueError(f"Currency code too long: {symbol!r}")
    return raw.ljust(20, b"\x00").hex().upper()


def currency_matches(line_currency: str, requested: str) -> bool:
    """True when a ledger currency code refers to the requested code or symbol."""
    if not line_currency or not requested:
        return False
    if line_currency == requested:
        return True
    if is_hex_code(line_currency) and is_hex_code(requested):
        return line_currency.upper() == requested.upper()
    return decode_currency(line_currency) == requested
