"""
Reversible URL codec used by the rewriting proxy.

The proxy hides the upstream URL in its own path by XOR-ing every
odd-indexed UTF-16 code unit with a fixed key and percent-encoding the result.
The transform is its own inverse, so encode and decode share it and
differ only in the direction of the percent-encoding step.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote, unquote

from .config import XOR_KEY


# A '%' must always introduce two hex digits
_BAD_PERCENT = re.compile(r"%(?![0-9A-Fa-f]{2})")

# Characters encodeURIComponent leaves alone beyond [A-Za-z0-9_.-~]
_URI_COMPONENT_SAFE = "!*'()"


def xor_transform(text: str, key: int = XOR_KEY) -> str:
    """
    XOR every odd-indexed UTF-16 code unit with key.

    Positions are counted in UTF-16 code units, as the proxy does, so a
    character outside the BMP takes two positions (its surrogate pair).
    """
    units = bytearray(text.encode("utf-16-le", "surrogatepass"))
    # Little-endian: the odd unit starting at byte `offset` is units[offset:offset + 2]
    for offset in range(2, len(units), 4):
        units[offset] ^= key & 0xFF
        units[offset + 1] ^= (key >> 8) & 0xFF
    return units.decode("utf-16-le", "surrogatepass")


def decode(encoded: Optional[str], key: int = XOR_KEY) -> Optional[str]:
    """
    Recover the original URL from its proxied form.

    Returns the input unchanged when it is empty or None, and None when
    the percent-encoding is malformed. Never raises.
    """
    if not encoded:
        return encoded

    if _BAD_PERCENT.search(encoded):
        return None

    try:
        unquoted = unquote(encoded, errors="strict")
    except UnicodeDecodeError:
        return None

    return xor_transform(unquoted, key)


def encode(url: Optional[str], key: int = XOR_KEY) -> Optional[str]:
    """Produce the proxied form of a URL."""
    if not url:
        return url
    return quote(xor_transform(url, key), safe=_URI_COMPONENT_SAFE)
