"""
Stable hash codes for strings and lists of strings.

These are used as the identities of the set elements in the resource state
(see `certsub._core.resources.schema`): the persisted sets are deduplicated
and ordered by these codes, so that the state files do not change when
the API returns the same items in a different order.

The codes are not cryptographic and must never be used for security.
"""
import zlib
from typing import Iterable

_INT32_MIN = -2 ** 31


def string(s: str) -> int:
    """
    Hash a string to a non-negative 32-bit integer.

    The CRC-32 checksum is reinterpreted as a signed 32-bit integer
    and inverted if negative. The only value that cannot be inverted
    (the minimal one) becomes zero.
    """
    v = zlib.crc32(s.encode('utf-8'))
    if v > 2 ** 31 - 1:
        v -= 2 ** 32
    if v >= 0:
        return v
    if v == _INT32_MIN:
        return 0
    return -v


def strings(items: Iterable[str]) -> str:
    """
    Hash an ordered list of strings to a decimal string.

    Every item is suffixed with ``-`` before hashing, so the order matters,
    and e.g. ``["a", "b"]`` and ``["ab"]`` give different codes.
    """
    return str(string(''.join(f'{s}-' for s in items)))
