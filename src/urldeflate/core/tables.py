"""RFC 1951 constant tables (section 3.2.5 and 3.2.6).

Keep these stable: they are normative, not tuning knobs.
"""

from __future__ import annotations

from bisect import bisect_right

WINDOW_SIZE = 32768
MIN_MATCH = 3
MAX_MATCH = 258

END_OF_BLOCK = 256
NUM_LITLEN_SYMBOLS = 286  # usable; 286/287 exist only in the fixed code
NUM_FIXED_LITLEN_SYMBOLS = 288
NUM_DIST_SYMBOLS = 30
NUM_CODELEN_SYMBOLS = 19

MAX_CODE_LENGTH = 15
MAX_CODELEN_CODE_LENGTH = 7
MAX_STORED_BLOCK = 0xFFFF

# Block types (BTYPE)
BTYPE_STORED = 0
BTYPE_FIXED = 1
BTYPE_DYNAMIC = 2

BLOCK_KIND_NAMES = {BTYPE_STORED: "stored", BTYPE_FIXED: "fixed", BTYPE_DYNAMIC: "dynamic"}

# Lit/len symbols 257..285
LENGTH_BASE: tuple[int, ...] = (
    3, 4, 5, 6, 7, 8, 9, 10, 11, 13, 15, 17, 19, 23, 27, 31,
    35, 43, 51, 59, 67, 83, 99, 115, 131, 163, 195, 227, 258,
)
LENGTH_EXTRA: tuple[int, ...] = (
    0, 0, 0, 0, 0, 0, 0, 0, 1, 1, 1, 1, 2, 2, 2, 2,
    3, 3, 3, 3, 4, 4, 4, 4, 5, 5, 5, 5, 0,
)

# Distance symbols 0..29
DIST_BASE: tuple[int, ...] = (
    1, 2, 3, 4, 5, 7, 9, 13, 17, 25, 33, 49, 65, 97, 129, 193,
    257, 385, 513, 769, 1025, 1537, 2049, 3073, 4097, 6145, 8193, 12289, 16385, 24577,
)
DIST_EXTRA: tuple[int, ...] = (
    0, 0, 0, 0, 1, 1, 2, 2, 3, 3, 4, 4, 5, 5, 6, 6,
    7, 7, 8, 8, 9, 9, 10, 10, 11, 11, 12, 12, 13, 13,
)

# Order in which the code-length code lengths are transmitted.
CODELEN_ORDER: tuple[int, ...] = (16, 17, 18, 0, 8, 7, 9, 6, 10, 5, 11, 4, 12, 3, 13, 2, 14, 1, 15)

FIXED_LITLEN_LENGTHS: tuple[int, ...] = tuple([8] * 144 + [9] * 112 + [7] * 24 + [8] * 8)
# 32 codes: symbols 30 and 31 take part in the code but never appear in data.
FIXED_DIST_LENGTHS: tuple[int, ...] = tuple([5] * 32)


def _build_length_lookup() -> tuple[tuple[int, int, int], ...]:
    # index = match length; entries below MIN_MATCH are unused
    out: list[tuple[int, int, int]] = [(0, 0, 0)] * (MAX_MATCH + 1)
    for length in range(MIN_MATCH, MAX_MATCH + 1):
        if length == MAX_MATCH:
            out[length] = (285, 0, 0)
            continue
        i = bisect_right(LENGTH_BASE, length) - 1
        out[length] = (257 + i, LENGTH_EXTRA[i], length - LENGTH_BASE[i])
    return tuple(out)


_LENGTH_LOOKUP = _build_length_lookup()


def length_symbol(length: int) -> tuple[int, int, int]:
    """length -> (symbol, extra_bits, extra_value)."""
    if not (MIN_MATCH <= length <= MAX_MATCH):
        raise ValueError(f"lunghezza match fuori range: {length}")
    return _LENGTH_LOOKUP[length]


def distance_symbol(distance: int) -> tuple[int, int, int]:
    """distance -> (symbol, extra_bits, extra_value)."""
    if not (1 <= distance <= WINDOW_SIZE):
        raise ValueError(f"distanza fuori range: {distance}")
    i = bisect_right(DIST_BASE, distance) - 1
    return i, DIST_EXTRA[i], distance - DIST_BASE[i]
