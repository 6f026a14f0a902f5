"""Canonical Huffman codes for DEFLATE.

Two directions:
  - lengths -> CodeTable (canonical assignment, RFC 1951 3.2.2)
  - frequencies -> lengths (length-limited, package-merge)

A CodeTable stores the canonical codes MSB-first (as the RFC prints them)
and, lazily, the bit-reversed codes and a flat lookup table used to
encode/decode against the LSB-first bit stream.
"""

from __future__ import annotations

from collections.abc import Sequence
from functools import cached_property

from urldeflate.core.bitio import BitReader
from urldeflate.core.tables import FIXED_DIST_LENGTHS, FIXED_LITLEN_LENGTHS, MAX_CODE_LENGTH
from urldeflate.errors import InvalidCodeLengths, InvalidHuffmanCode, UnexpectedEndOfStream


def reverse_bits(code: int, length: int) -> int:
    out = 0
    for _ in range(length):
        out = (out << 1) | (code & 1)
        code >>= 1
    return out


class CodeTable:
    """symbol -> (code, length) for a complete canonical prefix code."""

    def __init__(self, lengths: Sequence[int], codes: Sequence[int]) -> None:
        self.lengths: tuple[int, ...] = tuple(lengths)
        self.codes: tuple[int, ...] = tuple(codes)
        self.max_length: int = max(self.lengths, default=0)

    def __len__(self) -> int:
        return len(self.lengths)

    @cached_property
    def lsb_codes(self) -> tuple[int, ...]:
        """Codes bit-reversed, ready for BitWriter.write_bits()."""
        return tuple(reverse_bits(c, n) for c, n in zip(self.codes, self.lengths))

    @cached_property
    def lookup(self) -> list[int]:
        """Flat decode table indexed by the next ``max_length`` stream bits.

        Entry = (symbol << 4) | length, or -1 where no code matches.
        """
        size = 1 << self.max_length
        table = [-1] * size
        for sym, (code, n) in enumerate(zip(self.lsb_codes, self.lengths)):
            if n == 0:
                continue
            entry = (sym << 4) | n
            for idx in range(code, size, 1 << n):
                table[idx] = entry
        return table

    def cost(self, freqs: Sequence[int]) -> int:
        """Bits needed to code ``freqs`` (without extra bits)."""
        return sum(f * n for f, n in zip(freqs, self.lengths))


def build_canonical(code_lengths: Sequence[int], *, allow_incomplete: bool = False) -> CodeTable:
    """Assign canonical codes from per-symbol lengths (0 = symbol unused).

    Raises InvalidCodeLengths for over-subscribed or under-subscribed sets.
    ``allow_incomplete`` accepts exactly one code of length 1, the only
    incomplete code RFC 1951 allows (a single distance code).
    """
    lengths = [int(n) for n in code_lengths]
    if any(n < 0 or n > MAX_CODE_LENGTH for n in lengths):
        raise InvalidCodeLengths(f"lunghezza di codice fuori range 0..{MAX_CODE_LENGTH}")

    max_len = max(lengths, default=0)
    if max_len == 0:
        raise InvalidCodeLengths("nessun simbolo con codice")

    bl_count = [0] * (max_len + 1)
    for n in lengths:
        if n:
            bl_count[n] += 1

    # Kraft check: 'left' = codes still free at the current depth.
    left = 1
    for bits in range(1, max_len + 1):
        left = (left << 1) - bl_count[bits]
        if left < 0:
            raise InvalidCodeLengths("codice sovra-sottoscritto (over-subscribed)")
    if left > 0:
        single = max_len == 1 and bl_count[1] == 1
        if not (allow_incomplete and single):
            raise InvalidCodeLengths("codice incompleto (under-subscribed)")

    next_code = [0] * (max_len + 2)
    code = 0
    for bits in range(1, max_len + 1):
        code = (code + bl_count[bits - 1]) << 1
        next_code[bits] = code

    codes = [0] * len(lengths)
    for sym, n in enumerate(lengths):
        if n:
            codes[sym] = next_code[n]
            next_code[n] += 1

    return CodeTable(lengths, codes)


def build_from_frequencies(freqs: Sequence[int], max_code_length: int) -> list[int]:
    """Optimal code lengths under a length limit (package-merge).

    Symbols with zero frequency get length 0. If fewer than two symbols are
    used, a second one is forced in so the resulting code is complete.
    """
    n_symbols = len(freqs)
    used = [s for s, f in enumerate(freqs) if f > 0]
    lengths = [0] * n_symbols

    if len(used) < 2:
        if n_symbols < 2:
            raise ValueError("alfabeto troppo piccolo (servono almeno 2 simboli)")
        if not used:
            used = [0, 1]
        else:
            used.append(1 if used[0] == 0 else 0)
        for s in used:
            lengths[s] = 1
        return lengths

    if (1 << max_code_length) < len(used):
        raise ValueError(
            f"{len(used)} simboli non stanno in codici di max {max_code_length} bit"
        )

    # Items are (weight, symbols); stable sort keeps ties in symbol order.
    leaves: list[tuple[int, tuple[int, ...]]] = sorted(
        ((int(freqs[s]), (s,)) for s in used), key=lambda it: it[0]
    )
    items = list(leaves)
    for _ in range(max_code_length - 1):
        packages = [
            (items[i][0] + items[i + 1][0], items[i][1] + items[i + 1][1])
            for i in range(0, len(items) - 1, 2)
        ]
        items = sorted(leaves + packages, key=lambda it: it[0])

    for _, syms in items[: 2 * len(used) - 2]:
        for s in syms:
            lengths[s] += 1
    return lengths


def encode(symbol: int, table: CodeTable) -> tuple[int, int]:
    """Return (lsb_code, length) for ``symbol``, ready for BitWriter.write_bits()."""
    n = table.lengths[symbol]
    if n == 0:
        raise ValueError(f"simbolo {symbol} senza codice nella tabella")
    return table.lsb_codes[symbol], n


def decode_one(reader: BitReader, table: CodeTable) -> int:
    """Decode the next symbol from ``reader``."""
    entry = table.lookup[reader.peek_bits(table.max_length)]
    if entry < 0:
        if reader.remaining_bits() < table.max_length:
            raise UnexpectedEndOfStream("fine stream inattesa dentro un codice Huffman")
        raise InvalidHuffmanCode("sequenza di bit senza codice Huffman corrispondente")
    reader.skip_bits(entry & 0xF)
    return entry >> 4


# Fixed codes (BTYPE=01), shared by encoder and decoder.
FIXED_LITLEN = build_canonical(FIXED_LITLEN_LENGTHS)
FIXED_DIST = build_canonical(FIXED_DIST_LENGTHS)
