"""DEFLATE block decoder (inflate).

The decompressed output doubles as the sliding window: back-references are
resolved against the tail of the output buffer, never against a copy of it.
Every consumed block is recorded as a BlockInfo (used by verify).
"""

from __future__ import annotations

from dataclasses import dataclass

from urldeflate.core.bitio import BitReader
from urldeflate.core.huffman import (
    FIXED_DIST,
    FIXED_LITLEN,
    CodeTable,
    build_canonical,
    decode_one,
)
from urldeflate.core.tables import (
    BLOCK_KIND_NAMES,
    BTYPE_DYNAMIC,
    BTYPE_FIXED,
    BTYPE_STORED,
    CODELEN_ORDER,
    DIST_BASE,
    DIST_EXTRA,
    END_OF_BLOCK,
    LENGTH_BASE,
    LENGTH_EXTRA,
    NUM_CODELEN_SYMBOLS,
    NUM_DIST_SYMBOLS,
    NUM_LITLEN_SYMBOLS,
)
from urldeflate.errors import (
    InvalidBlockType,
    InvalidCodeLengths,
    InvalidDistance,
    InvalidHuffmanCode,
    StoredLengthMismatch,
    TruncatedStream,
)

# No valid block is shorter than this (fixed header + end-of-block code).
MIN_BLOCK_BITS = 10


@dataclass(frozen=True)
class BlockInfo:
    kind: str  # "stored" | "fixed" | "dynamic"
    final: bool
    start_bit: int
    end_bit: int
    output_size: int


class BlockDecoder:
    def __init__(self, reader: BitReader) -> None:
        self.reader = reader
        self.out = bytearray()
        self.blocks: list[BlockInfo] = []

    def decode(self) -> bytes:
        """Inflate blocks until the one flagged final has been consumed."""
        r = self.reader
        while True:
            if r.remaining_bits() < MIN_BLOCK_BITS:
                raise TruncatedStream(
                    f"stream troncato: nessun blocco finale dopo {len(self.blocks)} blocchi"
                )
            start_bit = r.bit_position
            start_out = len(self.out)

            final = r.read_bits(1) == 1
            btype = r.read_bits(2)
            if btype == BTYPE_STORED:
                self._stored_block()
            elif btype == BTYPE_FIXED:
                self._huffman_block(FIXED_LITLEN, FIXED_DIST)
            elif btype == BTYPE_DYNAMIC:
                litlen, dist = self._read_dynamic_tables()
                self._huffman_block(litlen, dist)
            else:
                raise InvalidBlockType(f"tipo di blocco riservato (BTYPE=3) al bit {start_bit}")

            self.blocks.append(
                BlockInfo(
                    kind=BLOCK_KIND_NAMES[btype],
                    final=final,
                    start_bit=start_bit,
                    end_bit=r.bit_position,
                    output_size=len(self.out) - start_out,
                )
            )
            if final:
                return bytes(self.out)

    def _stored_block(self) -> None:
        r = self.reader
        r.align_to_byte()
        n = r.read_bits(16)
        nn = r.read_bits(16)
        if n ^ 0xFFFF != nn:
            raise StoredLengthMismatch(f"blocco stored: LEN={n:#06x} NLEN={nn:#06x}")
        self.out += r.read_bytes(n)

    def _read_dynamic_tables(self) -> tuple[CodeTable, CodeTable | None]:
        r = self.reader
        hlit = r.read_bits(5) + 257
        hdist = r.read_bits(5) + 1
        hclen = r.read_bits(4) + 4
        if hlit > NUM_LITLEN_SYMBOLS:
            raise InvalidCodeLengths(f"HLIT troppo grande: {hlit}")
        if hdist > NUM_DIST_SYMBOLS:
            raise InvalidCodeLengths(f"HDIST troppo grande: {hdist}")

        cl_lengths = [0] * NUM_CODELEN_SYMBOLS
        for i in range(hclen):
            cl_lengths[CODELEN_ORDER[i]] = r.read_bits(3)
        cl_table = build_canonical(cl_lengths)

        total = hlit + hdist
        lengths: list[int] = []
        while len(lengths) < total:
            sym = decode_one(r, cl_table)
            if sym < 16:
                lengths.append(sym)
            elif sym == 16:
                if not lengths:
                    raise InvalidCodeLengths("codice 16 senza lunghezza precedente")
                lengths.extend([lengths[-1]] * (r.read_bits(2) + 3))
            elif sym == 17:
                lengths.extend([0] * (r.read_bits(3) + 3))
            else:
                lengths.extend([0] * (r.read_bits(7) + 11))
        if len(lengths) > total:
            raise InvalidCodeLengths("run di lunghezze oltre HLIT+HDIST")

        lit_lengths = lengths[:hlit]
        if lit_lengths[END_OF_BLOCK] == 0:
            raise InvalidCodeLengths("manca il codice di fine blocco (256)")
        litlen = build_canonical(lit_lengths, allow_incomplete=True)

        dist_lengths = lengths[hlit:]
        if not any(dist_lengths):
            # only literals in this block
            return litlen, None
        return litlen, build_canonical(dist_lengths, allow_incomplete=True)

    def _huffman_block(self, litlen: CodeTable, dist: CodeTable | None) -> None:
        r = self.reader
        out = self.out
        while True:
            sym = decode_one(r, litlen)
            if sym < END_OF_BLOCK:
                out.append(sym)
                continue
            if sym == END_OF_BLOCK:
                return
            if sym >= NUM_LITLEN_SYMBOLS:
                raise InvalidHuffmanCode(f"simbolo lunghezza riservato: {sym}")

            i = sym - 257
            length = LENGTH_BASE[i] + r.read_bits(LENGTH_EXTRA[i])

            if dist is None:
                raise InvalidHuffmanCode("simbolo di lunghezza in un blocco senza codici distanza")
            dsym = decode_one(r, dist)
            if dsym >= NUM_DIST_SYMBOLS:
                raise InvalidHuffmanCode(f"simbolo distanza riservato: {dsym}")
            distance = DIST_BASE[dsym] + r.read_bits(DIST_EXTRA[dsym])
            if distance > len(out):
                raise InvalidDistance(
                    f"distanza {distance} oltre l'inizio dell'output ({len(out)} byte)"
                )

            start = len(out) - distance
            if distance >= length:
                out += out[start : start + length]
            else:
                # overlapping copy: source bytes are produced while copying
                for k in range(length):
                    out.append(out[start + k])


def decode(reader: BitReader) -> bytes:
    return BlockDecoder(reader).decode()
