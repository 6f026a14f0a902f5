"""DEFLATE block encoder.

Tokens are cut into chunks of at most ``block_size`` tokens. For every chunk
the exact bit cost of the three block kinds is computed and the cheapest is
written (strategy "auto"); ties favour stored, then fixed, then dynamic.
A strategy other than "auto" forces one kind for every chunk.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from urldeflate.core.bitio import BitWriter
from urldeflate.core.huffman import (
    FIXED_DIST,
    FIXED_LITLEN,
    CodeTable,
    build_canonical,
    build_from_frequencies,
)
from urldeflate.core.lz77 import Literal, Token
from urldeflate.core.tables import (
    BTYPE_DYNAMIC,
    BTYPE_FIXED,
    BTYPE_STORED,
    CODELEN_ORDER,
    END_OF_BLOCK,
    MAX_CODE_LENGTH,
    MAX_CODELEN_CODE_LENGTH,
    MAX_STORED_BLOCK,
    NUM_CODELEN_SYMBOLS,
    NUM_DIST_SYMBOLS,
    NUM_LITLEN_SYMBOLS,
    distance_symbol,
    length_symbol,
)

STRATEGIES = ("auto", "stored", "fixed", "dynamic")
DEFAULT_BLOCK_SIZE = 16384


@dataclass(frozen=True)
class _Chunk:
    tokens: Sequence[Token]
    raw: bytes


@dataclass
class _Stats:
    """Symbol frequencies of one chunk plus its total extra-bit count."""

    litlen: list[int]
    dist: list[int]
    extra_bits: int


@dataclass(frozen=True)
class _DynamicHeader:
    litlen: CodeTable
    dist: CodeTable
    hlit: int
    hdist: int
    hclen: int
    codelen: CodeTable
    items: list[tuple[int, int, int]]  # (codelen symbol, extra bits, extra value)

    @property
    def bits(self) -> int:
        n = 5 + 5 + 4 + 3 * self.hclen
        for sym, nbits, _ in self.items:
            n += self.codelen.lengths[sym] + nbits
        return n


def _split_chunks(data: bytes, tokens: Sequence[Token], block_size: int) -> list[_Chunk]:
    chunks: list[_Chunk] = []
    start_tok = 0
    start_byte = 0
    pos = 0
    for i, t in enumerate(tokens):
        pos += 1 if isinstance(t, Literal) else t.length
        if i + 1 - start_tok >= block_size:
            chunks.append(_Chunk(tokens[start_tok : i + 1], data[start_byte:pos]))
            start_tok = i + 1
            start_byte = pos
    if start_tok < len(tokens) or not chunks:
        chunks.append(_Chunk(tokens[start_tok:], data[start_byte:pos]))
    if pos != len(data):
        raise ValueError(f"i token coprono {pos} byte, input di {len(data)} byte")
    return chunks


def _collect_stats(tokens: Sequence[Token]) -> _Stats:
    litlen = [0] * NUM_LITLEN_SYMBOLS
    dist = [0] * NUM_DIST_SYMBOLS
    extra = 0
    for t in tokens:
        if isinstance(t, Literal):
            litlen[t.byte] += 1
            continue
        sym, eb, _ = length_symbol(t.length)
        dsym, deb, _ = distance_symbol(t.distance)
        litlen[sym] += 1
        dist[dsym] += 1
        extra += eb + deb
    litlen[END_OF_BLOCK] += 1
    return _Stats(litlen=litlen, dist=dist, extra_bits=extra)


def _rle_code_lengths(seq: Sequence[int]) -> list[tuple[int, int, int]]:
    """Run-length code a code-length sequence with symbols 16/17/18."""
    items: list[tuple[int, int, int]] = []
    i = 0
    while i < len(seq):
        v = seq[i]
        run = 1
        while i + run < len(seq) and seq[i + run] == v:
            run += 1
        i += run

        if v == 0:
            while run >= 11:
                k = min(run, 138)
                items.append((18, 7, k - 11))
                run -= k
            if run >= 3:
                items.append((17, 3, run - 3))
                run = 0
            items.extend([(0, 0, 0)] * run)
            continue

        items.append((v, 0, 0))
        run -= 1
        while run >= 3:
            k = min(run, 6)
            items.append((16, 2, k - 3))
            run -= k
        items.extend([(v, 0, 0)] * run)
    return items


def _plan_dynamic(stats: _Stats) -> _DynamicHeader:
    lit_lengths = build_from_frequencies(stats.litlen, MAX_CODE_LENGTH)
    dist_lengths = build_from_frequencies(stats.dist, MAX_CODE_LENGTH)

    hlit = 257
    for s in range(NUM_LITLEN_SYMBOLS - 1, 256, -1):
        if lit_lengths[s]:
            hlit = s + 1
            break
    hdist = 1
    for s in range(NUM_DIST_SYMBOLS - 1, -1, -1):
        if dist_lengths[s]:
            hdist = s + 1
            break

    items = _rle_code_lengths(lit_lengths[:hlit] + dist_lengths[:hdist])
    cl_freq = [0] * NUM_CODELEN_SYMBOLS
    for sym, _, _ in items:
        cl_freq[sym] += 1
    cl_lengths = build_from_frequencies(cl_freq, MAX_CODELEN_CODE_LENGTH)

    hclen = NUM_CODELEN_SYMBOLS
    while hclen > 4 and cl_lengths[CODELEN_ORDER[hclen - 1]] == 0:
        hclen -= 1

    return _DynamicHeader(
        litlen=build_canonical(lit_lengths),
        dist=build_canonical(dist_lengths),
        hlit=hlit,
        hdist=hdist,
        hclen=hclen,
        codelen=build_canonical(cl_lengths),
        items=items,
    )


def _stored_cost(bit_length: int, n_bytes: int) -> int:
    n_blocks = max(1, -(-n_bytes // MAX_STORED_BLOCK))
    pad = (-(bit_length + 3)) % 8
    # first header may need padding; later headers always start aligned (3 + 5)
    return 3 + pad + (n_blocks - 1) * 8 + n_blocks * 32 + 8 * n_bytes


def _write_stored(writer: BitWriter, raw: bytes, final: bool) -> int:
    pieces = [raw[i : i + MAX_STORED_BLOCK] for i in range(0, len(raw), MAX_STORED_BLOCK)] or [b""]
    for k, piece in enumerate(pieces):
        last = final and k == len(pieces) - 1
        writer.write_bits(1 if last else 0, 1)
        writer.write_bits(BTYPE_STORED, 2)
        writer.align_to_byte()
        n = len(piece)
        writer.write_bits(n, 16)
        writer.write_bits(~n & 0xFFFF, 16)
        writer.write_bytes(piece)
    return len(pieces)


def _write_dynamic_header(writer: BitWriter, hdr: _DynamicHeader) -> None:
    writer.write_bits(hdr.hlit - 257, 5)
    writer.write_bits(hdr.hdist - 1, 5)
    writer.write_bits(hdr.hclen - 4, 4)
    for i in range(hdr.hclen):
        writer.write_bits(hdr.codelen.lengths[CODELEN_ORDER[i]], 3)
    codes = hdr.codelen.lsb_codes
    lens = hdr.codelen.lengths
    for sym, nbits, value in hdr.items:
        writer.write_bits(codes[sym], lens[sym])
        writer.write_bits(value, nbits)


def _write_tokens(
    writer: BitWriter, tokens: Sequence[Token], litlen: CodeTable, dist: CodeTable
) -> None:
    lit_codes, lit_lens = litlen.lsb_codes, litlen.lengths
    dist_codes, dist_lens = dist.lsb_codes, dist.lengths
    write = writer.write_bits
    for t in tokens:
        if isinstance(t, Literal):
            write(lit_codes[t.byte], lit_lens[t.byte])
            continue
        sym, eb, ev = length_symbol(t.length)
        write(lit_codes[sym], lit_lens[sym])
        write(ev, eb)
        dsym, deb, dev = distance_symbol(t.distance)
        write(dist_codes[dsym], dist_lens[dsym])
        write(dev, deb)
    write(lit_codes[END_OF_BLOCK], lit_lens[END_OF_BLOCK])


def _choose_kind(
    strategy: str, writer: BitWriter, chunk: _Chunk, stats: _Stats
) -> tuple[int, _DynamicHeader | None]:
    if strategy == "stored":
        return BTYPE_STORED, None
    if strategy == "fixed":
        return BTYPE_FIXED, None
    hdr = _plan_dynamic(stats)
    if strategy == "dynamic":
        return BTYPE_DYNAMIC, hdr

    fixed_body = FIXED_LITLEN.cost(stats.litlen) + FIXED_DIST.cost(stats.dist)
    dynamic_body = hdr.litlen.cost(stats.litlen) + hdr.dist.cost(stats.dist)
    costs = (
        (_stored_cost(writer.bit_length, len(chunk.raw)), BTYPE_STORED),
        (3 + fixed_body + stats.extra_bits, BTYPE_FIXED),
        (3 + hdr.bits + dynamic_body + stats.extra_bits, BTYPE_DYNAMIC),
    )
    _, kind = min(costs, key=lambda c: c[0])  # min() keeps the first on ties
    return kind, (hdr if kind == BTYPE_DYNAMIC else None)


def encode_blocks(
    tokens: Sequence[Token],
    writer: BitWriter,
    data: bytes,
    *,
    strategy: str = "auto",
    block_size: int = DEFAULT_BLOCK_SIZE,
    final: bool = True,
) -> list[str]:
    """Write ``tokens`` (which must expand to ``data``) as DEFLATE blocks.

    Returns the kind of every block written ("stored"/"fixed"/"dynamic"),
    in stream order.
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"strategia non supportata: {strategy!r}")
    if block_size < 1:
        raise ValueError(f"block_size deve essere >= 1, got {block_size}")

    kinds: list[str] = []
    chunks = _split_chunks(data, tokens, block_size)
    for ci, chunk in enumerate(chunks):
        last = final and ci == len(chunks) - 1

        if strategy == "stored":
            kinds.extend(["stored"] * _write_stored(writer, chunk.raw, last))
            continue

        stats = _collect_stats(chunk.tokens)
        kind, hdr = _choose_kind(strategy, writer, chunk, stats)
        if kind == BTYPE_STORED:
            kinds.extend(["stored"] * _write_stored(writer, chunk.raw, last))
            continue

        writer.write_bits(1 if last else 0, 1)
        writer.write_bits(kind, 2)
        # hdr is set exactly when kind is dynamic
        if hdr is None:
            _write_tokens(writer, chunk.tokens, FIXED_LITLEN, FIXED_DIST)
            kinds.append("fixed")
        else:
            _write_dynamic_header(writer, hdr)
            _write_tokens(writer, chunk.tokens, hdr.litlen, hdr.dist)
            kinds.append("dynamic")
    return kinds
