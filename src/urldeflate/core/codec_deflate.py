from __future__ import annotations

from urldeflate.core.bitio import BitReader, BitWriter
from urldeflate.core.lz77 import Literal, Token, tokenize
from urldeflate.engine.block_decoder import BlockDecoder
from urldeflate.engine.block_encoder import encode_blocks
from urldeflate.options import DEFAULT_LEVEL, DeflateOptions


def _as_bytes(data: bytes | bytearray | memoryview, what: str) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"{what} must be bytes")
    return bytes(data)


def compress(
    data: bytes, level: int = DEFAULT_LEVEL, *, options: DeflateOptions | None = None
) -> bytes:
    """Raw DEFLATE (RFC 1951) of ``data``. ``options`` wins over ``level``."""
    raw = _as_bytes(data, "data")
    opts = options if options is not None else DeflateOptions(level=level)

    tokens: list[Token]
    if opts.matching:
        max_chain, lazy = opts.match_params()
        tokens = tokenize(raw, max_chain=max_chain, lazy=lazy)
    else:
        tokens = [Literal(b) for b in raw]

    w = BitWriter()
    encode_blocks(
        tokens,
        w,
        raw,
        strategy=opts.effective_strategy(),
        block_size=opts.block_size,
    )
    return w.finish()


def decompress(data: bytes) -> bytes:
    """Inverse of compress(). Bytes after the final block are ignored."""
    raw = _as_bytes(data, "comp")
    return BlockDecoder(BitReader(raw)).decode()


class CodecDeflate:
    """DEFLATE byte codec (pure Python, no platform compression)."""

    codec_id = "deflate"

    def __init__(self, level: int = DEFAULT_LEVEL):
        if not (0 <= level <= 9):
            raise ValueError(f"deflate level must be 0..9, got {level}")
        self.level = level

    def compress(self, data: bytes) -> bytes:
        return compress(data, self.level)

    def decompress(self, comp: bytes, out_size: int | None = None) -> bytes:
        # out_size is ignored: the stream is self-terminating
        return decompress(comp)
