from __future__ import annotations

import zlib

import pytest

from urldeflate.core.codec_deflate import CodecDeflate, compress, decompress
from urldeflate.options import DeflateOptions
from urldeflate.verify import inspect_stream

TEXT = (
    "FATTURA 1001\nRIGA ARTICOLO: vite M3 qty=10 prezzo=1.20\n"
    "RIGA ARTICOLO: dado M3 qty=10 prezzo=0.40\nTOTALE 16.00\n"
).encode("utf-8") * 30
# longer than one stored block and than the default block_size in tokens at level 0
ZEROS = b"\x00" * 70000


def _zlib_inflate(comp: bytes) -> bytes:
    d = zlib.decompressobj(-15)
    return d.decompress(comp) + d.flush()


def _zlib_deflate(data: bytes, level: int, strategy: int = zlib.Z_DEFAULT_STRATEGY) -> bytes:
    c = zlib.compressobj(level, zlib.DEFLATED, -15, 8, strategy)
    return c.compress(data) + c.flush()


def test_golden_empty() -> None:
    assert compress(b"") == b"\x03\x00"
    assert decompress(b"\x03\x00") == b""


def test_golden_single_literal_fixed() -> None:
    assert compress(b"a") == b"K\x04\x00"
    assert decompress(b"K\x04\x00") == b"a"


def test_golden_stored_layout() -> None:
    comp = compress(b"abc", options=DeflateOptions(strategy="stored"))
    assert comp == b"\x01\x03\x00\xfc\xffabc"


def test_level_zero_is_stored() -> None:
    comp = compress(TEXT, 0)
    assert {b.kind for b in inspect_stream(comp).blocks} == {"stored"}
    assert decompress(comp) == TEXT


@pytest.mark.parametrize("level", range(10))
def test_every_level_roundtrips(level: int) -> None:
    comp = compress(TEXT, level)
    assert decompress(comp) == TEXT
    if level > 0:
        assert len(comp) < len(TEXT) // 4


@pytest.mark.parametrize("strategy", ["auto", "stored", "fixed", "dynamic"])
@pytest.mark.parametrize("level", [0, 1, 6, 9])
def test_zlib_inflates_our_output(strategy: str, level: int) -> None:
    for data in (b"", b"x", TEXT, bytes(range(256)) * 4, ZEROS):
        comp = compress(data, options=DeflateOptions(level=level, strategy=strategy))
        assert _zlib_inflate(comp) == data


@pytest.mark.parametrize("level", range(10))
def test_we_inflate_zlib_output(level: int) -> None:
    for data in (b"", b"x", TEXT, bytes(range(256)) * 4, ZEROS):
        assert decompress(_zlib_deflate(data, level)) == data


def test_we_inflate_zlib_fixed_and_huffman_only() -> None:
    assert decompress(_zlib_deflate(TEXT, 6, zlib.Z_FIXED)) == TEXT
    assert decompress(_zlib_deflate(TEXT, 6, zlib.Z_HUFFMAN_ONLY)) == TEXT
    assert decompress(_zlib_deflate(TEXT, 6, zlib.Z_RLE)) == TEXT


def test_trailing_bytes_are_ignored() -> None:
    assert decompress(compress(b"x") + b"junk") == b"x"


def test_bytearray_and_memoryview_inputs() -> None:
    comp = compress(bytearray(b"hello hello"))
    assert decompress(memoryview(comp)) == b"hello hello"


def test_options_override_level() -> None:
    opts = DeflateOptions(level=9, strategy="fixed", block_size=64, max_chain=2, lazy=False)
    comp = compress(TEXT, 0, options=opts)
    kinds = {b.kind for b in inspect_stream(comp).blocks}
    assert kinds == {"fixed"}
    assert decompress(comp) == TEXT


def test_bad_level_and_types() -> None:
    with pytest.raises(ValueError):
        compress(b"x", 10)
    with pytest.raises(TypeError):
        compress("text")  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        decompress("text")  # type: ignore[arg-type]


def test_codec_object() -> None:
    c = CodecDeflate(level=9)
    assert c.codec_id == "deflate"
    comp = c.compress(TEXT)
    assert c.decompress(comp, out_size=123) == TEXT
    with pytest.raises(ValueError):
        CodecDeflate(level=-1)
    with pytest.raises(TypeError):
        c.compress(123)  # type: ignore[arg-type]


@pytest.mark.slow
def test_large_input_crosses_window_and_blocks() -> None:
    chunk = bytes((i * 2654435761) >> 13 & 0xFF for i in range(40000))
    data = chunk + TEXT + chunk
    for level in (1, 6):
        comp = compress(data, level)
        assert decompress(comp) == data
        assert _zlib_inflate(comp) == data


@pytest.mark.parametrize(
    "opts",
    [
        DeflateOptions(level=6, block_size=64),
        DeflateOptions(level=1, strategy="dynamic", block_size=100),
        DeflateOptions(level=0),
    ],
)
def test_zero_run_splits_into_blocks(opts: DeflateOptions) -> None:
    comp = compress(ZEROS, options=opts)
    assert len(inspect_stream(comp).blocks) > 1
    assert decompress(comp) == ZEROS
    assert _zlib_inflate(comp) == ZEROS
