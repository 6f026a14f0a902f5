from __future__ import annotations

import pytest

from urldeflate.core.bitio import BitReader, BitWriter
from urldeflate.core.lz77 import BackReference, Literal, tokenize
from urldeflate.engine.block_decoder import BlockDecoder, decode
from urldeflate.engine.block_encoder import encode_blocks

SAMPLES = [
    b"",
    b"a",
    b"hello hello hello",
    b"The quick brown fox jumps over the lazy dog. " * 40,
    bytes(range(256)),
    bytes((i * 7919) % 251 for i in range(5000)),
    b"\x00" * 1000,
]


def _encode(data: bytes, **kw) -> tuple[bytes, list[str]]:
    w = BitWriter()
    kinds = encode_blocks(tokenize(data, max_chain=32, lazy=True), w, data, **kw)
    return w.finish(), kinds


@pytest.mark.parametrize("data", SAMPLES)
@pytest.mark.parametrize("strategy", ["auto", "stored", "fixed", "dynamic"])
def test_blocks_roundtrip(data: bytes, strategy: str) -> None:
    comp, kinds = _encode(data, strategy=strategy)
    assert decode(BitReader(comp)) == data
    if strategy != "auto":
        assert set(kinds) == {strategy}


def test_empty_fixed_block_bytes() -> None:
    w = BitWriter()
    assert encode_blocks([], w, b"", strategy="fixed") == ["fixed"]
    assert w.finish() == b"\x03\x00"


def test_auto_picks_stored_for_incompressible() -> None:
    data = bytes(range(256))
    _, kinds = _encode(data)
    assert kinds == ["stored"]


def test_auto_picks_dynamic_for_skewed_literals() -> None:
    data = b"eeeeeeet" * 500
    w = BitWriter()
    kinds = encode_blocks([Literal(b) for b in data], w, data)
    assert kinds == ["dynamic"]
    assert decode(BitReader(w.finish())) == data


def test_auto_picks_fixed_for_tiny_input() -> None:
    _, kinds = _encode(b"a")
    assert kinds == ["fixed"]


def test_block_size_splits_blocks() -> None:
    data = b"0123456789"
    comp, kinds = _encode(data, strategy="fixed", block_size=3)
    assert kinds == ["fixed"] * 4

    dec = BlockDecoder(BitReader(comp))
    assert dec.decode() == data
    assert [b.final for b in dec.blocks] == [False, False, False, True]
    assert [b.output_size for b in dec.blocks] == [3, 3, 3, 1]


def test_stored_splits_at_65535() -> None:
    data = bytes(i & 0xFF for i in range(70000))
    comp, kinds = _encode(data, strategy="stored", block_size=1 << 20)
    assert kinds == ["stored", "stored"]

    dec = BlockDecoder(BitReader(comp))
    assert dec.decode() == data
    assert [b.output_size for b in dec.blocks] == [65535, 70000 - 65535]


def test_dynamic_literals_only() -> None:
    data = b"abcdefghij"
    comp, kinds = _encode(data, strategy="dynamic")
    assert kinds == ["dynamic"]
    assert decode(BitReader(comp)) == data


def test_non_final_blocks() -> None:
    w = BitWriter()
    encode_blocks([Literal(120)], w, b"x", strategy="fixed", final=False)
    encode_blocks([], w, b"", strategy="stored")
    dec = BlockDecoder(BitReader(w.finish()))
    assert dec.decode() == b"x"
    assert [(b.kind, b.final) for b in dec.blocks] == [("fixed", False), ("stored", True)]


def test_overlapping_back_reference() -> None:
    toks = [Literal(ord("a")), Literal(ord("b")), BackReference(distance=2, length=7)]
    w = BitWriter()
    encode_blocks(toks, w, b"ababababa", strategy="fixed")
    assert decode(BitReader(w.finish())) == b"ababababa"


def test_tokens_must_cover_data() -> None:
    with pytest.raises(ValueError):
        encode_blocks([Literal(1)], BitWriter(), b"ab")


def test_bad_strategy_and_block_size() -> None:
    with pytest.raises(ValueError, match="strategia"):
        encode_blocks([], BitWriter(), b"", strategy="best")
    with pytest.raises(ValueError, match="block_size"):
        encode_blocks([], BitWriter(), b"", block_size=0)


@pytest.mark.parametrize("strategy", ["fixed", "dynamic"])
def test_returned_kinds_match_written_block_types(strategy: str) -> None:
    data = b"\x00" * 3000 + b"hello hello hello" * 20
    comp, kinds = _encode(data, strategy=strategy, block_size=16)
    dec = BlockDecoder(BitReader(comp))
    assert dec.decode() == data
    assert [b.kind for b in dec.blocks] == kinds
    assert len(kinds) > 1


def test_auto_mixes_block_kinds_in_one_stream() -> None:
    # flat byte histogram, then a skewed one: one chunk each
    flat = (bytes(range(256)) * 16)[:4000]
    skewed = b"eeeeeeet" * 500
    data = flat + skewed
    w = BitWriter()
    kinds = encode_blocks([Literal(b) for b in data], w, data, block_size=4000)
    assert kinds == ["stored", "dynamic"]
    assert decode(BitReader(w.finish())) == data
