from __future__ import annotations

import hashlib
import os
from concurrent.futures import ThreadPoolExecutor

import pytest

from urldeflate.core.codec_deflate import compress, decompress
from urldeflate.options import DeflateOptions
from urldeflate.urlsafe import compress_base64_url_safe


def _inputs() -> list[bytes]:
    # deterministico, include vuoto + unicode + bin
    return [
        b"",
        "ciao\nΩ\nλ\n".encode("utf-8"),
        b"\x00\x01\x02\x03\xff",
        b"RIGA ARTICOLO: vite M3 qty=10 prezzo=1.20\n" * 40,
        os.urandom(4096),
    ]


@pytest.mark.parametrize("level", [0, 1, 6, 9])
def test_same_input_same_bytes(level: int) -> None:
    for data in _inputs():
        a = compress(data, level)
        b = compress(data, level)
        assert hashlib.sha256(a).hexdigest() == hashlib.sha256(b).hexdigest()
        assert decompress(a) == data


def test_token_is_stable() -> None:
    text = "https://example.org/?q=ciao ciao ciao"
    assert compress_base64_url_safe(text) == compress_base64_url_safe(text)


def test_concurrent_calls_match_sequential() -> None:
    inputs = _inputs() * 3
    opts = DeflateOptions(level=6, block_size=64)
    expected = [compress(d, options=opts) for d in inputs]
    with ThreadPoolExecutor(max_workers=4) as ex:
        got = list(ex.map(lambda d: compress(d, options=opts), inputs))
        back = list(ex.map(decompress, got))
    assert got == expected
    assert back == inputs
