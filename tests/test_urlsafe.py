from __future__ import annotations

import re

import pytest

from urldeflate.core.codec_deflate import compress
from urldeflate.errors import EncodingError, InvalidBase64, TruncatedStream, Utf8DecodeError
from urldeflate.options import DeflateOptions
from urldeflate.urlsafe import (
    compress_base64_url_safe,
    decode_base64_url_safe,
    decompress_base64_url_safe,
    encode_base64_url_safe,
)

URL_SAFE = re.compile(r"^[A-Za-z0-9_-]*$")


def test_encode_uses_url_alphabet_without_padding() -> None:
    assert encode_base64_url_safe(b"\xfb\xff") == "-_8"
    assert encode_base64_url_safe(b"") == ""
    assert encode_base64_url_safe(b"f") == "Zg"
    assert encode_base64_url_safe(b"foo") == "Zm9v"


def test_decode_repads() -> None:
    assert decode_base64_url_safe("-_8") == b"\xfb\xff"
    assert decode_base64_url_safe("Zg") == b"f"
    assert decode_base64_url_safe("Zm9v") == b"foo"
    assert decode_base64_url_safe("") == b""


@pytest.mark.parametrize("token", ["ab+c", "ab/c", "Zg==", "Zm 9v", "Zm9v\n", "città"])
def test_decode_rejects_foreign_characters(token: str) -> None:
    with pytest.raises(InvalidBase64, match="carattere"):
        decode_base64_url_safe(token)


@pytest.mark.parametrize("token", ["a", "abcde"])
def test_decode_rejects_impossible_length(token: str) -> None:
    with pytest.raises(InvalidBase64, match="lunghezza"):
        decode_base64_url_safe(token)


def test_decode_type_check() -> None:
    with pytest.raises(TypeError):
        decode_base64_url_safe(b"Zm9v")  # type: ignore[arg-type]


def test_text_roundtrip_hello() -> None:
    token = compress_base64_url_safe("hello hello hello")
    assert URL_SAFE.match(token)
    assert "+" not in token and "/" not in token and "=" not in token
    assert decompress_base64_url_safe(token) == "hello hello hello"


@pytest.mark.parametrize(
    "text",
    ["", "a", "città ☕ 🚀 perché", "riga 1\nriga 2\r\n\ttab", "x" * 5000],
)
def test_text_roundtrip(text: str) -> None:
    token = compress_base64_url_safe(text)
    assert URL_SAFE.match(token)
    assert decompress_base64_url_safe(token) == text


def test_empty_text_token() -> None:
    # compress(b"") == b"\x03\x00"
    assert compress_base64_url_safe("") == "AwA"


def test_text_with_options() -> None:
    token = compress_base64_url_safe("abc", options=DeflateOptions(strategy="stored"))
    assert decode_base64_url_safe(token) == b"\x01\x03\x00\xfc\xffabc"


def test_repetitive_text_shrinks() -> None:
    text = "https://example.org/search?q=deflate&lang=it " * 50
    assert len(compress_base64_url_safe(text)) < len(text) // 5


def test_invalid_utf8_payload() -> None:
    token = encode_base64_url_safe(compress(b"\xff\xfe ok"))
    with pytest.raises(Utf8DecodeError) as ei:
        decompress_base64_url_safe(token)
    assert isinstance(ei.value, EncodingError)
    assert isinstance(ei.value.__cause__, UnicodeDecodeError)


def test_empty_token_is_not_a_stream() -> None:
    with pytest.raises(TruncatedStream):
        decompress_base64_url_safe("")
