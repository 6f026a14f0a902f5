"""URL-safe Base64 + UTF-8 around the DEFLATE codec.

Token format: raw DEFLATE bytes, Base64 with '-' and '_' in place of '+'
and '/', '=' padding stripped. Tokens are safe in URL paths and queries
without further escaping.
"""

from __future__ import annotations

import base64
import binascii
import re

from urldeflate.core.codec_deflate import compress, decompress
from urldeflate.errors import InvalidBase64, Utf8DecodeError
from urldeflate.options import DEFAULT_LEVEL, DeflateOptions

_TOKEN_RE = re.compile(r"[A-Za-z0-9_-]*")


def encode_base64_url_safe(data: bytes) -> str:
    return base64.urlsafe_b64encode(bytes(data)).rstrip(b"=").decode("ascii")


def decode_base64_url_safe(token: str) -> bytes:
    if not isinstance(token, str):
        raise TypeError("token must be str")
    if _TOKEN_RE.fullmatch(token) is None:
        bad = next(c for c in token if not (c.isascii() and (c.isalnum() or c in "-_")))
        raise InvalidBase64(f"carattere non ammesso nel token base64url: {bad!r}")
    if len(token) % 4 == 1:
        # 6 bits cannot encode a whole byte
        raise InvalidBase64(f"lunghezza token impossibile: {len(token)}")

    padded = token + "=" * (-len(token) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except binascii.Error as e:
        raise InvalidBase64(f"token base64url non valido: {e}") from e


def compress_base64_url_safe(
    text: str, level: int = DEFAULT_LEVEL, *, options: DeflateOptions | None = None
) -> str:
    """text -> UTF-8 -> DEFLATE -> URL-safe Base64."""
    return encode_base64_url_safe(compress(text.encode("utf-8"), level, options=options))


def decompress_base64_url_safe(token: str) -> str:
    """Inverse of compress_base64_url_safe()."""
    raw = decompress(decode_base64_url_safe(token))
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise Utf8DecodeError(
            f"il testo decompresso non e' UTF-8 valido (byte {e.start}): {e.reason}"
        ) from e
