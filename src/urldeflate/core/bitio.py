"""Bit I/O in DEFLATE order.

RFC 1951 packs data elements starting at the least significant bit of each
byte. Huffman codes are the one exception (MSB of the code first): callers
hand us codes that are already bit-reversed, so both classes here only ever
deal with LSB-first values.
"""

from __future__ import annotations

from urldeflate.errors import UnexpectedEndOfStream

MAX_BITS_PER_CALL = 32


def _check_nbits(n: int) -> None:
    if not (0 <= n <= MAX_BITS_PER_CALL):
        raise ValueError(f"numero di bit fuori range (0..{MAX_BITS_PER_CALL}): {n}")


class BitWriter:
    """Growable LSB-first bit sink."""

    __slots__ = ("_buf", "_bitbuf", "_bitcnt")

    def __init__(self) -> None:
        self._buf = bytearray()
        self._bitbuf = 0
        self._bitcnt = 0  # pending bits in _bitbuf, always < 8 between calls

    @property
    def bit_length(self) -> int:
        return len(self._buf) * 8 + self._bitcnt

    @property
    def is_aligned(self) -> bool:
        return self._bitcnt == 0

    def write_bits(self, value: int, n: int) -> None:
        """Append the low ``n`` bits of ``value``, LSB first."""
        _check_nbits(n)
        if n == 0:
            return
        self._bitbuf |= (value & ((1 << n) - 1)) << self._bitcnt
        self._bitcnt += n
        while self._bitcnt >= 8:
            self._buf.append(self._bitbuf & 0xFF)
            self._bitbuf >>= 8
            self._bitcnt -= 8

    def align_to_byte(self) -> None:
        if self._bitcnt > 0:
            self._buf.append(self._bitbuf & 0xFF)
            self._bitbuf = 0
            self._bitcnt = 0

    def write_bytes(self, data: bytes) -> None:
        """Append whole bytes; the writer must be byte aligned (stored blocks)."""
        if self._bitcnt != 0:
            raise ValueError("write_bytes richiede allineamento al byte")
        self._buf += data

    def finish(self) -> bytes:
        self.align_to_byte()
        return bytes(self._buf)


class BitReader:
    """LSB-first bit source over an in-memory buffer."""

    __slots__ = ("_data", "_idx", "_bitbuf", "_bitcnt")

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._idx = 0  # next byte of _data not yet moved into _bitbuf
        self._bitbuf = 0
        self._bitcnt = 0

    @property
    def bit_position(self) -> int:
        """Number of bits consumed so far."""
        return self._idx * 8 - self._bitcnt

    @property
    def consumed_bytes(self) -> int:
        """Bytes touched so far, counting a partially consumed byte."""
        return (self.bit_position + 7) // 8

    def remaining_bits(self) -> int:
        return (len(self._data) - self._idx) * 8 + self._bitcnt

    def remaining_bytes(self) -> int:
        """Whole bytes left after the current bit position."""
        return self.remaining_bits() // 8

    def _fill(self, n: int) -> None:
        data = self._data
        while self._bitcnt < n and self._idx < len(data):
            self._bitbuf |= data[self._idx] << self._bitcnt
            self._idx += 1
            self._bitcnt += 8

    def peek_bits(self, n: int) -> int:
        """Look at the next ``n`` bits without consuming them.

        Past the end of input the missing bits read as zero; a following
        ``skip_bits`` detects the shortage.
        """
        _check_nbits(n)
        self._fill(n)
        return self._bitbuf & ((1 << n) - 1)

    def skip_bits(self, n: int) -> None:
        _check_nbits(n)
        self._fill(n)
        if self._bitcnt < n:
            raise UnexpectedEndOfStream(
                f"fine stream inattesa: richiesti {n} bit, disponibili {self._bitcnt}"
            )
        self._bitbuf >>= n
        self._bitcnt -= n

    def read_bits(self, n: int) -> int:
        _check_nbits(n)
        self._fill(n)
        if self._bitcnt < n:
            raise UnexpectedEndOfStream(
                f"fine stream inattesa: richiesti {n} bit, disponibili {self._bitcnt}"
            )
        v = self._bitbuf & ((1 << n) - 1)
        self._bitbuf >>= n
        self._bitcnt -= n
        return v

    def align_to_byte(self) -> None:
        """Drop the unread bits of the current partial byte."""
        drop = self._bitcnt % 8
        self._bitbuf >>= drop
        self._bitcnt -= drop

    def read_bytes(self, n: int) -> bytes:
        """Read exactly ``n`` aligned bytes."""
        self.align_to_byte()
        if n > self.remaining_bytes():
            raise UnexpectedEndOfStream(
                f"fine stream inattesa: richiesti {n} byte, disponibili {self.remaining_bytes()}"
            )
        out = bytearray()
        while n > 0 and self._bitcnt >= 8:
            out.append(self._bitbuf & 0xFF)
            self._bitbuf >>= 8
            self._bitcnt -= 8
            n -= 1
        if n > 0:
            out += self._data[self._idx : self._idx + n]
            self._idx += n
        return bytes(out)
