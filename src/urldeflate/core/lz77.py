"""LZ77 match finding over a 32 KiB window (hash chains).

Strategy: greedy longest match. With ``lazy=True`` the tokenizer also looks
one byte ahead and emits a literal when the next position yields a strictly
longer match (one-step lazy evaluation). Either way the stream is valid
DEFLATE; only the ratio changes.

The hash key is the 3-byte prefix itself (b0 << 16 | b1 << 8 | b2), so every
chain candidate is guaranteed to share the first MIN_MATCH bytes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from urldeflate.core.tables import MAX_MATCH, MIN_MATCH, WINDOW_SIZE

DEFAULT_MAX_CHAIN = 32


@dataclass(frozen=True, slots=True)
class Literal:
    byte: int


@dataclass(frozen=True, slots=True)
class BackReference:
    distance: int  # 1..32768
    length: int  # 3..258


Token = Union[Literal, BackReference]


class MatchFinder:
    """Incremental hash-chain index over ``data``.

    Positions must be inserted in ascending order; ``find(pos)`` only sees
    positions inserted before it.
    """

    def __init__(self, data: bytes, max_chain: int = DEFAULT_MAX_CHAIN) -> None:
        if max_chain < 1:
            raise ValueError(f"max_chain deve essere >= 1, got {max_chain}")
        self.data = bytes(data)
        self.max_chain = int(max_chain)
        self._head: dict[int, int] = {}
        self._prev: dict[int, int] = {}

    def _key(self, pos: int) -> int:
        d = self.data
        return (d[pos] << 16) | (d[pos + 1] << 8) | d[pos + 2]

    def insert(self, pos: int) -> None:
        if pos + MIN_MATCH > len(self.data):
            return
        key = self._key(pos)
        old = self._head.get(key)
        if old is not None:
            self._prev[pos] = old
        self._head[key] = pos

    def _match_length(self, cand: int, pos: int, limit: int) -> int:
        d = self.data
        n = MIN_MATCH
        while n < limit and d[cand + n] == d[pos + n]:
            n += 1
        return n

    def find(self, pos: int) -> tuple[int, int] | None:
        """Longest (distance, length) for ``pos``; ties go to the nearest."""
        data = self.data
        limit = min(MAX_MATCH, len(data) - pos)
        if limit < MIN_MATCH:
            return None

        cand = self._head.get(self._key(pos))
        best_len = 0
        best_dist = 0
        chain = self.max_chain
        prev = self._prev
        while cand is not None and chain > 0:
            dist = pos - cand
            if dist > WINDOW_SIZE:
                break
            # quick reject: cannot beat best_len unless this byte matches
            if best_len < limit and (
                best_len < MIN_MATCH or data[cand + best_len] == data[pos + best_len]
            ):
                n = self._match_length(cand, pos, limit)
                if n > best_len:
                    best_len = n
                    best_dist = dist
                    if n >= limit:
                        break
            cand = prev.get(cand)
            chain -= 1

        if best_len < MIN_MATCH:
            return None
        return best_dist, best_len


def find_match(
    window: bytes, position: int, max_chain: int = DEFAULT_MAX_CHAIN
) -> tuple[int, int] | None:
    """One-shot lookup: index every earlier position still in the window, then search."""
    if not (0 <= position <= len(window)):
        raise ValueError(f"posizione fuori range: {position}")
    mf = MatchFinder(window, max_chain=max_chain)
    for p in range(max(0, position - WINDOW_SIZE), position):
        mf.insert(p)
    return mf.find(position)


def tokenize(data: bytes, max_chain: int = DEFAULT_MAX_CHAIN, lazy: bool = False) -> list[Token]:
    """Turn ``data`` into Literal/BackReference tokens."""
    mf = MatchFinder(data, max_chain=max_chain)
    data = mf.data
    n = len(data)
    tokens: list[Token] = []

    pos = 0
    pending: tuple[int, int] | None = None  # match already found for pos (lazy step)
    while pos < n:
        m = pending if pending is not None else mf.find(pos)
        pending = None
        mf.insert(pos)

        if m is None:
            tokens.append(Literal(data[pos]))
            pos += 1
            continue

        dist, length = m
        if lazy and length < MAX_MATCH and pos + 1 < n:
            nxt = mf.find(pos + 1)
            if nxt is not None and nxt[1] > length:
                tokens.append(Literal(data[pos]))
                pending = nxt
                pos += 1
                continue

        tokens.append(BackReference(distance=dist, length=length))
        for p in range(pos + 1, pos + length):
            mf.insert(p)
        pos += length

    return tokens


def detokenize(tokens: list[Token]) -> bytes:
    """Expand tokens back to bytes (reference for tests and diagnostics)."""
    out = bytearray()
    for t in tokens:
        if isinstance(t, Literal):
            out.append(t.byte)
            continue
        start = len(out) - t.distance
        if start < 0:
            raise ValueError("back-reference prima dell'inizio dei dati")
        for i in range(t.length):
            out.append(out[start + i])
    return bytes(out)
