"""Verification helpers.

We implement:
  - stream verify: inflate a raw DEFLATE stream and report its block layout
  - file verify: same, reading the stream from a file

A stream verifies when it inflates without error. Bytes after the final
block do not make it fail (decompress ignores them); they are reported as
``trailing_bytes``.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from urldeflate.core.bitio import BitReader
from urldeflate.engine.block_decoder import BlockDecoder, BlockInfo

VERIFY_SCHEMA_V1 = "urldeflate.verify.v1"


@dataclass(frozen=True)
class StreamReport:
    compressed_size: int
    decompressed_size: int
    trailing_bytes: int
    sha256: str  # of the decompressed bytes
    blocks: list[BlockInfo] = field(default_factory=list)

    @property
    def block_counts(self) -> dict[str, int]:
        out = {"stored": 0, "fixed": 0, "dynamic": 0}
        for b in self.blocks:
            out[b.kind] += 1
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "compressed_size": self.compressed_size,
            "decompressed_size": self.decompressed_size,
            "trailing_bytes": self.trailing_bytes,
            "sha256": self.sha256,
            "block_counts": self.block_counts,
            "blocks": [
                {
                    "kind": b.kind,
                    "final": b.final,
                    "start_bit": b.start_bit,
                    "end_bit": b.end_bit,
                    "output_size": b.output_size,
                }
                for b in self.blocks
            ],
        }


def inspect_stream(data: bytes) -> StreamReport:
    """Inflate ``data`` and describe it. Raises the decoder's typed errors."""
    reader = BitReader(data)
    dec = BlockDecoder(reader)
    out = dec.decode()
    return StreamReport(
        compressed_size=len(data),
        decompressed_size=len(out),
        trailing_bytes=len(data) - reader.consumed_bytes,
        sha256=hashlib.sha256(out).hexdigest(),
        blocks=list(dec.blocks),
    )


def verify_stream_file(path: Path) -> StreamReport:
    return inspect_stream(Path(path).read_bytes())
