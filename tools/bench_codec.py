#!/usr/bin/env python3
"""Codec benchmark: urldeflate vs the standard library's raw DEFLATE.

Compresses every file under the given paths at one level, checks the round
trip, cross-checks interop with zlib and prints one JSON row per file plus a
summary row.

Usage example:
  python tools/bench_codec.py README.md src/ --level 6 --iters 3

Notes:
- Uses internal APIs (no subprocess). Run inside repo venv.
- zlib is used here only as a yardstick; src/ never imports it.
"""

from __future__ import annotations

import argparse
import json
import resource
import time
import zlib
from pathlib import Path
from typing import Any


def _peak_rss_kb() -> int:
    # Linux: ru_maxrss is KB
    return int(resource.getrusage(resource.RUSAGE_SELF).ru_maxrss)


def _iter_files(paths: list[Path]) -> list[Path]:
    out: list[Path] = []
    for p in paths:
        if p.is_dir():
            out.extend(q for q in sorted(p.rglob("*")) if q.is_file())
        elif p.is_file():
            out.append(p)
    return out


def _zlib_raw(data: bytes, level: int) -> bytes:
    c = zlib.compressobj(level, zlib.DEFLATED, -15)
    return c.compress(data) + c.flush()


def _zlib_inflate(comp: bytes) -> bytes:
    d = zlib.decompressobj(-15)
    return d.decompress(comp) + d.flush()


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="bench_codec.py", description="urldeflate codec benchmark")
    ap.add_argument("paths", type=Path, nargs="+")
    ap.add_argument("--level", type=int, default=6)
    ap.add_argument("--iters", type=int, default=1)
    ap.add_argument(
        "--options", default=None, help="Options JSON (@file.json or inline JSON); overrides --level"
    )
    ns = ap.parse_args(argv)

    from urldeflate.core.codec_deflate import compress, decompress
    from urldeflate.options import DeflateOptions, load_options

    opts = load_options(ns.options) if ns.options else DeflateOptions(level=int(ns.level))
    files = _iter_files(list(ns.paths))
    if not files:
        raise SystemExit("nessun file da misurare")

    rows: list[dict[str, Any]] = []
    t0_all = time.perf_counter()

    for f in files:
        data = f.read_bytes()
        t_c = t_d = 0.0
        comp = b""
        for _ in range(max(1, int(ns.iters))):
            t0 = time.perf_counter()
            comp = compress(data, options=opts)
            t_c += time.perf_counter() - t0
            t1 = time.perf_counter()
            back = decompress(comp)
            t_d += time.perf_counter() - t1
            if back != data:
                raise SystemExit(f"roundtrip non lossless: {f}")

        ref = _zlib_raw(data, opts.level)
        interop = _zlib_inflate(comp) == data and decompress(ref) == data
        n = max(1, int(ns.iters))
        row = {
            "file": str(f),
            "size": len(data),
            "urldeflate": len(comp),
            "zlib": len(ref),
            "ratio": (len(comp) / len(data)) if data else 0.0,
            "vs_zlib": (len(comp) / len(ref)) if ref else 0.0,
            "times_sec": {"compress": t_c / n, "decompress": t_d / n},
            "interop_ok": bool(interop),
            "peak_rss_kb": _peak_rss_kb(),
        }
        rows.append(row)
        print(json.dumps(row, ensure_ascii=False))
        if not interop:
            raise SystemExit(f"interop con zlib fallita: {f}")

    total_in = sum(r["size"] for r in rows)
    total_out = sum(r["urldeflate"] for r in rows)
    total_ref = sum(r["zlib"] for r in rows)
    summary = {
        "schema": "urldeflate.bench_codec.v1",
        "files": len(rows),
        "options": opts.to_dict(),
        "bytes_in": total_in,
        "bytes_out": total_out,
        "bytes_zlib": total_ref,
        "ratio": (total_out / total_in) if total_in else 0.0,
        "vs_zlib": (total_out / total_ref) if total_ref else 0.0,
        "wall_total_sec": time.perf_counter() - t0_all,
    }
    print(json.dumps(summary, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
