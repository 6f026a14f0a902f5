"""Typed errors for urldeflate.

Single source of truth for exit codes lives here.

Policy:
- Errors are small and boring.
- Decode errors are raised where the malformed input is detected; nothing
  returns partial output.
- The CLI maps errors to stable exit codes (see EXIT_* constants).
- docs/exit_codes.md is generated from this module (scripts/gen_exit_codes_md.py).
"""

from __future__ import annotations

from dataclasses import dataclass

# -------------------------
# Exit codes (single source)
# -------------------------

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_GENERIC = 10
EXIT_CORRUPT_STREAM = 11
EXIT_TRUNCATED = 12
EXIT_BAD_ENCODING = 13


@dataclass(frozen=True, slots=True)
class ExitCodeInfo:
    code: int
    name: str
    description: str


EXIT_CODES: tuple[ExitCodeInfo, ...] = (
    ExitCodeInfo(EXIT_OK, "OK", "Success"),
    ExitCodeInfo(EXIT_USAGE, "USAGE", "Usage/config error (invalid args, invalid options JSON, etc.)"),
    ExitCodeInfo(EXIT_GENERIC, "GENERIC", "Generic failure (I/O error, unexpected error, etc.)"),
    ExitCodeInfo(
        EXIT_CORRUPT_STREAM,
        "CORRUPT_STREAM",
        "Malformed DEFLATE bitstream (bad code lengths, bad symbol, bad block type, ...)",
    ),
    ExitCodeInfo(EXIT_TRUNCATED, "TRUNCATED", "DEFLATE bitstream ends before the final block"),
    ExitCodeInfo(EXIT_BAD_ENCODING, "BAD_ENCODING", "Invalid URL-safe Base64 token or invalid UTF-8 text"),
)

_EXIT_CODE_BY_CODE: dict[int, ExitCodeInfo] = {e.code: e for e in EXIT_CODES}


def exit_code_info(code: int) -> ExitCodeInfo | None:
    return _EXIT_CODE_BY_CODE.get(int(code))


def render_exit_codes_markdown() -> str:
    """Render docs/exit_codes.md content."""
    lines: list[str] = []
    lines.append("# Exit codes\n")
    lines.append("> GENERATED FILE - do not edit manually.\n")
    lines.append("> Source of truth: `src/urldeflate/errors.py` (EXIT_CODES).\n")
    lines.append("> Regenerate: `python scripts/gen_exit_codes_md.py`.\n\n")
    lines.append("These are the CLI exit codes you can rely on.\n\n")
    lines.append("| Code | Name | Meaning |\n")
    lines.append("|---:|---|---|\n")
    for e in sorted(EXIT_CODES, key=lambda x: x.code):
        lines.append(f"| {e.code} | `{e.name}` | {e.description} |\n")
    lines.append("\n## Notes\n")
    lines.append("- All library errors extend `UrlDeflateError` and carry an `exit_code`.\n")
    lines.append("- `--debug` re-raises errors to show full stack traces.\n")
    lines.append(
        "- `--json` on `file verify` prints a JSON object to stdout (ok) or stderr (error), and returns the same exit code.\n"
    )
    return "".join(lines)


# ---------------
# Typed exceptions
# ---------------


class UrlDeflateError(Exception):
    """Base error for urldeflate."""

    exit_code: int = EXIT_GENERIC


class UsageError(UrlDeflateError):
    exit_code = EXIT_USAGE


class CorruptStream(UrlDeflateError):
    """The DEFLATE bitstream is malformed."""

    exit_code = EXIT_CORRUPT_STREAM


class InvalidCodeLengths(CorruptStream):
    """Code lengths do not describe a complete prefix code."""


class InvalidHuffmanCode(CorruptStream):
    """Consumed bits match no code (or a reserved symbol)."""


class StoredLengthMismatch(CorruptStream):
    """LEN and NLEN of a stored block are not one's complements."""


class InvalidBlockType(CorruptStream):
    """BTYPE=11 is reserved."""


class InvalidDistance(CorruptStream):
    """A back-reference points before the start of the output."""


class UnexpectedEndOfStream(CorruptStream):
    """Fewer bits left than a read asked for."""

    exit_code = EXIT_TRUNCATED


class TruncatedStream(CorruptStream):
    """Input exhausted before a block with BFINAL=1 was seen."""

    exit_code = EXIT_TRUNCATED


class EncodingError(UrlDeflateError):
    exit_code = EXIT_BAD_ENCODING


class InvalidBase64(EncodingError):
    pass


class Utf8DecodeError(EncodingError):
    pass
