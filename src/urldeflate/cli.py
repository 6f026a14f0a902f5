"""urldeflate CLI.

This is the stable CLI entrypoint (console-script: ``urldeflate``).

Commands:
  - text encode/decode: UTF-8 text <-> URL-safe token (stdout)
  - file compress/decompress: raw DEFLATE files
  - file verify: inflate a stream and report its block layout
  - options-validate: check an options JSON

Notes:
  - --version is supported at top-level.
  - verify supports --json (machine-readable output, stable schema).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from urldeflate.errors import EXIT_GENERIC, EXIT_USAGE, UrlDeflateError, Utf8DecodeError
from urldeflate.options import DeflateOptions, OptionsError, load_options
from urldeflate.verify import VERIFY_SCHEMA_V1


def _pkg_version() -> str:
    try:
        from importlib.metadata import PackageNotFoundError, version

        try:
            return version("urldeflate")
        except PackageNotFoundError:
            # running from a source checkout without metadata
            return "0+unknown"
    except Exception:
        return "0+unknown"


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--debug", action="store_true", help="Show stack traces on errors")


def _add_options_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--options",
        default=None,
        help=(
            "Options JSON (schema urldeflate.options.v1). Use '@file.json' to load from file, "
            "or pass JSON inline. When set, --level is ignored."
        ),
    )
    p.add_argument(
        "--level",
        type=int,
        default=None,
        help="Compression level 0..9 (default: 6). 0 = stored blocks, no matching.",
    )


def _resolve_options(options_arg: str | None, level: int | None) -> DeflateOptions:
    if options_arg is not None:
        return load_options(options_arg)
    if level is None:
        return DeflateOptions()
    return DeflateOptions(level=level)


def _read_text_file(path: Path) -> str:
    raw = path.read_bytes()
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise Utf8DecodeError(f"{path}: non e' UTF-8 valido (byte {e.start})") from e


def _text_encode(text: str | None, input_path: Path | None, opts: DeflateOptions) -> int:
    from urldeflate.urlsafe import compress_base64_url_safe

    if text is not None and input_path is not None:
        raise ValueError("text encode: usa TEXT oppure --input, non entrambi")
    if input_path is not None:
        text = _read_text_file(input_path)
    elif text is None:
        text = sys.stdin.read()

    print(compress_base64_url_safe(text, options=opts))
    return 0


def _text_decode(token: str | None, input_path: Path | None, output_path: Path | None) -> int:
    from urldeflate.urlsafe import decompress_base64_url_safe

    if token is not None and input_path is not None:
        raise ValueError("text decode: usa TOKEN oppure --input, non entrambi")
    if input_path is not None:
        token = input_path.read_text(encoding="ascii", errors="replace")
    elif token is None:
        token = sys.stdin.read()

    text = decompress_base64_url_safe(token.strip())
    if output_path is not None:
        output_path.write_bytes(text.encode("utf-8"))
    else:
        sys.stdout.write(text)
    return 0


def _file_compress(
    input_path: Path, output_path: Path, opts: DeflateOptions, *, verbose: bool
) -> int:
    from urldeflate.core.codec_deflate import compress

    data = input_path.read_bytes()
    comp = compress(data, options=opts)
    output_path.write_bytes(comp)
    if verbose:
        ratio = (len(comp) / len(data)) if data else 0.0
        print(
            f"[urldeflate] {input_path}: {len(data)} -> {len(comp)} byte "
            f"(ratio {ratio:.3f}, level {opts.level}, strategy {opts.strategy})",
            file=sys.stderr,
        )
    return 0


def _file_decompress(input_path: Path, output_path: Path) -> int:
    from urldeflate.core.codec_deflate import decompress

    output_path.write_bytes(decompress(input_path.read_bytes()))
    return 0


def _print_verify_json(target: Path, report_dict: dict) -> None:
    obj = {
        "schema": VERIFY_SCHEMA_V1,
        "ok": True,
        "target": str(target),
        "version": _pkg_version(),
        **report_dict,
    }
    print(json.dumps(obj, ensure_ascii=False, separators=(",", ":")))


def _print_verify_json_error(target: Path, *, err_type: str, message: str) -> None:
    """Emit stable JSON on stderr for verify errors when --json is used."""
    obj = {
        "schema": VERIFY_SCHEMA_V1,
        "ok": False,
        "target": str(target),
        "version": _pkg_version(),
        "error": {"type": err_type, "message": message},
    }
    print(json.dumps(obj, ensure_ascii=False, sort_keys=True), file=sys.stderr)


def _file_verify(input_path: Path, *, json_out: bool) -> int:
    from urldeflate.verify import verify_stream_file

    try:
        report = verify_stream_file(input_path)
    except FileNotFoundError:
        if json_out:
            _print_verify_json_error(
                input_path, err_type="FileNotFound", message=f"file non trovato: {input_path}"
            )
            return EXIT_USAGE
        raise
    except UrlDeflateError as e:
        if json_out:
            _print_verify_json_error(input_path, err_type=type(e).__name__, message=str(e))
            return int(e.exit_code)
        raise

    if json_out:
        _print_verify_json(input_path, report.to_dict())
    else:
        counts = report.block_counts
        print(
            f"OK blocks={len(report.blocks)} "
            f"(stored={counts['stored']} fixed={counts['fixed']} dynamic={counts['dynamic']}) "
            f"size={report.decompressed_size} trailing={report.trailing_bytes}"
        )
    return 0


def _options_validate(options_arg: str) -> int:
    # load is the validation
    load_options(options_arg)
    print("OK")
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="urldeflate", description="DEFLATE + URL-safe Base64 for text in URLs"
    )
    p.add_argument("--version", action="version", version=f"urldeflate {_pkg_version()}")
    sub = p.add_subparsers(dest="cmd", required=True)

    # text ...
    p_text = sub.add_parser("text", help="UTF-8 text <-> URL-safe token")
    sub_text = p_text.add_subparsers(dest="text_cmd", required=True)

    p_te = sub_text.add_parser("encode", help="Compress text into a URL-safe token")
    p_te.add_argument("text", nargs="?", default=None, help="Text (default: stdin)")
    p_te.add_argument("--input", type=Path, default=None, help="Read text from a UTF-8 file")
    _add_options_args(p_te)
    _add_common_args(p_te)

    p_td = sub_text.add_parser("decode", help="Expand a URL-safe token back to text")
    p_td.add_argument("token", nargs="?", default=None, help="Token (default: stdin)")
    p_td.add_argument("--input", type=Path, default=None, help="Read the token from a file")
    p_td.add_argument("--output", type=Path, default=None, help="Write text to a file (UTF-8)")
    _add_common_args(p_td)

    # file ...
    p_file = sub.add_parser("file", help="Raw DEFLATE file operations")
    sub_file = p_file.add_subparsers(dest="file_cmd", required=True)

    p_c = sub_file.add_parser("compress", help="Compress a file to a raw DEFLATE stream")
    p_c.add_argument("input", type=Path)
    p_c.add_argument("output", type=Path)
    _add_options_args(p_c)
    p_c.add_argument("--verbose", action="store_true", help="Print sizes and ratio on stderr")
    _add_common_args(p_c)

    p_d = sub_file.add_parser("decompress", help="Decompress a raw DEFLATE stream")
    p_d.add_argument("input", type=Path)
    p_d.add_argument("output", type=Path)
    _add_common_args(p_d)

    p_fv = sub_file.add_parser("verify", help="Inflate a raw DEFLATE stream and report its blocks")
    p_fv.add_argument("input", type=Path)
    p_fv.add_argument("--json", action="store_true", help="Emit machine-readable JSON")
    _add_common_args(p_fv)

    # options ...
    p_ov = sub.add_parser("options-validate", help="Validate an options JSON (v1)")
    p_ov.add_argument("options", help="Options JSON (@file.json or inline JSON)")
    _add_common_args(p_ov)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    p = build_parser()
    ns = p.parse_args(argv)

    try:
        if ns.cmd == "text":
            if ns.text_cmd == "encode":
                opts = _resolve_options(ns.options, ns.level)
                return _text_encode(ns.text, ns.input, opts)
            if ns.text_cmd == "decode":
                return _text_decode(ns.token, ns.input, ns.output)
            raise AssertionError("unreachable")

        if ns.cmd == "file":
            if ns.file_cmd == "compress":
                opts = _resolve_options(ns.options, ns.level)
                return _file_compress(ns.input, ns.output, opts, verbose=bool(ns.verbose))
            if ns.file_cmd == "decompress":
                return _file_decompress(ns.input, ns.output)
            if ns.file_cmd == "verify":
                return _file_verify(ns.input, json_out=bool(ns.json))
            raise AssertionError("unreachable")

        if ns.cmd == "options-validate":
            return _options_validate(str(ns.options))

        raise AssertionError("unreachable")

    except SystemExit:
        raise
    except OptionsError as e:
        # usage/config error
        if getattr(ns, "debug", False):
            raise
        print(f"[urldeflate] {e}", file=sys.stderr)
        return EXIT_USAGE
    except UrlDeflateError as e:
        if getattr(ns, "debug", False):
            raise
        print(f"[urldeflate] {e}", file=sys.stderr)
        return int(getattr(e, "exit_code", EXIT_GENERIC) or EXIT_GENERIC)
    except Exception as e:
        if getattr(ns, "debug", False):
            raise
        print(f"[urldeflate] error: {e}", file=sys.stderr)
        return EXIT_GENERIC


if __name__ == "__main__":
    raise SystemExit(main())
