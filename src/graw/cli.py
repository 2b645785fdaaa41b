"""Command-line interface for building, converting and checking diagrams."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .graw import GraphModel, GrawDecodeError, decode_style, encode_style, new_graph
from .mxfile import dumps, from_xml
from .validation import check_references

logger = logging.getLogger(__name__)

COMMANDS = "new, convert, check, style"


@dataclass
class CliError(Exception):
    code: str
    message: str
    hint: Optional[str] = None
    exit_code: int = 1
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    retryable: bool = True


class UsageError(Exception):
    pass


class FriendlyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # pragma: no cover - argparse callback
        raise UsageError(message)


def _add_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--stdout", action="store_true", help="Write the document to stdout")
    parser.add_argument("-o", "--output", help="Output .drawio/.xml path")
    parser.add_argument("--mxfile", action="store_true", help="Wrap the model in an <mxfile> page")
    parser.add_argument(
        "--compressed",
        action="store_true",
        help="Store the page as a compressed payload (implies --mxfile)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = FriendlyArgumentParser(
        prog="graw",
        description="Build, convert and check mxGraph diagram files.",
    )
    parser.add_argument("--error-format", choices=["text", "json"], default="text")
    parser.add_argument("--debug", action="store_true")

    subparsers = parser.add_subparsers(dest="command")

    new_parser = subparsers.add_parser("new", help="Write an empty diagram with its default layer")
    _add_output_arguments(new_parser)

    convert_parser = subparsers.add_parser("convert", help="Re-encode a diagram file")
    convert_parser.add_argument("input", nargs="?", help="Input .drawio/.xml file")
    convert_parser.add_argument("--text", help="Raw diagram XML")
    convert_parser.add_argument("--page", type=int, default=1, help="Page to read (1-based)")
    _add_output_arguments(convert_parser)

    check_parser = subparsers.add_parser("check", help="Report dangling ids and broken parents")
    check_parser.add_argument("input", nargs="?", help="Input .drawio/.xml file")
    check_parser.add_argument("--text", help="Raw diagram XML")
    check_parser.add_argument("--page", type=int, default=1, help="Page to read (1-based)")

    style_parser = subparsers.add_parser("style", help="Decode or encode a cell style string")
    style_parser.add_argument("style", nargs="?", help="Style string such as 'rounded=1;html=1;'")
    style_parser.add_argument("--encode", metavar="JSON", help="JSON object to encode instead")

    return parser


def _read_input(path: Optional[str], text: Optional[str]) -> tuple[str, str]:
    if path and text is not None:
        raise CliError(
            "E_ARGS",
            "--text cannot be combined with file input",
            hint="Use either FILE or --text.",
            exit_code=2,
        )

    if text is not None:
        return text, "<text>"

    if path:
        input_path = Path(path)
        if not input_path.exists():
            raise CliError(
                "E_IO_READ",
                f"input file not found: {input_path}",
                exit_code=2,
                file=str(input_path),
            )
        try:
            return input_path.read_text(encoding="utf-8"), str(input_path)
        except OSError as exc:
            raise CliError(
                "E_IO_READ",
                f"failed to read input file: {input_path}",
                hint=str(exc),
                exit_code=2,
                file=str(input_path),
            )

    if sys.stdin.isatty():
        raise CliError(
            "E_ARGS",
            "no input provided",
            hint="Pass FILE, --text, or pipe a diagram into stdin.",
            exit_code=2,
        )

    data = sys.stdin.read()
    if not data.strip():
        raise CliError(
            "E_ARGS",
            "stdin was empty",
            hint="Pipe diagram XML into stdin.",
            exit_code=2,
        )
    return data, "<stdin>"


def _write_text(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise CliError(
            "E_IO_WRITE",
            f"failed to write output file: {path}",
            hint=str(exc),
            exit_code=4,
            file=str(path),
        )


def _check_output_args(args: argparse.Namespace) -> None:
    if args.stdout and args.output:
        raise CliError(
            "E_ARGS",
            "--stdout and --output are mutually exclusive",
            hint="Choose either --stdout or --output.",
            exit_code=2,
        )


def _emit_document(args: argparse.Namespace, text: str) -> int:
    if not text.endswith("\n"):
        text += "\n"
    if args.stdout or not args.output:
        sys.stdout.write(text)
        return 0
    output_path = Path(args.output)
    _write_text(output_path, text)
    print(f"Wrote {output_path}")
    return 0


def _load_model(args: argparse.Namespace) -> GraphModel:
    source, source_name = _read_input(args.input, args.text)
    if args.page < 1:
        raise CliError(
            "E_ARGS",
            "--page must be >= 1",
            hint="Pages are numbered from 1.",
            exit_code=2,
        )
    try:
        return from_xml(source, page=args.page - 1)
    except GrawDecodeError as exc:
        err = _error_from_exception(exc)
        if not source_name.startswith("<"):
            err.file = source_name
        raise err from exc


def _handle_new(args: argparse.Namespace) -> int:
    _check_output_args(args)
    text = dumps(new_graph(), mxfile=args.mxfile, compressed=args.compressed)
    return _emit_document(args, text)


def _handle_convert(args: argparse.Namespace) -> int:
    _check_output_args(args)
    model = _load_model(args)
    logger.debug("converting model with %d cell(s)", len(model.cells))
    text = dumps(model, mxfile=args.mxfile, compressed=args.compressed)
    return _emit_document(args, text)


def _handle_check(args: argparse.Namespace) -> int:
    model = _load_model(args)
    issues = check_references(model)
    if not issues:
        print("ok")
        return 0
    for issue in issues:
        print(issue)
    raise CliError(
        "E_REFERENCES",
        f"{len(issues)} reference issue(s) found",
        hint="Give every cell a unique id and point parent/source/target at existing cells.",
        exit_code=3,
        file=args.input,
        retryable=True,
    )


def _handle_style(args: argparse.Namespace) -> int:
    if args.encode is not None:
        if args.style is not None:
            raise CliError(
                "E_ARGS",
                "--encode cannot be combined with a style string",
                hint="Pass either STYLE or --encode JSON.",
                exit_code=2,
            )
        try:
            mapping = json.loads(args.encode)
        except json.JSONDecodeError as exc:
            raise CliError(
                "E_ARGS",
                f"--encode expects a JSON object: {exc}",
                exit_code=2,
            )
        if not isinstance(mapping, dict) or not all(
            isinstance(key, str) and isinstance(value, str) for key, value in mapping.items()
        ):
            raise CliError(
                "E_ARGS",
                "--encode expects a JSON object of string keys and string values",
                hint='Example: --encode \'{"rounded": "1", "html": "1"}\'',
                exit_code=2,
            )
        print(encode_style(mapping))
        return 0

    if args.style is None:
        raise CliError(
            "E_ARGS",
            "missing style string",
            hint="Pass STYLE or --encode JSON.",
            exit_code=2,
        )
    print(json.dumps(decode_style(args.style)))
    return 0


def _error_from_exception(exc: Exception) -> CliError:
    if isinstance(exc, CliError):
        return exc
    if isinstance(exc, GrawDecodeError):
        return CliError(
            exc.code,
            exc.message,
            hint="Input must be an <mxGraphModel> or <mxfile> document.",
            exit_code=2,
            line=exc.line,
            column=exc.column,
            retryable=True,
        )
    if isinstance(exc, ValueError):
        return CliError(
            "E_SEMANTIC",
            str(exc),
            exit_code=3,
            retryable=True,
        )
    return CliError(
        "E_INTERNAL",
        str(exc) or exc.__class__.__name__,
        hint="Re-run with --debug to see traceback.",
        exit_code=1,
        retryable=False,
    )


def _emit_error(err: CliError, *, error_format: str) -> None:
    if error_format == "json":
        payload = {
            "ok": False,
            "code": err.code,
            "message": err.message,
            "file": err.file,
            "line": err.line,
            "column": err.column,
            "hint": err.hint,
            "retryable": err.retryable,
        }
        sys.stderr.write(json.dumps(payload) + "\n")
        return

    sys.stderr.write(f"error[{err.code}]: {err.message}\n")
    if err.hint:
        sys.stderr.write(f"hint: {err.hint}\n")


def main(argv: Optional[Iterable[str]] = None) -> int:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    parser = _build_parser()

    if not raw_argv:
        err = CliError(
            "E_ARGS",
            "missing subcommand",
            hint=f"Use one of: {COMMANDS}.",
            exit_code=2,
        )
        _emit_error(err, error_format="text")
        return err.exit_code

    debug_enabled = "--debug" in raw_argv or os.getenv("GRAW_DEBUG") == "1"
    if debug_enabled:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)
    error_format = "text"
    if "--error-format" in raw_argv:
        idx = raw_argv.index("--error-format")
        if idx + 1 < len(raw_argv):
            error_format = raw_argv[idx + 1]

    try:
        args = parser.parse_args(raw_argv)
        error_format = args.error_format

        if args.command == "new":
            return _handle_new(args)
        if args.command == "convert":
            return _handle_convert(args)
        if args.command == "check":
            return _handle_check(args)
        if args.command == "style":
            return _handle_style(args)

        raise CliError(
            "E_ARGS",
            "missing subcommand",
            hint=f"Use one of: {COMMANDS}.",
            exit_code=2,
        )
    except UsageError as exc:
        err = CliError(
            "E_ARGS",
            str(exc),
            hint=f"Use subcommands: {COMMANDS}.",
            exit_code=2,
        )
        _emit_error(err, error_format=error_format)
        return err.exit_code
    except Exception as exc:  # pragma: no cover - exercised in acceptance tests
        err = _error_from_exception(exc)
        _emit_error(err, error_format=error_format)
        if debug_enabled:
            traceback.print_exc(file=sys.stderr)
        return err.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
