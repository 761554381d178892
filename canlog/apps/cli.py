from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from canlog.config import CanlogSettings, ConfigError, load_settings, write_default_config
from canlog.core.codec.engine import EncodeError
from canlog.core.export import frames_to_csv, frames_to_jsonl, parse_converted_csv, parse_frames_jsonl
from canlog.core.matrix.loader import MatrixError
from canlog.core.service import IngestService
from canlog.core.sources.pythoncan import IngestError, write_message_log
from canlog.core.util.stablejson import dumps
from canlog.logging import TRACE_LEVEL, parse_log_level, setup_logging


log = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="canlog", description="CAN log conversion and signal decoding.")
    _add_logging_args(parser)
    parser.add_argument("--config-dir", default=None, help="Override config dir (default: ~/.config/canlog)")

    sub = parser.add_subparsers(dest="cmd", required=True)

    convert_p = sub.add_parser("convert", help="Parse log files, decode signals and write CSV/JSONL")
    _add_logging_args(convert_p)
    convert_p.add_argument("files", nargs="+", help="Log files (.log, .trc, .txt, .asc, .blf, ...)")
    _add_matrix_arg(convert_p)
    convert_p.add_argument(
        "--default-format",
        choices=["log", "trc"],
        default=None,
        help="Recognizer order for files without a .log/.trc extension (default: log)",
    )
    convert_p.add_argument("--format", dest="out_format", choices=["csv", "jsonl"], default="csv")
    convert_p.add_argument("-o", "--output", default=None, help="Output path (default: stdout)")
    convert_p.add_argument(
        "--message-log",
        default=None,
        help="Also write raw frames through python-can (extension picks the writer, e.g. out.asc)",
    )

    matrix_p = sub.add_parser("matrix", help="Show the message catalog in use")
    _add_logging_args(matrix_p)
    _add_matrix_arg(matrix_p)
    matrix_p.add_argument("--json", action="store_true", help="Output deterministic JSON")

    decode_p = sub.add_parser("decode-frame", help="Decode a single frame")
    _add_logging_args(decode_p)
    _add_matrix_arg(decode_p)
    decode_p.add_argument("--id", dest="frame_id", required=True, help="Arbitration id as hex (e.g. 0x18265040)")
    decode_p.add_argument("--data", required=True, help="Payload hex (e.g. '28 5A' or 285A)")

    encode_p = sub.add_parser("encode", help="Build a payload from physical signal values")
    _add_logging_args(encode_p)
    _add_matrix_arg(encode_p)
    encode_p.add_argument("--id", dest="frame_id", required=True, help="Arbitration id as hex")
    encode_p.add_argument(
        "--set",
        dest="assignments",
        action="append",
        default=[],
        metavar="SIGNAL=VALUE",
        help="Physical value for a signal (repeatable)",
    )

    import_p = sub.add_parser("import", help="Read back a converted CSV/JSONL file")
    _add_logging_args(import_p)
    import_p.add_argument("file", help="Converted file")
    import_p.add_argument("--format", dest="in_format", choices=["csv", "jsonl"], default=None)

    config_p = sub.add_parser("config", help="Configuration")
    _add_logging_args(config_p)
    config_sub = config_p.add_subparsers(dest="config_cmd", required=True)
    config_show_p = config_sub.add_parser("show", help="Print effective settings")
    _add_logging_args(config_show_p)
    config_init_p = config_sub.add_parser("init", help="Write a default canlog.json")
    _add_logging_args(config_init_p)
    config_init_p.add_argument("--force", action="store_true", help="Overwrite an existing file")

    args = parser.parse_args(argv)

    # Logging (stderr/file). Keep command results on stdout.
    if getattr(args, "trace", False):
        level = TRACE_LEVEL
    elif getattr(args, "verbose", False):
        level = logging.DEBUG
    else:
        level = parse_log_level(getattr(args, "log_level", None))

    setup_logging(
        level=level,
        log_format=str(getattr(args, "log_format", "pretty") or "pretty"),
        log_file=getattr(args, "log_file", None),
        no_color=bool(getattr(args, "no_color", False)),
    )
    log.debug("CLI start", extra={"cmd": args.cmd})

    try:
        settings = load_settings(
            config_dir=args.config_dir,
            default_format=getattr(args, "default_format", None),
            matrix_path=getattr(args, "matrix", None),
        )
        code = _dispatch(args, settings)
    except (ConfigError, MatrixError, IngestError, EncodeError) as exc:
        log.debug("Command failed", exc_info=True)
        raise SystemExit(f"error: {exc}") from exc
    if code:
        raise SystemExit(code)


def _dispatch(args: argparse.Namespace, settings: CanlogSettings) -> int:
    if args.cmd == "config":
        return _cmd_config(args, settings)
    if args.cmd == "import":
        return _cmd_import(args)

    service = IngestService(matrix_path=settings.matrix_path, parser_config=settings.parser_config())
    if len(service.matrix) == 0:
        # A catalog that yields nothing is reported, not raised by the parser.
        _print_json({"ok": False, "error": f"no messages found in matrix {service.matrix_source}"})
        return 1

    if args.cmd == "convert":
        return _cmd_convert(args, service)
    if args.cmd == "matrix":
        return _cmd_matrix(args, service)
    if args.cmd == "decode-frame":
        frame = service.decode_single(args.frame_id, args.data)
        _print_json({"ok": True, "frame": frame.to_dict(), "known": frame.decoded is not None})
        return 0
    if args.cmd == "encode":
        values = _parse_assignments(args.assignments)
        frame = service.encode(args.frame_id, values)
        _print_json({"ok": True, "frame": frame.to_dict(), "data_hex": "".join(frame.data)})
        return 0
    raise SystemExit(f"error: unknown command {args.cmd}")


def _cmd_convert(args: argparse.Namespace, service: IngestService) -> int:
    result = service.ingest_files(args.files)
    if not result.frames:
        _print_json({"ok": False, "error": "no valid CAN messages found in the provided files"})
        return 1

    if args.message_log:
        write_message_log(result.frames, args.message_log)

    text = frames_to_jsonl(result.frames) if args.out_format == "jsonl" else frames_to_csv(result.frames)
    if args.output:
        out = Path(args.output).expanduser()
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text, encoding="utf-8")
        log.info("Output written", extra={"path": str(out), "frame_count": result.frame_count})
    else:
        sys.stdout.write(text)

    if args.output:
        _print_json(
            {
                "ok": True,
                "frames": result.frame_count,
                "decoded": result.decoded_count,
                "matrix": result.matrix_source,
                "output": str(args.output),
            }
        )
    return 0


def _cmd_matrix(args: argparse.Namespace, service: IngestService) -> int:
    matrix = service.matrix
    if args.json:
        _print_json({"ok": True, "source": service.matrix_source, "messages": matrix.to_dict()})
        return 0
    for key, message in matrix.items():
        sys.stdout.write(f"0x{int(key):X} {message.name} dlc={message.dlc} signals={len(message.signals)}\n")
        for sig in message.signals.values():
            order = "LE" if sig.is_little_endian else "BE"
            sign = "signed" if sig.is_signed else "unsigned"
            unit = f" [{sig.unit}]" if sig.unit else ""
            sys.stdout.write(
                f"  {sig.name} {sig.start_bit}|{sig.length} {order} {sign} x{sig.scale:g} {sig.offset:+g}{unit}\n"
            )
    return 0


def _cmd_import(args: argparse.Namespace) -> int:
    path = Path(args.file).expanduser()
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise IngestError(f"{path}: failed to read") from exc
    fmt = args.in_format or ("jsonl" if path.suffix.lower() in {".jsonl", ".ndjson"} else "csv")
    frames = parse_frames_jsonl(text) if fmt == "jsonl" else parse_converted_csv(text)
    if not frames:
        _print_json({"ok": False, "error": "no data found in the provided file"})
        return 1
    signals = sorted({name for f in frames if f.decoded for name in f.decoded})
    _print_json({"ok": True, "frames": len(frames), "signals": signals})
    return 0


def _cmd_config(args: argparse.Namespace, settings: CanlogSettings) -> int:
    if args.config_cmd == "init":
        path = settings.config_file
        if path.exists() and not args.force:
            _print_json({"ok": False, "error": f"{path} already exists (use --force)"})
            return 1
        write_default_config(path, data={"default_format": settings.default_format, "matrix": ""})
        _print_json({"ok": True, "path": str(path)})
        return 0
    _print_json(
        {
            "ok": True,
            "config_dir": str(settings.config_dir),
            "default_format": settings.default_format,
            "matrix": str(settings.matrix_path) if settings.matrix_path else "default",
        }
    )
    return 0


def _parse_assignments(items: list[str]) -> dict[str, float]:
    values: dict[str, float] = {}
    for item in items:
        name, sep, raw = item.partition("=")
        if not sep or not name.strip():
            raise SystemExit("error: invalid --set format (expected SIGNAL=VALUE)")
        try:
            values[name.strip()] = float(raw)
        except ValueError as exc:
            raise SystemExit(f"error: invalid value for {name.strip()}") from exc
    return values


def _add_matrix_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--matrix", default=None, help="DBC catalog file (default: bundled matrix)")


def _add_logging_args(parser: argparse.ArgumentParser) -> None:
    # Use SUPPRESS defaults so that root-level flags (placed before the subcommand)
    # are not overwritten by subparser defaults.
    parser.add_argument(
        "--log-level",
        choices=["error", "warning", "info", "debug", "trace"],
        default=argparse.SUPPRESS,
        help="Logging level (default: info)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Alias for --log-level=debug",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Alias for --log-level=trace",
    )
    parser.add_argument("--log-file", default=argparse.SUPPRESS, help="Optional log file path")
    parser.add_argument(
        "--log-format",
        choices=["pretty", "json"],
        default=argparse.SUPPRESS,
        help="Log output format (default: pretty)",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Disable ANSI colors in pretty logs",
    )


def _print_json(payload: dict[str, Any]) -> None:
    sys.stdout.write(dumps(payload, pretty=True))


if __name__ == "__main__":
    main()
