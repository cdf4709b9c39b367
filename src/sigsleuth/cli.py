"""Command-line entry point for identifying files.

``python -m sigsleuth.cli`` (or the ``sigsleuth`` console script) identifies
one or more files or directories and prints either a compact table, JSON
lines, the raw FileCollection XML, or one media type per file.

Exit codes: ``0`` when every file was identified, ``1`` when at least one file
failed, ``2`` for usage and initialisation errors.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .config import IdentificationSettings, load_settings
from .core.detector import FileIdentification
from .core.errors import InitializationError
from .reporting.json_lines import write_json_lines
from .tool import IdentificationTool, ToolRun

_FORMATS = ("table", "json", "xml", "mime")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sigsleuth",
        description="Identify file formats from binary and container signatures",
    )
    parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Files or directories to identify.",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        help="JSON settings file (signature paths, scan ceiling, modes).",
    )
    parser.add_argument(
        "--signature-file",
        type=Path,
        help="Binary signature file (overrides the settings file).",
    )
    parser.add_argument(
        "--container-signature-file",
        type=Path,
        help="Container signature file (overrides the settings file).",
    )
    parser.add_argument(
        "--binary-only",
        action="store_true",
        default=None,
        help="Skip container identification when a binary signature matched.",
    )
    parser.add_argument(
        "--max-bytes",
        type=int,
        default=None,
        help="Bytes to scan from each end of a file (non-positive: unlimited).",
    )
    parser.add_argument(
        "--no-extensions",
        action="store_false",
        dest="match_extensions",
        default=None,
        help="Do not fall back to file extensions when no signature matched.",
    )
    parser.add_argument(
        "--glob",
        default="**/*",
        help="Glob used when expanding directories (default: **/*).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Identify files on this many threads (default: settings or 1).",
    )
    parser.add_argument(
        "--format",
        choices=_FORMATS,
        default="table",
        help="Output format (default: table).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level (default: WARNING).",
    )
    return parser


def _resolve_settings(args: argparse.Namespace, parser: argparse.ArgumentParser) -> IdentificationSettings:
    if args.settings is not None:
        try:
            settings = load_settings(args.settings)
        except (OSError, ValueError, TypeError) as exc:
            parser.error(f"Unable to load settings {args.settings}: {exc}")
    elif args.signature_file is not None:
        settings = IdentificationSettings(signature_file=args.signature_file)
    else:
        parser.error("A signature file is required (--signature-file or --settings).")
    if args.workers is not None and args.workers <= 0:
        parser.error("--workers must be positive")
    max_bytes = args.max_bytes
    if max_bytes is not None and max_bytes <= 0:
        max_bytes = -1
    return settings.with_overrides(
        signature_file=args.signature_file,
        container_signature_file=args.container_signature_file,
        binary_signatures_only=args.binary_only,
        max_bytes_to_scan=max_bytes,
        match_extensions=args.match_extensions,
        workers=args.workers,
    )


def _expand_paths(paths: Iterable[Path], glob: str) -> List[Path]:
    files: List[Path] = []
    for root in paths:
        if root.is_file():
            files.append(root)
        elif root.is_dir():
            files.extend(path for path in sorted(root.glob(glob)) if path.is_file())
        else:
            raise FileNotFoundError(f"Path does not exist: {root}")
    return files


def _ellipsize(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    if limit <= 1:
        return value[:limit]
    return f"{value[: limit - 1]}…"


def _emit_table(runs: Sequence[ToolRun]) -> None:
    columns = ("Path", "PUID", "Name", "Version", "Media type", "Method")
    widths = [len(column) for column in columns]
    rows = []
    for run in runs:
        if run.output is None:
            rows.append((str(run.path), "—", f"error: {run.error}", "—", "—", "—"))
        elif not run.output.results.results:
            rows.append((str(run.path), "—", "—", "—", str(run.output.media_type), "—"))
        else:
            for index, result in enumerate(run.output.results):
                rows.append(
                    (
                        str(run.path) if index == 0 else "",
                        result.puid or "—",
                        result.name or "—",
                        result.version or "—",
                        str(run.output.media_type) if index == 0 else "",
                        result.method,
                    )
                )
    for row in rows:
        for index, value in enumerate(row):
            widths[index] = max(widths[index], len(value))
    for column, limit in (("Name", 48), ("Media type", 64)):
        index = columns.index(column)
        widths[index] = min(widths[index], limit)
    print("  ".join(column.ljust(widths[index]) for index, column in enumerate(columns)))
    print("  ".join("-" * width for width in widths))
    for row in rows:
        print("  ".join(_ellipsize(value, widths[index]).ljust(widths[index]) for index, value in enumerate(row)))


def _emit_json(runs: Sequence[ToolRun]) -> None:
    entries = [
        FileIdentification(
            path=run.path,
            results=run.output.results if run.output is not None else None,
            error=run.error,
        )
        for run in runs
    ]
    write_json_lines(entries, sys.stdout)


def _emit_xml(tool: IdentificationTool, runs: Sequence[ToolRun]) -> None:
    created = datetime.now(timezone.utc)
    for run in runs:
        if run.output is None:
            continue
        sys.stdout.write(tool.report_builder.render(run.output.results, created=created))


def _emit_mime(runs: Sequence[ToolRun]) -> None:
    for run in runs:
        if run.output is None:
            continue
        print(f"{run.path}\t{run.output.media_type}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(sys.argv[1:]) if argv is None else list(argv))
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    settings = _resolve_settings(args, parser)
    try:
        files = _expand_paths(args.paths, args.glob)
    except FileNotFoundError as exc:
        parser.error(str(exc))
        return 2
    try:
        tool = IdentificationTool.from_settings(settings)
    except InitializationError as exc:
        parser.error(str(exc))
        return 2

    runs = tool.extract_many(files, workers=settings.workers)
    if args.format == "json":
        _emit_json(runs)
    elif args.format == "xml":
        _emit_xml(tool, runs)
    elif args.format == "mime":
        _emit_mime(runs)
    else:
        _emit_table(runs)

    failed = [run for run in runs if not run.ok]
    for run in failed:
        sys.stderr.write(f"error: {run.error}\n")
    return 1 if failed else 0


def console_main() -> None:
    """Entry point for ``sigsleuth`` console script."""

    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover - CLI entry
    console_main()
