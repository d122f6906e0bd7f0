"""Command line interface for xlsx_client package."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from rich.logging import RichHandler

from .cli_progress import ConsoleStatusReporter, render_configuration_summary, render_result
from .models import DEFAULT_API_URL, ZIP_EXTENSIONS, ClientConfig, LifecycleState, extension_of
from .orchestrator import BatchJobClient


DEFAULT_TIMEOUT = 60.0


SETTING_KEYS = ("XLSX_API_URL", "XLSX_API_TIMEOUT", "LOG_LEVEL")


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _log_level(debug: bool, silent: bool, log_level: Optional[str], settings: Mapping[str, str]) -> Optional[int]:
    """Level for the root logger; None means silent (the default)."""
    if silent:
        return None
    if debug:
        return logging.DEBUG
    name = log_level or settings.get("LOG_LEVEL")
    if not name:
        return None
    return getattr(logging, name.upper(), logging.INFO)


def _setup_logging(level: Optional[int]) -> str:
    """Install a RichHandler at level on the root logger; returns the mode shown in the summary."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    logging.disable(logging.NOTSET)

    if level is None:
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    handler = RichHandler(markup=False, show_time=False, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _unquote(value: str) -> str:
    if len(value) > 1 and value[0] in "'\"" and value[-1] == value[0]:
        return value[1:-1]
    return value


def _read_env_file(path: Path) -> Dict[str, str]:
    """Parse KEY=VALUE lines. Blank lines, # comments and an `export ` prefix are allowed."""
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError as exc:
        raise CLIError(f"env file not found: {path}") from exc
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    values: Dict[str, str] = {}
    for line in lines:
        line = line.strip()
        if line.startswith("export "):
            line = line[len("export "):]
        key, sep, value = line.partition("=")
        key = key.strip()
        if line.startswith("#") or not sep or not key:
            continue
        values[key] = _unquote(value.strip())
    return values


def _load_settings(env_file: Optional[Path]) -> Tuple[Dict[str, str], Optional[Path]]:
    """
    Merge the env file (explicit, or ./.env when present) with the process
    environment. Process variables win.

    Returns:
        (settings, env file actually read)
    """
    if env_file is None and Path(".env").is_file():
        env_file = Path(".env")
    settings = _read_env_file(env_file) if env_file is not None else {}
    settings.update({key: os.environ[key] for key in SETTING_KEYS if key in os.environ})
    return settings, env_file


def _resolve_config(
    api_url: Optional[str],
    timeout: Optional[float],
    settings: Mapping[str, str],
) -> ClientConfig:
    """Flags win over XLSX_API_URL / XLSX_API_TIMEOUT settings, which win over defaults."""
    base_url = api_url or settings.get("XLSX_API_URL") or DEFAULT_API_URL

    if timeout is None:
        raw_timeout = settings.get("XLSX_API_TIMEOUT")
        try:
            timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT
        except ValueError as exc:
            raise CLIError(f"XLSX_API_TIMEOUT is not a number: {raw_timeout}") from exc
    if timeout <= 0:
        raise CLIError(f"timeout must be positive: {timeout}")

    # A terminal cannot hide a printed line.
    return ClientConfig(base_url=base_url.rstrip("/"), timeout=timeout, status_hide_delay=None)


def _source_kind(source: Path) -> str:
    if source.is_dir():
        return "folder"
    if extension_of(source.name) in ZIP_EXTENSIONS:
        return "zip"
    return "excel"


def _add_source(client: BatchJobClient, source: Path) -> int:
    kind = _source_kind(source)
    if kind == "folder":
        return client.add_folder(source)
    if kind == "zip":
        return client.add_zip_files([source])
    return client.add_excel_files([source])


async def _run_job(
    sources: List[Path],
    rows: Optional[int],
    output_dir: Path,
    config: ClientConfig,
    keep_remote: bool,
) -> int:
    async with BatchJobClient(config, reporter=ConsoleStatusReporter()) as client:
        for source in sources:
            try:
                _add_source(client, source)
            except OSError as exc:
                raise CLIError(f"could not read {source}: {exc}") from exc
        print(f"Total {len(client.batch)} files")

        client.set_rows_to_delete(rows)
        handle = await client.submit()
        if handle is not None:
            try:
                saved_to = handle.save(output_dir)
            except OSError as exc:
                raise CLIError(f"could not save {handle.filename} to {output_dir}: {exc}") from exc
            render_result(handle, saved_to, client.lifecycle.timings)

        success = client.state is LifecycleState.COMPLETE
        if not keep_remote:
            await client.clear()
        return 0 if success else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xlsx-trim",
        description="Delete rows from spreadsheets using the xlsx processing service.",
    )
    parser.add_argument(
        "sources",
        nargs="*",
        type=Path,
        help="Spreadsheets (.xlsx/.xls), zip archives or folders",
    )
    parser.add_argument(
        "-n",
        "--rows",
        type=int,
        default=None,
        help="Number of rows to delete from each file",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Where to save the result archive (default: current directory)",
    )
    parser.add_argument(
        "--api-url",
        default=None,
        help=f"Service URL (default from XLSX_API_URL or {DEFAULT_API_URL})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help=f"HTTP timeout in seconds (default from XLSX_API_TIMEOUT or {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--keep-remote",
        action="store_true",
        help="Do not delete job data on the server when done",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="xlsx-trim (from xlsx_client)",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings, used_env_file = _load_settings(args.env_file)
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    effective_log_mode = _setup_logging(
        _log_level(args.debug, args.silent, args.log_level, settings)
    )

    if not args.sources:
        parser.print_help()
        return 0

    sources = [Path(source).expanduser() for source in args.sources]
    missing = [source for source in sources if not source.exists()]
    if missing:
        print(f"ERROR: source does not exist: {missing[0]}", file=sys.stderr)
        return 1

    try:
        config = _resolve_config(args.api_url, args.timeout, settings)
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    output_dir = Path(args.output_dir).expanduser()
    render_configuration_summary(
        {
            "Sources": ", ".join(f"{s} ({_source_kind(s)})" for s in sources),
            "Rows To Delete": args.rows if args.rows is not None else "(missing)",
            "Output Dir": str(output_dir),
            "Service": config.base_url,
            "Timeout": f"{config.timeout:g} s",
            "Keep Remote": "yes" if args.keep_remote else "no",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(
            _run_job(
                sources=sources,
                rows=args.rows,
                output_dir=output_dir,
                config=config,
                keep_remote=args.keep_remote,
            )
        )
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
