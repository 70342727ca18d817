import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from httprun.httprun_datatypes import HttprunError
from httprun.httprun_env import DEFAULT_ENV_FILE, list_environments, load_environment, resolve_env_file
from httprun.httprun_http import DEFAULT_TIMEOUT
from httprun.httprun_parser import parse_http_file
from httprun.httprun_printer import Printer
from httprun.httprun_runtime import RequestRunner, select_requests


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httprun",
        description="Run IntelliJ .http request files from the terminal",
    )
    parser.add_argument("file", help="Path to the .http file")
    parser.add_argument("--env", help="Environment name to use (from the environment file)")
    parser.add_argument(
        "--env-file",
        default=DEFAULT_ENV_FILE,
        help=f"Path to the environment file, relative to the .http file (default: {DEFAULT_ENV_FILE})",
    )
    parser.add_argument("--list-envs", action="store_true", help="List environments in the environment file and exit")
    parser.add_argument("--name", help="Run requests whose name contains this text (case-insensitive)")
    parser.add_argument("--index", type=int, help="Run a single request by 1-based index")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show full request/response details")
    parser.add_argument("--dry-run", action="store_true", help="Parse and display without executing")
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Per-request timeout in seconds (default: {DEFAULT_TIMEOUT:g})",
    )
    return parser


def configure_logging():
    level = logging.DEBUG if os.environ.get("HTTPRUN_DEBUG") else logging.WARNING
    logging.basicConfig(level=level, format="[%(levelname)s] %(name)s: %(message)s", stream=sys.stderr)


async def run(args: argparse.Namespace, printer: Printer) -> int:
    """Runs the selected requests and returns the process exit code."""
    env_file = resolve_env_file(args.env_file, args.file)
    if args.list_envs:
        printer.environments(list_environments(env_file))
        return 0

    path = Path(args.file)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise HttprunError(f"{args.file}: {e}") from e

    parsed = parse_http_file(content)
    if not parsed.requests:
        printer.error("No requests found in file")
        return 0

    env_vars = load_environment(env_file, args.env) if args.env else {}

    selected = select_requests(parsed.requests, name=args.name, index=args.index)
    if not selected:
        printer.error("No matching requests found")
        return 0

    runner = RequestRunner(
        parsed,
        env_vars,
        printer=printer,
        timeout=args.timeout,
        verbose=args.verbose,
    )
    if args.dry_run:
        runner.dry_run(selected, args.file)
        return 0

    summary = await runner.run(selected)
    return 0 if summary.ok else 1


def main(argv: Optional[List[str]] = None):
    args = build_arg_parser().parse_args(argv)
    configure_logging()
    printer = Printer()
    try:
        code = asyncio.run(run(args, printer))
    except HttprunError as e:
        printer.error(str(e))
        raise SystemExit(1)
    raise SystemExit(code)


if __name__ == "__main__":
    main()
