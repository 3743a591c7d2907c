"""
tree_prompt: flatten a directory tree into a prompt for an LLM.

Overview
--------
Every file under `--path` that survives the include/exclude globs is written
between delimiters, in a stable order:

    >>> START FILE "src/app.py"
    <content>
    <<< END FILE

With `--max-length N` the document is cut into parts of at most N lines, each
wrapped in `>>>> START PROMPT PART i OF n` / `<<<< END PROMPT PART i OF n`.

Exclusion wins over inclusion, and an excluded directory is never entered.
Files that cannot be read are replaced by an inline `[Error reading file: ...]`
note; a directory that cannot be listed aborts the run with exit status 1.

Defaults for `--path`, `--exclude`, `--include` and `--max-length` can be set
with the `TREE_PROMPT_PATH`, `TREE_PROMPT_EXCLUDE`, `TREE_PROMPT_INCLUDE` and
`TREE_PROMPT_MAX_LENGTH` variables, in the environment or in a `.env` file.

Usage
-----
    - Whole directory to stdout:
        uv run python -m tree_prompt --path .

    - Go sources only, without vendored code, in 400-line parts:
        uv run python -m tree_prompt --include "**/*.go" --exclude "vendor/**" --max-length 400

    - Write to a file and log to another one:
        uv run python -m tree_prompt --output prompt.txt --log-file run.log --log-level INFO
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from tree_prompt import __version__
from tree_prompt.exceptions import TraversalError
from tree_prompt.file_manipulation import select_files
from tree_prompt.logging import logger, setup_logging
from tree_prompt.output_construction import format_parts, render_document, split_lines
from tree_prompt.settings import Settings, env_defaults

if TYPE_CHECKING:
    from collections.abc import Sequence

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_parser(defaults: dict[str, str]) -> argparse.ArgumentParser:
    """Create the argument parser, seeding defaults from the environment.

    Args:
        defaults (dict[str, str]): values returned by `env_defaults`

    Returns:
        argparse.ArgumentParser: the configured parser
    """
    p = argparse.ArgumentParser(
        prog="tree-prompt",
        description="Concatenate the files of a directory tree into LLM prompt parts.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument(
        "--path",
        type=str,
        default=defaults.get("PATH", "."),
        help="Root directory to scan.",
    )
    p.add_argument(
        "--exclude",
        action="append",
        default=None,
        help="Comma-separated glob patterns to exclude, e.g. 'venv/**,*.log' (repeatable).",
    )
    p.add_argument(
        "--include",
        action="append",
        default=None,
        help="Comma-separated glob patterns to include, e.g. '**/*.go,cmd/**' (repeatable). "
        "When empty, all files are included.",
    )
    p.add_argument(
        "--max-length",
        type=int,
        default=None,
        help="Maximum number of lines per prompt part (0 means no limit).",
    )
    p.add_argument("-o", "--output", type=str, default="", help="Output file (default: stdout).")
    p.add_argument("--log-file", type=str, default="", help="Log file path (default: stderr).")
    p.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="WARNING",
        help="Minimum log level.",
    )
    return p


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse the command line into a `Settings` value.

    Explicit options win over `TREE_PROMPT_*` environment defaults.

    Args:
        argv (Sequence[str] | None): the arguments, `sys.argv[1:]` when None

    Returns:
        Settings: the run configuration
    """
    defaults = env_defaults()
    p = build_parser(defaults)
    args = p.parse_args(argv)

    exclude = args.exclude if args.exclude is not None else defaults.get("EXCLUDE", "")
    include = args.include if args.include is not None else defaults.get("INCLUDE", "")
    max_lines = args.max_length if args.max_length is not None else defaults.get("MAX_LENGTH", 0)
    try:
        return Settings(
            root=Path(args.path),
            include=include,
            exclude=exclude,
            max_lines=max_lines,
            output=Path(args.output) if args.output else None,
            log_file=args.log_file,
            log_level=args.log_level,
        )
    except ValidationError as e:
        p.error(f"invalid configuration: {e}")


def write_output(content: str, output: Path | None) -> None:
    """Write the final text, byte for byte, to a file or to stdout.

    Args:
        content (str): the text to write; surrogate-escaped bytes are restored
        output (Path | None): destination file, stdout when None
    """
    data = content.encode("utf-8", errors="surrogateescape")
    if output is None:
        sys.stdout.flush()
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
    else:
        output.write_bytes(data)
    logger.info("output_written", output=str(output or "<stdout>"), size=len(data))


def run(settings: Settings) -> str:
    """Run the select / render / split pipeline.

    Args:
        settings (Settings): the run configuration

    Raises:
        TraversalError: if the tree under `settings.root` cannot be walked

    Returns:
        str: the text to emit
    """
    files = select_files(settings.root, settings.include, settings.exclude)
    document = render_document(settings.root, files)
    parts = split_lines(document, settings.max_lines)
    return format_parts(parts, settings.max_lines)


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    setup_logging(settings.log_file or None, settings.log_level, force=True)

    try:
        content = run(settings)
    except TraversalError as e:
        print(f"Error walking directory: {e}", file=sys.stderr)
        return 1

    try:
        write_output(content, settings.output)
    except OSError as e:
        logger.error("output_failed", output=str(settings.output), error=str(e))
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
