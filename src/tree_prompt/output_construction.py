from __future__ import annotations

import io
from pathlib import Path
from typing import TYPE_CHECKING

from tree_prompt.file_manipulation import read_file_text, relpath

if TYPE_CHECKING:
    from collections.abc import Sequence

FILE_BLOCK_TEMPLATE = ">>> START FILE {path}\n{content}\n<<< END FILE\n\n"
PART_TEMPLATE = ">>>> START PROMPT PART {index} OF {total}\n{part}\n<<<< END PROMPT PART {index} OF {total}\n\n"

_QUOTE_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    '"': '\\"',
    "\\": "\\\\",
}


def quote_path(rel: str) -> str:
    """Double-quote a path, escaping what is not printable.

    Printable characters, non-ASCII letters included, are kept. Bytes that were
    not valid UTF-8 (surrogate-escaped by the OS layer) come out as `\\xNN`,
    other control characters as `\\xNN`, `\\uNNNN` or `\\UNNNNNNNN`.

    Args:
        rel (str): the path to quote

    Returns:
        str: the quoted path, e.g. `"src/app.py"`
    """
    out = ['"']
    for ch in rel:
        code = ord(ch)
        if ch in _QUOTE_ESCAPES:
            out.append(_QUOTE_ESCAPES[ch])
        elif 0xDC80 <= code <= 0xDCFF:
            out.append(f"\\x{code - 0xDC00:02x}")
        elif ch.isprintable():
            out.append(ch)
        elif code < 0x80:
            out.append(f"\\x{code:02x}")
        elif code <= 0xFFFF:
            out.append(f"\\u{code:04x}")
        else:
            out.append(f"\\U{code:08x}")
    out.append('"')
    return "".join(out)


def render_file_block(rel: str, content: str) -> str:
    """Wrap one file's content between START/END markers.

    The path goes through `quote_path`, so a file name can never be mistaken for
    a marker.

    Args:
        rel (str): the file path relative to the root, with POSIX separators
        content (str): the file content, inserted verbatim

    Returns:
        str: the delimited block, followed by a blank line
    """
    return FILE_BLOCK_TEMPLATE.format(path=quote_path(rel), content=content)


def render_document(root: Path, files: Sequence[Path]) -> str:
    """Build the aggregated document for the selected files.

    Files are read one at a time, in the given order. A file that cannot be read
    contributes an inline error placeholder instead of its content and does not
    stop the rendering of the others.

    Args:
        root (Path): the root the file paths are displayed relative to
        files (Sequence[Path]): the files to render, already ordered

    Returns:
        str: the concatenation of every file block
    """
    out = io.StringIO()
    for f in files:
        try:
            rel = relpath(f, root)
        except ValueError:
            rel = Path(f).as_posix()
        out.write(render_file_block(rel, read_file_text(f)))
    return out.getvalue()


def split_lines(text: str, max_lines: int) -> list[str]:
    """Split a document into parts holding at most `max_lines` lines each.

    Lines are the `\\n`-separated pieces of `text`, so a trailing newline counts
    as a final empty line. Parts never overlap and keep the original order:
    joining every part with `\\n` gives back `text`. File blocks may straddle
    two parts.

    Args:
        text (str): the document to split
        max_lines (int): maximum number of lines per part; zero or less disables splitting

    Returns:
        list[str]: the parts, `[text]` when splitting is disabled
    """
    if max_lines <= 0:
        return [text]
    lines = text.split("\n")
    return ["\n".join(lines[i : i + max_lines]) for i in range(0, len(lines), max_lines)]


def format_parts(parts: Sequence[str], max_lines: int) -> str:
    """Lay out the parts for the consumer.

    When a line limit is active each part is wrapped in numbered
    `START PROMPT PART i OF n` / `END PROMPT PART i OF n` markers. Otherwise
    the parts are emitted as they are.

    Args:
        parts (Sequence[str]): the parts returned by `split_lines`
        max_lines (int): the line limit the parts were produced with

    Returns:
        str: the final output text
    """
    if max_lines <= 0:
        return "".join(parts)
    total = len(parts)
    return "".join(
        PART_TEMPLATE.format(index=i, total=total, part=part) for i, part in enumerate(parts, start=1)
    )
