from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

from tree_prompt.exceptions import TraversalError
from tree_prompt.logging import logger
from tree_prompt.matching import match_any_glob, normalize_globs

if TYPE_CHECKING:
    from collections.abc import Sequence

READ_ERROR_TEMPLATE = "[Error reading file: {kind}: {error}]"


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Raises:
        ValueError: if `path` is not located under `root`

    Returns:
        str: the relative path from root to path, with POSIX separators
    """
    return Path(path).relative_to(root).as_posix()


def should_process(rel: str, includes: Sequence[str], excludes: Sequence[str]) -> bool:
    """Decide whether a file passes the include/exclude filters.

    Exclusion takes precedence. When `includes` is empty every non-excluded
    file passes; otherwise the file must match at least one include pattern.

    Args:
        rel (str): the file path relative to the root, with POSIX separators
        includes (Sequence[str]): glob patterns to include
        excludes (Sequence[str]): glob patterns to exclude

    Returns:
        bool: True if the file should be kept
    """
    if match_any_glob(rel, excludes):
        return False
    return not includes or match_any_glob(rel, includes)


def _raise_traversal_error(err: OSError) -> NoReturn:
    path = Path(err.filename) if err.filename else Path()
    logger.error("traversal_failed", path=str(path), error=str(err))
    raise TraversalError(path=path, reason=err) from err


def select_files(
    root: Path,
    includes: Sequence[str],
    excludes: Sequence[str],
) -> list[Path]:
    """Walk the tree under `root` and return the files to aggregate.

    Directories matching an exclude pattern are pruned before descending into
    them. Files go through `should_process`. Symbolic links are not followed;
    a link to a directory is treated as a plain entry. Entries whose path cannot
    be expressed relative to `root` are skipped. A `root` that exists but is not
    a directory is never a candidate itself, so nothing is selected.

    Args:
        root (Path): the directory to walk
        includes (Sequence[str]): glob patterns to include (relative to root)
        excludes (Sequence[str]): glob patterns to exclude (relative to root)

    Raises:
        TraversalError: if `root` is missing or any directory cannot be listed

    Returns:
        list[Path]: the selected files, sorted by their relative path
    """
    inc = normalize_globs(includes)
    exc = normalize_globs(excludes)
    root = Path(root)

    if os.path.lexists(root) and not root.is_dir():
        logger.info("root_not_a_directory", root=str(root))
        return []

    selected: list[tuple[str, Path]] = []
    for current, dirs, files in os.walk(root, onerror=_raise_traversal_error):
        here = Path(current)
        kept_dirs: list[str] = []
        entries = list(files)
        for d in dirs:
            p = here / d
            if p.is_symlink():
                entries.append(d)
                continue
            try:
                rel = relpath(p, root)
            except ValueError:
                logger.debug("entry_skipped", path=str(p))
                continue
            if match_any_glob(rel, exc):
                logger.debug("directory_pruned", path=rel)
                continue
            kept_dirs.append(d)
        dirs[:] = kept_dirs

        for name in entries:
            p = here / name
            try:
                rel = relpath(p, root)
            except ValueError:
                logger.debug("entry_skipped", path=str(p))
                continue
            if should_process(rel, inc, exc):
                selected.append((rel, p))

    selected.sort(key=lambda item: item[0])
    logger.info("files_selected", root=str(root), count=len(selected))
    return [p for _, p in selected]


def read_file_text(path: Path) -> str:
    """Read a whole file as text, never raising on I/O errors.

    Bytes are decoded as UTF-8 with `surrogateescape`, so bytes that are not
    valid UTF-8 come back unchanged when the text is encoded the same way.

    Args:
        path (Path): the file to read

    Returns:
        str: the file content, or an inline `[Error reading file: ...]`
            placeholder when the file cannot be opened or read
    """
    try:
        with Path(path).open("rb") as f:
            data = f.read()
    except OSError as e:
        logger.warning("file_read_failed", path=str(path), error=str(e))
        return READ_ERROR_TEMPLATE.format(kind=type(e).__name__, error=e)
    return data.decode("utf-8", errors="surrogateescape")
