from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from tree_prompt import file_manipulation
from tree_prompt.exceptions import TraversalError
from tree_prompt.file_manipulation import read_file_text, relpath, select_files, should_process


def make_tree(root: Path, files: dict[str, str]) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def rels(root: Path, files: list[Path]) -> list[str]:
    return [relpath(f, root) for f in files]


@pytest.mark.unit
def test_relpath_uses_posix_separators(tmp_path: Path) -> None:
    assert relpath(tmp_path / "a" / "b.txt", tmp_path) == "a/b.txt"


@pytest.mark.unit
def test_relpath_raises_outside_root(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        relpath(Path("/elsewhere/file.txt"), tmp_path)


@pytest.mark.unit
def test_should_process_exclude_wins_over_include() -> None:
    assert not should_process("src/app.py", ["**/*.py"], ["src/*"])
    assert should_process("src/app.py", ["**/*.py"], [])
    assert not should_process("README.md", ["**/*.py"], [])
    assert should_process("README.md", [], [])


@pytest.mark.unit
def test_select_files_example_exclude(tmp_path: Path) -> None:
    make_tree(tmp_path, {"a.txt": "hello", "b/log.txt": "x"})

    selected = select_files(tmp_path, [], ["b/*"])

    assert rels(tmp_path, selected) == ["a.txt"]
    assert selected == [tmp_path / "a.txt"]


@pytest.mark.unit
def test_select_files_empty_include_selects_everything_sorted(tmp_path: Path) -> None:
    make_tree(
        tmp_path,
        {"z.txt": "", "b.txt": "", "b/inner.txt": "", "a/deep/x.md": "", ".hidden": ""},
    )

    selected = select_files(tmp_path, [], [])

    assert rels(tmp_path, selected) == [".hidden", "a/deep/x.md", "b.txt", "b/inner.txt", "z.txt"]


@pytest.mark.unit
def test_select_files_never_collects_directories(tmp_path: Path) -> None:
    (tmp_path / "empty" / "nested").mkdir(parents=True)

    assert select_files(tmp_path, [], []) == []


@pytest.mark.unit
def test_select_files_include_restricts(tmp_path: Path) -> None:
    make_tree(tmp_path, {"main.go": "", "cmd/tool/main.go": "", "README.md": ""})

    selected = select_files(tmp_path, ["**/*.go"], [])

    assert rels(tmp_path, selected) == ["cmd/tool/main.go", "main.go"]


@pytest.mark.unit
def test_select_files_excluded_directory_is_pruned(tmp_path: Path, mocker: MockerFixture) -> None:
    make_tree(tmp_path, {"vendor/lib/keep.go": "", "app.go": ""})

    spy = mocker.spy(file_manipulation, "should_process")

    selected = select_files(tmp_path, ["**/*.go"], ["vendor"])

    assert rels(tmp_path, selected) == ["app.go"]
    assert [c.args[0] for c in spy.call_args_list] == ["app.go"]


@pytest.mark.unit
def test_select_files_is_deterministic(tmp_path: Path) -> None:
    make_tree(tmp_path, {f"d{i}/f{j}.txt": "" for i in range(3) for j in range(3)})

    first = select_files(tmp_path, [], ["d1/**"])
    second = select_files(tmp_path, [], ["d1/**"])

    assert first == second
    assert len(first) == 6


@pytest.mark.unit
def test_select_files_missing_root_is_fatal(tmp_path: Path) -> None:
    missing = tmp_path / "missing"

    with pytest.raises(TraversalError) as exc_info:
        select_files(missing, [], [])

    assert exc_info.value.path == missing
    assert isinstance(exc_info.value.reason, FileNotFoundError)


@pytest.mark.unit
def test_select_files_malformed_exclude_keeps_literal_file(tmp_path: Path) -> None:
    make_tree(tmp_path, {"a[b": "", "keep.txt": ""})

    selected = select_files(tmp_path, [], ["a[b"])

    assert rels(tmp_path, selected) == ["a[b", "keep.txt"]


@pytest.mark.unit
def test_select_files_regular_file_root_selects_nothing(tmp_path: Path) -> None:
    make_tree(tmp_path, {"f.txt": "content"})

    assert select_files(tmp_path / "f.txt", [], []) == []


@pytest.mark.unit
def test_select_files_listing_error_aborts(tmp_path: Path, mocker: MockerFixture) -> None:
    make_tree(tmp_path, {"a.txt": ""})

    def broken_walk(top, onerror=None, **_kwargs):
        onerror(PermissionError(13, "Permission denied", str(top)))
        yield from ()

    mocker.patch("tree_prompt.file_manipulation.os.walk", side_effect=broken_walk)

    with pytest.raises(TraversalError) as exc_info:
        select_files(tmp_path, [], [])

    assert isinstance(exc_info.value.reason, PermissionError)


@pytest.mark.unit
def test_select_files_does_not_follow_directory_symlinks(tmp_path: Path) -> None:
    make_tree(tmp_path, {"real/inner.txt": "x"})
    (tmp_path / "link").symlink_to(tmp_path / "real", target_is_directory=True)

    selected = select_files(tmp_path, [], [])

    assert rels(tmp_path, selected) == ["link", "real/inner.txt"]


@pytest.mark.unit
def test_read_file_text_returns_content(tmp_path: Path) -> None:
    path = tmp_path / "a.txt"
    path.write_bytes(b"caf\xc3\xa9\n\xff")

    text = read_file_text(path)

    assert text.startswith("café\n")
    assert text.encode("utf-8", errors="surrogateescape") == b"caf\xc3\xa9\n\xff"


@pytest.mark.unit
def test_read_file_text_placeholder_on_error(tmp_path: Path) -> None:
    text = read_file_text(tmp_path / "gone.txt")

    assert text.startswith("[Error reading file: FileNotFoundError: ")
    assert "gone.txt" in text
    assert text.endswith("]")
