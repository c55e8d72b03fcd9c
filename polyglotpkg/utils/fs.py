import fnmatch
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional

from polyglotpkg.errors import PolyglotError


class FilesystemError(PolyglotError):
    exit_code = 12

IgnoreFunc = Callable[[str, List[str]], List[str]]


def ensure_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to create directory: {path}"
        ) from exc


def remove_dir(path: Path) -> None:
    try:
        if path.is_symlink() or path.is_file():
            path.unlink()
        elif path.exists():
            shutil.rmtree(path)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to remove directory: {path}"
        ) from exc


def remove_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to remove file: {path}"
        ) from exc

@contextmanager
def temp_dir(prefix: str = "polyglotpkg-", parent: Optional[Path] = None) -> Iterator[Path]:
    if parent is not None:
        ensure_dir(parent)
    path = Path(tempfile.mkdtemp(prefix=prefix, dir=str(parent) if parent else None))
    try:
        yield path
    finally:
        remove_dir(path)


def make_ignore(patterns: Iterable[str], excluded: Iterable[Path] = ()) -> IgnoreFunc:
    """Build a ``shutil.copytree`` ignore callback.

    ``patterns`` are matched against entry names with ``fnmatch``; ``excluded``
    are absolute paths skipped wherever they appear inside the copied tree.
    """

    pattern_list = list(patterns)
    excluded_paths = {path.resolve() for path in excluded}

    def _ignore(dirpath: str, names: List[str]) -> List[str]:
        dir_path = Path(dirpath).resolve()
        ignored: List[str] = []
        for name in names:
            if any(fnmatch.fnmatch(name, pattern) for pattern in pattern_list):
                ignored.append(name)
                continue
            if excluded_paths and (dir_path / name).resolve() in excluded_paths:
                ignored.append(name)
        return ignored

    return _ignore


def copy_tree(source: Path, destination: Path, *, ignore: Optional[IgnoreFunc] = None) -> None:
    shutil.copytree(
        source,
        destination,
        dirs_exist_ok=True,
        ignore=ignore,
        symlinks=False,
        ignore_dangling_symlinks=True,
    )


def iter_files(root: Path) -> List[Path]:
    """Return every regular file below ``root``, sorted by POSIX relative path."""

    files = [path for path in root.rglob("*") if path.is_file()]
    return sorted(files, key=lambda path: path.relative_to(root).as_posix())


def replace_dir(source: Path, destination: Path) -> None:
    """Move ``source`` to ``destination``, dropping whatever was there before."""

    backup = destination.with_name(destination.name + ".old")
    try:
        remove_dir(backup)
        if destination.exists():
            os.replace(destination, backup)
        os.replace(source, destination)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to move directory into place: {destination}"
        ) from exc
    remove_dir(backup)
