from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipFile, ZipInfo

from polyglotpkg.errors import BundleError
from polyglotpkg.utils.fs import ensure_dir, iter_files, remove_file

# earliest timestamp the zip format can represent
FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)


def write_archive(source_dir: Path, destination: Path) -> Path:
    """Zip ``source_dir`` into a temporary file next to ``destination``.

    Returns the temporary path; the caller moves it into place. Entries are
    sorted and carry fixed timestamps and permissions so that identical trees
    produce identical archives.
    """

    ensure_dir(destination.parent)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent
    )
    os.close(fd)
    tmp_path = Path(tmp_name)

    try:
        with ZipFile(tmp_path, "w", compression=ZIP_DEFLATED) as archive:
            for path in iter_files(source_dir):
                _add_file(archive, path, path.relative_to(source_dir).as_posix())
    except OSError as exc:
        remove_file(tmp_path)
        raise BundleError(f"Failed to write bundle archive: {exc}") from exc

    return tmp_path


def commit_archive(tmp_path: Path, destination: Path) -> Path:
    try:
        os.replace(tmp_path, destination)
    except OSError as exc:
        remove_file(tmp_path)
        raise BundleError(
            f"Failed to move bundle archive into place: {destination}"
        ) from exc
    return destination


def _add_file(archive: ZipFile, path: Path, arcname: str) -> None:
    info = ZipInfo(arcname, date_time=FIXED_DATE_TIME)
    info.compress_type = ZIP_DEFLATED
    info.create_system = 3
    mode = 0o755 if path.stat().st_mode & stat.S_IXUSR else 0o644
    info.external_attr = (stat.S_IFREG | mode) << 16
    archive.writestr(info, path.read_bytes())
