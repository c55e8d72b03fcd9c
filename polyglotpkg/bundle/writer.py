import logging
from pathlib import Path
from typing import List, Optional

from polyglotpkg.bundle.archive import commit_archive, write_archive
from polyglotpkg.bundle.metadata import ActionDescriptor, write_descriptor
from polyglotpkg.config import PackagerOptions
from polyglotpkg.errors import BundleError, PathConflictError, PolyglotError
from polyglotpkg.utils.fs import copy_tree, ensure_dir, iter_files, remove_dir, remove_file, replace_dir, temp_dir

logger = logging.getLogger(__name__)


class BundleWriter:
    """Assembles compiled sources and vendored dependencies into the action bundle."""

    def __init__(
        self,
        *,
        vendor_subdir: str,
        entry_file: str,
        descriptor: Optional[ActionDescriptor] = None,
    ):
        self.vendor_subdir = vendor_subdir
        self.entry_file = entry_file
        self.descriptor = descriptor

    def write(
        self,
        compiled_dir: Path,
        vendored_dir: Path,
        options: PackagerOptions,
        *,
        assembly_dir: Optional[Path] = None,
    ) -> Path:
        assembly_dir = assembly_dir or options.bundle_staging_path / "bundle"
        destination = options.output_archive_path

        try:
            self._assemble(compiled_dir, vendored_dir, assembly_dir)

            if options.skip_metadata_packaging:
                return self._archive(assembly_dir, destination)

            with temp_dir(prefix=".vro-", parent=options.metadata_output_path.parent) as staging_meta:
                descriptor = self._descriptor(destination)
                write_descriptor(descriptor, staging_meta)
                archive = self._archive(assembly_dir, destination)
                try:
                    replace_dir(staging_meta, options.metadata_output_path)
                except PolyglotError:
                    remove_file(archive)
                    raise
                return archive
        except BundleError:
            raise
        except PolyglotError as exc:
            raise BundleError(str(exc)) from exc
        except OSError as exc:
            raise BundleError(f"Failed to assemble bundle: {exc}") from exc

    def _assemble(self, compiled_dir: Path, vendored_dir: Path, assembly_dir: Path) -> None:
        if not compiled_dir.is_dir():
            raise BundleError(f"Compiled sources not found: {compiled_dir}")
        if not vendored_dir.is_dir():
            raise BundleError(f"Vendored dependencies not found: {vendored_dir}")

        remove_dir(assembly_dir)
        ensure_dir(assembly_dir)

        copy_tree(compiled_dir, assembly_dir)

        conflicts = _find_conflicts(assembly_dir, vendored_dir, self.vendor_subdir)
        if conflicts:
            raise PathConflictError(
                "Vendored dependencies collide with compiled sources: "
                + ", ".join(conflicts),
                conflicts,
            )

        copy_tree(vendored_dir, assembly_dir / self.vendor_subdir)

        if not (assembly_dir / self.entry_file).is_file():
            raise BundleError(f"Entry handler missing from bundle: {self.entry_file}")

    def _descriptor(self, destination: Path) -> ActionDescriptor:
        if self.descriptor is None:
            raise BundleError("No action metadata available for the vro descriptor")
        return self.descriptor.model_copy(update={"bundle": destination.name})

    def _archive(self, assembly_dir: Path, destination: Path) -> Path:
        logger.debug("Archiving %s into %s", assembly_dir, destination)
        tmp_path = write_archive(assembly_dir, destination)
        return commit_archive(tmp_path, destination)


def _find_conflicts(assembly_dir: Path, vendored_dir: Path, vendor_subdir: str) -> List[str]:
    conflicts: List[str] = []
    target_root = assembly_dir / vendor_subdir
    for path in iter_files(vendored_dir):
        relative = path.relative_to(vendored_dir)
        target = target_root / relative
        if target.exists() or _has_file_ancestor(target, assembly_dir):
            conflicts.append((Path(vendor_subdir) / relative).as_posix())
    return conflicts


def _has_file_ancestor(target: Path, root: Path) -> bool:
    for parent in target.parents:
        if parent == root:
            return False
        if parent.is_file():
            return True
    return False
