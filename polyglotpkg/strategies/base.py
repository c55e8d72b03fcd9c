from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Callable, ClassVar, Iterator, List, Optional, Type

from polyglotpkg.analyze.manifest import ProjectManifest, load_manifest
from polyglotpkg.bundle.layout import BundleLayout
from polyglotpkg.bundle.metadata import ActionDescriptor
from polyglotpkg.bundle.writer import BundleWriter
from polyglotpkg.config import PackagerOptions
from polyglotpkg.errors import (
    BundleError,
    CompileError,
    DependencyInstallError,
    PackagingCancelledError,
    PackagingError,
    PolyglotError,
)
from polyglotpkg.events import Events
from polyglotpkg.runtime.action_type import ActionType
from polyglotpkg.utils.fs import FilesystemError, copy_tree, ensure_dir, make_ignore, remove_dir
from polyglotpkg.utils.subprocess import CommandRunner, SubprocessError, run_command

logger = logging.getLogger(__name__)

# Never copied from the workspace into the compiled output.
IGNORED_SOURCES = (
    ".git",
    ".hg",
    ".svn",
    ".vscode",
    ".idea",
    "node_modules",
    "__pycache__",
    ".venv",
    "venv",
    ".tox",
    ".pytest_cache",
    ".mypy_cache",
    "dist",
    "build",
    "out",
    ".DS_Store",
    "*.pyc",
    "*.pyo",
    "*.egg-info",
)


class Stage(str, Enum):
    DETECT = "detect"
    COMPILE = "compile"
    DEPENDENCIES = "dependencies"
    BUNDLE = "bundle"


class CancellationToken:
    """Flag checked between pipeline stages; a running stage is never interrupted."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


Emit = Callable[[Events], None]


def _ignore_event(event: Events) -> None:
    pass


class BaseStrategy(ABC):
    action_type: ClassVar[ActionType]
    vendor_subdir: ClassVar[str]

    def __init__(
        self,
        options: PackagerOptions,
        emit: Emit = _ignore_event,
        *,
        runner: CommandRunner = run_command,
    ):
        self.options = options
        self.layout = BundleLayout(options.bundle_staging_path, self.vendor_subdir)
        self.runner = runner
        self._emit = emit

    @property
    def workspace(self) -> Path:
        return self.options.workspace

    def package_project(self, cancel_token: Optional[CancellationToken] = None) -> Path:
        """Run compile, dependency installation and bundling, in that order."""

        stages: List[tuple[Stage, Callable[[], Path]]] = [
            (Stage.COMPILE, self.compile),
            (Stage.DEPENDENCIES, self.install_dependencies),
            (Stage.BUNDLE, self.create_bundle),
        ]

        archive: Optional[Path] = None
        for stage, run in stages:
            if cancel_token is not None and cancel_token.cancelled:
                raise PackagingError(
                    stage.value,
                    PackagingCancelledError(f"Packaging cancelled before {stage.value}"),
                )
            try:
                if stage is Stage.COMPILE:
                    self._reset_staging()
                archive = run()
            except PolyglotError as exc:
                logger.debug("Stage %s failed: %s", stage.value, exc)
                raise PackagingError(stage.value, exc) from exc

        assert archive is not None
        return archive

    def compile(self) -> Path:
        self._emit(Events.COMPILE_START)
        target = self.layout.compiled_dir
        with _stage_errors(CompileError):
            remove_dir(target)
            ensure_dir(target)
            self._compile(target)
            entry = self.entry_file(self.manifest())
            if not (target / entry).is_file():
                raise CompileError(f"Entry handler not found after compilation: {entry}")
        self._emit(Events.COMPILE_COMPLETE)
        return target

    def install_dependencies(self) -> Path:
        self._emit(Events.DEPENDENCIES_START)
        with _stage_errors(DependencyInstallError):
            vendored = self._install_dependencies()
        self._emit(Events.DEPENDENCIES_COMPLETE)
        return vendored

    def create_bundle(self) -> Path:
        self._emit(Events.BUNDLE_START)
        with _stage_errors(BundleError):
            manifest = self.manifest()
            descriptor = None
            if not self.options.skip_metadata_packaging:
                descriptor = ActionDescriptor.from_manifest(manifest, self.action_type)
            writer = BundleWriter(
                vendor_subdir=self.vendor_subdir,
                entry_file=self.entry_file(manifest),
                descriptor=descriptor,
            )
            archive = writer.write(
                self.layout.compiled_dir,
                self.layout.vendor_dir,
                self.options,
                assembly_dir=self.layout.bundle_dir,
            )
        logger.info("Bundle written to %s", archive)
        self._emit(Events.BUNDLE_COMPLETE)
        return archive

    def manifest(self) -> ProjectManifest:
        return load_manifest(self.workspace)

    def entry_file(self, manifest: ProjectManifest) -> str:
        return manifest.handler_file(self.action_type.handler_extension)

    def copy_sources(self, target: Path) -> None:
        """Copy the workspace into ``target``, skipping ignored and generated paths."""

        archive = self.options.output_archive_path
        excluded = [
            self.options.bundle_staging_path,
            archive,
            self.options.metadata_output_path,
        ]
        # earlier artifacts live beside the archive; the workspace root itself stays
        if archive.parent.resolve() != self.workspace.resolve():
            excluded.append(archive.parent)
        copy_tree(self.workspace, target, ignore=make_ignore(IGNORED_SOURCES, excluded))

    @abstractmethod
    def _compile(self, target: Path) -> None: ...

    @abstractmethod
    def _install_dependencies(self) -> Path: ...

    def _reset_staging(self) -> None:
        remove_dir(self.layout.root)
        for directory in self.layout.all_dirs():
            ensure_dir(directory)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(workspace={str(self.workspace)!r})"


@contextmanager
def _stage_errors(error_cls: Type[PolyglotError]) -> Iterator[None]:
    try:
        yield
    except (FilesystemError, SubprocessError) as exc:
        raise error_cls(str(exc)) from exc
    except OSError as exc:
        raise error_cls(str(exc)) from exc
