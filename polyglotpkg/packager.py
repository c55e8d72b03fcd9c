from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Set

from polyglotpkg.config import PackagerOptions
from polyglotpkg.errors import (
    DetectionError,
    PackagerBusyError,
    PackagingCancelledError,
    PackagingError,
)
from polyglotpkg.events import Events, LifecycleEmitter
from polyglotpkg.runtime.action_type import ActionType
from polyglotpkg.runtime.discover import ActionTypeResolver
from polyglotpkg.strategies.base import BaseStrategy, CancellationToken, Stage
from polyglotpkg.strategies.registry import create_strategy
from polyglotpkg.utils.subprocess import CommandRunner, run_command

logger = logging.getLogger(__name__)

# staging directories owned by runs in flight, across all packagers
_active_staging: Set[Path] = set()
_active_staging_lock = threading.Lock()


class PackagerState(str, Enum):
    IDLE = "idle"
    DETECTING = "detecting"
    COMPILING = "compiling"
    INSTALLING_DEPENDENCIES = "installing_dependencies"
    BUNDLING = "bundling"
    DONE = "done"
    FAILED = "failed"


_STATE_ON_EVENT = {
    Events.COMPILE_START: PackagerState.COMPILING,
    Events.DEPENDENCIES_START: PackagerState.INSTALLING_DEPENDENCIES,
    Events.BUNDLE_START: PackagerState.BUNDLING,
}


@dataclass
class _CachedStrategy:
    workspace: Path
    action_type: ActionType
    strategy: BaseStrategy


class Packager(LifecycleEmitter):
    """Packages workspaces into action bundles, one run at a time.

    The strategy of the last packaged workspace is kept; packaging the same
    workspace again skips detection.
    """

    def __init__(
        self,
        *,
        runner: CommandRunner = run_command,
        resolver: Optional[ActionTypeResolver] = None,
    ):
        super().__init__()
        self.runner = runner
        self.resolver = resolver or ActionTypeResolver()
        self._state = PackagerState.IDLE
        self._cached: Optional[_CachedStrategy] = None
        self._running = False
        self._lock = threading.Lock()

    @property
    def state(self) -> PackagerState:
        return self._state

    @property
    def cached_strategy(self) -> Optional[BaseStrategy]:
        return self._cached.strategy if self._cached else None

    def package_project(
        self,
        options: PackagerOptions,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Path:
        self._acquire(options.bundle_staging_path)
        try:
            self._state = PackagerState.IDLE
            strategy = self._resolve_strategy(options, cancel_token)
            archive = strategy.package_project(cancel_token)
        except Exception as exc:
            self._fail(exc)
            raise
        finally:
            self.clear_once_listeners()
            self._release(options.bundle_staging_path)

        self._state = PackagerState.DONE
        logger.info("Packaged %s into %s", options.workspace, archive)
        return archive

    def _resolve_strategy(
        self,
        options: PackagerOptions,
        cancel_token: Optional[CancellationToken],
    ) -> BaseStrategy:
        workspace = options.workspace
        cached = self._cached

        if cached is not None and cached.workspace == workspace:
            action_type = options.runtime_override or cached.action_type
            if action_type == cached.action_type and cached.strategy.options == options:
                logger.debug("Reusing %r", cached.strategy)
                return cached.strategy
        else:
            self._cached = None
            action_type = self._detect(options)

        if cancel_token is not None and cancel_token.cancelled:
            raise PackagingError(
                Stage.DETECT.value,
                PackagingCancelledError("Packaging cancelled after detection"),
            )

        try:
            strategy = create_strategy(action_type, options, self._on_phase, runner=self.runner)
        except DetectionError as exc:
            raise PackagingError(Stage.DETECT.value, exc) from exc

        self._cached = _CachedStrategy(workspace, action_type, strategy)
        return strategy

    def _detect(self, options: PackagerOptions) -> ActionType:
        self._state = PackagerState.DETECTING

        if options.runtime_override is not None:
            logger.info("Using runtime override: %s", options.runtime_override.value)
            return options.runtime_override

        try:
            action_type = self.resolver.detect(options.workspace)
        except DetectionError as exc:
            raise PackagingError(Stage.DETECT.value, exc) from exc

        if action_type is ActionType.UNKNOWN:
            raise PackagingError(
                Stage.DETECT.value,
                DetectionError(f"Unsupported project type in {options.workspace}"),
            )

        logger.info("Detected %s project", action_type.value)
        return action_type

    def _on_phase(self, event: Events) -> None:
        state = _STATE_ON_EVENT.get(event)
        if state is not None:
            self._state = state
        self.emit(event)

    def _fail(self, exc: Exception) -> None:
        logger.error("Packaging failed: %s", exc)
        self._state = PackagerState.FAILED
        self.emit(Events.PACKAGE_FAILED)

    def _acquire(self, staging: Path) -> None:
        with self._lock:
            if self._running:
                raise PackagerBusyError("A packaging run is already in progress")
            with _active_staging_lock:
                if staging in _active_staging:
                    raise PackagerBusyError(
                        f"Staging directory is in use by another run: {staging}"
                    )
                _active_staging.add(staging)
            self._running = True

    def _release(self, staging: Path) -> None:
        with self._lock:
            self._running = False
            with _active_staging_lock:
                _active_staging.discard(staging)
