import logging
import shutil
from pathlib import Path

from polyglotpkg.deps.install import install_node_modules
from polyglotpkg.runtime.action_type import ActionType
from polyglotpkg.strategies.base import BaseStrategy

logger = logging.getLogger(__name__)

TSCONFIG_FILE = "tsconfig.json"


class NodeStrategy(BaseStrategy):
    """Node.js actions, transpiled with ``tsc`` when the project has a tsconfig."""

    action_type = ActionType.NODE
    vendor_subdir = "node_modules"

    def _compile(self, target: Path) -> None:
        tsconfig = self.workspace / TSCONFIG_FILE
        if not tsconfig.exists():
            logger.debug("No %s, copying JavaScript sources", TSCONFIG_FILE)
            self.copy_sources(target)
            return

        cmd = [
            self.options.toolchain.npx,
            "--no-install",
            "tsc",
            "--project",
            str(tsconfig),
            "--outDir",
            str(target),
        ]
        self.runner(cmd, cwd=self.workspace, output_stream=self.options.progress_sink)

        package_json = self.workspace / "package.json"
        if package_json.exists():
            shutil.copy2(package_json, target / package_json.name)

    def _install_dependencies(self) -> Path:
        manifest = self.manifest()
        return install_node_modules(
            npm_executable=self.options.toolchain.npm,
            project_root=self.workspace,
            work_dir=self.layout.dependencies_dir,
            has_dependencies=bool(manifest.dependencies),
            runner=self.runner,
            output_stream=self.options.progress_sink,
        )
