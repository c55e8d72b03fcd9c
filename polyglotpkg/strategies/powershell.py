from pathlib import Path

from polyglotpkg.analyze.requirements import discover_powershell_modules
from polyglotpkg.deps.install import save_powershell_modules
from polyglotpkg.runtime.action_type import ActionType
from polyglotpkg.strategies.base import BaseStrategy


class PowershellStrategy(BaseStrategy):
    """Scripts are shipped as-is; modules from requirements.psd1 go under Modules/."""

    action_type = ActionType.POWERSHELL
    vendor_subdir = "Modules"

    def _compile(self, target: Path) -> None:
        self.copy_sources(target)

    def _install_dependencies(self) -> Path:
        return save_powershell_modules(
            pwsh_executable=self.options.toolchain.pwsh,
            project_root=self.workspace,
            modules=discover_powershell_modules(self.workspace),
            target=self.layout.vendor_dir,
            runner=self.runner,
            output_stream=self.options.progress_sink,
        )
