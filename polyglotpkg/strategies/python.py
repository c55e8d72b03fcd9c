from pathlib import Path

from polyglotpkg.analyze.requirements import discover_python_requirements
from polyglotpkg.deps.install import install_python_packages
from polyglotpkg.errors import CompileError
from polyglotpkg.runtime.action_type import ActionType
from polyglotpkg.strategies.base import BaseStrategy
from polyglotpkg.utils.fs import iter_files


class PythonStrategy(BaseStrategy):
    action_type = ActionType.PYTHON
    vendor_subdir = "lib"

    def _compile(self, target: Path) -> None:
        self.copy_sources(target)
        for source in iter_files(target):
            if source.suffix == ".py":
                _check_syntax(source, target)

    def _install_dependencies(self) -> Path:
        return install_python_packages(
            python_executable=self.options.toolchain.python,
            project_root=self.workspace,
            requirements=discover_python_requirements(self.workspace),
            target=self.layout.vendor_dir,
            runner=self.runner,
            output_stream=self.options.progress_sink,
        )


def _check_syntax(source: Path, root: Path) -> None:
    relative = source.relative_to(root).as_posix()
    try:
        compile(source.read_bytes(), relative, "exec", dont_inherit=True)
    except SyntaxError as exc:
        raise CompileError(
            f"Syntax error in {relative}, line {exc.lineno}: {exc.msg}"
        ) from exc
    except ValueError as exc:
        raise CompileError(f"Cannot compile {relative}: {exc}") from exc
