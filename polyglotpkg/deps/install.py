import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from polyglotpkg.errors import DependencyInstallError
from polyglotpkg.utils.fs import ensure_dir, remove_dir
from polyglotpkg.utils.subprocess import CommandRunner, SubprocessError, run_command

logger = logging.getLogger(__name__)

NODE_MANIFEST_FILES = ("package.json", "package-lock.json", "npm-shrinkwrap.json", ".npmrc")


def install_node_modules(
    *,
    npm_executable: str,
    project_root: Path,
    work_dir: Path,
    has_dependencies: bool,
    runner: CommandRunner = run_command,
    output_stream: Optional[Any] = None,
) -> Path:
    """Materialize production ``node_modules`` for the project inside ``work_dir``."""

    remove_dir(work_dir)
    ensure_dir(work_dir)
    modules_dir = work_dir / "node_modules"

    if not has_dependencies:
        logger.info("No Node dependencies declared")
        ensure_dir(modules_dir)
        return modules_dir

    for name in NODE_MANIFEST_FILES:
        source = project_root / name
        if source.exists():
            shutil.copy2(source, work_dir / name)

    locked = (work_dir / "package-lock.json").exists() or (
        work_dir / "npm-shrinkwrap.json"
    ).exists()
    if locked:
        cmd = [npm_executable, "ci", "--omit=dev", "--no-audit", "--no-fund"]
    else:
        cmd = [
            npm_executable,
            "install",
            "--omit=dev",
            "--no-audit",
            "--no-fund",
            "--no-package-lock",
        ]

    _run_installer(cmd, cwd=work_dir, target=modules_dir, runner=runner, output_stream=output_stream)
    ensure_dir(modules_dir)
    return modules_dir


def install_python_packages(
    *,
    python_executable: str,
    project_root: Path,
    requirements: List[str],
    target: Path,
    runner: CommandRunner = run_command,
    output_stream: Optional[Any] = None,
) -> Path:
    remove_dir(target)
    ensure_dir(target)

    # pip resolves nested -r/-c includes itself, so the file always goes to pip
    requirements_file = project_root / "requirements.txt"
    if not requirements and not requirements_file.exists():
        logger.info("No Python dependencies declared")
        return target

    cmd = [
        python_executable,
        "-m",
        "pip",
        "install",
        "--target",
        str(target),
        "--no-compile",
        "--disable-pip-version-check",
        "--no-input",
    ]
    if requirements_file.exists():
        cmd += ["-r", str(requirements_file)]
    else:
        cmd += requirements

    _run_installer(cmd, cwd=project_root, target=target, runner=runner, output_stream=output_stream)
    return target


def save_powershell_modules(
    *,
    pwsh_executable: str,
    project_root: Path,
    modules: Dict[str, Optional[str]],
    target: Path,
    runner: CommandRunner = run_command,
    output_stream: Optional[Any] = None,
) -> Path:
    remove_dir(target)
    ensure_dir(target)

    if not modules:
        logger.info("No PowerShell modules declared")
        return target

    for name in sorted(modules):
        script = _save_module_script(name, modules[name], target)
        cmd = [
            pwsh_executable,
            "-NoLogo",
            "-NoProfile",
            "-NonInteractive",
            "-Command",
            script,
        ]
        _run_installer(cmd, cwd=project_root, target=target, runner=runner, output_stream=output_stream)

    return target


def _save_module_script(name: str, version: Optional[str], target: Path) -> str:
    parts = [
        "Save-Module",
        f"-Name {_ps_quote(name)}",
        f"-Path {_ps_quote(str(target))}",
        "-Repository PSGallery",
        "-Force",
        "-ErrorAction Stop",
    ]
    if version:
        parts.insert(2, f"-RequiredVersion {_ps_quote(version)}")
    return " ".join(parts)


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _run_installer(
    cmd: List[str],
    *,
    cwd: Path,
    target: Path,
    runner: CommandRunner,
    output_stream: Optional[Any],
) -> None:
    logger.debug("Installing dependencies into %s", target)
    try:
        runner(cmd, cwd=cwd, output_stream=output_stream)
    except SubprocessError as exc:
        # leave nothing half-installed behind
        remove_dir(target)
        raise DependencyInstallError(
            f"Dependency installation failed: {exc}"
        ) from exc
