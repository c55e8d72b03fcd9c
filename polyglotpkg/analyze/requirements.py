import re
import tomllib
from pathlib import Path
from typing import Dict, List, Optional

from polyglotpkg.errors import DependencyInstallError

PYTHON_REQUIREMENTS_FILE = "requirements.txt"
PYPROJECT_FILE = "pyproject.toml"
POWERSHELL_REQUIREMENTS_FILE = "requirements.psd1"

_PSD1_ENTRY = re.compile(
    r"""['"]?(?P<name>[A-Za-z][A-Za-z0-9_.\-]*)['"]?\s*=\s*['"](?P<version>[^'"]*)['"]"""
)


def discover_python_requirements(project_root: Path) -> List[str]:
    """Requirement specifiers declared by a Python workspace.

    ``requirements.txt`` wins over ``pyproject.toml``. An empty list means the
    project has nothing to vendor.
    """

    requirements_file = project_root / PYTHON_REQUIREMENTS_FILE
    if requirements_file.exists():
        return _normalize(_parse_requirements_file(requirements_file))

    pyproject = project_root / PYPROJECT_FILE
    if pyproject.exists():
        return _normalize(_parse_pyproject(pyproject))

    return []


def discover_powershell_modules(project_root: Path) -> Dict[str, Optional[str]]:
    path = project_root / POWERSHELL_REQUIREMENTS_FILE
    if not path.exists():
        return {}

    content = "\n".join(
        line.split("#", 1)[0] for line in _read(path).splitlines()
    ).strip()

    if not content.startswith("@{") or not content.endswith("}"):
        raise DependencyInstallError(
            f"Module requirements must be a hashtable literal: {path}"
        )

    modules: Dict[str, Optional[str]] = {}
    for entry in re.split(r"[;\n]", content[2:-1]):
        entry = entry.strip()
        if not entry:
            continue

        match = _PSD1_ENTRY.fullmatch(entry)
        if not match:
            raise DependencyInstallError(
                f"Cannot parse module requirement in {path}: {entry}"
            )

        version = match.group("version").strip()
        if not version or version.lower() == "latest":
            modules[match.group("name")] = None
        else:
            modules[match.group("name")] = version

    return modules


def _parse_requirements_file(path: Path) -> List[str]:
    dependencies: List[str] = []

    for line in _read(path).splitlines():
        line = line.strip()

        if not line or line.startswith("#"):
            continue

        # pip options such as --index-url are handed to pip through -r
        if line.startswith("-"):
            continue

        dependencies.append(line)

    return dependencies


def _parse_pyproject(path: Path) -> List[str]:
    try:
        data = tomllib.loads(_read(path))
    except tomllib.TOMLDecodeError as exc:
        raise DependencyInstallError(f"Invalid TOML in {path}: {exc}") from exc

    dependencies = data.get("project", {}).get("dependencies", [])
    if not isinstance(dependencies, list):
        raise DependencyInstallError(
            f"[project].dependencies must be a list in {path}"
        )
    return [str(dep) for dep in dependencies]


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DependencyInstallError(
            f"Failed to read dependency file: {path}"
        ) from exc
    except UnicodeDecodeError as exc:
        raise DependencyInstallError(
            f"Dependency file is not valid UTF-8: {path}"
        ) from exc


def _normalize(dependencies: List[str]) -> List[str]:
    seen = set()
    normalized: List[str] = []

    for dep in dependencies:
        dep = dep.strip()
        if dep and dep not in seen:
            seen.add(dep)
            normalized.append(dep)

    return normalized
