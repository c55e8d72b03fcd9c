from __future__ import annotations

import json
import re
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from polyglotpkg.utils.subprocess import SubprocessError

MISSING_PACKAGE = "does-not-exist"


def write_files(root: Path, files: Dict[str, str]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


class FakeRunner:
    """Stands in for npm, npx tsc, pip and pwsh by writing what they would install."""

    def __init__(self) -> None:
        self.commands: List[List[str]] = []

    def __call__(
        self,
        command: List[str],
        *,
        cwd: Optional[Path] = None,
        env: Optional[dict] = None,
        check: bool = True,
        output_stream=None,
    ) -> subprocess.CompletedProcess:
        self.commands.append(list(command))
        cwd = Path(cwd) if cwd else Path.cwd()

        if output_stream is not None:
            output_stream.write(f"$ {' '.join(command)}\n")

        if command[0] == "npm":
            self._npm(cwd)
        elif command[0] == "npx":
            self._tsc(command, cwd)
        elif command[1:4] == ["-m", "pip", "install"]:
            self._pip(command)
        elif command[0] == "pwsh":
            self._pwsh(command)

        return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

    def tools(self) -> List[str]:
        return [command[0] for command in self.commands]

    def _fail(self, command: List[str], reason: str) -> None:
        raise SubprocessError(f"Command failed: {' '.join(command)}\nExit code: 1\nstderr:\n{reason}")

    def _npm(self, cwd: Path) -> None:
        manifest = json.loads((cwd / "package.json").read_text(encoding="utf-8"))
        for name, version in sorted(manifest.get("dependencies", {}).items()):
            if MISSING_PACKAGE in name:
                self._fail(["npm", "install"], f"404 Not Found - {name}")
            package_dir = cwd / "node_modules" / name
            package_dir.mkdir(parents=True, exist_ok=True)
            (package_dir / "package.json").write_text(
                json.dumps({"name": name, "version": version.lstrip("^~")}),
                encoding="utf-8",
            )
            (package_dir / "index.js").write_text(f"module.exports = '{name}';\n", encoding="utf-8")

    def _tsc(self, command: List[str], cwd: Path) -> None:
        out_dir = Path(command[command.index("--outDir") + 1])
        for source in sorted(cwd.rglob("*.ts")):
            relative = source.relative_to(cwd)
            if relative.parts[0] in {"node_modules", "out", "dist"}:
                continue
            if "error" in source.read_text(encoding="utf-8"):
                self._fail(command, f"{relative}(1,1): error TS1005")
            target = out_dir / relative.with_suffix(".js")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(source.read_text(encoding="utf-8"), encoding="utf-8")

    def _pip(self, command: List[str]) -> None:
        target = Path(command[command.index("--target") + 1])
        if "-r" in command:
            requirements = _read_requirements(Path(command[command.index("-r") + 1]))
        else:
            requirements = command[command.index("--no-input") + 1:]
        for requirement in requirements:
            name = re.split(r"[<>=!~\[ ;]", requirement, maxsplit=1)[0]
            if MISSING_PACKAGE in name:
                self._fail(command, f"No matching distribution found for {name}")
            package_dir = target / name.replace("-", "_")
            package_dir.mkdir(parents=True, exist_ok=True)
            (package_dir / "__init__.py").write_text(f"NAME = {name!r}\n", encoding="utf-8")

    def _pwsh(self, command: List[str]) -> None:
        script = command[-1]
        name = re.search(r"-Name '([^']+)'", script).group(1)
        target = Path(re.search(r"-Path '([^']+)'", script).group(1))
        if MISSING_PACKAGE in name:
            self._fail(command, f"No match was found for the specified search criteria and module name '{name}'")
        module_dir = target / name
        module_dir.mkdir(parents=True, exist_ok=True)
        (module_dir / f"{name}.psd1").write_text("@{ ModuleVersion = '1.0.0' }\n", encoding="utf-8")


def _read_requirements(path: Path) -> List[str]:
    requirements: List[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("-r "):
            requirements += _read_requirements(path.parent / line[3:].strip())
        elif not line.startswith("-"):
            requirements.append(line)
    return requirements


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_workspace(tmp_path: Path) -> Callable[..., Path]:
    def _make(files: Dict[str, str], name: str = "project") -> Path:
        return write_files(tmp_path / name, files)

    return _make


def node_package_json(dependencies: Optional[Dict[str, str]] = None, **extra) -> str:
    manifest = {
        "name": "hello-node",
        "version": "1.2.0",
        "description": "Says hello",
        "dependencies": dependencies or {},
        "platform": {"entrypoint": "handler.handler", "memoryLimitMb": 128, "timeoutSec": 60},
        "vro": {"inputs": {"who": "string"}, "outputType": "Properties"},
    }
    manifest.update(extra)
    return json.dumps(manifest, indent=2)


@pytest.fixture
def node_workspace(make_workspace) -> Path:
    return make_workspace(
        {
            "package.json": node_package_json({"left-pad": "^1.3.0"}),
            "handler.js": "exports.handler = async (context, inputs) => ({ greeting: 'hi' });\n",
            "lib/util.js": "module.exports = {};\n",
            ".git/HEAD": "ref: refs/heads/main\n",
            "node_modules/stale/index.js": "// left over from a local install\n",
        },
        name="node-project",
    )


@pytest.fixture
def python_workspace(make_workspace) -> Path:
    return make_workspace(
        {
            "requirements.txt": "requests==2.31.0\n# pinned for the platform\nPyYAML>=6\n",
            "handler.py": "def handler(context, inputs):\n    return {'greeting': 'hi'}\n",
            "helpers/__init__.py": "",
            "__pycache__/handler.cpython-311.pyc": "junk",
        },
        name="python-project",
    )


@pytest.fixture
def powershell_workspace(make_workspace) -> Path:
    return make_workspace(
        {
            "requirements.psd1": "@{\n    'Az.Accounts' = '2.12.1'\n    'PSYaml' = 'latest'\n}\n",
            "handler.ps1": "function Handler($context, $inputs) { @{ greeting = 'hi' } }\n",
        },
        name="powershell-project",
    )
