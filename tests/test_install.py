import io

import pytest

from polyglotpkg.deps.install import (
    install_node_modules,
    install_python_packages,
    save_powershell_modules,
)
from polyglotpkg.errors import DependencyInstallError

from conftest import node_package_json, write_files


def test_node_install_uses_npm_install_without_lock(tmp_path, fake_runner) -> None:
    project = write_files(tmp_path / "p", {"package.json": node_package_json({"left-pad": "^1.3.0"})})

    modules = install_node_modules(
        npm_executable="npm",
        project_root=project,
        work_dir=tmp_path / "work",
        has_dependencies=True,
        runner=fake_runner,
    )

    assert modules == tmp_path / "work" / "node_modules"
    assert (modules / "left-pad" / "index.js").exists()
    assert fake_runner.commands == [
        ["npm", "install", "--omit=dev", "--no-audit", "--no-fund", "--no-package-lock"]
    ]


def test_node_install_uses_ci_with_lock_file(tmp_path, fake_runner) -> None:
    project = write_files(
        tmp_path / "p",
        {"package.json": node_package_json({"left-pad": "1.3.0"}), "package-lock.json": "{}"},
    )

    install_node_modules(
        npm_executable="npm",
        project_root=project,
        work_dir=tmp_path / "work",
        has_dependencies=True,
        runner=fake_runner,
    )

    assert fake_runner.commands[0][:2] == ["npm", "ci"]
    assert (tmp_path / "work" / "package-lock.json").exists()


def test_node_install_without_dependencies_skips_npm(tmp_path, fake_runner) -> None:
    project = write_files(tmp_path / "p", {"package.json": node_package_json()})

    modules = install_node_modules(
        npm_executable="npm",
        project_root=project,
        work_dir=tmp_path / "work",
        has_dependencies=False,
        runner=fake_runner,
    )

    assert modules.is_dir()
    assert list(modules.iterdir()) == []
    assert fake_runner.commands == []


def test_node_install_failure_removes_partial_tree(tmp_path, fake_runner) -> None:
    project = write_files(
        tmp_path / "p",
        {"package.json": node_package_json({"a-real-one": "1.0.0", "zz-does-not-exist": "1.0.0"})},
    )

    with pytest.raises(DependencyInstallError, match="zz-does-not-exist"):
        install_node_modules(
            npm_executable="npm",
            project_root=project,
            work_dir=tmp_path / "work",
            has_dependencies=True,
            runner=fake_runner,
        )

    assert not (tmp_path / "work" / "node_modules").exists()


def test_python_install_with_requirements_file(tmp_path, fake_runner) -> None:
    project = write_files(tmp_path / "p", {"requirements.txt": "requests==2.31.0\n"})
    target = tmp_path / "lib"
    sink = io.StringIO()

    install_python_packages(
        python_executable="/usr/bin/python3",
        project_root=project,
        requirements=["requests==2.31.0"],
        target=target,
        runner=fake_runner,
        output_stream=sink,
    )

    command = fake_runner.commands[0]
    assert command[:4] == ["/usr/bin/python3", "-m", "pip", "install"]
    assert command[-2:] == ["-r", str(project / "requirements.txt")]
    assert "--target" in command and str(target) in command
    assert (target / "requests" / "__init__.py").exists()
    assert "pip install" in sink.getvalue()


def test_python_install_with_explicit_requirements(tmp_path, fake_runner) -> None:
    project = write_files(tmp_path / "p", {"pyproject.toml": ""})

    install_python_packages(
        python_executable="python",
        project_root=project,
        requirements=["attrs>=23", "click"],
        target=tmp_path / "lib",
        runner=fake_runner,
    )

    assert fake_runner.commands[0][-2:] == ["attrs>=23", "click"]
    assert (tmp_path / "lib" / "attrs").is_dir()


def test_python_install_failure(tmp_path, fake_runner) -> None:
    project = write_files(tmp_path / "p", {"requirements.txt": "does-not-exist-pkg==9.9\n"})
    target = tmp_path / "lib"

    with pytest.raises(DependencyInstallError, match="No matching distribution"):
        install_python_packages(
            python_executable="python",
            project_root=project,
            requirements=["does-not-exist-pkg==9.9"],
            target=target,
            runner=fake_runner,
        )

    assert not target.exists()


def test_python_install_follows_nested_requirement_files(tmp_path, fake_runner) -> None:
    project = write_files(
        tmp_path / "p",
        {
            "requirements.txt": "-r requirements/base.txt\n",
            "requirements/base.txt": "requests==2.31.0\n",
        },
    )
    target = tmp_path / "lib"

    install_python_packages(
        python_executable="python",
        project_root=project,
        requirements=[],
        target=target,
        runner=fake_runner,
    )

    assert fake_runner.commands[0][-2:] == ["-r", str(project / "requirements.txt")]
    assert (target / "requests" / "__init__.py").exists()


def test_python_install_nothing_to_do(tmp_path, fake_runner) -> None:
    target = install_python_packages(
        python_executable="python",
        project_root=tmp_path,
        requirements=[],
        target=tmp_path / "lib",
        runner=fake_runner,
    )

    assert target.is_dir()
    assert fake_runner.commands == []


def test_powershell_modules_saved_in_name_order(tmp_path, fake_runner) -> None:
    target = tmp_path / "Modules"

    save_powershell_modules(
        pwsh_executable="pwsh",
        project_root=tmp_path,
        modules={"PSYaml": None, "Az.Accounts": "2.12.1"},
        target=target,
        runner=fake_runner,
    )

    scripts = [command[-1] for command in fake_runner.commands]
    assert scripts[0].startswith("Save-Module -Name 'Az.Accounts' -RequiredVersion '2.12.1'")
    assert "-RequiredVersion" not in scripts[1]
    assert fake_runner.commands[0][:5] == ["pwsh", "-NoLogo", "-NoProfile", "-NonInteractive", "-Command"]
    assert sorted(p.name for p in target.iterdir()) == ["Az.Accounts", "PSYaml"]
