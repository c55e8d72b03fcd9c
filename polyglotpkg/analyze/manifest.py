import json
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from polyglotpkg.errors import ManifestError

MANIFEST_FILE = "package.json"
DEFAULT_ENTRYPOINT = "handler.handler"


class PlatformSettings(BaseModel):
    runtime: Optional[str] = Field(
        default=None,
        description="Runtime the action targets (nodejs, python, powershell)",
    )
    action: Optional[str] = Field(
        default=None,
        description="Action name on the target platform, defaults to the package name",
    )
    entrypoint: str = Field(
        default=DEFAULT_ENTRYPOINT,
        description="Handler in the form module.function",
        examples=["handler.handler", "src/main.handler"],
    )
    tags: List[str] = Field(default_factory=list)
    memory_limit_mb: Optional[int] = Field(default=None, alias="memoryLimitMb")
    timeout_sec: Optional[int] = Field(default=None, alias="timeoutSec")

    @field_validator("entrypoint")
    @classmethod
    def validate_entrypoint(cls, value: str) -> str:
        module, _, function = value.rpartition(".")
        if not module or not function:
            raise ManifestError(
                "Entrypoint must be in the format 'module.function'"
            )
        return value

    @field_validator("memory_limit_mb", "timeout_sec")
    @classmethod
    def validate_positive(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ManifestError("Memory limit and timeout must be positive")
        return value

    @property
    def handler_module(self) -> str:
        return self.entrypoint.rpartition(".")[0]

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class VroSettings(BaseModel):
    inputs: Dict[str, str] = Field(
        default_factory=dict,
        description="Action input names mapped to their platform types",
    )
    output_type: str = Field(default="Any", alias="outputType")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ProjectManifest(BaseModel):
    name: str = Field(default="action")
    version: str = Field(default="1.0.0")
    description: str = Field(default="")
    dependencies: Dict[str, str] = Field(default_factory=dict)
    platform: PlatformSettings = Field(default_factory=PlatformSettings)
    vro: VroSettings = Field(default_factory=VroSettings)

    @property
    def action_name(self) -> str:
        return self.platform.action or self.name

    def handler_file(self, extension: str) -> str:
        return self.platform.handler_module + extension

    model_config = ConfigDict(frozen=True)


def load_manifest(workspace: Path) -> ProjectManifest:
    """Read ``package.json`` from the workspace.

    Projects without one get defaults named after the workspace directory.
    """

    path = workspace / MANIFEST_FILE
    if not path.exists():
        return ProjectManifest(name=workspace.name)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ManifestError(f"Failed to read project manifest: {path}") from exc
    except UnicodeDecodeError as exc:
        raise ManifestError(f"Project manifest is not valid UTF-8: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ManifestError(f"Project manifest must be a JSON object: {path}")

    data.setdefault("name", workspace.name)
    try:
        return ProjectManifest.model_validate(data)
    except ValidationError as exc:
        raise ManifestError(f"Invalid project manifest {path}: {exc}") from exc
