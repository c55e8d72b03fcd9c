import sys
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from polyglotpkg.errors import ConfigError
from polyglotpkg.runtime.action_type import ActionType

METADATA_DIR_NAME = "vro"


class ToolchainConfig(BaseModel):
    npm: str = Field(
        default="npm",
        description="Node package manager executable",
    )
    npx: str = Field(
        default="npx",
        description="Node package runner used to invoke the TypeScript compiler",
    )
    python: str = Field(
        default=sys.executable,
        description="Python interpreter whose pip installs vendored dependencies",
    )
    pwsh: str = Field(
        default="pwsh",
        description="PowerShell executable used to save modules",
    )

    @field_validator("npm", "npx", "python", "pwsh")
    @classmethod
    def validate_executable(cls, value: str) -> str:
        if not value or not value.strip():
            raise ConfigError("Toolchain executables cannot be empty")
        return value

    model_config = ConfigDict(frozen=True)


class PackagerOptions(BaseModel):
    workspace: Path = Field(
        ...,
        description="Absolute path to the project root",
    )

    output_archive_path: Path = Field(
        ...,
        description="Destination file of the action bundle",
    )

    bundle_staging_path: Path = Field(
        ...,
        description="Scratch directory used to assemble the bundle",
    )

    skip_metadata_packaging: bool = Field(
        default=False,
        description="Do not produce the vro metadata directory",
    )

    runtime_override: Optional[ActionType] = Field(
        default=None,
        description="Explicit runtime, bypassing detection",
    )

    progress_sink: Optional[Any] = Field(
        default=None,
        description="Append-only stream receiving compiler and installer output",
    )

    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)

    @field_validator("workspace")
    @classmethod
    def validate_workspace(cls, value: Path) -> Path:
        if not value.exists():
            raise ConfigError(f"Workspace does not exist: {value}")
        if not value.is_dir():
            raise ConfigError(f"Workspace is not a directory: {value}")
        return value.resolve()

    @field_validator("output_archive_path")
    @classmethod
    def validate_output_archive_path(cls, value: Path) -> Path:
        value = value.resolve()
        if value.is_dir():
            raise ConfigError(f"Output archive path is a directory: {value}")
        return value

    @field_validator("bundle_staging_path")
    @classmethod
    def validate_bundle_staging_path(cls, value: Path) -> Path:
        value = value.resolve()
        if value.exists() and not value.is_dir():
            raise ConfigError(f"Staging path is not a directory: {value}")
        return value

    @field_validator("runtime_override")
    @classmethod
    def validate_runtime_override(cls, value: Optional[ActionType]) -> Optional[ActionType]:
        if value is ActionType.UNKNOWN:
            raise ConfigError("Runtime override must name a supported runtime")
        return value

    @field_validator("progress_sink")
    @classmethod
    def validate_progress_sink(cls, value: Any) -> Any:
        if value is not None and not callable(getattr(value, "write", None)):
            raise ConfigError("Progress sink must provide a write() method")
        return value

    @model_validator(mode="after")
    def validate_staging_location(self) -> "PackagerOptions":
        # the staging directory is wiped at the start of every run
        staging = self.bundle_staging_path
        if staging == self.workspace or staging in self.workspace.parents:
            raise ConfigError(
                f"Staging path must not contain the workspace: {staging}"
            )
        archive = self.output_archive_path
        if archive == staging or staging in archive.parents:
            raise ConfigError(
                f"Output archive must not be written inside the staging path: {archive}"
            )
        return self

    @property
    def metadata_output_path(self) -> Path:
        return self.output_archive_path.parent / METADATA_DIR_NAME

    @classmethod
    def for_workspace(
        cls,
        workspace: Path,
        *,
        out: str = "out",
        bundle: str = "dist/bundle.zip",
        **kwargs: Any,
    ) -> "PackagerOptions":
        """Options with staging and archive paths relative to ``workspace``."""

        workspace = Path(workspace)
        return cls(
            workspace=workspace,
            bundle_staging_path=workspace / out,
            output_archive_path=workspace / bundle,
            **kwargs,
        )

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)
