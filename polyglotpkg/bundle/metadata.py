import json
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from polyglotpkg.analyze.manifest import ProjectManifest
from polyglotpkg.errors import BundleError
from polyglotpkg.runtime.action_type import ActionType

DESCRIPTOR_FILE = "action.json"


class ActionDescriptor(BaseModel):
    name: str
    version: str
    description: str = ""
    runtime: ActionType
    entrypoint: str
    handler: str = Field(..., description="Entry file path inside the bundle")
    inputs: Dict[str, str] = Field(default_factory=dict)
    output_type: str = Field(default="Any", alias="outputType")
    memory_limit_mb: Optional[int] = Field(default=None, alias="memoryLimitMb")
    timeout_sec: Optional[int] = Field(default=None, alias="timeoutSec")
    tags: List[str] = Field(default_factory=list)
    bundle: str = Field(default="", description="File name of the action bundle")

    @classmethod
    def from_manifest(cls, manifest: ProjectManifest, action_type: ActionType) -> "ActionDescriptor":
        return cls(
            name=manifest.action_name,
            version=manifest.version,
            description=manifest.description,
            runtime=action_type,
            entrypoint=manifest.platform.entrypoint,
            handler=manifest.handler_file(action_type.handler_extension),
            inputs=dict(manifest.vro.inputs),
            outputType=manifest.vro.output_type,
            memoryLimitMb=manifest.platform.memory_limit_mb,
            timeoutSec=manifest.platform.timeout_sec,
            tags=list(manifest.platform.tags),
        )

    model_config = ConfigDict(frozen=True, populate_by_name=True)


def write_descriptor(descriptor: ActionDescriptor, metadata_dir: Path) -> Path:
    path = metadata_dir / DESCRIPTOR_FILE
    payload = descriptor.model_dump(mode="json", by_alias=True)
    try:
        path.write_text(
            json.dumps(payload, indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
    except OSError as exc:
        raise BundleError(f"Failed to write action metadata: {path}") from exc
    return path
