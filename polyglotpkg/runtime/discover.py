import json
import logging
from pathlib import Path
from typing import Optional, Sequence, Tuple

from polyglotpkg.errors import DetectionError
from polyglotpkg.runtime.action_type import ActionType

logger = logging.getLogger(__name__)

# Checked in this order; the first pattern that matches a top-level entry wins.
# package.json comes last because projects of every runtime carry one for
# their action metadata.
MARKERS: Sequence[Tuple[ActionType, Tuple[str, ...]]] = (
    (ActionType.POWERSHELL, ("*.psd1", "*.ps1")),
    (ActionType.PYTHON, ("requirements.txt", "pyproject.toml", "setup.py")),
    (ActionType.NODE, ("package.json", "tsconfig.json")),
)


class ActionTypeResolver:
    def __init__(self, markers: Sequence[Tuple[ActionType, Tuple[str, ...]]] = MARKERS):
        self.markers = markers

    def detect(self, workspace: Path) -> ActionType:
        workspace = Path(workspace)
        if not workspace.exists():
            raise DetectionError(f"Workspace does not exist: {workspace}")
        if not workspace.is_dir():
            raise DetectionError(f"Workspace is not a directory: {workspace}")

        declared = _declared_runtime(workspace / "package.json")
        if declared is not None:
            logger.debug("Runtime declared in package.json: %s", declared.value)
            return declared

        for action_type, patterns in self.markers:
            for pattern in patterns:
                if _has_marker(workspace, pattern):
                    logger.debug(
                        "Detected %s project via marker %s", action_type.value, pattern
                    )
                    return action_type

        logger.debug("No runtime marker found in %s", workspace)
        return ActionType.UNKNOWN


def determine_action_type(workspace: Path) -> ActionType:
    return ActionTypeResolver().detect(workspace)


def _has_marker(workspace: Path, pattern: str) -> bool:
    try:
        return any(path.is_file() for path in workspace.glob(pattern))
    except OSError as exc:
        raise DetectionError(f"Failed to read workspace: {workspace}") from exc


def _declared_runtime(package_json: Path) -> Optional[ActionType]:
    if not package_json.is_file():
        return None

    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except OSError as exc:
        raise DetectionError(f"Failed to read {package_json}") from exc
    except UnicodeDecodeError as exc:
        raise DetectionError(f"{package_json} is not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise DetectionError(f"Invalid JSON in {package_json}: {exc}") from exc

    platform = data.get("platform") if isinstance(data, dict) else None
    if not isinstance(platform, dict) or not platform.get("runtime"):
        return None

    action_type = ActionType.from_runtime(str(platform["runtime"]))
    if action_type is ActionType.UNKNOWN:
        logger.warning(
            "Ignoring unsupported runtime %r declared in %s",
            platform["runtime"],
            package_json,
        )
        return None
    return action_type
