from enum import Enum
from typing import Optional


class ActionType(str, Enum):
    NODE = "nodejs"
    PYTHON = "python"
    POWERSHELL = "powershell"
    UNKNOWN = "unknown"

    @classmethod
    def from_runtime(cls, runtime: Optional[str]) -> "ActionType":
        """Map a runtime name as written in ``package.json`` to an action type."""

        if not runtime:
            return cls.UNKNOWN
        value = runtime.strip().lower()
        aliases = {
            "node": cls.NODE,
            "nodejs": cls.NODE,
            "python": cls.PYTHON,
            "python3": cls.PYTHON,
            "powershell": cls.POWERSHELL,
            "pwsh": cls.POWERSHELL,
        }
        return aliases.get(value, cls.UNKNOWN)

    @property
    def handler_extension(self) -> str:
        extensions = {
            ActionType.NODE: ".js",
            ActionType.PYTHON: ".py",
            ActionType.POWERSHELL: ".ps1",
        }
        return extensions.get(self, "")
