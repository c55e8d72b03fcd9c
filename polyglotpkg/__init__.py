from polyglotpkg.config import PackagerOptions, ToolchainConfig
from polyglotpkg.events import Events
from polyglotpkg.packager import Packager, PackagerState
from polyglotpkg.runtime.action_type import ActionType
from polyglotpkg.runtime.discover import ActionTypeResolver, determine_action_type
from polyglotpkg.strategies.base import CancellationToken, Stage

__all__ = [
    "ActionType",
    "ActionTypeResolver",
    "CancellationToken",
    "Events",
    "Packager",
    "PackagerOptions",
    "PackagerState",
    "Stage",
    "ToolchainConfig",
    "determine_action_type",
]
