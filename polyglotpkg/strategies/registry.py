from typing import Dict, Type

from polyglotpkg.config import PackagerOptions
from polyglotpkg.errors import DetectionError
from polyglotpkg.runtime.action_type import ActionType
from polyglotpkg.strategies.base import BaseStrategy, Emit, _ignore_event
from polyglotpkg.strategies.node import NodeStrategy
from polyglotpkg.strategies.powershell import PowershellStrategy
from polyglotpkg.strategies.python import PythonStrategy
from polyglotpkg.utils.subprocess import CommandRunner, run_command

STRATEGIES: Dict[ActionType, Type[BaseStrategy]] = {
    ActionType.NODE: NodeStrategy,
    ActionType.PYTHON: PythonStrategy,
    ActionType.POWERSHELL: PowershellStrategy,
}


def create_strategy(
    action_type: ActionType,
    options: PackagerOptions,
    emit: Emit = _ignore_event,
    *,
    runner: CommandRunner = run_command,
) -> BaseStrategy:
    try:
        strategy_cls = STRATEGIES[action_type]
    except KeyError:
        raise DetectionError(
            f"Unsupported project type: {action_type.value}"
        ) from None
    return strategy_cls(options, emit, runner=runner)
