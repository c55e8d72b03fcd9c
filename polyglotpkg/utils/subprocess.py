import logging
import subprocess
from pathlib import Path
from typing import Any, List, Optional, Protocol

from polyglotpkg.errors import PolyglotError

logger = logging.getLogger(__name__)


class SubprocessError(PolyglotError):
    exit_code = 13


class CommandRunner(Protocol):
    def __call__(
        self,
        command: List[str],
        *,
        cwd: Optional[Path] = None,
        env: Optional[dict] = None,
        check: bool = True,
        output_stream: Optional[Any] = None,
    ) -> subprocess.CompletedProcess: ...


def run_command(
    command: List[str],
    *,
    cwd: Optional[Path] = None,
    env: Optional[dict] = None,
    check: bool = True,
    output_stream: Optional[Any] = None,
) -> subprocess.CompletedProcess:
    """Run ``command`` to completion.

    Without ``output_stream`` stdout and stderr are captured separately. With
    one, both are merged and every line is written to the stream as it
    arrives; the collected text ends up in ``stdout`` of the result.
    """

    logger.debug("Running %s (cwd=%s)", " ".join(command), cwd)

    try:
        if output_stream is None:
            result = subprocess.run(
                command,
                cwd=str(cwd) if cwd else None,
                env=env,
                check=False,  # handled manually
                capture_output=True,
                text=True,
            )
        else:
            result = _run_streaming(command, cwd=cwd, env=env, output_stream=output_stream)
    except FileNotFoundError as exc:
        raise SubprocessError(
            f"Command not found: {command[0]}"
        ) from exc
    except OSError as exc:
        raise SubprocessError(
            f"Failed to execute command: {' '.join(command)}"
        ) from exc

    if check and result.returncode != 0:
        raise SubprocessError(
            _format_error(command, result)
        )

    return result


def _run_streaming(
    command: List[str],
    *,
    cwd: Optional[Path],
    env: Optional[dict],
    output_stream: Any,
) -> subprocess.CompletedProcess:
    lines: List[str] = []
    with subprocess.Popen(
        command,
        cwd=str(cwd) if cwd else None,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
    ) as process:
        assert process.stdout is not None
        for line in process.stdout:
            lines.append(line)
            output_stream.write(line)
        returncode = process.wait()

    return subprocess.CompletedProcess(
        args=command,
        returncode=returncode,
        stdout="".join(lines),
        stderr="",
    )

def _format_error(
    command: List[str],
    result: subprocess.CompletedProcess,
) -> str:
    message = [
        f"Command failed: {' '.join(command)}",
        f"Exit code: {result.returncode}",
    ]

    if result.stdout:
        message.append(f"stdout:\n{result.stdout.strip()}")

    if result.stderr:
        message.append(f"stderr:\n{result.stderr.strip()}")

    return "\n".join(message)
