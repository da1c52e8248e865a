"""External toolchain process execution."""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Sequence

from jitdylib.errors import BuildToolError


def run_tool(
    command: Sequence[str],
    *,
    tool: str,
    timeout: float | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run *command* as an argument vector and wait for it to exit.

    Spawn failures, timeouts and non-zero exits all raise ``BuildToolError``.
    Nothing is retried.
    """
    argv = [str(part) for part in command]
    rendered = shlex.join(argv)
    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise BuildToolError(
            f"{tool} did not finish within {timeout} seconds.",
            hint="Raise Toolchain.timeout or inspect the input for a hang.",
            context={"tool": tool, "command": rendered, "timeout": str(timeout)},
        ) from exc
    except OSError as exc:
        raise BuildToolError(
            f"Could not start {tool}.",
            hint=f"Ensure `{argv[0]}` is installed and in PATH.",
            context={"tool": tool, "command": rendered, "error": str(exc)},
        ) from exc

    if result.returncode != 0:
        raise BuildToolError(
            f"{tool} failed.",
            hint=f"Check {tool} output for details.",
            context={
                "tool": tool,
                "command": rendered,
                "returncode": str(result.returncode),
                "stderr": result.stderr[:2000] if result.stderr else "",
            },
        )
    return result
