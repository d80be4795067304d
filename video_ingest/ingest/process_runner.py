from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass

from video_ingest.errors import ExternalToolError, ToolTimeout, ToolUnavailable

logger = logging.getLogger(__name__)

MAX_ERROR_OUTPUT_CHARS = 1200
TRUNCATION_MARKER = "..."


@dataclass(frozen=True, slots=True)
class ToolOutput:
    stdout: str
    stderr: str


def run_tool(program: str, args: list[str], timeout_seconds: float | None = None) -> ToolOutput:
    """Run an external tool with no stdin and return its captured output.

    Raises ``ToolUnavailable`` when the binary is not on PATH, ``ToolTimeout``
    when the timeout elapses (the process is killed) and ``ExternalToolError``
    on a non-zero exit status or any other launch failure.
    """

    command = [program, *args]
    logger.debug("Running %s", " ".join(command))

    try:
        completed = subprocess.run(
            command,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            errors="replace",
            check=True,
            timeout=timeout_seconds if timeout_seconds and timeout_seconds > 0 else None,
        )
    except FileNotFoundError as exc:
        raise ToolUnavailable(program) from exc
    except subprocess.TimeoutExpired as exc:
        raise ToolTimeout(program, float(exc.timeout), _output_tail(_as_text(exc.stderr), _as_text(exc.output))) from exc
    except subprocess.CalledProcessError as exc:
        raise ExternalToolError(
            program,
            exc.returncode,
            _output_tail(exc.stderr or "", exc.stdout or ""),
        ) from exc
    except OSError as exc:
        raise ExternalToolError(program, None, str(exc), message=f"{program} could not be started: {exc}") from exc

    return ToolOutput(stdout=completed.stdout or "", stderr=completed.stderr or "")


def _output_tail(stderr: str, stdout: str) -> str:
    output = stderr.strip() or stdout.strip()
    if len(output) <= MAX_ERROR_OUTPUT_CHARS:
        return output
    return TRUNCATION_MARKER + output[-(MAX_ERROR_OUTPUT_CHARS - len(TRUNCATION_MARKER)) :]


def _as_text(raw: str | bytes | None) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw
