"""Run an agent subprocess and collect its result.

With streaming output, stdout is parsed line by line while a second worker
drains stderr. Both workers are joined before the outcome is assembled: an
agent that fills the stderr pipe while nobody reads it would otherwise block
forever.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import IO

from poagent_core.stream.display import TracePrinter
from poagent_core.stream.parser import MAX_LINE_BYTES, StreamParser
from poagent_core.stream.registry import get_parser
from poagent_core.stream.results import RunResult

logger = logging.getLogger(__name__)

_CHUNK = 64 * 1024


@dataclass
class AgentRunOutcome:
    cmd: list[str]
    returncode: int
    content: str = ""
    stderr: str = ""
    result: RunResult | None = None
    stream_error: Exception | None = None


class AgentCommandError(RuntimeError):
    """The agent could not be started or exited with a non-zero status."""

    def __init__(self, message: str, outcome: AgentRunOutcome | None = None):
        super().__init__(message)
        self.outcome = outcome


def run_agent(
    cmd: list[str],
    kind: str,
    streaming: bool = True,
    printer: TracePrinter | None = None,
    max_line_bytes: int = MAX_LINE_BYTES,
    cwd: str | None = None,
) -> AgentRunOutcome:
    """Run ``cmd`` and return its outcome.

    ``streaming`` selects the JSON-Lines parser for ``kind``; otherwise stdout
    is captured whole and returned as the content.
    """
    if not cmd:
        raise ValueError("agent command cannot be empty")
    logger.debug("Executing agent command: %s", shlex.join(cmd))

    try:
        if streaming:
            parser = get_parser(kind, printer=printer, max_line_bytes=max_line_bytes)
            outcome = _run_streaming(cmd, parser, cwd)
        else:
            outcome = _run_captured(cmd, cwd)
    except OSError as exc:
        raise AgentCommandError(f"failed to start agent command {cmd[0]!r}: {exc}") from exc

    if outcome.returncode != 0:
        raise AgentCommandError(
            f"agent command failed with exit code {outcome.returncode}\nstderr: {outcome.stderr.strip()}",
            outcome,
        )
    logger.debug("Agent command completed (content: %d chars, stderr: %d chars)", len(outcome.content), len(outcome.stderr))
    return outcome


def _run_streaming(cmd: list[str], parser: StreamParser, cwd: str | None) -> AgentRunOutcome:
    with subprocess.Popen(
        cmd, stdin=subprocess.DEVNULL, stdout=subprocess.PIPE, stderr=subprocess.PIPE, cwd=cwd
    ) as proc:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="agent-io") as pool:
            parsed = pool.submit(_parse_stdout, parser, proc.stdout)
            drained = pool.submit(_drain, proc.stderr)
            stream = parsed.result()
            stderr = drained.result()
        returncode = proc.wait()

    if stream.error is not None:
        logger.warning("Agent output stream ended early: %s", stream.error)
    return AgentRunOutcome(
        cmd=cmd,
        returncode=returncode,
        content=stream.content,
        stderr=stderr.decode("utf-8", errors="replace"),
        result=stream.result,
        stream_error=stream.error,
    )


def _parse_stdout(parser: StreamParser, stdout: IO[bytes]):
    outcome = parser.parse(stdout)
    # keep reading after a parse failure so the agent never blocks on a full pipe
    _drain(stdout)
    return outcome


def _drain(pipe: IO[bytes]) -> bytes:
    chunks = []
    for chunk in iter(lambda: pipe.read(_CHUNK), b""):
        chunks.append(chunk)
    return b"".join(chunks)


def _run_captured(cmd: list[str], cwd: str | None) -> AgentRunOutcome:
    completed = subprocess.run(cmd, stdin=subprocess.DEVNULL, capture_output=True, cwd=cwd, check=False)
    return AgentRunOutcome(
        cmd=cmd,
        returncode=completed.returncode,
        content=completed.stdout.decode("utf-8", errors="replace"),
        stderr=completed.stderr.decode("utf-8", errors="replace"),
    )
