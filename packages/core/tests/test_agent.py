"""Tests for agent command construction and the subprocess runner."""

import io
import sys
import textwrap

import pytest
from rich.console import Console

from poagent_core.agent.command import (
    AgentSpec,
    build_agent_command,
    normalize_output_format,
    replace_placeholders,
    resolve_kind,
)
from poagent_core.agent.runner import AgentCommandError, run_agent
from poagent_core.stream.display import TracePrinter
from poagent_core.stream.results import ClaudeRunResult

# Writes a short Claude stream to stdout and far more to stderr than a pipe
# buffer holds, so the run only finishes if both pipes are read concurrently.
CLAUDE_AGENT = textwrap.dedent(
    """
    import json, sys
    sys.stderr.write("progress line\\n" * 20000)
    sys.stderr.flush()
    events = [
        {"type": "system", "session_id": "s-1", "model": "m"},
        {"type": "assistant", "message": {"content": [{"type": "text", "text": "working"}]}},
        {"type": "result", "result": "{\\"total_entries\\": 1, \\"issues\\": []}", "num_turns": 1},
    ]
    for event in events:
        print(json.dumps(event), flush=True)
    """
)


def _quiet_printer():
    return TracePrinter(console=Console(file=io.StringIO(), color_system=None, force_terminal=False))


# ---------------------------------------------------------------------------
# Command construction
# ---------------------------------------------------------------------------


class TestNormalizeOutputFormat:
    @pytest.mark.parametrize("value", ["json", "stream-json", "stream_json"])
    def test_stream_aliases(self, value):
        assert normalize_output_format(value) == "json"

    def test_empty_is_default(self):
        assert normalize_output_format(None) == "default"
        assert normalize_output_format("") == "default"


class TestResolveKind:
    def test_explicit_kind(self):
        assert resolve_kind("reviewer", ["/usr/bin/agent"], "codex") == "codex"

    def test_from_name(self):
        assert resolve_kind("Gemini", ["npx", "gemini-cli"]) == "gemini"

    def test_from_executable(self):
        assert resolve_kind("fast", ["/opt/bin/opencode", "run"]) == "opencode"

    def test_unknown_explicit_kind(self):
        with pytest.raises(ValueError, match="unknown kind 'cursor'"):
            resolve_kind("a", ["a"], "cursor")

    def test_undetectable_kind(self):
        with pytest.raises(ValueError, match="Add a 'kind' field"):
            resolve_kind("mine", ["./run.sh"])


class TestBuildAgentCommand:
    def test_placeholders_replaced(self):
        agent = AgentSpec(name="claude", cmd=["claude", "-p", "{prompt}", "--add-dir", "{source}"], kind="claude")
        cmd = build_agent_command(agent, {"prompt": "Review po/zh_CN.po", "source": "po/zh_CN.po"})
        assert cmd == ["claude", "-p", "Review po/zh_CN.po", "--add-dir", "po/zh_CN.po"]

    def test_unknown_placeholder_left_alone(self):
        assert replace_placeholders("{missing} {commit}", {"commit": "HEAD"}) == "{missing} HEAD"

    @pytest.mark.parametrize(
        "kind,flags",
        [
            ("claude", ["--verbose", "--output-format", "stream-json"]),
            ("codex", ["--json"]),
            ("opencode", ["--format", "json"]),
            ("gemini", ["--output-format", "stream-json"]),
            ("qwen", ["--output-format", "stream-json"]),
        ],
    )
    def test_stream_flags_appended_for_json_output(self, kind, flags):
        agent = AgentSpec(name=kind, cmd=[kind, "{prompt}"], kind=kind, output="json")
        assert build_agent_command(agent, {"prompt": "p"}) == [kind, "p", *flags]

    def test_existing_output_flag_kept(self):
        agent = AgentSpec(
            name="claude", cmd=["claude", "-p", "{prompt}", "--output-format", "stream-json"], kind="claude", output="json"
        )
        assert build_agent_command(agent, {"prompt": "p"}) == ["claude", "-p", "p", "--output-format", "stream-json"]

    def test_default_output_not_streaming(self):
        agent = AgentSpec(name="claude", cmd=["claude", "-p", "{prompt}"], kind="claude")
        assert not agent.streaming
        assert build_agent_command(agent, {"prompt": "p"}) == ["claude", "-p", "p"]

    def test_echo_never_streams(self):
        assert not AgentSpec(name="echo", cmd=["echo"], kind="echo", output="json").streaming


# ---------------------------------------------------------------------------
# run_agent
# ---------------------------------------------------------------------------


class TestRunAgent:
    def test_streaming_run_with_large_stderr(self):
        outcome = run_agent([sys.executable, "-c", CLAUDE_AGENT], "claude", printer=_quiet_printer())

        assert outcome.returncode == 0
        assert isinstance(outcome.result, ClaudeRunResult)
        assert outcome.result.num_turns == 1
        assert outcome.result.session_id == "s-1"
        assert outcome.result.result_text == '{"total_entries": 1, "issues": []}'
        assert outcome.stderr.count("progress line") == 20000
        assert outcome.stream_error is None

    def test_captured_run(self):
        outcome = run_agent([sys.executable, "-c", "print('plain output')"], "echo", streaming=False)
        assert outcome.content == "plain output\n"
        assert outcome.result is None

    def test_nonzero_exit_raises_with_stderr(self):
        script = "import sys; sys.stderr.write('boom'); sys.exit(3)"

        with pytest.raises(AgentCommandError, match="exit code 3") as exc_info:
            run_agent([sys.executable, "-c", script], "claude", printer=_quiet_printer())

        assert "stderr: boom" in str(exc_info.value)
        assert exc_info.value.outcome.returncode == 3

    def test_missing_executable(self, tmp_path):
        with pytest.raises(AgentCommandError, match="failed to start"):
            run_agent([str(tmp_path / "no-such-agent")], "claude", printer=_quiet_printer())

    def test_empty_command(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            run_agent([], "claude")

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="No stream parser"):
            run_agent([sys.executable, "-c", "pass"], "cursor")
