"""Tests for trace formatting, run results and the diagnostics block."""

import io

from rich.console import Console

from poagent_core.diagnostics import print_agent_diagnostics
from poagent_core.stream.display import (
    HEADER_RULE,
    DisplayLimits,
    TracePrinter,
    indent_subsequent_lines,
    truncate_command,
    truncate_text,
)
from poagent_core.stream.results import ClaudeRunResult, CodexRunResult, RunResult, Usage, num_turns


def _make_console():
    buf = io.StringIO()
    return Console(file=buf, width=120, color_system=None, force_terminal=False), buf


# ---------------------------------------------------------------------------
# truncate_text / truncate_command
# ---------------------------------------------------------------------------


class TestTruncateText:
    def test_short_text_unchanged(self):
        assert truncate_text("hello") == "hello"

    def test_trailing_newline_removed(self):
        assert truncate_text("hello\n\n") == "hello"

    def test_byte_limit(self):
        result = truncate_text("a" * 5000)
        assert len(result.encode("utf-8")) <= 4096
        assert result.endswith("...")
        assert result == "a" * 4093 + "..."

    def test_line_limit(self):
        text = "\n".join(str(i) for i in range(20))
        assert truncate_text(text) == "\n".join(str(i) for i in range(10)) + "..."

    def test_no_newlines_before_ellipsis(self):
        text = "x" + "\n" * 12 + "more"
        assert truncate_text(text) == "x..."

    def test_multibyte_character_not_split(self):
        result = truncate_text("é" * 3000)
        assert len(result.encode("utf-8")) <= 4096
        assert result == "é" * 2046 + "..."

    def test_custom_limits(self):
        assert truncate_text("abcdefghij", max_bytes=8) == "abcde..."


class TestTruncateCommand:
    def test_short_command_unchanged(self):
        assert truncate_command("msgfmt -c po/zh_CN.po") == "msgfmt -c po/zh_CN.po"

    def test_long_command_keeps_head_and_tail(self):
        command = "h" * 150 + "t" * 50
        result = truncate_command(command)
        assert result == "h" * 128 + "..." + "t" * 32


# ---------------------------------------------------------------------------
# indent_subsequent_lines
# ---------------------------------------------------------------------------


class TestIndentSubsequentLines:
    def test_single_line_unchanged(self):
        assert indent_subsequent_lines("a short line") == "a short line"

    def test_following_lines_indented(self):
        assert indent_subsequent_lines("line1\nline2") == "line1\n   line2"

    def test_blank_lines_kept_without_indent(self):
        assert indent_subsequent_lines("a\n\nb") == "a\n\n   b"

    def test_long_line_wrapped_on_spaces(self):
        text = " ".join(["word"] * 30)
        lines = indent_subsequent_lines(text, width=20).split("\n")

        assert len(lines) > 1
        assert all(len(line) <= 20 for line in lines)
        assert all(line.startswith("   ") for line in lines[1:])
        assert " ".join(line.strip() for line in lines) == text


# ---------------------------------------------------------------------------
# DisplayLimits / TracePrinter
# ---------------------------------------------------------------------------


class TestDisplayLimits:
    def test_defaults(self):
        limits = DisplayLimits.from_config(None)
        assert limits.max_bytes == 4096
        assert limits.max_lines == 10
        assert limits.wrap_width == 99

    def test_from_config_ignores_unknown_keys(self):
        limits = DisplayLimits.from_config({"max_lines": 3, "colour": "blue", "indent": None})
        assert limits.max_lines == 3
        assert limits.indent == "   "


class TestTracePrinter:
    def test_block_layout(self):
        console, buf = _make_console()
        TracePrinter(console=console).block("Title", [("Model", "m")], ["body"])
        assert buf.getvalue() == f"\nTitle\n{HEADER_RULE}\n**Model:** m\nbody\n{HEADER_RULE}\n\n"

    def test_text_is_truncated(self):
        console, buf = _make_console()
        printer = TracePrinter(console=console, limits=DisplayLimits(max_lines=2))
        printer.text("🤖", "one\ntwo\nthree")
        assert buf.getvalue() == "🤖 one\n   two...\n"

    def test_markup_is_not_interpreted(self):
        console, buf = _make_console()
        TracePrinter(console=console).item("🔧", "grep '[bold]' file")
        assert "[bold]" in buf.getvalue()


# ---------------------------------------------------------------------------
# RunResult / diagnostics
# ---------------------------------------------------------------------------


class TestRunResult:
    def test_num_turns_of_missing_result(self):
        assert num_turns(None) == 0

    def test_num_turns(self):
        assert num_turns(ClaudeRunResult(num_turns=3)) == 3

    def test_codex_thread_id(self):
        assert CodexRunResult(session_id="t-1").thread_id == "t-1"

    def test_vendor_names(self):
        assert ClaudeRunResult.vendor == "claude"
        assert CodexRunResult.vendor == "codex"

    def test_usage_is_empty(self):
        assert Usage().is_empty()
        assert not Usage(output_tokens=1).is_empty()


class TestAgentDiagnostics:
    def test_prints_nonzero_fields(self):
        console, buf = _make_console()
        result = RunResult(num_turns=3, usage=Usage(input_tokens=1200, output_tokens=0), duration_ms=2500)

        print_agent_diagnostics(result, console)
        out = buf.getvalue()

        assert "📊 Agent Diagnostics" in out
        assert "**Num turns:** 3" in out
        assert "**Input tokens:** 1200" in out
        assert "Output tokens" not in out
        assert "**API duration:** 2.50 s" in out

    def test_nothing_for_missing_result(self):
        console, buf = _make_console()
        print_agent_diagnostics(None, console)
        assert buf.getvalue() == ""

    def test_nothing_when_all_zero(self):
        console, buf = _make_console()
        print_agent_diagnostics(RunResult(usage=Usage()), console)
        assert buf.getvalue() == ""
