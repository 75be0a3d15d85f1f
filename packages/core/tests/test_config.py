"""Tests for configuration loading, agent selection and PO helpers."""

import pytest

from poagent_core.config import load_config, load_prompt, select_agent
from poagent_core.utils.po import count_po_entries, derive_review_paths

SAMPLE_PO = """\
# Chinese translations for demo.
msgid ""
msgstr ""
"Project-Id-Version: demo\\n"
"Content-Type: text/plain; charset=UTF-8\\n"

#: src/main.c:10
msgid "Open file"
msgstr "打开文件"

#: src/main.c:12
msgid ""
"A long message that starts "
"on the next line"
msgstr ""
"一条很长的消息"

msgid "One file"
msgid_plural "%d files"
msgstr[0] "%d 个文件"

#~ msgid "Obsolete"
#~ msgstr "过时"
"""


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["runs"] == 1
    assert config["store"] == "noop"
    assert config["prompt"]["review"] is None
    assert config["display"]["max_lines"] == 10
    assert "claude" in config["agents"]


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".poagent.yml"
    cfg.write_text("runs: 3\nstore: sqlite\n")
    config = load_config(config_path=str(cfg))
    assert config["runs"] == 3
    assert config["store"] == "sqlite"


def test_display_section_merged_key_by_key(tmp_path):
    cfg = tmp_path / ".poagent.yml"
    cfg.write_text("display:\n  max_lines: 4\n")
    config = load_config(config_path=str(cfg))
    assert config["display"]["max_lines"] == 4
    assert config["display"]["max_bytes"] == 4096


def test_agents_section_replaced(tmp_path):
    cfg = tmp_path / ".poagent.yml"
    cfg.write_text("agents:\n  codex:\n    cmd: [codex, exec, '{prompt}']\n    output: json\n")
    config = load_config(config_path=str(cfg))
    assert list(config["agents"]) == ["codex"]


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".poagent.yml"
    cfg.write_text("runs: 3\n")
    config = load_config(config_path=str(cfg), cli_overrides={"runs": 5, "default_agent": None})
    assert config["runs"] == 5
    assert config["default_agent"] is None


def test_empty_config_file_uses_defaults(tmp_path):
    cfg = tmp_path / ".poagent.yml"
    cfg.write_text("")
    assert load_config(config_path=str(cfg))["runs"] == 1


def test_non_mapping_config_rejected(tmp_path):
    cfg = tmp_path / ".poagent.yml"
    cfg.write_text("- just\n- a list\n")
    with pytest.raises(ValueError, match="must contain a mapping"):
        load_config(config_path=str(cfg))


def test_defaults_not_mutated_between_loads(tmp_path):
    first = load_config(config_path=str(tmp_path / "none.yml"))
    first["display"]["max_lines"] = 99
    second = load_config(config_path=str(tmp_path / "none.yml"))
    assert second["display"]["max_lines"] == 10


class TestSelectAgent:
    def _config(self, agents, default=None):
        return {"agents": agents, "default_agent": default}

    def test_only_agent_selected(self):
        agent = select_agent(self._config({"claude": {"cmd": ["claude", "-p", "{prompt}"], "output": "json"}}))
        assert agent.name == "claude"
        assert agent.kind == "claude"
        assert agent.streaming

    def test_named_agent(self):
        agents = {"claude": {"cmd": ["claude"]}, "codex": {"cmd": ["codex", "exec"]}}
        assert select_agent(self._config(agents), "codex").kind == "codex"

    def test_default_agent(self):
        agents = {"claude": {"cmd": ["claude"]}, "codex": {"cmd": ["codex", "exec"]}}
        assert select_agent(self._config(agents, default="codex")).name == "codex"

    def test_ambiguous_without_name(self):
        agents = {"claude": {"cmd": ["claude"]}, "codex": {"cmd": ["codex"]}}
        with pytest.raises(ValueError, match="choose one with --agent"):
            select_agent(self._config(agents))

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="not found"):
            select_agent(self._config({"claude": {"cmd": ["claude"]}}), "gemini")

    def test_no_agents(self):
        with pytest.raises(ValueError, match="No agents configured"):
            select_agent(self._config({}))

    def test_string_command_split(self):
        agent = select_agent(self._config({"mine": {"cmd": "qwen -p {prompt}", "kind": "qwen"}}))
        assert agent.cmd == ["qwen", "-p", "{prompt}"]
        assert agent.kind == "qwen"


class TestLoadPrompt:
    def test_builtin_review_prompt(self):
        prompt = load_prompt({"prompt": {"review": None}}, "review")
        assert "{source}" in prompt
        assert "total_entries" in prompt

    def test_custom_prompt(self, tmp_path):
        custom = tmp_path / "review.md"
        custom.write_text("Review {source} carefully.")
        assert load_prompt({"prompt": {"review": str(custom)}}, "review") == "Review {source} carefully."

    def test_missing_custom_prompt(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Prompt file not found"):
            load_prompt({"prompt": {"review": str(tmp_path / "nope.md")}}, "review")

    def test_unknown_action(self):
        with pytest.raises(FileNotFoundError):
            load_prompt({"prompt": {}}, "translate")


class TestPOHelpers:
    def test_count_entries_skips_header_and_obsolete(self, tmp_path):
        po = tmp_path / "zh_CN.po"
        po.write_text(SAMPLE_PO, encoding="utf-8")
        assert count_po_entries(po) == 3

    def test_count_without_header(self, tmp_path):
        po = tmp_path / "de.po"
        po.write_text('msgid "Yes"\nmsgstr "Ja"\n\nmsgid "No"\nmsgstr "Nein"\n', encoding="utf-8")
        assert count_po_entries(po) == 2

    def test_multiline_first_entry_is_not_a_header(self, tmp_path):
        po = tmp_path / "fr.po"
        po.write_text('msgid ""\n"Long text"\nmsgstr "Texte long"\n', encoding="utf-8")
        assert count_po_entries(po) == 1

    @pytest.mark.parametrize("path", ["po/zh_CN.po", "po/zh_CN.json", "po/zh_CN"])
    def test_derive_review_paths(self, path):
        review, po = derive_review_paths(path)
        assert str(review) == "po/zh_CN.json"
        assert str(po) == "po/zh_CN.po"
