"""Tests for the live session and the refresh pipeline."""

import threading

import pytest
from conftest import FakeProbe

from ctxbridge.config import read_config, write_config
from ctxbridge.live import LIVE_SESSION_ID, RESUME_INDEX, LiveSessionStore, RefreshPipeline
from ctxbridge.rules import RuleStore


class TestLiveSessionStore:

    def test_default_task_from_branch(self, ctx_dir, fake_probe):
        live = LiveSessionStore(ctx_dir, fake_probe).update()
        assert live.id == LIVE_SESSION_ID
        assert live.task == "Working on feature/auth"
        assert live.files_changed == fake_probe.result.changed_files
        assert (ctx_dir / "sessions" / "live.json").is_file()

    def test_respects_session_defaults(self, ctx_dir, fake_probe):
        config = read_config(ctx_dir)
        config.session_defaults.include_files = False
        write_config(ctx_dir, config)

        live = LiveSessionStore(ctx_dir, fake_probe).update()
        assert live.files_changed == []
        assert live.diff_summary == fake_probe.result.diff_summary

    def test_default_task_without_git(self, ctx_dir):
        live = LiveSessionStore(ctx_dir, FakeProbe(branch=None)).update()
        assert live.task == "Working on main"

    def test_sticky_fields_survive_refresh(self, ctx_dir, fake_probe):
        store = LiveSessionStore(ctx_dir, fake_probe)
        store.update(task="JWT auth", decisions=["RS256"], next_steps=["tests"], tool="claude")

        refreshed = store.update()
        assert refreshed.task == "JWT auth"
        assert refreshed.decisions == ["RS256"]
        assert refreshed.next_steps == ["tests"]
        assert refreshed.tool == "claude"

    def test_explicit_values_win(self, ctx_dir, fake_probe):
        store = LiveSessionStore(ctx_dir, fake_probe)
        store.update(task="old", decisions=["old decision"])
        updated = store.update(task="new", decisions=[])
        assert updated.task == "new"
        assert updated.decisions == []

    def test_git_state_is_refreshed(self, ctx_dir, fake_probe):
        store = LiveSessionStore(ctx_dir, fake_probe)
        store.update(task="work")
        fake_probe.result.changed_files = ["new_file.py"]
        assert store.update().files_changed == ["new_file.py"]

    def test_read_missing(self, ctx_dir):
        assert LiveSessionStore(ctx_dir, FakeProbe()).read() is None


class TestRefreshPipeline:

    @pytest.fixture
    def pipeline(self, project, fake_probe):
        RuleStore(project / ".ctx").add("project", "# Project\n\nUse pnpm.", priority=1)
        return RefreshPipeline(project, probe=fake_probe)

    def test_writes_resume_prompt_per_enabled_tool(self, pipeline, project):
        result = pipeline.refresh(task="Implementing JWT auth middleware",
                                  decisions=["RS256 over HS256 for key rotation"])

        enabled = read_config(project / ".ctx").enabled_tools
        assert result.resume_count == len(enabled)
        assert result.failures == []

        resume_dir = project / ".ctx" / "resume-prompts"
        for name in enabled:
            text = (resume_dir / f"{name}.md").read_text(encoding="utf-8")
            assert text.startswith("<!-- READY-TO-PASTE resume prompt for")
            assert "Implementing JWT auth middleware" in text
            assert "RS256 over HS256 for key rotation" in text

    def test_index_lists_tools(self, pipeline, project):
        pipeline.refresh(task="Index check")
        index = (project / ".ctx" / "resume-prompts" / RESUME_INDEX).read_text(encoding="utf-8")
        assert "**Task**: Index check" in index
        assert "**Branch**: feature/auth" in index
        assert ".ctx/resume-prompts/cursor.md" in index

    def test_unknown_tool_skipped(self, pipeline, project):
        config = read_config(project / ".ctx")
        config.enabled_tools = ["claude", "not-a-tool"]
        write_config(project / ".ctx", config)

        result = pipeline.refresh()
        assert result.resume_count == 1
        assert not (project / ".ctx" / "resume-prompts" / "not-a-tool.md").exists()

    def test_failing_tool_isolated(self, pipeline, project, monkeypatch):
        import ctxbridge.live as live_module

        real_compile = live_module.compile_context

        def flaky_compile(session, rules, budget, compress=False, tool_name=""):
            if tool_name == "cursor":
                raise RuntimeError("boom")
            return real_compile(session, rules, budget, compress=compress, tool_name=tool_name)

        monkeypatch.setattr(live_module, "compile_context", flaky_compile)
        result = pipeline.refresh()

        assert [f.tool for f in result.failures] == ["cursor"]
        assert isinstance(result.failures[0].cause, RuntimeError)
        assert result.resume_count == len(read_config(project / ".ctx").enabled_tools) - 1
        assert (project / ".ctx" / "resume-prompts" / "claude.md").exists()

    def test_resume_prompts_overwritten(self, pipeline, project):
        pipeline.refresh(task="first")
        pipeline.refresh(task="second")
        text = (project / ".ctx" / "resume-prompts" / "claude.md").read_text(encoding="utf-8")
        assert "## Task\nsecond" in text
        assert "## Task\nfirst" not in text

    def test_concurrent_refreshes_leave_valid_live_session(self, pipeline):
        errors = []

        def worker():
            try:
                pipeline.refresh()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert pipeline.live.read().task == "Working on feature/auth"

    def test_pre_generate_without_live_session(self, project):
        assert RefreshPipeline(project, probe=FakeProbe()).pre_generate_resumes() == (0, [])

