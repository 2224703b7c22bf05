"""Tests for the commit workflow steps with a scripted executor."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from conftest import failed, ok

from gitnl.exceptions import StepActionError
from gitnl.steps.facts import CodeStats
from gitnl.steps.git_steps import (
    GitAddStep,
    GitCodeStatsStep,
    GitCommitStep,
    GitDiffAnalysisStep,
    GitPushStep,
    GitStatusStep,
)

DIRTY_STATUS = "On branch main\nChanges not staged for commit:\n\tmodified:   a.ts\n\tnew file:   b.ts\n"
DIFF = "diff --git a/a.ts b/a.ts\n--- a/a.ts\n+++ b/a.ts\n@@ -1 +1 @@\n-old\n+new\n"


class TestGitStatusStep:
    @pytest.mark.asyncio
    async def test_clean_tree(self, make_context) -> None:
        context, _ = make_context({"git status": ok("nothing to commit, working tree clean")})
        await GitStatusStep().run(context)
        assert context.get_from_context("has_changes") is False
        assert context.get_from_context("changed_files") == []

    @pytest.mark.asyncio
    async def test_dirty_tree(self, make_context) -> None:
        context, _ = make_context({"git status": ok(DIRTY_STATUS)})
        await GitStatusStep().run(context)
        assert context.get_from_context("has_changes") is True
        assert context.get_from_context("changed_files") == ["a.ts", "b.ts"]
        assert context.get_from_context("status_output") == DIRTY_STATUS

    @pytest.mark.asyncio
    async def test_not_a_repository(self, make_context) -> None:
        context, _ = make_context({"git status": failed("fatal: not a git repository")})
        with pytest.raises(StepActionError, match="not a git repository"):
            await GitStatusStep().run(context)


class TestGitDiffAnalysisStep:
    @pytest.mark.asyncio
    async def test_skipped_without_changes(self, make_context) -> None:
        context, _ = make_context(data={"has_changes": False})
        assert await GitDiffAnalysisStep().should_skip(context) is True
        context, _ = make_context()
        assert await GitDiffAnalysisStep().should_skip(context) is True

    @pytest.mark.asyncio
    async def test_uses_suggested_message(self, make_context) -> None:
        context, _ = make_context({"git diff --staged": ok(DIFF)}, data={"has_changes": True})
        await GitDiffAnalysisStep().run(context)
        assert context.get_from_context("diff_content") == DIFF
        assert context.get_from_context("suggested_commit_message") == "chore: update a.ts"
        assert context.get_from_context("final_commit_message") == "chore: update a.ts"

    @pytest.mark.asyncio
    async def test_edit_message(self, make_context) -> None:
        context, _ = make_context({"git diff --staged": ok(DIFF)}, assume_yes=False)
        with patch("gitnl.gates.human.Prompt.ask", side_effect=["2", "fix: new greeting"]):
            await GitDiffAnalysisStep().run(context)
        assert context.get_from_context("final_commit_message") == "fix: new greeting"

    @pytest.mark.asyncio
    async def test_cancel(self, make_context) -> None:
        context, _ = make_context({"git diff --staged": ok(DIFF)}, assume_yes=False)
        with patch("gitnl.gates.human.Prompt.ask", return_value="4"):
            await GitDiffAnalysisStep().run(context)
        assert context.get_from_context("cancel_operation") is True
        assert not context.has("final_commit_message")

    @pytest.mark.asyncio
    async def test_no_diff(self, make_context) -> None:
        context, _ = make_context()
        await GitDiffAnalysisStep().run(context)
        assert not context.has("diff_content")
        assert not context.has("final_commit_message")

    @pytest.mark.asyncio
    async def test_without_generator_asks_for_text(self, make_context) -> None:
        context, _ = make_context({"git diff --staged": ok(DIFF)}, assume_yes=False)
        context.services.messages = None
        with patch("gitnl.gates.human.Prompt.ask", return_value="docs: typo"):
            await GitDiffAnalysisStep().run(context)
        assert context.get_from_context("final_commit_message") == "docs: typo"


class TestGitAddStep:
    @pytest.mark.asyncio
    async def test_stage_all(self, make_context) -> None:
        context, executor = make_context(
            data={"has_changes": True, "changed_files": ["a.ts", "b.ts"]}
        )
        await GitAddStep().run(context)
        assert executor.ran("git add -A")
        assert context.get_from_context("files_added") is True

    @pytest.mark.asyncio
    async def test_stage_selected(self, make_context) -> None:
        context, executor = make_context(
            data={"has_changes": True, "changed_files": ["a.ts", "b.ts"]}, assume_yes=False
        )
        with (
            patch("gitnl.gates.human.Prompt.ask", side_effect=["2", "2"]),
            patch("gitnl.gates.risk.Confirm.ask", return_value=True),
        ):
            await GitAddStep().run(context)
        assert executor.calls == ["git add -- b.ts"]
        assert context.get_from_context("files_added") is True

    @pytest.mark.asyncio
    async def test_cancel(self, make_context) -> None:
        context, executor = make_context(
            data={"has_changes": True, "changed_files": ["a.ts"]}, assume_yes=False
        )
        with patch("gitnl.gates.human.Prompt.ask", return_value="3"):
            await GitAddStep().run(context)
        assert executor.calls == []
        assert context.get_from_context("files_added") is False
        assert context.get_from_context("cancel_operation") is True

    @pytest.mark.asyncio
    async def test_failure_raises(self, make_context) -> None:
        context, _ = make_context(
            {"git add -A": failed("index.lock exists")},
            data={"has_changes": True, "changed_files": ["a.ts"]},
        )
        with pytest.raises(StepActionError, match="index.lock"):
            await GitAddStep().run(context)
        assert not context.has("files_added")


class TestGitCommitStep:
    @pytest.mark.asyncio
    async def test_skip_conditions(self, make_context) -> None:
        step = GitCommitStep()
        context, _ = make_context()
        assert await step.should_skip(context) is True
        context, _ = make_context(data={"files_added": False})
        assert await step.should_skip(context) is True
        context, _ = make_context(data={"files_added": True, "cancel_operation": True})
        assert await step.should_skip(context) is True
        context, _ = make_context(data={"files_added": True})
        assert await step.should_skip(context) is False

    @pytest.mark.asyncio
    async def test_commit(self, make_context) -> None:
        context, executor = make_context(
            {"git rev-parse HEAD": ok("abc123\n")},
            data={"files_added": True, "final_commit_message": "fix: x"},
        )
        await GitCommitStep().run(context)
        assert executor.calls == ["git rev-parse HEAD", "git commit -m 'fix: x'"]
        assert context.get_from_context("should_push") is False

    @pytest.mark.asyncio
    async def test_commit_then_push_choice(self, make_context) -> None:
        context, _ = make_context(
            data={"files_added": True, "final_commit_message": "fix: x"}, assume_yes=False
        )
        with (
            patch("gitnl.gates.human.Prompt.ask", return_value="2"),
            patch("gitnl.gates.risk.Confirm.ask", return_value=True),
        ):
            await GitCommitStep().run(context)
        assert context.get_from_context("should_push") is True

    @pytest.mark.asyncio
    async def test_end_choice_cancels(self, make_context) -> None:
        context, _ = make_context(
            data={"files_added": True, "final_commit_message": "fix: x"}, assume_yes=False
        )
        with (
            patch("gitnl.gates.human.Prompt.ask", return_value="3"),
            patch("gitnl.gates.risk.Confirm.ask", return_value=True),
        ):
            await GitCommitStep().run(context)
        assert context.get_from_context("cancel_operation") is True

    @pytest.mark.asyncio
    async def test_missing_message(self, make_context) -> None:
        context, executor = make_context(data={"files_added": True})
        with pytest.raises(StepActionError, match="No commit message"):
            await GitCommitStep().run(context)
        assert executor.calls == []


class TestGitPushStep:
    @pytest.mark.asyncio
    async def test_skipped_unless_requested(self, make_context) -> None:
        context, _ = make_context(data={"should_push": False})
        assert await GitPushStep().should_skip(context) is True
        context, _ = make_context(data={"should_push": True, "cancel_operation": True})
        assert await GitPushStep().should_skip(context) is True

    @pytest.mark.asyncio
    async def test_push_single_remote(self, make_context) -> None:
        context, executor = make_context(
            {"git branch --show-current": ok("main\n"), "git remote": ok("origin\n")},
            data={"should_push": True},
        )
        await GitPushStep().run(context)
        assert executor.ran("git push origin main")

    @pytest.mark.asyncio
    async def test_default_remote_preferred(self, make_context) -> None:
        context, executor = make_context(
            {"git branch --show-current": ok("main\n"), "git remote": ok("upstream\norigin\n")},
            data={"should_push": True},
        )
        await GitPushStep().run(context)
        assert executor.ran("git push origin main")

    @pytest.mark.asyncio
    async def test_no_remote(self, make_context) -> None:
        context, executor = make_context(
            {"git branch --show-current": ok("main\n"), "git remote": ok("")},
        )
        await GitPushStep().run(context)
        assert not any(call.startswith("git push") for call in executor.calls)

    @pytest.mark.asyncio
    async def test_push_rejected_by_remote(self, make_context) -> None:
        context, _ = make_context(
            {
                "git branch --show-current": ok("main\n"),
                "git remote": ok("origin\n"),
                "git push origin main": failed("! [rejected] main -> main (fetch first)"),
            }
        )
        with pytest.raises(StepActionError, match="rejected"):
            await GitPushStep().run(context)


class TestGitCodeStatsStep:
    @pytest.mark.asyncio
    async def test_counts_lines(self, make_context) -> None:
        context, _ = make_context(
            {
                "git diff --cached --numstat": ok("3\t1\ta.py\n"),
                "git diff --numstat": ok("2\t0\tb.md\n-\t-\tlogo.png\n"),
            },
            data={"has_changes": True},
        )
        await GitCodeStatsStep().run(context)

        stats = context.get_from_context("code_stats")
        assert isinstance(stats, CodeStats)
        assert (stats.totals.added, stats.totals.deleted) == (5, 1)
        assert set(stats.by_extension) == {"py", "md", "png"}
        assert [s.file for s in stats.staged] == ["a.py"]

    @pytest.mark.asyncio
    async def test_skipped_without_changes(self, make_context) -> None:
        context, _ = make_context(data={"has_changes": False})
        assert await GitCodeStatsStep().should_skip(context) is True
