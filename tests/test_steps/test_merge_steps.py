"""Tests for the merge workflow steps with a scripted executor."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from conftest import failed, ok

from gitnl.exceptions import HumanGateError, StepActionError
from gitnl.git.executor import command_text
from gitnl.steps.merge_steps import (
    STASH_MESSAGE,
    GitListBranchesStep,
    GitMergeExecuteStep,
    GitMergePreviewStep,
    GitPushMergeStep,
    GitSwitchBranchStep,
)

BRANCHES = "* main\n  feature\n  develop\n"
NO_FF_MERGE = command_text(["git", "merge", "feature", "--no-ff", "-m", "Merge branch 'feature'"])


def printed(context) -> str:
    """Everything the step printed, joined."""
    calls = context.services.console.print.call_args_list
    return "\n".join(str(call.args[0]) for call in calls if call.args)


class TestGitListBranchesStep:
    @pytest.mark.asyncio
    async def test_defaults_merge_first_branch_into_current(self, make_context) -> None:
        context, _ = make_context(
            {"git branch --show-current": ok("main\n"), "git branch": ok(BRANCHES)}
        )
        await GitListBranchesStep().run(context)

        assert context.get_from_context("current_branch") == "main"
        assert context.get_from_context("branches") == ["feature", "develop"]
        assert context.get_from_context("has_branches") is True
        assert context.get_from_context("source_branch") == "feature"
        assert context.get_from_context("target_branch") == "main"
        assert context.get_from_context("need_branch_switch") is False

    @pytest.mark.asyncio
    async def test_other_target_needs_switch(self, make_context) -> None:
        context, _ = make_context(
            {"git branch --show-current": ok("main\n"), "git branch": ok(BRANCHES)},
            assume_yes=False,
        )
        with patch("gitnl.gates.human.Prompt.ask", side_effect=["1", "2"]):
            await GitListBranchesStep().run(context)

        assert context.get_from_context("source_branch") == "feature"
        assert context.get_from_context("target_branch") == "develop"
        assert context.get_from_context("need_branch_switch") is True

    @pytest.mark.asyncio
    async def test_single_branch(self, make_context) -> None:
        context, _ = make_context(
            {"git branch --show-current": ok("main\n"), "git branch": ok("* main\n")}
        )
        await GitListBranchesStep().run(context)
        assert context.get_from_context("has_branches") is False
        assert not context.has("source_branch")

    @pytest.mark.asyncio
    async def test_branch_listing_fails(self, make_context) -> None:
        context, _ = make_context(
            {"git branch --show-current": ok("main\n"), "git branch": failed("fatal: bad repo")}
        )
        with pytest.raises(StepActionError, match="Cannot list branches"):
            await GitListBranchesStep().run(context)


class TestGitSwitchBranchStep:
    @pytest.mark.asyncio
    async def test_skipped_when_already_on_target(self, make_context) -> None:
        context, _ = make_context(data={"need_branch_switch": False})
        assert await GitSwitchBranchStep().should_skip(context) is True

    @pytest.mark.asyncio
    async def test_clean_tree_checks_out(self, make_context) -> None:
        context, executor = make_context(
            data={"need_branch_switch": True, "target_branch": "develop"}
        )
        await GitSwitchBranchStep().run(context)
        assert executor.ran("git checkout develop")

    @pytest.mark.asyncio
    async def test_dirty_tree_stash(self, make_context) -> None:
        context, executor = make_context(
            {"git status --porcelain": ok(" M app.py\n")},
            data={"need_branch_switch": True, "target_branch": "develop"},
            assume_yes=False,
        )
        with (
            patch("gitnl.gates.human.Prompt.ask", return_value="2"),
            patch("gitnl.gates.human.Confirm.ask", return_value=True),
        ):
            await GitSwitchBranchStep().run(context)

        assert executor.ran(command_text(["git", "stash", "push", "-m", STASH_MESSAGE]))
        assert executor.ran("git checkout develop")
        assert context.get_from_context("has_stash") is True

    @pytest.mark.asyncio
    async def test_dirty_tree_commit_needs_message(self, make_context) -> None:
        context, executor = make_context(
            {"git status --porcelain": ok(" M app.py\n")},
            data={"need_branch_switch": True, "target_branch": "develop"},
        )
        with pytest.raises(HumanGateError):
            await GitSwitchBranchStep().run(context)
        assert not executor.ran("git checkout develop")

    @pytest.mark.asyncio
    async def test_discard_declined(self, make_context) -> None:
        context, executor = make_context(
            {"git status --porcelain": ok(" M app.py\n")},
            data={"need_branch_switch": True, "target_branch": "develop"},
            assume_yes=False,
        )
        with (
            patch("gitnl.gates.human.Prompt.ask", return_value="3"),
            patch("gitnl.gates.human.Confirm.ask", return_value=False),
        ):
            await GitSwitchBranchStep().run(context)

        assert context.get_from_context("cancel_branch_switch") is True
        assert not executor.ran("git reset --hard HEAD")
        assert not executor.ran("git checkout develop")

    @pytest.mark.asyncio
    async def test_discard_confirmed_with_code(self, make_context) -> None:
        context, executor = make_context(
            {"git status --porcelain": ok(" M app.py\n")},
            data={"need_branch_switch": True, "target_branch": "develop"},
            assume_yes=False,
        )
        context.services.git.gate.code_factory = lambda: "123456"
        with (
            patch("gitnl.gates.human.Prompt.ask", side_effect=["3", "123456"]),
            patch("gitnl.gates.human.Confirm.ask", return_value=True),
        ):
            await GitSwitchBranchStep().run(context)

        assert executor.ran("git reset --hard HEAD")
        assert executor.ran("git checkout develop")

    @pytest.mark.asyncio
    async def test_cancel(self, make_context) -> None:
        context, executor = make_context(
            {"git status --porcelain": ok(" M app.py\n")},
            data={"need_branch_switch": True, "target_branch": "develop"},
            assume_yes=False,
        )
        with patch("gitnl.gates.human.Prompt.ask", return_value="4"):
            await GitSwitchBranchStep().run(context)
        assert context.get_from_context("cancel_branch_switch") is True
        assert not executor.ran("git checkout develop")

    @pytest.mark.asyncio
    async def test_checkout_failure(self, make_context) -> None:
        context, _ = make_context(
            {"git checkout develop": failed("error: pathspec 'develop' did not match")},
            data={"need_branch_switch": True, "target_branch": "develop"},
        )
        with pytest.raises(StepActionError, match="Switching branch failed"):
            await GitSwitchBranchStep().run(context)


class TestGitMergePreviewStep:
    DATA = {"has_branches": True, "source_branch": "feature", "target_branch": "main"}

    @pytest.mark.asyncio
    async def test_skip_conditions(self, make_context) -> None:
        context, _ = make_context(data={"has_branches": False})
        assert await GitMergePreviewStep().should_skip(context) is True
        context, _ = make_context(data={"cancel_branch_switch": True})
        assert await GitMergePreviewStep().should_skip(context) is True
        context, _ = make_context(data=self.DATA)
        assert await GitMergePreviewStep().should_skip(context) is False

    @pytest.mark.asyncio
    async def test_new_commits(self, make_context) -> None:
        context, _ = make_context(
            {
                "git log --oneline --graph --decorate main..feature": ok("* abc123 add login\n"),
                "git diff --name-status main..feature": ok("M\tapp.py\n"),
            },
            data=self.DATA,
        )
        await GitMergePreviewStep().run(context)
        assert context.get_from_context("has_changes_to_merge") is True

    @pytest.mark.asyncio
    async def test_nothing_new(self, make_context) -> None:
        context, _ = make_context(data=self.DATA)
        await GitMergePreviewStep().run(context)
        assert context.get_from_context("has_changes_to_merge") is False
        assert "git stash pop" not in printed(context)

    @pytest.mark.asyncio
    async def test_nothing_new_reminds_about_stash(self, make_context) -> None:
        context, executor = make_context(data={**self.DATA, "has_stash": True})
        await GitMergePreviewStep().run(context)
        assert "still stashed" in printed(context)
        assert not executor.ran("git stash pop")

    @pytest.mark.asyncio
    async def test_requires_branches(self, make_context) -> None:
        context, _ = make_context(data={"has_branches": True})
        with pytest.raises(StepActionError):
            await GitMergePreviewStep().run(context)


class TestGitMergeExecuteStep:
    DATA = {"has_branches": True, "source_branch": "feature", "has_changes_to_merge": True}

    @pytest.mark.asyncio
    async def test_skipped_without_changes(self, make_context) -> None:
        context, _ = make_context(data={"has_branches": True, "has_changes_to_merge": False})
        assert await GitMergeExecuteStep().should_skip(context) is True

    @pytest.mark.asyncio
    async def test_no_ff_merge(self, make_context) -> None:
        context, executor = make_context(data=self.DATA)
        await GitMergeExecuteStep().run(context)
        assert executor.ran(NO_FF_MERGE)
        assert not context.has("cancel_merge")

    @pytest.mark.asyncio
    async def test_conflict_left_for_manual_resolution(self, make_context) -> None:
        context, executor = make_context(
            {
                NO_FF_MERGE: failed("CONFLICT (content): Merge conflict in app.py"),
                "git diff --name-only --diff-filter=U": ok("app.py\n"),
            },
            data=self.DATA,
        )
        await GitMergeExecuteStep().run(context)
        assert context.get_from_context("manual_conflict_resolution") is True
        assert executor.ran("git diff --name-only --diff-filter=U")

    @pytest.mark.asyncio
    async def test_conflict_aborted(self, make_context) -> None:
        context, executor = make_context(
            {NO_FF_MERGE: failed("CONFLICT (content): Merge conflict in app.py")},
            data=self.DATA,
            assume_yes=False,
        )
        with (
            patch("gitnl.gates.human.Prompt.ask", side_effect=["1", "Merge branch 'feature'", "2"]),
            patch("gitnl.gates.human.Confirm.ask", return_value=True),
        ):
            await GitMergeExecuteStep().run(context)
        assert executor.ran("git merge --abort")
        assert context.get_from_context("cancel_merge") is True

    @pytest.mark.asyncio
    async def test_other_failure_raises(self, make_context) -> None:
        context, _ = make_context(
            {NO_FF_MERGE: failed("fatal: refusing to merge unrelated histories")},
            data=self.DATA,
        )
        with pytest.raises(StepActionError, match="unrelated histories"):
            await GitMergeExecuteStep().run(context)

    @pytest.mark.asyncio
    async def test_squash(self, make_context) -> None:
        context, executor = make_context(data=self.DATA, assume_yes=False)
        with (
            patch("gitnl.gates.human.Prompt.ask", side_effect=["3", "feat: login"]),
            patch("gitnl.gates.human.Confirm.ask", return_value=True),
        ):
            await GitMergeExecuteStep().run(context)

        assert executor.ran("git merge feature --squash")
        assert executor.ran("git add -A")
        assert executor.ran("git commit -m 'feat: login'")

    @pytest.mark.asyncio
    async def test_cancel(self, make_context) -> None:
        context, executor = make_context(data=self.DATA, assume_yes=False)
        with patch("gitnl.gates.human.Prompt.ask", return_value="4"):
            await GitMergeExecuteStep().run(context)
        assert context.get_from_context("cancel_merge") is True
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_restores_stash(self, make_context) -> None:
        context, executor = make_context(data={**self.DATA, "has_stash": True})
        await GitMergeExecuteStep().run(context)
        assert executor.ran("git stash pop")
        assert "still stashed" not in printed(context)

    @pytest.mark.asyncio
    async def test_cancel_reminds_about_stash(self, make_context) -> None:
        context, executor = make_context(data={**self.DATA, "has_stash": True}, assume_yes=False)
        with patch("gitnl.gates.human.Prompt.ask", return_value="4"):
            await GitMergeExecuteStep().run(context)
        assert "git stash pop" in printed(context)
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_conflict_reminds_about_stash(self, make_context) -> None:
        context, executor = make_context(
            {NO_FF_MERGE: failed("CONFLICT (content): Merge conflict in app.py")},
            data={**self.DATA, "has_stash": True},
        )
        await GitMergeExecuteStep().run(context)
        assert context.get_from_context("manual_conflict_resolution") is True
        assert "still stashed" in printed(context)
        assert not executor.ran("git stash pop")


class TestGitPushMergeStep:
    DATA = {"has_branches": True, "target_branch": "main"}

    @pytest.mark.asyncio
    async def test_skip_conditions(self, make_context) -> None:
        step = GitPushMergeStep()
        context, _ = make_context(data={**self.DATA, "cancel_merge": True})
        assert await step.should_skip(context) is True
        context, _ = make_context(data={**self.DATA, "manual_conflict_resolution": True})
        assert await step.should_skip(context) is True
        context, _ = make_context(data=self.DATA)
        assert await step.should_skip(context) is False

    @pytest.mark.asyncio
    async def test_declined_by_default(self, make_context) -> None:
        context, executor = make_context(data=self.DATA)
        await GitPushMergeStep().run(context)
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_push(self, make_context) -> None:
        context, executor = make_context(
            {"git remote": ok("origin\n")}, data=self.DATA, assume_yes=False
        )
        with patch("gitnl.gates.human.Confirm.ask", return_value=True):
            await GitPushMergeStep().run(context)
        assert executor.ran("git push origin main")
