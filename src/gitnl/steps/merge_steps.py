# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Merge workflow steps: pick branches, switch, preview, merge and push."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape

from gitnl.exceptions import StepActionError
from gitnl.steps.base import Step
from gitnl.steps.git_steps import choose_remote, git_runner, prompter
from gitnl.steps.parsing import describe_name_status, parse_branches

if TYPE_CHECKING:
    from gitnl.engine.context import ExecutionContext

CONFLICT_MARKERS = ("CONFLICT", "冲突", "Automatic merge failed")
STASH_MESSAGE = "gitnl: changes saved before switching branches for a merge"


def _is_true(context: ExecutionContext, key: str) -> bool:
    return context.get_from_context(key) is True


def _nothing_to_merge(context: ExecutionContext) -> bool:
    return (
        _is_true(context, "cancel_branch_switch")
        or context.get_from_context("has_branches") is False
    )


def _remind_stash(context: ExecutionContext) -> None:
    if _is_true(context, "has_stash"):
        context.services.console.print(
            "[yellow]Your changes are still stashed; run 'git stash pop' to restore them[/yellow]"
        )

class GitListBranchesStep(Step):
    """Lists local branches and picks the merge source and target."""

    id = "git-list-branches"
    name = "List branches"
    description = "Choose the branch to merge and the branch to merge into"
    writes = frozenset(
        {
            "current_branch",
            "branches",
            "has_branches",
            "source_branch",
            "target_branch",
            "need_branch_switch",
        }
    )

    async def run(self, context: ExecutionContext) -> None:
        console = context.services.console
        runner = git_runner(context)
        prompts = prompter(context)

        current = await runner.current_branch()
        context.add_to_context("current_branch", current)
        console.print(f"[dim]Current branch: {escape(current)}[/dim]")

        result = await runner.run(["git", "branch"])
        if not result.success:
            raise StepActionError(f"Cannot list branches: {result.error}")

        branches = parse_branches(result.output, exclude=current)
        if not branches:
            console.print("[yellow]No other branches to merge[/yellow]")
            context.add_to_context("has_branches", False)
            return

        context.add_to_context("branches", branches)
        context.add_to_context("has_branches", True)
        console.print("[blue]Branches:[/blue]")
        for branch in branches:
            console.print(f"- {branch}", markup=False)

        source = prompts.choose("Branch to merge from", {b: b for b in branches})
        context.add_to_context("source_branch", source)
        console.print(f"[green]Source branch:[/green] {escape(source)}")

        # current branch first so it is the default target
        targets = [b for b in [current, *branches] if b and b != source]
        target = prompts.choose("Branch to merge into", {b: b for b in targets})
        context.add_to_context("target_branch", target)
        console.print(f"[green]Target branch:[/green] {escape(target)}")

        context.add_to_context("need_branch_switch", target != current)


class GitSwitchBranchStep(Step):
    """Checks out the merge target, dealing with uncommitted changes first."""

    id = "git-switch-branch"
    name = "Switch branch"
    description = "Check out the target branch"
    reads = frozenset({"need_branch_switch", "target_branch"})
    writes = frozenset({"has_stash", "cancel_branch_switch"})

    async def should_skip(self, context: ExecutionContext) -> bool:
        return not context.get_from_context("need_branch_switch", False)

    async def run(self, context: ExecutionContext) -> None:
        console = context.services.console
        runner = git_runner(context)
        prompts = prompter(context)

        target = context.get_from_context("target_branch")
        if not target:
            raise StepActionError("No target branch selected")
        console.print(f"[dim]Switching to {escape(target)}...[/dim]")

        status = await runner.run(["git", "status", "--porcelain"])
        if status.output.strip():
            console.print("[yellow]Warning: the current branch has uncommitted changes[/yellow]")
            action = prompts.choose(
                "What should happen to the uncommitted changes?",
                {
                    "commit": "Stage and commit them",
                    "stash": "Stash them",
                    "discard": "Discard them (careful!)",
                    "cancel": "Cancel the branch switch",
                },
            )

            if action == "commit":
                message = prompts.ask_text("Commit message")
                await runner.run_guarded(["git", "add", "-A"], check=True)
                await runner.run_guarded(["git", "commit", "-m", message], check=True)
                console.print("[green]Committed all changes[/green]")
            elif action == "stash":
                await runner.run_guarded(["git", "stash", "push", "-m", STASH_MESSAGE], check=True)
                console.print("[green]Changes stashed[/green]")
                context.add_to_context("has_stash", True)
            elif action == "discard":
                if not prompts.confirm(
                    "Discard all uncommitted changes? This cannot be undone!", default=False
                ):
                    console.print("[yellow]Discard cancelled[/yellow]")
                    context.add_to_context("cancel_branch_switch", True)
                    return
                await runner.run_guarded(["git", "reset", "--hard", "HEAD"], check=True)
                console.print("[yellow]Uncommitted changes discarded[/yellow]")
            else:
                console.print("[yellow]Branch switch cancelled[/yellow]")
                context.add_to_context("cancel_branch_switch", True)
                return

        result = await runner.run_guarded(["git", "checkout", target])
        if not result.success:
            _remind_stash(context)
            raise StepActionError(f"Switching branch failed: {result.error}")
        console.print(f"[green]Switched to {escape(target)}[/green]")


class GitMergePreviewStep(Step):
    """Shows the commits and files the merge would bring in."""

    id = "git-merge-preview"
    name = "Preview merge"
    description = "Show the commits and files the merge brings in"
    reads = frozenset(
        {"cancel_branch_switch", "has_branches", "has_stash", "source_branch", "target_branch"}
    )
    writes = frozenset({"has_changes_to_merge"})

    async def should_skip(self, context: ExecutionContext) -> bool:
        return _nothing_to_merge(context)

    async def run(self, context: ExecutionContext) -> None:
        console = context.services.console
        runner = git_runner(context)

        source = context.get_from_context("source_branch")
        target = context.get_from_context("target_branch")
        if not source or not target:
            raise StepActionError("Source and target branches must be selected first")

        console.print(f"[dim]Reading commits on {escape(source)}...[/dim]")
        log = await runner.run(
            ["git", "log", "--oneline", "--graph", "--decorate", f"{target}..{source}"]
        )
        if not log.success:
            raise StepActionError(f"Cannot compare branches: {log.error}")

        if not log.output.strip():
            console.print(
                f"[yellow]{escape(source)} has no new commits for {escape(target)}[/yellow]"
            )
            context.add_to_context("has_changes_to_merge", False)
            _remind_stash(context)
            return

        console.print(f"[blue]New commits on {escape(source)}:[/blue]")
        console.print(log.output, markup=False, highlight=False)

        files = await runner.run(["git", "diff", "--name-status", f"{target}..{source}"])
        if files.success and files.output.strip():
            console.print("[blue]Changed files:[/blue]")
            for line in describe_name_status(files.output):
                console.print(f"  {line}", markup=False)

        context.add_to_context("has_changes_to_merge", True)


class GitMergeExecuteStep(Step):
    """Merges the source branch into the checked-out target."""

    id = "git-merge-execute"
    name = "Merge"
    description = "Merge the source branch into the target branch"
    reads = frozenset(
        {"cancel_branch_switch", "has_changes_to_merge", "source_branch", "has_stash"}
    )
    writes = frozenset({"cancel_merge", "manual_conflict_resolution"})

    async def should_skip(self, context: ExecutionContext) -> bool:
        return (
            _nothing_to_merge(context)
            or context.get_from_context("has_changes_to_merge") is False
        )

    async def run(self, context: ExecutionContext) -> None:
        console = context.services.console
        runner = git_runner(context)
        prompts = prompter(context)

        source = context.get_from_context("source_branch")
        if not context.get_from_context("has_changes_to_merge"):
            console.print("[yellow]Nothing to merge[/yellow]")
            _remind_stash(context)
            return

        option = prompts.choose(
            "Merge strategy",
            {
                "no-ff": "Create a merge commit (--no-ff)",
                "ff": "Fast-forward if possible (--ff)",
                "squash": "Squash into one commit (--squash)",
                "cancel": "Cancel the merge",
            },
        )
        if option == "cancel":
            console.print("[yellow]Merge cancelled[/yellow]")
            context.add_to_context("cancel_merge", True)
            _remind_stash(context)
            return

        command = ["git", "merge", source]
        if option == "no-ff":
            command.append("--no-ff")
            message = prompts.ask_text(
                "Merge commit message", default=f"Merge branch '{source}'", required=False
            )
            if message:
                command += ["-m", message]
        elif option == "squash":
            command.append("--squash")

        console.print("[dim]Merging...[/dim]")
        result = await runner.run_guarded(command)

        if not result.success:
            if any(marker in result.error for marker in CONFLICT_MARKERS):
                await self._handle_conflict(context, result.error)
                return
            raise StepActionError(f"Merge failed: {result.error}")

        if option == "squash":
            console.print("[blue]Changes merged into the working tree; committing the squash[/blue]")
            message = prompts.ask_text(
                "Squash commit message", default=f"Squashed commit of branch '{source}'"
            )
            await runner.run_guarded(["git", "add", "-A"], check=True)
            await runner.run_guarded(["git", "commit", "-m", message], check=True)
            console.print("[green]Squash merge committed[/green]")
        else:
            console.print("[green]Merged![/green]")
            if result.output:
                console.print(result.output, markup=False, highlight=False)

        if _is_true(context, "has_stash") and prompts.confirm(
            "Restore the stashed changes?", default=True
        ):
            popped = await runner.run_guarded(["git", "stash", "pop"])
            if popped.success:
                console.print("[green]Stashed changes restored[/green]")
            else:
                console.print(
                    "[yellow]Could not restore stashed changes: "
                    f"{escape(popped.error or '')}[/yellow]"
                )
                console.print("[yellow]Run 'git stash pop' later to restore them[/yellow]")

    async def _handle_conflict(self, context: ExecutionContext, error: str) -> None:
        console = context.services.console
        runner = git_runner(context)

        console.print("[red]Merge conflict![/red]")
        console.print(error, markup=False, highlight=False)
        action = prompter(context).choose(
            "How do you want to handle the conflict?",
            {
                "manual": "Resolve it manually (the remaining merge steps are skipped)",
                "abort": "Abort the merge",
            },
        )
        if action == "abort":
            await runner.run_guarded(["git", "merge", "--abort"], check=True)
            console.print("[yellow]Merge aborted[/yellow]")
            context.add_to_context("cancel_merge", True)
            _remind_stash(context)
            return

        conflicted = await runner.run(["git", "diff", "--name-only", "--diff-filter=U"])
        if conflicted.success and conflicted.output.strip():
            console.print("[blue]Conflicted files:[/blue]")
            console.print(conflicted.output, markup=False, highlight=False)
        console.print(
            "[yellow]Resolve the conflicts, 'git add' the files, then 'git commit' "
            "to finish the merge[/yellow]"
        )
        context.add_to_context("manual_conflict_resolution", True)
        _remind_stash(context)


class GitPushMergeStep(Step):
    """Offers to push the merged target branch."""

    id = "git-push-merge"
    name = "Push merge"
    description = "Push the merge result to the remote repository"
    reads = frozenset(
        {"cancel_branch_switch", "cancel_merge", "manual_conflict_resolution", "target_branch"}
    )

    async def should_skip(self, context: ExecutionContext) -> bool:
        return (
            _nothing_to_merge(context)
            or _is_true(context, "cancel_merge")
            or _is_true(context, "manual_conflict_resolution")
        )

    async def run(self, context: ExecutionContext) -> None:
        console = context.services.console
        runner = git_runner(context)

        target = context.get_from_context("target_branch")
        if not target:
            raise StepActionError("No target branch selected")

        question = f"Push the merge result to the remote {target}?"
        if not prompter(context).confirm(question, default=False):
            console.print("[dim]Push skipped[/dim]")
            return

        remote = await choose_remote(context, "Remote to push to")
        if remote is None:
            console.print("[yellow]No remote configured, nothing to push to[/yellow]")
            return

        console.print(f"[dim]Pushing to {escape(remote)}/{escape(target)}...[/dim]")
        result = await runner.run_guarded(["git", "push", remote, target])
        if not result.success:
            raise StepActionError(f"Push failed: {result.error}")
        console.print("[green]Pushed![/green]")
        if result.output:
            console.print(result.output, markup=False, highlight=False)
