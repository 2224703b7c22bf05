# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Commit workflow steps: status, diff analysis, add, commit, push and line stats."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.table import Table

from gitnl.exceptions import StepActionError
from gitnl.steps.base import Step
from gitnl.steps.parsing import (
    build_code_stats,
    extract_changed_files,
    is_clean_tree,
    parse_numstat,
    parse_remotes,
    top_files,
)

if TYPE_CHECKING:
    from gitnl.engine.context import ExecutionContext
    from gitnl.gates.human import Prompter
    from gitnl.git.executor import GitRunner

DIFF_PREVIEW_LINES = 10


def git_runner(context: ExecutionContext) -> GitRunner:
    """Return the run's git runner or fail the step."""
    runner = context.services.git
    if runner is None:
        raise StepActionError("No git runner configured for this run")
    return runner


def prompter(context: ExecutionContext) -> Prompter:
    """Return the run's prompter or fail the step."""
    prompts = context.services.prompter
    if prompts is None:
        raise StepActionError("No prompter configured for this run")
    return prompts


async def choose_remote(context: ExecutionContext, question: str) -> str | None:
    """Return the remote to push to, asking when there is more than one.

    Returns None when the repository has no remotes.
    """
    result = await git_runner(context).run(["git", "remote"], check=True)
    remotes = parse_remotes(result.output)
    if not remotes:
        return None
    if len(remotes) == 1:
        return remotes[0]
    preferred = context.services.default_remote
    if preferred in remotes:
        remotes.remove(preferred)
        remotes.insert(0, preferred)
    return prompter(context).choose(question, {remote: remote for remote in remotes})


class GitStatusStep(Step):
    """Runs ``git status`` and records whether there is anything to commit."""

    id = "git-status"
    name = "Check git status"
    description = "Show the repository status and the changed files"
    writes = frozenset({"status_output", "has_changes", "changed_files"})

    async def run(self, context: ExecutionContext) -> None:
        console = context.services.console
        result = await git_runner(context).run(["git", "status"])
        if not result.success:
            raise StepActionError(f"Cannot read repository status: {result.error}")

        context.add_to_context("status_output", result.output)
        console.print("[dim]Repository status:[/dim]")
        console.print(result.output, markup=False, highlight=False)

        if is_clean_tree(result.output):
            console.print("[yellow]No changes to commit[/yellow]")
            context.add_to_context("has_changes", False)
            context.add_to_context("changed_files", [])
            return

        changed_files = extract_changed_files(result.output)
        context.add_to_context("changed_files", changed_files)
        context.add_to_context("has_changes", True)
        if changed_files:
            console.print("[blue]Changed files:[/blue]")
            for path in changed_files:
                console.print(f"- {path}", markup=False)


def _has_no_changes(context: ExecutionContext) -> bool:
    return not context.get_from_context("has_changes", False)


class GitDiffAnalysisStep(Step):
    """Shows the diff and settles the commit message."""

    id = "git-diff-analysis"
    name = "Analyze changes"
    description = "Inspect the diff and suggest a commit message"
    reads = frozenset({"has_changes"})
    writes = frozenset(
        {"diff_content", "suggested_commit_message", "final_commit_message", "cancel_operation"}
    )

    async def should_skip(self, context: ExecutionContext) -> bool:
        return _has_no_changes(context)

    async def run(self, context: ExecutionContext) -> None:
        console = context.services.console
        prompts = prompter(context)

        console.print("[dim]Reading changes...[/dim]")
        diff = await git_runner(context).diff()
        if not diff:
            console.print("[yellow]No diff content found[/yellow]")
            return

        context.add_to_context("diff_content", diff)
        lines = diff.splitlines()
        console.print("[dim]Preview:[/dim]")
        console.print("\n".join(lines[:DIFF_PREVIEW_LINES]), style="dim", markup=False)
        if len(lines) > DIFF_PREVIEW_LINES:
            console.print("[dim]... (more changes not shown)[/dim]")

        generator = context.services.messages
        if generator is None:
            message = prompts.ask_text("Commit message")
            context.add_to_context("final_commit_message", message)
            return

        console.print("[dim]Generating a commit message...[/dim]")
        suggested = await generator.generate(diff)
        context.add_to_context("suggested_commit_message", suggested)
        console.print("[green]Suggested commit message:[/green]")
        console.print(f'[bold]"{escape(suggested)}"[/bold]')

        action = prompts.choose(
            "What do you want to do with the commit message?",
            {
                "use": "Use the suggested message",
                "edit": "Edit the suggested message",
                "new": "Write a new message",
                "cancel": "Cancel",
            },
        )
        if action == "cancel":
            console.print("[yellow]Commit message cancelled[/yellow]")
            context.add_to_context("cancel_operation", True)
            return

        final = suggested
        if action == "edit":
            final = prompts.ask_text("Edit commit message", default=suggested)
        elif action == "new":
            final = prompts.ask_text("New commit message")
        context.add_to_context("final_commit_message", final)


class GitAddStep(Step):
    """Stages all changed files or a selection of them."""

    id = "git-add"
    name = "Stage changes"
    description = "Add the changed files to the index"
    reads = frozenset({"has_changes", "changed_files"})
    writes = frozenset({"files_added", "cancel_operation"})

    async def should_skip(self, context: ExecutionContext) -> bool:
        return _has_no_changes(context)

    async def run(self, context: ExecutionContext) -> None:
        console = context.services.console
        runner = git_runner(context)
        prompts = prompter(context)

        changed_files: list[str] = context.get_from_context("changed_files") or []
        if not changed_files:
            console.print("[yellow]No files to stage[/yellow]")
            return

        option = prompts.choose(
            "How do you want to stage files?",
            {
                "all": "Stage all changed files",
                "select": "Choose files to stage",
                "cancel": "Cancel",
            },
        )

        if option == "all":
            result = await runner.run_guarded(["git", "add", "-A"])
            if not result.success:
                raise StepActionError(f"Staging failed: {result.error}")
            console.print("[green]Staged all changed files[/green]")
            context.add_to_context("files_added", True)
            return

        if option == "select":
            selected = prompts.select_many("Files to stage", changed_files)
            if not selected:
                console.print("[yellow]No files selected[/yellow]")
                context.add_to_context("files_added", False)
                return
            for path in selected:
                result = await runner.run_guarded(["git", "add", "--", path])
                if not result.success:
                    console.print(
                        f"[yellow]Could not stage {escape(path)}: "
                        f"{escape(result.error or '')}[/yellow]"
                    )
            console.print(f"[green]Staged {len(selected)} file(s)[/green]")
            context.add_to_context("files_added", True)
            return

        console.print("[yellow]Staging cancelled[/yellow]")
        context.add_to_context("files_added", False)
        context.add_to_context("cancel_operation", True)


class GitCommitStep(Step):
    """Commits the index with the settled message and asks about pushing."""

    id = "git-commit"
    name = "Commit changes"
    description = "Commit the staged changes"
    reads = frozenset({"files_added", "cancel_operation", "final_commit_message"})
    writes = frozenset({"should_push", "cancel_operation"})

    async def should_skip(self, context: ExecutionContext) -> bool:
        return (
            not context.get_from_context("files_added", False)
            or context.get_from_context("cancel_operation") is True
        )

    async def run(self, context: ExecutionContext) -> None:
        console = context.services.console

        message = context.get_from_context("final_commit_message")
        if not message:
            raise StepActionError(
                "No commit message available",
                suggestion="Include the diff analysis step so a message is chosen",
            )

        console.print(f'[dim]Committing: "{escape(message)}"...[/dim]')
        result = await git_runner(context).run_guarded(["git", "commit", "-m", message])
        if not result.success:
            raise StepActionError(f"Commit failed: {result.error}")
        console.print("[green]Committed![/green]")
        if result.output:
            console.print(result.output, markup=False, highlight=False)

        action = prompter(context).choose(
            "What next?",
            {
                "continue": "Do not push, continue with the next step",
                "push": "Push to the remote",
                "end": "End the workflow",
            },
        )
        context.add_to_context("should_push", action == "push")
        if action == "end":
            context.add_to_context("cancel_operation", True)


class GitPushStep(Step):
    """Pushes the current branch."""

    id = "git-push"
    name = "Push to remote"
    description = "Push the new commits to the remote repository"
    reads = frozenset({"should_push", "cancel_operation"})

    async def should_skip(self, context: ExecutionContext) -> bool:
        return (
            not context.get_from_context("should_push", False)
            or context.get_from_context("cancel_operation") is True
        )

    async def run(self, context: ExecutionContext) -> None:
        console = context.services.console
        runner = git_runner(context)

        branch = await runner.current_branch()
        console.print(f"[dim]Current branch: {escape(branch)}[/dim]")

        remote = await choose_remote(context, "Remote to push to")
        if remote is None:
            console.print("[yellow]No remote configured, nothing to push to[/yellow]")
            return

        console.print(f"[dim]Pushing to {escape(remote)}/{escape(branch)}...[/dim]")
        result = await runner.run_guarded(["git", "push", remote, branch])
        if not result.success:
            raise StepActionError(f"Push failed: {result.error}")
        console.print("[green]Pushed![/green]")
        if result.output:
            console.print(result.output, markup=False, highlight=False)


class GitCodeStatsStep(Step):
    """Counts added and deleted lines in staged and unstaged changes."""

    id = "git-code-stats"
    name = "Count changed lines"
    description = "Summarize added and deleted lines by file type and file"
    reads = frozenset({"has_changes"})
    writes = frozenset({"code_stats"})

    async def should_skip(self, context: ExecutionContext) -> bool:
        return _has_no_changes(context)

    async def run(self, context: ExecutionContext) -> None:
        console = context.services.console
        runner = git_runner(context)

        console.print("[dim]Counting changed lines...[/dim]")
        staged = await runner.run(["git", "diff", "--cached", "--numstat"])
        unstaged = await runner.run(["git", "diff", "--numstat"])
        stats = build_code_stats(
            parse_numstat(staged.output) if staged.success else [],
            parse_numstat(unstaged.output) if unstaged.success else [],
        )
        context.add_to_context("code_stats", stats)

        totals = stats.totals
        console.print()
        console.print("[bold blue]Changed lines[/bold blue]")
        console.print(f"  [green]+[/green] {totals.added} added")
        console.print(f"  [red]-[/red] {totals.deleted} deleted")
        console.print(f"  [yellow]=[/yellow] {totals.net} net")

        by_type = Table(title="By file type", show_header=True, header_style="bold")
        by_type.add_column("Type", style="yellow")
        by_type.add_column("Added", justify="right", style="green")
        by_type.add_column("Deleted", justify="right", style="red")
        for ext, counts in sorted(
            stats.by_extension.items(),
            key=lambda item: item[1].added + item[1].deleted,
            reverse=True,
        ):
            by_type.add_row(ext or "(none)", str(counts.added), str(counts.deleted))
        console.print(by_type)

        console.print(_file_table("Most changed files (top 5)", top_files(stats.all_stats)))

        detail = prompter(context).choose(
            "Show more detail?",
            {
                "continue": "Continue with the next step",
                "show": "Show every file",
                "end": "Done",
            },
        )
        if detail == "show" and stats.all_stats:
            console.print(_file_table("All changed files", stats.all_stats))


def _file_table(title: str, stats: list) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("File")
    table.add_column("Added", justify="right", style="green")
    table.add_column("Deleted", justify="right", style="red")
    for stat in stats:
        table.add_row(stat.file, str(stat.added), str(stat.deleted))
    return table
