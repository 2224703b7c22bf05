# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Plan resolution: free-text request to ordered step ids.

Two strategies share one interface. ``plan_from_rules`` is a keyword
matcher that works offline; ``ModelPlanner`` asks the model with a
Jinja2-rendered system prompt listing the registered steps. The
``PlanResolver`` pairs them through ``FallbackStrategy``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from jinja2 import BaseLoader, Environment, StrictUndefined

from gitnl.config.schema import AppConfig
from gitnl.engine.plan import PlanProposal
from gitnl.providers.claude import ClaudeClient
from gitnl.providers.fallback import FallbackStrategy

logger = logging.getLogger(__name__)

STATUS_PLAN = ["git-status"]
STATS_PLAN = ["git-status", "git-code-stats"]
COMMIT_PLAN = ["git-status", "git-diff-analysis", "git-add", "git-commit"]
COMMIT_PUSH_PLAN = [*COMMIT_PLAN, "git-push"]
MERGE_PLAN = [
    "git-list-branches",
    "git-switch-branch",
    "git-merge-preview",
    "git-merge-execute",
    "git-push-merge",
]

STATS_KEYWORDS = ("统计", "代码行", "变更统计", "stats", "statistic", "line count", "lines changed")
COMMIT_KEYWORDS = ("提交", "commit")
PUSH_KEYWORDS = ("推送", "push")
MERGE_KEYWORDS = ("合并", "merge")
STATUS_KEYWORDS = ("状态", "status", "查看", "检查", "check")


def _mentions(text: str, keywords: Sequence[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def plan_from_rules(raw_input: str) -> PlanProposal:
    """Choose a plan from keywords in English or Chinese.

    Example:
        >>> plan_from_rules("commit and push my changes").steps
        ['git-status', 'git-diff-analysis', 'git-add', 'git-commit', 'git-push']
        >>> plan_from_rules("").steps
        []
    """
    text = raw_input.strip().lower()
    if not text:
        return PlanProposal(steps=[], summary="Nothing to do", reasoning="Empty request")

    if _mentions(text, STATS_KEYWORDS):
        return PlanProposal(
            steps=list(STATS_PLAN),
            summary="Check repository status and count changed lines",
            reasoning="The request mentions change statistics.",
        )
    if _mentions(text, COMMIT_KEYWORDS) and _mentions(text, PUSH_KEYWORDS):
        return PlanProposal(
            steps=list(COMMIT_PUSH_PLAN),
            summary="Check status, stage changes, commit and push to the remote",
            reasoning="The request mentions both committing and pushing.",
        )
    if _mentions(text, COMMIT_KEYWORDS):
        return PlanProposal(
            steps=list(COMMIT_PLAN),
            summary="Check status, stage changes and commit",
            reasoning="The request mentions committing.",
        )
    if _mentions(text, MERGE_KEYWORDS):
        return PlanProposal(
            steps=list(MERGE_PLAN),
            summary="Pick branches, preview and perform the merge, then push",
            reasoning="The request mentions merging branches.",
        )
    if _mentions(text, STATUS_KEYWORDS):
        return PlanProposal(
            steps=list(STATUS_PLAN),
            summary="Check repository status",
            reasoning="The request asks for the repository status.",
        )
    return PlanProposal(
        steps=list(STATUS_PLAN),
        summary="Check repository status",
        reasoning="The intent is unclear, so only the status is checked.",
    )


PLANNER_SYSTEM_TEMPLATE = """\
You turn a user's request about their git repository into a workflow plan.

Available workflow steps:
{% for step_id, description in catalog %}
- {{ step_id }}: {{ description }}
{% endfor %}

Choose the steps that fulfil the request and order them logically. Only use
the ids listed above.

Examples:
1. "commit my current changes": git-status -> git-diff-analysis -> git-add -> git-commit
2. "check the status": git-status
3. "commit and push": git-status -> git-diff-analysis -> git-add -> git-commit -> git-push
4. "count the changed lines": git-status -> git-code-stats
5. "show stats and commit": git-status -> git-code-stats -> git-diff-analysis -> git-add -> git-commit
6. "merge feature into main": git-list-branches -> git-switch-branch -> git-merge-preview -> git-merge-execute -> git-push-merge

When the user asks for line counts or change statistics, always include git-code-stats.
Answer only by calling the provided tool.
"""


class ModelPlanner:
    """Asks the model for a PlanProposal."""

    def __init__(
        self,
        client: ClaudeClient,
        catalog: Sequence[tuple[str, str]],
    ) -> None:
        self.client = client
        self.catalog = list(catalog)
        self._env = Environment(
            loader=BaseLoader(),
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_system_prompt(self) -> str:
        """Render the system prompt for the current step catalog."""
        return self._env.from_string(PLANNER_SYSTEM_TEMPLATE).render(catalog=self.catalog)

    async def propose(self, raw_input: str) -> PlanProposal:
        return await self.client.structured(
            raw_input,
            tool_name="emit_plan",
            output_model=PlanProposal,
            system=self.render_system_prompt(),
        )


class PlanResolver:
    """Model planner when an API key is configured, keyword rules otherwise.

    Example:
        >>> resolver = PlanResolver(AppConfig(), registry.catalog())
        >>> proposal = await resolver.propose("提交并推送")
        >>> proposal.steps[-1]
        'git-push'
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        catalog: Sequence[tuple[str, str]] = (),
        client: ClaudeClient | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            config: Application config. A model is used when it has an API key.
            catalog: ``(id, description)`` pairs of registered steps.
            client: Pre-built model client (overrides ``config``).
        """
        if client is None and config is not None and config.model.enabled:
            client = ClaudeClient(config.model)
        remote = ModelPlanner(client, catalog).propose if client is not None else None
        self._strategy: FallbackStrategy[str, PlanProposal] = FallbackStrategy(
            plan_from_rules,
            remote=remote,
            label="planner",
        )

    @property
    def last_source(self) -> str | None:
        """'remote' or 'local' for the most recent proposal."""
        return self._strategy.last_source

    async def propose(self, raw_input: str) -> PlanProposal:
        """Return a plan for ``raw_input``. Never raises."""
        if not raw_input.strip():
            return plan_from_rules(raw_input)
        return await self._strategy.run(raw_input)
