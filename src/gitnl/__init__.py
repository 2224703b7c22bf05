# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""gitnl - natural-language, step-by-step git workflows.

gitnl turns a single free-text request ("commit my changes and push") into
an ordered plan of git steps and walks the user through them one at a time.
Each step can be continued, skipped or used to exit the run, failures stop
for a decision, and state-mutating commands pass through a risk gate first.

Example:
    Run a workflow from the command line::

        $ gt commit everything and push
        $ gt interactive "show me code stats" --dry-run

    Or use the library programmatically::

        from gitnl.config.loader import load_config
        from gitnl.engine.registry import StepRegistry
        from gitnl.engine.workflow import WorkflowEngine
        from gitnl.nlp.planner import PlanResolver
        from gitnl.steps import register_git_steps

        config = load_config()
        registry = register_git_steps(StepRegistry())
        engine = WorkflowEngine(registry, PlanResolver(config, registry.catalog()))
        result = await engine.process_input("commit my changes")

Modules:
    config: Configuration loading, schema validation, and environment variable resolution.
    engine: Step registry, execution context, and the workflow state machine.
    steps: Step contract, typed facts, and the git step library.
    gates: Human decision prompts and the risk-gated command confirmation.
    risk: Command risk classification.
    nlp: Plan resolution and commit message generation.
    providers: Model client and the shared model-with-fallback strategy.
    git: Opaque command execution.
    cli: Command-line interface commands.
    exceptions: Custom exception hierarchy.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
