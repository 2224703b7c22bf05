# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Git command execution."""

from gitnl.git.executor import (
    CHECKPOINT_COMMANDS,
    ExecutionResult,
    GitRunner,
    command_text,
    execute,
)

__all__ = [
    "CHECKPOINT_COMMANDS",
    "ExecutionResult",
    "GitRunner",
    "command_text",
    "execute",
]
