# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Model access for gitnl.

This module provides the Claude client used for structured model answers
and the fallback strategy that pairs every model call with local rules.
"""

from gitnl.providers.claude import ClaudeClient
from gitnl.providers.fallback import FallbackStrategy

__all__ = [
    "ClaudeClient",
    "FallbackStrategy",
]
