# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""CLI module for gitnl.

This module contains the Typer application and command implementations.
"""

from gitnl.cli.app import app

__all__ = ["app"]
