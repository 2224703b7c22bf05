# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Entry point for running gitnl as a module.

Usage:
    python -m gitnl
"""

from gitnl.cli.app import main

if __name__ == "__main__":
    main()
