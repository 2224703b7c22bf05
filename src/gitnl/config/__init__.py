# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Configuration module for gitnl.

This module handles loading and validating the user configuration file,
including environment variable resolution and Pydantic schema validation.
"""

from gitnl.config.loader import (
    default_config_path,
    load_config,
    mask_secret,
    save_config,
    update_config,
)
from gitnl.config.schema import AppConfig, ModelConfig, WorkflowSettings

__all__ = [
    "AppConfig",
    "ModelConfig",
    "WorkflowSettings",
    "default_config_path",
    "load_config",
    "mask_secret",
    "save_config",
    "update_config",
]
