# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Reading and writing ``~/.gitnl/config.yaml``.

String values may reference the environment as ``${VAR}`` or
``${VAR:-default}``. A missing file is fine (defaults apply), and an unset
``model.api_key`` is filled from ``ANTHROPIC_API_KEY``.
"""

from __future__ import annotations

import copy
import os
import re
from io import StringIO
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from gitnl.config.schema import AppConfig
from gitnl.exceptions import ConfigurationError

ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>[^}]*))?\}")
MAX_ENV_PASSES = 10

CONFIG_ENV_VAR = "GITNL_CONFIG"
API_KEY_ENV_VAR = "ANTHROPIC_API_KEY"


def default_config_path() -> Path:
    """Return ``$GITNL_CONFIG`` if set, else ``~/.gitnl/config.yaml``."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".gitnl" / "config.yaml"


def _lookup_env(match: re.Match[str]) -> str:
    name, default = match.group("name"), match.group("default")
    if name in os.environ:
        return os.environ[name]
    if default is not None:
        return default
    raise ConfigurationError(
        f"Required environment variable '{name}' is not set",
        suggestion=f"Export {name}, or give it a default: ${{{name}:-value}}",
    )


def _keep_unset(match: re.Match[str]) -> str:
    name, default = match.group("name"), match.group("default")
    if name in os.environ:
        return os.environ[name]
    return default if default is not None else match.group(0)


def resolve_env_vars(value: str, strict: bool = True) -> str:
    """Substitute environment references in ``value``.

    A variable's value may itself contain references; substitution repeats
    until none are left. With ``strict=False`` references to unset
    variables without a default are left as written.

    Raises:
        ConfigurationError: In strict mode, a referenced variable is unset
            and has no default, or the references keep expanding into each
            other.
    """
    lookup = _lookup_env if strict else _keep_unset
    for _ in range(MAX_ENV_PASSES):
        expanded = ENV_REFERENCE.sub(lookup, value)
        if expanded == value:
            break
        value = expanded
    if strict and ENV_REFERENCE.search(value):
        raise ConfigurationError(
            f"Environment references did not settle after {MAX_ENV_PASSES} passes: {value}",
            suggestion="Look for variables that refer to each other.",
        )
    return value


def _expand(node: Any, strict: bool = True) -> Any:
    if isinstance(node, str):
        return resolve_env_vars(node, strict)
    if isinstance(node, dict):
        return {key: _expand(item, strict) for key, item in node.items()}
    if isinstance(node, list):
        return [_expand(item, strict) for item in node]
    return node


class ConfigLoader:
    """Parses, validates and writes the config file.

    Example:
        >>> loader = ConfigLoader()
        >>> config = loader.load_string("workflow:\\n  default_remote: upstream\\n")
        >>> config.workflow.default_remote
        'upstream'
    """

    def __init__(self) -> None:
        self._yaml = YAML()
        self._yaml.default_flow_style = False

    def load(self, path: str | Path | None = None) -> AppConfig:
        """Load the config at ``path`` (default location when None).

        Raises:
            ConfigurationError: The path is a directory or unreadable, or
                the content is invalid.
        """
        return self._with_env_key(self.read_stored(path))

    def load_string(self, content: str, source_path: Path | None = None) -> AppConfig:
        """Load a config from YAML text."""
        source = str(source_path) if source_path else "<string>"
        return self._with_env_key(self._build(self._parse(content, source), source))

    def read_stored(self, path: str | Path | None = None) -> AppConfig:
        """Return exactly what the file holds, without the environment key."""
        path = Path(path) if path is not None else default_config_path()
        return self._build(_expand(self.read_raw(path)), str(path))

    def read_raw(self, path: str | Path | None = None) -> dict[str, Any]:
        """Return the file's mapping as written, with references unexpanded.

        A missing file reads as an empty mapping.
        """
        path = Path(path) if path is not None else default_config_path()
        if not path.exists():
            return {}
        if not path.is_file():
            raise ConfigurationError(
                f"Config path is not a file: {path}",
                suggestion="Point --config or GITNL_CONFIG at a YAML file.",
            )
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read config file '{path}': {e}",
                suggestion="Check that the file exists and is readable.",
            ) from e
        return self._load_mapping(content, str(path))

    def save(self, config: AppConfig, path: str | Path | None = None) -> Path:
        """Write ``config`` as YAML, creating the directory if needed."""
        return self.save_raw(config.model_dump(mode="json", exclude_none=True), path)

    def save_raw(self, data: dict[str, Any], path: str | Path | None = None) -> Path:
        """Write a mapping as YAML without validating or expanding it."""
        path = Path(path) if path is not None else default_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        buffer = StringIO()
        self._yaml.dump(data, buffer)
        path.write_text(buffer.getvalue(), encoding="utf-8")
        return path

    def _parse(self, content: str, source: str) -> dict[str, Any]:
        return _expand(self._load_mapping(content, source))

    def _load_mapping(self, content: str, source: str) -> dict[str, Any]:
        try:
            data = self._yaml.load(content)
        except YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            where = f" (line {mark.line + 1}, column {mark.column + 1})" if mark else ""
            raise ConfigurationError(
                f"Invalid YAML in '{source}'{where}: {e}",
                suggestion="Check indentation, colons and quoting around special characters.",
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config '{source}' has the wrong shape: expected a mapping, "
                f"got {type(data).__name__}",
                suggestion="Use top-level 'model:' and 'workflow:' sections.",
            )
        return data

    def _build(self, data: dict[str, Any], source: str) -> AppConfig:
        try:
            return AppConfig.model_validate(data)
        except PydanticValidationError as e:
            errors = e.errors()
            lines = [f"  - {'.'.join(map(str, err['loc']))}: {err['msg']}" for err in errors]
            first = ".".join(map(str, errors[0]["loc"])) if errors else ""
            raise ConfigurationError(
                f"Config '{source}' is invalid:\n" + "\n".join(lines),
                suggestion="Fix the values listed above; 'gt config --show' prints the "
                "settings in effect.",
                field_path=first or None,
            ) from e

    @staticmethod
    def _with_env_key(config: AppConfig) -> AppConfig:
        if config.model.api_key is None and os.environ.get(API_KEY_ENV_VAR):
            config.model.api_key = os.environ[API_KEY_ENV_VAR]
        return config


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load the gitnl configuration.

    Raises:
        ConfigurationError: If the file cannot be used.
    """
    return ConfigLoader().load(path)


def load_config_string(content: str, source_path: Path | None = None) -> AppConfig:
    return ConfigLoader().load_string(content, source_path)


def save_config(config: AppConfig, path: str | Path | None = None) -> Path:
    return ConfigLoader().save(config, path)


def update_config(
    path: str | Path | None = None,
    *,
    api_key: str | None = None,
    model: str | None = None,
    base_url: str | None = None,
) -> AppConfig:
    """Change model settings in the stored file and save it.

    Fields left as None keep their stored value. Other values are written
    back as they appear in the file, so ${VAR} references stay references
    and need not be set. The environment key is never written unless passed
    as ``api_key``.

    Returns:
        The updated settings, with references to unset variables left as
        written.
    """
    loader = ConfigLoader()
    target = Path(path) if path is not None else default_config_path()
    raw = loader.read_raw(target)

    if raw.get("model") is None:
        raw["model"] = {}
    section = raw["model"]
    if not isinstance(section, dict):
        raise ConfigurationError(
            f"Config '{target}' has the wrong shape: 'model' must be a mapping",
            suggestion="Put model settings under a 'model:' section.",
            field_path="model",
        )
    changes = {"api_key": api_key, "model": model, "base_url": base_url}
    for name, value in changes.items():
        if value is not None:
            section[name] = value

    updated = loader._build(_expand(copy.deepcopy(raw), strict=False), str(target))
    loader.save_raw(raw, target)
    return updated


def mask_secret(value: str | None) -> str:
    """Show only the first and last four characters of a secret.

    Example:
        >>> mask_secret("sk-ant-abcdefgh-wxyz")
        'sk-a...wxyz'
    """
    if not value:
        return "not set"
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-4:]}"
