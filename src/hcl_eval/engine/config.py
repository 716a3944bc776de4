"""Evaluation configuration: variable values and context attributes.

Configuration file location priority:
1. Explicit path passed to ConfigLoader
2. HCL_EVAL_CONFIG environment variable
3. Standard location: ./.hcl-eval.yml
4. Built-in defaults (if no config file found)

Variable sources, merged in order (later wins):
1. ``variables`` in the config file
2. Files listed in ``var_files`` (JSON or YAML, relative to the config file)
3. ``TF_VAR_<name>`` environment variables

``TF_WORKSPACE`` overrides the configured workspace.

Example config file:
```yaml
workspace: staging
module_path: modules/network
var_files:
  - terraform.tfvars.json

variables:
  region: eu-west-1
  azs: [eu-west-1a, eu-west-1b]
  vpc_id:
    __unknown__: true   # known only after apply
```
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from .context import EvalContext
from .exceptions import ConfigError
from .values import UNKNOWN

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "HCL_EVAL_CONFIG"
DEFAULT_CONFIG_NAME = ".hcl-eval.yml"
VARIABLE_ENV_PREFIX = "TF_VAR_"
WORKSPACE_ENV_VAR = "TF_WORKSPACE"
UNKNOWN_MARKER = "__unknown__"


class EvalConfig(BaseModel):
    """Root evaluation configuration model."""

    variables: dict[str, Any] = Field(
        default_factory=dict,
        description="Input variable values (var.NAME)",
    )
    var_files: list[str] = Field(
        default_factory=list,
        description="JSON or YAML variable files, relative to the config file",
    )
    workspace: str = Field(default="default", description="Value of terraform.workspace")
    module_path: str = Field(default=".", description="Value of path.module")
    root_path: str = Field(default=".", description="Value of path.root")


def decode_unknown_markers(data: Any) -> Any:
    """Replace ``{"__unknown__": true}`` markers with the UNKNOWN sentinel."""
    if isinstance(data, Mapping):
        if data.get(UNKNOWN_MARKER) is True and len(data) == 1:
            return UNKNOWN
        return {key: decode_unknown_markers(item) for key, item in data.items()}
    if isinstance(data, list):
        return [decode_unknown_markers(item) for item in data]
    return data


def parse_env_value(raw: str) -> Any:
    """Parse a TF_VAR_ value: JSON lists and objects are decoded, anything else is a string."""
    if raw.lstrip().startswith(("[", "{")):
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in environment variable value {raw!r}: {e}") from e
    return raw


def load_var_file(path: Path) -> dict[str, Any]:
    """
    Load a JSON or YAML variable file.

    Raises:
        ConfigError: If the file is missing, unparseable or not a mapping
    """
    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read variable file {path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to parse variable file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Variable file {path} must contain a mapping")
    return data


class ConfigLoader:
    """Loader for evaluation configuration.

    Usage:
        ```python
        loader = ConfigLoader()
        runner = Runner(loader.build_context())
        ```

    The loaded config is cached; call load_config() again to get the same instance.
    """

    def __init__(
        self,
        config_path: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        """Initialize config loader.

        Args:
            config_path: Explicit path to config file (optional)
            environ: Environment mapping (default: os.environ)
        """
        self._config: EvalConfig | None = None
        self._explicit_path = Path(config_path) if config_path else None
        self._environ = environ if environ is not None else os.environ

    def get_config_path(self) -> Path | None:
        """Determine config file path using priority order.

        Returns:
            Path to config file, or None if no file applies

        Raises:
            ConfigError: If an explicitly requested file does not exist
        """
        if self._explicit_path:
            if self._explicit_path.exists():
                return self._explicit_path
            raise ConfigError(f"Config file does not exist: {self._explicit_path}")

        env_path_str = self._environ.get(CONFIG_ENV_VAR)
        if env_path_str:
            env_path = Path(env_path_str).expanduser()
            if env_path.exists():
                return env_path
            raise ConfigError(f"{CONFIG_ENV_VAR} path does not exist: {env_path}")

        standard_path = Path.cwd() / DEFAULT_CONFIG_NAME
        if standard_path.exists():
            return standard_path

        return None

    def load_config(self) -> EvalConfig:
        """Load and validate the configuration file.

        Returns:
            Validated EvalConfig (defaults if no config file found)

        Raises:
            ConfigError: If the file is invalid or fails validation
        """
        if self._config is not None:
            return self._config

        config_path = self.get_config_path()
        if config_path is None:
            logger.debug("No evaluation config file found, using defaults")
            self._config = EvalConfig()
            return self._config

        logger.info(f"Loading evaluation config from: {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                raw_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {config_path}: {e}") from e

        if raw_config is None:
            raw_config = {}
        if not isinstance(raw_config, dict):
            raise ConfigError(f"Config file {config_path} must contain a YAML dictionary")

        try:
            config = EvalConfig(**raw_config)
        except ValidationError as e:
            raise ConfigError(f"Invalid config in {config_path}: {e}") from e

        self._config = config
        return config

    def load_variables(self) -> dict[str, Any]:
        """Merge variables from every source.

        Returns:
            Variable name -> value, with unknown markers decoded
        """
        config = self.load_config()
        variables: dict[str, Any] = dict(config.variables)

        config_path = self.get_config_path()
        base_dir = config_path.parent if config_path else Path.cwd()
        for var_file in config.var_files:
            path = Path(var_file)
            if not path.is_absolute():
                path = base_dir / path
            file_vars = load_var_file(path)
            logger.debug(f"Loaded {len(file_vars)} variables from {path}")
            variables.update(file_vars)

        for env_name, raw in self._environ.items():
            if env_name.startswith(VARIABLE_ENV_PREFIX) and len(env_name) > len(
                VARIABLE_ENV_PREFIX
            ):
                variables[env_name[len(VARIABLE_ENV_PREFIX) :]] = parse_env_value(raw)

        return decode_unknown_markers(variables)

    def build_context(self, overrides: Mapping[str, Any] | None = None) -> EvalContext:
        """Build an evaluation context from the merged configuration.

        Args:
            overrides: Variables that take precedence over every other source

        Returns:
            Read-only EvalContext
        """
        config = self.load_config()
        variables = self.load_variables()
        if overrides:
            variables.update(decode_unknown_markers(dict(overrides)))

        workspace = self._environ.get(WORKSPACE_ENV_VAR) or config.workspace

        try:
            return EvalContext(
                variables,
                workspace=workspace,
                module_path=config.module_path,
                root_path=config.root_path,
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid variable value: {e}") from e
