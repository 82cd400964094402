"""
Configuration system using Pydantic for type-safe settings management.

Settings come from an optional YAML file (``.branchflow.yaml`` in the
repository root by default) and from ``BRANCHFLOW_*`` environment variables.
Branch parents are not settings; they live in git config and are handled by
``branchflow.config.hierarchy``.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from branchflow.enums import HostingDriverType, SyncStrategy
from branchflow.exceptions import ConfigurationError

DEFAULT_CONFIG_FILENAME = ".branchflow.yaml"


class HostingConfig(BaseModel):
    """Code-hosting service configuration.

    Supports environment references for the token:
    - api_token: "${GITHUB_TOKEN}"
    - api_token: "${GITEA_TOKEN:-}"
    """

    driver: HostingDriverType | None = Field(
        default=None, description="Hosting driver; None detects it from the origin remote"
    )
    api_token: SecretStr | None = Field(default=None, description="API token used to merge pull requests")
    base_url: str | None = Field(default=None, description="API base URL for self-hosted instances")
    origin_hostname: str | None = Field(
        default=None, description="Hostname to use instead of the one in the origin URL (SSH host aliases)"
    )
    timeout: float = Field(default=30.0, gt=0, description="Network timeout in seconds")

    @field_validator("api_token", mode="before")
    @classmethod
    def empty_token_is_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class BranchflowSettings(BaseSettings):
    """Main branchflow settings.

    This class combines all configuration sections and provides methods
    for loading from YAML files with environment variable interpolation.
    """

    model_config = SettingsConfigDict(
        env_prefix="BRANCHFLOW_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    main_branch: str = Field(default="main", description="Branch feature branches are cut from and shipped into")
    perennial_branches: list[str] = Field(
        default_factory=list, description="Long-lived branches that are never shipped or deleted"
    )
    push_new_branches: bool = Field(default=False, description="Create a tracking branch for new branches")
    offline: bool = Field(default=False, description="Skip every step that talks to the remote")
    sync_strategy: SyncStrategy = Field(
        default=SyncStrategy.MERGE, description="How feature branches are updated from their tracking branch"
    )
    remote: str = Field(default="origin", description="Remote that tracking branches live on")
    state_directory: str = Field(default="~/.branchflow/state", description="Directory for persisted run state")
    hosting: HostingConfig = Field(default_factory=HostingConfig)

    @field_validator("main_branch", "remote")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @property
    def state_dir(self) -> Path:
        """Get state directory as Path object."""
        return Path(self.state_directory).expanduser()

    def is_perennial(self, branch_name: str) -> bool:
        """Whether a branch is the main branch or a perennial branch."""
        return branch_name == self.main_branch or branch_name in self.perennial_branches

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> BranchflowSettings:
        """Load settings from YAML file with environment variable interpolation.

        Supports ${VAR_NAME} syntax for environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            BranchflowSettings instance

        Raises:
            ConfigurationError: If config file is invalid or missing
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            yaml_content = config_file.read_text()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e

        # An empty file is a valid configuration
        if config_dict is None:
            config_dict = {}
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")

        try:
            return cls(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Interpolate ${VAR_NAME} placeholders with environment variables.

        Supports two syntaxes:
        - ${VAR_NAME} - Required environment variable (raises if not set)
        - ${VAR_NAME:-default} - Optional with default value

        YAML comment lines are left unchanged.

        Raises:
            ValueError: If a required environment variable is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            value = os.getenv(var_name)

            if value is not None:
                return value
            elif default_value is not None:
                return default_value
            else:
                raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))


def load_settings(config_path: str | Path | None = None, search_dir: Path | None = None) -> BranchflowSettings:
    """Load settings for one invocation.

    An explicit path must exist. Without one, ``.branchflow.yaml`` in
    ``search_dir`` is used when present, otherwise defaults (plus environment
    overrides) apply.
    """
    if config_path is not None:
        return BranchflowSettings.from_yaml(config_path)

    candidate = (search_dir or Path.cwd()) / DEFAULT_CONFIG_FILENAME
    if candidate.is_file():
        return BranchflowSettings.from_yaml(candidate)

    try:
        return BranchflowSettings()
    except ValidationError as e:
        raise ConfigurationError(f"Failed to validate configuration: {e}") from e
