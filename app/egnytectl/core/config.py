"""Configuration model and file I/O.

The configuration is stored in <config_dir>/config.toml and validated with
Pydantic. It is loaded once per run and passed explicitly to every
collaborator; nothing reads it from module-level state.

Secrets are never part of the file. The Graph client secret is read from the
environment variable named by ``authorization.client_secret_env``.
"""

import os
import re
import tomllib
from pathlib import Path
from typing import Annotated, Any, Literal

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from egnytectl.core.paths import get_config_path
from egnytectl.models.mapping import mount_point_mismatch

BackendKind = Literal["windows", "macos"]
DirectoryProvider = Literal["local", "graph"]
ForeignMountPolicy = Literal["leave", "cleanup"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

# Default client locations per backend kind
DEFAULT_EXECUTABLES: dict[BackendKind, str] = {
    "windows": r"C:\Program Files (x86)\Egnyte Connect\EgnyteClient.exe",
    "macos": "egnytecli",
}

DEFAULT_CLIENT_SECRET_ENV = "EGNYTECTL_CLIENT_SECRET"


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the configuration file cannot be parsed."""


class ConfigValidationError(ConfigError):
    """Raised when the configuration content is invalid."""


class MappingsSection(BaseModel):
    """Where the desired-state table comes from.

    Attributes:
        source: Local path, file-share path, or http(s) URL of the CSV table.
    """

    model_config = ConfigDict(extra="forbid")

    source: Annotated[str | None, Field(description="Mapping table location")] = None


class BackendSection(BaseModel):
    """Drive client settings.

    Attributes:
        kind: Which client command surface to drive.
        executable: Client executable. If None, uses the default per kind.
        command_timeout: Upper bound in seconds for every client invocation.
        use_sso: Ask the Windows client to authenticate with single sign-on.
        username: Cloud username passed to the macOS client.
    """

    model_config = ConfigDict(extra="forbid")

    kind: Annotated[BackendKind, Field(description="Drive client flavour")] = "windows"
    executable: Annotated[str | None, Field(description="Client executable path")] = None
    command_timeout: Annotated[
        float,
        Field(ge=1, le=600, description="Timeout per client call in seconds"),
    ] = 60.0
    use_sso: Annotated[bool, Field(description="Use single sign-on")] = True
    username: Annotated[str | None, Field(description="Cloud username (macOS)")] = None

    @property
    def effective_executable(self) -> str:
        """Get the configured executable or the default for this kind."""
        if self.executable:
            return self.executable
        return DEFAULT_EXECUTABLES[self.kind]


class AuthorizationSection(BaseModel):
    """Group membership lookup settings.

    Attributes:
        provider: "local" queries the local directory, "graph" the identity provider.
        tenant_id: Identity-provider tenant (graph only).
        client_id: Application ID used for the client-credentials grant (graph only).
        client_secret_env: Environment variable holding the client secret.
        user_principal: Principal to query. If None, resolved at runtime.
        timeout: HTTP timeout in seconds per request.
        retries: Retries for failed HTTP requests.
    """

    model_config = ConfigDict(extra="forbid")

    provider: Annotated[DirectoryProvider, Field(description="Group source")] = "local"
    tenant_id: Annotated[str | None, Field(description="Tenant ID")] = None
    client_id: Annotated[str | None, Field(description="Application (client) ID")] = None
    client_secret_env: Annotated[
        str,
        Field(min_length=1, description="Environment variable with the client secret"),
    ] = DEFAULT_CLIENT_SECRET_ENV
    user_principal: Annotated[str | None, Field(description="User principal name")] = None
    timeout: Annotated[float, Field(gt=0, le=120, description="HTTP timeout")] = 15.0
    retries: Annotated[int, Field(ge=0, le=5, description="HTTP retries")] = 1

    @model_validator(mode="after")
    def validate_graph_settings(self) -> "AuthorizationSection":
        """The graph provider needs a tenant and an application ID."""
        if self.provider == "graph" and not (self.tenant_id and self.client_id):
            msg = "graph provider requires tenant_id and client_id"
            raise ValueError(msg)
        return self

    def client_secret(self) -> str | None:
        """Read the client secret from the environment."""
        return os.environ.get(self.client_secret_env) or None


class HomeDriveSection(BaseModel):
    """Personal home drive settings.

    Attributes:
        enabled: Whether to manage the home drive at all.
        letter: Fixed drive letter or mount path.
        name: Drive label.
        domain: Cloud tenant domain.
        path_template: Remote path; ``{username}`` is replaced.
        username: Override for the identity name.
    """

    model_config = ConfigDict(extra="forbid")

    enabled: bool = False
    letter: str = "H"
    name: str = "Private"
    domain: str | None = None
    path_template: str = "/Private/{username}"
    username: str | None = None

    @model_validator(mode="after")
    def validate_domain(self) -> "HomeDriveSection":
        """An enabled home drive needs a domain and a {username} placeholder."""
        if self.enabled and not self.domain:
            msg = "home_drive.domain is required when the home drive is enabled"
            raise ValueError(msg)
        if "{username}" not in self.path_template:
            msg = "home_drive.path_template must contain '{username}'"
            raise ValueError(msg)
        return self


class ReconcileSection(BaseModel):
    """Reconciler behaviour.

    Attributes:
        foreign_mount_policy: "leave" keeps foreign or disconnected mounts for
            unauthorized mappings; "cleanup" force-unmounts them.
        verify_attempts: How often to re-query state after an action.
        verify_interval: Seconds between verification queries.
    """

    model_config = ConfigDict(extra="forbid")

    foreign_mount_policy: ForeignMountPolicy = "leave"
    verify_attempts: Annotated[int, Field(ge=1, le=10)] = 3
    verify_interval: Annotated[float, Field(ge=0, le=60)] = 2.0


class InstallSection(BaseModel):
    """Drive client provisioning settings.

    Attributes:
        download_page_url: Vendor page that advertises the current version.
        version_pattern: Regex whose first group is the advertised version.
        installer_url: MSI location; ``{version}`` is replaced.
        firewall_rule_name: Display name of the inbound firewall rules.
        install_timeout: Upper bound in seconds for msiexec.
    """

    model_config = ConfigDict(extra="forbid")

    download_page_url: str | None = None
    version_pattern: str = r"EgnyteDesktopApp_(\d+(?:\.\d+)+)\.msi"
    installer_url: str | None = None
    firewall_rule_name: str = "Egnyte Desktop App"
    install_timeout: Annotated[float, Field(ge=30, le=3600)] = 900.0

    @model_validator(mode="after")
    def validate_pattern(self) -> "InstallSection":
        """The version pattern must compile and capture the version."""
        try:
            compiled = re.compile(self.version_pattern)
        except re.error as e:
            msg = f"install.version_pattern is not a valid regex: {e}"
            raise ValueError(msg) from e
        if compiled.groups < 1:
            msg = "install.version_pattern needs a capture group for the version"
            raise ValueError(msg)
        return self


class LoggingSection(BaseModel):
    """Transcript and console logging settings."""

    model_config = ConfigDict(extra="forbid")

    level: LogLevel = "INFO"
    retention: Annotated[int, Field(ge=1, le=365)] = 14


class AppConfig(BaseModel):
    """Complete egnytectl configuration."""

    model_config = ConfigDict(extra="forbid")

    mappings: MappingsSection = Field(default_factory=MappingsSection)
    backend: BackendSection = Field(default_factory=BackendSection)
    authorization: AuthorizationSection = Field(default_factory=AuthorizationSection)
    home_drive: HomeDriveSection = Field(default_factory=HomeDriveSection)
    reconcile: ReconcileSection = Field(default_factory=ReconcileSection)
    install: InstallSection = Field(default_factory=InstallSection)
    logging: LoggingSection = Field(default_factory=LoggingSection)

    @model_validator(mode="after")
    def validate_home_drive_mount_point(self) -> "AppConfig":
        """An enabled home drive must use the mount point form of the backend."""
        if not self.home_drive.enabled:
            return self
        mismatch = mount_point_mismatch(self.home_drive.letter.strip(), self.backend.kind)
        if mismatch:
            msg = f"home_drive.letter: {mismatch}"
            raise ValueError(msg)
        return self


def load_config(path: Path | None = None) -> AppConfig:
    """Load and validate the configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated AppConfig object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> AppConfig:
    """Load the config, falling back to defaults when no default file exists.

    An explicitly given path must exist.

    Raises:
        ConfigError: If the file exists but is unusable, or an explicit
            path is missing.
    """
    if path is None and not get_config_path().exists():
        return AppConfig()
    return load_config(path)


def save_config(config: AppConfig, path: Path | None = None) -> Path:
    """Save the configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The AppConfig object to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    from tempfile import NamedTemporaryFile

    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = config_to_dict(config)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path


def config_to_dict(config: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to a dictionary for TOML serialization.

    TOML has no null, so unset optional values are left out.
    """
    return config.model_dump(mode="json", exclude_none=True)
