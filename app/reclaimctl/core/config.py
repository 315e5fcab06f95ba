"""Configuration store.

Configuration lives in ~/.config/reclaimctl/config.toml::

    [safety]
    default_policy = "deny"

    [cleanup]
    settle_seconds = 1.0
    command_timeout = 300

    [snapshots]
    max_workers = 4

    [[whitelist]]
    id = "a1b2c3d4e5f6"
    path = "~/Projects"
    description = "Source checkouts"

A missing file yields the defaults. The whitelist is re-read from disk
for every cleanup item, so edits made during a run take effect on the
next item.
"""

import logging
import os
import tomllib
import uuid
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from reclaimctl.core.errors import ConfigError, ConfigParseError
from reclaimctl.core.paths import get_config_path
from reclaimctl.core.safety import DefaultPolicy
from reclaimctl.models.whitelist import WhitelistEntry

logger = logging.getLogger(__name__)


class SafetyConfig(BaseModel):
    """Safety validation settings.

    Attributes:
        default_policy: Outcome for commands no rule matches.
    """

    model_config = ConfigDict(extra="forbid")

    default_policy: Annotated[
        DefaultPolicy,
        Field(description="Outcome for commands matched by no rule (deny or allow)"),
    ] = DefaultPolicy.DENY


class CleanupConfig(BaseModel):
    """Cleanup run settings.

    Attributes:
        settle_seconds: Wait before the final disk measurement.
        command_timeout: Maximum time per command in seconds.
    """

    model_config = ConfigDict(extra="forbid")

    settle_seconds: Annotated[
        float,
        Field(ge=0.0, le=60.0, description="Wait before measuring freed space (0-60)"),
    ] = 1.0
    command_timeout: Annotated[
        int,
        Field(ge=1, le=3600, description="Timeout per command in seconds (1-3600)"),
    ] = 300


class SnapshotConfig(BaseModel):
    """Snapshot collection settings."""

    model_config = ConfigDict(extra="forbid")

    max_workers: Annotated[
        int,
        Field(ge=1, le=32, description="Concurrent snapshot size measurements (1-32)"),
    ] = 4


class UsageConfig(BaseModel):
    """Storage usage collection settings for the planner export.

    Attributes:
        large_file_min_mb: Smallest file reported as large, in MB.
        large_file_limit: Maximum number of large files reported.
    """

    model_config = ConfigDict(extra="forbid")

    large_file_min_mb: Annotated[
        int,
        Field(ge=1, le=1_000_000, description="Smallest reported large file in MB"),
    ] = 100
    large_file_limit: Annotated[
        int,
        Field(ge=1, le=500, description="Maximum number of large files reported (1-500)"),
    ] = 20


class AppConfig(BaseModel):
    """Complete reclaimctl configuration."""

    model_config = ConfigDict(extra="forbid")

    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)
    snapshots: SnapshotConfig = Field(default_factory=SnapshotConfig)
    usage: UsageConfig = Field(default_factory=UsageConfig)
    whitelist: list[WhitelistEntry] = Field(default_factory=lambda: [])


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a TOML file.

    Args:
        path: Config file path. If None, uses the default config path.

    Returns:
        Validated AppConfig (defaults if the file does not exist).

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the file cannot be read or the content doesn't
            match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        logger.debug("No config file at %s, using defaults", config_path)
        return AppConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return AppConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content in {config_path}: {e}") from e


def load_whitelist(path: Path | None = None) -> list[WhitelistEntry]:
    """Load only the whitelist from the configuration file."""
    return list(load_config(path).whitelist)


def _config_to_dict(config: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to a TOML-serializable dictionary.

    None values are dropped because TOML has no null.
    """
    whitelist: list[dict[str, Any]] = []
    for entry in config.whitelist:
        item: dict[str, Any] = {"id": entry.id, "path": entry.path}
        if entry.description is not None:
            item["description"] = entry.description
        whitelist.append(item)

    result: dict[str, Any] = {
        "safety": {"default_policy": config.safety.default_policy.value},
        "cleanup": config.cleanup.model_dump(),
        "snapshots": config.snapshots.model_dump(),
        "usage": config.usage.model_dump(),
    }
    if whitelist:
        result["whitelist"] = whitelist
    return result


def save_config(config: AppConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written to a temporary file first and moved into place
    with os.replace().

    Args:
        config: Configuration to save.
        path: Destination. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    data = _config_to_dict(config)

    tmp_path: Path | None = None
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
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


def add_whitelist_entry(
    path_to_protect: str,
    description: str | None = None,
    config_path: Path | None = None,
) -> WhitelistEntry:
    """Add a protected path to the whitelist.

    Args:
        path_to_protect: Path to protect.
        description: Optional note.
        config_path: Config file path override.

    Returns:
        The new entry, or the existing one if the path is already protected.

    Raises:
        ConfigError: If the path is blank or the config cannot be written.
    """
    stripped = path_to_protect.strip()
    if not stripped:
        raise ConfigError("Whitelist path cannot be empty")

    config = load_config(config_path)
    for entry in config.whitelist:
        if entry.path == stripped:
            logger.debug("Path %s is already whitelisted as %s", stripped, entry.id)
            return entry

    entry = WhitelistEntry(id=uuid.uuid4().hex[:12], path=stripped, description=description)
    updated = config.model_copy(update={"whitelist": [*config.whitelist, entry]})
    save_config(updated, config_path)
    logger.info("Whitelisted %s (%s)", stripped, entry.id)
    return entry


def remove_whitelist_entry(
    id_or_path: str,
    config_path: Path | None = None,
) -> WhitelistEntry | None:
    """Remove a whitelist entry by id or path.

    Args:
        id_or_path: Entry id or protected path.
        config_path: Config file path override.

    Returns:
        The removed entry, or None if nothing matched.

    Raises:
        ConfigError: If the config cannot be read or written.
    """
    key = id_or_path.strip()
    config = load_config(config_path)

    removed: WhitelistEntry | None = None
    remaining: list[WhitelistEntry] = []
    for entry in config.whitelist:
        if removed is None and key in (entry.id, entry.path):
            removed = entry
        else:
            remaining.append(entry)

    if removed is None:
        return None

    save_config(config.model_copy(update={"whitelist": remaining}), config_path)
    logger.info("Removed whitelist entry %s (%s)", removed.id, removed.path)
    return removed
