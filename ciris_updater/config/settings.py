"""
Configuration for CIRISUpdater.

Loaded from YAML, with CIRIS_UPDATER_* environment variables taking
precedence over the file for the update flags and the schedule.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

from ciris_updater.filters import build_filter, describe_filter
from ciris_updater.models import UpdateParams

logger = logging.getLogger(__name__)

ENV_PREFIX = "CIRIS_UPDATER_"


class DockerConfig(BaseModel):
    """Docker daemon connection and listing options."""

    host: Optional[str] = Field(None, description="Docker base URL; environment default if unset")
    pull_images: bool = Field(True, description="Pull images before checking for updates")
    include_stopped: bool = Field(False, description="Also update created and exited containers")
    include_restarting: bool = Field(False, description="Also update restarting containers")


class UpdateConfig(BaseModel):
    """How stale containers are replaced."""

    stop_timeout: float = Field(10.0, description="Seconds to wait for a container to stop")
    cleanup: bool = Field(False, description="Remove superseded images after updating")
    no_restart: bool = Field(False, description="Stop stale containers without restarting them")
    monitor_only: bool = Field(False, description="Only report stale containers")
    rolling_restart: bool = Field(False, description="Restart containers one at a time")
    lifecycle_hooks: bool = Field(False, description="Run lifecycle hook commands")


class SelectionConfig(BaseModel):
    """Which containers are managed."""

    names: List[str] = Field(default_factory=list, description="Only these containers")
    disable_names: List[str] = Field(default_factory=list, description="Never these containers")
    label_enable: bool = Field(False, description="Only containers with ciris.updater.enable=true")
    scope: Optional[str] = Field(None, description="Only containers with this ciris.updater.scope")


class ScheduleConfig(BaseModel):
    """When update runs happen."""

    interval: int = Field(86400, description="Seconds between update runs")
    run_once: bool = Field(False, description="Run a single update and exit")


class LoggingConfig(BaseModel):
    """Logging destinations and levels."""

    log_dir: Optional[str] = Field(
        "/var/log/ciris-updater", description="Directory for log files, empty for console only"
    )
    console_level: str = Field("INFO", description="Console log level")
    file_level: str = Field("DEBUG", description="File log level")
    use_json: bool = Field(False, description="Write log files as JSON lines")


class CIRISUpdaterConfig(BaseModel):
    """Complete CIRISUpdater configuration."""

    docker: DockerConfig = Field(default_factory=DockerConfig)
    update: UpdateConfig = Field(default_factory=UpdateConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: str) -> "CIRISUpdaterConfig":
        """
        Load configuration from a YAML file.

        A missing file yields the defaults. Environment overrides are applied
        on top of either.
        """
        path = Path(config_path)
        data: Dict[str, Any] = {}

        if path.exists():
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            logger.debug(f"Loaded configuration from {config_path}")
        else:
            logger.info(f"Configuration file {config_path} not found, using defaults")

        config = cls(**data)
        config.apply_env_overrides()
        return config

    def save(self, config_path: str) -> None:
        """Write configuration to a YAML file."""
        path = Path(config_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False, sort_keys=False)

    def apply_env_overrides(self, environ: Optional[Dict[str, str]] = None) -> None:
        """Apply CIRIS_UPDATER_* environment variables."""
        env = os.environ if environ is None else environ

        for flag in ("monitor_only", "no_restart", "rolling_restart", "cleanup", "lifecycle_hooks"):
            value = env.get(f"{ENV_PREFIX}{flag.upper()}")
            if value is not None:
                setattr(self.update, flag, value.strip().lower() in ("1", "true", "yes"))

        timeout = env.get(f"{ENV_PREFIX}STOP_TIMEOUT")
        if timeout:
            self.update.stop_timeout = float(timeout)

        interval = env.get(f"{ENV_PREFIX}INTERVAL")
        if interval:
            self.schedule.interval = int(interval)

    def validate_settings(self) -> List[str]:
        """Return a list of problems with this configuration (empty when valid)."""
        problems = []
        if self.schedule.interval <= 0:
            problems.append("schedule.interval must be positive")
        if self.update.stop_timeout < 0:
            problems.append("update.stop_timeout must not be negative")
        if self.update.monitor_only and self.update.no_restart:
            problems.append("update.monitor_only and update.no_restart are mutually exclusive")
        if self.update.rolling_restart and self.update.no_restart:
            problems.append("update.rolling_restart and update.no_restart are mutually exclusive")
        if self.update.monitor_only and self.update.cleanup:
            logger.warning("update.cleanup has no effect in monitor only mode")
        return problems

    def to_update_params(self) -> UpdateParams:
        """Build the parameters for one update run."""
        return UpdateParams(
            filter=build_filter(
                names=self.selection.names,
                disable_names=self.selection.disable_names,
                label_enable=self.selection.label_enable,
                scope=self.selection.scope,
            ),
            timeout=self.update.stop_timeout,
            cleanup=self.update.cleanup,
            no_restart=self.update.no_restart,
            monitor_only=self.update.monitor_only,
            rolling_restart=self.update.rolling_restart,
            lifecycle_hooks=self.update.lifecycle_hooks,
        )

    def describe_selection(self) -> str:
        return describe_filter(
            names=self.selection.names,
            disable_names=self.selection.disable_names,
            label_enable=self.selection.label_enable,
            scope=self.selection.scope,
        )


def generate_default_config(config_path: str) -> None:
    """Write a default configuration file."""
    CIRISUpdaterConfig().save(config_path)
