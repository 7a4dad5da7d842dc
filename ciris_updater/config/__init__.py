"""Configuration models for CIRISUpdater."""

from ciris_updater.config.settings import (
    CIRISUpdaterConfig,
    DockerConfig,
    LoggingConfig,
    ScheduleConfig,
    SelectionConfig,
    UpdateConfig,
    generate_default_config,
)

__all__ = [
    "CIRISUpdaterConfig",
    "DockerConfig",
    "LoggingConfig",
    "ScheduleConfig",
    "SelectionConfig",
    "UpdateConfig",
    "generate_default_config",
]
