from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_FEATURE_USAGE_PATH = "Software\\Microsoft\\Windows\\CurrentVersion\\Explorer\\FeatureUsage"


@dataclass(slots=True)
class LoggingConfig:
    """Logging configuration from config.yml."""

    level: str = "INFO"
    app_log_max_mb: int = 10
    app_log_backup_count: int = 5


@dataclass(slots=True)
class TaskbarConfig:
    """Taskbar FeatureUsage collection settings from config.yml."""

    feature_usage_path: str = DEFAULT_FEATURE_USAGE_PATH
    soft_failure_level: str = "INFO"  # Level used when reporting skipped keys/values
    output_format: str = "json"


@dataclass(slots=True)
class AppConfig:
    """Top-level configuration resolved from disk."""

    base_dir: Path
    logs_dir: Path
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    taskbar: TaskbarConfig = field(default_factory=TaskbarConfig)

    def to_json(self) -> str:
        """Serialize the configuration into a JSON string for run manifests."""
        data = {
            "logs_dir": str(self.logs_dir),
            "logging": {
                "level": self.logging.level,
                "app_log_max_mb": self.logging.app_log_max_mb,
                "app_log_backup_count": self.logging.app_log_backup_count,
            },
            "taskbar": {
                "feature_usage_path": self.taskbar.feature_usage_path,
                "soft_failure_level": self.taskbar.soft_failure_level,
                "output_format": self.taskbar.output_format,
            },
        }
        return json.dumps(data, indent=2, sort_keys=True)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle) or {}
        if not isinstance(content, dict):
            raise ValueError(f"Config file {path} must contain a mapping at the top level.")
        return content


def load_app_config(base_dir: Path) -> AppConfig:
    """Load application configuration from disk, providing sensible defaults."""

    config_yaml = base_dir / "config" / "config.yml"
    config_overrides = _load_yaml(config_yaml)

    logs_dir = Path(config_overrides.get("logs_dir", base_dir / "logs"))
    if not logs_dir.is_absolute():
        logs_dir = base_dir / logs_dir
    logs_dir.mkdir(parents=True, exist_ok=True)

    logging_cfg = config_overrides.get("logging") or {}
    logging_config = LoggingConfig(
        level=str(logging_cfg.get("level", "INFO")).upper(),
        app_log_max_mb=int(logging_cfg.get("app_log_max_mb", 10)),
        app_log_backup_count=int(logging_cfg.get("app_log_backup_count", 5)),
    )

    taskbar_cfg = config_overrides.get("taskbar") or {}
    taskbar_config = TaskbarConfig(
        feature_usage_path=taskbar_cfg.get("feature_usage_path", DEFAULT_FEATURE_USAGE_PATH),
        soft_failure_level=str(taskbar_cfg.get("soft_failure_level", "INFO")).upper(),
        output_format=str(taskbar_cfg.get("output_format", "json")).lower(),
    )
    if taskbar_config.output_format not in ("json", "csv"):
        raise ValueError(
            f"Unsupported output_format '{taskbar_config.output_format}' in {config_yaml}"
        )

    return AppConfig(
        base_dir=base_dir,
        logs_dir=logs_dir,
        logging=logging_config,
        taskbar=taskbar_config,
    )
