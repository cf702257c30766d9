"""
Configuration schema using Pydantic.

Configuration is loaded from a YAML file and can be overridden by
environment variables.
"""

import os
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from screen_finder.matching.color import ColorMetric


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing required values."""

    def __init__(self, message: str, field: Optional[str] = None, suggestions: Optional[List[str]] = None):
        self.message = message
        self.field = field
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = [self.message]
        if self.field:
            lines.append(f"  Field: {self.field}")
        if self.suggestions:
            lines.append("  Suggestions:")
            for s in self.suggestions:
                lines.append(f"    - {s}")
        return "\n".join(lines)


class SearchConfig(BaseModel):
    """Matching engine configuration."""

    tolerance: float = Field(default=0.0, ge=0.0, le=1.0, description="0 = exact match")
    stride: int = Field(default=4, ge=1, le=64, description="Subsampling stride for window comparison")
    metric: ColorMetric = Field(default=ColorMetric.BRIGHTNESS, description="Distance used when tolerance > 0")
    max_workers: int = Field(default=4, ge=1, le=4, description="Quadrant worker threads per search")
    min_parallel_slices: int = Field(default=4, ge=1, description="Target-sized slices needed before splitting")
    poll_interval_seconds: float = Field(default=1.0, gt=0.0, le=60.0, description="Wait-any timeout for first-match searches")
    dedupe_iou: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Merge results overlapping above this IoU (off by default)")


class OverlayConfig(BaseModel):
    """Rectangle overlay configuration."""

    color: Union[str, Tuple[int, int, int]] = Field(default="red")
    thickness: int = Field(default=1, ge=1, le=50)

    @field_validator("color")
    @classmethod
    def validate_color(cls, value):
        if isinstance(value, str):
            from PIL import ImageColor
            try:
                ImageColor.getrgb(value)
            except ValueError as e:
                raise ValueError(f"Unknown colour: {value}") from e
        return value


class CaptureConfig(BaseModel):
    """Screen capture and input configuration."""

    monitor_index: int = Field(default=0, ge=0)
    dry_run: bool = Field(default=False, description="Log input actions without performing them")
    action_delay_ms: int = Field(default=50, ge=0, le=1000)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR)$")
    file: Optional[str] = Field(default=None, description="Optional JSON log file")


class FinderConfig(BaseModel):
    """Root configuration for screen-finder."""

    search: SearchConfig = Field(default_factory=SearchConfig)
    overlay: OverlayConfig = Field(default_factory=OverlayConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def log_file(self) -> Optional[Path]:
        return Path(self.logging.file).expanduser() if self.logging.file else None


def get_default_config_path() -> Path:
    """Get default config file path."""
    return Path.home() / ".screen-finder" / "config.yaml"


def load_config(config_path: Optional[str] = None) -> FinderConfig:
    """
    Load configuration from YAML file.

    Falls back to defaults if no path is given and the default file does
    not exist. Environment variables override file values.

    Args:
        config_path: Path to config file (optional)

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If config file is missing or invalid
    """
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(
                f"Config file not found: {path}",
                suggestions=[
                    f"Create the config file at {path}",
                    "Use 'screen-finder config --init PATH' to write a default config",
                    "Or run without --config to use defaults",
                ]
            )
    else:
        path = get_default_config_path()

    data: Dict[str, Any] = {}

    if path.exists():
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            raise ConfigurationError(
                f"Invalid YAML in config file: {path}",
                suggestions=[
                    f"Check syntax at line {mark.line + 1 if mark else 'unknown'}",
                    "Use a YAML validator to check your config",
                ]
            )
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file must contain a mapping: {path}",
            )

    data = _deep_merge(data, _get_env_overrides())

    try:
        config = FinderConfig(**data)
    except Exception as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            suggestions=[
                "Check field names and values in your config",
                "Run 'screen-finder config --show' to see the defaults",
            ]
        )

    return config


def _get_env_overrides() -> Dict[str, Any]:
    """Get configuration overrides from environment variables."""
    overrides: Dict[str, Any] = {}

    env_mappings = {
        "SCREEN_FINDER_TOLERANCE": ("search", "tolerance"),
        "SCREEN_FINDER_STRIDE": ("search", "stride"),
        "SCREEN_FINDER_WORKERS": ("search", "max_workers"),
        "SCREEN_FINDER_METRIC": ("search", "metric"),
        "SCREEN_FINDER_LOG_LEVEL": ("logging", "level"),
        "SCREEN_FINDER_DRY_RUN": ("capture", "dry_run"),
    }

    for env_key, (section, field) in env_mappings.items():
        value = os.environ.get(env_key)
        if value:
            overrides.setdefault(section, {})[field] = value

    return overrides


def _deep_merge(base: Dict, overlay: Dict) -> Dict:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def save_config(config: FinderConfig, config_path: Optional[str] = None) -> Path:
    """Save configuration to YAML file."""
    if config_path:
        path = Path(config_path)
    else:
        path = get_default_config_path()

    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        yaml.safe_dump(config.model_dump(mode="json"), f, default_flow_style=False)

    return path
