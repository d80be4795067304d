from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = Path("configs/default.yaml")
ENV_PREFIX = "VIDEO_INGEST_"
CONFIG_ENV_VAR = f"{ENV_PREFIX}CONFIG"
CACHE_NAMESPACE = "video-ingest"


class IngestSettings(BaseModel):
    frame_interval_sec: float = 2.0
    max_frames: int = 12
    segment_duration_sec: float = 20.0
    max_audio_duration_sec: float = 600.0
    max_workers: int = 4


class PathSettings(BaseModel):
    temp_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))
    files_dir: Path = Path("data/files")

    @property
    def cache_root(self) -> Path:
        return Path(self.temp_dir).expanduser().resolve() / CACHE_NAMESPACE


class ToolSettings(BaseModel):
    ffprobe: str = "ffprobe"
    ffmpeg: str = "ffmpeg"
    probe_timeout_seconds: float = 30.0
    # <= 0 disables the timeout for frame/audio extraction
    extract_timeout_seconds: float = 0.0


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str | None = None
    file: Path | None = None
    tool_commands: bool = False


class Settings(BaseModel):
    ingest: IngestSettings = Field(default_factory=IngestSettings)
    paths: PathSettings = Field(default_factory=PathSettings)
    tools: ToolSettings = Field(default_factory=ToolSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Read the YAML config, then apply ``VIDEO_INGEST_<SECTION>__<FIELD>`` overrides.

    A missing config file yields the defaults.
    """

    resolved_path = Path(config_path or os.getenv(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    file_config: Any = {}
    if resolved_path.is_file():
        file_config = yaml.safe_load(resolved_path.read_text(encoding="utf-8")) or {}
    if not isinstance(file_config, dict):
        raise ValueError(f"Config file {resolved_path} must contain a mapping of sections.")

    merged = Settings.model_validate(file_config).model_dump(mode="python")
    for section, fields in _env_overrides(os.environ).items():
        merged[section].update(fields)
    # raw env strings are coerced by each section model
    return Settings.model_validate(merged)


def _env_overrides(environ: Mapping[str, str]) -> dict[str, dict[str, str]]:
    overrides: dict[str, dict[str, str]] = {}
    for key, raw_value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        section, separator, field_name = key[len(ENV_PREFIX) :].lower().partition("__")
        section_field = Settings.model_fields.get(section)
        if not separator or section_field is None:
            continue
        if field_name not in section_field.annotation.model_fields:
            continue

        overrides.setdefault(section, {})[field_name] = raw_value
    return overrides
