from __future__ import annotations

from pathlib import Path

import pytest

from video_ingest.config import load_settings
from video_ingest.pipeline import default_options


def test_missing_config_file_yields_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("VIDEO_INGEST_INGEST__MAX_FRAMES", raising=False)

    settings = load_settings(tmp_path / "absent.yaml")

    assert settings.ingest.max_frames == 12
    assert settings.tools.ffmpeg == "ffmpeg"
    assert default_options(settings).segment_duration_sec == 20.0


def test_yaml_values_and_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        f"ingest:\n  frame_interval_sec: 5\n  max_frames: 4\npaths:\n  temp_dir: {tmp_path / 'scratch'}\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("VIDEO_INGEST_INGEST__MAX_FRAMES", "8")
    monkeypatch.setenv("VIDEO_INGEST_TOOLS__FFMPEG", "/opt/ffmpeg/bin/ffmpeg")
    monkeypatch.setenv("VIDEO_INGEST_UNKNOWN__FIELD", "ignored")

    settings = load_settings(config_path)

    assert settings.ingest.frame_interval_sec == 5.0
    assert settings.ingest.max_frames == 8
    assert settings.tools.ffmpeg == "/opt/ffmpeg/bin/ffmpeg"
    assert settings.paths.cache_root == (tmp_path / "scratch").resolve() / "video-ingest"


def test_config_path_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "env.yaml"
    config_path.write_text("logging:\n  level: DEBUG\n", encoding="utf-8")
    monkeypatch.setenv("VIDEO_INGEST_CONFIG", str(config_path))

    assert load_settings().logging.level == "DEBUG"


def test_env_overrides_are_coerced_by_field_type(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VIDEO_INGEST_LOGGING__TOOL_COMMANDS", "yes")
    monkeypatch.setenv("VIDEO_INGEST_LOGGING__FILE", str(tmp_path / "ingest.log"))
    monkeypatch.setenv("VIDEO_INGEST_TOOLS__PROBE_TIMEOUT_SECONDS", "7.5")
    monkeypatch.setenv("VIDEO_INGEST_INGEST__NOT_A_FIELD", "1")
    monkeypatch.setenv("VIDEO_INGEST_INGEST", "no-separator")

    settings = load_settings(tmp_path / "absent.yaml")

    assert settings.logging.tool_commands is True
    assert settings.logging.file == tmp_path / "ingest.log"
    assert settings.tools.probe_timeout_seconds == 7.5


def test_invalid_env_override_is_rejected(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VIDEO_INGEST_INGEST__MAX_FRAMES", "lots")

    with pytest.raises(ValueError):
        load_settings(tmp_path / "absent.yaml")


def test_config_file_must_hold_sections(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError, match="must contain a mapping"):
        load_settings(config_path)
