from __future__ import annotations

import json
import logging
from pathlib import Path
from time import perf_counter
from typing import Any, Callable, TypeVar

import typer

from video_ingest.config import Settings, load_settings
from video_ingest.export.timeline_exporter import export_timeline, load_manifest_result
from video_ingest.ingest.probe import probe_duration
from video_ingest.ingest.transcript import load_sidecar_transcript
from video_ingest.logging_config import configure_logging
from video_ingest.models import SourceDescriptor
from video_ingest.outcome import Ok
from video_ingest.pipeline import VideoIngestor

app = typer.Typer(help="Video ingestion and caching pipeline.")
config_app = typer.Typer(help="Configuration commands.")
ingest_app = typer.Typer(help="Ingest commands.")
cache_app = typer.Typer(help="Cache inspection commands.")
export_app = typer.Typer(help="Export commands.")

app.add_typer(config_app, name="config")
app.add_typer(ingest_app, name="ingest")
app.add_typer(cache_app, name="cache")
app.add_typer(export_app, name="export")

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONFIG_OPTION = typer.Option(
    Path("configs/default.yaml"),
    "--config",
    "-c",
    envvar="VIDEO_INGEST_CONFIG",
    help="Path to YAML configuration file.",
)


def _run_with_progress(step_index: int, total_steps: int, label: str, work: Callable[[], T]) -> T:
    typer.echo(f"[{step_index}/{total_steps}] {label}...", err=True)
    started_at = perf_counter()
    try:
        result = work()
    except Exception:
        elapsed = perf_counter() - started_at
        typer.echo(f"[{step_index}/{total_steps}] {label} failed after {elapsed:.1f}s", err=True)
        raise
    elapsed = perf_counter() - started_at
    typer.echo(f"[{step_index}/{total_steps}] {label} done in {elapsed:.1f}s", err=True)
    return result


def _bootstrap(config_path: Path) -> Settings:
    settings = load_settings(config_path)
    configure_logging(settings.logging)
    logger.debug("Loaded runtime settings from %s", config_path)
    return settings


def _fail(exc: Exception) -> typer.Exit:
    logger.error("Command failed: %s", exc)
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


def _options_from_flags(
    frame_interval: float | None,
    max_frames: int | None,
    segment_duration: float | None,
    max_audio_duration: float | None,
) -> dict[str, Any]:
    return {
        "frame_interval_sec": frame_interval,
        "max_frames": max_frames,
        "segment_duration_sec": segment_duration,
        "max_audio_duration_sec": max_audio_duration,
    }


@config_app.command("show")
def show_config(config_path: Path = CONFIG_OPTION) -> None:
    """Print resolved runtime configuration."""

    settings = _bootstrap(config_path)
    typer.echo(json.dumps(settings.model_dump(mode="json"), indent=2))


@ingest_app.command("run")
def run_ingest(
    video_path: str,
    file_id: str | None = typer.Option(None, help="Optional file id. Defaults to the source filename stem."),
    frame_interval: float | None = typer.Option(None, help="Seconds between sampled frames."),
    max_frames: int | None = typer.Option(None, help="Maximum number of sampled frames (0 disables frames)."),
    segment_duration: float | None = typer.Option(None, help="Width of each timeline segment in seconds."),
    max_audio_duration: float | None = typer.Option(None, help="Cap on extracted audio length in seconds."),
    export_dir: Path | None = typer.Option(None, help="Also export timeline JSON/CSV/summary into this directory."),
    config_path: Path = CONFIG_OPTION,
) -> None:
    """Ingest a video (or serve it from cache) and print the result JSON."""

    settings = _bootstrap(config_path)
    source = SourceDescriptor.from_path(video_path, file_id=file_id)
    options = _options_from_flags(frame_interval, max_frames, segment_duration, max_audio_duration)
    total_steps = 2 if export_dir else 1

    try:
        result = _run_with_progress(
            1,
            total_steps,
            "Ingest video",
            lambda: VideoIngestor(settings).ingest(source, options),
        )
        exported: dict[str, Path] = {}
        if export_dir:
            exported = _run_with_progress(
                2,
                total_steps,
                "Export timeline",
                lambda: export_timeline(result, export_dir, basename=f"{source.file_id}_timeline"),
            )
    except (RuntimeError, ValueError) as exc:
        raise _fail(exc) from exc

    payload = {"status": "ok", **result.to_dict()}
    if exported:
        payload["outputs"] = {key: str(path) for key, path in exported.items()}
    typer.echo(json.dumps(payload, indent=2))


@ingest_app.command("probe")
def probe(video_path: str, config_path: Path = CONFIG_OPTION) -> None:
    """Probe container duration; prints 0 when it cannot be determined."""

    settings = _bootstrap(config_path)
    outcome = probe_duration(
        Path(video_path).expanduser().resolve(),
        ffprobe=settings.tools.ffprobe,
        timeout_seconds=settings.tools.probe_timeout_seconds,
    )
    payload: dict[str, Any] = {"video_path": video_path}
    if isinstance(outcome, Ok):
        payload.update({"status": "ok", "duration_sec": outcome.value})
    else:
        payload.update({"status": "degraded", "duration_sec": 0.0, "reason": outcome.reason})
    typer.echo(json.dumps(payload, indent=2))


@ingest_app.command("transcript")
def transcript(video_path: str, config_path: Path = CONFIG_OPTION) -> None:
    """Load and print the sidecar .srt/.vtt transcript for a video."""

    _bootstrap(config_path)
    outcome = load_sidecar_transcript(Path(video_path).expanduser().resolve())
    if isinstance(outcome, Ok):
        payload: dict[str, Any] = {
            "status": "ok",
            "path": outcome.value.path,
            "format": outcome.value.format,
            "segment_count": len(outcome.value.segments),
            "segments": [
                {"start_sec": cue.start_sec, "end_sec": cue.end_sec, "text": cue.text}
                for cue in outcome.value.segments
            ],
        }
    else:
        payload = {"status": "degraded", "reason": outcome.reason}
    typer.echo(json.dumps(payload, indent=2))


@cache_app.command("show")
def show_cache(
    video_path: str,
    frame_interval: float | None = typer.Option(None, help="Seconds between sampled frames."),
    max_frames: int | None = typer.Option(None, help="Maximum number of sampled frames."),
    segment_duration: float | None = typer.Option(None, help="Width of each timeline segment in seconds."),
    max_audio_duration: float | None = typer.Option(None, help="Cap on extracted audio length in seconds."),
    config_path: Path = CONFIG_OPTION,
) -> None:
    """Report whether a valid cache entry exists, without running any tool."""

    settings = _bootstrap(config_path)
    source = SourceDescriptor.from_path(video_path)
    options = _options_from_flags(frame_interval, max_frames, segment_duration, max_audio_duration)

    try:
        cached = VideoIngestor(settings).lookup(source, options)
    except (RuntimeError, ValueError) as exc:
        raise _fail(exc) from exc

    if cached is None:
        typer.echo(json.dumps({"status": "miss", "video_path": video_path}, indent=2))
        return

    typer.echo(
        json.dumps(
            {
                "status": "hit",
                "video_path": video_path,
                "cache_key": cached.cache_key,
                "cache_dir": cached.cache_dir,
                "created_at": cached.created_at,
            },
            indent=2,
        )
    )


@export_app.command("timeline")
def export_timeline_command(
    manifest_path: Path = typer.Argument(..., help="Path to a cache manifest.json."),
    output_dir: Path = typer.Option(Path("data/outputs"), "--output-dir", "-o", help="Directory for JSON/CSV/summary outputs."),
    basename: str = typer.Option("timeline", help="Base filename for exported artifacts."),
) -> None:
    """Export a cached ingest result as timeline JSON/CSV and a text summary."""

    try:
        result = load_manifest_result(manifest_path)
        exported = export_timeline(result, output_dir, basename=basename)
    except (OSError, RuntimeError, ValueError) as exc:
        raise _fail(exc) from exc

    typer.echo(json.dumps({key: str(path) for key, path in exported.items()}, indent=2))


if __name__ == "__main__":
    app()
