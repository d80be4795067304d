from __future__ import annotations

import logging

from video_ingest.config import LoggingSettings

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(settings: LoggingSettings) -> None:
    """Route ``video_ingest`` logs to stderr and, optionally, a log file."""

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.file:
        settings.file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.file, encoding="utf-8"))

    level = getattr(logging, settings.level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=settings.format or DEFAULT_LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    # ffmpeg invocations are logged at DEBUG; keep them out unless asked for
    logging.getLogger("video_ingest.ingest.process_runner").setLevel(
        logging.DEBUG if settings.tool_commands else max(level, logging.INFO)
    )
