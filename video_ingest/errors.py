from __future__ import annotations


class VideoIngestError(RuntimeError):
    """Base class for failures surfaced by the ingestion pipeline."""


class UnsupportedFileType(VideoIngestError, ValueError):
    def __init__(self, origin_name: str, file_type: str) -> None:
        super().__init__(f"File {origin_name} is not a video (type: {file_type})")
        self.origin_name = origin_name
        self.file_type = file_type


class SourceNotFound(VideoIngestError):
    def __init__(self, message: str, candidates: list[str] | None = None) -> None:
        super().__init__(message)
        self.candidates = candidates or []


class ReadError(VideoIngestError):
    """Source bytes could not be consumed while hashing."""


class ToolUnavailable(VideoIngestError):
    def __init__(self, program: str) -> None:
        super().__init__(f"{program} is not available in PATH. Install FFmpeg so {program} can be found.")
        self.program = program


class ExternalToolError(VideoIngestError):
    def __init__(self, program: str, exit_code: int | None, output: str, message: str | None = None) -> None:
        details = f": {output}" if output else ""
        super().__init__(message or f"{program} exited with code {exit_code}{details}")
        self.program = program
        self.exit_code = exit_code
        self.output = output


class ToolTimeout(ExternalToolError):
    def __init__(self, program: str, timeout_seconds: float, output: str = "") -> None:
        super().__init__(
            program,
            None,
            output,
            message=f"{program} did not finish within {timeout_seconds:g}s",
        )
        self.timeout_seconds = timeout_seconds


class CacheReadError(VideoIngestError):
    """Manifest is unreadable or incompatible; recovered as a cache miss."""
