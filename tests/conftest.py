from __future__ import annotations

import subprocess
import time
from pathlib import Path
from typing import Any

import pytest


class FakeMediaTools:
    """Stands in for ffprobe/ffmpeg by writing the files they would produce."""

    def __init__(self, duration_seconds: float = 40.0) -> None:
        self.duration_seconds = duration_seconds
        self.calls: list[list[str]] = []
        self.probe_output: str | None = None
        self.probe_delay_seconds = 0.0
        self.fail_frames = False
        self.probe_permission_denied = False
        self.missing_audio_tool = False
        self.fail_audio = False

    def __call__(self, command: list[str], **kwargs: Any) -> subprocess.CompletedProcess[str]:
        self.calls.append(list(command))
        program = command[0]

        if program == "ffprobe":
            if self.probe_permission_denied:
                raise PermissionError(13, "Permission denied", program)
            if self.probe_delay_seconds:
                time.sleep(self.probe_delay_seconds)
            stdout = self.probe_output if self.probe_output is not None else f"{self.duration_seconds}\n"
            return subprocess.CompletedProcess(command, 0, stdout=stdout, stderr="")

        if "-vf" in command:
            return self._write_frames(command)
        return self._write_audio(command)

    def calls_for(self, kind: str) -> list[list[str]]:
        if kind == "probe":
            return [call for call in self.calls if call[0] == "ffprobe"]
        if kind == "frames":
            return [call for call in self.calls if call[0] == "ffmpeg" and "-vf" in call]
        return [call for call in self.calls if call[0] == "ffmpeg" and "-vf" not in call]

    def _write_frames(self, command: list[str]) -> subprocess.CompletedProcess[str]:
        if self.fail_frames:
            raise subprocess.CalledProcessError(1, command, output="", stderr="Invalid data found when processing input")

        fps = float(command[command.index("-vf") + 1].split("=", 1)[1])
        cap = int(command[command.index("-frames:v") + 1])
        pattern = Path(command[-1])
        count = min(cap, int(self.duration_seconds * fps))
        for number in range(1, count + 1):
            (pattern.parent / f"frame_{number:06d}.jpg").write_bytes(b"\xff\xd8jpeg")
        return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

    def _write_audio(self, command: list[str]) -> subprocess.CompletedProcess[str]:
        if self.missing_audio_tool:
            raise FileNotFoundError(command[0])
        if self.fail_audio:
            raise subprocess.CalledProcessError(1, command, output="", stderr="Output file does not contain any stream")

        Path(command[-1]).write_bytes(b"RIFF" + b"\x00" * 60)
        return subprocess.CompletedProcess(command, 0, stdout="", stderr="")


@pytest.fixture
def fake_media_tools(monkeypatch: pytest.MonkeyPatch) -> FakeMediaTools:
    tools = FakeMediaTools()
    monkeypatch.setattr(subprocess, "run", tools)
    return tools
