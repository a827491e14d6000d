"""Shared fakes for the external collaborators of the voice pipeline.

ffmpeg, the Whisper model and Bedrock are replaced at their narrowest seam
(subprocess runner, model factory, boto3 client) so the real stage code runs
in every test.
"""

from __future__ import annotations

import subprocess
import threading
import time
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Optional

import numpy as np

EXPENSE_RESPONSE = (
    "```json\n"
    '{"intent":"ADD_EXPENSE","data":{"amount":50,"category":"Food"},'
    '"message":"Added 50 for food."}\n'
    "```"
)


def speech_samples(seconds: float = 3.0, sample_rate: int = 16000) -> np.ndarray:
    """A 220 Hz tone standing in for speech; only its non-silence matters."""

    t = np.arange(int(seconds * sample_rate), dtype=np.float32) / sample_rate
    return (0.3 * np.sin(2 * np.pi * 220.0 * t)).astype(np.float32)


class FakeFfmpeg:
    """Stands in for ``subprocess.run`` and records what it was asked to do."""

    def __init__(
        self,
        samples: Optional[np.ndarray] = None,
        *,
        returncode: int = 0,
        stderr: bytes = b"",
        raw_stdout: Optional[bytes] = None,
        timeout: bool = False,
    ) -> None:
        self.samples = speech_samples() if samples is None else samples
        self.returncode = returncode
        self.stderr = stderr
        self.raw_stdout = raw_stdout
        self.timeout = timeout
        self.calls: list[dict[str, Any]] = []
        self.staged_files_seen: list[Path] = []

    def __call__(self, command, *, input=None, stdout=None, stderr=None, check=False, timeout=None):
        self.calls.append({"command": list(command), "input": input, "timeout": timeout})
        source = command[command.index("-i") + 1]
        if source != "pipe:0":
            path = Path(source)
            assert path.exists(), "staged input must exist while ffmpeg runs"
            self.staged_files_seen.append(path)
        if self.timeout:
            raise subprocess.TimeoutExpired(command, timeout)
        if self.returncode != 0 and check:
            raise subprocess.CalledProcessError(self.returncode, command, output=b"", stderr=self.stderr)
        payload = self.raw_stdout
        if payload is None:
            payload = np.asarray(self.samples, dtype="<f4").tobytes()
        return subprocess.CompletedProcess(command, self.returncode, stdout=payload, stderr=self.stderr)


class FakeWhisperModel:
    def __init__(self, text: str, *, delay: float = 0.0) -> None:
        self.text = text
        self.delay = delay
        self.calls = 0

    def transcribe(self, samples, **kwargs):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        segments = iter([SimpleNamespace(text=f" {self.text} ")]) if self.text else iter([])
        info = SimpleNamespace(language="en", duration=len(samples) / 16000)
        return segments, info


class FakeBedrockRuntime:
    """Mimics the boto3 ``bedrock-runtime`` client's ``converse`` call."""

    def __init__(self, text: str = EXPENSE_RESPONSE, *, delay: float = 0.0, error: Exception | None = None) -> None:
        self.text = text
        self.delay = delay
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def converse(self, **kwargs):
        with self._lock:
            self.calls.append(kwargs)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return {"output": {"message": {"content": [{"text": self.text}]}}}


