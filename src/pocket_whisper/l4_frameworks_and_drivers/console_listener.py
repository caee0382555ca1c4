"""Console listener — prints worker callbacks from the CLI."""

from __future__ import annotations

import threading

import click
import numpy as np


class ConsoleListener:
    """Implements both TranscriptionListener and RecordingListener for the terminal.

    Status lines go to stderr so stdout carries only transcribed text.
    """

    def __init__(self, show_partials: bool = True) -> None:
        self._show_partials = show_partials
        self._lock = threading.Lock()
        self.results: list[str] = []
        self.statuses: list[str] = []
        self.chunks = 0

    def on_status(self, message: str) -> None:
        with self._lock:
            self.statuses.append(message)
        click.echo(f'[{message}]', err=True)

    def on_result(self, text: str) -> None:
        with self._lock:
            self.results.append(text)
        if self._show_partials:
            click.echo(text)

    def on_audio_chunk(self, samples: np.ndarray) -> None:
        with self._lock:
            self.chunks += 1

    @property
    def last_result(self) -> str | None:
        with self._lock:
            return self.results[-1] if self.results else None
