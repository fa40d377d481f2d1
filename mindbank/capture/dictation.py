from __future__ import annotations

import threading
from typing import Iterable

from mindbank.capture.pipeline import CapturePipeline
from mindbank.schemas.capture import TranscriptFragment


class Dictation:
    """Continuous voice input feeding a pipeline's pending input buffer.

    Recording is an on/off toggle independent of the capture state; stopping
    never submits the buffer.
    """

    def __init__(self, pipeline: CapturePipeline) -> None:
        self.pipeline = pipeline
        self.recording = False
        self._lock = threading.Lock()

    def toggle(self) -> bool:
        with self._lock:
            self.recording = not self.recording
            return self.recording

    def stop(self) -> None:
        with self._lock:
            self.recording = False

    def receive(self, results: Iterable[TranscriptFragment]) -> str:
        """Append finalized fragments; interim ones never reach the buffer."""
        with self._lock:
            if not self.recording:
                return self.pipeline.pending_input
        finals = [r.transcript.strip() for r in results if r.is_final and r.transcript.strip()]
        if not finals:
            return self.pipeline.pending_input
        return self.pipeline.append_input(" ".join(finals))
