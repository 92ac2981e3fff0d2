"""
Transcript assembly for a single call.

Assistant text arrives as a stream of partial deltas that are folded into one
line when the utterance completes; caller transcriptions arrive whole. Lines are
kept in arrival order and read once when the call is finalized.
"""

from typing import List, Optional

from pydantic import BaseModel

SPEAKER_CALLER = "Caller"
SPEAKER_ASSISTANT = "Assistant"


class TranscriptLine(BaseModel):
    """One speaker-tagged utterance."""
    speaker: str
    text: str

    def __str__(self) -> str:
        return f"{self.speaker}: {self.text}"


class TranscriptAssembler:
    """Folds partial assistant text and whole caller utterances into lines."""

    def __init__(self):
        self.lines: List[TranscriptLine] = []
        self._assistant_parts: List[str] = []

    @property
    def pending_assistant_text(self) -> str:
        return "".join(self._assistant_parts)

    def add_assistant_delta(self, delta: str) -> None:
        if delta:
            self._assistant_parts.append(delta)

    def complete_assistant_turn(self) -> Optional[TranscriptLine]:
        """Flush the accumulated assistant text as one line.

        Whitespace is trimmed; an empty result produces no line. The
        accumulator is cleared either way.
        """
        text = self.pending_assistant_text.strip()
        self._assistant_parts = []
        if not text:
            return None
        return self._append(SPEAKER_ASSISTANT, text)

    def add_caller_utterance(self, transcript: str) -> Optional[TranscriptLine]:
        text = (transcript or "").strip()
        if not text:
            return None
        return self._append(SPEAKER_CALLER, text)

    def flush(self) -> Optional[TranscriptLine]:
        """Flush any unfinished assistant utterance (used at finalize)."""
        return self.complete_assistant_turn()

    def render(self) -> str:
        return "\n".join(str(line) for line in self.lines)

    def _append(self, speaker: str, text: str) -> TranscriptLine:
        line = TranscriptLine(speaker=speaker, text=text)
        self.lines.append(line)
        return line

    def __len__(self) -> int:
        return len(self.lines)
