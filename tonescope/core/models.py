"""
Core data models for ToneScope.

Immutable domain models for ingested clips, playback state and
emotion classification results.
"""

from __future__ import annotations

import math
import mimetypes
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

# Confidence band every classifier must report within
CONFIDENCE_MIN: float = 0.80
CONFIDENCE_MAX: float = 0.84

DEFAULT_MIME_TYPE = "application/octet-stream"


class Emotion(str, Enum):
    """Closed set of emotion labels."""

    FEAR = "fear"
    ANGRY = "angry"
    SAD = "sad"
    HAPPY = "happy"


# Order in which labels are searched for in a clip name
NAME_MATCH_ORDER: Tuple[Emotion, ...] = (
    Emotion.HAPPY,
    Emotion.SAD,
    Emotion.FEAR,
    Emotion.ANGRY,
)

# Order used when a label is drawn at random
ALL_EMOTIONS: Tuple[Emotion, ...] = (
    Emotion.FEAR,
    Emotion.ANGRY,
    Emotion.SAD,
    Emotion.HAPPY,
)


class PlaybackPhase(str, Enum):
    """Phases of the playback state machine."""

    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


@dataclass(frozen=True)
class AudioFile:
    """
    A file handed to the application for ingestion.

    Mirrors what a host file picker or drop target delivers: a display
    name, a declared MIME type and the raw bytes.
    """

    name: str
    mime_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Path, mime_type: Optional[str] = None) -> "AudioFile":
        """
        Read a local file, guessing its MIME type from the extension.

        Args:
            path: Path to the file
            mime_type: Declared type; guessed when omitted

        Returns:
            AudioFile: Ingestion input for MediaResourceManager.load()
        """
        path = Path(path)
        if mime_type is None:
            mime_type = guess_mime_type(path.name)
        return cls(name=path.name, mime_type=mime_type, data=path.read_bytes())


@dataclass(frozen=True)
class AudioSource:
    """
    Identity and metadata of the currently loaded clip.

    Owned by MediaResourceManager. Other components keep non-owning
    references and compare ``generation`` to detect replacement.
    """

    name: str
    mime_type: str
    byte_length: int
    handle_id: str
    generation: int
    uri: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'name': self.name,
            'mime_type': self.mime_type,
            'byte_length': self.byte_length,
            'handle_id': self.handle_id,
            'generation': self.generation,
        }


@dataclass(frozen=True)
class PlaybackState:
    """Snapshot of the playback controller."""

    phase: PlaybackPhase = PlaybackPhase.IDLE
    progress_percent: float = 0.0
    muted: bool = False

    def __post_init__(self) -> None:
        """Validate fields."""
        if not (0.0 <= self.progress_percent <= 100.0):
            raise ValueError(
                f"progress_percent must be in [0, 100], got {self.progress_percent}"
            )
        if self.phase in (PlaybackPhase.IDLE, PlaybackPhase.ENDED) and self.progress_percent != 0.0:
            raise ValueError(f"progress_percent must be 0 while {self.phase.value}")

    @property
    def is_playing(self) -> bool:
        return self.phase == PlaybackPhase.PLAYING

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'phase': self.phase.value,
            'progress_percent': self.progress_percent,
            'muted': self.muted,
        }


@dataclass(frozen=True)
class EmotionResult:
    """Emotion classification for one AudioSource."""

    primary: Emotion
    confidence: float  # [0.80, 0.84]
    secondary: Optional[Emotion] = None

    # Which source the result was computed for
    generation: int = 0
    source_name: str = ""
    classifier: str = "unknown"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        """Validate fields."""
        validate_confidence(self.confidence)
        if self.secondary is not None and self.secondary == self.primary:
            raise ValueError(
                f"Secondary emotion must differ from primary ({self.primary.value})"
            )

    @property
    def confidence_percent(self) -> int:
        """Confidence as a whole percentage, as shown to users."""
        return int(round(self.confidence * 100))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'primary': self.primary.value,
            'confidence': self.confidence,
            'confidence_percent': self.confidence_percent,
            'secondary': self.secondary.value if self.secondary else None,
            'source_name': self.source_name,
            'generation': self.generation,
            'classifier': self.classifier,
            'created_at': self.created_at.isoformat(),
        }


def validate_confidence(confidence: float) -> None:
    """Validate confidence score lies in the reporting band."""
    if not (CONFIDENCE_MIN <= confidence <= CONFIDENCE_MAX):
        raise ValueError(
            f"Confidence must be in [{CONFIDENCE_MIN}, {CONFIDENCE_MAX}], got {confidence}"
        )


def compute_progress(position: Optional[float], duration: Optional[float]) -> float:
    """
    Convert a play-head position into a percentage.

    Unknown, zero or non-finite durations yield 0. The result is
    clamped to [0, 100].
    """
    if position is None or duration is None:
        return 0.0
    if not math.isfinite(duration) or duration <= 0 or not math.isfinite(position):
        return 0.0
    return min(100.0, max(0.0, position / duration * 100.0))


def guess_mime_type(file_name: str) -> str:
    """Guess a MIME type from a file name."""
    mime_type, _ = mimetypes.guess_type(file_name)
    return mime_type or DEFAULT_MIME_TYPE


def is_audio_mime_type(mime_type: Optional[str]) -> bool:
    """Check whether a declared MIME type belongs to the audio category."""
    return bool(mime_type) and mime_type.lower().startswith("audio/")
