"""
Core module containing data models, media handling, playback control and
emotion inference.

Uses lazy imports for modules with heavy dependencies (librosa, soundfile).
"""

# Models are lightweight - import directly
from tonescope.core.models import (
    AudioFile,
    AudioSource,
    Emotion,
    EmotionResult,
    PlaybackPhase,
    PlaybackState,
    compute_progress,
    validate_confidence,
)
from tonescope.core.observable import ObservableValue

__all__ = [
    # Models (always available)
    "AudioFile",
    "AudioSource",
    "Emotion",
    "EmotionResult",
    "PlaybackPhase",
    "PlaybackState",
    "compute_progress",
    "validate_confidence",
    "ObservableValue",
    # Heavy modules (lazy loaded)
    "MediaResourceManager",
    "ClockPlayer",
    "PlaybackController",
    "Classifier",
    "BaseClassifier",
    "EmotionInferencePipeline",
    "Session",
    "create_session",
]


def __getattr__(name: str):
    """Lazy load modules with heavy dependencies."""
    if name == "MediaResourceManager":
        from tonescope.core.media import MediaResourceManager
        return MediaResourceManager
    elif name == "ClockPlayer":
        from tonescope.core.player import ClockPlayer
        return ClockPlayer
    elif name == "PlaybackController":
        from tonescope.core.playback import PlaybackController
        return PlaybackController
    elif name in ("Classifier", "BaseClassifier"):
        from tonescope.core.classifier_base import BaseClassifier, Classifier
        return Classifier if name == "Classifier" else BaseClassifier
    elif name == "EmotionInferencePipeline":
        from tonescope.core.inference import EmotionInferencePipeline
        return EmotionInferencePipeline
    elif name in ("Session", "create_session"):
        from tonescope.core.session import Session, create_session
        return Session if name == "Session" else create_session
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
