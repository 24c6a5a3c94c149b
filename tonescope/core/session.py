"""
Session for ToneScope.

Wires the media resource manager, playback controller and inference
pipeline together and exposes the presentation boundary: three
observable streams (playback state, emotion result, analysis flag) and
the user commands.
"""

import logging
from typing import Any, Dict, Optional

from tonescope.core.classifier_base import Classifier
from tonescope.core.inference import EmotionInferencePipeline, create_inference_pipeline
from tonescope.core.media import MediaResourceManager, create_media_manager
from tonescope.core.models import AudioFile, AudioSource, EmotionResult, PlaybackState
from tonescope.core.observable import ObservableValue
from tonescope.core.playback import PlaybackController
from tonescope.core.player import MediaPlayer, create_player
from tonescope.utils.errors import ToneScopeError


class Session:
    """
    Main application session - orchestrates all components.

    Design:
    - Dependency Injection: components are passed in (testable)
    - Commands never raise ToneScopeError; failures are logged and the
      session stays in a safe state
    - A new source resets playback and clears any emotion result
    """

    def __init__(
        self,
        media: MediaResourceManager,
        controller: PlaybackController,
        pipeline: EmotionInferencePipeline,
    ):
        self.media = media
        self.controller = controller
        self.pipeline = pipeline
        self.logger = logging.getLogger('session')
        self._closed = False
        self._unsubscribe = media.subscribe(self._on_source_changed)

    # Observable streams

    @property
    def playback_state(self) -> ObservableValue[PlaybackState]:
        return self.controller.state_stream

    @property
    def emotion_result(self) -> ObservableValue[Optional[EmotionResult]]:
        return self.pipeline.result

    @property
    def is_analyzing(self) -> ObservableValue[bool]:
        return self.pipeline.is_analyzing

    @property
    def source(self) -> Optional[AudioSource]:
        return self.media.current

    # Commands

    def load_file(self, file: AudioFile) -> Optional[AudioSource]:
        """Load a file chosen through an (already audio-filtered) picker."""
        return self._load(file, dropped=False)

    def drop_file(self, file: AudioFile) -> Optional[AudioSource]:
        """Load a dropped file; non-audio drops are ignored."""
        return self._load(file, dropped=True)

    async def toggle_playback(self) -> bool:
        """Play or pause. Returns whether playback is running."""
        return await self.controller.toggle_playback()

    def toggle_mute(self) -> bool:
        """Flip mute. Returns the new muted flag."""
        return self.controller.toggle_mute()

    async def analyze(self) -> Optional[EmotionResult]:
        """Classify the active source."""
        return await self.pipeline.analyze()

    def close(self) -> None:
        """Tear down: stop playback and release the active handle."""
        if self._closed:
            return
        self._closed = True
        self.logger.info("Closing session")
        self._unsubscribe()
        self.controller.detach()
        self.pipeline.clear()
        self.media.close()
        close_player = getattr(self.controller.player, "close", None)
        if close_player is not None:
            close_player()

    def _load(self, file: AudioFile, dropped: bool) -> Optional[AudioSource]:
        try:
            return self.media.load(file, dropped=dropped)
        except ToneScopeError as e:
            self.logger.error(f"Could not load {file.name}: {e}")
            return None

    def _on_source_changed(self, source: Optional[AudioSource]) -> None:
        self.pipeline.clear()
        self.controller.attach(source)

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def create_session(
    config: Dict[str, Any],
    player: Optional[MediaPlayer] = None,
    classifier: Optional[Classifier] = None,
) -> Session:
    """
    Factory function to create a fully wired session.

    Args:
        config: Configuration dict (see get_default_config())
        player: Media player to use instead of a ClockPlayer
        classifier: Classifier to use instead of the configured one

    Returns:
        Session: Configured session
    """
    media = create_media_manager(config.get('media', {}))
    if player is None:
        player = create_player(config.get('playback', {}))
    controller = PlaybackController(player)
    pipeline = create_inference_pipeline(config.get('inference', {}), media, classifier)

    return Session(media=media, controller=controller, pipeline=pipeline)
