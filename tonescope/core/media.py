"""
Media resource manager for ToneScope.

Owns the currently loaded clip and the transient playable handle that
backs it. A handle is a temporary file holding the clip bytes; the player
loads it by URI. Exactly one handle is held at a time and it is released
when the clip is replaced or the manager is closed.
"""

import logging
import os
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from tonescope.core.models import AudioFile, AudioSource, is_audio_mime_type
from tonescope.core.observable import ObservableValue
from tonescope.utils.errors import FileTooLargeError, InvalidInputTypeError, MediaResourceError

MAX_FILE_SIZE: int = 524288000  # 500 MB

logger = logging.getLogger(__name__)


@dataclass
class PlayableHandle:
    """Temporary on-disk copy of a clip that a player can open."""

    handle_id: str
    path: Path
    released: bool = False

    @property
    def url(self) -> str:
        return self.path.as_uri()

    def release(self) -> bool:
        """
        Delete the backing file.

        Returns:
            True if this call released the handle, False if it was
            already released
        """
        if self.released:
            return False
        self.released = True
        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.warning(f"Handle file already gone: {self.path}")
        return True


class MediaResourceManager:
    """
    Loads audio files and manages their playable handles.

    Not thread-safe; all calls are expected on the event loop thread.
    """

    def __init__(
        self,
        max_file_size: int = MAX_FILE_SIZE,
        temp_dir: Optional[str] = None,
    ):
        """
        Initialize manager with configuration.

        Args:
            max_file_size: Maximum accepted file size in bytes
            temp_dir: Directory for handle files (system default if None)
        """
        self.max_file_size = max_file_size
        self.temp_dir = temp_dir
        self._source: ObservableValue[Optional[AudioSource]] = ObservableValue(None, "audio_source")
        self._handle: Optional[PlayableHandle] = None
        self._generation = 0
        self.logger = logging.getLogger('media')

    @property
    def current(self) -> Optional[AudioSource]:
        return self._source.value

    @property
    def current_handle(self) -> Optional[PlayableHandle]:
        return self._handle

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        """Check whether a generation tag still identifies the active source."""
        return self.current is not None and self.current.generation == generation

    def subscribe(self, callback: Callable[[Optional[AudioSource]], None]) -> Callable[[], None]:
        """Register a callback fired whenever the active source changes."""
        return self._source.subscribe(callback)

    def load(self, file: AudioFile, dropped: bool = False) -> Optional[AudioSource]:
        """
        Make ``file`` the active clip.

        Args:
            file: File to ingest
            dropped: True for drag-and-drop input, which must declare an
                     audio MIME type. Picker input is already filtered.

        Returns:
            AudioSource: The new active source, or None when a dropped
            file was rejected (the previous source is left untouched)

        Raises:
            FileTooLargeError: File exceeds size limit
            MediaResourceError: Handle file could not be created
        """
        if dropped:
            try:
                self._validate_drop(file)
            except InvalidInputTypeError as e:
                self.logger.debug(f"Ignoring dropped file {file.name!r}: {e}")
                return None

        self._validate_size(file)

        # Previous handle goes before the new one is created
        if self.current is not None:
            self.release(self.current)

        try:
            handle = self._create_handle(file)
        except MediaResourceError:
            self._handle = None
            self._source.set(None)
            raise

        self._generation += 1
        self._handle = handle
        source = AudioSource(
            name=file.name,
            mime_type=file.mime_type,
            byte_length=file.size,
            handle_id=handle.handle_id,
            generation=self._generation,
            uri=handle.url,
        )
        self.logger.info(
            f"Loaded {file.name} ({file.size} bytes, {file.mime_type}) "
            f"as generation {self._generation}"
        )
        self._source.set(source)
        return source

    def release(self, source: AudioSource) -> bool:
        """
        Free the handle belonging to ``source``.

        Idempotent: releasing a source whose handle is already gone
        returns False.
        """
        handle = self._handle
        if handle is None or handle.handle_id != source.handle_id:
            return False

        released = handle.release()
        if released:
            self.logger.debug(f"Released handle {handle.handle_id} ({source.name})")
        return released

    def close(self) -> None:
        """Release the active handle and forget the current source."""
        if self.current is not None:
            self.release(self.current)
            self._source.set(None)
        self._handle = None

    def _validate_drop(self, file: AudioFile) -> None:
        if not is_audio_mime_type(file.mime_type):
            raise InvalidInputTypeError(
                f"Dropped file {file.name!r} is not audio",
                mime_type=file.mime_type
            )

    def _validate_size(self, file: AudioFile) -> None:
        if file.size > self.max_file_size:
            raise FileTooLargeError(
                f"File too large: {file.size / 1024 / 1024:.1f} MB. "
                f"Maximum: {self.max_file_size / 1024 / 1024:.1f} MB",
                file_size=file.size,
                max_size=self.max_file_size
            )

    def _create_handle(self, file: AudioFile) -> PlayableHandle:
        """Write the clip bytes to a fresh temporary file."""
        suffix = Path(file.name).suffix
        try:
            fd, tmp_name = tempfile.mkstemp(prefix="tonescope-", suffix=suffix, dir=self.temp_dir)
        except OSError as e:
            raise MediaResourceError(
                f"Could not allocate handle for {file.name}: {e}",
                file_name=file.name
            ) from e

        try:
            with os.fdopen(fd, "wb") as f:
                f.write(file.data)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise MediaResourceError(
                f"Could not write handle for {file.name}: {e}",
                file_name=file.name
            ) from e

        return PlayableHandle(handle_id=uuid.uuid4().hex, path=Path(tmp_name))

    def __enter__(self) -> "MediaResourceManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def create_media_manager(config: Optional[Dict[str, Any]] = None) -> MediaResourceManager:
    """
    Factory function to create MediaResourceManager with configuration.

    Args:
        config: Optional "media" configuration section

    Returns:
        MediaResourceManager: Configured manager instance
    """
    if config is None:
        config = {}

    return MediaResourceManager(
        max_file_size=config.get('max_file_size', MAX_FILE_SIZE),
        temp_dir=config.get('temp_dir'),
    )
