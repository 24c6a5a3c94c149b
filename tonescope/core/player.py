"""
Media playback primitive for ToneScope.

The playback controller drives a player through the MediaPlayer protocol:
load a URL, start and pause playback, toggle mute, read position and
duration, and subscribe to "timeupdate", "ended", "canplay" and "error"
notifications.

ClockPlayer is the bundled implementation. It probes the clip duration
off the event loop and advances a virtual play-head on the loop clock,
which is all the controller needs to report progress.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Callable, DefaultDict, List, Optional, Protocol
from urllib.parse import urlparse
from urllib.request import url2pathname

import librosa
import soundfile as sf

from tonescope.utils.errors import PlaybackUnavailableError

PLAYER_EVENTS = ("timeupdate", "ended", "canplay", "error")

TICK_INTERVAL: float = 0.25  # seconds between timeupdate notifications

logger = logging.getLogger(__name__)


class MediaPlayer(Protocol):
    """
    Host media-playback primitive.

    Any object with these members can back a PlaybackController.
    """

    muted: bool

    @property
    def current_time(self) -> float:
        """Play-head position in seconds."""
        ...

    @property
    def duration(self) -> Optional[float]:
        """Clip duration in seconds, None until known."""
        ...

    @property
    def is_ready(self) -> bool:
        """True once enough is known to begin playback."""
        ...

    @property
    def error(self) -> Optional[PlaybackUnavailableError]:
        """Load failure, if any."""
        ...

    def on(self, event: str, callback: Callable[[], None]) -> Callable[[], None]:
        """Subscribe to a notification; returns an unsubscribe callable."""
        ...

    def load(self, url: str) -> None:
        ...

    async def play(self) -> None:
        """
        Start or resume playback.

        Raises:
            PlaybackUnavailableError: If the media cannot be played
        """
        ...

    def pause(self) -> None:
        ...


class PlayerEvents:
    """Notification registry shared by player implementations."""

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, List[Callable[[], None]]] = defaultdict(list)

    def on(self, event: str, callback: Callable[[], None]) -> Callable[[], None]:
        if event not in PLAYER_EVENTS:
            raise ValueError(f"Unknown player event: {event}")
        self._listeners[event].append(callback)

        def off() -> None:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

        return off

    def emit(self, event: str) -> None:
        for callback in list(self._listeners[event]):
            try:
                callback()
            except Exception:
                logger.exception(f"Listener for {event!r} failed")


def url_to_path(url: str) -> str:
    """Convert a file:// URL into a local filesystem path."""
    parsed = urlparse(url)
    if parsed.scheme not in ("", "file"):
        raise PlaybackUnavailableError(f"Unsupported URL scheme: {parsed.scheme}", url=url)
    return url2pathname(parsed.path)


def probe_duration(path: str) -> float:
    """
    Read the duration of an audio file without decoding it fully.

    Tries soundfile first, then librosa (which can read MP3 through
    audioread).

    Raises:
        PlaybackUnavailableError: If neither backend can read the file
    """
    try:
        return float(sf.info(path).duration)
    except Exception as e:
        logger.debug(f"soundfile could not read {path}: {e}")

    try:
        return float(librosa.get_duration(path=path))
    except Exception as e:
        raise PlaybackUnavailableError(f"Unsupported or unreadable audio: {e}", url=path) from e


class ClockPlayer(PlayerEvents):
    """
    Player that tracks a virtual play-head against the event loop clock.

    load() must be called from inside a running event loop.
    """

    def __init__(
        self,
        tick_interval: float = TICK_INTERVAL,
        probe: Callable[[str], float] = probe_duration,
    ):
        super().__init__()
        self.tick_interval = tick_interval
        self.muted = False
        self._probe_fn = probe
        self._url: Optional[str] = None
        self._duration: Optional[float] = None
        self._position = 0.0
        self._started_at: Optional[float] = None
        self._ready = False
        self._error: Optional[PlaybackUnavailableError] = None
        self._probe_task: Optional[asyncio.Task] = None
        self._tick_task: Optional[asyncio.Task] = None

    @property
    def current_time(self) -> float:
        if self._started_at is None:
            return self._position
        elapsed = asyncio.get_running_loop().time() - self._started_at
        if self._duration is not None:
            return min(self._duration, elapsed)
        return elapsed

    @property
    def duration(self) -> Optional[float]:
        return self._duration

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def error(self) -> Optional[PlaybackUnavailableError]:
        return self._error

    @property
    def is_playing(self) -> bool:
        return self._started_at is not None

    def load(self, url: str) -> None:
        """Drop the current clip and start probing ``url``."""
        self._cancel_tasks()
        self._url = url
        self._duration = None
        self._position = 0.0
        self._started_at = None
        self._ready = False
        self._error = None
        self._probe_task = asyncio.get_running_loop().create_task(self._probe(url))

    async def _probe(self, url: str) -> None:
        loop = asyncio.get_running_loop()
        try:
            path = url_to_path(url)
            duration = await loop.run_in_executor(None, self._probe_fn, path)
        except PlaybackUnavailableError as e:
            self._report_error(url, e)
            return
        except Exception as e:
            self._report_error(url, PlaybackUnavailableError(f"Duration probe failed: {e}", url=url))
            return

        self._duration = duration
        self._ready = True
        logger.debug(f"Ready: {url} ({duration:.2f}s)")
        self.emit("canplay")

    def _report_error(self, url: str, error: PlaybackUnavailableError) -> None:
        logger.warning(f"Cannot play {url}: {error}")
        self._error = error
        self.emit("error")

    async def play(self) -> None:
        if self._url is None:
            raise PlaybackUnavailableError("No media loaded")
        if self._error is not None:
            raise self._error
        if not self._ready:
            raise PlaybackUnavailableError("Media is not ready", url=self._url)
        if self.is_playing:
            return

        # Restart a finished clip from the top
        if self._duration is not None and self._position >= self._duration:
            self._position = 0.0

        loop = asyncio.get_running_loop()
        self._started_at = loop.time() - self._position
        self._tick_task = loop.create_task(self._run())

    def pause(self) -> None:
        if not self.is_playing:
            return
        self._position = self.current_time
        self._started_at = None
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None
        self.emit("timeupdate")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            position = self.current_time
            if self._duration is not None and position >= self._duration:
                self._position = self._duration
                self._started_at = None
                self._tick_task = None
                self.emit("timeupdate")
                self.emit("ended")
                return
            self.emit("timeupdate")

    def close(self) -> None:
        """Stop playback and any pending probe."""
        self._cancel_tasks()
        self._started_at = None

    def _cancel_tasks(self) -> None:
        for task in (self._probe_task, self._tick_task):
            if task is not None and not task.done():
                task.cancel()
        self._probe_task = None
        self._tick_task = None


def create_player(config: Optional[dict] = None) -> ClockPlayer:
    """
    Factory function to create the default player.

    Args:
        config: Optional "playback" configuration section
    """
    if config is None:
        config = {}
    return ClockPlayer(tick_interval=config.get('tick_interval', TICK_INTERVAL))
