"""Shared fixtures for core tests."""

import asyncio
from typing import List, Optional

import pytest

from tonescope.classifiers import FilenameHeuristicClassifier
from tonescope.core.inference import EmotionInferencePipeline
from tonescope.core.media import MediaResourceManager
from tonescope.core.models import AudioFile
from tonescope.core.playback import PlaybackController
from tonescope.core.player import PlayerEvents
from tonescope.core.session import Session
from tonescope.utils.errors import PlaybackUnavailableError


# ---------------------------------------------------------------------------
# Scripted player
# ---------------------------------------------------------------------------


class FakePlayer(PlayerEvents):
    """MediaPlayer double whose notifications are fired by the test."""

    def __init__(self, ready_on_load: bool = True, clip_duration: float = 10.0):
        super().__init__()
        self.muted = False
        self.current_time = 0.0
        self.duration: Optional[float] = None
        self.is_ready = False
        self.error: Optional[PlaybackUnavailableError] = None
        self.playing = False
        self.fail_with: Optional[PlaybackUnavailableError] = None
        self.play_gate: Optional[asyncio.Event] = None
        self.loaded: List[str] = []
        self.play_calls = 0
        self._ready_on_load = ready_on_load
        self._clip_duration = clip_duration

    def load(self, url: str) -> None:
        self.loaded.append(url)
        self.current_time = 0.0
        self.duration = None
        self.is_ready = False
        self.error = None
        self.playing = False
        if self._ready_on_load:
            self.make_ready()

    def make_ready(self) -> None:
        self.duration = self._clip_duration
        self.is_ready = True
        self.emit("canplay")

    def report_error(self, message: str = "decode failed") -> None:
        self.error = PlaybackUnavailableError(message)
        self.emit("error")

    async def play(self) -> None:
        self.play_calls += 1
        if self.play_gate is not None:
            await self.play_gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        if self.error is not None:
            raise self.error
        if not self.is_ready:
            raise PlaybackUnavailableError("not ready")
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def advance(self, position: float) -> None:
        self.current_time = position
        self.emit("timeupdate")

    def finish(self) -> None:
        self.current_time = self.duration or 0.0
        self.playing = False
        self.emit("timeupdate")
        self.emit("ended")


class GatedSleep:
    """Sleep replacement that blocks until the test opens the gate."""

    def __init__(self):
        self.delays: List[float] = []
        self._gate: Optional[asyncio.Event] = None

    @property
    def gate(self) -> asyncio.Event:
        if self._gate is None:
            self._gate = asyncio.Event()
        return self._gate

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await self.gate.wait()

    def release(self) -> None:
        self.gate.set()


async def no_sleep(delay: float) -> None:
    await asyncio.sleep(0)


def make_file(name: str = "clip.wav", mime_type: str = "audio/wav", data: bytes = b"RIFF0000WAVE") -> AudioFile:
    return AudioFile(name=name, mime_type=mime_type, data=data)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def player():
    """FakePlayer that becomes ready as soon as a URL is loaded."""
    return FakePlayer()


@pytest.fixture
def slow_player():
    """FakePlayer that stays unready until make_ready() is called."""
    return FakePlayer(ready_on_load=False)


@pytest.fixture
def media(tmp_path):
    """MediaResourceManager writing handles under tmp_path."""
    manager = MediaResourceManager(temp_dir=str(tmp_path))
    yield manager
    manager.close()


@pytest.fixture
def classifier():
    """Seeded filename heuristic classifier."""
    return FilenameHeuristicClassifier(seed=1234)


@pytest.fixture
def gated_sleep():
    return GatedSleep()


@pytest.fixture
def pipeline(classifier, media):
    """Pipeline with no real delay."""
    return EmotionInferencePipeline(classifier, media, latency=1.5, sleep=no_sleep)


@pytest.fixture
def session(media, player, classifier):
    """Session wired to a FakePlayer and a pipeline without real delay."""
    pipeline = EmotionInferencePipeline(classifier, media, latency=1.5, sleep=no_sleep)
    s = Session(media=media, controller=PlaybackController(player), pipeline=pipeline)
    yield s
    s.close()
