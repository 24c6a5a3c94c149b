"""
Playback controller for ToneScope.

An explicit state machine over Idle, Loading, Playing, Paused and Ended
driving a single MediaPlayer. Each state change is a named transition
delivered to every subscriber, and the latest PlaybackState is published
on an observable stream.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Dict, FrozenSet, List, Optional

from tonescope.core.models import AudioSource, PlaybackPhase, PlaybackState, compute_progress
from tonescope.core.observable import ObservableValue
from tonescope.core.player import MediaPlayer
from tonescope.utils.errors import PlaybackStateError, PlaybackUnavailableError

Phase = PlaybackPhase

# Legal phase changes; staying in the same phase is always legal
TRANSITIONS: Dict[PlaybackPhase, FrozenSet[PlaybackPhase]] = {
    Phase.IDLE: frozenset({Phase.LOADING, Phase.PLAYING}),
    Phase.LOADING: frozenset({Phase.PLAYING, Phase.IDLE}),
    Phase.PLAYING: frozenset({Phase.PAUSED, Phase.ENDED, Phase.IDLE}),
    Phase.PAUSED: frozenset({Phase.PLAYING, Phase.IDLE}),
    Phase.ENDED: frozenset({Phase.PLAYING, Phase.IDLE}),
}

# Transition name used when play() succeeds from each phase
_START_NAMES: Dict[PlaybackPhase, str] = {
    Phase.IDLE: "start",
    Phase.LOADING: "start",
    Phase.PAUSED: "resume",
    Phase.ENDED: "restart",
}

TransitionListener = Callable[[PlaybackState, PlaybackState, str], None]


class PlaybackController:
    """
    Drives one media player for the active AudioSource.

    Transition names delivered to subscribers:
    attach, reset, detach, start, resume, restart, pause, end, fail,
    mute, progress.
    """

    def __init__(self, player: MediaPlayer):
        """
        Initialize controller and subscribe to player notifications.

        Args:
            player: Media player to drive
        """
        self.player = player
        self.state_stream: ObservableValue[PlaybackState] = ObservableValue(
            PlaybackState(), "playback_state"
        )
        self.last_error: Optional[PlaybackUnavailableError] = None
        self._listeners: List[TransitionListener] = []
        self._source: Optional[AudioSource] = None
        self._pending_ready: Optional[asyncio.Future] = None
        self._pause_requests = 0
        self.logger = logging.getLogger('playback')

        player.on("timeupdate", self._on_time_update)
        player.on("ended", self._on_ended)
        player.on("canplay", self._on_ready)
        player.on("error", self._on_player_error)

    @property
    def state(self) -> PlaybackState:
        return self.state_stream.value

    @property
    def source(self) -> Optional[AudioSource]:
        return self._source

    @property
    def is_waiting_for_ready(self) -> bool:
        return self._pending_ready is not None and not self._pending_ready.done()

    def subscribe(self, callback: TransitionListener) -> Callable[[], None]:
        """
        Register a transition listener.

        Args:
            callback: Called as callback(old_state, new_state, transition_name)

        Returns:
            Callable that removes the subscription
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # ------------------------------------------------------------------
    # Source binding
    # ------------------------------------------------------------------

    def attach(self, source: Optional[AudioSource]) -> None:
        """
        Bind the controller to a new source (or none).

        Any pending play request for the previous source is discarded and
        progress resets to 0 before the new handle starts loading.
        """
        self._discard_pending("source replaced")
        self._source = source
        self._transition(Phase.IDLE, "reset", progress=0.0)

        if source is None:
            self.player.pause()
            return

        self.player.muted = self.state.muted
        self.player.load(source.uri)
        self._transition(Phase.LOADING, "attach")
        self.logger.debug(f"Attached {source.name} (generation {source.generation})")

    def detach(self) -> None:
        """Release the current source reference and return to Idle."""
        self._discard_pending("detached")
        if self._source is not None:
            self.player.pause()
        self._source = None
        self._transition(Phase.IDLE, "detach", progress=0.0)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def play(self) -> bool:
        """
        Start or resume playback.

        Waits for the player's "canplay" notification when it is not yet
        ready. The request is abandoned if the source is replaced or
        playback is paused before the player has started.

        Returns:
            True if playback is running when the call returns
        """
        source = self._source
        if source is None:
            self.logger.debug("play() ignored: nothing loaded")
            return False
        if self.state.phase == Phase.PLAYING:
            return True

        if not self.player.is_ready and self.player.error is None:
            proceed = await self._wait_until_ready()
            if not proceed or self._source is not source:
                self.logger.debug(f"Discarded play request for {source.name}")
                return False

        pauses = self._pause_requests
        try:
            await self.player.play()
        except PlaybackUnavailableError as e:
            if self._source is source:
                self._fail(e)
            return False

        if self._source is not source:
            return False
        if self._pause_requests != pauses:
            # pause() arrived while the player was starting
            self.player.pause()
            self.logger.debug(f"Play request for {source.name} overtaken by pause")
            return False

        self._transition(Phase.PLAYING, _START_NAMES.get(self.state.phase, "start"))
        return True

    def pause(self) -> bool:
        """
        Pause playback. Succeeds whenever a source is attached.

        Also abandons a play request still waiting for readiness.
        """
        if self._source is None:
            return False

        self._pause_requests += 1
        self._discard_pending("paused")
        self.player.pause()
        if self.state.phase == Phase.PLAYING:
            self._transition(Phase.PAUSED, "pause")
        return True

    async def toggle_playback(self) -> bool:
        """Pause when playing, otherwise play. Returns whether playing."""
        if self.state.phase == Phase.PLAYING:
            self.pause()
        else:
            await self.play()
        return self.state.is_playing

    def toggle_mute(self) -> bool:
        """Flip the muted flag. Phase and progress are untouched."""
        muted = not self.state.muted
        self.player.muted = muted
        self._transition(self.state.phase, "mute", muted=muted)
        return muted

    # ------------------------------------------------------------------
    # Player notifications
    # ------------------------------------------------------------------

    def _on_time_update(self) -> None:
        if self._source is None or self.state.phase in (Phase.IDLE, Phase.ENDED):
            return
        progress = compute_progress(self.player.current_time, self.player.duration)
        if progress != self.state.progress_percent:
            self._transition(self.state.phase, "progress", progress=progress)

    def _on_ended(self) -> None:
        if self._source is None:
            return
        if self.state.phase != Phase.PLAYING:
            self.logger.debug(f"Ignoring end-of-stream while {self.state.phase.value}")
            return
        self._transition(Phase.ENDED, "end", progress=0.0)

    def _on_ready(self) -> None:
        if self.is_waiting_for_ready:
            self._pending_ready.set_result(True)
        self._pending_ready = None

    def _on_player_error(self) -> None:
        self.last_error = self.player.error
        self.logger.warning(f"Player reported an error: {self.player.error}")
        # Let a waiting play() proceed so it observes the failure
        if self.is_waiting_for_ready:
            self._pending_ready.set_result(True)
        self._pending_ready = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _wait_until_ready(self) -> bool:
        if self._pending_ready is None or self._pending_ready.done():
            self._pending_ready = asyncio.get_running_loop().create_future()
        # Shielded so one cancelled caller cannot cancel the shared wait
        return await asyncio.shield(self._pending_ready)

    def _discard_pending(self, reason: str) -> None:
        if self.is_waiting_for_ready:
            self.logger.debug(f"Discarding pending play request: {reason}")
            self._pending_ready.set_result(False)
        self._pending_ready = None

    def _fail(self, error: PlaybackUnavailableError) -> None:
        self.last_error = error
        self.logger.error(f"Playback failed: {error}")
        self.player.pause()
        self._transition(Phase.IDLE, "fail", progress=0.0)

    def _transition(
        self,
        phase: PlaybackPhase,
        name: str,
        progress: Optional[float] = None,
        muted: Optional[bool] = None,
    ) -> None:
        old = self.state
        if phase != old.phase and phase not in TRANSITIONS[old.phase]:
            raise PlaybackStateError(
                f"Illegal transition {name!r}: {old.phase.value} -> {phase.value}",
                from_phase=old.phase.value,
                to_phase=phase.value,
            )

        if progress is None:
            progress = old.progress_percent
        if phase in (Phase.IDLE, Phase.ENDED):
            progress = 0.0

        new = replace(
            old,
            phase=phase,
            progress_percent=progress,
            muted=old.muted if muted is None else muted,
        )
        if new == old:
            return

        if phase != old.phase:
            self.logger.info(f"Playback {name}: {old.phase.value} -> {phase.value}")

        self.state_stream.set(new)
        for callback in list(self._listeners):
            try:
                callback(old, new, name)
            except Exception:
                self.logger.exception(f"Transition listener failed on {name!r}")
