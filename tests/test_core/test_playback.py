"""Tests for the PlaybackController state machine."""

import asyncio

import pytest

from tonescope.core.models import PlaybackPhase, PlaybackState
from tonescope.core.playback import PlaybackController
from tonescope.utils.errors import PlaybackStateError, PlaybackUnavailableError

from conftest import FakePlayer, make_file


Phase = PlaybackPhase


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _attached(media, player, name="a.wav"):
    """Controller attached to a freshly loaded source."""
    controller = PlaybackController(player)
    source = media.load(make_file(name))
    controller.attach(source)
    return controller, source


def _record(controller):
    names = []
    controller.subscribe(lambda old, new, name: names.append(name))
    return names


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestAttach:
    def test_starts_idle(self, player):
        controller = PlaybackController(player)
        assert controller.state == PlaybackState()

    def test_attach_enters_loading(self, media, player):
        controller, source = _attached(media, player)
        assert controller.state.phase == Phase.LOADING
        assert controller.state.progress_percent == 0.0
        assert player.loaded == [source.uri]

    def test_attach_none_returns_to_idle(self, media, player):
        controller, _ = _attached(media, player)
        controller.attach(None)
        assert controller.state.phase == Phase.IDLE
        assert controller.source is None

    def test_attach_applies_mute_to_player(self, media, player):
        controller = PlaybackController(player)
        controller.toggle_mute()
        player.muted = False
        controller.attach(media.load(make_file()))
        assert player.muted is True


class TestPlay:
    @pytest.mark.asyncio
    async def test_play_when_ready(self, media, player):
        controller, _ = _attached(media, player)
        names = _record(controller)

        assert await controller.play() is True
        assert controller.state.phase == Phase.PLAYING
        assert names == ["start"]

    @pytest.mark.asyncio
    async def test_play_without_source_is_ignored(self, player):
        controller = PlaybackController(player)
        assert await controller.play() is False
        assert player.play_calls == 0

    @pytest.mark.asyncio
    async def test_play_waits_for_ready(self, media, slow_player):
        controller, _ = _attached(media, slow_player)

        task = asyncio.ensure_future(controller.play())
        await asyncio.sleep(0)
        assert controller.is_waiting_for_ready
        assert controller.state.phase == Phase.LOADING
        assert slow_player.play_calls == 0

        slow_player.make_ready()
        assert await task is True
        assert controller.state.phase == Phase.PLAYING

    @pytest.mark.asyncio
    async def test_wait_does_not_block_mute(self, media, slow_player):
        controller, _ = _attached(media, slow_player)
        task = asyncio.ensure_future(controller.play())
        await asyncio.sleep(0)

        assert controller.toggle_mute() is True
        assert controller.state.muted is True
        assert controller.state.phase == Phase.LOADING

        slow_player.make_ready()
        assert await task is True

    @pytest.mark.asyncio
    async def test_replacing_source_discards_pending_play(self, media, slow_player):
        controller, _ = _attached(media, slow_player, "a.wav")
        task = asyncio.ensure_future(controller.play())
        await asyncio.sleep(0)

        new_source = media.load(make_file("b.mp3", mime_type="audio/mpeg"))
        controller.attach(new_source)
        assert await task is False

        # Readiness of the new source must not start playback on its own
        slow_player.make_ready()
        await asyncio.sleep(0)
        assert controller.state.phase == Phase.LOADING
        assert slow_player.play_calls == 0

    @pytest.mark.asyncio
    async def test_pause_discards_pending_play(self, media, slow_player):
        controller, _ = _attached(media, slow_player)
        task = asyncio.ensure_future(controller.play())
        await asyncio.sleep(0)

        assert controller.pause() is True
        assert await task is False
        slow_player.make_ready()
        assert controller.state.phase == Phase.LOADING

    @pytest.mark.asyncio
    async def test_concurrent_play_requests_share_wait(self, media, slow_player):
        controller, _ = _attached(media, slow_player)
        first = asyncio.ensure_future(controller.play())
        second = asyncio.ensure_future(controller.play())
        await asyncio.sleep(0)

        slow_player.make_ready()
        assert await first is True
        assert await second is True
        assert controller.state.phase == Phase.PLAYING

    @pytest.mark.asyncio
    async def test_cancelled_caller_leaves_wait_intact(self, media, slow_player):
        controller, _ = _attached(media, slow_player)
        cancelled = asyncio.ensure_future(controller.play())
        survivor = asyncio.ensure_future(controller.play())
        await asyncio.sleep(0)

        cancelled.cancel()
        await asyncio.sleep(0)
        slow_player.make_ready()
        assert await survivor is True


class TestPlaybackFailure:
    @pytest.mark.asyncio
    async def test_failure_forces_idle(self, media, player):
        controller, _ = _attached(media, player)
        names = _record(controller)
        player.fail_with = PlaybackUnavailableError("unsupported format")

        assert await controller.play() is False
        assert controller.state.phase == Phase.IDLE
        assert controller.state.progress_percent == 0.0
        assert isinstance(controller.last_error, PlaybackUnavailableError)
        assert names == ["fail"]

    @pytest.mark.asyncio
    async def test_failure_from_paused(self, media, player):
        controller, _ = _attached(media, player)
        await controller.play()
        player.advance(4.0)
        controller.pause()

        player.fail_with = PlaybackUnavailableError("device lost")
        assert await controller.play() is False
        assert controller.state == PlaybackState(phase=Phase.IDLE, progress_percent=0.0)

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, media, player):
        controller, _ = _attached(media, player)
        player.fail_with = PlaybackUnavailableError("busy")
        await controller.play()

        player.fail_with = None
        assert await controller.play() is True
        assert controller.state.phase == Phase.PLAYING

    @pytest.mark.asyncio
    async def test_player_error_while_waiting(self, media, slow_player):
        controller, _ = _attached(media, slow_player)
        task = asyncio.ensure_future(controller.play())
        await asyncio.sleep(0)

        slow_player.report_error("cannot decode")
        assert await task is False
        assert controller.state.phase == Phase.IDLE
        assert not controller.state.is_playing

    @pytest.mark.asyncio
    async def test_player_error_before_play(self, media, slow_player):
        controller, _ = _attached(media, slow_player)
        slow_player.report_error("cannot decode")
        assert controller.state.phase == Phase.LOADING

        assert await controller.play() is False
        assert controller.state.phase == Phase.IDLE


class TestPauseAndToggle:
    @pytest.mark.asyncio
    async def test_pause_from_playing(self, media, player):
        controller, _ = _attached(media, player)
        await controller.play()
        player.advance(2.5)

        assert controller.pause() is True
        assert controller.state.phase == Phase.PAUSED
        assert controller.state.progress_percent == 25.0
        assert player.playing is False

    @pytest.mark.asyncio
    async def test_pause_while_player_starting_wins(self, media, player):
        controller, _ = _attached(media, player)
        player.play_gate = asyncio.Event()

        task = asyncio.ensure_future(controller.play())
        await asyncio.sleep(0)
        assert player.play_calls == 1

        assert controller.pause() is True
        player.play_gate.set()

        assert await task is False
        assert controller.state.phase == Phase.LOADING
        assert player.playing is False

    @pytest.mark.asyncio
    async def test_pause_while_resuming_stays_paused(self, media, player):
        controller, _ = _attached(media, player)
        await controller.play()
        player.advance(4.0)
        controller.pause()

        player.play_gate = asyncio.Event()
        task = asyncio.ensure_future(controller.play())
        await asyncio.sleep(0)
        controller.pause()
        player.play_gate.set()

        assert await task is False
        assert controller.state == PlaybackState(phase=Phase.PAUSED, progress_percent=40.0)

    def test_pause_without_source(self, player):
        assert PlaybackController(player).pause() is False

    @pytest.mark.asyncio
    async def test_resume_transition_name(self, media, player):
        controller, _ = _attached(media, player)
        await controller.play()
        controller.pause()
        names = _record(controller)
        await controller.play()
        assert names == ["resume"]

    @pytest.mark.asyncio
    async def test_toggle_playback(self, media, player):
        controller, _ = _attached(media, player)
        assert await controller.toggle_playback() is True
        assert await controller.toggle_playback() is False
        assert controller.state.phase == Phase.PAUSED
        assert await controller.toggle_playback() is True


class TestMute:
    @pytest.mark.asyncio
    async def test_mute_keeps_phase_and_progress(self, media, player):
        controller, _ = _attached(media, player)
        await controller.play()
        player.advance(3.0)
        before = controller.state

        assert controller.toggle_mute() is True
        after = controller.state
        assert after.phase == before.phase
        assert after.progress_percent == before.progress_percent
        assert player.muted is True

        assert controller.toggle_mute() is False
        assert controller.state.phase == before.phase

    def test_mute_without_source(self, player):
        controller = PlaybackController(player)
        controller.toggle_mute()
        assert controller.state == PlaybackState(muted=True)


class TestProgress:
    @pytest.mark.asyncio
    async def test_time_updates_drive_progress(self, media, player):
        controller, _ = _attached(media, player)
        await controller.play()

        player.advance(1.0)
        assert controller.state.progress_percent == 10.0
        player.advance(7.5)
        assert controller.state.progress_percent == 75.0

    @pytest.mark.asyncio
    async def test_progress_clamped(self, media, player):
        controller, _ = _attached(media, player)
        await controller.play()
        player.advance(50.0)
        assert controller.state.progress_percent == 100.0

    @pytest.mark.asyncio
    async def test_unknown_duration_reports_zero(self, media, player):
        controller, _ = _attached(media, player)
        await controller.play()
        player.duration = float("nan")
        player.advance(3.0)
        assert controller.state.progress_percent == 0.0

    def test_time_update_while_idle_ignored(self, player):
        controller = PlaybackController(player)
        player.duration = 10.0
        player.advance(5.0)
        assert controller.state.progress_percent == 0.0

    @pytest.mark.asyncio
    async def test_end_of_stream(self, media, player):
        controller, _ = _attached(media, player)
        await controller.play()
        player.advance(9.0)
        names = _record(controller)

        player.finish()
        assert controller.state.phase == Phase.ENDED
        assert controller.state.progress_percent == 0.0
        assert names[-1] == "end"

        # Sampling stops after the end
        player.advance(4.0)
        assert controller.state.progress_percent == 0.0

    @pytest.mark.asyncio
    async def test_restart_after_end(self, media, player):
        controller, _ = _attached(media, player)
        await controller.play()
        player.finish()

        names = _record(controller)
        assert await controller.play() is True
        assert names == ["restart"]
        player.advance(5.0)
        assert controller.state.progress_percent == 50.0

    def test_end_while_loading_ignored(self, media, player):
        controller, _ = _attached(media, player)
        player.finish()
        assert controller.state.phase == Phase.LOADING


class TestSourceReplacement:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("pause_first", [False, True])
    async def test_replacing_resets_progress(self, media, player, pause_first):
        controller, _ = _attached(media, player)
        await controller.play()
        player.advance(6.0)
        if pause_first:
            controller.pause()

        names = _record(controller)
        controller.attach(media.load(make_file("b.wav")))

        assert names == ["reset", "attach"]
        assert controller.state.phase == Phase.LOADING
        assert controller.state.progress_percent == 0.0

    @pytest.mark.asyncio
    async def test_detach(self, media, player):
        controller, _ = _attached(media, player)
        await controller.play()
        controller.detach()
        assert controller.state.phase == Phase.IDLE
        assert player.playing is False
        assert await controller.play() is False


class TestTransitions:
    def test_illegal_transition_raises(self, player):
        controller = PlaybackController(player)
        with pytest.raises(PlaybackStateError) as exc_info:
            controller._transition(Phase.PAUSED, "pause")
        assert exc_info.value.from_phase == "idle"
        assert exc_info.value.to_phase == "paused"

    def test_state_stream_publishes(self, media, player):
        controller = PlaybackController(player)
        states = []
        controller.state_stream.subscribe(states.append)
        controller.attach(media.load(make_file()))
        assert states[-1].phase == Phase.LOADING

    def test_failing_listener_does_not_break_machine(self, media, player):
        controller = PlaybackController(player)

        def broken(old, new, name):
            raise RuntimeError("listener bug")

        controller.subscribe(broken)
        controller.attach(media.load(make_file()))
        assert controller.state.phase == Phase.LOADING

    def test_unsubscribe(self, media, player):
        controller = PlaybackController(player)
        names = []
        unsubscribe = controller.subscribe(lambda old, new, name: names.append(name))
        unsubscribe()
        controller.attach(media.load(make_file()))
        assert names == []
