from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from models import BroadcastPhase, CommentaryEvent, CommentaryUpdate, EventType, Momentum, SoundCue
from services.broadcast_controller import BroadcastController
from services.frame_capture import CameraError
from services.sound_cues import SoundBoard
from services.state_hub import StateHub
from services.vision_client import AnalyzeError


class _FakeSource:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.opened = False
        self.closed = False
        self.captures = 0

    async def open(self) -> None:
        if self.fail:
            raise CameraError("Permission denied")
        self.opened = True

    async def capture(self) -> str:
        self.captures += 1
        return f"frame-{self.captures}"

    async def close(self) -> None:
        self.closed = True


class _FakeEncoder:
    def encode_base64(self, frame: str) -> str:
        return f"b64:{frame}"


class _GatedAnalyzer:
    """Each analyze() call blocks until the test resolves its gate."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.gates: list[asyncio.Future[CommentaryUpdate]] = []

    async def analyze(self, **kwargs: Any) -> CommentaryUpdate:
        gate: asyncio.Future[CommentaryUpdate] = asyncio.get_running_loop().create_future()
        self.calls.append(kwargs)
        self.gates.append(gate)
        return await gate

    def release(self, index: int, result: CommentaryUpdate | BaseException) -> None:
        gate = self.gates[index]
        if isinstance(result, BaseException):
            gate.set_exception(result)
        else:
            gate.set_result(result)


class _ScriptedAnalyzer:
    """Answers immediately from a script; the last entry repeats."""

    def __init__(self, *results: CommentaryUpdate | BaseException) -> None:
        self.results = list(results)
        self.calls: list[dict[str, Any]] = []

    async def analyze(self, **kwargs: Any) -> CommentaryUpdate:
        self.calls.append(kwargs)
        result = self.results[min(len(self.calls), len(self.results)) - 1]
        if isinstance(result, BaseException):
            raise result
        return result


class _RecordingHub(StateHub):
    def __init__(self) -> None:
        super().__init__()
        self.snapshots: list[dict[str, Any]] = []

    async def publish(self, payload: dict[str, Any]) -> None:
        self.snapshots.append(payload)
        await super().publish(payload)


async def _until(condition: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not condition():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.001)


def _controller(analyzer: Any, source: _FakeSource | None = None, **kwargs: Any) -> BroadcastController:
    kwargs.setdefault("countdown_tick", 0)
    kwargs.setdefault("poll_interval", 10)
    return BroadcastController(
        analyzer=analyzer,
        frame_source=source or _FakeSource(),
        encoder=_FakeEncoder(),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_cycle_applies_update_and_carries_context_forward() -> None:
    analyzer = _ScriptedAnalyzer(
        CommentaryUpdate(commentary="First call!", engagement=0, skepticism=90, momentum=Momentum.FALLING),
        CommentaryUpdate(commentary="Second call!"),
    )
    controller = _controller(analyzer)
    await controller.set_roster(["Al", " ", "Bo"])
    await controller.switch_personality("eagles")

    assert await controller.run_cycle() is False
    assert controller.state.commentary == "First call!"
    assert controller.state.engagement == 0
    assert controller.state.skepticism == 90
    assert controller.state.momentum is Momentum.FALLING

    await controller.run_cycle()
    assert analyzer.calls[0] == {
        "image": "b64:frame-1",
        "previous_commentary": "",
        "personality": "eagles",
        "people": ["Al", "Bo"],
    }
    assert analyzer.calls[1]["previous_commentary"] == "First call!"
    assert controller.state.previous_commentary == "Second call!"


@pytest.mark.asyncio
async def test_new_request_cancels_in_flight_one() -> None:
    analyzer = _GatedAnalyzer()
    controller = _controller(analyzer)

    first = asyncio.create_task(controller.run_cycle())
    await _until(lambda: len(analyzer.calls) == 1)
    second = asyncio.create_task(controller.run_cycle())
    await _until(lambda: len(analyzer.calls) == 2)

    assert await first is True
    assert analyzer.gates[0].cancelled()

    analyzer.release(1, CommentaryUpdate(commentary="cycle 2"))
    assert await second is False
    assert controller.state.commentary == "cycle 2"


class _StubbornAnalyzer(_GatedAnalyzer):
    """First call ignores cancellation and answers late anyway."""

    async def analyze(self, **kwargs: Any) -> CommentaryUpdate:
        first = not self.calls
        try:
            return await super().analyze(**kwargs)
        except asyncio.CancelledError:
            if first:
                return CommentaryUpdate(
                    commentary="cycle 1 (late)",
                    event=CommentaryEvent(EventType.POSITIVE, "stale event"),
                    detected_names=("Stale",),
                )
            raise


@pytest.mark.asyncio
async def test_late_response_from_superseded_request_is_discarded() -> None:
    analyzer = _StubbornAnalyzer()
    controller = _controller(analyzer)
    await controller.set_roster(["Al"])

    first = asyncio.create_task(controller.run_cycle())
    await _until(lambda: len(analyzer.calls) == 1)
    second = asyncio.create_task(controller.run_cycle())
    await _until(lambda: len(analyzer.calls) == 2)
    assert await first is True

    analyzer.release(1, CommentaryUpdate(commentary="cycle 2"))
    await second

    assert controller.state.commentary == "cycle 2"
    assert controller.state.previous_commentary == "cycle 2"
    assert controller.state.events == []
    assert controller.state.roster == ["Al"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        AnalyzeError("analyze returned 503: GEMINI_API_KEY not set"),
        httpx.ConnectError("connection refused"),
    ],
)
async def test_failed_cycle_is_logged_and_leaves_state(caplog: pytest.LogCaptureFixture, error: Exception) -> None:
    controller = _controller(_ScriptedAnalyzer(error))
    controller.state.commentary = "still here"

    with caplog.at_level(logging.WARNING, logger="services.broadcast_controller"):
        assert await controller.run_cycle() is False

    assert controller.state.commentary == "still here"
    assert any("failed" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_apply_update_derives_events_sound_and_roster(tmp_path: Path) -> None:
    now = [100.0]
    played: list[Path] = []
    board = SoundBoard(sounds_dir=tmp_path, player=lambda p, _v: played.append(p))
    board.unlock()
    controller = _controller(_ScriptedAnalyzer(), sound_board=board, clock=lambda: now[0])
    controller.state.started_at = 100.0
    controller.state.roster = ["A", "B", "C"]

    now[0] = 165.0
    await controller.apply_update(
        CommentaryUpdate(
            commentary="The crowd goes wild!",
            event=CommentaryEvent(EventType.POSITIVE, "Standing ovation"),
            sound=SoundCue.CHEER,
            people_count=1,
        )
    )

    assert [(e.time, e.text) for e in controller.state.events] == [("01:05", "Standing ovation")]
    assert controller.state.roster == ["A"]
    assert played == [tmp_path / "crowd-cheer.mp3"]


@pytest.mark.asyncio
async def test_event_log_is_capped_at_six_most_recent() -> None:
    controller = _controller(_ScriptedAnalyzer())
    for i in range(8):
        await controller.apply_update(
            CommentaryUpdate(commentary=f"c{i}", event=CommentaryEvent(EventType.NEUTRAL, f"e{i}"))
        )
    assert [e.text for e in controller.state.events] == ["e7", "e6", "e5", "e4", "e3", "e2"]


@pytest.mark.asyncio
async def test_camera_failure_goes_to_error_without_polling() -> None:
    analyzer = _ScriptedAnalyzer(CommentaryUpdate(commentary="never"))
    controller = _controller(analyzer, _FakeSource(fail=True))

    assert await controller.start() is False
    assert controller.state.phase is BroadcastPhase.ERROR
    assert controller.state.error_message == "Permission denied"
    assert controller.running is False
    assert analyzer.calls == []

    with pytest.raises(RuntimeError):
        await controller.start()
    await controller.reset()
    assert controller.state.phase is BroadcastPhase.IDLE


@pytest.mark.asyncio
async def test_lifecycle_countdown_live_and_teardown() -> None:
    hub = _RecordingHub()
    source = _FakeSource()
    analyzer = _ScriptedAnalyzer(CommentaryUpdate(commentary="We are LIVE!"))
    controller = _controller(analyzer, source, hub=hub)

    assert await controller.start(personality_id="jets", roster=["Al"]) is True
    await _until(lambda: controller.state.commentary == "We are LIVE!")

    assert controller.state.phase is BroadcastPhase.LIVE
    assert controller.state.started_at is not None
    assert source.opened is True
    assert analyzer.calls[0]["personality"] == "jets"

    await controller.stop()
    assert controller.state.phase is BroadcastPhase.IDLE
    assert source.closed is True
    assert controller.running is False

    phases: list[str] = []
    for snap in hub.snapshots:
        if not phases or phases[-1] != snap["phase"]:
            phases.append(snap["phase"])
    assert phases == ["connecting", "countdown", "live", "idle"]
    countdown = [s["countdown"] for s in hub.snapshots if s["phase"] == "countdown"]
    assert countdown == [3, 2, 1]


@pytest.mark.asyncio
async def test_poll_now_cuts_the_wait_short() -> None:
    analyzer = _ScriptedAnalyzer(CommentaryUpdate(commentary="tick"))
    controller = _controller(analyzer, poll_interval=30)
    await controller.start()
    await _until(lambda: len(analyzer.calls) == 1)
    await asyncio.sleep(0.01)
    assert len(analyzer.calls) == 1

    controller.poll_now()
    await _until(lambda: len(analyzer.calls) == 2)
    await controller.stop()


@pytest.mark.asyncio
async def test_personality_switch_aborts_request_and_retries_immediately() -> None:
    analyzer = _GatedAnalyzer()
    controller = _controller(analyzer, poll_interval=30)
    await controller.start()
    await _until(lambda: len(analyzer.calls) == 1)

    await controller.switch_personality("ted-lasso")
    await _until(lambda: len(analyzer.calls) == 2)

    assert analyzer.gates[0].cancelled()
    assert analyzer.calls[1]["personality"] == "ted-lasso"

    analyzer.release(1, CommentaryUpdate(commentary="Believe!"))
    await _until(lambda: controller.state.commentary == "Believe!")
    await controller.stop()


@pytest.mark.asyncio
async def test_personality_switch_during_wait_polls_immediately() -> None:
    analyzer = _ScriptedAnalyzer(CommentaryUpdate(commentary="steady as she goes"))
    controller = _controller(analyzer, poll_interval=30)
    await controller.start()
    await _until(lambda: len(analyzer.calls) == 1)

    await controller.switch_personality("not-a-real-commentator")
    await _until(lambda: len(analyzer.calls) == 2)

    assert analyzer.calls[1]["personality"] == "default"
    await controller.stop()


class _ClosablePlayer:
    def __init__(self) -> None:
        self.played: list[Path] = []
        self.closed = False

    def __call__(self, path: Path, volume: float) -> None:
        self.played.append(path)

    def close(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_stop_releases_sound_cue_player(tmp_path: Path) -> None:
    player = _ClosablePlayer()
    board = SoundBoard(sounds_dir=tmp_path, player=player)
    controller = _controller(_ScriptedAnalyzer(CommentaryUpdate(sound=SoundCue.GASP)), sound_board=board)
    await controller.start()
    await _until(lambda: player.played)

    await controller.stop()
    assert player.closed is True


class _SlowCaptureSource(_FakeSource):
    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.waiting = False

    async def capture(self) -> str:
        self.waiting = True
        await self.gate.wait()
        self.waiting = False
        return await super().capture()


@pytest.mark.asyncio
async def test_personality_switch_during_capture_keeps_the_cadence() -> None:
    analyzer = _ScriptedAnalyzer(CommentaryUpdate(commentary="J-E-T-S!"))
    source = _SlowCaptureSource()
    controller = _controller(analyzer, source, poll_interval=30)
    await controller.start()
    await _until(lambda: source.waiting)

    await controller.switch_personality("jets")
    source.gate.set()
    await _until(lambda: controller.state.commentary == "J-E-T-S!")
    await asyncio.sleep(0.1)

    assert [c["personality"] for c in analyzer.calls] == ["jets"]
    await controller.stop()


@pytest.mark.asyncio
async def test_failures_do_not_stop_the_loop() -> None:
    analyzer = _ScriptedAnalyzer(
        AnalyzeError("analyze returned 502"),
        CommentaryUpdate(commentary="back on air"),
    )
    controller = _controller(analyzer, poll_interval=0.01)
    await controller.start()
    await _until(lambda: controller.state.commentary == "back on air")

    assert controller.running is True
    assert controller.state.phase is BroadcastPhase.LIVE
    await controller.stop()
