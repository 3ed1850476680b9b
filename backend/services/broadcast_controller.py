"""Capture -> send -> await -> apply loop for a live commentary broadcast."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from typing import Any, Protocol

import httpx

from models import BroadcastPhase, BroadcastState, CommentaryUpdate, get_personality
from services import name_tracker
from services.frame_capture import FrameEncoder, FrameSource
from services.name_tracker import track_names
from services.play_by_play import derive_effects, push_event
from services.sound_cues import SoundBoard
from services.state_hub import StateHub
from services.vision_client import AnalyzeError

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 3.0
COUNTDOWN_FROM = 3
COUNTDOWN_TICK_SECONDS = 0.8


class Analyzer(Protocol):
    async def analyze(
        self,
        *,
        image: str,
        previous_commentary: str,
        personality: str,
        people: Sequence[str],
    ) -> CommentaryUpdate: ...


class BroadcastController:
    """
    Owns the broadcast session state and the polling loop that feeds it.

    Invariants:
      - at most one analyze request in flight; issuing a new one (tick or
        personality switch) cancels the outstanding one
      - a superseded request never applies its result and is not a failure;
        the loop moves straight to the next cycle
      - other failures are logged and the loop keeps its normal cadence
      - the inter-cycle wait can be cut short with poll_now()
    """

    def __init__(
        self,
        *,
        analyzer: Analyzer,
        frame_source: FrameSource,
        encoder: Any | None = None,
        sound_board: SoundBoard | None = None,
        hub: StateHub | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        countdown_from: int = COUNTDOWN_FROM,
        countdown_tick: float = COUNTDOWN_TICK_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._analyzer = analyzer
        self._frame_source = frame_source
        self._encoder = encoder or FrameEncoder()
        self._sound_board = sound_board
        self.hub = hub or StateHub()
        self._poll_interval = poll_interval
        self._countdown_from = countdown_from
        self._countdown_tick = countdown_tick
        self._clock = clock

        self.state = BroadcastState()
        self._running = False
        self._loop_task: asyncio.Task[None] | None = None
        self._inflight: asyncio.Task[CommentaryUpdate] | None = None
        self._generation = 0
        self._wake = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def sound_board(self) -> SoundBoard | None:
        return self._sound_board

    # -- lifecycle -----------------------------------------------------------

    async def start(
        self,
        *,
        personality_id: str | None = None,
        roster: Sequence[str] | None = None,
    ) -> bool:
        """Acquire the camera, count down, go live. Returns False on camera failure."""
        if self.state.phase is not BroadcastPhase.IDLE:
            raise RuntimeError(f"cannot start broadcast from phase {self.state.phase.value}")
        if personality_id is not None:
            self.state.personality_id = get_personality(personality_id).id
        if roster is not None:
            self.state.roster = list(roster)
        if self._sound_board is not None:
            self._sound_board.unlock()

        logger.info("[broadcast] Starting broadcast (personality=%s)", self.state.personality_id)
        await self._set_phase(BroadcastPhase.CONNECTING)
        try:
            await self._frame_source.open()
        except Exception as exc:  # noqa: BLE001
            logger.error("[broadcast] Camera acquisition failed: %s", exc)
            self.state.error_message = str(exc) or "Connection failed"
            await self._set_phase(BroadcastPhase.ERROR)
            return False

        self.state.phase = BroadcastPhase.COUNTDOWN
        for n in range(self._countdown_from, 0, -1):
            self.state.countdown = n
            await self._publish()
            await asyncio.sleep(self._countdown_tick)
        self.state.countdown = None

        self.state.started_at = self._clock()
        self._running = True
        self._wake = asyncio.Event()
        await self._set_phase(BroadcastPhase.LIVE)
        self._loop_task = asyncio.create_task(self._poll_loop())
        logger.info("[broadcast] Live; polling every %.1fs", self._poll_interval)
        return True

    async def stop(self) -> None:
        """Tear the session down: stop the loop, drop any in-flight request, release the camera."""
        self._running = False
        self._cancel_inflight()
        self._wake.set()
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        await self._frame_source.close()
        if self._sound_board is not None:
            self._sound_board.close()
        self.state.started_at = None
        await self._set_phase(BroadcastPhase.IDLE)
        logger.info("[broadcast] Stopped after %d cycles", self.state.cycle_count)

    async def reset(self) -> None:
        """Leave the error phase so the user can retry."""
        if self.state.phase is BroadcastPhase.ERROR:
            self.state.error_message = ""
            await self._set_phase(BroadcastPhase.IDLE)

    async def wait_closed(self) -> None:
        if self._loop_task is not None:
            await self._loop_task

    # -- user actions --------------------------------------------------------

    async def switch_personality(self, personality_id: str) -> None:
        """Switch commentator; drops the in-flight request and polls immediately."""
        self.state.personality_id = get_personality(personality_id).id
        logger.info("[broadcast] Personality switched to %s", self.state.personality_id)
        self._cancel_inflight()
        self.poll_now()
        await self._publish()

    def poll_now(self) -> None:
        """Cut the current inter-cycle wait short."""
        self._wake.set()

    async def add_participant(self) -> None:
        await self._set_roster(name_tracker.add_placeholder(self.state.roster))

    async def rename_participant(self, index: int, name: str) -> None:
        await self._set_roster(name_tracker.rename_at(self.state.roster, index, name))

    async def remove_participant(self, index: int) -> None:
        await self._set_roster(name_tracker.remove_at(self.state.roster, index))

    async def set_roster(self, names: Sequence[str]) -> None:
        await self._set_roster(list(names))

    # -- the loop ------------------------------------------------------------

    async def _poll_loop(self) -> None:
        try:
            while self._running:
                self.state.cycle_count += 1
                logger.debug("[broadcast] Frame #%d", self.state.cycle_count)
                superseded = await self.run_cycle()
                if superseded:
                    logger.info("[broadcast] Request superseded; sending a fresh frame")
                    continue
                if self._running:
                    await self._wait_for_next_cycle()
        finally:
            self._cancel_inflight()

    async def run_cycle(self) -> bool:
        """
        Capture, send and apply one frame.

        Returns True when the request was superseded (cancelled by a newer
        request or a context switch), False otherwise.
        """
        try:
            frame = await self._frame_source.capture()
            image = self._encoder.encode_base64(frame)
        except Exception as exc:  # noqa: BLE001
            logger.warning("[broadcast] Frame capture failed: %s", exc)
            return False

        self._cancel_inflight()
        generation = self._generation
        request = asyncio.create_task(
            self._analyzer.analyze(
                image=image,
                previous_commentary=self.state.previous_commentary,
                personality=self.state.personality_id,
                people=name_tracker.request_roster(self.state.roster),
            )
        )
        self._inflight = request
        try:
            await asyncio.wait({request})
        finally:
            if not request.done():
                request.cancel()
            if self._inflight is request:
                self._inflight = None

        if request.cancelled() or generation != self._generation:
            return True
        exc = request.exception()
        if exc is not None:
            if isinstance(exc, (httpx.HTTPError, AnalyzeError)):
                logger.warning("[broadcast] Cycle %d failed: %s", self.state.cycle_count, exc)
            else:
                logger.error(
                    "[broadcast] Cycle %d failed unexpectedly: %s",
                    self.state.cycle_count,
                    exc,
                    exc_info=exc,
                )
            return False
        await self.apply_update(request.result())
        return False

    async def _wait_for_next_cycle(self) -> None:
        # Wake-ups that arrive outside the wait are already covered by the cycle that just ran.
        self._wake.clear()
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=self._poll_interval)
        except asyncio.TimeoutError:
            pass

    def _cancel_inflight(self) -> None:
        self._generation += 1
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()

    # -- state mutation ------------------------------------------------------

    async def apply_update(self, update: CommentaryUpdate) -> None:
        s = self.state
        logger.info("[broadcast] UPDATE: %.50r", update.commentary)
        s.commentary = update.commentary
        s.engagement = update.engagement
        s.skepticism = update.skepticism
        s.momentum = update.momentum

        effects = derive_effects(update, self.elapsed())
        if effects.play_event is not None:
            s.events = push_event(s.events, effects.play_event)

        roster = track_names(s.roster, update)
        if roster.changed:
            s.roster = roster.names

        if self._sound_board is not None:
            self._sound_board.play(effects.sound)
        s.previous_commentary = update.commentary
        await self._publish()

    def elapsed(self) -> float:
        if self.state.started_at is None:
            return 0.0
        return max(0.0, self._clock() - self.state.started_at)

    async def _set_roster(self, names: list[str]) -> None:
        self.state.roster = names
        await self._publish()

    async def _set_phase(self, phase: BroadcastPhase) -> None:
        self.state.phase = phase
        await self._publish()

    async def _publish(self) -> None:
        await self.hub.publish(self.state.snapshot())
