from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from contextlib import suppress
from enum import Enum
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

SPEECH_VOLUME = 0.8


class SpeechState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"


class AudioSink(Protocol):
    async def play(self, audio: bytes) -> None:
        """Play audio to completion."""

    async def stop(self) -> None: ...


class SubprocessAudioSink:
    """
    Pipe encoded audio into an external player, e.g. `ffplay -nodisp -autoexit -`.
    A `{volume}` placeholder in the command is replaced by the volume as 0..100.
    """

    def __init__(self, command: Sequence[str], *, volume: float = SPEECH_VOLUME) -> None:
        level = str(round(volume * 100))
        self._command = [arg.replace("{volume}", level) for arg in command]
        self._proc: asyncio.subprocess.Process | None = None

    async def play(self, audio: bytes) -> None:
        await self.stop()
        proc = await asyncio.create_subprocess_exec(
            *self._command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        self._proc = proc
        try:
            await proc.communicate(audio)
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            if self._proc is proc:
                self._proc = None

    @property
    def command(self) -> list[str]:
        return list(self._command)

    async def stop(self) -> None:
        proc = self._proc
        self._proc = None
        if proc is not None and proc.returncode is None:
            proc.kill()
            await proc.wait()


class SpeechPlayer:
    """
    Best-effort speech for commentary lines via POST /api/tts.

    Single owner of the audio output: every speak() stops and releases the
    previous utterance (request, buffer and sink) before starting a new one.
    A 204 from the proxy means "nothing to play", not an error.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        sink: AudioSink,
        *,
        enabled: bool = False,
        on_state_change: Callable[[SpeechState], Any] | None = None,
    ) -> None:
        self._http = http
        self._sink = sink
        self._enabled = enabled
        self._state = SpeechState.IDLE
        self._on_state_change = on_state_change
        self._task: asyncio.Task[None] | None = None
        self._buffer: bytes | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def state(self) -> SpeechState:
        return self._state

    async def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
        if not enabled:
            await self.stop()

    def _set_state(self, state: SpeechState) -> None:
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        await self._sink.stop()
        self._buffer = None
        self._set_state(SpeechState.IDLE)

    async def speak(self, text: str, personality: str) -> asyncio.Task[None] | None:
        if not self._enabled or not text.strip():
            return None
        await self.stop()
        self._task = asyncio.create_task(self._run(text, personality))
        return self._task

    async def _run(self, text: str, personality: str) -> None:
        self._set_state(SpeechState.LOADING)
        try:
            response = await self._http.post(
                "/api/tts", json={"text": text, "personality": personality}
            )
            if response.status_code == 204 or not response.is_success:
                logger.debug(
                    "[speech] Nothing to play (status=%s, reason=%s)",
                    response.status_code,
                    response.headers.get("X-Speech-Status", "-"),
                )
                return
            self._buffer = response.content
            self._set_state(SpeechState.PLAYING)
            await self._sink.play(self._buffer)
        except (httpx.HTTPError, OSError) as exc:
            logger.warning("[speech] Playback error: %s", exc)
        finally:
            self._buffer = None
            if self._task is None or self._task is asyncio.current_task():
                self._set_state(SpeechState.IDLE)
