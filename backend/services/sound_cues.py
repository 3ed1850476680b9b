from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from models import SoundCue

logger = logging.getLogger(__name__)

SOUND_FILES: dict[SoundCue, str] = {
    SoundCue.CHEER: "crowd-cheer.mp3",
    SoundCue.GASP: "crowd-gasp.mp3",
    SoundCue.ORGAN: "organ-hit.mp3",
    SoundCue.BUZZER: "buzzer.mp3",
}
CUE_VOLUME = 0.3
CUE_COMMAND = ("ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet")


class CuePlayer:
    """
    Plays each cue in its own ffplay process so cues can overlap.
    Running processes are tracked until they exit or close() kills them.
    """

    def __init__(self, command: Sequence[str] = CUE_COMMAND) -> None:
        self._command = list(command)
        self._procs: list[subprocess.Popen[bytes]] = []

    @property
    def active(self) -> list[subprocess.Popen[bytes]]:
        self._procs = [p for p in self._procs if p.poll() is None]
        return list(self._procs)

    def __call__(self, path: Path, volume: float) -> None:
        proc = subprocess.Popen(
            [*self._command, "-volume", str(round(volume * 100)), str(path)],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        self._procs = [*self.active, proc]

    def close(self) -> None:
        for proc in self._procs:
            if proc.poll() is None:
                proc.kill()
            proc.wait()
        self._procs = []


class SoundBoard:
    """
    Crowd sound cues for big moments.

    Cues are ignored until unlock() is called from a user action, mirroring
    browser autoplay rules. Actual playback is delegated to `player`.
    """

    def __init__(
        self,
        *,
        sounds_dir: Path | str = "sounds",
        player: Callable[[Path, float], None] | None = None,
        volume: float = CUE_VOLUME,
    ) -> None:
        self._sounds_dir = Path(sounds_dir)
        self._player = player
        self._volume = volume
        self._unlocked = False

    @property
    def unlocked(self) -> bool:
        return self._unlocked

    def unlock(self) -> None:
        self._unlocked = True

    def path_for(self, cue: SoundCue) -> Path:
        return self._sounds_dir / SOUND_FILES[cue]

    def play(self, cue: SoundCue | None) -> Path | None:
        if cue is None or not self._unlocked:
            return None
        path = self.path_for(cue)
        logger.info("[sound_cues] Cue %s -> %s", cue.value, path)
        if self._player is not None:
            try:
                self._player(path, self._volume)
            except OSError as exc:
                logger.warning("[sound_cues] Could not play %s: %s", path, exc)
        return path

    def close(self) -> None:
        """Release whatever the player still holds (running cue processes)."""
        close = getattr(self._player, "close", None)
        if close is not None:
            close()
