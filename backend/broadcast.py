"""Terminal broadcast client: webcam -> commentary proxy -> live color commentary."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import shlex
import sys
from contextlib import suppress
from typing import Any

import httpx
from dotenv import load_dotenv

from models import PERSONALITIES, BroadcastPhase, get_personality
from services.broadcast_controller import POLL_INTERVAL_SECONDS, BroadcastController
from services.frame_capture import CameraSource
from services.play_by_play import reveal_schedule
from services.sound_cues import CuePlayer, SoundBoard
from services.speech_player import SpeechPlayer, SubprocessAudioSink
from services.state_hub import StateHub
from services.vision_client import AnalyzeClient, get_api_url

load_dotenv(os.path.join(os.path.dirname(__file__), ".env"))
logger = logging.getLogger(__name__)

DEFAULT_AUDIO_COMMAND = "ffplay -nodisp -autoexit -loglevel quiet -volume {volume} -"
HELP_TEXT = (
    "commands: p <personality> | n (poll now) | + (add person) | "
    "r <index> <name> | x <index> | q (quit)"
)


def create_controller(
    http: httpx.AsyncClient,
    *,
    device: str,
    input_format: str | None = None,
    interval: float = POLL_INTERVAL_SECONDS,
    sounds_dir: str = "sounds",
) -> BroadcastController:
    return BroadcastController(
        analyzer=AnalyzeClient(http),
        frame_source=CameraSource(device, input_format=input_format),
        sound_board=SoundBoard(sounds_dir=sounds_dir, player=CuePlayer()),
        hub=StateHub(),
        poll_interval=interval,
    )


async def render(hub: StateHub, *, out: Any = sys.stdout) -> None:
    """Print state changes: typewriter commentary, stats line, new play-by-play entries."""
    q = await hub.subscribe()
    last_text = ""
    seen_events: set[tuple[str, str]] = set()
    try:
        while True:
            state = await q.get()
            phase = state["phase"]
            if phase == BroadcastPhase.COUNTDOWN.value and state["countdown"]:
                print(f"  {state['countdown']}...", file=out, flush=True)
                continue
            for event in reversed(state["events"]):
                key = (event["time"], event["text"])
                if key not in seen_events:
                    seen_events.add(key)
                    print(f"  [{event['time']}] ({event['type']}) {event['text']}", file=out, flush=True)
            text = state["commentary"]
            if text and text != last_text:
                last_text = text
                elapsed = 0.0
                for offset, prefix in reveal_schedule(text):
                    await asyncio.sleep(offset - elapsed)
                    elapsed = offset
                    out.write("\r> " + prefix)
                    out.flush()
                out.write("\n")
                roster = ", ".join(state["roster"]) or "scanning for name tags..."
                print(
                    f"  engagement {state['engagement']:>3} | skepticism {state['skepticism']:>3}"
                    f" | momentum {state['momentum'].upper()} | players: {roster}",
                    file=out,
                    flush=True,
                )
    finally:
        await hub.unsubscribe(q)


async def follow_speech(hub: StateHub, player: SpeechPlayer) -> None:
    """Speak each new commentary line; loosely coupled to the broadcast loop."""
    q = await hub.subscribe()
    last_text = ""
    try:
        while True:
            state = await q.get()
            text = state["commentary"]
            if text and text != last_text:
                last_text = text
                await player.speak(text, state["personality_id"])
    finally:
        await player.stop()
        await hub.unsubscribe(q)


async def handle_command(controller: BroadcastController, line: str) -> bool:
    """Apply one console command. Returns False when the user asked to quit."""
    parts = line.strip().split(maxsplit=2)
    if not parts:
        return True
    cmd, args = parts[0], parts[1:]
    try:
        if cmd == "q":
            return False
        if cmd == "p" and args:
            await controller.switch_personality(args[0])
        elif cmd == "n":
            controller.poll_now()
        elif cmd == "+":
            await controller.add_participant()
        elif cmd == "r" and len(args) == 2:
            await controller.rename_participant(int(args[0]) - 1, args[1])
        elif cmd == "x" and args:
            await controller.remove_participant(int(args[0]) - 1)
        else:
            print(HELP_TEXT, flush=True)
    except (ValueError, IndexError) as exc:
        print(f"  {exc}", flush=True)
    return True


async def read_commands(controller: BroadcastController) -> None:
    while controller.running:
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line or not await handle_command(controller, line):
            return


async def run_broadcast(args: argparse.Namespace) -> int:
    async with httpx.AsyncClient(base_url=args.api_url, timeout=None) as http:
        controller = create_controller(
            http,
            device=args.device,
            input_format=args.input_format,
            interval=args.interval,
            sounds_dir=args.sounds_dir,
        )
        tasks = [asyncio.create_task(render(controller.hub))]
        player = None
        if args.speak:
            player = SpeechPlayer(
                http, SubprocessAudioSink(shlex.split(args.audio_command)), enabled=True
            )
            tasks.append(asyncio.create_task(follow_speech(controller.hub, player)))

        people = [p.strip() for p in args.people.split(",")] if args.people else []
        print(f"COLOR COMMENTARY with {get_personality(args.personality).name}", flush=True)
        try:
            if not await controller.start(personality_id=args.personality, roster=people):
                print(f"ERROR: {controller.state.error_message}", flush=True)
                return 1
            print(HELP_TEXT, flush=True)
            await read_commands(controller)
        finally:
            if controller.running:
                await controller.stop()
            for task in tasks:
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Live AI sports commentary for whoever is in front of your webcam."
    )
    parser.add_argument("--api-url", default=get_api_url(), help="Commentary proxy base URL.")
    parser.add_argument("--device", default="/dev/video0", help="Camera device or video file.")
    parser.add_argument(
        "--input-format", default=None, help="PyAV input format (v4l2, avfoundation, dshow)."
    )
    parser.add_argument(
        "--personality",
        default="default",
        choices=[p.id for p in PERSONALITIES],
        help="Commentator personality.",
    )
    parser.add_argument("--people", default="", help="Comma-separated names, left to right.")
    parser.add_argument(
        "--interval", type=float, default=POLL_INTERVAL_SECONDS, help="Seconds between frames."
    )
    parser.add_argument("--sounds-dir", default="sounds", help="Directory of crowd sound cues.")
    parser.add_argument("--speak", action="store_true", help="Speak commentary via /api/tts.")
    parser.add_argument(
        "--audio-command",
        default=DEFAULT_AUDIO_COMMAND,
        help="Player fed MP3 on stdin; {volume} becomes 0..100.",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        return asyncio.run(run_broadcast(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
