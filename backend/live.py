"""
Live voice conversation from the terminal.

Wires a RealtimeSession to the local microphone and speakers (sounddevice).
Typed lines are sent as text turns; commands:

    /mic    toggle microphone capture
    /save   write the last transcribed utterance to a WAV file
    /quit   disconnect and exit

Usage:
    python backend/live.py [--input-device N] [--output-device N]
"""

from __future__ import annotations

import argparse
import asyncio
import functools
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

from audio.sounddevice_io import SoundDeviceInput, SoundDeviceOutput
from config import AppConfig
from observability.logger import configure_logging
from realtime.errors import AudioDeviceError, RealtimeError
from realtime.session import RealtimeSession


def _make_printer(session: RealtimeSession) -> Any:
    printed = 0

    def _on_event(event: Mapping[str, Any]) -> None:
        nonlocal printed
        conversation = session.conversation
        while printed < len(conversation):
            message = conversation[printed]
            print(f"[{message.role}] {message.content}")
            printed += 1
        if event.get("type") == "error":
            print(f"[error] {session.error_message}")

    return _on_event


def _device(value: str | None) -> int | str | None:
    if value is not None and value.isdigit():
        return int(value)
    return value


async def _read_line() -> str:
    return await asyncio.to_thread(input, "> ")


async def run(args: argparse.Namespace) -> int:
    config = AppConfig.load_from_env()
    configure_logging(level=args.log_level, json_lines=config.enable_json_logs)

    session = RealtimeSession(
        config=config,
        audio_input_factory=functools.partial(SoundDeviceInput, device=_device(args.input_device)),
        audio_output_factory=functools.partial(SoundDeviceOutput, device=_device(args.output_device)),
    )
    session.add_listener(_make_printer(session))

    try:
        await session.connect()
    except RealtimeError as e:
        print(f"Could not connect: {e}")
        return 1

    try:
        while True:
            line = (await _read_line()).strip()
            if not line:
                continue

            if line == "/quit":
                break

            if line == "/mic":
                if session.recording:
                    await session.stop_recording()
                    print("[mic off]")
                    continue
                try:
                    await session.start_recording()
                except AudioDeviceError as e:
                    print(f"Microphone unavailable: {e}")
                    continue
                print("[mic on]")
                continue

            if line == "/save":
                ids = session.correlator.utterance_ids()
                if not ids:
                    print("No utterance audio captured yet")
                    continue
                audio = session.get_audio_for(ids[-1])
                if audio is None:
                    continue
                path = Path(args.save_dir) / f"{audio.utterance_id}.wav"
                path.write_bytes(audio.to_wav_bytes())
                print(f"Saved {path} ({audio.duration_s:.1f}s): {audio.transcript}")
                continue

            if not session.send_text(line):
                print(f"Not connected ({session.state.value}): {session.error_message}")
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        await session.disconnect()

    return 0


def main() -> int:
    load_dotenv()

    ap = argparse.ArgumentParser(description="Talk to the realtime voice coach.")
    ap.add_argument("--input-device", default=None, help="sounddevice input device (index or name)")
    ap.add_argument("--output-device", default=None, help="sounddevice output device (index or name)")
    ap.add_argument("--save-dir", default=".", help="Directory for /save WAV files")
    ap.add_argument("--log-level", default="WARNING", help="Minimum log level on stdout")
    args = ap.parse_args()

    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
