"""
ToneScope - Audio Emotion Analyzer CLI

This module provides the command-line interface. It can be invoked as
'tonescope' from anywhere after installation.

Example usage:
    tonescope clip_happy_voice.wav
    tonescope --play recording01.wav
    tonescope --play --mute --output result.json recording01.wav
    tonescope --drop --seed 7 recording01.mp3
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from tonescope import __version__
from tonescope.core.models import AudioFile, AudioSource, EmotionResult, PlaybackState
from tonescope.core.session import Session, create_session
from tonescope.utils.config import load_config
from tonescope.utils.errors import ToneScopeError
from tonescope.utils.logging import setup_logging

BAR_WIDTH = 40


def render_progress(state: PlaybackState, width: int = BAR_WIDTH) -> str:
    """Render playback state as a one-line text progress bar."""
    filled = int(round(state.progress_percent / 100 * width))
    bar = "#" * filled + "-" * (width - filled)
    mute = " (muted)" if state.muted else ""
    return f"[{bar}] {state.progress_percent:5.1f}% {state.phase.value}{mute}"


def print_emotion_result(source: AudioSource, result: EmotionResult) -> None:
    """Print an analysis result to the console."""
    print("\n" + "=" * 60)
    print("TONESCOPE ANALYSIS RESULT")
    print("=" * 60)
    print(f"File: {source.name}")
    print("-" * 60)
    print(f"  Primary Emotion: {result.primary.value.capitalize()}")
    print(f"  Confidence: {result.confidence_percent}%")
    if result.secondary:
        print(f"  Secondary Emotion: {result.secondary.value.capitalize()}")
    print(f"  Classifier: {result.classifier}")
    print("-" * 60)


def build_report(session: Session, result: Optional[EmotionResult]) -> Dict[str, Any]:
    """Collect the session outcome into a JSON-ready dict."""
    source = session.source
    return {
        "source": source.to_dict() if source else None,
        "playback": session.playback_state.value.to_dict(),
        "emotion": result.to_dict() if result else None,
    }


async def _play_to_end(session: Session) -> None:
    """Play the active source, drawing progress until it ends or fails."""
    finished = asyncio.Event()

    def on_transition(old, new, name):
        if name in ("end", "fail"):
            finished.set()

    def draw(state: PlaybackState) -> None:
        print("\r" + render_progress(state), end="", flush=True)

    stop_listening = session.controller.subscribe(on_transition)
    stop_drawing = session.playback_state.subscribe(draw, replay=True)
    try:
        if await session.toggle_playback():
            await finished.wait()
    finally:
        stop_drawing()
        stop_listening()
        print()


async def run_session(
    audio_file: Path,
    config: Dict[str, Any],
    play: bool = False,
    mute: bool = False,
    analyze: bool = True,
    dropped: bool = False,
    output_json: Optional[Path] = None,
) -> int:
    """
    Load one file, optionally play it, and classify it.

    Returns:
        Process exit code
    """
    try:
        audio = AudioFile.from_path(audio_file)
    except OSError as e:
        print(f"Error: cannot read {audio_file}: {e}")
        return 1

    with create_session(config) as session:
        source = session.drop_file(audio) if dropped else session.load_file(audio)
        if source is None:
            print(f"Error: {audio_file.name} was not loaded (type: {audio.mime_type})")
            return 1

        if mute:
            session.toggle_mute()

        def show_analyzing(active: bool) -> None:
            if active:
                print("Analyzing audio...")

        session.is_analyzing.subscribe(show_analyzing)

        # Analysis runs alongside playback on the same loop
        analysis = asyncio.ensure_future(session.analyze()) if analyze else None

        if play:
            await _play_to_end(session)

        result = await analysis if analysis is not None else None

        if result is not None:
            print_emotion_result(source, result)
        elif analyze:
            print("Analysis did not produce a result.")

        if output_json:
            output_json.parent.mkdir(parents=True, exist_ok=True)
            with open(output_json, "w") as f:
                json.dump(build_report(session, result), f, indent=2)
            print(f"JSON results saved to: {output_json}")

        return 0 if result is not None or not analyze else 1


def main():
    """Main entry point for ToneScope."""
    parser = argparse.ArgumentParser(
        prog="tonescope",
        description="Play an audio clip and classify its emotional tone",
    )
    parser.add_argument(
        "audio_file",
        type=Path,
        help="Path to audio file"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--play",
        action="store_true",
        help="Play the clip with a progress bar while analyzing"
    )
    parser.add_argument(
        "--mute",
        action="store_true",
        help="Start playback muted"
    )
    parser.add_argument(
        "--no-analyze",
        dest="analyze",
        action="store_false",
        help="Skip emotion analysis"
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Ingest as a drag-and-drop file (requires an audio/* MIME type)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the classifier's random choices"
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Path to save JSON output"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"ToneScope {__version__}"
    )

    args = parser.parse_args()

    load_dotenv()

    try:
        config = load_config(str(args.config) if args.config else None)
    except ToneScopeError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.seed is not None:
        config.setdefault("inference", {})["seed"] = args.seed

    logging_config = config.get("logging", {})
    setup_logging(
        level="DEBUG" if args.verbose else logging_config.get("level", "INFO"),
        log_format=logging_config.get("format", "text"),
        log_file=logging_config.get("file"),
        colored=True,
        console_enabled=True
    )

    if not args.audio_file.exists():
        print(f"Error: Audio file not found: {args.audio_file}")
        sys.exit(1)

    try:
        exit_code = asyncio.run(run_session(
            audio_file=args.audio_file,
            config=config,
            play=args.play,
            mute=args.mute,
            analyze=args.analyze,
            dropped=args.drop,
            output_json=args.output,
        ))
    except KeyboardInterrupt:
        exit_code = 130

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
