"""CLI interface: inspect schedules, render tagged segments, play results."""

import argparse
import logging
import os
import sys

from speech_mixer.constants import OUTPUT_DIR, TTS_VOICE, VERSION
from speech_mixer.decoding import sniff_format
from speech_mixer.errors import MixerError
from speech_mixer.exporter import export
from speech_mixer.models import MixedAudioResult
from speech_mixer.parser import load_segments
from speech_mixer.pipeline import render
from speech_mixer.playback import playback_session
from speech_mixer.timeline import schedule
from speech_mixer.tts import EdgeTTSClient, ElevenLabsClient


def _load(file_path: str):
    """Load tagged segments, exiting with an error message on bad input."""
    if not os.path.exists(file_path):
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    try:
        segments = load_segments(file_path)
    except ValueError as e:
        print(f"Error: Invalid segments file {file_path}: {e}", file=sys.stderr)
        raise SystemExit(1)
    if not segments:
        print(f"Error: No segments in: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    return segments


def _make_client(args):
    if args.engine == "elevenlabs":
        return ElevenLabsClient(os.environ.get("ELEVENLABS_API_KEY", ""), args.voice)
    return EdgeTTSClient(args.voice or TTS_VOICE)


def _play(result: MixedAudioResult):
    with playback_session() as device:
        device.play(result)
        device.wait()


def cmd_schedule(args):
    """Print the planned timeline for a segments file."""
    segments = _load(args.file)
    print(f"{'#':>3}  {'start':>7}  {'dur':>6}  {'tone':<8} {'rate':<9} text")
    for i, seg in enumerate(schedule(segments)):
        preview = seg.text if len(seg.text) <= 40 else seg.text[:37] + "..."
        print(
            f"{i + 1:>3}  {seg.start_time:7.2f}  {seg.duration:6.2f}  "
            f"{seg.tagged.emotional_tone:<8} {seg.tagged.speech_rate:<9} {preview}"
        )


def cmd_render(args):
    """Synthesize, mix and export a segments file."""
    segments = _load(args.file)
    slug = args.slug or os.path.splitext(os.path.basename(args.file))[0]

    try:
        client = _make_client(args)
        print(f"Rendering {len(segments)} segments with {args.engine}...")
        result = render(segments, client)
        path = export(result, os.path.join(args.output_dir, slug), slug)
        print(f"Wrote {path} ({result.duration:.1f}s)")
        if args.play:
            _play(result)
    except MixerError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)


def cmd_play(args):
    """Play an audio file through the default output device."""
    if not os.path.exists(args.file):
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        raise SystemExit(1)
    with open(args.file, "rb") as f:
        data = f.read()
    result = MixedAudioResult(audio=data, duration=0.0, format=sniff_format(data) or "mp3")
    try:
        _play(result)
    except MixerError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="speech-mixer",
        description="Speech Mixer: schedule, synthesize and mix emotionally tagged speech segments",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # schedule
    schedule_parser = subparsers.add_parser("schedule", help="Show the planned timeline")
    schedule_parser.add_argument("file", help="Tagged segments JSON file")
    schedule_parser.set_defaults(func=cmd_schedule)

    # render
    render_parser = subparsers.add_parser("render", help="Synthesize and mix segments into one track")
    render_parser.add_argument("file", help="Tagged segments JSON file")
    render_parser.add_argument("-o", "--output-dir", default=OUTPUT_DIR, help="Output base directory")
    render_parser.add_argument("--slug", help="Output name (default: file name)")
    render_parser.add_argument("--engine", choices=["edge", "elevenlabs"], default="edge", help="Synthesis backend")
    render_parser.add_argument("--voice", default="", help="Voice name (edge) or voice id (elevenlabs)")
    render_parser.add_argument("--play", action="store_true", help="Play the result when done")
    render_parser.set_defaults(func=cmd_render)

    # play
    play_parser = subparsers.add_parser("play", help="Play an audio file")
    play_parser.add_argument("file", help="Audio file")
    play_parser.set_defaults(func=cmd_play)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)
