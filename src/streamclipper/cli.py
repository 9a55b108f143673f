from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import random
import sys
from pathlib import Path
from typing import List, Optional

from .analysis_chat import summarize_chat
from .analysis_highlights import apply_padding
from .errors import AnalysisError
from .logging_config import setup_logging
from .pipeline import AnalyzeResult, analyze
from .profile import dump_profile, default_profile, load_profile, settings_from_profile
from .sources import load_chat_messages, load_wav_samples
from .utils import format_clock, format_duration


def _default_out_path(audio_path: Path) -> Path:
    return Path("outputs") / audio_path.stem / "highlights.json"


def _print_highlights(result: AnalyzeResult, pad_before: float, pad_after: float) -> None:
    padded = apply_padding(result.highlights, pad_before, pad_after, result.total_duration_s)
    print(f"{'ID':>3}  {'Type':<6}  {'Start':>10}  {'End':>10}  {'Score':>6}  {'Clip':>23}  Reasons")
    for h, (clip_start, clip_end) in zip(result.highlights, padded):
        clip = f"{format_clock(clip_start)}-{format_clock(clip_end)}"
        print(
            f"{h.id:>3}  {h.highlight_type.value:<6}  {format_clock(h.start_s):>10}  {format_clock(h.end_s):>10}  "
            f"{h.score:>6.1f}  {clip:>23}  {'; '.join(h.reasons)}"
        )


def cmd_analyze(args: argparse.Namespace) -> None:
    settings = settings_from_profile(load_profile(args.profile))

    audio_over = {}
    if args.workers is not None:
        audio_over["workers"] = args.workers
    if args.sensitivity is not None:
        audio_over["sensitivity"] = args.sensitivity
    if audio_over:
        settings = dataclasses.replace(settings, audio=dataclasses.replace(settings.audio, **audio_over))
    if args.max_clips is not None:
        settings = dataclasses.replace(
            settings, highlights=dataclasses.replace(settings.highlights, max_clips=args.max_clips)
        )
    if args.tier is not None:
        settings = dataclasses.replace(settings, tier=args.tier)

    samples, sample_rate = load_wav_samples(args.audio)
    messages = load_chat_messages(args.chat) if args.chat else None
    rng = random.Random(args.seed) if args.seed is not None else None

    result = analyze(samples, sample_rate, messages, settings, rng=rng)

    payload = result.to_dict()
    payload["settings"] = settings.to_dict()
    out_path = args.out or _default_out_path(args.audio)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    print(f"Wrote: {out_path}")
    print(f"Duration: {format_duration(result.total_duration_s)}  Highlights: {len(result.highlights)}")
    print()
    _print_highlights(result, args.pad_before, args.pad_after)


def cmd_chat_info(args: argparse.Namespace) -> None:
    info = summarize_chat(load_chat_messages(args.chat))
    print(f"Messages: {info.total_messages}")
    print(f"Duration: {format_duration(info.duration_s)}")
    print(f"Average rate: {info.avg_rate_per_min:.1f} msg/min")


def cmd_profile(args: argparse.Namespace) -> None:
    text = dump_profile(default_profile())
    if args.out is None:
        print(text, end="")
        return
    args.out.parent.mkdir(parents=True, exist_ok=True)
    args.out.write_text(text, encoding="utf-8")
    print(f"Wrote: {args.out}")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="streamclipper", description="Find highlights from audio + chat activity")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", type=Path, default=None)
    sub = parser.add_subparsers(dest="cmd", required=True)

    a = sub.add_parser("analyze", help="Detect highlights in a WAV file, optionally with a chat log.")
    a.add_argument("audio", type=Path, help="16-bit PCM WAV extracted from the video")
    a.add_argument("--chat", type=Path, default=None, help="Normalized chat log (JSON or JSONL)")
    a.add_argument("--profile", type=Path, default=None, help="Path to a YAML profile")
    a.add_argument("--out", type=Path, default=None)
    a.add_argument("--sensitivity", type=float, default=None)
    a.add_argument("--workers", type=int, default=None, help="Threads for chunk metrics")
    a.add_argument("--max-clips", type=int, default=None)
    a.add_argument("--tier", choices=("pro", "free"), default=None)
    a.add_argument("--seed", type=int, default=None, help="Seed for capped random selection")
    a.add_argument("--pad-before", type=float, default=3.0)
    a.add_argument("--pad-after", type=float, default=2.0)
    a.set_defaults(func=cmd_analyze)

    c = sub.add_parser("chat-info", help="Summarize a normalized chat log.")
    c.add_argument("chat", type=Path)
    c.set_defaults(func=cmd_chat_info)

    p = sub.add_parser("profile", help="Print (or write) the default YAML profile.")
    p.add_argument("--out", type=Path, default=None)
    p.set_defaults(func=cmd_profile)

    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, log_file=args.log_file)
    try:
        args.func(args)
    except (AnalysisError, FileNotFoundError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
