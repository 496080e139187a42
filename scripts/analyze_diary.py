#!/usr/bin/env python3
"""Analyze a diary entry, or parse a saved tutor reply, and print JSON.

Parses the tutor's markdown reply into native version, feedback,
vocabulary and key sentence. With --diary the entry is first sent to the
Gemini tutor (needs GEMINI_API_KEY).

Usage:
    # Parse a reply that was saved earlier
    python3 scripts/analyze_diary.py --markdown reply.md

    # Send a diary to the tutor and print the parsed analysis
    python3 scripts/analyze_diary.py --diary today.txt

    # Same, and store diary + reply for a date
    python3 scripts/analyze_diary.py --diary today.txt \
      --db data/diary.duckdb --date 2026-10-17 --title "Rainy Saturday"
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import orjson

from diarylens.analysis_parser import parse_analysis
from diarylens.diary_store import DiaryStore, normalize_date
from diarylens.presentation import render_analysis
from diarylens.tutor_client import GeminiTutorClient

log = logging.getLogger("analyze_diary")


def dump_json(obj: object) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Analyze a diary entry or parse a saved tutor reply."
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--markdown", type=Path, help="Saved tutor reply (markdown) to parse"
    )
    source.add_argument(
        "--diary", type=Path, help="Diary text file to send to the tutor"
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Print the raw tutor reply instead of the parsed analysis.",
    )
    parser.add_argument(
        "--db", type=Path, default=None, help="Store the result in this diary.duckdb"
    )
    parser.add_argument("--date", default=None, help="Diary date (default: today)")
    parser.add_argument("--user", default="local", help="User id for --db")
    parser.add_argument("--title", default="", help="Diary title for --db")
    parser.add_argument("--model", default="", help="Gemini model override")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _read_text(path: Path) -> str:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return path.read_text(encoding="utf-8")


def run(args: argparse.Namespace) -> int:
    try:
        day = normalize_date(args.date)
        if args.markdown is not None:
            diary_text = ""
            reply = _read_text(args.markdown)
        else:
            diary_text = _read_text(args.diary)
            tutor = GeminiTutorClient(model_name=args.model)
            log.info("Sending %d chars to %s", len(diary_text), tutor.model_version())
            reply = tutor.analyze(diary_text)
    except (FileNotFoundError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.db is not None:
        with DiaryStore(args.db, create_if_missing=True) as store:
            entry = store.save(args.user, day, args.title, diary_text, reply)
        log.info("Saved entry %s for %s", entry.entry_id, day)

    if args.raw:
        print(reply)
        return 0

    document = parse_analysis(reply)
    if document.is_empty:
        log.warning("No analysis sections found in reply")
    dump_json(render_analysis(document))
    return 0


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    sys.exit(run(args))


if __name__ == "__main__":
    main()
