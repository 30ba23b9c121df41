#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from flow_puzzle.services.color_counts import calculate_color_counts
from flow_puzzle.services.fingerprint import SeenSet
from flow_puzzle.services.generator import DEFAULT_PALETTE_SIZE, MIN_PATH_CELLS
from flow_puzzle.services.orchestrator import BULK_MAX_ATTEMPTS, generate_unique


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate unique levels into a directory, one JSON file per level."
    )
    parser.add_argument("--width", type=int, required=True)
    parser.add_argument("--height", type=int, required=True)
    parser.add_argument("--count", type=int, required=True, help="Number of levels to write.")
    parser.add_argument("--out", type=Path, required=True, help="Output directory.")
    parser.add_argument(
        "--seen-file",
        type=Path,
        default=None,
        help="JSON list of known fingerprints. Read before and updated after the run.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Base seed for a reproducible batch. Without it levels are random.",
    )
    parser.add_argument("--max-attempts", type=int, default=BULK_MAX_ATTEMPTS)
    parser.add_argument("--palette-size", type=int, default=DEFAULT_PALETTE_SIZE)
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def load_seen_file(path: Path | None) -> SeenSet:
    if path is None or not path.exists():
        return frozenset()
    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise SystemExit(f"Seen file must hold a JSON list: {path}")
    return frozenset(str(fp) for fp in raw)


def save_seen_file(path: Path, seen: SeenSet) -> None:
    path.write_text(json.dumps(sorted(seen), indent="\t") + "\n", encoding="utf-8")


def next_level_number(out_dir: Path) -> int:
    numbers = []
    for path in out_dir.glob("level_*.json"):
        try:
            numbers.append(int(path.stem.removeprefix("level_")))
        except ValueError:
            continue
    return max(numbers, default=0) + 1


def color_range(width: int, height: int, palette_size: int) -> tuple[int, int]:
    fit = max(1, (width * height) // MIN_PATH_CELLS)
    min_colors, max_colors = calculate_color_counts(width, height, palette_size)
    min_colors = min(min_colors, fit)
    return min_colors, max(min_colors, min(max_colors, fit))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    args.out.mkdir(parents=True, exist_ok=True)
    seen = load_seen_file(args.seen_file)
    min_colors, max_colors = color_range(args.width, args.height, args.palette_size)

    number = next_level_number(args.out)
    written = 0
    skipped = 0

    for i in range(args.count):
        seed = None if args.seed is None else args.seed + i * args.max_attempts
        result = generate_unique(
            args.width,
            args.height,
            min_colors,
            max_colors,
            palette_size=args.palette_size,
            seen=seen,
            max_attempts=args.max_attempts,
            seed=seed,
        )
        if not result.is_unique:
            skipped += 1
            print(f"level {i + 1}: {result.warning} ({result.validation_error or 'duplicate'})")
            continue

        seen = result.seen
        data = result.puzzle.to_dict()
        data["fingerprint"] = result.fingerprint
        data["used_fallback"] = result.used_fallback

        path = args.out / f"level_{number:04d}.json"
        path.write_text(json.dumps(data, indent="\t") + "\n", encoding="utf-8")
        print(f"{path.name}: {result.fingerprint} colors={result.puzzle.difficulty} attempts={result.attempts_used}")
        number += 1
        written += 1

    if args.seen_file is not None:
        save_seen_file(args.seen_file, seen)

    print(f"Wrote {written} level file(s), skipped {skipped}, {len(seen)} known fingerprints.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
