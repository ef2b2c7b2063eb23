"""Command line tools for saved form layouts.

Usage:
  python -m formlayout show layout.json              # print snapshot JSON
  python -m formlayout check layout.png              # invariants + overlaps
  python -m formlayout resolve in.json -o out.json   # turn avoidance on
  python -m formlayout export in.json -o out.png     # convert format

Common options:
  --settings PATH   load EditorSettings from a JSON file
  --grid-size N     override the grid size from settings
  -v, --verbose     debug logging

Exit codes:
  0 = success
  1 = check found problems, or the input could not be loaded/saved
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from ..engine.layout import FormLayout
from ..engine.placement import find_overlapping_pairs
from ..engine.session import EditorSession
from ..engine.settings_io import load_settings
from ..engine.snapshot import restore_layout
from ..engine.types import EditorSettings, check_grid_size
from .layout_io import load_snapshot, save_snapshot


def _settings_from_args(args: argparse.Namespace) -> EditorSettings:
    if args.settings:
        settings = load_settings(Path(args.settings))
    else:
        settings = EditorSettings()
    if args.grid_size is not None:
        settings.grid_size = check_grid_size(args.grid_size)
    return settings


def _load_session(args: argparse.Namespace) -> EditorSession:
    snapshot = load_snapshot(args.path)
    session = EditorSession(settings=_settings_from_args(args))
    session.load_snapshot(snapshot)
    return session


def cmd_show(args: argparse.Namespace) -> int:
    snapshot = load_snapshot(args.path)
    print(json.dumps(snapshot.to_dict(), indent=2))
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    snapshot = load_snapshot(args.path)
    layout = FormLayout(snapshot.components)
    problems = layout.check_invariants(settings.min_width, settings.min_height)
    for problem in problems:
        print(f"✗ {problem}")
    if problems:
        return 1

    pairs = find_overlapping_pairs(layout)
    marker = "•" if snapshot.allow_overlap else "✗"
    for a, b in pairs:
        print(f"{marker} components {a} and {b} overlap")
    if pairs and not snapshot.allow_overlap:
        return 1
    print(f"✓ {len(layout)} component(s), layout is consistent")
    return 0


def cmd_resolve(args: argparse.Namespace) -> int:
    session = _load_session(args)
    # Saved with avoidance already on does not mean overlap-free.
    session.settings.allow_overlap = True
    moved = session.on_overlap_policy_changed(False)
    save_snapshot(session.snapshot(), args.output)
    print(f"✓ relocated {len(moved)} component(s) -> {args.output}")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    snapshot = load_snapshot(args.path)
    restore_layout(snapshot)
    save_snapshot(snapshot, args.output)
    print(f"✓ wrote {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="formlayout", description="Inspect and convert form layouts."
    )
    parser.add_argument("--settings", help="EditorSettings JSON file")
    parser.add_argument("--grid-size", type=int, help="Override grid size")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Print a layout's snapshot JSON")
    show.add_argument("path")
    show.set_defaults(func=cmd_show)

    check = sub.add_parser("check", help="Validate a layout")
    check.add_argument("path")
    check.set_defaults(func=cmd_check)

    resolve = sub.add_parser(
        "resolve", help="Turn overlap avoidance on and relocate overlaps"
    )
    resolve.add_argument("path")
    resolve.add_argument("-o", "--output", required=True)
    resolve.set_defaults(func=cmd_resolve)

    export = sub.add_parser("export", help="Convert between JSON and PNG")
    export.add_argument("path")
    export.add_argument("-o", "--output", required=True)
    export.set_defaults(func=cmd_export)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (OSError, ValueError) as e:
        print(f"✗ ERROR: {e}", file=sys.stderr)
        return 1
