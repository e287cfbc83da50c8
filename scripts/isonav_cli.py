#!/usr/bin/env python3
"""
isonav CLI

Usage modes:
- Default run: compile YAML, fly to a bookmark, print the settled state as JSON
- Validation: check the scene tree and connector endpoints, print issues
- Export: write GraphML of the scene tree for external tools
- Recording: stream every frame event to JSONL for offline rendering
- Utility: list sample scenes, show version, dry-run compile only
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from glob import glob
from pathlib import Path
from typing import Any, Dict, List

from isonav_core import MeasureMode, SceneDocument  # type: ignore
from isonav_core.config import WidgetConfig  # type: ignore
from isonav_core.compiler import compile_from_file  # type: ignore
from isonav_core.persistence import from_query, to_query  # type: ignore
from isonav_anim.adapters.jsonl import write_events_jsonl  # type: ignore
from isonav_anim.adapters.live import WidgetStepper  # type: ignore
from isonav_anim.script.timeline import compile_events_to_transitions  # type: ignore


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Drive an isonav scene from YAML and dump the settled state",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Utilities / meta
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v, -vv)")
    p.add_argument("--list-scenes", action="store_true", help="List bundled sample YAML scenes and exit")

    # Primary input
    p.add_argument("yaml", nargs="?", help="Path to YAML scene (e.g., scripts/demo_scene.yaml)")

    # Navigation
    p.add_argument("--bookmark", type=int, default=None, help="Bookmark index to navigate to")
    p.add_argument("--key", type=str, default="", help="Navigate by element id or section id")
    p.add_argument("--reset", action="store_true", help="Return to the default pose")
    p.add_argument("--query", type=str, default="", help="Replay a persisted query string")
    p.add_argument("--prefix", type=str, default="", help="Query parameter prefix")
    p.add_argument("--highlight", type=str, default="", help="Comma-separated groups to highlight")

    # Execution
    p.add_argument("--frames", type=int, default=0, help="Frames to run (0 = until idle)")
    p.add_argument("--fps", type=float, default=60.0, help="Frame rate used to drive the widget")
    p.add_argument("--max-frames", type=int, default=3600, help="Upper bound on frames when running until idle")
    p.add_argument("--measure", choices=["flat", "current"], default="flat", help="Anchor measurement mode")
    p.add_argument("--dry-run", action="store_true", help="Compile only; do not drive the widget")
    p.add_argument("--out", type=str, default="", help="Optional output JSON file path")

    # Widget config overrides
    p.add_argument("--duration", type=float, default=None, help="Navigation duration in ms")
    p.add_argument("--corner-radius", type=float, default=None, help="Base connector corner radius")
    p.add_argument("--settle-delay", type=float, default=None, help="Layout settle delay in ms")
    p.add_argument("--nav-target", type=str, default=None, help="'clicked' or a face kind (top, front, ...)")

    # Analysis / export
    p.add_argument("--validate", action="store_true", help="Validate the scene tree and connectors")
    p.add_argument("--export-graphml", type=str, default="", help="Export the scene tree to GraphML at given path")
    p.add_argument("--events-jsonl", type=str, default="", help="Write frame events to a JSONL file")

    return p.parse_args(argv)


def build_config(args: argparse.Namespace, cfg: WidgetConfig | None = None) -> WidgetConfig:
    cfg = cfg or WidgetConfig()
    if args.duration is not None:
        cfg.navigation_duration_ms = float(args.duration)
    if args.corner_radius is not None:
        cfg.corner_radius = float(args.corner_radius)
    if args.settle_delay is not None:
        cfg.settle_delay_ms = float(args.settle_delay)
    if args.nav_target is not None:
        cfg.nav_selected_target = args.nav_target
    return cfg


def setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def find_sample_scenes() -> List[str]:
    # Search relative to repo root and this script location
    here = Path(__file__).resolve()
    repo_root = here.parent.parent
    candidates = []
    for base in [repo_root, here.parent]:
        candidates.extend(sorted(glob(str(base / "*.yaml"))))
        candidates.extend(sorted(glob(str(base / "scripts" / "*.yaml"))))
    # Deduplicate while preserving order
    seen = set()
    result = []
    for c in candidates:
        if c not in seen:
            seen.add(c)
            result.append(c)
    return result


def validate_document(doc: SceneDocument) -> Dict[str, List[str]]:
    issues = doc.tree.validate()
    missing = []
    for c in doc.connectors:
        for element_id in (c.from_id, c.to_id):
            if element_id not in doc.layout:
                missing.append(f"Connector '{c.label}' endpoint '{element_id}' has no rect")
    if missing:
        issues["unresolved_anchors"] = missing
    for b in doc.bookmarks:
        if b.pan is None and b.element_id and b.element_id not in doc.layout:
            issues.setdefault("unresolved_bookmarks", []).append(
                f"Bookmark {b.index} auto-centers on '{b.element_id}' which has no rect"
            )
    return issues


def _write(payload: Dict[str, Any], out: str) -> None:
    if out:
        with open(out, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
    else:
        print(json.dumps(payload, indent=2))


def main(argv: List[str] | None = None) -> int:
    try:
        from isonav_core import __version__ as isonav_version  # type: ignore
    except Exception:
        isonav_version = "unknown"

    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.version:
        print(isonav_version)
        return 0

    if args.list_scenes:
        scenes = find_sample_scenes()
        if not scenes:
            print("[]")
            return 0
        print(json.dumps(scenes, indent=2))
        return 0

    if not args.yaml:
        print("error: missing YAML path (try --list-scenes)", file=sys.stderr)
        return 2

    logging.info("Compiling scene from %s", args.yaml)
    doc = compile_from_file(args.yaml)
    doc.config = build_config(args, doc.config)

    if args.validate:
        issues = validate_document(doc)
        total = sum(len(v) for v in issues.values())
        logging.info("Validation issues: %d", total)
        print(json.dumps({"total_issues": total, "issues": issues}, indent=2))
        return 1 if total > 0 else 0

    if args.export_graphml:
        logging.info("Exporting GraphML to %s", args.export_graphml)
        doc.tree.export_graphml(args.export_graphml)

    if args.dry_run:
        # Provide a minimal scene summary
        minimal = {
            "nodes": len(doc.tree),
            "bookmarks": len(doc.bookmarks),
            "connectors": len(doc.connectors),
        }
        _write(minimal, args.out)
        return 0

    mode = MeasureMode.CURRENT if args.measure == "current" else MeasureMode.FLAT
    widget = doc.build_widget(measure_mode=mode)
    stepper = WidgetStepper(widget, fps=args.fps, max_frames=args.max_frames)

    if args.highlight:
        widget.highlight(args.highlight.split(","))

    ok = True
    if args.query:
        ok = widget.load_persisted(from_query(args.query, args.prefix))
    elif args.bookmark is not None:
        ok = widget.navigate_to(args.bookmark)
    elif args.key:
        ok = widget.navigate_by_key(args.key)
    elif args.reset:
        ok = widget.reset_to_default()
    if not ok:
        logging.warning("Navigation request could not be resolved")

    events = list(stepper.stream_events(frames=args.frames or None))
    stepper.close()
    if args.events_jsonl:
        n = write_events_jsonl(events, args.events_jsonl)
        logging.info("Wrote %d events to %s", n, args.events_jsonl)

    transitions = compile_events_to_transitions(events)
    summary: Dict[str, Any] = {
        "frames": stepper.frame_index,
        "bookmark_index": widget.bookmark_index,
        "mode": widget.mode.name,
        "pose": widget.pose.as_dict(),
        "selected": widget.selected_element_id,
        "active_groups": list(widget.active_groups) if widget.active_groups is not None else None,
        "dimmed": sorted(widget.highlighter.dimmed_ids()),
        "connectors": [
            {
                "id": r.spec.label,
                "shape": r.shape.name,
                "path": r.svg_path(),
                "active": r.active,
                "animated": r.marker is not None,
            }
            for r in widget.connector_renders
        ],
        "transitions": [
            {"index": tr.idx, "duration": tr.duration, "settled": tr.settled} for tr in transitions
        ],
        "persisted": to_query(widget.persisted_state(), args.prefix),
    }
    _write(summary, args.out)
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
