#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path


def _ensure_src_on_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src = repo_root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


def _read_bytes(path: str) -> bytes:
    p = Path(path)
    if not p.exists():
        raise SystemExit(f"File not found: {p}")
    return p.read_bytes()


def main(argv: list[str] | None = None) -> int:
    _ensure_src_on_path()

    from opal_portal.portal.parsers import parse_activity, parse_login, parse_overview
    from opal_portal.util.dates import DEFAULT_ZONE_NAME, load_zone

    p = argparse.ArgumentParser(
        prog="parse_saved_page",
        description=(
            "Parse a saved portal page (e.g. data/debug/activity_failure.html) into JSON.\n"
            "This is intended for debugging parsing regressions offline (no network, no credentials)."
        ),
    )
    p.add_argument("page", choices=["login", "overview", "activity"], help="Which page parser to run")
    p.add_argument("--file", required=True, help="Path to the saved HTML page")
    p.add_argument("--timezone", default=DEFAULT_ZONE_NAME, help=f"Civil zone for activity times (default: {DEFAULT_ZONE_NAME})")
    p.add_argument("--out", default="", help="Optional output JSON path (otherwise prints to stdout)")

    args = p.parse_args(argv)
    raw = _read_bytes(args.file)

    if args.page == "login":
        payload: object = {"csrf_token": parse_login(raw)}
    elif args.page == "overview":
        payload = parse_overview(raw).model_dump(mode="json")
    else:
        payload = parse_activity(raw, zone=load_zone(args.timezone)).model_dump(mode="json")

    out_json = json.dumps(payload, indent=2, sort_keys=False)
    if args.out:
        Path(args.out).write_text(out_json, encoding="utf-8")
    else:
        print(out_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
