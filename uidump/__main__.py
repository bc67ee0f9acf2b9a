"""CLI for uidump: python -m uidump window_dump.xml"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time

from uidump import Session
from uidump.errors import UiDumpError
from uidump.format import _format_line


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="uidump: Inspect an Android UI hierarchy dump (uiautomator dump XML)"
    )
    parser.add_argument("dump", type=str, help="Path to the hierarchy XML dump")
    parser.add_argument(
        "--resolution",
        type=str,
        default=None,
        help='Screen resolution: "WIDTHxHEIGHT" or "adb" to ask the connected device',
    )
    parser.add_argument("--xpath", type=str, default=None, help="Print the selector of a node ID")
    parser.add_argument(
        "--indexed", action="store_true", help="Include the sibling index in --xpath output"
    )
    parser.add_argument(
        "--center", type=str, default=None, help="Print center and screen position of a node ID"
    )
    parser.add_argument("--find", type=str, default=None, help='Search nodes ("login button")')
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Keep nodes with unparsable bounds instead of failing",
    )
    parser.add_argument("--json-out", type=str, default=None, help="Write JSON envelope to file")
    parser.add_argument("--compact-out", type=str, default=None, help="Write compact text to file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Print diagnostics")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        # Position summaries need a resolution; ask the device when none is given.
        resolution = args.resolution or ("adb" if args.center else None)
        session = Session(resolution=resolution)
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    try:
        t0 = time.perf_counter()
        root = session.load(args.dump, strict=not args.lenient)
        t_load = (time.perf_counter() - t0) * 1000
        if args.verbose:
            print(f"Loaded {args.dump} in {t_load:.1f} ms", file=sys.stderr)

        # -- single-node queries --
        if args.xpath or args.center or args.find:
            if args.xpath:
                print(session.xpath(args.xpath, indexed=args.indexed))
            if args.center:
                print(session.position(args.center))
            if args.find:
                matches = session.find(query=args.find)
                if not matches:
                    print("No matching nodes found.")
                for node in matches:
                    print(_format_line(node))
            return 0

        # -- whole tree --
        compact_str = session.snapshot(compact=True)
        print(compact_str)

        if args.compact_out:
            with open(args.compact_out, "w", encoding="utf-8") as f:
                f.write(compact_str)
            if args.verbose:
                print(f"Compact written to {args.compact_out}", file=sys.stderr)

        if args.json_out:
            envelope = session.snapshot(compact=False)
            with open(args.json_out, "w", encoding="utf-8") as f:
                json.dump(envelope, f, indent=2, ensure_ascii=False)
            if args.verbose:
                json_kb = len(json.dumps(envelope, ensure_ascii=False)) / 1024
                print(f"JSON written to {args.json_out} ({json_kb:.1f} KB)", file=sys.stderr)

        if args.verbose:
            print(f"{len(root.children)} top-level node(s)", file=sys.stderr)
    except (UiDumpError, KeyError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
