"""
Print a selector table for every clickable node of a hierarchy dump.

Usage:
    adb shell uiautomator dump /sdcard/window_dump.xml
    adb pull /sdcard/window_dump.xml
    python clickable_selectors.py window_dump.xml                     # screen size from adb
    python clickable_selectors.py window_dump.xml --resolution 1080x2400
"""

from __future__ import annotations

import argparse

import uidump
from uidump.errors import UiDumpError


def main() -> None:
    parser = argparse.ArgumentParser(description="Selectors for clickable nodes")
    parser.add_argument("dump", help="uiautomator dump XML")
    parser.add_argument("--resolution", default="adb", help='"WIDTHxHEIGHT" or "adb"')
    args = parser.parse_args()

    session = uidump.Session(resolution=args.resolution)
    root = session.load(args.dump, strict=False)

    for node in uidump.iter_nodes(root):
        if node.get_attribute("clickable") != "true":
            continue
        try:
            xpath = node.get_xpath_with_index()
            where = session.position(node.node_id)
        except UiDumpError as e:
            print(f"{node.node_id:>5}  {node.display_name}  ! {e}")
            continue
        print(f"{node.node_id:>5}  {where:<24} {xpath}")


if __name__ == "__main__":
    main()
