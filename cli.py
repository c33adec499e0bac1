#!/usr/bin/env python3
"""
modprune CLI

Crawls the modules reachable from one or more entrypoints and lists or
deletes the files inside node_modules that nothing references.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Iterable

from exporters import to_json, to_text
from scanner.builder import build_reachable_set
from scanner.discovery import iter_unused_files
from scanner.resolver import NODE_MODULES, ResolutionError


def parse_args(args=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="modprune",
        description="Find (and optionally delete) files in node_modules that are never imported.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  modprune src/index.js                # Print every file reachable from the entrypoint
  modprune src/index.js --list         # List unused files in node_modules
  modprune ./server.js ./worker.js --json  # Unused files as a JSON array
  modprune dist/index.js --rm          # Delete unused files
        """,
    )

    parser.add_argument(
        "entrypoints",
        nargs="+",
        help="Entrypoint files or module specifiers to start crawling from",
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="List unused files",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="List unused files as JSON",
    )

    parser.add_argument(
        "--rm",
        action="store_true",
        help="Delete unused files",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log resolution details",
    )

    return parser.parse_args(args)


def normalize_entrypoint(entrypoint: str, cwd: Path) -> str:
    """
    Turn an entrypoint naming an existing file into an absolute specifier.

    ``src/index.js`` would otherwise be read as a package name.
    """
    if entrypoint.startswith((".", "/")):
        return entrypoint
    candidate = cwd / entrypoint
    if candidate.is_file():
        return str(candidate.resolve())
    return entrypoint


def remove_files(paths: Iterable[Path]) -> int:
    """
    Delete files, then any directories that were left empty.

    Returns:
        Number of files removed.
    """
    removed = 0
    parents = set()
    for path in paths:
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        removed += 1
        parents.add(path.parent)

    for directory in sorted(parents, key=lambda p: len(p.parts), reverse=True):
        while directory.name != NODE_MODULES and directory.is_dir() and not any(directory.iterdir()):
            directory.rmdir()
            directory = directory.parent

    return removed


def main(args=None):
    """Main entry point."""
    parsed = parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    cwd = Path(os.path.realpath(os.getcwd()))
    entrypoints = [normalize_entrypoint(entrypoint, cwd) for entrypoint in parsed.entrypoints]

    # Crawl
    try:
        reachable = build_reachable_set(entrypoints)
    except ResolutionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading source file: {e}", file=sys.stderr)
        return 1

    if not (parsed.list or parsed.json or parsed.rm):
        output = to_text((file.path for file in reachable.source_files()), base=cwd, bullet="")
        if output:
            print(output)
        return 0

    unused = list(iter_unused_files(reachable, project_dir=cwd))

    if parsed.list and unused:
        print(to_text(unused, base=cwd))

    if parsed.json:
        print(to_json(unused, base=cwd, indent=None))

    if parsed.rm:
        try:
            removed = remove_files(unused)
        except OSError as e:
            print(f"Error removing files: {e}", file=sys.stderr)
            return 1
        print(f"Removed {removed} unused file(s)", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
