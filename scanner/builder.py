"""Crawl driver: follows module references from entrypoints to a fixpoint."""

import logging
import os
from collections import deque
from typing import Deque, Iterable, Optional

from graph.model import File, ReachableSet
from .crawler import ScanResult, scan
from .fs import DEFAULT_FS
from .parser import parse_source
from .resolver import PACKAGE_MANIFEST, resolve_module


logger = logging.getLogger(__name__)


def build_reachable_set(
    entrypoints: Iterable[str],
    referrer: Optional[str] = None,
    fs=None,
) -> ReachableSet:
    """
    Collect every file reachable from the given entrypoints.

    Args:
        entrypoints: Module specifiers to start from.
        referrer: Path the entrypoints are resolved from. Defaults to the
                  ``package.json`` of the current working directory.
        fs: Filesystem accessor (defaults to the real filesystem).

    Returns:
        ReachableSet with every visited entry in visiting order, plus the
        diagnostics raised along the way.

    Raises:
        ResolutionError: If a required module cannot be resolved.
    """
    fs = fs or DEFAULT_FS
    if referrer is None:
        referrer = os.path.join(os.getcwd(), PACKAGE_MANIFEST)

    reachable = ReachableSet()
    queue: Deque[File] = deque()

    for entrypoint in entrypoints:
        queue.extend(resolve_module(entrypoint, referrer, fs))

    while queue:
        file = queue.popleft()
        if not reachable.add(file):
            continue
        if not file.is_file:
            continue

        result = crawl_file(file.path, fs)
        for diagnostic in result.diagnostics:
            logger.warning("%s", diagnostic)
            reachable.add_diagnostic(diagnostic)
        queue.extend(result.files)

    logger.debug("Crawl finished: %r", reachable)
    return reachable


def crawl_file(path: str, fs=None) -> ScanResult:
    """Read, parse and scan a single source file."""
    fs = fs or DEFAULT_FS
    logger.debug("Scanning %s", path)
    tree = parse_source(fs.read_text(path))
    return scan(tree, path, fs)
