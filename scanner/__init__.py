"""Scanner module for module resolution and dependency crawling."""

from .builder import build_reachable_set, crawl_file
from .crawler import scan, ScanResult
from .discovery import iter_unused_files, find_node_modules_roots
from .fs import OsFileSystem
from .parser import parse_source, is_builtin
from .resolver import (
    resolve_module,
    resolve_file,
    resolve_package,
    resolve_export_map,
    ResolutionError,
    OptionalResolutionError,
)

__all__ = [
    "build_reachable_set",
    "crawl_file",
    "scan",
    "ScanResult",
    "iter_unused_files",
    "find_node_modules_roots",
    "OsFileSystem",
    "parse_source",
    "is_builtin",
    "resolve_module",
    "resolve_file",
    "resolve_package",
    "resolve_export_map",
    "ResolutionError",
    "OptionalResolutionError",
]
