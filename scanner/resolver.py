"""Module resolution for relative, absolute and bare (package) specifiers."""

import json
import logging
import os
import re
import stat
from typing import Any, Dict, List, Optional

from graph.model import File
from .fs import DEFAULT_FS


logger = logging.getLogger(__name__)

NODE_MODULES = "node_modules"
PACKAGE_MANIFEST = "package.json"
INDEX_FILE = "index.js"
PROBE_SUFFIXES = ("", ".js")
EXPORT_CONDITIONS = ("import", "default")
DEPENDENCY_FIELDS = ("dependencies", "peerDependencies")

# "@scope/name/sub/path" or "name/sub/path"
PACKAGE_SPECIFIER_RE = re.compile(r"^(?P<package>(?:@[^/]+/[^/]+|[^/]+))(?:/(?P<path>.*))?")


class ResolutionError(Exception):
    """A module specifier could not be located on disk."""

    kind = "required"
    suffix = ""

    def __init__(self, specifier: str, source: str):
        self.specifier = specifier
        self.source = source
        super().__init__(f"Cannot find package '{specifier}' from '{source}'{self.suffix}")

    @property
    def optional(self) -> bool:
        """True if the failure may be downgraded to a diagnostic."""
        return self.kind == "optional"


class OptionalResolutionError(ResolutionError):
    """A package is missing and the referencing package does not declare it."""

    kind = "optional"
    suffix = ". But it's not listed in dependencies or peerDependencies"


def resolve_module(specifier: str, source: str, fs=None) -> List[File]:
    """
    Resolve a module specifier written in ``source`` to filesystem entries.

    Args:
        specifier: The literal string from the import or require site.
        source: Path of the referencing file.
        fs: Filesystem accessor (defaults to the real filesystem).

    Returns:
        The entries touched by the resolution. The last one is the resolved
        module; earlier ones are symlinks and manifests passed on the way.

    Raises:
        ResolutionError: If the specifier cannot be resolved.
        OptionalResolutionError: If a package is missing and not declared as
            a dependency of the referencing package.
    """
    if specifier.startswith((".", "/")):
        files = [resolve_file(specifier, source, fs)]
    else:
        files = resolve_package(specifier, source, fs)
    logger.debug("Resolved %r from %s to %s", specifier, source, files[-1].path)
    return files


def resolve_file(specifier: str, source: str, fs=None) -> File:
    """
    Resolve a relative or absolute specifier.

    Tries the literal path, the path with ``.js`` appended and a directory
    ``index.js``. From a ``.ts`` file a trailing ``.js`` is also tried as
    ``.ts``.
    """
    fs = fs or DEFAULT_FS
    source = os.path.abspath(source)

    found = _probe(_join_specifier(specifier, source), fs)
    if found is None and source.endswith(".ts"):
        ts_specifier = re.sub(r"\.js$", ".ts", specifier)
        if ts_specifier != specifier:
            found = _probe(_join_specifier(ts_specifier, source), fs)

    if found is None:
        raise ResolutionError(specifier, source)
    return found


def resolve_package(specifier: str, source: str, fs=None) -> List[File]:
    """
    Resolve a bare specifier through the ``node_modules`` ancestor chain.

    Args:
        specifier: Package name, optionally scoped, with an optional subpath.
        source: Path of the referencing file.
        fs: Filesystem accessor.

    Returns:
        The symlink and manifest entries met on the way, followed by the
        resolved entry point.
    """
    fs = fs or DEFAULT_FS
    source = os.path.abspath(source)

    match = PACKAGE_SPECIFIER_RE.match(specifier)
    if not match:
        raise ResolutionError(specifier, source)
    package_name = match.group("package")
    subpath = match.group("path") or None

    files: List[File] = []
    package_root = _find_package_root(package_name, os.path.dirname(source), files, fs)
    if package_root is not None:
        entry_point = _resolve_entry_point(package_root, subpath, files, fs)
        if entry_point is not None:
            files.append(entry_point)
            return files

    raise _missing_package_error(package_name, specifier, source, fs)


def resolve_export_map(
    package_root: str,
    exports: Any,
    subpath: Optional[str] = None,
    fs=None,
) -> Optional[File]:
    """
    Pick a target out of a package's ``exports`` field.

    A matching subpath key ("." or "./<subpath>") is selected first. Nested
    condition objects are then reduced by taking the first "import" or
    "default" key in declaration order.

    Returns:
        The resolved file, or None if nothing usable was found.
    """
    fs = fs or DEFAULT_FS
    value = exports

    if isinstance(value, dict):
        key = f"./{subpath}" if subpath else "."
        if key in value:
            value = value[key]

    while isinstance(value, dict):
        for key in value:
            if key in EXPORT_CONDITIONS:
                value = value[key]
                break
        else:
            return None

    if not isinstance(value, str):
        return None
    return _probe(os.path.normpath(os.path.join(package_root, value)), fs)


def find_package_manifest(start_dir: str, fs=None, within_package: bool = False) -> Optional[str]:
    """
    Find the nearest ``package.json`` at or above ``start_dir``.

    Args:
        start_dir: Directory to start from.
        fs: Filesystem accessor.
        within_package: Stop before climbing into a ``node_modules`` directory.

    Returns:
        Path of the manifest, or None if there is none.
    """
    fs = fs or DEFAULT_FS
    directory = start_dir
    while True:
        candidate = os.path.join(directory, PACKAGE_MANIFEST)
        if _target_kind(candidate, fs) == "file":
            return candidate
        parent = os.path.dirname(directory)
        if parent == directory:
            return None
        if within_package and os.path.basename(parent) == NODE_MODULES:
            return None
        directory = parent


def read_package_manifest(path: str, fs=None) -> Dict[str, Any]:
    """Load a ``package.json``. Anything but a JSON object reads as empty."""
    fs = fs or DEFAULT_FS
    try:
        data = json.loads(fs.read_text(path))
    except ValueError as e:
        logger.warning("Ignoring unreadable manifest %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring manifest %s: not a JSON object", path)
        return {}
    return data


def _find_package_root(package_name: str, start_dir: str, files: List[File], fs) -> Optional[str]:
    """Walk up from ``start_dir`` looking for ``node_modules/<package_name>``."""
    directory = start_dir
    while True:
        path = os.path.join(directory, NODE_MODULES, package_name)
        kind = _kind(path, fs)
        if kind == "link":
            files.append(File(path, False))
            path = fs.realpath(path)
            kind = _kind(path, fs)
        if kind is not None:
            return path

        parent = os.path.dirname(directory)
        if parent == directory:
            return None
        directory = parent


def _resolve_entry_point(package_root: str, subpath: Optional[str], files: List[File], fs) -> Optional[File]:
    manifest: Dict[str, Any] = {}
    manifest_path = find_package_manifest(package_root, fs, within_package=True)
    if manifest_path is not None:
        files.append(File(manifest_path, False))
        manifest = read_package_manifest(manifest_path, fs)
        # exports is authoritative, no fallback to main/module
        if "exports" in manifest:
            return resolve_export_map(package_root, manifest["exports"], subpath, fs)

    if subpath:
        target = subpath
    elif isinstance(manifest.get("module"), str):
        target = manifest["module"]
    elif isinstance(manifest.get("main"), str):
        target = manifest["main"]
    else:
        target = INDEX_FILE
    return _probe(os.path.normpath(os.path.join(package_root, target)), fs)


def _missing_package_error(package_name: str, specifier: str, source: str, fs) -> ResolutionError:
    manifest_path = find_package_manifest(os.path.dirname(source), fs)
    if manifest_path is not None:
        manifest = read_package_manifest(manifest_path, fs)
        declared = set()
        for field in DEPENDENCY_FIELDS:
            dependencies = manifest.get(field)
            if isinstance(dependencies, dict):
                declared.update(dependencies)
        if package_name not in declared:
            return OptionalResolutionError(specifier, source)
    return ResolutionError(specifier, source)


def _join_specifier(specifier: str, source: str) -> str:
    if specifier.startswith("/"):
        return os.path.normpath(specifier)
    return os.path.normpath(os.path.join(os.path.dirname(source), specifier))


def _probe(path: str, fs) -> Optional[File]:
    """Find the file a module path points at: as-is, with ``.js``, or as a directory index."""
    for suffix in PROBE_SUFFIXES:
        candidate = path + suffix
        kind = _target_kind(candidate, fs)
        if kind == "file":
            return File(fs.realpath(candidate), True)
        if kind == "dir":
            index = os.path.join(candidate, INDEX_FILE)
            if _target_kind(index, fs) == "file":
                return File(fs.realpath(index), True)
    return None


def _kind(path: str, fs) -> Optional[str]:
    """Classify a path without following a final symlink."""
    try:
        mode = fs.lstat(path).st_mode
    except OSError:
        return None
    if stat.S_ISLNK(mode):
        return "link"
    if stat.S_ISDIR(mode):
        return "dir"
    if stat.S_ISREG(mode):
        return "file"
    return "other"


def _target_kind(path: str, fs) -> Optional[str]:
    """Classify a path, following symlinks to their target."""
    kind = _kind(path, fs)
    if kind == "link":
        kind = _kind(fs.realpath(path), fs)
    return kind
