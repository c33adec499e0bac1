"""Extraction and resolution of the modules referenced by one source file."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from graph.model import Diagnostic, File
from .parser import DYNAMIC_IMPORT, IMPORT_DECLARATION, REQUIRE_CALL, Node, is_builtin
from .resolver import ResolutionError, resolve_module


logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Files referenced by a source file, and the diagnostic raised while scanning it."""

    files: List[File] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


def scan(tree: Node, source_path: str, fs=None) -> ScanResult:
    """
    Resolve every module referenced from a parsed source file.

    The tree is walked in pre-order. Reference sites are resolved and not
    descended into; every other node is descended into.

    Args:
        tree: Program node produced by ``parse_source``.
        source_path: Canonical path of the file the tree was parsed from.
        fs: Filesystem accessor passed on to the resolver.

    Returns:
        The resolved files (deduplicated by path) and at most one diagnostic.

    Raises:
        ResolutionError: If a required reference cannot be resolved.
    """
    files: Dict[str, File] = {}
    diagnostics: Dict[str, Diagnostic] = {}

    stack = [tree]
    while stack:
        node = stack.pop()
        if node.is_reference:
            _visit_reference(node, source_path, files, diagnostics, fs)
        else:
            stack.extend(reversed(node.children))

    return ScanResult(files=list(files.values()), diagnostics=list(diagnostics.values()))


def is_optional_site(node: Node) -> bool:
    """Check if a failed resolution at this site may be ignored."""
    return node.kind == DYNAMIC_IMPORT or (node.kind == REQUIRE_CALL and node.in_try)


def _visit_reference(
    node: Node,
    source_path: str,
    files: Dict[str, File],
    diagnostics: Dict[str, Diagnostic],
    fs,
) -> None:
    if node.kind == IMPORT_DECLARATION and node.type_only:
        return

    expression = node.specifier
    if expression is None:
        return

    if not expression.is_literal:
        if source_path not in diagnostics:
            diagnostics[source_path] = Diagnostic(
                source_path,
                f"Ignoring import of '{node.text}'. Only static import paths are supported.",
            )
        return

    specifier = expression.value
    if is_builtin(specifier):
        return

    try:
        resolved = resolve_module(specifier, source_path, fs)
    except ResolutionError as e:
        if not (is_optional_site(node) or e.optional):
            raise
        logger.debug("Optional reference %r in %s not found", specifier, source_path)
        diagnostics[source_path] = Diagnostic(
            source_path,
            f"Ignoring optional import of '{specifier}'. {e}",
        )
        return

    for file in resolved:
        files.setdefault(file.path, file)
