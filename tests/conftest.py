"""Shared fixtures for building file trees on disk."""

import json

import pytest


@pytest.fixture
def root(tmp_path):
    """Canonical temporary directory."""
    return tmp_path.resolve()


@pytest.fixture
def make_files(root):
    """
    Return a helper that writes ``{relative path: content}`` under root.

    Dict and list contents are written as JSON.
    """
    def _make(files):
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if not isinstance(content, str):
                content = json.dumps(content)
            path.write_text(content, encoding="utf-8")
        return root
    return _make
