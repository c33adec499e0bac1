"""Data model for crawl results."""

from .model import File, Diagnostic, ReachableSet

__all__ = ["File", "Diagnostic", "ReachableSet"]
