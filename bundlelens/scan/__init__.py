from __future__ import annotations

from bundlelens.scan.loader import load_bundle, resolve_root, walk_files
from bundlelens.scan.manifest import parse_manifest

__all__ = [
    "load_bundle",
    "parse_manifest",
    "resolve_root",
    "walk_files",
]
