# Extracted bundle -> Bundle.
#
# Lifecycle (load_bundle):
#   1. Validate the root: it must exist and be a directory.
#   2. Decode Info.plist with plistlib and turn it into a typed
#      BundleManifest (parse_manifest); nothing downstream reads the raw dict.
#   3. Walk the tree with os.walk, directories and files in sorted order,
#      skipping hidden entries.  Each regular file becomes a FileEntry whose
#      path is relative to the root with "/" separators; its category is
#      assigned here, once, from the path rules.

from __future__ import annotations

import logging
import os
import plistlib
import stat

from result import Err, Ok, Result

from bundlelens.models.bundle import AnalysisFailure, Bundle, FileEntry
from bundlelens.models.enums import FailureCode
from bundlelens.scan.manifest import parse_manifest
from bundlelens.services.classifier import classify_path, is_compressed_path

log = logging.getLogger(__name__)

MANIFEST_NAME = "Info.plist"


def resolve_root(path: str) -> str | AnalysisFailure:
    """Validate and resolve a bundle root path.

    Returns the resolved absolute path, or an ``AnalysisFailure`` on failure.
    """
    expanded = os.path.expanduser(path)
    if not os.path.exists(expanded):
        return AnalysisFailure(
            code=FailureCode.NOT_FOUND,
            path=expanded,
            message="Path does not exist",
        )
    resolved = os.path.abspath(expanded)
    if not os.path.isdir(resolved):
        return AnalysisFailure(
            code=FailureCode.NOT_DIRECTORY,
            path=resolved,
            message="Path is not a directory",
        )
    return resolved


def _relative(root: str, path: str) -> str:
    rel = os.path.relpath(path, root)
    return rel.replace(os.sep, "/").lstrip("/")


def walk_files(root: str, executable_name: str | None = None) -> list[FileEntry]:
    entries: list[FileEntry] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for name in sorted(filenames):
            if name.startswith("."):
                continue
            full = os.path.join(dirpath, name)
            try:
                st = os.lstat(full)
            except OSError:
                log.debug("Cannot stat: %s", full)
                continue
            if not stat.S_ISREG(st.st_mode):
                continue
            rel = _relative(root, full)
            entries.append(
                FileEntry(
                    path=rel,
                    size=st.st_size,
                    category=classify_path(rel, executable_name),
                    is_compressed=is_compressed_path(rel),
                )
            )
    return entries


def load_bundle(path: str) -> Result[Bundle, AnalysisFailure]:
    resolved = resolve_root(path)
    if isinstance(resolved, AnalysisFailure):
        return Err(resolved)
    root = resolved

    manifest_path = os.path.join(root, MANIFEST_NAME)
    if not os.path.isfile(manifest_path):
        return Err(AnalysisFailure(FailureCode.MANIFEST_MISSING, manifest_path, "Info.plist not found"))

    try:
        with open(manifest_path, "rb") as f:
            raw = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ValueError) as exc:
        return Err(AnalysisFailure(FailureCode.MANIFEST_INVALID, manifest_path, f"Cannot decode Info.plist: {exc}"))
    if not isinstance(raw, dict):
        return Err(AnalysisFailure(FailureCode.MANIFEST_INVALID, manifest_path, "Info.plist is not a dictionary"))

    parsed = parse_manifest(raw)
    if isinstance(parsed, Err):
        return Err(AnalysisFailure(FailureCode.MANIFEST_INVALID, manifest_path, parsed.unwrap_err()))
    manifest = parsed.unwrap()

    files = walk_files(root, manifest.executable_name)
    total = sum(entry.size for entry in files)
    log.info("Loaded %s: %d files, %d bytes", manifest.identifier, len(files), total)
    return Ok(Bundle(root=root, manifest=manifest, files=tuple(files), total_size=total))
