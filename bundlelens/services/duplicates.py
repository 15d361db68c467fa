"""Content-hash duplicate detection across the files of a bundle."""

from __future__ import annotations

import hashlib
import logging
import os
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from bundlelens.models.analysis import DuplicateGroup
from bundlelens.models.bundle import FileEntry

log = logging.getLogger(__name__)

_CHUNK_SIZE = 1_048_576  # 1 MiB

# (candidate count above which the cap applies, files kept)
_CANDIDATE_CAPS: tuple[tuple[int, int], ...] = (
    (10_000, 1_000),
    (2_000, 1_500),
)


def hash_file(path: str | Path) -> str:
    """Compute SHA-256 of a file using chunked reads."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            h.update(chunk)
    return h.hexdigest()


def candidate_limit(count: int) -> int:
    for threshold, keep in _CANDIDATE_CAPS:
        if count > threshold:
            return keep
    return count


def select_candidates(files: Iterable[FileEntry], min_bytes: int = 1024) -> list[FileEntry]:
    """Files strictly larger than *min_bytes*, largest first, capped by count.

    Very large bundles only hash their biggest files; the sort is stable so
    the selection is the same on every run.
    """
    eligible = [entry for entry in files if entry.size > min_bytes]
    eligible.sort(key=lambda entry: entry.size, reverse=True)
    return eligible[: candidate_limit(len(eligible))]


def _safe_hash(path: str) -> str | None:
    try:
        return hash_file(path)
    except OSError:
        log.debug("Cannot hash: %s", path)
        return None


def find_duplicates(
    files: Sequence[FileEntry],
    root: str,
    workers: int | None = None,
    min_bytes: int = 1024,
) -> tuple[DuplicateGroup, ...]:
    candidates = select_candidates(files, min_bytes)
    if len(candidates) < 2:
        return ()

    max_workers = max(1, min(workers or os.cpu_count() or 4, len(candidates)))
    absolute = [os.path.join(root, entry.path) for entry in candidates]

    # Only this thread touches by_hash; executor.map yields in submission
    # order, so group membership order follows candidate order.
    by_hash: dict[str, list[FileEntry]] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        for entry, digest in zip(candidates, executor.map(_safe_hash, absolute)):
            if digest is not None:
                by_hash.setdefault(digest, []).append(entry)

    groups: list[DuplicateGroup] = []
    for digest, entries in by_hash.items():
        if len(entries) < 2:
            continue
        size = entries[0].size
        groups.append(
            DuplicateGroup(
                content_hash=digest,
                paths=tuple(entry.path for entry in entries),
                size=size,
                wasted_space=size * (len(entries) - 1),
            )
        )

    groups.sort(key=lambda group: group.wasted_space, reverse=True)
    log.info("Hashed %d files, found %d duplicate groups", len(candidates), len(groups))
    return tuple(groups)


def total_wasted_space(groups: Iterable[DuplicateGroup]) -> int:
    return sum(group.wasted_space for group in groups)
