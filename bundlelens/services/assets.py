# Compiled asset catalog (Assets.car) introspection.
#
# Renditions come from one of two sources:
#
#   1. cartool extraction: the catalog is unpacked into a scratch
#      TemporaryDirectory and every extracted file becomes a rendition.
#      Name, idiom and scale are read off the file name markers
#      (@2x, @3x, ~ipad, ~iphone); the content hash is the SHA-256 of the
#      extracted bytes.
#
#   2. assetutil --info metadata, used only when extraction produced no
#      files.  Renditions carry the tool's SHA1 digest, which is turned
#      into a content hash through RenditionHashCache (one cache per
#      analyzer, i.e. per pipeline run).  Entries without a digest have no
#      content hash.
#
# Duplicates are then found in two passes: identical content hashes, and
# for renditions with no hash, identical names with an identical metadata
# tuple.  The "unused" list is a heuristic (tablet-only renditions that are
# not icons), not a reference analysis.

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
from collections.abc import Sequence
from typing import Any

from result import Err

from bundlelens.config.schema import AnalyzerConfig
from bundlelens.models.analysis import AssetDuplicateGroup, AssetRendition, CatalogAnalysis
from bundlelens.models.enums import CatalogErrorCode, CatalogStatus
from bundlelens.services.duplicates import hash_file
from bundlelens.services.tools import ToolErrorCode, run_tool

log = logging.getLogger(__name__)

SKIPPED_POTENTIAL_RATIO = 0.15
_MIN_EXTRACTION_TIMEOUT = 2
_MAX_EXTRACTION_TIMEOUT = 30
_EXTRACTION_BYTES_PER_SECOND = 3_000_000
_MIN_KNOWN_ESTIMATE = 1024
_MIN_FALLBACK_ESTIMATE = 4096

# Markers are removed longest-scale first so "@3x" never leaves a stray "x".
_NAME_MARKERS: tuple[str, ...] = ("@3x", "@2x", "~ipad", "~iphone")

_TYPE_BY_EXTENSION: dict[str, str] = {
    "png": "Image",
    "jpg": "Image",
    "jpeg": "Image",
    "pdf": "PDF",
    "json": "Data",
}

_ASSETUTIL_IDIOMS: dict[str, str] = {"pad": "tablet", "phone": "phone"}


class RenditionHashCache:
    """Maps (digest, type, declared size) to a stable content hash."""

    def __init__(self) -> None:
        self._hashes: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._hashes)

    def content_hash(self, digest: str | None, asset_type: str, declared_size: str) -> str | None:
        if not digest:
            return None
        key = f"{digest}-{asset_type}-{declared_size}"
        cached = self._hashes.get(key)
        if cached is None:
            cached = hashlib.sha256(key.encode("utf-8")).hexdigest()
            self._hashes[key] = cached
        return cached


def extraction_timeout(size: int) -> int:
    return min(_MAX_EXTRACTION_TIMEOUT, max(_MIN_EXTRACTION_TIMEOUT, size // _EXTRACTION_BYTES_PER_SECOND))


def asset_type_for(file_name: str) -> str:
    _, _, ext = file_name.rpartition(".")
    return _TYPE_BY_EXTENSION.get(ext.lower(), "Unknown")


def normalize_asset_name(file_name: str) -> str:
    stem, dot, _ = file_name.rpartition(".")
    name = stem if dot else file_name
    for marker in _NAME_MARKERS:
        name = name.replace(marker, "")
    return name


def idiom_and_scale(file_name: str) -> tuple[str, str]:
    if "~ipad" in file_name:
        return "tablet", "2x" if "@2x" in file_name else "1x"
    if "~iphone" in file_name:
        if "@3x" in file_name:
            return "phone", "3x"
        return "phone", "2x" if "@2x" in file_name else "1x"
    if "@3x" in file_name:
        return "universal", "3x"
    if "@2x" in file_name:
        return "universal", "2x"
    return "universal", "1x"


def rendition_from_file(path: str) -> AssetRendition | None:
    """Build a rendition from one extracted file, or None if it cannot be read."""
    file_name = os.path.basename(path)
    try:
        size = os.path.getsize(path)
        digest = hash_file(path)
    except OSError:
        log.debug("Cannot read extracted rendition: %s", path)
        return None
    idiom, scale = idiom_and_scale(file_name)
    return AssetRendition(
        name=normalize_asset_name(file_name),
        type=asset_type_for(file_name),
        idiom=idiom,
        scale=scale,
        declared_size="0x0",
        rendition_key=file_name,
        size_on_disk=size,
        content_hash=digest,
    )


def parse_assetutil_info(payload: Any, cache: RenditionHashCache) -> tuple[AssetRendition, ...]:
    """Turn ``assetutil --info`` JSON into renditions.

    The first element of the array describes the catalog itself and has
    no AssetType; it is skipped along with any other non-rendition entry.
    """
    if not isinstance(payload, list):
        return ()
    renditions: list[AssetRendition] = []
    for item in payload:
        if not isinstance(item, dict) or "AssetType" not in item:
            continue
        asset_type = str(item["AssetType"])
        declared_size = f"{int(item.get('PixelWidth', 0))}x{int(item.get('PixelHeight', 0))}"
        idiom_raw = str(item.get("Idiom", "universal")).lower()
        renditions.append(
            AssetRendition(
                name=str(item.get("Name", "")),
                type=asset_type,
                idiom=_ASSETUTIL_IDIOMS.get(idiom_raw, idiom_raw),
                scale=f"{item.get('Scale', 1)}x",
                declared_size=declared_size,
                rendition_key=str(item.get("RenditionName", item.get("Name", ""))),
                size_on_disk=int(item.get("SizeOnDisk", 0)),
                content_hash=cache.content_hash(item.get("SHA1Digest"), asset_type, declared_size),
            )
        )
    return tuple(renditions)


def estimate_rendition_size(renditions: Sequence[AssetRendition], catalog_size: int) -> int:
    known = [r.size_on_disk for r in renditions if r.size_on_disk > 0]
    if known:
        return max(_MIN_KNOWN_ESTIMATE, sum(known) // len(known))
    if renditions:
        return max(_MIN_FALLBACK_ESTIMATE, catalog_size // len(renditions))
    return _MIN_FALLBACK_ESTIMATE


def _sized(rendition: AssetRendition, estimate: int) -> int:
    return rendition.size_on_disk if rendition.size_on_disk > 0 else estimate


def _hash_group_label(members: Sequence[AssetRendition]) -> str:
    if len(members) > 3:
        return f"{members[0].name} (+ {len(members) - 1} identical assets)"
    return ", ".join(r.name for r in members)


def _same_name_duplicates(renditions: Sequence[AssetRendition], estimate: int) -> list[AssetDuplicateGroup]:
    by_name: dict[str, list[AssetRendition]] = {}
    for rendition in renditions:
        by_name.setdefault(rendition.name, []).append(rendition)

    groups: list[AssetDuplicateGroup] = []
    for name, variants in by_name.items():
        if len(variants) < 2:
            continue
        by_key: dict[tuple[str, str, str, str, int], list[AssetRendition]] = {}
        for variant in variants:
            by_key.setdefault(variant.metadata_key, []).append(variant)
        identical = [members for members in by_key.values() if len(members) > 1]
        if not identical:
            continue
        wasted = sum((len(members) - 1) * _sized(members[0], estimate) for members in identical)
        groups.append(
            AssetDuplicateGroup(
                label=name,
                renditions=tuple(r for members in identical for r in members),
                wasted_space=wasted,
            )
        )
    return groups


def find_asset_duplicates(
    renditions: Sequence[AssetRendition], catalog_size: int
) -> tuple[AssetDuplicateGroup, ...]:
    estimate = estimate_rendition_size(renditions, catalog_size)

    by_hash: dict[str, list[AssetRendition]] = {}
    unhashed: list[AssetRendition] = []
    for rendition in renditions:
        if rendition.content_hash:
            by_hash.setdefault(rendition.content_hash, []).append(rendition)
        else:
            unhashed.append(rendition)

    groups: list[AssetDuplicateGroup] = []
    for members in by_hash.values():
        if len(members) < 2:
            continue
        mean = sum(_sized(r, estimate) for r in members) // len(members)
        groups.append(
            AssetDuplicateGroup(
                label=_hash_group_label(members),
                renditions=tuple(members),
                wasted_space=(len(members) - 1) * mean,
            )
        )
    if unhashed:
        groups.extend(_same_name_duplicates(unhashed, estimate))

    groups.sort(key=lambda group: group.wasted_space, reverse=True)
    return tuple(groups)


def find_unused_renditions(renditions: Sequence[AssetRendition]) -> tuple[AssetRendition, ...]:
    """Tablet-only renditions that are not icons (heuristic)."""
    return tuple(r for r in renditions if r.idiom.lower() == "tablet" and "icon" not in r.type.lower())


def optimization_potential(
    duplicates: Sequence[AssetDuplicateGroup],
    unused: Sequence[AssetRendition],
    catalog_size: int,
) -> int:
    duplicate_waste = sum(group.wasted_space for group in duplicates)
    unused_waste = sum(r.size_on_disk for r in unused)

    # Sizes unknown: spread the catalog size over every counted rendition.
    if duplicate_waste == 0 and duplicates:
        extra_copies = sum(len(group.renditions) - 1 for group in duplicates)
        if extra_copies > 0:
            counted = sum(len(group.renditions) for group in duplicates) + len(unused)
            per_rendition = catalog_size // counted if counted else 0
            return extra_copies * per_rendition + unused_waste

    return duplicate_waste + unused_waste


class AssetCatalogAnalyzer:
    def __init__(self, config: AnalyzerConfig, cache: RenditionHashCache | None = None) -> None:
        self._config = config
        self._cache = cache if cache is not None else RenditionHashCache()

    @property
    def cache(self) -> RenditionHashCache:
        return self._cache

    def analyze(self, path: str) -> CatalogAnalysis:
        size = os.path.getsize(path)
        if size > self._config.catalog_skip_bytes:
            log.info("Skipping large asset catalog (%d bytes): %s", size, path)
            return CatalogAnalysis(
                path=path,
                total_size=size,
                optimization_potential=int(size * SKIPPED_POTENTIAL_RATIO),
                status=CatalogStatus.SKIPPED,
                error_code=CatalogErrorCode.FILE_TOO_BIG,
            )

        renditions, timed_out = self._extract(path, size)
        if not renditions and self._config.tools.assetutil:
            renditions = self._describe(path)

        if not renditions:
            code = CatalogErrorCode.TIMEOUT if timed_out else CatalogErrorCode.NO_RENDITIONS
            log.warning("No renditions from %s (%s)", path, code.value)
            return CatalogAnalysis(
                path=path,
                total_size=size,
                optimization_potential=0,
                status=CatalogStatus.FAILED,
                error_code=code,
            )

        duplicates = find_asset_duplicates(renditions, size)
        unused = find_unused_renditions(renditions)
        potential = optimization_potential(duplicates, unused, size)
        log.info(
            "%s: %d renditions, %d duplicate groups, %d unused",
            os.path.basename(path),
            len(renditions),
            len(duplicates),
            len(unused),
        )
        return CatalogAnalysis(
            path=path,
            total_size=size,
            optimization_potential=potential,
            status=CatalogStatus.SUCCESS,
            renditions=renditions,
            duplicates=duplicates,
            unused=unused,
        )

    def _extract(self, path: str, size: int) -> tuple[tuple[AssetRendition, ...], bool]:
        """Run cartool into a scratch directory; return (renditions, timed_out)."""
        timeout = extraction_timeout(size)
        with tempfile.TemporaryDirectory(prefix="bundlelens-car-") as scratch:
            result = run_tool([*self._config.tools.cartool, path, scratch], timeout)
            timed_out = False
            if isinstance(result, Err):
                error = result.unwrap_err()
                timed_out = error.code is ToolErrorCode.TIMEOUT
                log.debug("cartool failed for %s: %s", path, error.message)

            # A timed-out run may still have written some renditions.
            with os.scandir(scratch) as it:
                names = sorted(entry.name for entry in it if entry.is_file(follow_symlinks=False))
            renditions = [rendition_from_file(os.path.join(scratch, name)) for name in names]
            return tuple(r for r in renditions if r is not None), timed_out

    def _describe(self, path: str) -> tuple[AssetRendition, ...]:
        assetutil = self._config.tools.assetutil or ()
        result = run_tool([*assetutil, "--info", path], self._config.tool_timeout_seconds)
        if isinstance(result, Err):
            log.debug("assetutil failed for %s: %s", path, result.unwrap_err().message)
            return ()
        run = result.unwrap()
        try:
            payload = json.loads(run.stdout)
            return parse_assetutil_info(payload, self._cache)
        except (ValueError, TypeError):
            log.debug("Unparseable assetutil output for %s", path)
            return ()
