from __future__ import annotations

import heapq
from collections.abc import Iterable, Sequence

from bundlelens.models.analysis import BundleMetrics, CategoryMetrics, FileInfo, FrameworkInfo
from bundlelens.models.bundle import Bundle, FileEntry
from bundlelens.models.enums import FileCategory

RESOURCE_CATEGORIES: frozenset[FileCategory] = frozenset(
    {
        FileCategory.IMAGE,
        FileCategory.VIDEO,
        FileCategory.AUDIO,
        FileCategory.FONT,
        FileCategory.LOCALIZATION,
        FileCategory.INTERFACE_BUILDER,
        FileCategory.JSON,
        FileCategory.PROPERTY_LIST,
        FileCategory.XML,
    }
)

SYSTEM_FRAMEWORKS: frozenset[str] = frozenset({"UIKit", "Foundation", "CoreGraphics", "CoreData"})


def percentage_of(size: int, total_size: int) -> float:
    return size / total_size * 100 if total_size > 0 else 0.0


def _file_info(entry: FileEntry, total_size: int) -> FileInfo:
    return FileInfo(
        path=entry.path,
        size=entry.size,
        category=entry.category,
        percentage=percentage_of(entry.size, total_size),
    )


def category_metrics(files: Iterable[FileEntry], total_size: int) -> tuple[CategoryMetrics, ...]:
    """Roll file sizes up per category, largest category first.

    The largest file of a category is the first one seen with the maximum size.
    """
    sizes: dict[FileCategory, int] = {}
    counts: dict[FileCategory, int] = {}
    largest: dict[FileCategory, FileEntry] = {}
    for entry in files:
        cat = entry.category
        sizes[cat] = sizes.get(cat, 0) + entry.size
        counts[cat] = counts.get(cat, 0) + 1
        current = largest.get(cat)
        if current is None or entry.size > current.size:
            largest[cat] = entry

    metrics = [
        CategoryMetrics(
            category=cat,
            total_size=size,
            file_count=counts[cat],
            percentage=percentage_of(size, total_size),
            largest_file=_file_info(largest[cat], total_size),
        )
        for cat, size in sizes.items()
    ]
    metrics.sort(key=lambda m: m.total_size, reverse=True)
    return tuple(metrics)


def top_files(files: Iterable[FileEntry], total_size: int, limit: int = 20) -> tuple[FileInfo, ...]:
    """Return the *limit* largest files; ties keep their input order."""
    if limit <= 0:
        return ()
    largest = heapq.nlargest(limit, files, key=lambda entry: entry.size)
    return tuple(_file_info(entry, total_size) for entry in largest)


def _sum_sizes(files: Iterable[FileEntry], categories: frozenset[FileCategory]) -> int:
    return sum(entry.size for entry in files if entry.category in categories)


def _parent(path: str) -> str:
    head, _, _ = path.rpartition("/")
    return head


def lproj_directory(path: str) -> str | None:
    """Return the first ``*.lproj`` segment of *path*, if any."""
    for segment in path.split("/")[:-1]:
        if segment.lower().endswith(".lproj"):
            return segment
    return None


def framework_name(path: str) -> str | None:
    for segment in path.split("/")[:-1]:
        if segment.endswith(".framework"):
            return segment[: -len(".framework")]
    return None


def bundle_metrics(bundle: Bundle) -> BundleMetrics:
    files = bundle.files
    directories = {_parent(entry.path) for entry in files}
    lprojs = {d for d in (lproj_directory(entry.path) for entry in files) if d is not None}
    return BundleMetrics(
        file_count=len(files),
        directory_count=len(directories),
        executable_size=_sum_sizes(files, frozenset({FileCategory.EXECUTABLE})),
        resources_size=_sum_sizes(files, RESOURCE_CATEGORIES),
        frameworks_size=_sum_sizes(files, frozenset({FileCategory.FRAMEWORK, FileCategory.LIBRARY})),
        localization_count=len(lprojs),
        supported_devices=bundle.manifest.supported_devices,
        minimum_os=bundle.manifest.minimum_os,
    )


def collect_frameworks(files: Sequence[FileEntry]) -> tuple[FrameworkInfo, ...]:
    """Sum file sizes per ``*.framework`` directory, largest first."""
    sizes: dict[str, int] = {}
    paths: dict[str, str] = {}
    for entry in files:
        name = framework_name(entry.path)
        if name is None:
            continue
        if name not in sizes:
            marker = f"{name}.framework"
            paths[name] = entry.path[: entry.path.index(marker) + len(marker)]
            sizes[name] = 0
        sizes[name] += entry.size

    frameworks = [
        FrameworkInfo(name=name, path=paths[name], size=size, is_system=name in SYSTEM_FRAMEWORKS)
        for name, size in sizes.items()
    ]
    frameworks.sort(key=lambda fw: fw.size, reverse=True)
    return tuple(frameworks)
