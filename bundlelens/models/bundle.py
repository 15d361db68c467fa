from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from bundlelens.models.enums import FailureCode, FileCategory

# (stage_message, percent 0..100)
ProgressCallback = Callable[[str, int], None]
CancelCheck = Callable[[], bool]


@dataclass(slots=True, frozen=True)
class BundleManifest:
    identifier: str
    display_name: str
    executable_name: str
    version: str = "1.0"
    short_version: str = "1.0"
    minimum_os: str | None = None
    supported_devices: tuple[str, ...] = ("Universal",)
    supported_platforms: tuple[str, ...] = ("iOS",)
    background_modes: tuple[str, ...] = ()
    required_capabilities: tuple[str, ...] = ()
    usage_description_keys: frozenset[str] = field(default_factory=frozenset)


@dataclass(slots=True, frozen=True)
class FileEntry:
    path: str
    size: int
    category: FileCategory
    is_compressed: bool = False


@dataclass(slots=True, frozen=True)
class Bundle:
    """An extracted application bundle: its root, typed manifest and file listing.

    ``files`` paths are relative to ``root`` and use ``/`` separators.
    """

    root: str
    manifest: BundleManifest
    files: tuple[FileEntry, ...]
    total_size: int
    compressed_size: int | None = None

    def absolute(self, relative_path: str) -> str:
        return f"{self.root.rstrip('/')}/{relative_path.lstrip('/')}"

    @property
    def executable_path(self) -> str:
        return self.absolute(self.manifest.executable_name)


@dataclass(slots=True, frozen=True)
class AnalysisFailure:
    code: FailureCode
    path: str
    message: str
